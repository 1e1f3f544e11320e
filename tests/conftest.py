# Standard Library
from datetime import date
from decimal import Decimal
from typing import AsyncGenerator

# Third-Party Libraries
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

# First-Party Libraries
from quote_pricing.database import create_tables, dispose_engine, get_engine, get_session_factory
from quote_pricing.core.memory_cache import InMemoryCacheProvider
from quote_pricing.pricing.domain.entities import LineItem, MoneyAmount
from quote_pricing.rate_cards.domain.entities import RateCard, RateCardItem, TaxClass
from quote_pricing.rate_cards.infrastructure.memory import InMemoryRateCardRepository
from quote_pricing.rate_cards.application.services import RateCardResolver

# URL de base pour la DB en mémoire
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ORG_ID = "org-1"
RESOLUTION_DATE = date(2024, 6, 1)


def nzd(amount: str) -> MoneyAmount:
    return MoneyAmount(amount=Decimal(amount), currency="NZD")


def make_line(description: str = "Consulting", quantity: str = "1", unit_price: str = "100.00", **kwargs) -> LineItem:
    price = nzd(unit_price) if unit_price is not None else None
    return LineItem(description=description, quantity=Decimal(quantity), unit_price=price, **kwargs)


# --- Fixtures Catalogue ---

@pytest.fixture
def rate_card() -> RateCard:
    return RateCard(
        id="rc-2024",
        organization_id=ORG_ID,
        name="Standard 2024",
        currency="NZD",
        effective_from=date(2024, 1, 1),
        is_default=True,
    )


@pytest.fixture
def rate_card_items(rate_card: RateCard) -> list:
    return [
        RateCardItem(
            id="item-dev",
            rate_card_id=rate_card.id,
            service_category_id="cat-dev",
            item_code="DEV-HOURLY",
            description="Software development hourly",
            unit="hour",
            base_rate=nzd("150.00"),
            tax_class=TaxClass.STANDARD,
            effective_from=date(2024, 1, 1),
        ),
        RateCardItem(
            id="item-design",
            rate_card_id=rate_card.id,
            service_category_id="cat-design",
            item_code="DESIGN-DAY",
            description="UX design day rate",
            unit="day",
            base_rate=nzd("900.00"),
            tax_class=TaxClass.STANDARD,
            effective_from=date(2024, 1, 1),
        ),
        RateCardItem(
            id="item-training",
            rate_card_id=rate_card.id,
            service_category_id="cat-edu",
            item_code="TRAINING",
            description="Accredited training session",
            unit="session",
            base_rate=nzd("400.00"),
            tax_class=TaxClass.EXEMPT,
            effective_from=date(2024, 1, 1),
        ),
        RateCardItem(
            id="item-legacy",
            rate_card_id=rate_card.id,
            service_category_id="cat-dev",
            item_code="LEGACY-SUPPORT",
            description="Legacy support retainer",
            unit="month",
            base_rate=nzd("500.00"),
            effective_from=date(2023, 1, 1),
            effective_until=date(2023, 12, 31),
        ),
    ]


@pytest.fixture
def rate_card_repository(rate_card: RateCard, rate_card_items: list) -> InMemoryRateCardRepository:
    return InMemoryRateCardRepository(rate_cards=[rate_card], items=rate_card_items)


@pytest.fixture
def cache_provider() -> InMemoryCacheProvider:
    return InMemoryCacheProvider()


@pytest.fixture
def resolver(rate_card_repository: InMemoryRateCardRepository, cache_provider: InMemoryCacheProvider) -> RateCardResolver:
    return RateCardResolver(repository=rate_card_repository, cache=cache_provider)


# --- Fixtures Base de Données ---

@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Crée l'engine et les tables du catalogue, et fournit une session DB en mémoire pour chaque test."""
    get_engine(TEST_DATABASE_URL)
    await create_tables()

    async with get_session_factory()() as session:
        yield session

    await dispose_engine()
