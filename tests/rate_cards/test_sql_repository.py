import pytest
import pytest_asyncio
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from quote_pricing.core.exceptions import RateCardRepositoryError
from quote_pricing.rate_cards.dependencies import build_rate_card_resolver, get_rate_card_repository
from quote_pricing.rate_cards.domain.entities import TaxClass
from quote_pricing.rate_cards.infrastructure.orm_models import RateCardDB, RateCardItemDB
from quote_pricing.rate_cards.infrastructure.persistence import SQLAlchemyRateCardRepository

from conftest import ORG_ID, RESOLUTION_DATE, make_line


@pytest_asyncio.fixture(scope="function")
async def seeded_session(db_session: AsyncSession) -> AsyncSession:
    """Insère deux grilles et quelques lignes dans la base en mémoire."""
    db_session.add_all(
        [
            RateCardDB(id="rc-2023", organization_id=ORG_ID, name="2023", effective_from=date(2023, 1, 1)),
            RateCardDB(
                id="rc-2024", organization_id=ORG_ID, name="2024", effective_from=date(2024, 1, 1), is_default=True
            ),
            RateCardDB(
                id="rc-archived", organization_id=ORG_ID, name="Archived",
                effective_from=date(2024, 2, 1), is_default=True, is_active=False,
            ),
        ]
    )
    await db_session.flush()
    db_session.add_all(
        [
            RateCardItemDB(
                id="item-dev", rate_card_id="rc-2024", service_category_id="cat-dev", item_code="DEV-HOURLY",
                description="Software development hourly", unit="hour", base_rate=Decimal("150.00"),
                effective_from=date(2024, 1, 1),
            ),
            RateCardItemDB(
                id="item-training", rate_card_id="rc-2024", item_code="TRAINING", description="Training session",
                unit="session", base_rate=Decimal("400.00"), tax_class="exempt", effective_from=date(2024, 1, 1),
            ),
            RateCardItemDB(
                id="item-disabled", rate_card_id="rc-2024", item_code="OLD", unit="hour",
                base_rate=Decimal("10.00"), effective_from=date(2024, 1, 1), is_active=False,
            ),
        ]
    )
    await db_session.commit()
    return db_session


@pytest.mark.asyncio
async def test_get_active_rate_card_prefers_default(seeded_session):
    repository = SQLAlchemyRateCardRepository(seeded_session)

    card = await repository.get_active_rate_card(ORG_ID, RESOLUTION_DATE)

    assert card is not None
    assert card.id == "rc-2024"
    assert card.is_default is True
    assert await repository.get_active_rate_card("org-unknown", RESOLUTION_DATE) is None


@pytest.mark.asyncio
async def test_get_items_maps_rows_to_entities(seeded_session):
    repository = SQLAlchemyRateCardRepository(seeded_session)

    items = await repository.get_rate_card_items("rc-2024")
    assert [item.id for item in items] == ["item-dev", "item-training"]

    training = await repository.get_rate_card_item_by_code("rc-2024", "TRAINING", RESOLUTION_DATE)
    assert training.tax_class is TaxClass.EXEMPT
    assert training.base_rate.amount == Decimal("400.00")
    assert training.base_rate.currency == "NZD"
    assert await repository.get_rate_card_item_by_code("rc-2024", "OLD", RESOLUTION_DATE) is None


@pytest.mark.asyncio
async def test_get_item_by_code_filters_on_effective_date(seeded_session):
    seeded_session.add_all(
        [
            RateCardItemDB(
                id="item-support-2026", rate_card_id="rc-2024", item_code="SUPPORT", unit="month",
                base_rate=Decimal("150.00"), effective_from=date(2024, 1, 1), effective_until=date(2026, 12, 31),
            ),
            RateCardItemDB(
                id="item-support-2027", rate_card_id="rc-2024", item_code="SUPPORT", unit="month",
                base_rate=Decimal("175.00"), effective_from=date(2027, 1, 1),
            ),
        ]
    )
    await seeded_session.commit()
    repository = SQLAlchemyRateCardRepository(seeded_session)

    current = await repository.get_rate_card_item_by_code("rc-2024", "SUPPORT", date(2026, 6, 1))
    upcoming = await repository.get_rate_card_item_by_code("rc-2024", "SUPPORT", date(2027, 3, 1))

    assert current.id == "item-support-2026"
    assert current.base_rate.amount == Decimal("150.00")
    assert upcoming.id == "item-support-2027"
    assert await repository.get_rate_card_item_by_code("rc-2024", "SUPPORT", date(2023, 6, 1)) is None


@pytest.mark.asyncio
async def test_database_errors_are_wrapped():
    session = AsyncMock(spec=AsyncSession)
    session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("database is locked"))
    repository = SQLAlchemyRateCardRepository(session)

    with pytest.raises(RateCardRepositoryError) as exc_info:
        await repository.get_rate_card_items("rc-2024")
    assert isinstance(exc_info.value.original_exception, OperationalError)


@pytest.mark.asyncio
async def test_resolver_over_sql_repository(seeded_session):
    resolver = build_rate_card_resolver(get_rate_card_repository(seeded_session))

    response = await resolver.resolve_pricing(
        ORG_ID,
        [
            make_line("Development", quantity="10", unit_price="200.00", item_code="DEV-HOURLY", line_number=1),
            make_line("Training session", unit_price=None, line_number=2),
        ],
        can_override_price=False,
        effective_date=RESOLUTION_DATE,
    )

    assert response.success is True
    development, training = response.results
    assert development.unit_price.amount == Decimal("150.00")
    assert development.source.value == "rate_card"
    assert training.tax_rate == Decimal("0")
