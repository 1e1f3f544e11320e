import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from quote_pricing.config import Settings, settings
from quote_pricing.core.cache import AbstractCacheProvider
from quote_pricing.core.memory_cache import InMemoryCacheProvider
from quote_pricing.rate_cards.application.services import RateCardResolver
from quote_pricing.rate_cards.domain.repositories import AbstractRateCardRepository
from quote_pricing.rate_cards.infrastructure.persistence import SQLAlchemyRateCardRepository

logger = logging.getLogger(__name__)

# --- Dépendances Repository ---


def get_rate_card_repository(session: AsyncSession) -> AbstractRateCardRepository:
    """Fournit le repository SQLAlchemy du catalogue pour une session donnée."""
    logger.debug("Fourniture de SQLAlchemyRateCardRepository")
    return SQLAlchemyRateCardRepository(session=session)


# --- Dépendances Cache ---


def get_cache_provider(config: Settings = settings) -> Optional[AbstractCacheProvider]:
    if not config.CACHE_ENABLED:
        logger.debug("Cache des grilles tarifaires désactivé.")
        return None
    return InMemoryCacheProvider()


# --- Dépendances Service ---


def build_rate_card_resolver(
    repository: AbstractRateCardRepository,
    cache: Optional[AbstractCacheProvider] = None,
    config: Settings = settings,
) -> RateCardResolver:
    """Construit un RateCardResolver à partir de la configuration ; aucune instance globale n'est partagée."""
    return RateCardResolver(
        repository=repository,
        cache=cache,
        standard_tax_rate=config.STANDARD_TAX_RATE,
        default_unit=config.DEFAULT_UNIT,
        rate_card_ttl=config.RATE_CARD_CACHE_TTL,
        rate_item_ttl=config.RATE_ITEM_CACHE_TTL,
        match_threshold=config.DESCRIPTION_MATCH_THRESHOLD,
        cache_key_prefix=config.CACHE_KEY_PREFIX,
    )
