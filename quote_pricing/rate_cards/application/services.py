import asyncio
import logging
from datetime import date
from decimal import Decimal
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from quote_pricing.config import settings
from quote_pricing.core.cache import AbstractCacheProvider, CacheKeyBuilder
from quote_pricing.core.exceptions import (
    CacheError,
    NoActiveRateCardError,
    NoMatchingRateError,
    RateCardRepositoryError,
)
from quote_pricing.pricing.domain.entities import LineItem
from quote_pricing.rate_cards.domain.entities import (
    PricingResolutionError,
    PricingResolutionResponse,
    PricingResolutionResult,
    PricingSource,
    RateCard,
    RateCardItem,
    TaxClass,
)
from quote_pricing.rate_cards.domain.matching import (
    effective_items,
    find_first_item_in_category,
    find_item_by_description,
)
from quote_pricing.rate_cards.domain.repositories import AbstractRateCardRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

NO_MATCH_ITEM_CODE_OR_DESCRIPTION = "No matching rate found for item code or description"
NO_MATCH_SERVICE_CATEGORY = "No matching rate found for service category"
NO_MATCH_DESCRIPTION = "No matching rate found for description"


class RateCardResolver:
    """Résout le prix unitaire, le taux de taxe et l'unité de chaque ligne de devis.

    Ordre de priorité par ligne :
    1. prix explicite, seulement si l'appelant a le droit de surcharger le prix ;
    2. code article dans la grille active de l'organisation ;
    3. rapprochement par description (limité à la catégorie de service si fournie) ;
    4. échec avec un motif lisible par l'utilisateur.
    """

    def __init__(
        self,
        repository: AbstractRateCardRepository,
        cache: Optional[AbstractCacheProvider] = None,
        standard_tax_rate: Decimal = settings.STANDARD_TAX_RATE,
        default_unit: str = settings.DEFAULT_UNIT,
        rate_card_ttl: int = settings.RATE_CARD_CACHE_TTL,
        rate_item_ttl: int = settings.RATE_ITEM_CACHE_TTL,
        match_threshold: float = settings.DESCRIPTION_MATCH_THRESHOLD,
        cache_key_prefix: str = settings.CACHE_KEY_PREFIX,
    ):
        self.repository = repository
        self.cache = cache
        self.standard_tax_rate = standard_tax_rate
        self.default_unit = default_unit
        self.rate_card_ttl = rate_card_ttl
        self.rate_item_ttl = rate_item_ttl
        self.match_threshold = match_threshold
        self.keys = CacheKeyBuilder(cache_key_prefix)

    # --- Accès au catalogue (avec cache) ---

    async def _cached(self, key: str, ttl: int, producer: Callable[[], Awaitable[T]]) -> T:
        if self.cache is None:
            return await producer()
        try:
            return await self.cache.get_or_set(key, ttl, producer)
        except CacheError as e:
            logger.warning(f"[RateCardResolver] Cache indisponible pour '{key}', lecture directe du catalogue: {e.message}")
            return await producer()

    async def get_active_rate_card(self, organization_id: str, on_date: Optional[date] = None) -> Optional[RateCard]:
        on_date = on_date or date.today()
        key = self.keys.active_rate_card(organization_id, on_date.isoformat())
        return await self._cached(
            key, self.rate_card_ttl, lambda: self.repository.get_active_rate_card(organization_id, on_date)
        )

    async def get_rate_card_items(self, organization_id: str, rate_card_id: str) -> List[RateCardItem]:
        key = self.keys.rate_card_items(organization_id, rate_card_id)
        return await self._cached(key, self.rate_item_ttl, lambda: self.repository.get_rate_card_items(rate_card_id))

    async def get_rate_card_item_by_code(
        self, organization_id: str, rate_card_id: str, item_code: str, on_date: Optional[date] = None
    ) -> Optional[RateCardItem]:
        on_date = on_date or date.today()
        key = self.keys.rate_card_item_by_code(organization_id, rate_card_id, item_code, on_date.isoformat())
        return await self._cached(
            key,
            self.rate_item_ttl,
            lambda: self.repository.get_rate_card_item_by_code(rate_card_id, item_code, on_date),
        )

    async def bust_rate_card_cache(self, organization_id: str, rate_card_id: Optional[str] = None) -> int:
        """Invalide le cache d'une organisation, ou seulement celui d'une grille et des grilles actives."""
        if self.cache is None:
            return 0
        if rate_card_id is None:
            removed = await self.cache.bust(self.keys.organization_pattern(organization_id))
        else:
            removed = await self.cache.bust(self.keys.active_rate_card_pattern(organization_id))
            removed += await self.cache.bust(self.keys.rate_card_items(organization_id, rate_card_id))
            removed += await self.cache.bust(self.keys.rate_card_items_pattern(organization_id, rate_card_id))
        logger.info(f"[RateCardResolver] Cache invalidé pour org {organization_id}: {removed} entrée(s)")
        return removed

    async def require_active_rate_card(self, organization_id: str, on_date: Optional[date] = None) -> RateCard:
        rate_card = await self.get_active_rate_card(organization_id, on_date)
        if rate_card is None:
            raise NoActiveRateCardError(organization_id)
        return rate_card

    # --- Résolution ---

    async def resolve_pricing(
        self,
        organization_id: str,
        line_items: Sequence[LineItem],
        can_override_price: bool = False,
        effective_date: Optional[date] = None,
    ) -> PricingResolutionResponse:
        on_date = effective_date or date.today()
        numbered = [
            item if item.line_number is not None else item.model_copy(update={"line_number": index})
            for index, item in enumerate(line_items, start=1)
        ]
        logger.debug(
            f"[RateCardResolver] Résolution de {len(numbered)} ligne(s) pour org {organization_id} "
            f"au {on_date.isoformat()} (surcharge: {can_override_price})"
        )

        try:
            rate_card = await self.require_active_rate_card(organization_id, on_date)
        except NoActiveRateCardError as e:
            logger.warning(f"[RateCardResolver] Aucune grille active pour org {organization_id} au {on_date.isoformat()}")
            return PricingResolutionResponse(
                success=False,
                errors=[
                    PricingResolutionError(line_number=item.line_number, description=item.description, reason=e.message)
                    for item in numbered
                ],
            )

        items = effective_items(await self.get_rate_card_items(organization_id, rate_card.id), on_date)

        outcomes = await asyncio.gather(
            *(
                self._resolve_line(organization_id, rate_card, items, item, can_override_price, on_date)
                for item in numbered
            )
        )

        results = [o for o in outcomes if isinstance(o, PricingResolutionResult)]
        errors = [o for o in outcomes if isinstance(o, PricingResolutionError)]
        if errors:
            logger.info(f"[RateCardResolver] {len(errors)}/{len(numbered)} ligne(s) non résolue(s) pour org {organization_id}")
        return PricingResolutionResponse(success=not errors, results=results, errors=errors)

    async def _resolve_line(
        self,
        organization_id: str,
        rate_card: RateCard,
        items: List[RateCardItem],
        line: LineItem,
        can_override_price: bool,
        on_date: date,
    ):
        try:
            if line.unit_price is not None:
                if can_override_price:
                    return self._explicit_result(line)
                # Le prix explicite est ignoré, pas rejeté
                logger.warning(
                    f"[RateCardResolver] Ligne {line.line_number}: prix explicite {line.unit_price} ignoré "
                    f"(surcharge non autorisée), résolution via la grille"
                )

            rate_item = await self._match_rate_item(organization_id, rate_card, items, line, on_date)
            return self._rate_card_result(rate_card, rate_item, line)
        except NoMatchingRateError as e:
            logger.debug(f"[RateCardResolver] {e.message}")
            return PricingResolutionError(line_number=line.line_number, description=line.description, reason=e.reason)
        except RateCardRepositoryError as e:
            logger.error(f"[RateCardResolver] Erreur catalogue ligne {line.line_number}: {e.message}", exc_info=True)
            return PricingResolutionError(
                line_number=line.line_number,
                description=line.description,
                reason=f"Error resolving pricing: {e.message}",
            )

    async def _match_rate_item(
        self,
        organization_id: str,
        rate_card: RateCard,
        items: List[RateCardItem],
        line: LineItem,
        on_date: date,
    ) -> RateCardItem:
        if line.item_code:
            by_code = await self.get_rate_card_item_by_code(organization_id, rate_card.id, line.item_code, on_date)
            if by_code is not None:
                return by_code
            match = find_item_by_description(items, line.description, self.match_threshold, line.service_category_id)
            if match is None:
                raise NoMatchingRateError(line.line_number, line.description, NO_MATCH_ITEM_CODE_OR_DESCRIPTION)
            return match

        if line.service_category_id:
            match = find_item_by_description(items, line.description, self.match_threshold, line.service_category_id)
            if match is None:
                match = find_first_item_in_category(items, line.service_category_id)
            if match is None:
                raise NoMatchingRateError(line.line_number, line.description, NO_MATCH_SERVICE_CATEGORY)
            return match

        match = find_item_by_description(items, line.description, self.match_threshold)
        if match is None:
            raise NoMatchingRateError(line.line_number, line.description, NO_MATCH_DESCRIPTION)
        return match

    def _explicit_result(self, line: LineItem) -> PricingResolutionResult:
        if line.is_tax_exempt:
            tax_rate = Decimal("0")
        elif line.tax_rate is not None:
            tax_rate = line.tax_rate
        else:
            tax_rate = self.standard_tax_rate
        return PricingResolutionResult(
            line_number=line.line_number,
            unit_price=line.unit_price,
            tax_rate=tax_rate,
            unit=line.unit or self.default_unit,
            source=PricingSource.EXPLICIT,
            service_category_id=line.service_category_id,
            item_code=line.item_code,
        )

    def _rate_card_result(self, rate_card: RateCard, rate_item: RateCardItem, line: LineItem) -> PricingResolutionResult:
        tax_rate = Decimal("0") if rate_item.tax_class is TaxClass.EXEMPT else self.standard_tax_rate
        return PricingResolutionResult(
            line_number=line.line_number,
            unit_price=rate_item.base_rate,
            tax_rate=tax_rate,
            unit=line.unit or rate_item.unit or self.default_unit,
            source=PricingSource.RATE_CARD,
            rate_card_id=rate_card.id,
            rate_card_item_id=rate_item.id,
            service_category_id=line.service_category_id or rate_item.service_category_id,
            item_code=rate_item.item_code or line.item_code,
        )
