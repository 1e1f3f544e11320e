import logging
from datetime import date
from typing import Dict, Iterable, List, Optional

from quote_pricing.rate_cards.domain.entities import RateCard, RateCardItem
from quote_pricing.rate_cards.domain.matching import select_active_rate_card
from quote_pricing.rate_cards.domain.repositories import AbstractRateCardRepository

logger = logging.getLogger(__name__)


class InMemoryRateCardRepository(AbstractRateCardRepository):
    """Catalogue en mémoire : tests et intégrations sans base de données."""

    def __init__(self, rate_cards: Iterable[RateCard] = (), items: Iterable[RateCardItem] = ()):
        self._rate_cards: Dict[str, RateCard] = {card.id: card for card in rate_cards}
        self._items: List[RateCardItem] = list(items)

    def add_rate_card(self, rate_card: RateCard) -> None:
        self._rate_cards[rate_card.id] = rate_card

    def add_item(self, item: RateCardItem) -> None:
        self._items.append(item)

    async def get_active_rate_card(self, organization_id: str, on_date: date) -> Optional[RateCard]:
        return select_active_rate_card(self._rate_cards.values(), organization_id, on_date)

    async def get_rate_card_item_by_code(
        self, rate_card_id: str, item_code: str, on_date: date
    ) -> Optional[RateCardItem]:
        matches = [
            item for item in self._items
            if item.rate_card_id == rate_card_id and item.item_code == item_code and item.is_effective_on(on_date)
        ]
        if not matches:
            logger.debug(f"Code article '{item_code}' absent de la grille {rate_card_id} au {on_date.isoformat()}.")
            return None
        return max(matches, key=lambda item: item.effective_from)

    async def get_rate_card_items(self, rate_card_id: str) -> List[RateCardItem]:
        return [item for item in self._items if item.rate_card_id == rate_card_id and item.is_active]
