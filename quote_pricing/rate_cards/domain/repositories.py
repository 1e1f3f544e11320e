from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional

from .entities import RateCard, RateCardItem


class AbstractRateCardRepository(ABC):
    """Interface abstraite (lecture seule) du catalogue des grilles tarifaires."""

    @abstractmethod
    async def get_active_rate_card(self, organization_id: str, on_date: date) -> Optional[RateCard]:
        """Grille active et en vigueur à la date donnée (par défaut d'abord, puis la plus récente)."""
        raise NotImplementedError

    @abstractmethod
    async def get_rate_card_item_by_code(
        self, rate_card_id: str, item_code: str, on_date: date
    ) -> Optional[RateCardItem]:
        """Ligne de grille par code article (SKU), en vigueur à la date donnée."""
        raise NotImplementedError

    @abstractmethod
    async def get_rate_card_items(self, rate_card_id: str) -> List[RateCardItem]:
        """Toutes les lignes d'une grille, dans un ordre stable."""
        raise NotImplementedError
