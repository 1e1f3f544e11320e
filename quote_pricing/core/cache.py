from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")


class AbstractCacheProvider(ABC):
    """Interface abstraite d'un cache clé/valeur asynchrone avec expiration."""

    @abstractmethod
    async def get_or_set(self, key: str, ttl: int, producer: Callable[[], Awaitable[T]]) -> T:
        """Retourne la valeur en cache ou appelle `producer` et la stocke pour `ttl` secondes.

        Un résultat None n'est pas mis en cache.
        """
        raise NotImplementedError

    @abstractmethod
    async def bust(self, key_or_pattern: str) -> int:
        """Invalide une clé ou toutes les clés correspondant à un motif glob (`*`). Retourne le nombre supprimé."""
        raise NotImplementedError


class CacheKeyBuilder:
    """Construit les clés de cache des grilles tarifaires, toujours préfixées par l'organisation."""

    def __init__(self, prefix: str = "pricing"):
        self.prefix = prefix

    def _key(self, organization_id: Any, *parts: Any) -> str:
        return ":".join([self.prefix, str(organization_id), *(str(p) for p in parts)])

    def active_rate_card(self, organization_id: Any, on_date: Any) -> str:
        return self._key(organization_id, "ratecard", "active", on_date)

    def rate_card_items(self, organization_id: Any, rate_card_id: Any) -> str:
        return self._key(organization_id, "rateitem", rate_card_id)

    def rate_card_item_by_code(self, organization_id: Any, rate_card_id: Any, item_code: str, on_date: Any) -> str:
        return self._key(organization_id, "rateitem", rate_card_id, "code", item_code, on_date)

    def active_rate_card_pattern(self, organization_id: Any) -> str:
        return self._key(organization_id, "ratecard", "*")

    def rate_card_items_pattern(self, organization_id: Any, rate_card_id: Any) -> str:
        return self._key(organization_id, "rateitem", rate_card_id, "*")

    def organization_pattern(self, organization_id: Any) -> str:
        return self._key(organization_id, "*")
