"""Règles de sélection dans le catalogue : grille active, lignes en vigueur, rapprochement par description."""

import re
from datetime import date
from typing import FrozenSet, Iterable, Optional, Sequence

from .entities import RateCard, RateCardItem

_TOKEN_PATTERN = re.compile(r"[a-z0-9]+")


def select_active_rate_card(rate_cards: Iterable[RateCard], organization_id: str, on_date: date) -> Optional[RateCard]:
    """Grille de l'organisation en vigueur à `on_date` : la grille par défaut d'abord, puis le effective_from le plus récent."""
    candidates = [
        card for card in rate_cards
        if card.organization_id == organization_id and card.is_effective_on(on_date)
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda card: (card.is_default, card.effective_from))


def effective_items(items: Iterable[RateCardItem], on_date: date) -> list:
    return [item for item in items if item.is_effective_on(on_date)]


def tokenize(text: Optional[str]) -> FrozenSet[str]:
    if not text:
        return frozenset()
    return frozenset(_TOKEN_PATTERN.findall(text.lower()))


def description_score(line_description: str, item_description: Optional[str]) -> float:
    """Part des mots de la description de la ligne de grille présents dans celle de la ligne de devis."""
    item_tokens = tokenize(item_description)
    if not item_tokens:
        return 0.0
    line_tokens = tokenize(line_description)
    return len(item_tokens & line_tokens) / len(item_tokens)


def find_item_by_description(
    items: Sequence[RateCardItem],
    description: str,
    threshold: float,
    service_category_id: Optional[str] = None,
) -> Optional[RateCardItem]:
    """Meilleure correspondance au-dessus du seuil ; à score égal, la première ligne gagne."""
    best: Optional[RateCardItem] = None
    best_score = 0.0
    for item in items:
        if service_category_id is not None and item.service_category_id != service_category_id:
            continue
        score = description_score(description, item.description)
        if score >= threshold and score > best_score:
            best, best_score = item, score
    return best


def find_first_item_in_category(items: Sequence[RateCardItem], service_category_id: str) -> Optional[RateCardItem]:
    return next((item for item in items if item.service_category_id == service_category_id), None)
