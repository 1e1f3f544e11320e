import asyncio
import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from quote_pricing.core.exceptions import RateCardRepositoryError
from quote_pricing.pricing.domain.entities import MoneyAmount
from quote_pricing.rate_cards.domain.entities import RateCard, RateCardItem, TaxClass
from quote_pricing.rate_cards.domain.repositories import AbstractRateCardRepository

from .orm_models import RateCardDB, RateCardItemDB

logger = logging.getLogger(__name__)


def _to_rate_card(row: RateCardDB) -> RateCard:
    return RateCard(
        id=row.id,
        organization_id=row.organization_id,
        name=row.name,
        currency=row.currency,
        effective_from=row.effective_from,
        effective_until=row.effective_until,
        is_active=row.is_active,
        is_default=row.is_default,
    )


def _to_rate_card_item(row: RateCardItemDB) -> RateCardItem:
    return RateCardItem(
        id=row.id,
        rate_card_id=row.rate_card_id,
        service_category_id=row.service_category_id,
        item_code=row.item_code,
        description=row.description,
        unit=row.unit,
        base_rate=MoneyAmount(amount=row.base_rate, currency=row.currency),
        tax_class=TaxClass(row.tax_class),
        effective_from=row.effective_from,
        effective_until=row.effective_until,
        is_active=row.is_active,
    )


class SQLAlchemyRateCardRepository(AbstractRateCardRepository):
    """Implémentation SQLAlchemy (lecture seule) du catalogue des grilles tarifaires."""

    def __init__(self, session: AsyncSession):
        self.session = session
        # Une AsyncSession n'accepte pas de requêtes concurrentes (résolution des lignes via asyncio.gather)
        self._lock = asyncio.Lock()

    async def _execute(self, stmt):
        async with self._lock:
            return await self.session.execute(stmt)

    async def get_active_rate_card(self, organization_id: str, on_date: date) -> Optional[RateCard]:
        stmt = (
            select(RateCardDB)
            .where(RateCardDB.organization_id == organization_id)
            .where(RateCardDB.is_active.is_(True))
            .where(RateCardDB.effective_from <= on_date)
            .where(or_(RateCardDB.effective_until.is_(None), RateCardDB.effective_until >= on_date))
            .order_by(RateCardDB.is_default.desc(), RateCardDB.effective_from.desc())
            .limit(1)
        )
        try:
            result = await self._execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Erreur lecture grille active pour org {organization_id}: {e}", exc_info=True)
            raise RateCardRepositoryError(f"active rate card for organization {organization_id}", e)

        row = result.scalars().first()
        if row is None:
            logger.debug(f"Aucune grille active trouvée pour org {organization_id} au {on_date.isoformat()}.")
            return None
        return _to_rate_card(row)

    async def get_rate_card_item_by_code(
        self, rate_card_id: str, item_code: str, on_date: date
    ) -> Optional[RateCardItem]:
        stmt = (
            select(RateCardItemDB)
            .where(RateCardItemDB.rate_card_id == rate_card_id)
            .where(RateCardItemDB.item_code == item_code)
            .where(RateCardItemDB.is_active.is_(True))
            .where(RateCardItemDB.effective_from <= on_date)
            .where(or_(RateCardItemDB.effective_until.is_(None), RateCardItemDB.effective_until >= on_date))
            .order_by(RateCardItemDB.effective_from.desc())
        )
        try:
            result = await self._execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Erreur lecture ligne '{item_code}' de la grille {rate_card_id}: {e}", exc_info=True)
            raise RateCardRepositoryError(f"rate card item {item_code}", e)

        row = result.scalars().first()
        return _to_rate_card_item(row) if row is not None else None

    async def get_rate_card_items(self, rate_card_id: str) -> List[RateCardItem]:
        stmt = (
            select(RateCardItemDB)
            .where(RateCardItemDB.rate_card_id == rate_card_id)
            .where(RateCardItemDB.is_active.is_(True))
            .order_by(RateCardItemDB.id)
        )
        try:
            result = await self._execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Erreur lecture des lignes de la grille {rate_card_id}: {e}", exc_info=True)
            raise RateCardRepositoryError(f"items of rate card {rate_card_id}", e)

        return [_to_rate_card_item(row) for row in result.scalars().all()]
