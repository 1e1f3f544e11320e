from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from quote_pricing.pricing.domain.entities import MoneyAmount

# Entités du Domaine "Rate Cards"
# Le catalogue appartient à un système externe : le moteur ne fait que le lire.


class TaxClass(str, Enum):
    STANDARD = "standard"
    EXEMPT = "exempt"


class PricingSource(str, Enum):
    EXPLICIT = "explicit"
    RATE_CARD = "rate_card"


class RateCard(BaseModel):
    id: str
    organization_id: str
    name: str
    currency: str = "NZD"
    effective_from: date
    effective_until: Optional[date] = None
    is_active: bool = True
    is_default: bool = False

    model_config = ConfigDict(frozen=True)

    def is_effective_on(self, on_date: date) -> bool:
        if not self.is_active or self.effective_from > on_date:
            return False
        return self.effective_until is None or on_date <= self.effective_until


class RateCardItem(BaseModel):
    id: str
    rate_card_id: str
    service_category_id: Optional[str] = None
    item_code: Optional[str] = None
    description: Optional[str] = None
    unit: str
    base_rate: MoneyAmount
    tax_class: TaxClass = TaxClass.STANDARD
    effective_from: date
    effective_until: Optional[date] = None
    is_active: bool = True

    model_config = ConfigDict(frozen=True)

    def is_effective_on(self, on_date: date) -> bool:
        if not self.is_active or self.effective_from > on_date:
            return False
        return self.effective_until is None or on_date <= self.effective_until


class PricingResolutionResult(BaseModel):
    line_number: Optional[int] = None
    unit_price: MoneyAmount
    tax_rate: Decimal
    unit: str
    source: PricingSource
    rate_card_id: Optional[str] = None
    rate_card_item_id: Optional[str] = None
    service_category_id: Optional[str] = None
    item_code: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class PricingResolutionError(BaseModel):
    line_number: Optional[int] = None
    description: str
    reason: str

    model_config = ConfigDict(frozen=True)


class PricingResolutionResponse(BaseModel):
    success: bool
    results: List[PricingResolutionResult] = []
    errors: List[PricingResolutionError] = []

    model_config = ConfigDict(frozen=True)

    def result_for(self, line_number: int) -> Optional[PricingResolutionResult]:
        return next((r for r in self.results if r.line_number == line_number), None)
