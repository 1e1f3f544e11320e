from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from quote_pricing.config import settings
from quote_pricing.pricing.domain.entities import (
    DiscountType,
    LineItem,
    LineItemCalculation,
    LineItemsSummary,
    MoneyAmount,
    QuoteDiscount,
    QuoteTotalsWithBreakdown,
)
from quote_pricing.rate_cards.domain.entities import PricingResolutionResult

# --- Schémas d'entrée ---


class LineItemInput(BaseModel):
    line_number: Optional[int] = Field(None, ge=1)
    description: str = Field(..., min_length=1, max_length=500)
    quantity: Decimal = Field(..., gt=0)
    unit_price: Optional[Decimal] = Field(None, ge=0)
    item_code: Optional[str] = Field(None, max_length=100)
    service_category_id: Optional[str] = None
    unit: Optional[str] = Field(None, max_length=50)
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100, description="Taux en pourcentage, ex: 15")
    is_tax_exempt: Optional[bool] = None
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[Decimal] = Field(None, ge=0)

    @field_validator("description")
    @classmethod
    def _description_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Description cannot be blank")
        return value

    @model_validator(mode="after")
    def _percentage_discount_in_range(self) -> "LineItemInput":
        if self.discount_type is DiscountType.PERCENTAGE and self.discount_value is not None and self.discount_value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return self

    def to_line_item(self, currency: str, line_number: int) -> LineItem:
        return LineItem(
            line_number=self.line_number or line_number,
            description=self.description,
            quantity=self.quantity,
            unit_price=MoneyAmount(amount=self.unit_price, currency=currency) if self.unit_price is not None else None,
            item_code=self.item_code,
            service_category_id=self.service_category_id,
            unit=self.unit,
            tax_rate=self.tax_rate,
            is_tax_exempt=self.is_tax_exempt,
            discount_type=self.discount_type,
            discount_value=self.discount_value,
        )


class QuoteDiscountInput(BaseModel):
    type: DiscountType
    value: Decimal = Field(..., ge=0)
    description: Optional[str] = Field(None, max_length=255)

    @model_validator(mode="after")
    def _percentage_in_range(self) -> "QuoteDiscountInput":
        if self.type is DiscountType.PERCENTAGE and self.value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return self

    def to_domain(self) -> QuoteDiscount:
        return QuoteDiscount(type=self.type, value=self.value, description=self.description)


class QuoteInputBase(BaseModel):
    currency: str = Field(default_factory=lambda: settings.DEFAULT_CURRENCY, min_length=3, max_length=3)
    line_items: List[LineItemInput] = Field(..., min_length=1)
    quote_discount: Optional[QuoteDiscountInput] = None
    quote_discounts: Optional[List[QuoteDiscountInput]] = None

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.upper()

    @model_validator(mode="after")
    def _single_discount_mode(self):
        if self.quote_discount is not None and self.quote_discounts is not None:
            raise ValueError("Provide either quote_discount or quote_discounts, not both")
        return self

    def to_line_items(self) -> List[LineItem]:
        return [item.to_line_item(self.currency, index) for index, item in enumerate(self.line_items, start=1)]


class CalculateQuoteInput(QuoteInputBase):
    """Devis dont chaque ligne porte déjà son prix unitaire."""

    @model_validator(mode="after")
    def _unit_prices_required(self) -> "CalculateQuoteInput":
        missing = [str(item.line_number or index) for index, item in enumerate(self.line_items, start=1) if item.unit_price is None]
        if missing:
            raise ValueError(f"Unit price is required for line(s): {', '.join(missing)}")
        return self


class PriceQuoteInput(QuoteInputBase):
    """Devis à tarifer : les prix unitaires sont résolus via la grille tarifaire."""
    pass


# --- Schémas de sortie ---


class QuoteCalculation(BaseModel):
    currency: str
    line_items: List[LineItemCalculation]
    summary: LineItemsSummary
    totals: QuoteTotalsWithBreakdown


class PricedQuote(BaseModel):
    organization_id: str
    pricing: List[PricingResolutionResult]
    calculation: QuoteCalculation
