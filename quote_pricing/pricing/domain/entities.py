from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Entités du Domaine "Pricing"
# Valeurs immuables : chaque calcul produit de nouvelles instances.
# En mode JSON les montants Decimal sont sérialisés en chaînes, jamais en float.


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"


class MoneyAmount(BaseModel):
    """Montant décimal exact associé à un code devise ISO-4217."""
    amount: Decimal
    currency: str = Field(..., min_length=3, max_length=3)

    model_config = ConfigDict(frozen=True)

    @field_validator("currency")
    @classmethod
    def _normalize_currency(cls, value: str) -> str:
        if not value.isalpha():
            raise ValueError(f"Invalid currency code: {value!r}")
        return value.upper()

    def __str__(self) -> str:
        return f"{self.currency} {self.amount:f}"


class LineItem(BaseModel):
    line_number: Optional[int] = None
    description: str = ""
    quantity: Decimal
    unit_price: Optional[MoneyAmount] = None  # absent tant que la grille tarifaire n'a pas été résolue
    item_code: Optional[str] = None
    service_category_id: Optional[str] = None
    unit: Optional[str] = None
    tax_rate: Optional[Decimal] = None  # pourcentage, ex: 15 pour 15%
    is_tax_exempt: Optional[bool] = None
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[Decimal] = None

    model_config = ConfigDict(frozen=True)


class LineItemCalculation(BaseModel):
    line_item: LineItem
    quantity: Decimal
    unit_price: MoneyAmount
    subtotal: MoneyAmount
    discount_amount: MoneyAmount
    taxable_amount: MoneyAmount
    tax_amount: MoneyAmount
    total_amount: MoneyAmount

    model_config = ConfigDict(frozen=True)


class LineItemsSummary(BaseModel):
    total_quantity: Decimal
    subtotal: MoneyAmount
    total_discount: MoneyAmount
    total_taxable: MoneyAmount
    total_tax: MoneyAmount
    total_amount: MoneyAmount

    model_config = ConfigDict(frozen=True)


class LineItemsResult(BaseModel):
    calculations: List[LineItemCalculation]
    summary: LineItemsSummary

    model_config = ConfigDict(frozen=True)


class DiscountCalculation(BaseModel):
    original_amount: MoneyAmount
    discount_type: DiscountType
    discount_value: Decimal
    discount_amount: MoneyAmount
    final_amount: MoneyAmount

    model_config = ConfigDict(frozen=True)


class TaxEntry(BaseModel):
    amount: MoneyAmount
    tax_rate: Decimal
    is_tax_exempt: bool = False

    model_config = ConfigDict(frozen=True)


class TaxCalculation(BaseModel):
    taxable_amount: MoneyAmount
    tax_rate: Decimal
    tax_amount: MoneyAmount
    total_amount: MoneyAmount

    model_config = ConfigDict(frozen=True)


class TaxBreakdown(BaseModel):
    rate: Decimal
    taxable_amount: MoneyAmount
    tax_amount: MoneyAmount

    model_config = ConfigDict(frozen=True)


class QuoteDiscount(BaseModel):
    type: DiscountType
    value: Decimal
    description: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class QuoteTotals(BaseModel):
    subtotal: MoneyAmount
    discount_amount: MoneyAmount
    taxable_amount: MoneyAmount
    tax_amount: MoneyAmount
    grand_total: MoneyAmount
    currency: str
    # Somme des remises de ligne, déjà déduites avant l'agrégation
    line_discount_amount: Optional[MoneyAmount] = None

    model_config = ConfigDict(frozen=True)


class QuoteTotalsWithBreakdown(QuoteTotals):
    tax_breakdown: List[TaxBreakdown] = []
