"""
Domaine Pricing - Calculs monétaires exacts des devis.

Ce module fournit :
- l'arithmétique monétaire (Decimal, arrondi ROUND_HALF_UP à 2 décimales)
- les remises de ligne et de devis
- la taxe par ligne et la ventilation par taux
- l'agrégation des lignes en totaux de devis
"""

from .entities import (
    DiscountType,
    LineItem,
    LineItemCalculation,
    MoneyAmount,
    QuoteDiscount,
    QuoteTotals,
    QuoteTotalsWithBreakdown,
    TaxBreakdown,
    TaxEntry,
)
from .money import round_to_currency, sum_money
from .discounts import calculate_discount
from .taxes import calculate_tax_breakdown
from .lines import calculate_line_item
from .totals import (
    calculate_quote_totals,
    calculate_quote_totals_with_breakdown,
    calculate_quote_totals_with_multiple_discounts,
    validate_quote_totals,
)

__all__ = [
    "DiscountType",
    "LineItem",
    "LineItemCalculation",
    "MoneyAmount",
    "QuoteDiscount",
    "QuoteTotals",
    "QuoteTotalsWithBreakdown",
    "TaxBreakdown",
    "TaxEntry",
    "round_to_currency",
    "sum_money",
    "calculate_discount",
    "calculate_tax_breakdown",
    "calculate_line_item",
    "calculate_quote_totals",
    "calculate_quote_totals_with_breakdown",
    "calculate_quote_totals_with_multiple_discounts",
    "validate_quote_totals",
]
