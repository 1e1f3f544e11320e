from decimal import Decimal
from typing import Dict, List, Sequence

from quote_pricing.core.exceptions import CurrencyMismatchError, ValidationError
from quote_pricing.pricing.domain.entities import MoneyAmount, TaxBreakdown, TaxCalculation, TaxEntry
from quote_pricing.pricing.domain.money import (
    NumberLike,
    calculate_percentage,
    create_decimal,
    round_to_currency,
    sum_money,
    zero_money,
)

# Taux de TPS néo-zélandaise par défaut (15%)
DEFAULT_GST_RATE = Decimal("15")
MAX_TAX_RATE = Decimal("100")


def validate_tax_rate(rate: NumberLike) -> bool:
    try:
        decimal_rate = create_decimal(rate)
    except ValidationError:
        return False
    return Decimal("0") <= decimal_rate <= MAX_TAX_RATE


def _checked_rate(rate: NumberLike) -> Decimal:
    decimal_rate = create_decimal(rate)
    if decimal_rate < 0:
        raise ValidationError(f"Tax rate cannot be negative: {rate}", field="tax_rate")
    if decimal_rate > MAX_TAX_RATE:
        raise ValidationError(f"Tax rate cannot exceed {MAX_TAX_RATE}%: {rate}", field="tax_rate")
    return decimal_rate


def calculate_tax(taxable_amount: MoneyAmount, tax_rate: NumberLike) -> TaxCalculation:
    rate = _checked_rate(tax_rate)
    tax_amount = calculate_percentage(taxable_amount, rate)
    return TaxCalculation(
        taxable_amount=taxable_amount,
        tax_rate=rate,
        tax_amount=tax_amount,
        total_amount=MoneyAmount(
            amount=round_to_currency(taxable_amount.amount + tax_amount.amount),
            currency=taxable_amount.currency,
        ),
    )


def calculate_tax_breakdown(entries: Sequence[TaxEntry]) -> List[TaxBreakdown]:
    """Regroupe les montants par taux de taxe effectif.

    Les entrées exonérées sont rangées sous le taux 0 quel que soit leur taux nominal.
    Chaque groupe est taxé une seule fois sur la somme exacte de ses montants.
    Les groupes sont triés par taux croissant.
    """
    if not entries:
        return []

    currency = entries[0].amount.currency
    # Decimal("15") et Decimal("15.0") ont le même hash : un seul groupe
    groups: Dict[Decimal, List[MoneyAmount]] = {}
    for entry in entries:
        if entry.amount.currency != currency:
            raise CurrencyMismatchError(currency, entry.amount.currency, "calculate tax for")
        rate = Decimal("0") if entry.is_tax_exempt else _checked_rate(entry.tax_rate)
        groups.setdefault(rate, []).append(entry.amount)

    breakdown = []
    for rate in sorted(groups):
        taxable = sum_money(groups[rate])
        breakdown.append(
            TaxBreakdown(
                rate=rate,
                taxable_amount=taxable,
                tax_amount=calculate_percentage(taxable, rate),
            )
        )
    return breakdown


def calculate_total_tax_from_breakdown(breakdown: Sequence[TaxBreakdown], currency: str = "NZD") -> MoneyAmount:
    if not breakdown:
        return zero_money(currency)
    total = sum_money([item.tax_amount for item in breakdown])
    return MoneyAmount(amount=round_to_currency(total.amount), currency=total.currency)


def extract_tax_from_inclusive(total_amount: MoneyAmount, tax_rate: NumberLike) -> TaxCalculation:
    """Sépare la part de taxe d'un montant TTC : taxable = total / (1 + taux/100)."""
    rate = _checked_rate(tax_rate)
    divisor = Decimal("1") + rate / 100
    taxable = MoneyAmount(amount=round_to_currency(total_amount.amount / divisor), currency=total_amount.currency)
    return TaxCalculation(
        taxable_amount=taxable,
        tax_rate=rate,
        tax_amount=MoneyAmount(
            amount=round_to_currency(total_amount.amount - taxable.amount),
            currency=total_amount.currency,
        ),
        total_amount=total_amount,
    )
