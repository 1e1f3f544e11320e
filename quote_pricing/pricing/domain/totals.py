"""Agrégation des lignes calculées en totaux de devis.

Les lignes incluent déjà leur taxe : la remise de devis s'applique donc sur le
total TTC des lignes, et le grand total est ce montant remisé.
"""

from decimal import Decimal
from typing import Dict, List, NamedTuple, Optional, Sequence

from quote_pricing.core.exceptions import CurrencyMismatchError, EmptyInputError
from quote_pricing.pricing.domain.discounts import apply_multiple_discounts, calculate_discount
from quote_pricing.pricing.domain.entities import (
    LineItemCalculation,
    MoneyAmount,
    QuoteDiscount,
    QuoteTotals,
    QuoteTotalsWithBreakdown,
    TaxEntry,
)
from quote_pricing.pricing.domain.money import round_to_currency, sum_money, zero_money
from quote_pricing.pricing.domain.taxes import DEFAULT_GST_RATE, calculate_tax_breakdown


class _LineAggregate(NamedTuple):
    subtotal: MoneyAmount
    line_discount: MoneyAmount
    tax: MoneyAmount
    line_total: MoneyAmount


def _aggregate(line_calculations: Sequence[LineItemCalculation]) -> _LineAggregate:
    if not line_calculations:
        raise EmptyInputError("Cannot calculate totals for empty line calculations")

    currency = line_calculations[0].total_amount.currency
    for calculation in line_calculations:
        if calculation.total_amount.currency != currency:
            raise CurrencyMismatchError(currency, calculation.total_amount.currency, "calculate totals for")

    return _LineAggregate(
        subtotal=sum_money([c.subtotal for c in line_calculations]),
        line_discount=sum_money([c.discount_amount for c in line_calculations]),
        tax=sum_money([c.tax_amount for c in line_calculations]),
        line_total=sum_money([c.total_amount for c in line_calculations]),
    )


def _build_totals(aggregate: _LineAggregate, discount_amount: MoneyAmount, taxable_amount: MoneyAmount) -> QuoteTotals:
    currency = aggregate.line_total.currency
    return QuoteTotals(
        subtotal=aggregate.subtotal,
        discount_amount=discount_amount,
        taxable_amount=taxable_amount,
        tax_amount=aggregate.tax,
        grand_total=MoneyAmount(amount=round_to_currency(taxable_amount.amount), currency=currency),
        currency=currency,
        line_discount_amount=aggregate.line_discount,
    )


def calculate_quote_totals(
    line_calculations: Sequence[LineItemCalculation],
    quote_discount: Optional[QuoteDiscount] = None,
) -> QuoteTotals:
    """Totaux du devis avec une remise de devis optionnelle.

    Raises:
        EmptyInputError: aucune ligne.
        CurrencyMismatchError: lignes dans des devises différentes.
    """
    aggregate = _aggregate(line_calculations)

    if quote_discount is not None:
        discount = calculate_discount(aggregate.line_total, quote_discount.type, quote_discount.value)
        return _build_totals(aggregate, discount.discount_amount, discount.final_amount)

    return _build_totals(aggregate, zero_money(aggregate.line_total.currency), aggregate.line_total)


def calculate_quote_totals_with_multiple_discounts(
    line_calculations: Sequence[LineItemCalculation],
    quote_discounts: Sequence[QuoteDiscount],
) -> QuoteTotals:
    """Totaux avec plusieurs remises : pourcentages d'abord, montants fixes ensuite."""
    aggregate = _aggregate(line_calculations)
    combined = apply_multiple_discounts(aggregate.line_total, quote_discounts)
    return _build_totals(aggregate, combined.discount_amount, combined.final_amount)


def calculate_quote_totals_with_breakdown(
    line_calculations: Sequence[LineItemCalculation],
    quote_discount: Optional[QuoteDiscount] = None,
) -> QuoteTotalsWithBreakdown:
    totals = calculate_quote_totals(line_calculations, quote_discount)
    return with_tax_breakdown(totals, line_calculations)


def with_tax_breakdown(totals: QuoteTotals, line_calculations: Sequence[LineItemCalculation]) -> QuoteTotalsWithBreakdown:
    """Ajoute la ventilation de taxe (montants taxables des lignes, avant remise de devis)."""
    entries: List[TaxEntry] = [
        TaxEntry(
            amount=c.taxable_amount,
            tax_rate=c.line_item.tax_rate if c.line_item.tax_rate is not None else DEFAULT_GST_RATE,
            is_tax_exempt=bool(c.line_item.is_tax_exempt),
        )
        for c in line_calculations
    ]
    return QuoteTotalsWithBreakdown(**dict(totals), tax_breakdown=calculate_tax_breakdown(entries))


def validate_quote_totals(totals: QuoteTotals) -> bool:
    """Vérifie la cohérence des totaux.

    Deux formes sont acceptées :
    - hors taxe : taxable == net - remise et grand total == taxable + taxe ;
    - TTC (celle produite par les calculs ci-dessus) : taxable == net + taxe - remise
      et grand total == taxable.
    Le net est le sous-total diminué des remises de ligne.
    """
    currency = totals.currency
    amounts = [totals.subtotal, totals.discount_amount, totals.taxable_amount, totals.tax_amount, totals.grand_total]
    if totals.line_discount_amount is not None:
        amounts.append(totals.line_discount_amount)
    if any(amount.currency != currency for amount in amounts):
        return False

    line_discount = totals.line_discount_amount.amount if totals.line_discount_amount is not None else Decimal("0")
    net = totals.subtotal.amount - line_discount
    discount = totals.discount_amount.amount
    taxable = totals.taxable_amount.amount
    tax = totals.tax_amount.amount
    grand_total = totals.grand_total.amount

    pre_tax = discount <= net and taxable == net - discount and grand_total == taxable + tax

    basis = net + tax
    tax_inclusive = discount <= basis and taxable == basis - discount and grand_total == taxable

    return pre_tax or tax_inclusive


def get_totals_breakdown(totals: QuoteTotals) -> Dict[str, str]:
    def fmt(amount: MoneyAmount) -> str:
        return f"{totals.currency} {round_to_currency(amount.amount):f}"

    return {
        "subtotal": fmt(totals.subtotal),
        "discount": "-" if totals.discount_amount.amount.is_zero() else fmt(totals.discount_amount),
        "taxable": fmt(totals.taxable_amount),
        "tax": "-" if totals.tax_amount.amount.is_zero() else fmt(totals.tax_amount),
        "grand_total": fmt(totals.grand_total),
    }


def calculate_totals_percentages(totals: QuoteTotals) -> Dict[str, Decimal]:
    """Remise et taxe en pourcentage du sous-total (0 si le sous-total est nul)."""
    if totals.subtotal.amount.is_zero():
        return {"discount_percentage": Decimal("0.00"), "tax_percentage": Decimal("0.00")}

    return {
        "discount_percentage": round_to_currency(totals.discount_amount.amount / totals.subtotal.amount * 100),
        "tax_percentage": round_to_currency(totals.tax_amount.amount / totals.subtotal.amount * 100),
    }
