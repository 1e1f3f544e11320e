from decimal import Decimal
from typing import Dict, Sequence

from quote_pricing.core.exceptions import CurrencyMismatchError, EmptyInputError, ValidationError
from quote_pricing.pricing.domain.discounts import calculate_discount
from quote_pricing.pricing.domain.entities import (
    LineItem,
    LineItemCalculation,
    LineItemsResult,
    LineItemsSummary,
    MoneyAmount,
)
from quote_pricing.pricing.domain.money import (
    calculate_percentage,
    format_money,
    multiply_money,
    round_to_currency,
    sum_money,
    zero_money,
)
from quote_pricing.pricing.domain.taxes import DEFAULT_GST_RATE, MAX_TAX_RATE


def effective_tax_rate(line_item: LineItem) -> Decimal:
    """Taux appliqué à la ligne : 0 si exonérée, sinon son taux ou le taux GST par défaut."""
    if line_item.is_tax_exempt:
        return Decimal("0")
    return line_item.tax_rate if line_item.tax_rate is not None else DEFAULT_GST_RATE


def _validate(line_item: LineItem) -> MoneyAmount:
    if line_item.unit_price is None:
        raise ValidationError(
            f"Unit price is required to calculate line '{line_item.description}'", field="unit_price"
        )
    if line_item.quantity <= 0:
        raise ValidationError(f"Quantity must be positive: {line_item.quantity}", field="quantity")
    if line_item.unit_price.amount < 0:
        raise ValidationError(f"Unit price cannot be negative: {line_item.unit_price.amount}", field="unit_price")
    if line_item.tax_rate is not None and not (Decimal("0") <= line_item.tax_rate <= MAX_TAX_RATE):
        raise ValidationError(f"Tax rate must be between 0 and 100: {line_item.tax_rate}", field="tax_rate")
    return line_item.unit_price


def calculate_line_item(line_item: LineItem) -> LineItemCalculation:
    """Calcule une ligne de devis.

    subtotal = round(quantité * prix unitaire), puis remise de ligne éventuelle,
    puis taxe sur le montant remisé. Chaque montant est arrondi une seule fois,
    ici, et l'agrégation additionne ces valeurs arrondies.

    Raises:
        ValidationError: prix absent ou négatif, quantité <= 0, taux hors [0, 100].
    """
    unit_price = _validate(line_item)
    subtotal = multiply_money(unit_price, line_item.quantity)

    if line_item.discount_type is not None and line_item.discount_value is not None:
        discount = calculate_discount(subtotal, line_item.discount_type, line_item.discount_value)
        discount_amount = discount.discount_amount
        taxable_amount = discount.final_amount
    else:
        discount_amount = zero_money(subtotal.currency)
        taxable_amount = subtotal

    tax_amount = calculate_percentage(taxable_amount, effective_tax_rate(line_item))
    total_amount = MoneyAmount(
        amount=round_to_currency(taxable_amount.amount + tax_amount.amount),
        currency=subtotal.currency,
    )

    return LineItemCalculation(
        line_item=line_item,
        quantity=line_item.quantity,
        unit_price=unit_price,
        subtotal=subtotal,
        discount_amount=discount_amount,
        taxable_amount=taxable_amount,
        tax_amount=tax_amount,
        total_amount=total_amount,
    )


def _rounded_sum(amounts: Sequence[MoneyAmount]) -> MoneyAmount:
    total = sum_money(amounts)
    return MoneyAmount(amount=round_to_currency(total.amount), currency=total.currency)


def calculate_line_items(line_items: Sequence[LineItem]) -> LineItemsResult:
    """Calcule toutes les lignes d'un devis et leur récapitulatif."""
    if not line_items:
        raise EmptyInputError("Cannot calculate an empty list of line items")

    calculations = [calculate_line_item(item) for item in line_items]

    currency = calculations[0].unit_price.currency
    for calculation in calculations:
        if calculation.unit_price.currency != currency:
            raise CurrencyMismatchError(currency, calculation.unit_price.currency, "calculate line items in")

    summary = LineItemsSummary(
        total_quantity=sum((c.quantity for c in calculations), Decimal("0")),
        subtotal=_rounded_sum([c.subtotal for c in calculations]),
        total_discount=_rounded_sum([c.discount_amount for c in calculations]),
        total_taxable=_rounded_sum([c.taxable_amount for c in calculations]),
        total_tax=_rounded_sum([c.tax_amount for c in calculations]),
        total_amount=_rounded_sum([c.total_amount for c in calculations]),
    )
    return LineItemsResult(calculations=calculations, summary=summary)


def validate_line_item(line_item: LineItem) -> bool:
    try:
        calculate_line_item(line_item)
    except ValidationError:
        return False
    return True


def get_line_item_breakdown(calculation: LineItemCalculation) -> Dict[str, str]:
    """Chaînes d'affichage d'une ligne ; '-' pour une remise ou une taxe nulle."""
    return {
        "quantity": f"{calculation.quantity.normalize():f}",
        "unit_price": format_money(calculation.unit_price),
        "subtotal": format_money(calculation.subtotal),
        "discount": "-" if calculation.discount_amount.amount.is_zero() else format_money(calculation.discount_amount),
        "taxable": format_money(calculation.taxable_amount),
        "tax": "-" if calculation.tax_amount.amount.is_zero() else format_money(calculation.tax_amount),
        "total": format_money(calculation.total_amount),
    }
