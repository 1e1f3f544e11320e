from decimal import Decimal
from typing import Optional, Sequence, Union

from quote_pricing.core.exceptions import ValidationError
from quote_pricing.pricing.domain.entities import DiscountCalculation, DiscountType, MoneyAmount, QuoteDiscount
from quote_pricing.pricing.domain.money import (
    NumberLike,
    calculate_percentage,
    create_decimal,
    ensure_same_currency,
    format_money,
    round_to_currency,
)

MAX_PERCENTAGE_DISCOUNT = Decimal("100")


def _coerce_discount_type(discount_type: Union[DiscountType, str]) -> DiscountType:
    try:
        return DiscountType(discount_type)
    except ValueError:
        raise ValidationError(f"Invalid discount type: {discount_type}", field="discount_type")


def calculate_discount(
    original_amount: MoneyAmount,
    discount_type: Union[DiscountType, str],
    discount_value: NumberLike,
) -> DiscountCalculation:
    """Calcule une remise en pourcentage ou en montant fixe sur un montant.

    - percentage : round(amount * value / 100), value dans [0, 100].
    - fixed_amount : min(value, amount), le montant final ne passe jamais sous zéro.

    Raises:
        ValidationError: valeur négative, pourcentage hors bornes ou type inconnu.
    """
    kind = _coerce_discount_type(discount_type)
    value = create_decimal(discount_value)

    if value < 0:
        raise ValidationError(f"Discount value cannot be negative: {discount_value}", field="discount_value")

    if kind is DiscountType.PERCENTAGE:
        if value > MAX_PERCENTAGE_DISCOUNT:
            raise ValidationError(
                f"Percentage discount cannot exceed {MAX_PERCENTAGE_DISCOUNT}%: {discount_value}",
                field="discount_value",
            )
        discount_amount = calculate_percentage(original_amount, value)
    else:
        capped = min(value, original_amount.amount)
        discount_amount = MoneyAmount(
            amount=round_to_currency(max(capped, Decimal("0"))),
            currency=original_amount.currency,
        )

    final_amount = MoneyAmount(
        amount=round_to_currency(original_amount.amount - discount_amount.amount),
        currency=original_amount.currency,
    )

    return DiscountCalculation(
        original_amount=original_amount,
        discount_type=kind,
        discount_value=value,
        discount_amount=discount_amount,
        final_amount=final_amount,
    )


def apply_multiple_discounts(original_amount: MoneyAmount, discounts: Sequence[QuoteDiscount]) -> DiscountCalculation:
    """Applique plusieurs remises : tous les pourcentages d'abord (en cascade), puis les montants fixes."""
    percentage_discounts = [d for d in discounts if d.type is DiscountType.PERCENTAGE]
    fixed_discounts = [d for d in discounts if d.type is DiscountType.FIXED_AMOUNT]

    current = original_amount
    total_discount = Decimal("0")
    for discount in percentage_discounts + fixed_discounts:
        calculation = calculate_discount(current, discount.type, discount.value)
        total_discount += calculation.discount_amount.amount
        current = calculation.final_amount

    return DiscountCalculation(
        original_amount=original_amount,
        discount_type=DiscountType.PERCENTAGE,  # remise combinée
        discount_value=Decimal("0"),
        discount_amount=MoneyAmount(amount=round_to_currency(total_discount), currency=original_amount.currency),
        final_amount=current,
    )


def validate_discount(
    discount_type: Union[DiscountType, str],
    discount_value: NumberLike,
    original_amount: Optional[MoneyAmount] = None,
) -> bool:
    """Indique si une remise est applicable, sans lever d'exception."""
    try:
        kind = _coerce_discount_type(discount_type)
        value = create_decimal(discount_value)
    except ValidationError:
        return False

    if value < 0:
        return False
    if kind is DiscountType.PERCENTAGE:
        return value <= MAX_PERCENTAGE_DISCOUNT
    if original_amount is None:
        return True
    return value <= original_amount.amount


def calculate_effective_discount_percentage(original_amount: MoneyAmount, final_amount: MoneyAmount) -> Decimal:
    ensure_same_currency(original_amount, final_amount, "compare")
    if original_amount.amount.is_zero():
        return Decimal("0.00")
    discount = original_amount.amount - final_amount.amount
    return round_to_currency(discount / original_amount.amount * 100)


def format_discount(discount: QuoteDiscount, currency: Optional[str] = None) -> str:
    if discount.type is DiscountType.PERCENTAGE:
        return f"{discount.value.normalize():f}%"
    if currency:
        return format_money(MoneyAmount(amount=discount.value, currency=currency))
    return f"{round_to_currency(discount.value):f}"
