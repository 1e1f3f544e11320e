"""Arithmétique monétaire exacte.

Tous les montants sont des Decimal ; aucun float binaire n'intervient dans les
montants, les taux ou les produits intermédiaires. Les valeurs finalisées sont
arrondies à 2 décimales en ROUND_HALF_UP (2.345 -> 2.35, -2.345 -> -2.35),
seul mode d'arrondi utilisé dans tout le moteur.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Sequence, Union

from quote_pricing.core.exceptions import CurrencyMismatchError, EmptyInputError, ValidationError
from quote_pricing.pricing.domain.entities import MoneyAmount

CURRENCY_QUANTUM = Decimal("0.01")
ROUNDING_MODE = ROUND_HALF_UP

NumberLike = Union[Decimal, int, float, str]


def create_decimal(value: NumberLike) -> Decimal:
    """Construit un Decimal fini à partir d'un entier, d'une chaîne, d'un Decimal ou d'un float."""
    if isinstance(value, bool):
        raise ValidationError(f"Boolean is not a valid numeric value: {value}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        # repr() donne la plus courte représentation : 0.1 -> Decimal("0.1")
        result = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise ValidationError(f"Invalid numeric value: {value!r}")
    else:
        raise ValidationError(f"Unsupported numeric type: {type(value).__name__}")

    if not result.is_finite():
        raise ValidationError(f"Numeric value must be finite: {value}")
    return result


def round_to_currency(value: NumberLike) -> Decimal:
    return create_decimal(value).quantize(CURRENCY_QUANTUM, rounding=ROUNDING_MODE)


def money(amount: NumberLike, currency: str) -> MoneyAmount:
    return MoneyAmount(amount=create_decimal(amount), currency=currency)


def zero_money(currency: str) -> MoneyAmount:
    return MoneyAmount(amount=Decimal("0.00"), currency=currency)


def ensure_same_currency(a: MoneyAmount, b: MoneyAmount, operation: str = "combine") -> str:
    if a.currency != b.currency:
        raise CurrencyMismatchError(a.currency, b.currency, operation)
    return a.currency


def add_money(a: MoneyAmount, b: MoneyAmount) -> MoneyAmount:
    currency = ensure_same_currency(a, b, "add")
    return MoneyAmount(amount=round_to_currency(a.amount + b.amount), currency=currency)


def subtract_money(a: MoneyAmount, b: MoneyAmount) -> MoneyAmount:
    currency = ensure_same_currency(a, b, "subtract")
    return MoneyAmount(amount=round_to_currency(a.amount - b.amount), currency=currency)


def multiply_money(amount: MoneyAmount, factor: NumberLike) -> MoneyAmount:
    return MoneyAmount(
        amount=round_to_currency(amount.amount * create_decimal(factor)),
        currency=amount.currency,
    )


def divide_money(amount: MoneyAmount, divisor: NumberLike) -> MoneyAmount:
    decimal_divisor = create_decimal(divisor)
    if decimal_divisor.is_zero():
        raise ValidationError("Cannot divide by zero")
    return MoneyAmount(
        amount=round_to_currency(amount.amount / decimal_divisor),
        currency=amount.currency,
    )


def calculate_percentage(amount: MoneyAmount, percentage: NumberLike) -> MoneyAmount:
    """Retourne round(amount * percentage / 100) dans la devise du montant."""
    return MoneyAmount(
        amount=round_to_currency(amount.amount * create_decimal(percentage) / 100),
        currency=amount.currency,
    )


def sum_money(amounts: Sequence[MoneyAmount]) -> MoneyAmount:
    """Somme exacte d'une liste de montants d'une même devise.

    Raises:
        EmptyInputError: si la liste est vide (aucune devise ne peut être déduite).
        CurrencyMismatchError: si la liste mélange plusieurs devises.
    """
    if not amounts:
        raise EmptyInputError("Cannot sum an empty list of amounts")

    currency = amounts[0].currency
    total = Decimal("0")
    for item in amounts:
        if item.currency != currency:
            raise CurrencyMismatchError(currency, item.currency, "sum")
        total += item.amount

    return MoneyAmount(amount=total, currency=currency)


def compare_money(a: MoneyAmount, b: MoneyAmount) -> int:
    ensure_same_currency(a, b, "compare")
    if a.amount < b.amount:
        return -1
    if a.amount > b.amount:
        return 1
    return 0


def is_zero(amount: MoneyAmount) -> bool:
    return amount.amount.is_zero()


def is_negative(amount: MoneyAmount) -> bool:
    return amount.amount < 0


def is_positive(amount: MoneyAmount) -> bool:
    return amount.amount > 0


def format_money(amount: MoneyAmount) -> str:
    return f"{amount.currency} {round_to_currency(amount.amount):f}"
