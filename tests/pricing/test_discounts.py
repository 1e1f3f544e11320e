import pytest
from decimal import Decimal

from quote_pricing.core.exceptions import ValidationError
from quote_pricing.pricing.domain.discounts import (
    apply_multiple_discounts,
    calculate_discount,
    calculate_effective_discount_percentage,
    format_discount,
    validate_discount,
)
from quote_pricing.pricing.domain.entities import DiscountType, QuoteDiscount

from conftest import nzd


def test_percentage_discount():
    result = calculate_discount(nzd("1150.00"), DiscountType.PERCENTAGE, 10)
    assert result.discount_amount == nzd("115.00")
    assert result.final_amount == nzd("1035.00")
    assert result.discount_type is DiscountType.PERCENTAGE


def test_percentage_discount_rounds_half_up():
    # 10.05 * 5% = 0.5025 -> 0.50
    result = calculate_discount(nzd("10.05"), "percentage", "5")
    assert result.discount_amount.amount == Decimal("0.50")
    assert result.final_amount.amount == Decimal("9.55")


def test_fixed_discount_is_capped_at_amount():
    result = calculate_discount(nzd("80.00"), DiscountType.FIXED_AMOUNT, 100)
    assert result.discount_amount.amount == Decimal("80.00")
    assert result.final_amount.amount == Decimal("0.00")


def test_fixed_discount_below_amount():
    result = calculate_discount(nzd("80.00"), DiscountType.FIXED_AMOUNT, "12.5")
    assert result.discount_amount.amount == Decimal("12.50")
    assert result.final_amount.amount == Decimal("67.50")


@pytest.mark.parametrize(
    "discount_type, value",
    [
        (DiscountType.PERCENTAGE, 101),
        (DiscountType.PERCENTAGE, -1),
        (DiscountType.FIXED_AMOUNT, -5),
        ("loyalty", 5),
    ],
)
def test_invalid_discounts_raise_validation_error(discount_type, value):
    with pytest.raises(ValidationError):
        calculate_discount(nzd("100.00"), discount_type, value)


def test_full_percentage_discount_is_allowed():
    result = calculate_discount(nzd("100.00"), DiscountType.PERCENTAGE, 100)
    assert result.final_amount.amount == Decimal("0.00")


def test_multiple_discounts_apply_percentages_before_fixed():
    discounts = [
        QuoteDiscount(type=DiscountType.FIXED_AMOUNT, value=Decimal("50")),
        QuoteDiscount(type=DiscountType.PERCENTAGE, value=Decimal("10")),
        QuoteDiscount(type=DiscountType.PERCENTAGE, value=Decimal("10")),
    ]
    result = apply_multiple_discounts(nzd("1000.00"), discounts)
    # 1000 -> 900 -> 810 -> 760
    assert result.final_amount.amount == Decimal("760.00")
    assert result.discount_amount.amount == Decimal("240.00")


def test_multiple_discounts_without_discount_keeps_amount():
    result = apply_multiple_discounts(nzd("42.00"), [])
    assert result.final_amount == nzd("42.00")
    assert result.discount_amount.amount == Decimal("0.00")


def test_validate_discount():
    assert validate_discount(DiscountType.PERCENTAGE, 25) is True
    assert validate_discount(DiscountType.PERCENTAGE, 125) is False
    assert validate_discount("fixed_amount", 30, nzd("20.00")) is False
    assert validate_discount("fixed_amount", 10, nzd("20.00")) is True
    assert validate_discount("unknown", 10) is False


def test_effective_discount_percentage_and_format():
    assert calculate_effective_discount_percentage(nzd("200.00"), nzd("150.00")) == Decimal("25.00")
    assert calculate_effective_discount_percentage(nzd("0.00"), nzd("0.00")) == Decimal("0.00")
    assert format_discount(QuoteDiscount(type=DiscountType.PERCENTAGE, value=Decimal("12.50"))) == "12.5%"
    assert format_discount(QuoteDiscount(type=DiscountType.FIXED_AMOUNT, value=Decimal("20")), "NZD") == "NZD 20.00"
