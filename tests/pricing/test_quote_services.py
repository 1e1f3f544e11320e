import pytest
from decimal import Decimal
from unittest.mock import AsyncMock

from pydantic import ValidationError as SchemaValidationError

from quote_pricing.core.exceptions import CurrencyMismatchError, PricingResolutionFailedError
from quote_pricing.pricing.application.schemas import CalculateQuoteInput, PriceQuoteInput
from quote_pricing.pricing.application.services import QuoteCalculationService, QuotePricingService
from quote_pricing.pricing.domain.entities import MoneyAmount
from quote_pricing.rate_cards.domain.entities import (
    PricingResolutionError,
    PricingResolutionResponse,
    PricingResolutionResult,
    PricingSource,
)

from conftest import ORG_ID, RESOLUTION_DATE


@pytest.fixture
def calculation_service():
    return QuoteCalculationService()


def test_calculate_quote_input_validation():
    with pytest.raises(SchemaValidationError):
        CalculateQuoteInput(line_items=[])
    with pytest.raises(SchemaValidationError):
        CalculateQuoteInput(line_items=[{"description": "Dev", "quantity": "1"}])
    with pytest.raises(SchemaValidationError):
        CalculateQuoteInput(line_items=[{"description": "  ", "quantity": "1", "unit_price": "10"}])
    with pytest.raises(SchemaValidationError):
        CalculateQuoteInput(line_items=[{"description": "Dev", "quantity": "0", "unit_price": "10"}])
    with pytest.raises(SchemaValidationError):
        CalculateQuoteInput(
            line_items=[{"description": "Dev", "quantity": "1", "unit_price": "10"}],
            quote_discount={"type": "percentage", "value": "5"},
            quote_discounts=[{"type": "percentage", "value": "5"}],
        )


def test_calculate_quote(calculation_service):
    quote_input = CalculateQuoteInput(
        line_items=[{"description": "Development", "quantity": "10", "unit_price": "100.00"}],
        quote_discount={"type": "percentage", "value": "10"},
    )
    result = calculation_service.calculate_quote(quote_input)

    assert result.currency == "NZD"
    assert result.line_items[0].line_item.line_number == 1
    assert result.summary.total_amount.amount == Decimal("1150.00")
    assert result.totals.discount_amount.amount == Decimal("115.00")
    assert result.totals.grand_total.amount == Decimal("1035.00")
    assert [b.rate for b in result.totals.tax_breakdown] == [Decimal("15")]


def test_calculate_quote_with_multiple_discounts(calculation_service):
    quote_input = CalculateQuoteInput(
        currency="nzd",
        line_items=[{"description": "Development", "quantity": "10", "unit_price": "100.00"}],
        quote_discounts=[{"type": "fixed_amount", "value": "35"}, {"type": "percentage", "value": "10"}],
    )
    result = calculation_service.calculate_quote(quote_input)
    assert result.totals.grand_total.amount == Decimal("1000.00")
    assert result.totals.tax_breakdown[0].tax_amount.amount == Decimal("150.00")


def _resolved(line_number: int, amount: str, tax_rate: str = "15", currency: str = "NZD") -> PricingResolutionResult:
    return PricingResolutionResult(
        line_number=line_number,
        unit_price=MoneyAmount(amount=Decimal(amount), currency=currency),
        tax_rate=Decimal(tax_rate),
        unit="hour",
        source=PricingSource.RATE_CARD,
        rate_card_id="rc-2024",
        rate_card_item_id=f"item-{line_number}",
    )


@pytest.mark.asyncio
async def test_price_quote_uses_resolved_prices():
    resolver = AsyncMock()
    resolver.resolve_pricing.return_value = PricingResolutionResponse(
        success=True, results=[_resolved(1, "150.00"), _resolved(2, "400.00", tax_rate="0")]
    )
    service = QuotePricingService(resolver=resolver)
    quote_input = PriceQuoteInput(
        line_items=[
            {"description": "Development", "quantity": "10", "item_code": "DEV-HOURLY", "unit_price": "200"},
            {"description": "Training", "quantity": "1", "item_code": "TRAINING"},
        ]
    )

    priced = await service.price_quote(ORG_ID, quote_input, can_override_price=False, effective_date=RESOLUTION_DATE)

    resolver.resolve_pricing.assert_awaited_once()
    call_kwargs = resolver.resolve_pricing.call_args.kwargs
    assert call_kwargs["can_override_price"] is False
    assert call_kwargs["effective_date"] == RESOLUTION_DATE

    development, training = priced.calculation.line_items
    assert development.unit_price.amount == Decimal("150.00")
    assert development.tax_amount.amount == Decimal("225.00")
    assert training.line_item.is_tax_exempt is True
    assert training.tax_amount.amount == Decimal("0.00")
    assert priced.calculation.totals.grand_total.amount == Decimal("2125.00")
    assert len(priced.pricing) == 2


@pytest.mark.asyncio
async def test_price_quote_raises_with_every_line_error():
    errors = [
        PricingResolutionError(line_number=1, description="Mystery", reason="No matching rate found for description"),
        PricingResolutionError(line_number=2, description="Other", reason="No matching rate found for description"),
    ]
    resolver = AsyncMock()
    resolver.resolve_pricing.return_value = PricingResolutionResponse(success=False, errors=errors)
    service = QuotePricingService(resolver=resolver)
    quote_input = PriceQuoteInput(
        line_items=[{"description": "Mystery", "quantity": "1"}, {"description": "Other", "quantity": "1"}]
    )

    with pytest.raises(PricingResolutionFailedError) as exc_info:
        await service.price_quote(ORG_ID, quote_input)

    assert exc_info.value.errors == errors
    assert "Line 1" in exc_info.value.message and "Line 2" in exc_info.value.message


@pytest.mark.asyncio
async def test_price_quote_rejects_foreign_currency_price():
    resolver = AsyncMock()
    resolver.resolve_pricing.return_value = PricingResolutionResponse(
        success=True, results=[_resolved(1, "100.00", currency="AUD")]
    )
    service = QuotePricingService(resolver=resolver)
    quote_input = PriceQuoteInput(line_items=[{"description": "Development", "quantity": "1"}])

    with pytest.raises(CurrencyMismatchError):
        await service.price_quote(ORG_ID, quote_input)


@pytest.mark.asyncio
async def test_price_quote_end_to_end(resolver):
    service = QuotePricingService(resolver=resolver)
    quote_input = PriceQuoteInput(
        line_items=[
            {"description": "Backend work", "quantity": "8", "item_code": "DEV-HOURLY"},
            {"description": "UX design day", "quantity": "2", "service_category_id": "cat-design"},
        ],
        quote_discount={"type": "fixed_amount", "value": "100"},
    )

    priced = await service.price_quote(ORG_ID, quote_input, effective_date=RESOLUTION_DATE)

    # 8 x 150 = 1200 + 180 taxe ; 2 x 900 = 1800 + 270 taxe ; 3450 - 100
    assert priced.calculation.summary.total_amount.amount == Decimal("3450.00")
    assert priced.calculation.totals.grand_total.amount == Decimal("3350.00")
    assert [line.line_item.unit for line in priced.calculation.line_items] == ["hour", "day"]
