import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from quote_pricing.core.exceptions import CurrencyMismatchError, PricingResolutionFailedError
from quote_pricing.pricing.domain.entities import LineItem, QuoteTotals
from quote_pricing.pricing.domain.lines import calculate_line_items
from quote_pricing.pricing.domain.totals import (
    calculate_quote_totals,
    calculate_quote_totals_with_multiple_discounts,
    with_tax_breakdown,
)
from quote_pricing.rate_cards.application.services import RateCardResolver
from quote_pricing.rate_cards.domain.entities import PricingResolutionResult

from .schemas import CalculateQuoteInput, PricedQuote, PriceQuoteInput, QuoteCalculation, QuoteInputBase

logger = logging.getLogger(__name__)


class QuoteCalculationService:
    """Service applicatif de calcul d'un devis (lignes, récapitulatif, totaux et ventilation de taxe)."""

    def calculate_quote(self, quote_input: CalculateQuoteInput) -> QuoteCalculation:
        logger.debug(f"[QuoteCalculationService] Calcul d'un devis de {len(quote_input.line_items)} ligne(s)")
        return self.calculate_lines(quote_input.to_line_items(), quote_input)

    def calculate_lines(self, line_items: List[LineItem], quote_input: QuoteInputBase) -> QuoteCalculation:
        lines_result = calculate_line_items(line_items)
        calculations = lines_result.calculations

        if quote_input.quote_discounts is not None:
            totals: QuoteTotals = calculate_quote_totals_with_multiple_discounts(
                calculations, [d.to_domain() for d in quote_input.quote_discounts]
            )
        else:
            discount = quote_input.quote_discount.to_domain() if quote_input.quote_discount else None
            totals = calculate_quote_totals(calculations, discount)

        logger.info(
            f"[QuoteCalculationService] Devis calculé: {len(calculations)} ligne(s), "
            f"total {totals.grand_total.currency} {totals.grand_total.amount}"
        )
        return QuoteCalculation(
            currency=totals.currency,
            line_items=calculations,
            summary=lines_result.summary,
            totals=with_tax_breakdown(totals, calculations),
        )


class QuotePricingService:
    """Tarife un devis via la grille de l'organisation puis le calcule."""

    def __init__(self, resolver: RateCardResolver, calculator: Optional[QuoteCalculationService] = None):
        self.resolver = resolver
        self.calculator = calculator or QuoteCalculationService()

    async def price_quote(
        self,
        organization_id: str,
        quote_input: PriceQuoteInput,
        can_override_price: bool = False,
        effective_date: Optional[date] = None,
    ) -> PricedQuote:
        """Résout les prix unitaires puis calcule le devis.

        Raises:
            PricingResolutionFailedError: au moins une ligne n'a pas pu être tarifée (toutes les erreurs sont jointes).
            CurrencyMismatchError: un prix résolu n'est pas dans la devise du devis.
        """
        logger.info(
            f"[QuotePricingService] Tarification devis org {organization_id}: "
            f"{len(quote_input.line_items)} ligne(s), surcharge autorisée: {can_override_price}"
        )
        line_items = quote_input.to_line_items()
        response = await self.resolver.resolve_pricing(
            organization_id, line_items, can_override_price=can_override_price, effective_date=effective_date
        )
        if not response.success:
            logger.warning(f"[QuotePricingService] Tarification incomplète pour org {organization_id}: {len(response.errors)} erreur(s)")
            raise PricingResolutionFailedError(response.errors)

        priced_lines = [
            self._apply_pricing(line, response.result_for(line.line_number), quote_input.currency)
            for line in line_items
        ]
        calculation = self.calculator.calculate_lines(priced_lines, quote_input)
        return PricedQuote(organization_id=organization_id, pricing=response.results, calculation=calculation)

    @staticmethod
    def _apply_pricing(line: LineItem, result: PricingResolutionResult, currency: str) -> LineItem:
        if result.unit_price.currency != currency:
            raise CurrencyMismatchError(currency, result.unit_price.currency, "price")
        return line.model_copy(
            update={
                "unit_price": result.unit_price,
                "tax_rate": result.tax_rate,
                "is_tax_exempt": bool(line.is_tax_exempt) or result.tax_rate == Decimal("0"),
                "unit": result.unit,
                "service_category_id": result.service_category_id,
                "item_code": result.item_code,
            }
        )
