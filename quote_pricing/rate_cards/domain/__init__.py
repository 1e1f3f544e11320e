from .entities import (
    PricingResolutionError,
    PricingResolutionResponse,
    PricingResolutionResult,
    PricingSource,
    RateCard,
    RateCardItem,
    TaxClass,
)
from .repositories import AbstractRateCardRepository

__all__ = [
    'PricingResolutionError',
    'PricingResolutionResponse',
    'PricingResolutionResult',
    'PricingSource',
    'RateCard',
    'RateCardItem',
    'TaxClass',
    'AbstractRateCardRepository',
]
