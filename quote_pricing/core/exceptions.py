"""Exceptions du moteur de tarification.

Chaque erreur qui traverse la frontière du module porte assez de contexte
(numéro de ligne, description, devises en conflit) pour être affichée telle quelle.
"""

from typing import List, Optional, Sequence


class PricingDomainException(Exception):
    """Classe de base pour les exceptions du moteur de tarification."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ValidationError(PricingDomainException, ValueError):
    """Levée pour une entrée mal formée ou hors bornes (ex: pourcentage de remise > 100)."""
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class CurrencyMismatchError(PricingDomainException):
    """Levée lorsqu'une opération porte sur deux devises différentes."""
    def __init__(self, expected_currency: str, actual_currency: str, operation: str = "combine"):
        super().__init__(
            f"Cannot {operation} amounts with different currencies: {expected_currency} and {actual_currency}"
        )
        self.expected_currency = expected_currency
        self.actual_currency = actual_currency


class EmptyInputError(PricingDomainException):
    """Levée lorsqu'un calcul est demandé sur une liste vide."""
    pass


class NoActiveRateCardError(PricingDomainException):
    """Levée lorsqu'aucune grille tarifaire active n'existe pour l'organisation."""
    def __init__(self, organization_id: str):
        super().__init__("No active rate card found for organization")
        self.organization_id = organization_id


class NoMatchingRateError(PricingDomainException):
    """Levée lorsqu'aucun tarif ne correspond à une ligne."""
    def __init__(self, line_number: int, description: str, reason: str):
        super().__init__(f"Line {line_number}: {reason}")
        self.line_number = line_number
        self.description = description
        self.reason = reason


class PricingResolutionFailedError(PricingDomainException):
    """Levée lorsqu'au moins une ligne d'un devis n'a pas pu être tarifée."""
    def __init__(self, errors: Sequence):
        details = "; ".join(f"Line {e.line_number}: {e.reason}" for e in errors)
        super().__init__(f"Pricing resolution failed: {details}")
        self.errors: List = list(errors)


class RateCardRepositoryError(PricingDomainException):
    """Levée en cas d'erreur de lecture du catalogue des grilles tarifaires."""
    def __init__(self, detail: str, original_exception: Optional[Exception] = None):
        message = f"Rate card catalog read failed: {detail}"
        if original_exception:
            message += f" ({original_exception})"
        super().__init__(message)
        self.detail = detail
        self.original_exception = original_exception


class CacheError(PricingDomainException):
    """Levée lorsqu'une opération du fournisseur de cache échoue."""
    def __init__(self, message: str, code: str = "CACHE_ERROR"):
        super().__init__(message)
        self.code = code
