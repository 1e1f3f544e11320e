"""
quote_pricing - Moteur de tarification des devis et de résolution des grilles tarifaires.
"""

__version__ = "1.0.0"
