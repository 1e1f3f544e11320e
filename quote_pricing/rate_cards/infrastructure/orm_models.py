from datetime import date
from decimal import Decimal
from typing import Optional

from sqlmodel import Field, SQLModel

# Tables du catalogue tarifaire (lecture seule pour le moteur de tarification)


class RateCardDB(SQLModel, table=True):
    """Modèle de table pour une grille tarifaire."""
    id: str = Field(primary_key=True, max_length=64)
    organization_id: str = Field(index=True, max_length=64)
    name: str = Field(max_length=255)
    currency: str = Field(default="NZD", max_length=3)
    effective_from: date
    effective_until: Optional[date] = Field(default=None)
    is_active: bool = Field(default=True)
    is_default: bool = Field(default=False)

    __tablename__ = "rate_cards"


class RateCardItemDB(SQLModel, table=True):
    """Modèle de table pour une ligne de grille tarifaire."""
    id: str = Field(primary_key=True, max_length=64)
    rate_card_id: str = Field(foreign_key="rate_cards.id", index=True, max_length=64)
    service_category_id: Optional[str] = Field(default=None, index=True, max_length=64)
    item_code: Optional[str] = Field(default=None, index=True, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    unit: str = Field(default="hour", max_length=50)
    base_rate: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    currency: str = Field(default="NZD", max_length=3)
    tax_class: str = Field(default="standard", max_length=20)
    effective_from: date
    effective_until: Optional[date] = Field(default=None)
    is_active: bool = Field(default=True)

    __tablename__ = "rate_card_items"
