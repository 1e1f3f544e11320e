import logging
from decimal import Decimal

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

# Charger les variables d'environnement AVANT de définir la classe Settings
load_dotenv()


class Settings(BaseSettings):
    """Configuration du moteur de tarification.

    Les paramètres sont chargés depuis les variables d'environnement avec le préfixe PRICING_.
    """

    # --- Tarification ---
    DEFAULT_CURRENCY: str = "NZD"
    STANDARD_TAX_RATE: Decimal = Decimal("15")
    DEFAULT_UNIT: str = "hour"
    DESCRIPTION_MATCH_THRESHOLD: float = 0.5

    # --- Cache des grilles tarifaires ---
    CACHE_ENABLED: bool = True
    CACHE_KEY_PREFIX: str = "pricing"
    RATE_CARD_CACHE_TTL: int = 60  # secondes, grille active
    RATE_ITEM_CACHE_TTL: int = 300  # secondes, lignes de grille

    # --- Base de Données (lecture du catalogue) ---
    DATABASE_URL: str = "sqlite+aiosqlite:///./rate_cards.db"
    DB_ECHO_LOG: bool = False

    class Config:
        env_prefix = "PRICING_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Instancier la classe de configuration
settings = Settings()


logger.info(
    f"Configuration chargée: devise={settings.DEFAULT_CURRENCY}, taxe standard={settings.STANDARD_TAX_RATE}%, "
    f"cache={'actif' if settings.CACHE_ENABLED else 'inactif'}"
)
