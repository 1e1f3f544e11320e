import logging
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from quote_pricing.config import settings

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """Crée (une seule fois) le moteur asynchrone de lecture du catalogue tarifaire."""
    global _engine, _session_factory
    if _engine is None:
        url = database_url or settings.DATABASE_URL
        _engine = create_async_engine(url, echo=settings.DB_ECHO_LOG, future=True)
        _session_factory = sessionmaker(bind=_engine, class_=AsyncSession, expire_on_commit=False)
        logger.info("Moteur et Session Factory SQLAlchemy Async configurés.")
    return _engine


def get_session_factory() -> sessionmaker:
    if _session_factory is None:
        get_engine()
    return _session_factory


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fournit une session asynchrone ; rollback et propagation en cas d'erreur."""
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception as e:
            logger.error(f"Erreur durant la session DB, rollback: {e}", exc_info=True)
            await session.rollback()
            raise


async def create_tables() -> None:
    """Crée les tables SQLModel (tests et initialisation locale)."""
    # Enregistre les tables du catalogue dans SQLModel.metadata
    from quote_pricing.rate_cards.infrastructure import orm_models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Tables du catalogue tarifaire créées.")


async def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
