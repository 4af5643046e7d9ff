# opsdesk/core/database.py
"""Database configuration: local config database plus the business data store."""

import logging
import os

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker

load_dotenv()

logger = logging.getLogger(__name__)

# ===== CONFIG DATABASE =====
# Local storage for saved report definitions and the request log.
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./opsdesk_config.db")

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# ===== BUSINESS DATA STORE =====
# Clients, orders, products, inventory. Reports only ever read from it.
DATA_STORE_URL = os.getenv("DATA_STORE_URL", "sqlite+aiosqlite:///./opsdesk_data.db")

DataBase = declarative_base()

_data_engine = None


def get_data_engine() -> AsyncEngine:
    """Lazily create the async engine for the data store."""
    global _data_engine
    if _data_engine is None:
        _data_engine = create_async_engine(DATA_STORE_URL, echo=False)
    return _data_engine


# ===== SESSION GENERATORS =====


def get_db():
    """Get config database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ===== TABLE CREATION =====


def create_all_tables():
    """Create the config database tables."""
    # Import models to ensure they're registered with Base
    from opsdesk.reporting.models import AppSetting  # noqa: F401
    from opsdesk.logging.models import RequestLog  # noqa: F401

    Base.metadata.create_all(bind=engine)


def init_db():
    """Initialize the config database."""
    create_all_tables()
    logger.info("Config database ready at %s", DATABASE_URL)


async def init_data_store(data_engine: AsyncEngine = None):
    """Create the business tables in the data store (development and tests)."""
    from opsdesk.business import models  # noqa: F401

    data_engine = data_engine or get_data_engine()
    async with data_engine.begin() as conn:
        await conn.run_sync(DataBase.metadata.create_all)
