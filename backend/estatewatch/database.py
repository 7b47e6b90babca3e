"""
Database engine and session management.

The relational schema is a declared persistence target; the only table the
running service writes is ``app_state`` when STORAGE_BACKEND=database.
"""

import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import settings

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # Sync endpoints run in a thread pool
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(settings.DATABASE_URL, **_engine_kwargs(settings.DATABASE_URL))

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

Base = declarative_base()


def init_db(bind=None):
    """Create all declared tables"""
    # Register models on Base.metadata
    from . import models  # noqa: F401

    target = bind if bind is not None else engine
    Base.metadata.create_all(bind=target)
    logger.info(f"Database tables ensured: {sorted(Base.metadata.tables)}")
