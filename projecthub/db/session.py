"""Engine and session factory built from settings."""

from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from projecthub.core.config import get_settings


@lru_cache
def get_engine() -> Engine:
    """Create the process-wide engine on first use."""

    return create_engine(get_settings().database_url, pool_pre_ping=True, future=True)


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    return sessionmaker(bind=get_engine(), autoflush=False, autocommit=False, future=True)
