"""Database engine and per-request sessions"""

from functools import lru_cache
from typing import Any, Dict, Iterator
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from billing_gateway.config import settings


def engine_options(database_url: str) -> Dict[str, Any]:
    """Pool tuning for PostgreSQL; SQLite only needs cross-thread access"""
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_recycle": 3600,
    }


@lru_cache
def get_engine() -> Engine:
    """Engine built on first use, so importing the app never opens a connection pool"""
    return create_engine(settings.database_url, **engine_options(settings.database_url))


@lru_cache
def get_session_factory() -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def get_db() -> Iterator[Session]:
    """Dependency injection for database sessions; one session per request"""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()
