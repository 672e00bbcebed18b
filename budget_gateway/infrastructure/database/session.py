"""Engine and per-request sessions for the budget tables"""

from typing import Any, Dict, Generator
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from budget_gateway.config import settings


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Pool settings for server databases; SQLite only needs cross-thread access"""
    if database_url.startswith("sqlite"):
        # Sync handlers run in FastAPI's threadpool, not the creating thread
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_recycle": settings.db_pool_recycle_seconds,
    }


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """One session per request; handlers commit, this only closes"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
