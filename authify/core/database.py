"""Database engine management for the relational credential store."""

from functools import lru_cache

from sqlalchemy import Engine, create_engine, text

from authify.core.config import get_settings


@lru_cache
def get_engine() -> Engine:
    """Return the process-wide engine for DATABASE_URL (created on first use)."""
    settings = get_settings()
    return create_engine(
        settings.DATABASE_URL,
        pool_pre_ping=True,
        echo=settings.DEBUG,
    )


def check_db_connected(engine: Engine) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
