from typing import Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlmodel import Session
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
import logging
from fastapi import HTTPException

from .config import settings

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None


def configure_sqlite_engine(engine: Engine) -> None:
    """
    Make SQLite behave like the production store.

    Foreign keys are enforced and transactions are begun explicitly, so
    SAVEPOINTs used by the CSV import nest inside the outer transaction
    instead of committing it.
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")


@retry(
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type((Exception,)),
    reraise=True
)
def create_database_engine() -> Engine:
    """Create database engine with retry logic."""
    logger.info(f"Attempting to connect to database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'hidden'}")

    options = {"echo": settings.DEBUG, "pool_pre_ping": True}
    if not settings.DATABASE_URL.startswith("sqlite"):
        options.update(pool_recycle=300, pool_size=10, max_overflow=20)

    engine = create_engine(settings.DATABASE_URL, **options)
    configure_sqlite_engine(engine)

    # Test the connection
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
        logger.info("Database connection successful!")

    return engine


def get_engine() -> Optional[Engine]:
    """Return the shared engine, connecting on first use."""
    global _engine
    if _engine is None:
        try:
            _engine = create_database_engine()
        except Exception as e:
            logger.error(f"Failed to create database engine after retries: {e}")
            return None
    return _engine


def get_db():
    """Get database session."""
    engine = get_engine()
    if engine is None:
        raise HTTPException(
            status_code=503,
            detail="Database is temporarily unavailable. Please try again later."
        )

    with Session(engine) as session:
        try:
            yield session
        finally:
            session.close()
