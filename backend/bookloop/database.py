from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from bookloop.core.config import settings
import logging
import os
import time

logger = logging.getLogger(__name__)

logger.info("BOOKLOOP DATABASE_URL = %s", settings.get_masked_database_url())

connect_args = {"check_same_thread": False} if settings.is_sqlite else {}

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,  # Verify connections before using them
    echo=False,  # Slow queries are logged separately below
    connect_args=connect_args,
)

# Slow query logging (DEBUG mode only)
if settings.DEBUG:

    @event.listens_for(engine, "before_cursor_execute")
    def receive_before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        """Store query start time before execution."""
        context._query_start_time = time.perf_counter()

    @event.listens_for(engine, "after_cursor_execute")
    def receive_after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        """Log slow queries after execution."""
        if hasattr(context, "_query_start_time"):
            elapsed_ms = (time.perf_counter() - context._query_start_time) * 1000
            if elapsed_ms >= settings.SLOW_QUERY_THRESHOLD_MS:
                statement_first_line = statement.split("\n")[0].strip()[:100]
                logger.warning("SLOW_QUERY: %.2fms - %s", elapsed_ms, statement_first_line)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """
    Dev convenience: create any missing tables on startup.

    When Alembic migrations are present they are the source of truth and
    create_all() is skipped. create_all() never adds columns to existing tables.
    """
    alembic_versions_path = os.path.join(os.path.dirname(__file__), "..", "alembic", "versions")
    if not settings.is_sqlite and os.path.exists(alembic_versions_path) and os.listdir(alembic_versions_path):
        logger.info("Alembic migrations detected, skipping create_all(). Run 'alembic upgrade head'.")
        return

    # Import all models so they are registered with Base.metadata
    from bookloop import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
