"""
Database connection management for Reasonet.

Provides database session management, connection handling, and transaction support.
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker

from reasonet.config import settings
from reasonet.models.db import Base

logger = logging.getLogger(__name__)

# Create engine instance (singleton pattern)
if settings.database_url.startswith("sqlite"):
    from sqlalchemy import JSON, event
    from sqlalchemy.dialects import postgresql

    engine = create_engine(
        settings.database_url,
        echo=False,
        connect_args={"check_same_thread": False},
        pool_pre_ping=True,
    )

    # Replace JSONB with JSON for SQLite compatibility
    @event.listens_for(Base.metadata, "before_create")
    def _set_json_type(target, connection, **kw):  # pragma: no cover - compat hook
        for table in target.tables.values():
            for column in table.columns:
                if isinstance(column.type, postgresql.JSONB):
                    column.type = JSON()

else:
    # Each uvicorn worker gets its own pool.
    # Total connections = workers × (pool_size + max_overflow)
    engine = create_engine(
        settings.database_url,
        echo=False,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_pool_max_overflow,
        pool_pre_ping=True,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
    )

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

# Ensure tables exist for SQLite runs (in-memory databases don't persist schema)
if settings.database_url.startswith("sqlite"):
    Base.metadata.create_all(bind=engine)


def get_session() -> Session:
    """
    Get a new database session.

    Returns:
        Session: A new SQLAlchemy session
    """
    return SessionLocal()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for FastAPI to get database sessions with automatic cleanup.

    Yields:
        Session: A SQLAlchemy session

    Example (FastAPI):
        >>> @app.get("/analyses/{id}")
        >>> def get_analysis(id: UUID, db: Session = Depends(get_db)):
        >>>     return AnalysisRepository(db).get(id)
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def db_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions with automatic cleanup.

    Yields:
        Session: A SQLAlchemy session

    Example:
        >>> with db_session() as db:
        >>>     stale = AnalysisRepository(db).get_stale(cutoff)
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def transaction(session: Session) -> Generator[Session, None, None]:
    """
    Run a block of writes as one unit of work on an existing session.

    Commits when the block succeeds and rolls back everything written inside
    it when the block raises.

    Example:
        >>> with transaction(db):
        >>>     repo_repo.delete_by_installation("42")
        >>>     installation_repo.delete(installation.id)
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def init_db() -> None:
    """
    Initialize the database.

    Creates tables programmatically; production deployments use Alembic
    migrations instead (`alembic upgrade head`).
    """
    Base.metadata.create_all(bind=engine)


def check_connection() -> bool:
    """
    Check if database connection is working.

    Returns:
        bool: True if connection successful, False otherwise
    """
    try:
        with db_session() as db:
            db.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
