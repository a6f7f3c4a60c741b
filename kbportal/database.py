"""
Database session management for the knowledge-base portal
SQLAlchemy setup shared by the API and the services
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from kbportal.config import settings


def _engine_kwargs(url: str) -> dict:
    """SQLite needs cross-thread access because storage calls run in worker threads"""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


# echo: Log all SQL statements when DATABASE_ECHO=True
engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DATABASE_ECHO,
    **_engine_kwargs(settings.DATABASE_URL)
)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for all models
Base = declarative_base()


def get_db():
    """
    Dependency for FastAPI endpoints to get database session
    Automatically closes session after request

    Rolls back on exceptions so a failed request never leaves
    a dirty session behind
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def create_tables():
    """
    Create all tables in the database
    Called during application startup

    Note: Import models here to ensure they're registered with Base.metadata
    """
    from kbportal.models import Account, Credential, Delegate, Document, APIKey  # noqa: F401

    Base.metadata.create_all(bind=engine)
