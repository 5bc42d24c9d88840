# app/core/database.py
"""Database configuration for the report definition store."""

import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from app.core.config import DATABASE_URL

logger = logging.getLogger(__name__)

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_all_tables():
    """Create the report tables."""
    # Import models to ensure they're registered with Base
    from app.reports.models import LegacyReport, LegacyVisibilityRule, StoredReportDefinition  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Report tables created")


def init_db():
    create_all_tables()
