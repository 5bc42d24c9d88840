"""
Database connection utilities for Celery tasks
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import DATABASE_URL

_engine = None


def get_db_engine():
    """Create the SQLAlchemy engine once per worker process"""
    global _engine
    if _engine is None:
        connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
        _engine = create_engine(DATABASE_URL, connect_args=connect_args)
    return _engine


def get_db_session():
    """Create and return a SQLAlchemy session"""
    Session = sessionmaker(bind=get_db_engine())
    return Session()
