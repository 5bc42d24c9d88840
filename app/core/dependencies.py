# app/core/dependencies.py
"""Shared FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.database import get_db

# Core database dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_translation_service():
    """Label catalogue used by every compilation."""
    from app.reports.translations import StaticTranslationService

    return StaticTranslationService()


def get_integrations_factory():
    """Factory building the LMS catalogue and visibility resolver of a tenant session."""
    from app.reports.catalogue_client import build_lms_integrations

    return build_lms_integrations
