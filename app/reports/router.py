# app/reports/router.py
"""API router for report compilation, field catalogues and legacy migration."""

from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.config import REPORT_DEFAULT_LANG, REPORT_DEFAULT_TIMEZONE
from app.core.dependencies import SessionDep, get_integrations_factory, get_translation_service
from app.reports.constants import UserLevel
from app.reports.dao import LegacyReportDAO, ReportDefinitionDAO
from app.reports.interfaces import TranslationService
from app.reports.schemas import (
    CompileRequest,
    CompileResponse,
    LegacyTranslateRequest,
    MigrateRequest,
    MigrationOutcome,
    PlatformFeatures,
    ReportDefinition,
    ReportField,
    SessionContext,
    StoredDefinitionSummary,
)
from app.reports.service import IntegrationsFactory, ReportService

router = APIRouter(prefix="/reports", tags=["reports"])


# Dependency functions
def get_definition_dao(db: SessionDep) -> ReportDefinitionDAO:
    return ReportDefinitionDAO(db)


def get_legacy_dao(db: SessionDep) -> LegacyReportDAO:
    return LegacyReportDAO(db)


def get_report_service(
    definition_dao: ReportDefinitionDAO = Depends(get_definition_dao),
    legacy_dao: LegacyReportDAO = Depends(get_legacy_dao),
    translations: TranslationService = Depends(get_translation_service),
    integrations: IntegrationsFactory = Depends(get_integrations_factory),
) -> ReportService:
    return ReportService(definition_dao, legacy_dao, translations, integrations)


def get_query_context(
    platform: str = "",
    user_id: int = 0,
    user_level: UserLevel = UserLevel.GOD_ADMIN,
    lang_code: str = REPORT_DEFAULT_LANG,
    features: List[str] = Query([]),
) -> SessionContext:
    """Session context of GET requests, feature flags given by name."""
    enabled = {name: True for name in features if name in PlatformFeatures.model_fields}
    return SessionContext(
        platform=platform,
        user_id=user_id,
        user_level=user_level,
        lang_code=lang_code,
        timezone=REPORT_DEFAULT_TIMEZONE,
        features=PlatformFeatures(**enabled),
    )


# ===== FIELD CATALOGUE =====


@router.get("/fields/{report_type:path}", response_model=Dict[str, List[ReportField]])
async def get_available_fields(
    report_type: str,
    context: SessionContext = Depends(get_query_context),
    service: ReportService = Depends(get_report_service),
) -> Dict[str, List[ReportField]]:
    """Selectable fields of a report type, grouped by catalogue section."""
    return await service.available_fields(report_type, context)


# ===== COMPILATION =====


@router.post("/compile", response_model=CompileResponse)
async def compile_report(
    request: CompileRequest, service: ReportService = Depends(get_report_service)
) -> CompileResponse:
    """Compile a report definition into a single SQL statement."""
    return await service.compile(request)


# ===== LEGACY MIGRATION =====


@router.post("/legacy/translate", response_model=ReportDefinition)
async def translate_legacy_report(
    request: LegacyTranslateRequest, service: ReportService = Depends(get_report_service)
) -> ReportDefinition:
    """Translate one legacy report into a report definition, without storing it."""
    return await service.translate_legacy(request)


@router.post("/migrate", response_model=MigrationOutcome)
async def migrate_legacy_reports(
    request: MigrateRequest, service: ReportService = Depends(get_report_service)
) -> MigrationOutcome:
    """Migrate the legacy reports matching the payload and store the translated definitions."""
    return await service.migrate(request)


# ===== STORED DEFINITIONS =====


@router.get("/definitions", response_model=List[StoredDefinitionSummary])
async def get_definitions(service: ReportService = Depends(get_report_service)) -> List[StoredDefinitionSummary]:
    return await service.get_all_definitions()


@router.get("/definitions/{id_report}", response_model=ReportDefinition)
async def get_definition(id_report: str, service: ReportService = Depends(get_report_service)) -> ReportDefinition:
    definition = await service.get_definition(id_report)
    if not definition:
        raise HTTPException(status_code=404, detail="Report definition not found")
    return definition
