# app/reports/service.py
"""Service layer for report compilation, field catalogues and legacy migration."""

import logging
from typing import Callable, Dict, List, Optional, Tuple

from app.core.config import REPORT_DEFAULT_DIALECT, REPORT_DEFAULT_LANG, REPORT_DEFAULT_TIMEZONE
from app.reports.compiler import ReportCompiler
from app.reports.constants import LEGACY_TYPES, DialectName, ExportLimit, ReportType
from app.reports.dao import LegacyReportDAO, ReportDefinitionDAO
from app.reports.dialect import get_dialect
from app.reports.exceptions import UnknownReportTypeError
from app.reports.interfaces import ExtraFieldCatalogue, TranslationService, VisibilityResolver
from app.reports.legacy import translate_legacy
from app.reports.migration import MigrationOrchestrator
from app.reports.registry import get_report_type_config
from app.reports.schemas import (
    CompileRequest,
    CompileResponse,
    LegacyTranslateRequest,
    MigrateRequest,
    MigrationOutcome,
    ReportDefinition,
    ReportField,
    SessionContext,
    StoredDefinitionSummary,
)

logger = logging.getLogger(__name__)

# Builds the catalogue and visibility resolver serving one tenant session
IntegrationsFactory = Callable[[SessionContext], Tuple[ExtraFieldCatalogue, VisibilityResolver]]


def default_session_context() -> SessionContext:
    return SessionContext(lang_code=REPORT_DEFAULT_LANG, timezone=REPORT_DEFAULT_TIMEZONE)


class ReportService:
    """Business logic behind the report endpoints."""

    def __init__(
        self,
        definition_dao: ReportDefinitionDAO,
        legacy_dao: LegacyReportDAO,
        translations: TranslationService,
        integrations: IntegrationsFactory,
    ):
        self.definition_dao = definition_dao
        self.legacy_dao = legacy_dao
        self.translations = translations
        self.integrations = integrations

    # ===== COMPILATION =====

    async def compile(self, request: CompileRequest) -> CompileResponse:
        session = request.context or default_session_context()
        config = get_report_type_config(request.definition.type, session)
        dialect = get_dialect(request.dialect or DialectName(REPORT_DEFAULT_DIALECT))
        catalogue, visibility = self.integrations(session)

        # Previews are always capped
        limit = request.limit or (int(ExportLimit.PREVIEW) if request.preview else 0)

        compiler = ReportCompiler(config, request.definition, session, catalogue, visibility, self.translations)
        sql = await compiler.compile(
            dialect,
            limit=limit,
            is_preview=request.preview,
            check_visibility=request.check_visibility,
            from_schedule=request.from_schedule,
        )
        logger.info(f"Compiled report '{request.definition.id_report}' ({config.report_type.value}) for {dialect.name.value}")
        return CompileResponse(report_type=config.report_type, dialect=dialect.name, sql=sql)

    async def available_fields(
        self, report_type: str, session: Optional[SessionContext] = None
    ) -> Dict[str, List[ReportField]]:
        session = session or default_session_context()
        config = get_report_type_config(report_type, session)
        catalogue, _ = self.integrations(session)
        return await config.available_fields(session, catalogue, self.translations.labels(session.lang_code))

    # ===== LEGACY =====

    async def translate_legacy(self, request: LegacyTranslateRequest) -> ReportDefinition:
        session = request.context or default_session_context()
        report_type = _legacy_report_type(request.legacy_report.report_type_id)
        config = get_report_type_config(report_type, session)
        return translate_legacy(
            config, request.legacy_report, session.platform, request.visibility_rules, session
        )

    async def migrate(self, request: MigrateRequest) -> MigrationOutcome:
        session = request.context or default_session_context()
        orchestrator = MigrationOrchestrator(session, self.legacy_dao, self.definition_dao)
        return await orchestrator.migrate_reports(request.payload)

    # ===== STORED DEFINITIONS =====

    async def get_all_definitions(self) -> List[StoredDefinitionSummary]:
        rows = await self.definition_dao.get_all()
        return [
            StoredDefinitionSummary(
                id_report=row.id_report,
                type=row.report_type,
                title=row.title,
                platform=row.platform,
                imported_from_legacy_id=row.imported_from_legacy_id,
            )
            for row in rows
        ]

    async def get_definition(self, id_report: str) -> Optional[ReportDefinition]:
        row = await self.definition_dao.get_by_id(id_report)
        if row is None:
            return None
        return ReportDefinition.model_validate(row.payload)


def _legacy_report_type(report_type_id: int) -> ReportType:
    report_type = LEGACY_TYPES.get(report_type_id)
    if report_type is None:
        raise UnknownReportTypeError(str(report_type_id))
    return report_type
