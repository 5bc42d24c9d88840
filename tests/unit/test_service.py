"""
Unit tests for the report service layer.
"""

import json
from unittest.mock import AsyncMock, Mock

import pytest

from app.reports.constants import DialectName, ReportType
from app.reports.exceptions import UnknownReportTypeError, UnsupportedDialectCombination
from app.reports.schemas import (
    CompileRequest,
    LegacyReportDoc,
    LegacyTranslateRequest,
    MigrateRequest,
    MigrationOutcome,
)
from app.reports.service import ReportService


@pytest.fixture
def definition_dao():
    dao = Mock()
    dao.get_all = AsyncMock(return_value=[])
    dao.get_by_id = AsyncMock(return_value=None)
    dao.get_already_migrated_ids = AsyncMock(return_value=[])
    dao.batch_write = AsyncMock()
    return dao


@pytest.fixture
def legacy_dao():
    dao = Mock()
    dao.fetch_legacy_reports = AsyncMock(return_value=None)
    return dao


@pytest.fixture
def service(definition_dao, legacy_dao, translations, catalogue, visibility):
    return ReportService(definition_dao, legacy_dao, translations, lambda session: (catalogue, visibility))


class TestReportServiceCompile:
    """Compilation entry point"""

    async def test_compile_with_context(self, service, make_definition, session_context):
        request = CompileRequest(
            definition=make_definition(ReportType.LP_USERS_STATISTICS),
            dialect=DialectName.SNOWFLAKE,
            context=session_context,
        )

        response = await service.compile(request)

        assert response.report_type == ReportType.LP_USERS_STATISTICS
        assert response.dialect == DialectName.SNOWFLAKE
        assert response.sql.startswith("SELECT ANY_VALUE(")

    async def test_compile_defaults_to_athena(self, service, make_definition):
        request = CompileRequest(definition=make_definition(ReportType.COURSES_USERS), preview=True, limit=10)

        response = await service.compile(request)

        assert response.dialect == DialectName.ATHENA
        assert response.sql.endswith(" LIMIT 10")

    async def test_preview_without_limit_is_capped(self, service, make_definition):
        request = CompileRequest(definition=make_definition(ReportType.COURSES_USERS), preview=True)
        response = await service.compile(request)
        assert response.sql.endswith(" LIMIT 100")

    async def test_export_without_limit(self, service, make_definition):
        request = CompileRequest(definition=make_definition(ReportType.COURSES_USERS))
        response = await service.compile(request)
        assert "LIMIT" not in response.sql

    async def test_unsupported_dialect(self, service, make_definition, session_context):
        request = CompileRequest(
            definition=make_definition(ReportType.USERS_WEBINAR),
            dialect=DialectName.SNOWFLAKE,
            context=session_context,
        )
        with pytest.raises(UnsupportedDialectCombination):
            await service.compile(request)

    async def test_available_fields_by_value(self, service, session_context):
        result = await service.available_fields("Groups/Branches - Courses", session_context)
        assert "group" in result


class TestReportServiceLegacy:
    """Legacy translation and migration"""

    async def test_translate_legacy(self, service, session_context):
        doc = LegacyReportDoc(
            id_filter="12", report_type_id=5, filter_name="Groups", filter_data=json.dumps({"filters": {}})
        )
        definition = await service.translate_legacy(
            LegacyTranslateRequest(legacy_report=doc, context=session_context)
        )
        assert definition.type == ReportType.GROUPS_COURSES
        assert definition.imported_from_legacy_id == "12"
        assert definition.platform == "acme.lms.test"

    async def test_translate_unmapped_legacy_type(self, service):
        doc = LegacyReportDoc(id_filter="12", report_type_id=999, filter_data="{}")
        with pytest.raises(UnknownReportTypeError):
            await service.translate_legacy(LegacyTranslateRequest(legacy_report=doc))

    async def test_migrate_without_reports(self, service, legacy_dao, definition_dao):
        outcome = await service.migrate(MigrateRequest())

        assert outcome == MigrationOutcome()
        legacy_dao.fetch_legacy_reports.assert_awaited_once()
        definition_dao.batch_write.assert_not_called()


class TestReportServiceDefinitions:
    """Stored definition lookups"""

    async def test_get_definition_missing(self, service):
        assert await service.get_definition("nope") is None

    async def test_get_definition(self, service, definition_dao, make_definition):
        definition = make_definition(ReportType.COURSES_USERS)
        definition_dao.get_by_id.return_value = Mock(payload=definition.model_dump(mode="json", by_alias=True))

        loaded = await service.get_definition(definition.id_report)

        assert loaded.id_report == definition.id_report
        assert loaded.type == ReportType.COURSES_USERS

    async def test_get_all_definitions(self, service, definition_dao):
        row = Mock(
            id_report="abc",
            report_type="Courses - Users",
            title="Courses",
            platform="acme.lms.test",
            imported_from_legacy_id=None,
        )
        definition_dao.get_all.return_value = [row]

        summaries = await service.get_all_definitions()

        assert summaries[0].id_report == "abc"
        assert summaries[0].type == ReportType.COURSES_USERS
