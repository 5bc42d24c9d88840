"""
Unit tests for the legacy report migration orchestrator.
"""

import json
from unittest.mock import AsyncMock, Mock

import pytest

from app.reports.constants import ReportType
from app.reports.exceptions import ReportStoreError
from app.reports.interfaces import LegacyReportBatch
from app.reports.migration import MigrationOrchestrator, definition_size
from app.reports.schemas import LegacyReportDoc, MigrationPayload, PlatformFeatures, SessionContext


def legacy_doc(id_filter, report_type_id=4, filter_data=None, name=None):
    return LegacyReportDoc(
        id_filter=id_filter,
        report_type_id=report_type_id,
        filter_name=name or f"Report {id_filter}",
        filter_data=json.dumps(filter_data if filter_data is not None else {"filters": {}}),
    )


@pytest.fixture
def store():
    store = Mock()
    store.get_already_migrated_ids = AsyncMock(return_value=[])
    store.batch_write = AsyncMock()
    return store


@pytest.fixture
def source():
    source = Mock()
    source.fetch_legacy_reports = AsyncMock(return_value=None)
    return source


@pytest.fixture
def orchestrator(session_context, source, store):
    return MigrationOrchestrator(session_context, source, store)


class TestMigrationOrchestrator:
    """Fetch, translate, size-check and persist"""

    async def test_nothing_to_migrate(self, orchestrator, store):
        outcome = await orchestrator.migrate_reports(MigrationPayload())

        assert outcome.migrated == []
        assert outcome.not_migrated == []
        store.batch_write.assert_not_called()

    async def test_already_migrated_ids_excluded_from_fetch(self, orchestrator, source, store):
        store.get_already_migrated_ids.return_value = ["3", "1"]

        await orchestrator.migrate_reports(MigrationPayload(types=[4], legacy_report_migrated_ids=["2"]))

        payload = source.fetch_legacy_reports.call_args.args[0]
        assert payload.legacy_report_migrated_ids == ["1", "2", "3"]
        assert payload.types == [4]

    async def test_partial_failure(self, orchestrator, source, store):
        source.fetch_legacy_reports.return_value = LegacyReportBatch(
            reports=[
                legacy_doc("1"),
                legacy_doc("2", filter_data={"fields": {}}),
                legacy_doc("3", report_type_id=1),
                legacy_doc("4", report_type_id=999),
                legacy_doc("5", report_type_id=5),
            ]
        )

        outcome = await orchestrator.migrate_reports(MigrationPayload())

        assert [report.title for report in outcome.migrated] == ["Report 1", "Report 5"]
        assert [(report.id, report.legacy_type) for report in outcome.not_migrated] == [
            ("2", 4),
            ("3", 1),
            ("4", 999),
        ]
        written = store.batch_write.call_args.args[0]
        assert [definition.imported_from_legacy_id for definition in written] == ["1", "5"]
        assert [report.id for report in outcome.migrated] == [definition.id_report for definition in written]

    async def test_disabled_plugin_not_migrated(self, source, store):
        session = SessionContext(features=PlatformFeatures())
        source.fetch_legacy_reports.return_value = LegacyReportBatch(reports=[legacy_doc("9", report_type_id=26)])

        outcome = await MigrationOrchestrator(session, source, store).migrate_reports(MigrationPayload())

        assert [report.id for report in outcome.not_migrated] == ["9"]
        store.batch_write.assert_not_called()

    async def test_oversized_definition_not_migrated(self, session_context, source, store):
        source.fetch_legacy_reports.return_value = LegacyReportBatch(reports=[legacy_doc("1")])
        orchestrator = MigrationOrchestrator(session_context, source, store, size_limit=100)

        outcome = await orchestrator.migrate_reports(MigrationPayload())

        assert outcome.migrated == []
        assert outcome.not_migrated[0].id == "1"

    async def test_long_title_exceeds_default_limit(self, orchestrator, source, store):
        source.fetch_legacy_reports.return_value = LegacyReportBatch(
            reports=[
                legacy_doc("1", filter_data={"fields": {}}),
                legacy_doc("2", name="x" * 400001),
                legacy_doc("3"),
            ]
        )

        outcome = await orchestrator.migrate_reports(MigrationPayload())

        assert len(outcome.migrated) == 1
        assert [report.id for report in outcome.not_migrated] == ["1", "2"]
        written = store.batch_write.call_args.args[0]
        assert [definition.imported_from_legacy_id for definition in written] == ["3"]

    async def test_store_failure_propagates(self, orchestrator, source, store):
        source.fetch_legacy_reports.return_value = LegacyReportBatch(reports=[legacy_doc("1")])
        store.batch_write.side_effect = ReportStoreError("down")

        with pytest.raises(ReportStoreError):
            await orchestrator.migrate_reports(MigrationPayload())

    async def test_source_failure_propagates(self, orchestrator, source, store):
        source.fetch_legacy_reports.side_effect = ReportStoreError("down")

        with pytest.raises(ReportStoreError):
            await orchestrator.migrate_reports(MigrationPayload())
        store.batch_write.assert_not_called()


class TestDefinitionSize:
    def test_size_counts_utf8_bytes(self, make_definition):
        definition = make_definition(ReportType.COURSES_USERS)
        ascii_size = definition_size(definition)
        definition.title = "Test report é"
        assert definition_size(definition) > ascii_size + 1
