"""
Unit tests for the report definition store and the legacy report source.
"""

from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError

from app.reports.constants import ReportType
from app.reports.dao import LegacyReportDAO, ReportDefinitionDAO
from app.reports.exceptions import ReportStoreError
from app.reports.models import LegacyReport, LegacyVisibilityRule
from app.reports.schemas import MigrationPayload, ReportDefinition


@pytest.fixture
def seeded_legacy(db_session):
    db_session.add_all(
        [
            LegacyReport(id_filter="1", report_type_id=4, filter_name="Course overview", filter_data="{}"),
            LegacyReport(id_filter="2", report_type_id=5, filter_name="Group overview", filter_data="{}"),
            LegacyReport(id_filter="3", report_type_id=4, filter_name="Course audit", filter_data="{}"),
            LegacyVisibilityRule(id_report="1", member_type="user", member_id="42"),
            LegacyVisibilityRule(id_report="9", member_type="group", member_id="7"),
        ]
    )
    db_session.commit()
    return db_session


class TestReportDefinitionDAO:
    """Definition store"""

    async def test_batch_write_and_read_back(self, db_session, make_definition):
        dao = ReportDefinitionDAO(db_session)
        definition = make_definition(ReportType.COURSES_USERS)

        await dao.batch_write([definition])

        row = await dao.get_by_id(definition.id_report)
        assert row.report_type == "Courses - Users"
        assert row.title == "Test report"
        assert row.payload["idReport"] == definition.id_report
        assert ReportDefinition.model_validate(row.payload) == definition

    async def test_get_by_id_missing(self, db_session):
        assert await ReportDefinitionDAO(db_session).get_by_id("missing") is None

    async def test_reimport_replaces_earlier_definition(self, db_session, make_definition):
        dao = ReportDefinitionDAO(db_session)
        first = make_definition(ReportType.COURSES_USERS, imported_from_legacy_id="57")
        await dao.batch_write([first])

        second = make_definition(ReportType.COURSES_USERS, imported_from_legacy_id="57")
        await dao.batch_write([second])

        rows = await dao.get_all()
        assert [row.id_report for row in rows] == [second.id_report]
        assert await dao.get_already_migrated_ids() == ["57"]

    async def test_only_imported_definitions_count_as_migrated(self, db_session, make_definition):
        dao = ReportDefinitionDAO(db_session)
        await dao.batch_write(
            [
                make_definition(ReportType.COURSES_USERS),
                make_definition(ReportType.GROUPS_COURSES, imported_from_legacy_id="8"),
            ]
        )
        assert await dao.get_already_migrated_ids() == ["8"]

    async def test_write_failure_rolls_back(self, make_definition):
        db = Mock()
        db.merge.side_effect = OperationalError("INSERT", {}, Exception("disk full"))
        dao = ReportDefinitionDAO(db)

        with pytest.raises(ReportStoreError):
            await dao.batch_write([make_definition(ReportType.COURSES_USERS)])
        db.rollback.assert_called_once()
        db.commit.assert_not_called()


class TestLegacyReportDAO:
    """Legacy report source"""

    async def test_fetch_all(self, seeded_legacy):
        batch = await LegacyReportDAO(seeded_legacy).fetch_legacy_reports(MigrationPayload())

        assert [report.id_filter for report in batch.reports] == ["1", "2", "3"]
        assert [(rule.id_report, rule.member_id) for rule in batch.visibility_rules] == [("1", "42")]

    async def test_filter_by_type_and_name(self, seeded_legacy):
        payload = MigrationPayload(types=[4], name="audit")
        batch = await LegacyReportDAO(seeded_legacy).fetch_legacy_reports(payload)
        assert [report.id_filter for report in batch.reports] == ["3"]

    async def test_migrated_ids_excluded(self, seeded_legacy):
        payload = MigrationPayload(legacy_report_migrated_ids=["1", "3"])
        batch = await LegacyReportDAO(seeded_legacy).fetch_legacy_reports(payload)
        assert [report.id_filter for report in batch.reports] == ["2"]

    async def test_overwrite_ignores_migrated_ids(self, seeded_legacy):
        payload = MigrationPayload(legacy_report_migrated_ids=["1", "3"], is_migration_with_overwrite=True)
        batch = await LegacyReportDAO(seeded_legacy).fetch_legacy_reports(payload)
        assert len(batch.reports) == 3

    async def test_no_rows(self, seeded_legacy):
        payload = MigrationPayload(types=[26])
        assert await LegacyReportDAO(seeded_legacy).fetch_legacy_reports(payload) is None

    async def test_read_failure(self):
        db = Mock()
        db.execute.side_effect = OperationalError("SELECT", {}, Exception("gone"))
        with pytest.raises(ReportStoreError):
            await LegacyReportDAO(db).fetch_legacy_reports(MigrationPayload())
