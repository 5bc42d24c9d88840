"""
Unit tests for the Certifications - Users compiler.
"""

import pytest

from app.reports.constants import DateConditions, ReportType
from app.reports.exceptions import DisabledReportTypeError
from app.reports.schemas import CertificationsFilter, DateFilter


def range_filter(start, end):
    return DateFilter.model_validate({"any": False, "type": "range", "from": start, "to": end})


class TestCertificationsUsers:
    """Certification chain and status filters"""

    async def test_base_chain_and_default_status(self, make_definition, compile_sql):
        sql = await compile_sql(make_definition(ReportType.CERTIFICATIONS_USERS))

        assert sql.startswith('SELECT ARBITRARY(cert.title) AS "Certification Title"')
        assert "FROM (SELECT * FROM certification_user WHERE TRUE) AS ceu" in sql
        assert "JOIN certification_item AS ci ON ceu.id_cert_item = ci.id" in sql
        assert "AND cert.deleted = 0" in sql
        # Active and expired kept, archived excluded
        assert "AND ceu.archived = 0" in sql
        assert "GROUP BY cert.id_cert" in sql

    async def test_snowflake_deleted_flag(self, make_definition, compile_sql):
        sql = await compile_sql(make_definition(ReportType.CERTIFICATIONS_USERS), "snowflake")
        assert 'AND cert."deleted" = FALSE' in sql

    async def test_only_active(self, make_definition, compile_sql):
        definition = make_definition(
            ReportType.CERTIFICATIONS_USERS,
            certifications=CertificationsFilter(all=True, expired_certifications=False),
        )
        sql = await compile_sql(definition)
        assert (
            "AND ceu.archived = 0 AND (ceu.on_datetime <= NOW() AND (ceu.expire_at > NOW() OR ceu.expire_at IS NULL))"
        ) in sql

    async def test_archived_included(self, make_definition, compile_sql):
        definition = make_definition(
            ReportType.CERTIFICATIONS_USERS,
            certifications=CertificationsFilter(all=True, active_certifications=False, archived_certifications=True),
        )
        sql = await compile_sql(definition)
        assert "AND (ceu.expire_at < NOW() OR ceu.archived = 1)" in sql

    async def test_no_toggle_keeps_non_archived(self, make_definition, compile_sql):
        definition = make_definition(
            ReportType.CERTIFICATIONS_USERS,
            certifications=CertificationsFilter(
                all=True, active_certifications=False, expired_certifications=False, archived_certifications=False
            ),
        )
        sql = await compile_sql(definition)
        assert "AND ceu.archived = 0" in sql
        assert "AND FALSE" not in sql

    async def test_only_archived(self, make_definition, compile_sql):
        definition = make_definition(
            ReportType.CERTIFICATIONS_USERS,
            certifications=CertificationsFilter(
                all=True, active_certifications=False, expired_certifications=False, archived_certifications=True
            ),
        )
        sql = await compile_sql(definition)
        assert "AND ceu.archived = 1" in sql
        assert "archived = 0" not in sql
        assert "AND FALSE" not in sql
        assert "OR ceu.archived = 1" not in sql

    async def test_issue_and_expiration_dates(self, make_definition, compile_sql):
        definition = make_definition(
            ReportType.CERTIFICATIONS_USERS,
            certifications=CertificationsFilter(
                all=True,
                certification_date=range_filter("2024-01-01", "2024-01-31"),
                certification_expiration_date=range_filter("2025-01-01", "2025-12-31"),
                conditions=DateConditions.AT_LEAST_ONE_CONDITION,
            ),
        )
        sql = await compile_sql(definition)
        assert (
            "AND ((DATE(ceu.on_datetime) >= DATE '2024-01-01' AND DATE(ceu.on_datetime) <= DATE '2024-01-31') "
            "OR (DATE(ceu.expire_at) >= DATE '2025-01-01' AND DATE(ceu.expire_at) <= DATE '2025-12-31'))"
        ) in sql

    async def test_duration_units(self, make_definition, compile_sql):
        definition = make_definition(ReportType.CERTIFICATIONS_USERS, ["certification_title", "certification_duration"])
        sql = await compile_sql(definition)
        assert "WHEN ARBITRARY(cert.duration) = 0 THEN 'Never'" in sql

    async def test_requires_certification_plugin(self, make_definition, compile_sql, session_context):
        definition = make_definition(ReportType.CERTIFICATIONS_USERS)
        session = session_context.model_copy(deep=True)
        session.features.certification = False
        with pytest.raises(DisabledReportTypeError):
            await compile_sql(definition, session=session)
