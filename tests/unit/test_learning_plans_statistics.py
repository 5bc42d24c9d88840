"""
Unit tests for the Learning plans - Users Statistics compiler.
"""

import pytest

from app.reports.constants import AdditionalFieldEntity, DateFilterType, DateOperator, ReportType
from app.reports.exceptions import DisabledReportTypeError, UnsupportedDialectCombination
from app.reports.schemas import DateFilter
from tests.conftest import FakeCatalogue


class TestLearningPlansStatistics:
    """Snowflake-only learning plan statistics"""

    async def test_default_definition(self, make_definition, compile_sql):
        sql = await compile_sql(make_definition(ReportType.LP_USERS_STATISTICS), "snowflake")

        assert sql.startswith('SELECT ANY_VALUE(lcp."path_name") AS "Learning Plan Name"')
        assert 'FROM (SELECT * FROM learning_coursepath WHERE TRUE) AS lcp' in sql
        assert 'JOIN (SELECT * FROM learning_coursepath_user WHERE TRUE) AS lcpu ON lcp."id_path" = lcpu."id_path"' in sql
        assert "AND cu.\"userid\" <> '/Anonymous'" in sql
        assert 'GROUP BY lcp."id_path"' in sql
        assert sql.endswith('ORDER BY LOWER("Learning Plan Name") ASC')

    async def test_athena_is_not_supported(self, make_definition, compile_sql):
        with pytest.raises(UnsupportedDialectCombination):
            await compile_sql(make_definition(ReportType.LP_USERS_STATISTICS), "athena")

    async def test_requires_both_toggles(self, make_definition, compile_sql, session_context):
        definition = make_definition(ReportType.LP_USERS_STATISTICS)
        session = session_context.model_copy(deep=True)
        session.features.lp_statistics_report = False
        with pytest.raises(DisabledReportTypeError):
            await compile_sql(definition, "snowflake", session=session)

    async def test_enrollment_date_on_assignment(self, make_definition, compile_sql):
        definition = make_definition(
            ReportType.LP_USERS_STATISTICS,
            enrollment_date=DateFilter(any=False, type=DateFilterType.RELATIVE, operator=DateOperator.IS_AFTER, days=7),
        )
        sql = await compile_sql(definition, "snowflake")
        assert 'FROM learning_coursepath_user WHERE TRUE AND TO_DATE("date_assign") >= DATEADD(day, -7, current_date())' in sql

    async def test_completion_date_uses_mandatory_courses_cte(self, make_definition, compile_sql):
        definition = make_definition(
            ReportType.LP_USERS_STATISTICS,
            completion_date=DateFilter(any=False, type=DateFilterType.RELATIVE, operator=DateOperator.IS_AFTER, days=30),
        )
        sql = await compile_sql(definition, "snowflake")
        assert sql.startswith("WITH learning_coursepath_coursesuser_mandatory_complete_with AS (")
        assert (
            'HAVING lcpcc."coursesmandatory" = COUNT(DISTINCT lcu."idcourse") '
            'AND TO_DATE(MAX(lcu."date_complete")) >= DATEADD(day, -30, current_date())'
        ) in sql
        assert "JOIN learning_coursepath_coursesuser_mandatory_complete_with AS lcpcumcw" in sql

    async def test_statistics_share_progress_joins(self, make_definition, compile_sql):
        definition = make_definition(
            ReportType.LP_USERS_STATISTICS,
            ["lp_name", "stats_path_enrolled_users", "stats_path_completed_users", "stats_path_in_progress_users"],
        )
        sql = await compile_sql(definition, "snowflake")
        assert 'COUNT(DISTINCT lcpu."iduser") AS "Enrolled Users"' in sql
        assert sql.count("LEFT JOIN learning_coursepath_courses_count AS lcpcc") == 1


class TestLearningPlanAdditionalFields:
    """Learning plan additional fields pivoted through CTEs"""

    async def test_pivot_ctes(self, make_definition, compile_sql):
        definition = make_definition(ReportType.LP_USERS_STATISTICS, ["lp_name", "lp_extrafield_4"])
        sql = await compile_sql(definition, "snowflake")

        assert sql.startswith(
            'WITH learning_coursepath_field_value_with AS (SELECT "id_path", "field_4" FROM learning_plan_field_value), '
            'learning_plan_additional_fields_translations AS (SELECT lpfv."id_path", lpfv."field_4" AS "field_4" '
            "FROM learning_coursepath_field_value_with AS lpfv)"
        )
        assert 'LEFT JOIN learning_plan_additional_fields_translations AS lpaft ON lpaft."id_path" = lcp."id_path"' in sql
        assert 'ANY_VALUE(lpaft."field_4") AS "Track"' in sql

    async def test_unmaterialized_field_renders_empty(self, make_definition, compile_sql, catalogue):
        catalogue.missing.add((AdditionalFieldEntity.LEARNING_PLAN, 4))
        definition = make_definition(ReportType.LP_USERS_STATISTICS, ["lp_name", "lp_extrafield_4"])
        sql = await compile_sql(definition, "snowflake")
        assert "'' AS \"Track\"" in sql
        assert "WITH" not in sql

    async def test_unknown_additional_field_is_skipped(self, make_definition, compile_sql):
        definition = make_definition(ReportType.LP_USERS_STATISTICS, ["lp_name", "lp_extrafield_99"])
        sql = await compile_sql(definition, "snowflake", catalogue=FakeCatalogue())
        assert "extrafield" not in sql and "field_99" not in sql
