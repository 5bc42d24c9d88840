"""
Unit tests for the Courses - Users compiler and the shared compilation pipeline.
"""

import re

import pytest

from app.reports.compiler import ReportCompiler
from app.reports.constants import (
    CourseTypeFilter,
    DateConditions,
    DateFilterType,
    DateOperator,
    ReportType,
    SortDirection,
    SortSelector,
    UserLevel,
)
from app.reports.exceptions import ReportError
from app.reports.interfaces import IdSelection
from app.reports.registry import get_report_type_config
from app.reports.schemas import CoursesFilter, DateFilter, SortingOptions, UsersFilter
from app.reports.translations import StaticTranslationService
from tests.conftest import FakeVisibility


EXPECTED_DEFAULT_SQL = (
    'SELECT ARBITRARY(lc.name) AS "Course Name"\n'
    "FROM (SELECT * FROM learning_course WHERE TRUE) AS lc "
    "LEFT JOIN (SELECT * FROM learning_courseuser_aggregate WHERE TRUE AND level = 3) AS lcu_a "
    "ON lc.idCourse = lcu_a.idCourse "
    "JOIN (SELECT * FROM core_user WHERE valid = 1 AND (expiration IS NULL OR expiration > NOW())) AS cu "
    "ON cu.idst = lcu_a.idUser\n"
    "WHERE TRUE AND (cu.userid IS NULL OR cu.userid <> '/Anonymous')\n"
    "GROUP BY lc.idCourse\n"
    'ORDER BY LOWER("Course Name") ASC'
)


class TestCoursesUsersBase:
    """Base chain, tenant predicate, grouping and ordering"""

    async def test_default_definition_on_athena(self, make_definition, compile_sql):
        definition = make_definition(ReportType.COURSES_USERS)
        sql = await compile_sql(definition)
        assert sql == EXPECTED_DEFAULT_SQL

    async def test_snowflake_quotes_identifiers(self, make_definition, compile_sql):
        definition = make_definition(ReportType.COURSES_USERS)
        sql = await compile_sql(definition, "snowflake")
        assert sql.startswith('SELECT ANY_VALUE(lc."name") AS "Course Name"')
        assert 'AND "level" = 3' in sql
        assert '"valid" = 1' in sql
        assert '("expiration" IS NULL OR "expiration" > current_timestamp())' in sql
        assert 'GROUP BY lc."idcourse"' in sql

    async def test_compilation_is_deterministic(self, make_definition, compile_sql):
        definition = make_definition(
            ReportType.COURSES_USERS,
            ["course_name", "course_category_name", "stats_enrolled_users", "stats_total_time_in_course"],
        )
        assert await compile_sql(definition) == await compile_sql(definition)

    async def test_preview_never_sorts(self, make_definition, compile_sql):
        definition = make_definition(ReportType.COURSES_USERS)
        sql = await compile_sql(definition, is_preview=True, limit=100)
        assert "ORDER BY" not in sql
        assert sql.endswith("GROUP BY lc.idCourse LIMIT 100")

    async def test_scheduled_run_sorts_like_export(self, make_definition, compile_sql):
        definition = make_definition(
            ReportType.COURSES_USERS,
            ["course_name", "stats_enrolled_users"],
            sorting_options=SortingOptions(
                selector=SortSelector.CUSTOM, selected_field="stats_enrolled_users", order_by=SortDirection.DESC
            ),
        )
        scheduled = await compile_sql(definition, limit=2000000, from_schedule=True)
        assert scheduled == await compile_sql(definition, limit=2000000)
        assert scheduled.endswith('ORDER BY "Enrolled Users" DESC LIMIT 2000000')

    async def test_negative_limit_rejected(self, make_definition, compile_sql):
        definition = make_definition(ReportType.COURSES_USERS)
        with pytest.raises(ReportError):
            await compile_sql(definition, limit=-1)

    async def test_custom_sort_on_numeric_field(self, make_definition, compile_sql):
        definition = make_definition(
            ReportType.COURSES_USERS,
            ["course_name", "stats_enrolled_users"],
            sorting_options=SortingOptions(
                selector=SortSelector.CUSTOM, selected_field="stats_enrolled_users", order_by=SortDirection.DESC
            ),
        )
        sql = await compile_sql(definition)
        assert sql.endswith('ORDER BY "Enrolled Users" DESC')

    async def test_sort_on_unselected_field_falls_back_to_default(self, make_definition, compile_sql):
        definition = make_definition(
            ReportType.COURSES_USERS,
            ["course_name"],
            sorting_options=SortingOptions(selector=SortSelector.CUSTOM, selected_field="course_code"),
        )
        sql = await compile_sql(definition)
        assert sql.endswith('ORDER BY LOWER("Course Name") ASC')


class TestCoursesUsersFields:
    """Field rendering and join de-duplication"""

    async def test_fields_render_in_definition_order(self, make_definition, compile_sql):
        definition = make_definition(ReportType.COURSES_USERS, ["course_code", "course_name", "stats_enrolled_users"])
        sql = await compile_sql(definition)
        select_line = sql.split("\n")[0]
        assert select_line == (
            'SELECT ARBITRARY(lc.code) AS "Course Code", ARBITRARY(lc.name) AS "Course Name", '
            'COUNT(DISTINCT(lcu_a.idUser)) AS "Enrolled Users"'
        )

    async def test_shared_join_added_once(self, make_definition, compile_sql):
        definition = make_definition(
            ReportType.COURSES_USERS,
            ["course_name", "stats_total_time_in_course", "stats_access_from_mobile", "stats_user_flow"],
        )
        sql = await compile_sql(definition)
        assert sql.count("LEFT JOIN learning_tracksession_aggregate AS lta") == 1

    async def test_unknown_field_is_skipped(self, make_definition, compile_sql):
        definition = make_definition(ReportType.COURSES_USERS, ["course_name", "not_a_field"])
        sql = await compile_sql(definition)
        assert sql == EXPECTED_DEFAULT_SQL

    async def test_gated_field_is_skipped_when_plugin_off(self, make_definition, compile_sql, session_context):
        session = session_context.model_copy(deep=True)
        session.features.flow = False
        definition = make_definition(ReportType.COURSES_USERS, ["course_name", "stats_user_flow"])
        sql = await compile_sql(definition, session=session)
        assert "userFlow" not in sql

    async def test_empty_selection_is_an_error(self, make_definition, compile_sql):
        definition = make_definition(ReportType.COURSES_USERS, ["not_a_field"])
        with pytest.raises(ReportError):
            await compile_sql(definition)

    async def test_literals_follow_session_language(self, make_definition, session_context, catalogue, visibility):
        session = session_context.model_copy(update={"lang_code": "italian"})
        translations = StaticTranslationService({"italian": {"course_name": "Nome corso", "yes": "Sì"}})
        definition = make_definition(ReportType.COURSES_USERS, ["course_name", "course_expired"])
        config = get_report_type_config(definition.type, session)

        sql = await ReportCompiler(config, definition, session, catalogue, visibility, translations).compile("athena")

        assert 'AS "Nome corso"' in sql
        assert "THEN 'Sì'" in sql


class TestCoursesUsersFilters:
    """Visibility, course type, expiration and enrollment date filters"""

    async def test_restricted_selection_renders_in_list(self, make_definition, compile_sql):
        definition = make_definition(ReportType.COURSES_USERS, courses=CoursesFilter(all=False))
        visibility = FakeVisibility(courses=IdSelection.only([4, 9]))
        sql = await compile_sql(definition, visibility=visibility)
        assert "FROM learning_course WHERE TRUE AND idCourse IN (4,9)" in sql
        assert "learning_courseuser_aggregate WHERE TRUE AND idCourse IN (4,9)" in sql
        assert visibility.calls == ["courses"]

    async def test_empty_selection_renders_false(self, make_definition, compile_sql):
        definition = make_definition(ReportType.COURSES_USERS, users=UsersFilter(all=False))
        visibility = FakeVisibility(users=IdSelection.only([]))
        sql = await compile_sql(definition, visibility=visibility)
        assert "learning_courseuser_aggregate WHERE TRUE AND FALSE" in sql

    async def test_power_user_always_resolved(self, make_definition, compile_sql, session_context):
        session = session_context.model_copy(update={"user_level": UserLevel.POWER_USER})
        definition = make_definition(ReportType.COURSES_USERS)
        visibility = FakeVisibility(users=IdSelection.only([1]), courses=IdSelection.only([2]))
        sql = await compile_sql(definition, session=session, visibility=visibility)
        assert sorted(visibility.calls) == ["courses", "users"]
        assert "idUser IN (1)" in sql

    async def test_power_user_without_visibility_check(self, make_definition, compile_sql, session_context):
        session = session_context.model_copy(update={"user_level": UserLevel.POWER_USER})
        definition = make_definition(ReportType.COURSES_USERS)
        visibility = FakeVisibility()
        await compile_sql(definition, session=session, visibility=visibility, check_visibility=False)
        assert visibility.calls == []

    async def test_course_type_filter(self, make_definition, compile_sql):
        definition = make_definition(
            ReportType.COURSES_USERS, courses=CoursesFilter(all=True, course_type=CourseTypeFilter.ILT)
        )
        sql = await compile_sql(definition)
        assert "FROM learning_course WHERE TRUE AND course_type = 'classroom'" in sql

    async def test_show_all_levels(self, make_definition, compile_sql):
        definition = make_definition(ReportType.COURSES_USERS, users=UsersFilter(all=True, hide_deactivated=False))
        sql = await compile_sql(definition)
        assert "level = 3" not in sql
        assert "FROM core_user WHERE TRUE AND (expiration IS NULL" in sql

    async def test_enrollment_dates_combined_with_or(self, make_definition, compile_sql):
        definition = make_definition(
            ReportType.COURSES_USERS,
            enrollment_date=DateFilter(any=False, type=DateFilterType.RELATIVE, operator=DateOperator.IS_AFTER, days=30),
            completion_date=DateFilter(any=False, type=DateFilterType.RELATIVE, operator=DateOperator.IS_BEFORE, days=1),
            conditions=DateConditions.AT_LEAST_ONE_CONDITION,
        )
        sql = await compile_sql(definition)
        assert (
            "AND (DATE(date_inscr) >= DATE_ADD('day', -30, CURRENT_DATE) "
            "OR DATE(date_complete) <= DATE_ADD('day', -1, CURRENT_DATE))"
        ) in sql

    async def test_course_expiration_date(self, make_definition, compile_sql):
        definition = make_definition(
            ReportType.COURSES_USERS,
            course_expiration_date=DateFilter.model_validate(
                {"any": False, "type": "range", "from": "2024-01-01", "to": "2024-06-30"}
            ),
        )
        sql = await compile_sql(definition)
        assert "(DATE(date_end) >= DATE '2024-01-01' AND DATE(date_end) <= DATE '2024-06-30')" in sql


class TestDialectEquivalence:
    """Both back-ends select the same columns in the same order"""

    async def test_same_aliases_on_both_dialects(self, make_definition, compile_sql):
        definition = make_definition(
            ReportType.COURSES_USERS,
            ["course_code", "course_name", "stats_enrolled_users", "stats_completed_users_percentage"],
        )
        athena = await compile_sql(definition, "athena")
        snowflake = await compile_sql(definition, "snowflake")

        def aliases(sql):
            return re.findall(r' AS ("[^"]+")', sql.split("\n")[0])

        assert aliases(athena) == aliases(snowflake)
        assert aliases(athena) == ['"Course Code"', '"Course Name"', '"Enrolled Users"', '"Users Completed (%)"']
