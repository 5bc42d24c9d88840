"""
Unit tests for the Users - Webinar Sessions compiler.
"""

import pytest

from app.reports.constants import DateConditions, ReportType
from app.reports.exceptions import UnsupportedDialectCombination
from app.reports.schemas import DateFilter, EnrollmentFilter, InstructorsFilter, SelectionInfo, SessionDates


def range_filter(start, end):
    return DateFilter.model_validate({"any": False, "type": "range", "from": start, "to": end})


class TestUsersWebinar:
    """Athena-only webinar session rows"""

    async def test_default_definition(self, make_definition, compile_sql):
        sql = await compile_sql(make_definition(ReportType.USERS_WEBINAR))

        assert sql.split("\n")[0] == (
            'SELECT SUBSTR(ARBITRARY(cu.userid), 2) AS "Username", ARBITRARY(lc.name) AS "Course Name"'
        )
        assert "FROM (SELECT * FROM learning_courseuser_aggregate WHERE TRUE) AS lcu_a" in sql
        assert "FROM learning_course WHERE course_type = 'webinar'" in sql
        assert "JOIN (SELECT * FROM webinar_session_user_details WHERE TRUE) AS wsud" in sql
        assert "GROUP BY lcu_a.idUser, lcu_a.idCourse, wsud.id_session" in sql

    async def test_snowflake_is_not_supported(self, make_definition, compile_sql):
        with pytest.raises(UnsupportedDialectCombination):
            await compile_sql(make_definition(ReportType.USERS_WEBINAR), "snowflake")

    async def test_all_statuses_do_not_restrict(self, make_definition, compile_sql):
        sql = await compile_sql(make_definition(ReportType.USERS_WEBINAR))
        assert "wsud.waiting" not in sql

    async def test_enrollment_statuses_with_waiting_list(self, make_definition, compile_sql):
        enrollment = EnrollmentFilter(in_progress=False, suspended=False)
        sql = await compile_sql(make_definition(ReportType.USERS_WEBINAR, enrollment=enrollment))
        assert (
            "AND ((wsud.status IN (0,2) AND wsud.waiting = 0) OR (wsud.status = -2 AND wsud.waiting = 1))"
        ) in sql

    async def test_only_waiting_list(self, make_definition, compile_sql):
        enrollment = EnrollmentFilter(completed=False, in_progress=False, not_started=False, suspended=False)
        sql = await compile_sql(make_definition(ReportType.USERS_WEBINAR, enrollment=enrollment))
        assert "AND (wsud.status = -2 AND wsud.waiting = 1)" in sql

    async def test_session_dates_keep_enrollments_without_session(self, make_definition, compile_sql):
        session_dates = SessionDates(
            start_date=range_filter("2024-05-01", "2024-05-31"),
            end_date=range_filter("2024-06-01", "2024-06-30"),
            conditions=DateConditions.AT_LEAST_ONE_CONDITION,
        )
        sql = await compile_sql(make_definition(ReportType.USERS_WEBINAR, session_dates=session_dates))
        assert (
            "AND (wsud.id_user IS NULL OR ((DATE(wsud.date_begin) >= DATE '2024-05-01' "
            "AND DATE(wsud.date_begin) <= DATE '2024-05-31') OR (DATE(wsud.date_end) >= DATE '2024-06-01' "
            "AND DATE(wsud.date_end) <= DATE '2024-06-30')))"
        ) in sql

    async def test_instructors_filter(self, make_definition, compile_sql):
        instructors = InstructorsFilter(all=False, instructors=[SelectionInfo(id=31), SelectionInfo(id=32)])
        sql = await compile_sql(make_definition(ReportType.USERS_WEBINAR, instructors=instructors))
        assert (
            "AND id_session IN (SELECT id_session FROM webinar_session_instructor WHERE id_user IN (31,32))"
        ) in sql

    async def test_user_and_course_additional_fields(self, make_definition, compile_sql):
        definition = make_definition(
            ReportType.USERS_WEBINAR,
            ["user_userid", "course_name", "user_extrafield_1", "user_extrafield_2", "course_extrafield_7"],
        )
        sql = await compile_sql(definition)

        assert sql.count("LEFT JOIN core_user_field_value AS cufv ON cufv.id_user = lcu_a.idUser") == 1
        assert (
            "LEFT JOIN core_user_field_dropdown_translations AS cufdt_1 ON cufdt_1.id_option = cufv.field_1 "
            "AND cufdt_1.lang_code = 'english'"
        ) in sql
        assert 'ARBITRARY(cufdt_1.translation) AS "Department"' in sql
        assert "DATE_FORMAT(ARBITRARY(cufv.field_2), '%Y-%m-%d') AS \"Hired On\"" in sql
        assert 'ARBITRARY(lcfv.field_7) AS "Cost Center"' in sql
