# app/reports/types/courses_users.py
"""Courses - Users: one row per course with enrollment and usage statistics."""

from typing import List

from app.reports.constants import (
    ANONYMOUS_USERID,
    AdditionalFieldEntity,
    CourseType,
    CourseTypeFilter,
    CourseuserLevel,
    DateConditions,
    ReportType,
)
from app.reports.fields import FieldId
from app.reports.handlers.courses import CourseFieldHandlers
from app.reports.handlers.statistics import CourseStatisticsHandlers
from app.reports.legacy import LegacySpec
from app.reports.schemas import CoursesFilter, LearningPlansFilter, ReportDefinition, UsersFilter
from app.reports.types.base import (
    ReportTypeConfig,
    core_user_table,
    course_expiration_filter,
    default_date,
    enrollment_dates_filter,
)

COURSE_FIELDS = (
    FieldId.COURSE_ID,
    FieldId.COURSE_UNIQUE_ID,
    FieldId.COURSE_CODE,
    FieldId.COURSE_NAME,
    FieldId.COURSE_CATEGORY_CODE,
    FieldId.COURSE_CATEGORY_NAME,
    FieldId.COURSE_STATUS,
    FieldId.COURSE_CREDITS,
    FieldId.COURSE_DURATION,
    FieldId.COURSE_TYPE,
    FieldId.COURSE_DATE_BEGIN,
    FieldId.COURSE_DATE_END,
    FieldId.COURSE_EXPIRED,
    FieldId.COURSE_CREATION_DATE,
    FieldId.COURSE_E_SIGNATURE,
    FieldId.COURSE_LANGUAGE,
    FieldId.COURSE_SKILLS,
)

USAGE_STATISTICS_FIELDS = (
    FieldId.STATS_TOTAL_TIME_IN_COURSE,
    FieldId.STATS_ENROLLED_USERS,
    FieldId.STATS_NOT_STARTED_USERS,
    FieldId.STATS_NOT_STARTED_USERS_PERCENTAGE,
    FieldId.STATS_IN_PROGRESS_USERS,
    FieldId.STATS_IN_PROGRESS_USERS_PERCENTAGE,
    FieldId.STATS_COMPLETED_USERS,
    FieldId.STATS_COMPLETED_USERS_PERCENTAGE,
    FieldId.STATS_SESSION_TIME,
    FieldId.STATS_COURSE_RATING,
)


class CoursesUsersReport(ReportTypeConfig):
    report_type = ReportType.COURSES_USERS
    mandatory_fields = (FieldId.COURSE_NAME,)
    default_sort_field = FieldId.COURSE_NAME
    visibility_entities = ("users", "courses")
    catalogue_groups = {
        "course": COURSE_FIELDS,
        "usageStatistics": USAGE_STATISTICS_FIELDS,
        "mobileAppStatistics": (FieldId.STATS_ACCESS_FROM_MOBILE, FieldId.STATS_PERCENTAGE_ACCESS_FROM_MOBILE),
        "flowStatistics": (FieldId.STATS_USER_FLOW, FieldId.STATS_USER_FLOW_PERCENTAGE),
        "flowMsTeamsStatistics": (FieldId.STATS_USER_FLOW_MS_TEAMS, FieldId.STATS_USER_FLOW_MS_TEAMS_PERCENTAGE),
    }
    additional_field_groups = {AdditionalFieldEntity.COURSE: "course"}
    additional_field_keys = {
        AdditionalFieldEntity.USER: "lcu_a.idUser",
        AdditionalFieldEntity.COURSE: "lc.idCourse",
    }
    legacy = LegacySpec(
        imports=("courses", "users"),
        sections=(("course", "course_"), ("stat", "stats_")),
    )

    def build_handler_sets(self):
        return (CourseFieldHandlers(), CourseStatisticsHandlers())

    def apply_default_filters(self, definition: ReportDefinition) -> None:
        definition.courses = CoursesFilter(all=True)
        definition.course_expiration_date = default_date()
        definition.users = UsersFilter(all=True, show_only_learners=True)
        definition.enrollment_date = default_date()
        definition.completion_date = default_date()
        definition.conditions = DateConditions.ALL_CONDITIONS
        definition.learning_plans = LearningPlansFilter(all=True)

    def build_base(self, state) -> None:
        ident, definition, filters = state.ident, state.definition, state.filters

        course_table = "SELECT * FROM learning_course WHERE TRUE"
        course_table += state.id_filter(ident("idCourse"), filters.courses)
        courses = definition.courses
        if courses is not None and courses.course_type == CourseTypeFilter.E_LEARNING:
            course_table += f" AND {ident('course_type')} = '{CourseType.ELEARNING.value}'"
        elif courses is not None and courses.course_type == CourseTypeFilter.ILT:
            course_table += f" AND {ident('course_type')} = '{CourseType.CLASSROOM.value}'"
        course_table += course_expiration_filter(state)
        state.ctx.add_from(f"({course_table}) AS lc")

        enrollment_table = "SELECT * FROM learning_courseuser_aggregate WHERE TRUE"
        enrollment_table += state.id_filter(ident("idUser"), filters.users)
        enrollment_table += state.id_filter(ident("idCourse"), filters.courses)
        if definition.users is not None and definition.users.show_only_learners:
            enrollment_table += f" AND {ident('level')} = {CourseuserLevel.STUDENT.value}"
        enrollment_table += enrollment_dates_filter(state)
        state.ctx.add_from(
            f"LEFT JOIN ({enrollment_table}) AS lcu_a ON {state.col('lc.idCourse')} = {state.col('lcu_a.idCourse')}"
        )
        state.ctx.add_from(
            f"JOIN ({core_user_table(state)}) AS cu ON {state.col('cu.idst')} = {state.col('lcu_a.idUser')}"
        )

    def tenant_predicate(self, state) -> str:
        userid = state.col("cu.userid")
        return f"AND ({userid} IS NULL OR {userid} <> {state.dialect.case_literal(ANONYMOUS_USERID)})"

    def group_by(self, state) -> List[str]:
        return [state.col("lc.idCourse")]
