# app/reports/types/groups_courses.py
"""Groups/Branches - Courses: one row per group (or branch) and course."""

from typing import List

from app.reports.constants import AdditionalFieldEntity, CourseuserLevel, ReportType
from app.reports.fields import FieldId
from app.reports.handlers.base import FieldHandlerSet
from app.reports.handlers.courses import CourseFieldHandlers
from app.reports.handlers.statistics import CourseStatisticsHandlers
from app.reports.legacy import LegacySpec
from app.reports.schemas import CoursesFilter, GroupsFilter, ReportDefinition, UsersFilter
from app.reports.types.base import ReportTypeConfig, core_user_table, course_expiration_filter, default_date

GROUP_FIELDS = (FieldId.GROUP_GROUP_OR_BRANCH_NAME, FieldId.GROUP_MEMBERS_COUNT)

GROUP_COURSE_FIELDS = (
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

GROUP_STATISTICS_FIELDS = (
    FieldId.STATS_ENROLLED_USERS,
    FieldId.STATS_NOT_STARTED_USERS,
    FieldId.STATS_NOT_STARTED_USERS_PERCENTAGE,
    FieldId.STATS_IN_PROGRESS_USERS,
    FieldId.STATS_IN_PROGRESS_USERS_PERCENTAGE,
    FieldId.STATS_COMPLETED_USERS,
    FieldId.STATS_COMPLETED_USERS_PERCENTAGE,
    FieldId.STATS_TOTAL_TIME_IN_COURSE,
    FieldId.STATS_SESSION_TIME,
)


class GroupFieldHandlers(FieldHandlerSet):
    def renderers(self):
        return {
            FieldId.GROUP_GROUP_OR_BRANCH_NAME: self.name,
            FieldId.GROUP_MEMBERS_COUNT: lambda state: state.column("cgm_count.idstMemberCount"),
        }

    @staticmethod
    def name(state) -> str:
        """Branches render as ``(code) translation``; plain groups drop their leading slash."""
        code = state.column("coct.code")
        groupid = state.value(f"SUBSTR({state.col('cg.groupid')}, 2)")
        return (
            f"CASE WHEN {state.column('coct.idOrg')} IS NOT NULL THEN "
            f"CONCAT(CASE WHEN {code} <> '' THEN CONCAT('(', {code}, ') ') ELSE '' END, "
            f"{state.column('coc.translation')}) "
            f"ELSE {groupid} END"
        )


class GroupsCoursesReport(ReportTypeConfig):
    report_type = ReportType.GROUPS_COURSES
    mandatory_fields = (FieldId.GROUP_GROUP_OR_BRANCH_NAME, FieldId.GROUP_MEMBERS_COUNT, FieldId.COURSE_NAME)
    default_sort_field = FieldId.GROUP_GROUP_OR_BRANCH_NAME
    visibility_entities = ("users", "groups", "courses")
    catalogue_groups = {
        "group": GROUP_FIELDS,
        "course": GROUP_COURSE_FIELDS,
        "statistics": GROUP_STATISTICS_FIELDS,
    }
    additional_field_groups = {AdditionalFieldEntity.COURSE: "course"}
    additional_field_keys = {AdditionalFieldEntity.COURSE: "lc.idCourse"}
    legacy = LegacySpec(
        imports=("users", "courses"),
        sections=(("course", "course_"), ("stat", "stats_"), ("group", "group_")),
    )

    def build_handler_sets(self):
        return (
            GroupFieldHandlers(),
            CourseFieldHandlers(),
            CourseStatisticsHandlers(rounded=True, strict_not_started=True),
        )

    def apply_default_filters(self, definition: ReportDefinition) -> None:
        definition.users = UsersFilter(all=True)
        definition.groups = GroupsFilter(all=True)
        definition.courses = CoursesFilter(all=True)
        definition.course_expiration_date = default_date()

    def build_base(self, state) -> None:
        ident, col, filters = state.ident, state.col, state.filters
        groups_filter = state.id_filter(ident("idst"), filters.groups)

        group_table = "SELECT * FROM core_group WHERE TRUE" + groups_filter
        # Hidden groups are skipped, org-chart groups are hidden but kept
        group_table += f" AND ({ident('hidden')} = 'false' OR {ident('groupid')} LIKE '/oc|_%' ESCAPE '|')"
        state.ctx.add_from(f"({group_table}) AS cg")

        members_table = "SELECT * FROM core_group_members WHERE TRUE" + groups_filter
        state.ctx.add_from(f"JOIN ({members_table}) AS cgm ON {col('cgm.idst')} = {col('cg.idst')}")

        count_table = (
            f"SELECT {ident('idst')}, COUNT({ident('idstMember')}) AS {ident('idstMemberCount')} "
            f"FROM core_group_members WHERE TRUE{groups_filter} GROUP BY {ident('idst')}"
        )
        state.ctx.add_from(f"JOIN ({count_table}) AS cgm_count ON {col('cgm_count.idst')} = {col('cg.idst')}")
        state.ctx.add_from(f"JOIN ({core_user_table(state)}) AS cu ON {col('cu.idst')} = {col('cgm.idstMember')}")

        enrollment_table = "SELECT * FROM learning_courseuser_aggregate WHERE TRUE"
        enrollment_table += state.id_filter(ident("idUser"), filters.users)
        enrollment_table += state.id_filter(ident("idCourse"), filters.courses)
        users = state.definition.users
        if users is not None and users.show_only_learners:
            enrollment_table += f" AND {ident('level')} = {CourseuserLevel.STUDENT.value}"
        state.ctx.add_from(
            f"JOIN ({enrollment_table}) AS lcu_a ON {col('lcu_a.idUser')} = {col('cgm.idstMember')}"
        )

        course_table = "SELECT * FROM learning_course WHERE TRUE"
        course_table += state.id_filter(ident("idCourse"), filters.courses)
        course_table += course_expiration_filter(state)
        state.ctx.add_from(f"JOIN ({course_table}) AS lc ON {col('lc.idCourse')} = {col('lcu_a.idCourse')}")

        state.ctx.add_from(f"LEFT JOIN core_org_chart_tree AS coct ON {col('coct.idst_oc')} = {col('cg.idst')}")
        state.ctx.add_from(
            f"LEFT JOIN core_org_chart AS coc ON {col('coc.id_dir')} = {col('coct.idOrg')} "
            f"AND {col('coc.lang_code')} = {state.dialect.case_literal(state.session.lang_code)}"
        )

    def group_by(self, state) -> List[str]:
        return [state.col("cg.idst"), state.col("lcu_a.idCourse")]
