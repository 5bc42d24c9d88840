# app/reports/types/learning_plans_statistics.py
"""Learning plans - Users Statistics: one row per learning plan with enrollment statistics."""

from typing import List

from app.reports.constants import AdditionalFieldEntity, DialectName, EnrollmentStatus, ReportType
from app.reports.date_filters import build_date_filter
from app.reports.fields import FieldId, Label
from app.reports.handlers.base import FieldHandlerSet
from app.reports.legacy import LegacySpec
from app.reports.schemas import LearningPlansFilter, ReportDefinition, UsersFilter
from app.reports.types.base import ReportTypeConfig, core_user_table, default_date

LP_FIELDS = (
    FieldId.LP_NAME,
    FieldId.LP_CODE,
    FieldId.LP_CREDITS,
    FieldId.LP_UUID,
    FieldId.LP_LAST_EDIT,
    FieldId.LP_CREATION_DATE,
    FieldId.LP_DESCRIPTION,
    FieldId.LP_ASSOCIATED_COURSES,
    FieldId.LP_MANDATORY_ASSOCIATED_COURSES,
    FieldId.LP_STATUS,
    FieldId.LP_LANGUAGE,
)

LP_STATISTICS_FIELDS = (
    FieldId.STATS_PATH_COMPLETED_USERS,
    FieldId.STATS_PATH_COMPLETED_USERS_PERCENTAGE,
    FieldId.STATS_PATH_IN_PROGRESS_USERS,
    FieldId.STATS_PATH_IN_PROGRESS_USERS_PERCENTAGE,
    FieldId.STATS_PATH_NOT_STARTED_USERS,
    FieldId.STATS_PATH_NOT_STARTED_USERS_PERCENTAGE,
    FieldId.STATS_PATH_ENROLLED_USERS,
)

MANDATORY_COMPLETE_CTE = "learning_coursepath_coursesuser_mandatory_complete_with"


class LearningPlanFieldHandlers(FieldHandlerSet):
    columns = {
        FieldId.LP_NAME: "lcp.path_name",
        FieldId.LP_CODE: "lcp.path_code",
        FieldId.LP_CREDITS: "lcp.credits",
        FieldId.LP_UUID: "lcp.uuid",
        FieldId.LP_DESCRIPTION: "lcp.path_descr",
    }

    def renderers(self):
        return {
            FieldId.LP_LAST_EDIT: lambda state: state.datetime("lcp.last_update"),
            FieldId.LP_CREATION_DATE: lambda state: state.datetime("lcp.create_date"),
            FieldId.LP_ASSOCIATED_COURSES: lambda state: self._courses(state, "courses"),
            FieldId.LP_MANDATORY_ASSOCIATED_COURSES: lambda state: self._courses(state, "mandatory_courses"),
            FieldId.LP_STATUS: self.status,
            FieldId.LP_LANGUAGE: self.language,
        }

    @staticmethod
    def _courses(state, column: str) -> str:
        ident, col = state.ident, state.col
        counts = (
            f"SELECT {ident('id_path')}, COUNT({ident('id_item')}) AS {ident('courses')}, "
            f"COUNT(CASE WHEN {ident('is_required')} = 1 THEN {ident('id_item')} END) AS {ident('mandatory_courses')} "
            f"FROM learning_coursepath_courses GROUP BY {ident('id_path')}"
        )
        state.join_once("lpc", f"LEFT JOIN ({counts}) AS lpc ON {col('lpc.id_path')} = {col('lcp.id_path')}")
        return state.column(f"lpc.{column}")

    @staticmethod
    def status(state) -> str:
        status = state.column("lcp.status")
        return (
            f"CASE WHEN {status} = 0 THEN {state.literal(Label.LP_STATUS_UNDER_MAINTENANCE)} "
            f"WHEN {status} = 1 THEN {state.literal(Label.LP_STATUS_PUBLISHED)} "
            f"ELSE CAST({status} AS VARCHAR) END"
        )

    @staticmethod
    def language(state) -> str:
        col = state.col
        state.join_once(
            "lang",
            f"LEFT JOIN core_lang_language AS lang ON {col('lang.lang_code')} = {col('lcp.lang_code')}",
        )
        return state.column("lang.lang_description")


class LearningPlanStatisticsHandlers(FieldHandlerSet):
    """Enrollment statistics per plan, from completed versus mandatory course counts."""

    def renderers(self):
        return {
            FieldId.STATS_PATH_ENROLLED_USERS: self.enrolled,
            FieldId.STATS_PATH_COMPLETED_USERS: self.completed,
            FieldId.STATS_PATH_COMPLETED_USERS_PERCENTAGE: lambda state: self._percentage(state, self.completed(state)),
            FieldId.STATS_PATH_IN_PROGRESS_USERS: self.in_progress,
            FieldId.STATS_PATH_IN_PROGRESS_USERS_PERCENTAGE: lambda state: self._percentage(
                state, self.in_progress(state)
            ),
            FieldId.STATS_PATH_NOT_STARTED_USERS: self.not_started,
            FieldId.STATS_PATH_NOT_STARTED_USERS_PERCENTAGE: lambda state: self._percentage(
                state, self.not_started(state)
            ),
        }

    @staticmethod
    def enrolled(state) -> str:
        return f"COUNT(DISTINCT {state.col('lcpu.idUser')})"

    @staticmethod
    def _progress(state):
        col = state.col
        state.join_once(
            "lcpucc",
            f"LEFT JOIN learning_coursepath_user_completed_courses AS lcpucc "
            f"ON {col('lcpucc.idUser')} = {col('lcpu.idUser')} AND {col('lcpucc.idPath')} = {col('lcpu.id_path')}",
        )
        state.join_once(
            "lcpcc",
            f"LEFT JOIN learning_coursepath_courses_count AS lcpcc ON {col('lcpcc.id_path')} = {col('lcpu.id_path')}",
        )
        return f"COALESCE({col('lcpucc.completedCourses')}, 0)", col("lcpcc.coursesMandatory")

    def completed(self, state) -> str:
        done, required = self._progress(state)
        return f"SUM(CASE WHEN {required} > 0 AND {done} >= {required} THEN 1 ELSE 0 END)"

    def in_progress(self, state) -> str:
        done, required = self._progress(state)
        return f"SUM(CASE WHEN {done} > 0 AND ({required} IS NULL OR {done} < {required}) THEN 1 ELSE 0 END)"

    def not_started(self, state) -> str:
        done, _ = self._progress(state)
        return f"SUM(CASE WHEN {done} = 0 THEN 1 ELSE 0 END)"

    def _percentage(self, state, numerator: str) -> str:
        return state.dialect.percentage(numerator, self.enrolled(state))


class LearningPlansStatisticsReport(ReportTypeConfig):
    report_type = ReportType.LP_USERS_STATISTICS
    required_features = ("datalake_v3", "lp_statistics_report")
    dialects = frozenset({DialectName.SNOWFLAKE})
    mandatory_fields = (FieldId.LP_NAME,)
    default_sort_field = FieldId.LP_NAME
    visibility_entities = ("users", "learning_plans")
    catalogue_groups = {
        "lp": LP_FIELDS,
        "learningPlansStatistics": LP_STATISTICS_FIELDS,
    }
    additional_field_groups = {AdditionalFieldEntity.LEARNING_PLAN: "lp"}
    additional_field_keys = {
        AdditionalFieldEntity.USER: "lcpu.idUser",
        AdditionalFieldEntity.LEARNING_PLAN: "lcp.id_path",
    }
    legacy = LegacySpec(
        imports=("users", "plans"),
        sections=(("lp", "lp_"), ("stat", "stats_path_")),
    )

    def build_handler_sets(self):
        return (LearningPlanFieldHandlers(), LearningPlanStatisticsHandlers())

    def apply_default_filters(self, definition: ReportDefinition) -> None:
        definition.users = UsersFilter(all=True)
        definition.learning_plans = LearningPlansFilter(all=True)
        definition.enrollment_date = default_date()
        definition.completion_date = default_date()

    def build_base(self, state) -> None:
        ident, col, filters = state.ident, state.col, state.filters
        path_filter = state.id_filter(ident("id_path"), filters.learning_plans)
        users_filter = state.id_filter(ident("idUser"), filters.users)

        state.ctx.add_from(f"(SELECT * FROM learning_coursepath WHERE TRUE{path_filter}) AS lcp")
        enrollments = f"SELECT * FROM learning_coursepath_user WHERE TRUE{path_filter}{users_filter}"
        enrollments += build_date_filter(state.dialect, ident("date_assign"), state.definition.enrollment_date)
        state.ctx.add_from(f"JOIN ({enrollments}) AS lcpu ON {col('lcp.id_path')} = {col('lcpu.id_path')}")
        state.ctx.add_from(f"JOIN ({core_user_table(state)}) AS cu ON {col('cu.idst')} = {col('lcpu.idUser')}")
        self._completion_date_filter(state)

    def _completion_date_filter(self, state) -> None:
        """Keep only the enrollments whose mandatory courses were all completed in the date range."""
        col, ident, filters = state.col, state.ident, state.filters
        completed_at = build_date_filter(
            state.dialect, f"MAX({col('lcu.date_complete')})", state.definition.completion_date
        )
        if not completed_at:
            return

        body = (
            f"SELECT {col('lcpu.id_path')} AS {ident('id_path')}, {col('lcpu.idUser')} AS {ident('idUser')} "
            f"FROM learning_coursepath_user AS lcpu "
            f"JOIN learning_coursepath_courses AS lcpc ON {col('lcpu.id_path')} = {col('lcpc.id_path')} "
            f"JOIN learning_courseuser AS lcu ON {col('lcpu.idUser')} = {col('lcu.idUser')} "
            f"AND {col('lcu.idCourse')} = {col('lcpc.id_item')} "
            f"AND {col('lcu.status')} = {EnrollmentStatus.COMPLETED.value} "
            f"JOIN learning_coursepath_courses_count AS lcpcc ON {col('lcpcc.id_path')} = {col('lcpc.id_path')} "
            f"WHERE ({col('lcpc.is_required')} = 1 OR {col('lcpc.is_required')} IS NULL)"
            f"{state.id_filter(col('lcpu.id_path'), filters.learning_plans)}"
            f"{state.id_filter(col('lcpu.idUser'), filters.users)} "
            f"GROUP BY {col('lcpu.idUser')}, {col('lcpu.id_path')}, {col('lcpcc.coursesMandatory')} "
            f"HAVING {col('lcpcc.coursesMandatory')} = COUNT(DISTINCT {col('lcu.idCourse')}){completed_at}"
        )
        state.ctx.add_cte(MANDATORY_COMPLETE_CTE, body)
        state.ctx.add_from(
            f"JOIN {MANDATORY_COMPLETE_CTE} AS lcpcumcw ON {col('lcpcumcw.idUser')} = {col('lcpu.idUser')} "
            f"AND {col('lcpcumcw.id_path')} = {col('lcpu.id_path')}"
        )

    def group_by(self, state) -> List[str]:
        return [state.col("lcp.id_path")]
