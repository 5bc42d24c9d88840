# app/reports/handlers/statistics.py
"""Course enrollment statistics aggregated over the ``lcu_a`` enrollment join."""

from typing import TYPE_CHECKING

from app.reports.constants import EnrollmentStatus
from app.reports.fields import FieldId
from app.reports.handlers.base import FieldHandlerSet

if TYPE_CHECKING:
    from app.reports.compiler import CompilationState


class CourseStatisticsHandlers(FieldHandlerSet):
    """Usage, mobile and flow statistics per course.

    ``rounded`` renders percentages rounded to two decimals; ``strict_not_started``
    counts only the subscribed status as not started instead of everything that is
    neither in progress nor completed.
    """

    def __init__(self, rounded: bool = False, strict_not_started: bool = False):
        self.rounded = rounded
        self.strict_not_started = strict_not_started
        super().__init__()

    def renderers(self):
        return {
            FieldId.STATS_ENROLLED_USERS: self.enrolled,
            FieldId.STATS_NOT_STARTED_USERS: self.not_started,
            FieldId.STATS_NOT_STARTED_USERS_PERCENTAGE: lambda state: self._percentage(state, self.not_started(state)),
            FieldId.STATS_IN_PROGRESS_USERS: self.in_progress,
            FieldId.STATS_IN_PROGRESS_USERS_PERCENTAGE: lambda state: self._percentage(state, self.in_progress(state)),
            FieldId.STATS_COMPLETED_USERS: self.completed,
            FieldId.STATS_COMPLETED_USERS_PERCENTAGE: lambda state: self._percentage(state, self.completed(state)),
            FieldId.STATS_TOTAL_TIME_IN_COURSE: self.total_time,
            FieldId.STATS_SESSION_TIME: self.session_time,
            FieldId.STATS_COURSE_RATING: self.rating,
            FieldId.STATS_USER_FLOW: lambda state: self._tracksession_count(state, "userFlow"),
            FieldId.STATS_USER_FLOW_PERCENTAGE: lambda state: self._percentage(
                state, self._tracksession_count(state, "userFlow")
            ),
            FieldId.STATS_USER_FLOW_MS_TEAMS: lambda state: self._tracksession_count(state, "userFlowMsTeams"),
            FieldId.STATS_USER_FLOW_MS_TEAMS_PERCENTAGE: lambda state: self._percentage(
                state, self._tracksession_count(state, "userFlowMsTeams")
            ),
            FieldId.STATS_ACCESS_FROM_MOBILE: lambda state: self._tracksession_count(state, "userGoLearn"),
            FieldId.STATS_PERCENTAGE_ACCESS_FROM_MOBILE: lambda state: self._percentage(
                state, self._tracksession_count(state, "userGoLearn")
            ),
        }

    # ===== ENROLLMENT COUNTS =====

    @staticmethod
    def enrolled(state: "CompilationState") -> str:
        return f"COUNT(DISTINCT({state.col('lcu_a.idUser')}))"

    @staticmethod
    def _status_count(state: "CompilationState", condition: str) -> str:
        return f"SUM(CASE WHEN {condition} AND {state.col('cu.idst')} IS NOT NULL THEN 1 ELSE 0 END)"

    def not_started(self, state: "CompilationState") -> str:
        status = state.col("lcu_a.status")
        if self.strict_not_started:
            return self._status_count(state, f"{status} = {EnrollmentStatus.SUBSCRIBED.value}")
        return self._status_count(
            state,
            f"{status} <> {EnrollmentStatus.IN_PROGRESS.value} AND {status} <> {EnrollmentStatus.COMPLETED.value}",
        )

    def in_progress(self, state: "CompilationState") -> str:
        return self._status_count(state, f"{state.col('lcu_a.status')} = {EnrollmentStatus.IN_PROGRESS.value}")

    def completed(self, state: "CompilationState") -> str:
        return self._status_count(state, f"{state.col('lcu_a.status')} = {EnrollmentStatus.COMPLETED.value}")

    def _percentage(self, state: "CompilationState", numerator: str) -> str:
        denominator = self.enrolled(state)
        if self.rounded:
            return state.dialect.rounded_percentage(numerator, denominator)
        return state.dialect.percentage(numerator, denominator)

    # ===== USAGE =====

    @staticmethod
    def _join_tracksession(state: "CompilationState") -> None:
        col = state.col
        state.join_once(
            "lta",
            f"LEFT JOIN learning_tracksession_aggregate AS lta ON {col('lta.idUser')} = {col('cu.idst')} "
            f"AND {col('lta.idCourse')} = {col('lcu_a.idCourse')}",
        )

    def total_time(self, state: "CompilationState") -> str:
        self._join_tracksession(state)
        return state.dialect.format_duration(f"SUM({state.col('lta.totalTime')})")

    def _tracksession_count(self, state: "CompilationState", column: str) -> str:
        self._join_tracksession(state)
        return f"SUM(CASE WHEN {state.col(f'lta.{column}')} > 0 THEN 1 ELSE 0 END)"

    @staticmethod
    def session_time(state: "CompilationState") -> str:
        col = state.col
        state.join_once(
            "csta",
            f"LEFT JOIN course_session_time_aggregate AS csta ON {col('csta.id_user')} = {col('cu.idst')} "
            f"AND {col('csta.course_id')} = {col('lcu_a.idCourse')}",
        )
        return f"SUM({col('csta.session_time')})"

    @staticmethod
    def rating(state: "CompilationState") -> str:
        col = state.col
        state.join_once(
            "lcr",
            f"LEFT JOIN learning_course_rating AS lcr ON {col('lcr.idCourse')} = {col('lc.idCourse')}",
        )
        return f"CAST({state.column('lcr.rate_average')} AS INTEGER)"
