# app/reports/types/users_webinar.py
"""Users - Webinar Sessions: one row per user, webinar course and session."""

from typing import List

from app.reports.constants import (
    AdditionalFieldEntity,
    CourseType,
    CourseuserLevel,
    DateConditions,
    DialectName,
    EnrollmentStatus,
    ReportType,
    SessionEvaluationStatus,
)
from app.reports.date_filters import build_date_filter
from app.reports.fields import FieldId, Label
from app.reports.handlers.base import FieldHandlerSet
from app.reports.handlers.courses import CourseFieldHandlers
from app.reports.handlers.users import UserFieldHandlers
from app.reports.legacy import LegacySpec
from app.reports.schemas import (
    CoursesFilter,
    EnrollmentFilter,
    InstructorsFilter,
    LearningPlansFilter,
    ReportDefinition,
    SessionDates,
    UsersFilter,
)
from app.reports.types.base import (
    ReportTypeConfig,
    core_user_table,
    course_expiration_filter,
    default_date,
    enrollment_dates_filter,
)

USER_FIELDS = (
    FieldId.USER_ID,
    FieldId.USER_USERID,
    FieldId.USER_FIRSTNAME,
    FieldId.USER_LASTNAME,
    FieldId.USER_FULLNAME,
    FieldId.USER_EMAIL,
    FieldId.USER_EMAIL_VALIDATION_STATUS,
    FieldId.USER_LEVEL,
    FieldId.USER_DEACTIVATED,
    FieldId.USER_EXPIRATION,
    FieldId.USER_SUSPEND_DATE,
    FieldId.USER_REGISTER_DATE,
    FieldId.USER_LAST_ACCESS_DATE,
    FieldId.USER_BRANCH_NAME,
    FieldId.USER_BRANCH_PATH,
    FieldId.USER_BRANCHES_CODES,
    FieldId.USER_DIRECT_MANAGER,
)

WEBINAR_COURSE_FIELDS = (
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
    FieldId.COURSE_LANGUAGE,
    FieldId.COURSE_E_SIGNATURE,
)

SESSION_FIELDS = (
    FieldId.WEBINAR_SESSION_NAME,
    FieldId.WEBINAR_SESSION_EVALUATION_SCORE_BASE,
    FieldId.WEBINAR_SESSION_START_DATE,
    FieldId.WEBINAR_SESSION_END_DATE,
    FieldId.WEBINAR_SESSION_SESSION_TIME,
    FieldId.WEBINAR_SESSION_WEBINAR_TOOL,
    FieldId.WEBINAR_SESSION_TOOL_TIME_IN_SESSION,
)

SESSION_USER_FIELDS = (
    FieldId.WEBINAR_SESSION_USER_LEVEL,
    FieldId.WEBINAR_SESSION_USER_ENROLL_DATE,
    FieldId.WEBINAR_SESSION_USER_STATUS,
    FieldId.WEBINAR_SESSION_USER_LEARN_EVAL,
    FieldId.WEBINAR_SESSION_USER_EVAL_STATUS,
    FieldId.WEBINAR_SESSION_USER_INSTRUCTOR_FEEDBACK,
    FieldId.WEBINAR_SESSION_USER_ENROLLMENT_STATUS,
    FieldId.WEBINAR_SESSION_USER_SUBSCRIBE_DATE,
    FieldId.WEBINAR_SESSION_USER_COMPLETE_DATE,
    FieldId.COURSEUSER_DATE_COMPLETE,
)

# Course enrollment statuses and their labels
COURSEUSER_STATUS_LABELS = (
    (EnrollmentStatus.SUBSCRIBED, Label.COURSEUSER_STATUS_SUBSCRIBED),
    (EnrollmentStatus.IN_PROGRESS, Label.COURSEUSER_STATUS_IN_PROGRESS),
    (EnrollmentStatus.COMPLETED, Label.COURSEUSER_STATUS_COMPLETED),
    (EnrollmentStatus.SUSPENDED, Label.COURSEUSER_STATUS_SUSPENDED),
)


class WebinarSessionFieldHandlers(FieldHandlerSet):
    columns = {
        FieldId.WEBINAR_SESSION_NAME: "wsud.name",
        FieldId.WEBINAR_SESSION_EVALUATION_SCORE_BASE: "wsud.score_base",
    }

    def renderers(self):
        return {
            FieldId.WEBINAR_SESSION_START_DATE: lambda state: state.datetime("wsud.date_begin"),
            FieldId.WEBINAR_SESSION_END_DATE: lambda state: state.datetime("wsud.date_end"),
            FieldId.WEBINAR_SESSION_WEBINAR_TOOL: self.webinar_tool,
            FieldId.WEBINAR_SESSION_SESSION_TIME: self.session_time,
            FieldId.WEBINAR_SESSION_TOOL_TIME_IN_SESSION: self.tool_time,
        }

    @staticmethod
    def _join_dates(state) -> None:
        col = state.col
        state.join_once(
            "wsd",
            f"LEFT JOIN webinar_session_date AS wsd ON {col('wsd.id_session')} = {col('wsud.id_session')}",
        )

    def _join_attendance(self, state) -> None:
        col = state.col
        self._join_dates(state)
        state.join_once(
            "wsda",
            f"LEFT JOIN webinar_session_date_attendance AS wsda ON {col('wsda.id_session')} = {col('wsd.id_session')} "
            f"AND {col('wsda.id_user')} = {col('wsud.id_user')} AND {col('wsda.day')} = {col('wsd.day')}",
        )

    def webinar_tool(self, state) -> str:
        self._join_dates(state)
        return state.dialect.string_agg(state.col("wsd.webinar_tool"), ",")

    def session_time(self, state) -> str:
        self._join_attendance(state)
        col = state.col
        watched = " OR ".join(
            f"{col('wsda.' + column)} = 1" for column in ("watched_live", "watched_recording", "watched_externally")
        )
        return f"SUM(CASE WHEN ({watched}) THEN {col('wsd.duration_minutes')} ELSE 0 END)"

    def tool_time(self, state) -> str:
        self._join_attendance(state)
        return f"SUM({state.col('wsda.watched_externally')})"


class WebinarSessionUserFieldHandlers(FieldHandlerSet):
    columns = {
        FieldId.WEBINAR_SESSION_USER_LEARN_EVAL: "wsud.evaluation_score",
        FieldId.WEBINAR_SESSION_USER_INSTRUCTOR_FEEDBACK: "wsud.evaluation_text",
    }

    def renderers(self):
        return {
            FieldId.WEBINAR_SESSION_USER_LEVEL: self.level,
            FieldId.WEBINAR_SESSION_USER_ENROLL_DATE: lambda state: state.datetime("lcu_a.date_inscr"),
            FieldId.WEBINAR_SESSION_USER_STATUS: self.course_status,
            FieldId.WEBINAR_SESSION_USER_ENROLLMENT_STATUS: self.session_status,
            FieldId.WEBINAR_SESSION_USER_SUBSCRIBE_DATE: lambda state: state.datetime("wsud.date_subscribed"),
            FieldId.WEBINAR_SESSION_USER_COMPLETE_DATE: lambda state: state.datetime("wsud.date_completed"),
            FieldId.COURSEUSER_DATE_COMPLETE: lambda state: state.datetime("lcu_a.date_complete"),
            FieldId.WEBINAR_SESSION_USER_EVAL_STATUS: self.evaluation_status,
        }

    @staticmethod
    def level(state) -> str:
        level = state.column("lcu_a.level")
        return (
            f"CASE WHEN {level} = {CourseuserLevel.TEACHER.value} THEN {state.literal(Label.COURSEUSER_LEVEL_TEACHER)} "
            f"WHEN {level} = {CourseuserLevel.TUTOR.value} THEN {state.literal(Label.COURSEUSER_LEVEL_TUTOR)} "
            f"ELSE {state.literal(Label.COURSEUSER_LEVEL_STUDENT)} END"
        )

    @staticmethod
    def course_status(state) -> str:
        status, waiting = state.column("lcu_a.status"), state.column("lcu_a.waiting")
        cases = [
            f"WHEN {status} = {EnrollmentStatus.CONFIRMED.value} "
            f"THEN {state.literal(Label.COURSEUSER_STATUS_ENROLLMENTS_TO_CONFIRM)}",
            f"WHEN {status} = {EnrollmentStatus.WAITING_LIST.value} AND {waiting} = 1 "
            f"THEN {state.literal(Label.COURSEUSER_STATUS_WAITING_LIST)}",
        ]
        for value, label in COURSEUSER_STATUS_LABELS:
            cases.append(f"WHEN {status} = {value.value} THEN {state.literal(label)}")
        cases.append(
            f"WHEN {status} = {EnrollmentStatus.OVERBOOKING.value} "
            f"THEN {state.literal(Label.COURSEUSER_STATUS_OVERBOOKING)}"
        )
        return f"CASE {' '.join(cases)} ELSE CAST({status} AS VARCHAR) END"

    @staticmethod
    def session_status(state) -> str:
        status, waiting = state.column("wsud.status"), state.column("wsud.waiting")
        cases = [
            f"WHEN {status} = {EnrollmentStatus.WAITING_LIST.value} AND {waiting} = 1 "
            f"THEN {state.literal(Label.COURSEUSER_STATUS_WAITING_LIST)}"
        ]
        for value, label in COURSEUSER_STATUS_LABELS:
            cases.append(f"WHEN {status} = {value.value} AND {waiting} = 0 THEN {state.literal(label)}")
        return f"CASE {' '.join(cases)} ELSE '' END"

    @staticmethod
    def evaluation_status(state) -> str:
        status = state.column("wsud.evaluation_status")
        return (
            f"CASE WHEN {status} = {SessionEvaluationStatus.PASSED.value} "
            f"THEN {state.literal(Label.WEBINAR_SESSION_USER_EVAL_STATUS_PASSED)} "
            f"WHEN {status} = {SessionEvaluationStatus.FAILED.value} "
            f"THEN {state.literal(Label.WEBINAR_SESSION_USER_EVAL_STATUS_FAILED)} "
            f"ELSE '' END"
        )


def enrollment_status_filter(state, enrollment: EnrollmentFilter) -> str:
    """Session enrollment statuses to keep; nothing when every status is selected."""
    if all(enrollment.model_dump().values()):
        return ""

    statuses = [
        str(status.value)
        for status, selected in (
            (EnrollmentStatus.SUBSCRIBED, enrollment.not_started),
            (EnrollmentStatus.IN_PROGRESS, enrollment.in_progress),
            (EnrollmentStatus.COMPLETED, enrollment.completed),
            (EnrollmentStatus.SUSPENDED, enrollment.suspended),
        )
        if selected
    ]
    status, waiting = state.col("wsud.status"), state.col("wsud.waiting")
    enrolled = f"({status} IN ({','.join(statuses)}) AND {waiting} = 0)"
    waiting_list = f"({status} = {EnrollmentStatus.WAITING_LIST.value} AND {waiting} = 1)"

    if statuses and enrollment.waiting_list:
        return f"AND ({enrolled} OR {waiting_list})"
    if statuses:
        return f"AND {enrolled}"
    if enrollment.waiting_list:
        return f"AND {waiting_list}"
    return ""


def session_dates_filter(state, session_dates: SessionDates) -> str:
    """Session start and end date restrictions; enrollments without a session are kept."""
    start = build_date_filter(state.dialect, state.col("wsud.date_begin"), session_dates.start_date, "")
    end = build_date_filter(state.dialect, state.col("wsud.date_end"), session_dates.end_date, "")
    if start and end:
        joiner = "AND" if session_dates.conditions == DateConditions.ALL_CONDITIONS else "OR"
        predicate = f"{start} {joiner} {end}"
    else:
        predicate = start or end
    if not predicate:
        return ""
    return f"AND ({state.col('wsud.id_user')} IS NULL OR ({predicate}))"


class UsersWebinarReport(ReportTypeConfig):
    report_type = ReportType.USERS_WEBINAR
    dialects = frozenset({DialectName.ATHENA})
    mandatory_fields = (FieldId.USER_USERID, FieldId.COURSE_NAME)
    default_sort_field = FieldId.USER_USERID
    visibility_entities = ("users", "courses")
    catalogue_groups = {
        "user": USER_FIELDS,
        "course": WEBINAR_COURSE_FIELDS,
        "session": SESSION_FIELDS,
        "webinarSessionUser": SESSION_USER_FIELDS,
    }
    additional_field_groups = {
        AdditionalFieldEntity.USER: "user",
        AdditionalFieldEntity.COURSE: "course",
    }
    additional_field_keys = {
        AdditionalFieldEntity.USER: "lcu_a.idUser",
        AdditionalFieldEntity.COURSE: "lcu_a.idCourse",
    }
    legacy = LegacySpec(
        imports=("users", "courses"),
        sections=(
            ("user", "user_"),
            ("course", "course_"),
            ("session", "webinar_session_"),
            ("webinar_session_user", "webinar_session_user_"),
        ),
    )

    def build_handler_sets(self):
        return (
            UserFieldHandlers(),
            CourseFieldHandlers(),
            WebinarSessionFieldHandlers(),
            WebinarSessionUserFieldHandlers(),
        )

    def apply_default_filters(self, definition: ReportDefinition) -> None:
        definition.users = UsersFilter(all=True)
        definition.courses = CoursesFilter(all=True)
        definition.learning_plans = LearningPlansFilter(all=True)
        definition.session_dates = SessionDates(start_date=default_date(), end_date=default_date())
        definition.instructors = InstructorsFilter(all=True)
        definition.conditions = DateConditions.ALL_CONDITIONS
        definition.enrollment_date = default_date()
        definition.completion_date = default_date()
        definition.course_expiration_date = default_date()
        definition.enrollment = EnrollmentFilter()

    def build_base(self, state) -> None:
        ident, col, filters, definition = state.ident, state.col, state.filters, state.definition

        enrollment_table = "SELECT * FROM learning_courseuser_aggregate WHERE TRUE"
        enrollment_table += state.id_filter(ident("idUser"), filters.users)
        enrollment_table += state.id_filter(ident("idCourse"), filters.courses)
        if definition.users is not None and definition.users.show_only_learners:
            enrollment_table += f" AND {ident('level')} = {CourseuserLevel.STUDENT.value}"
        enrollment_table += enrollment_dates_filter(state)
        state.ctx.add_from(f"({enrollment_table}) AS lcu_a")
        state.ctx.add_from(f"JOIN ({core_user_table(state)}) AS cu ON {col('cu.idst')} = {col('lcu_a.idUser')}")

        course_table = (
            f"SELECT * FROM learning_course WHERE {ident('course_type')} = "
            f"{state.dialect.case_literal(CourseType.WEBINAR.value)}"
        )
        course_table += state.id_filter(ident("idCourse"), filters.courses)
        course_table += course_expiration_filter(state)
        state.ctx.add_from(f"JOIN ({course_table}) AS lc ON {col('lc.idCourse')} = {col('lcu_a.idCourse')}")

        session_table = "SELECT * FROM webinar_session_user_details WHERE TRUE"
        session_table += state.id_filter(ident("id_user"), filters.users)
        session_table += state.id_filter(ident("course_id"), filters.courses)
        instructors = definition.instructors
        if instructors is not None and not instructors.all and instructors.instructors:
            ids = ",".join(str(instructor.id) for instructor in instructors.instructors)
            session_table += (
                f" AND {ident('id_session')} IN (SELECT {ident('id_session')} FROM webinar_session_instructor "
                f"WHERE {ident('id_user')} IN ({ids}))"
            )
        state.ctx.add_from(
            f"JOIN ({session_table}) AS wsud ON {col('wsud.course_id')} = {col('lcu_a.idCourse')} "
            f"AND {col('wsud.id_user')} = {col('lcu_a.idUser')}"
        )

    def build_where(self, state) -> None:
        definition = state.definition
        if definition.enrollment is not None:
            state.ctx.add_where(enrollment_status_filter(state, definition.enrollment))
        if definition.session_dates is not None:
            state.ctx.add_where(session_dates_filter(state, definition.session_dates))

    def group_by(self, state) -> List[str]:
        return [state.col("lcu_a.idUser"), state.col("lcu_a.idCourse"), state.col("wsud.id_session")]
