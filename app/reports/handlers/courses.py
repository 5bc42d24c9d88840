# app/reports/handlers/courses.py
"""Course catalogue fields, read from the ``lc`` learning course join."""

from typing import TYPE_CHECKING

from app.reports.constants import CourseType
from app.reports.fields import FieldId, Label
from app.reports.handlers.base import FieldHandlerSet

if TYPE_CHECKING:
    from app.reports.compiler import CompilationState


class CourseFieldHandlers(FieldHandlerSet):
    columns = {
        FieldId.COURSE_ID: "lc.idCourse",
        FieldId.COURSE_UNIQUE_ID: "lc.uidCourse",
        FieldId.COURSE_CODE: "lc.code",
        FieldId.COURSE_NAME: "lc.name",
        FieldId.COURSE_CREDITS: "lc.credits",
        FieldId.COURSE_DURATION: "lc.mediumTime",
    }

    def renderers(self):
        return {
            FieldId.COURSE_CATEGORY_CODE: lambda state: self._category(state, "code"),
            FieldId.COURSE_CATEGORY_NAME: lambda state: self._category(state, "translation"),
            FieldId.COURSE_STATUS: self.status,
            FieldId.COURSE_TYPE: self.course_type,
            FieldId.COURSE_DATE_BEGIN: lambda state: state.dialect.format_date(state.column("lc.date_begin")),
            FieldId.COURSE_DATE_END: lambda state: state.dialect.format_date(state.column("lc.date_end")),
            FieldId.COURSE_EXPIRED: self.expired,
            FieldId.COURSE_CREATION_DATE: lambda state: state.datetime("lc.create_date"),
            FieldId.COURSE_E_SIGNATURE: self.e_signature,
            FieldId.COURSE_LANGUAGE: self.language,
            FieldId.COURSE_SKILLS: self.skills,
        }

    @staticmethod
    def _category(state: "CompilationState", column: str) -> str:
        col = state.col
        state.join_once(
            "lcat",
            f"LEFT JOIN learning_category AS lcat ON {col('lcat.idCategory')} = {col('lc.idCategory')} "
            f"AND {col('lcat.lang_code')} = {state.dialect.case_literal(state.session.lang_code)}",
        )
        return state.column(f"lcat.{column}")

    @staticmethod
    def status(state: "CompilationState") -> str:
        return (
            f"CASE WHEN {state.column('lc.status')} = 0 THEN {state.literal(Label.COURSE_STATUS_PREPARATION)} "
            f"ELSE {state.literal(Label.COURSE_STATUS_EFFECTIVE)} END"
        )

    @staticmethod
    def course_type(state: "CompilationState") -> str:
        course_type = state.column("lc.course_type")
        quote = state.dialect.case_literal
        return (
            f"CASE WHEN {course_type} = {quote(CourseType.ELEARNING.value)} THEN {state.literal(Label.COURSE_TYPE_ELEARNING)} "
            f"WHEN {course_type} = {quote(CourseType.CLASSROOM.value)} THEN {state.literal(Label.COURSE_TYPE_CLASSROOM)} "
            f"ELSE {state.literal(Label.COURSE_TYPE_WEBINAR)} END"
        )

    @staticmethod
    def expired(state: "CompilationState") -> str:
        date_end = state.dialect.to_date(state.column("lc.date_end"))
        return (
            f"CASE WHEN {date_end} < {state.dialect.current_date()} THEN {state.literal(Label.YES)} "
            f"ELSE {state.literal(Label.NO)} END"
        )

    @staticmethod
    def e_signature(state: "CompilationState") -> str:
        return (
            f"CASE WHEN {state.column('lc.has_esignature_enabled')} = 1 THEN {state.literal(Label.YES)} "
            f"ELSE {state.literal(Label.NO)} END"
        )

    @staticmethod
    def language(state: "CompilationState") -> str:
        col = state.col
        state.join_once(
            "lang",
            f"LEFT JOIN core_lang_language AS lang ON {col('lang.lang_code')} = {col('lc.lang_code')}",
        )
        return state.column("lang.lang_description")

    @staticmethod
    def skills(state: "CompilationState") -> str:
        ident, col = state.ident, state.col
        state.join_once(
            "skc",
            f"LEFT JOIN (SELECT {col('sso.idObject')} AS {ident('id_course')}, "
            f"{state.dialect.string_agg(col('ss.title'))} AS {ident('skills')} "
            f"FROM skill_skills_objects AS sso JOIN skill_skills AS ss ON {col('ss.id')} = {col('sso.idSkill')} "
            f"WHERE {col('sso.objectType')} = 1 GROUP BY {col('sso.idObject')}) AS skc "
            f"ON {col('skc.id_course')} = {col('lc.idCourse')}",
        )
        return state.column("skc.skills")
