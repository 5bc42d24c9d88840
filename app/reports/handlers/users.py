# app/reports/handlers/users.py
"""User identity fields, read from the ``cu`` core user join."""

from typing import TYPE_CHECKING

from app.reports.constants import UserLevel
from app.reports.fields import FieldId, Label
from app.reports.handlers.base import FieldHandlerSet

if TYPE_CHECKING:
    from app.reports.compiler import CompilationState


class UserFieldHandlers(FieldHandlerSet):
    columns = {
        FieldId.USER_ID: "cu.idst",
        FieldId.USER_FIRSTNAME: "cu.firstname",
        FieldId.USER_LASTNAME: "cu.lastname",
        FieldId.USER_EMAIL: "cu.email",
        FieldId.USER_EXPIRATION: "cu.expiration",
    }

    def renderers(self):
        return {
            FieldId.USER_USERID: self.userid,
            FieldId.USER_FULLNAME: self.fullname,
            FieldId.USER_EMAIL_VALIDATION_STATUS: self.email_validation_status,
            FieldId.USER_LEVEL: self.level,
            FieldId.USER_DEACTIVATED: self.deactivated,
            FieldId.USER_SUSPEND_DATE: lambda state: state.datetime("cu.suspend_date"),
            FieldId.USER_REGISTER_DATE: lambda state: state.datetime("cu.register_date"),
            FieldId.USER_LAST_ACCESS_DATE: lambda state: state.datetime("cu.lastenter"),
            FieldId.USER_BRANCH_NAME: lambda state: self._branch_column(state, "branches_names"),
            FieldId.USER_BRANCH_PATH: lambda state: self._branch_column(state, "branches_paths"),
            FieldId.USER_BRANCHES_CODES: lambda state: self._branch_column(state, "branches_codes"),
            FieldId.USER_DIRECT_MANAGER: self.direct_manager,
        }

    @staticmethod
    def userid(state: "CompilationState") -> str:
        # Usernames are stored with a leading slash
        return f"SUBSTR({state.column('cu.userid')}, 2)"

    @staticmethod
    def fullname(state: "CompilationState") -> str:
        return f"CONCAT({state.column('cu.firstname')}, ' ', {state.column('cu.lastname')})"

    @staticmethod
    def email_validation_status(state: "CompilationState") -> str:
        return (
            f"CASE WHEN {state.column('cu.email_status')} = 0 THEN {state.literal(Label.NO)} "
            f"ELSE {state.literal(Label.YES)} END"
        )

    @staticmethod
    def deactivated(state: "CompilationState") -> str:
        return (
            f"CASE WHEN {state.column('cu.valid')} = 1 THEN {state.literal(Label.NO)} "
            f"ELSE {state.literal(Label.YES)} END"
        )

    @staticmethod
    def level(state: "CompilationState") -> str:
        ident, col = state.ident, state.col
        state.join_once(
            "cul",
            f"LEFT JOIN (SELECT {col('cgm.idstMember')} AS {ident('id_user')}, {col('cg.groupid')} AS {ident('groupid')} "
            f"FROM core_group_members AS cgm JOIN core_group AS cg ON {col('cg.idst')} = {col('cgm.idst')} "
            f"WHERE {col('cg.groupid')} LIKE '/framework/level/%') AS cul "
            f"ON {col('cul.id_user')} = {col('cu.idst')}",
        )
        level = state.column("cul.groupid")
        return (
            f"CASE WHEN {level} = '/framework/level/{UserLevel.GOD_ADMIN.value}' THEN {state.literal(Label.USER_LEVEL_GODADMIN)} "
            f"WHEN {level} = '/framework/level/{UserLevel.POWER_USER.value}' THEN {state.literal(Label.USER_LEVEL_POWERUSER)} "
            f"ELSE {state.literal(Label.USER_LEVEL_USER)} END"
        )

    @staticmethod
    def _branch_column(state: "CompilationState", column: str) -> str:
        ident, col, dialect = state.ident, state.col, state.dialect
        lang = dialect.case_literal(state.session.lang_code)
        state.join_once(
            "ub",
            f"LEFT JOIN (SELECT {col('cgm.idstMember')} AS {ident('id_user')}, "
            f"{dialect.string_agg(col('coc.translation'))} AS {ident('branches_names')}, "
            f"{dialect.string_agg(col('cocp.path'))} AS {ident('branches_paths')}, "
            f"{dialect.string_agg(col('coct.code'))} AS {ident('branches_codes')} "
            f"FROM core_group_members AS cgm "
            f"JOIN core_org_chart_tree AS coct ON {col('coct.idst_oc')} = {col('cgm.idst')} "
            f"LEFT JOIN core_org_chart AS coc ON {col('coc.id_dir')} = {col('coct.idOrg')} AND {col('coc.lang_code')} = {lang} "
            f"LEFT JOIN core_org_chart_paths AS cocp ON {col('cocp.idOrg')} = {col('coct.idOrg')} AND {col('cocp.lang_code')} = {lang} "
            f"GROUP BY {col('cgm.idstMember')}) AS ub ON {col('ub.id_user')} = {col('cu.idst')}",
        )
        return state.column(f"ub.{column}")

    @staticmethod
    def direct_manager(state: "CompilationState") -> str:
        col = state.col
        state.join_once(
            "sm",
            f"LEFT JOIN skill_managers AS sm ON {col('sm.idEmployee')} = {col('cu.idst')} AND {col('sm.type')} = 1",
        )
        state.join_once("cus", f"LEFT JOIN core_user AS cus ON {col('cus.idst')} = {col('sm.idManager')}")
        firstname, lastname = state.column("cus.firstname"), state.column("cus.lastname")
        return (
            f"CASE WHEN {firstname} <> '' OR {lastname} <> '' THEN CONCAT({firstname}, ' ', {lastname}) "
            f"ELSE SUBSTR({state.column('cus.userid')}, 2) END"
        )
