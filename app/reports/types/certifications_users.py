# app/reports/types/certifications_users.py
"""Certifications - Users: one row per certification with issue statistics."""

from typing import Dict, List, Optional

from app.reports.constants import AdditionalFieldEntity, ReportType
from app.reports.date_filters import build_date_filter, combine_date_filters
from app.reports.fields import FieldId, Label
from app.reports.handlers.base import FieldHandlerSet
from app.reports.legacy import LegacySpec
from app.reports.schemas import CertificationsFilter, ReportDefinition, UsersFilter
from app.reports.types.base import ReportTypeConfig, core_user_table

CERTIFICATION_FIELDS = (
    FieldId.CERTIFICATION_TITLE,
    FieldId.CERTIFICATION_CODE,
    FieldId.CERTIFICATION_DESCRIPTION,
    FieldId.CERTIFICATION_DURATION,
)

CERTIFICATION_STATISTICS_FIELDS = (
    FieldId.STATS_ACTIVE,
    FieldId.STATS_EXPIRED,
    FieldId.STATS_ISSUED,
    FieldId.STATS_ARCHIVED,
)

# Certification duration units and the label rendered after the amount
DURATION_UNITS = (
    ("day", Label.DAYS),
    ("week", Label.WEEKS),
    ("month", Label.MONTHS),
    ("year", Label.YEARS),
)


class CertificationFieldHandlers(FieldHandlerSet):
    columns = {
        FieldId.CERTIFICATION_TITLE: "cert.title",
        FieldId.CERTIFICATION_CODE: "cert.code",
        FieldId.CERTIFICATION_DESCRIPTION: "cert.description",
    }

    def renderers(self):
        return {
            FieldId.CERTIFICATION_DURATION: self.duration,
            FieldId.STATS_ISSUED: lambda state: f"COUNT({state.col('ceu.id_user')})",
            FieldId.STATS_EXPIRED: self.expired,
            FieldId.STATS_ACTIVE: self.active,
            FieldId.STATS_ARCHIVED: lambda state: f"SUM({state.col('ceu.archived')})",
        }

    @staticmethod
    def duration(state) -> str:
        duration, unit = state.column("cert.duration"), state.column("cert.duration_unit")
        quote = state.dialect.case_literal
        cases = [f"WHEN {duration} = 0 THEN {state.literal(Label.NEVER)}"]
        for name, label in DURATION_UNITS:
            cases.append(
                f"WHEN {unit} = {quote(name)} THEN CONCAT(CAST({duration} AS VARCHAR), ' ', {state.literal(label)})"
            )
        return f"CASE {' '.join(cases)} ELSE NULL END"

    @staticmethod
    def expired(state) -> str:
        return (
            f"SUM(CASE WHEN {state.col('ceu.archived')} = 0 AND {state.col('ceu.expire_at')} <= {state.dialect.now()} "
            f"THEN 1 ELSE 0 END)"
        )

    @staticmethod
    def active(state) -> str:
        return f"SUM(CASE WHEN {state.col('ceu.archived')} = 0 AND {active_condition(state)} THEN 1 ELSE 0 END)"


def active_condition(state) -> str:
    now, expire_at = state.dialect.now(), state.col("ceu.expire_at")
    return f"{state.col('ceu.on_datetime')} <= {now} AND ({expire_at} > {now} OR {expire_at} IS NULL)"


def status_filter(state, certifications: CertificationsFilter) -> str:
    """Active, expired and archived toggles of the certifications filter."""
    archived = state.col("ceu.archived")
    active, expired = certifications.active_certifications, certifications.expired_certifications

    status: Optional[str] = None
    if active and not expired:
        status = f"({active_condition(state)})"
    elif expired and not active:
        status = f"{state.col('ceu.expire_at')} < {state.dialect.now()}"

    if certifications.archived_certifications:
        if not active and not expired:
            return f"AND {archived} = 1"
        return f"AND ({status} OR {archived} = 1)" if status else ""
    return f"AND {archived} = 0" + (f" AND {status}" if status else "")


class CertificationsUsersReport(ReportTypeConfig):
    report_type = ReportType.CERTIFICATIONS_USERS
    required_features = ("certification",)
    mandatory_fields = (FieldId.CERTIFICATION_TITLE,)
    default_sort_field = FieldId.CERTIFICATION_TITLE
    visibility_entities = ("users", "certifications")
    catalogue_groups = {
        "certifications": CERTIFICATION_FIELDS,
        "statistics": CERTIFICATION_STATISTICS_FIELDS,
    }
    additional_field_keys = {AdditionalFieldEntity.USER: "ceu.id_user"}
    legacy = LegacySpec(
        imports=("users", "certifications"),
        sections=(("certification", "certification_"), ("stat", "stats_")),
        date_targets=("certifications.certification_date", "certifications.certification_expiration_date"),
        conditions_target="certifications.conditions",
    )

    def build_handler_sets(self):
        return (CertificationFieldHandlers(),)

    def apply_default_filters(self, definition: ReportDefinition) -> None:
        definition.users = UsersFilter(all=True)
        definition.certifications = CertificationsFilter(all=True)

    def apply_legacy_filters(self, definition: ReportDefinition, filters: Dict) -> None:
        certifications = definition.certifications
        status = filters.get("certification_status")
        if certifications is None or not status:
            return
        if status == "expired":
            certifications.active_certifications = False
        elif status == "active":
            certifications.expired_certifications = False
        elif status == "all":
            certifications.archived_certifications = True

    def build_base(self, state) -> None:
        ident, col, filters = state.ident, state.col, state.filters

        certification_users = "SELECT * FROM certification_user WHERE TRUE"
        certification_users += state.id_filter(ident("id_user"), filters.users)
        state.ctx.add_from(f"({certification_users}) AS ceu")
        state.ctx.add_from(f"JOIN ({core_user_table(state)}) AS cu ON {col('cu.idst')} = {col('ceu.id_user')}")
        state.ctx.add_from(f"JOIN certification_item AS ci ON {col('ceu.id_cert_item')} = {col('ci.id')}")

        certification_table = "SELECT * FROM certification WHERE TRUE"
        certification_table += state.id_filter(ident("id_cert"), filters.certifications)
        state.ctx.add_from(f"JOIN ({certification_table}) AS cert ON {col('ci.id_cert')} = {col('cert.id_cert')}")

    def build_where(self, state) -> None:
        state.ctx.add_where(f"AND {state.col('cert.deleted')} = {state.dialect.bool_literal(False)}")

        certifications = state.definition.certifications
        if certifications is None:
            return
        state.ctx.add_where(status_filter(state, certifications))
        issued = build_date_filter(
            state.dialect, state.col("ceu.on_datetime"), certifications.certification_date, ""
        )
        expiring = build_date_filter(
            state.dialect, state.col("ceu.expire_at"), certifications.certification_expiration_date, ""
        )
        state.ctx.add_where(combine_date_filters(issued, expiring, certifications.conditions))

    def group_by(self, state) -> List[str]:
        return [state.col("cert.id_cert")]
