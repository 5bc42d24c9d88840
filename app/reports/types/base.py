# app/reports/types/base.py
"""Per-report-type configuration consumed by the shared compiler.

A config owns what differs between report types: the base join chain, the WHERE
filters, the grouping keys, the ordered field handler sets, the field catalogue, the
default definition skeleton and the legacy translation rules. The compilation pipeline
itself lives in ``app.reports.compiler``.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Dict, FrozenSet, List, Optional, Tuple, Union

from app.reports.constants import (
    ANONYMOUS_USERID,
    AdditionalFieldEntity,
    DialectName,
    ReportType,
    SortDirection,
    SortSelector,
    VisibilityType,
)
from app.reports.date_filters import build_date_filter, compose_date_options_filter
from app.reports.exceptions import DisabledReportTypeError, UnsupportedDialectCombination
from app.reports.fields import FIELD_FEATURES, FieldId, additional_field_id
from app.reports.handlers.base import FieldHandlerSet
from app.reports.interfaces import ExtraFieldCatalogue, VisibilityResolver
from app.reports.schemas import (
    DateFilter,
    EditorInfo,
    Planning,
    ReportDefinition,
    ReportField,
    SessionContext,
    SortingOptions,
    Visibility,
)

if TYPE_CHECKING:
    from app.reports.compiler import CompilationState
    from app.reports.legacy import LegacySpec

logger = logging.getLogger(__name__)

# Filter blocks resolved through the visibility resolver, by definition attribute
VISIBILITY_ENTITIES = ("users", "courses", "groups", "certifications", "learning_plans")


class ReportTypeConfig:
    """Base configuration. Subclasses describe one report type."""

    report_type: ReportType
    required_features: Tuple[str, ...] = ()
    dialects: FrozenSet[DialectName] = frozenset(DialectName)
    mandatory_fields: Tuple[FieldId, ...] = ()
    default_sort_field: FieldId
    # Whether the query aggregates rows with GROUP BY
    groups_rows: bool = True
    visibility_entities: Tuple[str, ...] = ("users",)
    catalogue_groups: Dict[str, Tuple[FieldId, ...]] = {}
    additional_field_groups: Dict[AdditionalFieldEntity, str] = {}
    # Main-query column each additional-field entity joins on
    additional_field_keys: Dict[AdditionalFieldEntity, str] = {}
    legacy: Optional["LegacySpec"] = None

    def __init__(self) -> None:
        self.handler_sets: Tuple[FieldHandlerSet, ...] = self.build_handler_sets()

    def build_handler_sets(self) -> Tuple[FieldHandlerSet, ...]:
        raise NotImplementedError

    # ===== GATING =====

    def ensure_enabled(self, session: SessionContext) -> None:
        """Raise ``DisabledReportTypeError`` when a required tenant flag is off."""
        for feature in self.required_features:
            if not getattr(session.features, feature):
                raise DisabledReportTypeError(self.report_type.value, feature)

    def ensure_dialect(self, dialect: DialectName) -> None:
        if dialect not in self.dialects:
            raise UnsupportedDialectCombination(self.report_type.value, dialect.value)

    def is_field_enabled(self, field: Union[str, Enum], session: SessionContext) -> bool:
        key = field.value if isinstance(field, Enum) else field
        feature = FIELD_FEATURES.get(key)
        return feature is None or bool(getattr(session.features, feature))

    # ===== FIELD CATALOGUE =====

    def catalogue_fields(self) -> List[str]:
        return [field.value for fields in self.catalogue_groups.values() for field in fields]

    async def available_fields(
        self, session: SessionContext, catalogue: ExtraFieldCatalogue, labels: Dict[str, str]
    ) -> Dict[str, List[ReportField]]:
        """Selectable fields grouped by catalogue section, tenant additional fields included."""
        mandatory = {field.value for field in self.mandatory_fields}
        result: Dict[str, List[ReportField]] = {}
        for group, fields in self.catalogue_groups.items():
            entries = [
                ReportField(
                    field=field.value,
                    id_label=field.value,
                    mandatory=field.value in mandatory,
                    translation=labels.get(field.value, field.value),
                )
                for field in fields
                if self.is_field_enabled(field, session)
            ]
            if entries:
                result[group] = entries

        for entity, group in self.additional_field_groups.items():
            for additional in await catalogue.get_additional_fields(entity):
                field_id = additional_field_id(entity, additional.id)
                result.setdefault(group, []).append(
                    ReportField(
                        field=field_id,
                        id_label=field_id,
                        is_additional_field=True,
                        translation=additional.title,
                    )
                )
        return result

    # ===== DEFAULT DEFINITION =====

    def default_definition(
        self, session: SessionContext, platform: str = "", title: str = "", description: str = ""
    ) -> ReportDefinition:
        """New definition with mandatory fields, default sort and type filter defaults."""
        now = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        definition = ReportDefinition(
            type=self.report_type,
            platform=platform or session.platform,
            title=title,
            description=description,
            timezone=session.timezone,
            author=session.user_id,
            creation_date=now,
            last_edit=now,
            last_edit_by=EditorInfo(id_user=session.user_id),
            visibility=Visibility(type=VisibilityType.ALL_GODADMINS),
            planning=Planning(),
            sorting_options=SortingOptions(
                selector=SortSelector.DEFAULT,
                selected_field=self.default_sort_field.value,
                order_by=SortDirection.ASC,
            ),
            fields=[field.value for field in self.mandatory_fields],
        )
        self.apply_default_filters(definition)
        return definition

    def apply_default_filters(self, definition: ReportDefinition) -> None:
        """Fill the type's filter blocks with their default values."""

    def apply_legacy_filters(self, definition: ReportDefinition, filters: Dict) -> None:
        """Translate the type-specific entries of a legacy ``filters`` section."""

    # ===== COMPILATION HOOKS =====

    async def resolve_filters(
        self, state: "CompilationState", resolver: VisibilityResolver, check_visibility: bool
    ) -> None:
        """Resolve the id sets of every filter block the type reads.

        A block is resolved when it is not "all" or when a power user's visibility
        applies; otherwise it stays unrestricted.
        """
        definition = state.definition
        power_user = state.session.is_power_user and check_visibility
        for entity in self.visibility_entities:
            block = getattr(definition, entity)
            restricted = block is None or not block.all
            if restricted or power_user:
                resolve = getattr(resolver, f"resolve_{entity}")
                setattr(state.filters, entity, await resolve(definition, check_visibility))

    def build_base(self, state: "CompilationState") -> None:
        raise NotImplementedError

    def tenant_predicate(self, state: "CompilationState") -> str:
        """Exclude the synthetic anonymous account."""
        return f"AND {state.col('cu.userid')} <> {state.dialect.case_literal(ANONYMOUS_USERID)}"

    def build_where(self, state: "CompilationState") -> None:
        """Type-specific status and date predicates."""

    def group_by(self, state: "CompilationState") -> List[str]:
        return []


# ===== SHARED BASE-CHAIN FRAGMENTS =====


def core_user_table(state: "CompilationState", columns: str = "*") -> str:
    """Core user sub-select honouring the deactivated and expired toggles."""
    ident = state.ident
    users = state.definition.users
    table = f"SELECT {columns} FROM core_user WHERE "
    table += f"{ident('valid')} = 1" if users is not None and users.hide_deactivated else "TRUE"
    if users is not None and users.hide_expired_users:
        expiration = ident("expiration")
        table += f" AND ({expiration} IS NULL OR {expiration} > {state.dialect.now()})"
    return table


def enrollment_dates_filter(
    state: "CompilationState", enrollment_column: str = "date_inscr", completion_column: str = "date_complete"
) -> str:
    definition = state.definition
    return compose_date_options_filter(
        state.dialect,
        state.ident(enrollment_column),
        state.ident(completion_column),
        definition.enrollment_date,
        definition.completion_date,
        definition.conditions,
    )


def course_expiration_filter(state: "CompilationState") -> str:
    return build_date_filter(state.dialect, state.ident("date_end"), state.definition.course_expiration_date)


def default_date() -> DateFilter:
    return DateFilter(any=True)
