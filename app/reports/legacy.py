# app/reports/legacy.py
"""Translation of legacy filter documents into report definitions.

Every report type shares one translator; what differs (which entity filters are
imported, which field sections are scanned and in which order, where the legacy dates
land) is described by the type's ``LegacySpec``. Type-specific filter sections go
through the config's ``apply_legacy_filters`` hook.
"""

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Tuple

from app.reports.constants import AdditionalFieldEntity, DateConditions, SortDirection, SortSelector, VisibilityType
from app.reports.date_filters import parse_legacy_filter_date
from app.reports.exceptions import LegacyReportStructureError
from app.reports.fields import additional_field_id
from app.reports.schemas import (
    CertificationsFilter,
    CoursesFilter,
    DateFilter,
    EditorInfo,
    LearningPlansFilter,
    LegacyReportDoc,
    ReportDefinition,
    SelectionInfo,
    SessionContext,
    SortingOptions,
    UsersFilter,
    Visibility,
    VisibilityRule,
)

if TYPE_CHECKING:
    from app.reports.types.base import ReportTypeConfig

logger = logging.getLogger(__name__)

# Legacy member types of a visibility rule, by target attribute of ``Visibility``
_VISIBILITY_MEMBERS = {"user": "users", "group": "groups", "branch": "branches"}


@dataclass(frozen=True)
class LegacySpec:
    """How a report type reads a legacy filter document.

    ``sections`` pairs each legacy field section with the prefix of the new field ids,
    in the order sections are scanned for fields and for the order-by field.
    """

    imports: Tuple[str, ...] = ()
    sections: Tuple[Tuple[str, str], ...] = ()
    date_targets: Tuple[Optional[str], Optional[str]] = ("enrollment_date", "completion_date")
    conditions_target: str = "conditions"


def translate_legacy(
    config: "ReportTypeConfig",
    doc: LegacyReportDoc,
    platform: str,
    visibility_rules: Iterable[VisibilityRule],
    session: SessionContext,
) -> ReportDefinition:
    """Build the definition equivalent to a legacy report.

    Raises ``LegacyReportStructureError`` when the document cannot be translated; the
    caller decides whether that aborts anything.
    """
    legacy_spec = config.legacy
    if legacy_spec is None:
        raise LegacyReportStructureError(doc.id_filter, f"no legacy translation for '{config.report_type.value}'")

    definition = config.default_definition(session, platform, doc.filter_name)
    _apply_common_fields(definition, doc, visibility_rules)

    filter_data = _decode(doc)
    for entity in legacy_spec.imports:
        _IMPORTERS[entity](definition, filter_data)

    filters = filter_data.get("filters")
    if not isinstance(filters, dict):
        logger.error(f"No legacy filters section for id report: {doc.id_filter}")
        raise LegacyReportStructureError(doc.id_filter, "no legacy filters section")

    _apply_dates(definition, filters, legacy_spec)
    if filters.get("condition_status"):
        conditions = (
            DateConditions.ALL_CONDITIONS
            if filters["condition_status"] == "and"
            else DateConditions.AT_LEAST_ONE_CONDITION
        )
        _set_path(definition, legacy_spec.conditions_target, conditions)
    config.apply_legacy_filters(definition, filters)

    if filter_data.get("fields"):
        _apply_fields(config, definition, filter_data, legacy_spec)
    return definition


def _decode(doc: LegacyReportDoc) -> Dict[str, Any]:
    try:
        data = json.loads(doc.filter_data)
    except (TypeError, ValueError) as e:
        raise LegacyReportStructureError(doc.id_filter, f"filter data is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise LegacyReportStructureError(doc.id_filter, "filter data is not an object")
    return data


# ===== SHARED METADATA =====


def _apply_common_fields(
    definition: ReportDefinition, doc: LegacyReportDoc, visibility_rules: Iterable[VisibilityRule]
) -> None:
    definition.title = doc.filter_name
    definition.author = _to_int(doc.author)
    if doc.creation_date:
        definition.creation_date = doc.creation_date
    if doc.last_edit:
        definition.last_edit = doc.last_edit
    definition.last_edit_by = EditorInfo(id_user=_to_int(doc.last_edit_by or doc.author))
    definition.standard = doc.is_standard == "1"
    definition.imported_from_legacy_id = doc.id_filter
    definition.visibility = _translate_visibility(doc, visibility_rules)


def _translate_visibility(doc: LegacyReportDoc, visibility_rules: Iterable[VisibilityRule]) -> Visibility:
    rules = [rule for rule in visibility_rules if rule.id_report == doc.id_filter]
    if rules:
        visibility = Visibility(type=VisibilityType.ALL_GODADMINS_AND_SELECTED_PU)
        for rule in rules:
            target = _VISIBILITY_MEMBERS.get(rule.member_type)
            if target is None:
                logger.warning(f"Unknown visibility member type '{rule.member_type}' on report {doc.id_filter}")
                continue
            getattr(visibility, target).append(SelectionInfo(id=_to_int(rule.member_id)))
        return visibility
    if doc.is_public == "1":
        return Visibility(type=VisibilityType.ALL_GODADMINS_AND_PU)
    return Visibility(type=VisibilityType.ALL_GODADMINS)


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _selection(ids: Any) -> List[SelectionInfo]:
    if not isinstance(ids, list):
        return []
    return [SelectionInfo(id=_to_int(i)) for i in ids]


# ===== ENTITY IMPORTS =====


def _import_users(definition: ReportDefinition, filter_data: Dict[str, Any]) -> None:
    legacy = filter_data.get("users") or {}
    users = definition.users or UsersFilter()
    users.users = _selection(legacy.get("users"))
    users.groups = _selection(legacy.get("groups"))
    users.branches = _selection(legacy.get("branches"))
    users.all = not (users.users or users.groups or users.branches)
    definition.users = users


def _import_courses(definition: ReportDefinition, filter_data: Dict[str, Any]) -> None:
    courses = definition.courses or CoursesFilter()
    courses.courses = _selection(filter_data.get("courses"))
    courses.all = not courses.courses
    definition.courses = courses


def _import_certifications(definition: ReportDefinition, filter_data: Dict[str, Any]) -> None:
    certifications = definition.certifications or CertificationsFilter()
    certifications.certifications = _selection(filter_data.get("certifications"))
    certifications.all = not certifications.certifications
    definition.certifications = certifications


def _import_plans(definition: ReportDefinition, filter_data: Dict[str, Any]) -> None:
    plans = definition.learning_plans or LearningPlansFilter()
    plans.learning_plans = _selection(filter_data.get("plans"))
    plans.all = not plans.learning_plans
    definition.learning_plans = plans


_IMPORTERS = {
    "users": _import_users,
    "courses": _import_courses,
    "certifications": _import_certifications,
    "plans": _import_plans,
}


# ===== DATES =====


def _apply_dates(definition: ReportDefinition, filters: Dict[str, Any], legacy_spec: LegacySpec) -> None:
    for legacy_key, target in zip(("start_date", "end_date"), legacy_spec.date_targets):
        legacy = filters.get(legacy_key)
        if target is None or not isinstance(legacy, dict) or legacy.get("type", "any") == "any":
            continue
        current = _get_path(definition, target) or DateFilter()
        _set_path(definition, target, parse_legacy_filter_date(current, legacy))


def _resolve_path(definition: ReportDefinition, target: str):
    """Resolve a dotted target such as ``certifications.certification_date``."""
    if "." not in target:
        return definition, target
    block, attribute = target.split(".", 1)
    return getattr(definition, block), attribute


def _get_path(definition: ReportDefinition, target: str) -> Any:
    owner, attribute = _resolve_path(definition, target)
    return getattr(owner, attribute) if owner is not None else None


def _set_path(definition: ReportDefinition, target: str, value: Any) -> None:
    owner, attribute = _resolve_path(definition, target)
    if owner is not None:
        setattr(owner, attribute, value)


# ===== FIELDS AND ORDER =====


def _legacy_keys(section: Any) -> List[str]:
    if isinstance(section, dict):
        return [str(key) for key, selected in section.items() if selected not in (False, 0, "0", None, "")]
    if isinstance(section, list):
        return [str(key) for key in section]
    return []


def _apply_fields(
    config: "ReportTypeConfig", definition: ReportDefinition, filter_data: Dict[str, Any], legacy_spec: LegacySpec
) -> None:
    catalogue = set(config.catalogue_fields())
    legacy_fields = filter_data["fields"]

    fields = [field.value for field in config.mandatory_fields]
    mapped: Dict[Tuple[str, str], str] = {}
    for section, prefix in legacy_spec.sections:
        for key in _legacy_keys(legacy_fields.get(section)):
            field = _map_field(config, section, prefix, key, catalogue)
            if field is None:
                logger.debug(f"Legacy field '{section}.{key}' has no counterpart")
                continue
            mapped[(section, key)] = field
            if field not in fields:
                fields.append(field)
    definition.fields = fields

    order = _legacy_order(filter_data.get("order"), legacy_spec, mapped)
    if order is not None:
        field, direction = order
        definition.sorting_options = SortingOptions(
            selector=SortSelector.CUSTOM, selected_field=field, order_by=direction
        )


def _map_field(
    config: "ReportTypeConfig", section: str, prefix: str, key: str, catalogue: set
) -> Optional[str]:
    if key.isdigit() and section == "user" and AdditionalFieldEntity.USER in config.additional_field_keys:
        return additional_field_id(AdditionalFieldEntity.USER, int(key))
    field = f"{prefix}{key}"
    return field if field in catalogue else None


def _legacy_order(
    order: Any, legacy_spec: LegacySpec, mapped: Dict[Tuple[str, str], str]
) -> Optional[Tuple[str, SortDirection]]:
    """First order-by entry matching a translated field, sections scanned in type order."""
    if isinstance(order, dict):
        entries = [order]
    elif isinstance(order, list):
        entries = [entry for entry in order if isinstance(entry, dict)]
    else:
        return None

    parsed = []
    for entry in entries:
        section, _, key = str(entry.get("field", "")).partition(".")
        direction = SortDirection.DESC if str(entry.get("direction", "")).lower() == "desc" else SortDirection.ASC
        parsed.append((section, key, direction))

    for section, _ in legacy_spec.sections:
        for entry_section, key, direction in parsed:
            if entry_section == section and (section, key) in mapped:
                return mapped[(section, key)], direction
    return None
