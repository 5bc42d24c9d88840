# app/reports/date_filters.py
"""Date-range predicates shared by every report type, and the legacy date translation."""

import logging
from typing import Any, Dict, Optional

from app.reports.constants import DateConditions, DateFilterType, DateOperator
from app.reports.dialect import Dialect
from app.reports.schemas import DateFilter

logger = logging.getLogger(__name__)


def build_date_filter(
    dialect: Dialect,
    column: str,
    descriptor: Optional[DateFilter],
    bool_op: str = "AND",
    inclusive: bool = True,
) -> str:
    """Render the predicate restricting ``column`` to the descriptor.

    Returns an empty string when the descriptor does not restrict anything. When
    ``bool_op`` is given the fragment is prefixed with it, ready to be appended to a
    ``WHERE TRUE`` chain.
    """
    if descriptor is None or descriptor.any:
        return ""

    value = dialect.to_date(column)
    predicate = ""

    if descriptor.type == DateFilterType.RELATIVE:
        target = dialect.days_ago(descriptor.days)
        if descriptor.operator == DateOperator.IS_AFTER:
            predicate = f"{value} {'>=' if inclusive else '>'} {target}"
        elif descriptor.operator == DateOperator.IS_BEFORE:
            predicate = f"{value} {'<=' if inclusive else '<'} {target}"
        elif descriptor.operator == DateOperator.IS_EQUAL:
            predicate = f"{value} = {target}"
    elif descriptor.type == DateFilterType.RANGE:
        predicate = (
            f"({value} >= {dialect.date_literal(descriptor.from_)} "
            f"AND {value} <= {dialect.date_literal(descriptor.to)})"
        )
    elif descriptor.type == DateFilterType.ABSOLUTE:
        operator = ">=" if descriptor.operator == DateOperator.IS_AFTER else "<="
        if not inclusive:
            operator = operator[0]
        predicate = f"{value} {operator} {dialect.date_literal(descriptor.to)}"

    if not predicate:
        return ""
    return f" {bool_op} {predicate}" if bool_op else predicate


def combine_date_filters(first: str, second: str, conditions: DateConditions) -> str:
    """Join two bare predicates with AND or OR and return an ``AND (...)`` fragment."""
    if first and second:
        joiner = "AND" if conditions == DateConditions.ALL_CONDITIONS else "OR"
        return f" AND ({first} {joiner} {second})"
    if first or second:
        return f" AND {first or second}"
    return ""


def compose_date_options_filter(
    dialect: Dialect,
    enrollment_column: str,
    completion_column: str,
    enrollment_date: Optional[DateFilter],
    completion_date: Optional[DateFilter],
    conditions: DateConditions,
) -> str:
    """Enrollment and completion date restrictions on an enrollment table."""
    enrollment = build_date_filter(dialect, enrollment_column, enrollment_date, "", True)
    completion = build_date_filter(dialect, completion_column, completion_date, "", True)
    return combine_date_filters(enrollment, completion, conditions)


# ===== LEGACY TRANSLATION =====


def _days_count(data: Dict[str, Any]) -> int:
    return int(float(data.get("days_count") or 0))


def parse_legacy_filter_date(current: DateFilter, legacy: Dict[str, Any]) -> DateFilter:
    """Translate a legacy ``{type, data}`` date filter into a new descriptor.

    ``ndago`` comparisons map onto relative operators with inclusive boundaries shifted
    by one day; ``range`` maps onto an absolute interval. Anything else returns
    ``current`` unchanged.
    """
    legacy_type = legacy.get("type")
    data = legacy.get("data") or legacy

    if legacy_type == "ndago":
        combobox = data.get("combobox")
        days = _days_count(data)
        if combobox == "<":
            operator, days = DateOperator.IS_AFTER, days
        elif combobox == "<=":
            operator, days = DateOperator.IS_AFTER, days + 1
        elif combobox == ">":
            operator, days = DateOperator.IS_BEFORE, days
        elif combobox == ">=":
            operator, days = DateOperator.IS_BEFORE, days - 1 if days > 0 else 0
        elif combobox == "=":
            operator, days = DateOperator.IS_EQUAL, days
        else:
            logger.debug(f"Unknown legacy date comparison: {combobox}")
            return current
        return current.model_copy(
            update={"type": DateFilterType.RELATIVE, "operator": operator, "days": days, "any": False}
        )

    if legacy_type == "range":
        return DateFilter.model_validate(
            {
                "any": False,
                "type": DateFilterType.RANGE,
                "operator": DateOperator.RANGE,
                "days": 0,
                "from": data.get("from", ""),
                "to": data.get("to", ""),
            }
        )

    return current
