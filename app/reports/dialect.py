# app/reports/dialect.py
"""SQL dialect emitters.

Every token that differs between the two warehouse back-ends is produced here, so
report compilers never branch on the dialect themselves. Emitters are stateless and
return plain SQL text.
"""

from typing import Dict, Union

from app.reports.constants import DialectName


class Dialect:
    """Tokens shared by both back-ends. Subclasses override what differs."""

    name: DialectName
    # Additional fields are pivoted through CTEs instead of joined value by value
    pivots_additional_fields = False

    # ===== IDENTIFIERS AND LITERALS =====

    def ident(self, column: str) -> str:
        """Render a bare column identifier."""
        raise NotImplementedError

    def ref(self, path: str) -> str:
        """Render an ``alias.column`` reference (or a bare column)."""
        if "." not in path:
            return self.ident(path)
        alias, column = path.split(".", 1)
        return f"{alias}.{self.ident(column)}"

    def select_alias(self, label: str) -> str:
        """Quote a label used as a select alias."""
        return '"' + str(label).replace('"', '""') + '"'

    def case_literal(self, text: str) -> str:
        """Quote a string used as a literal inside CASE expressions and predicates."""
        return "'" + str(text).replace("'", "''") + "'"

    def bool_literal(self, value: bool) -> str:
        raise NotImplementedError

    # ===== FUNCTIONS =====

    def now(self) -> str:
        raise NotImplementedError

    def current_date(self) -> str:
        return "CURRENT_DATE"

    def first_value_agg(self, expr: str) -> str:
        """Aggregate returning any non-null value of the group."""
        raise NotImplementedError

    def json_extract(self, expr: str, path: str) -> str:
        raise NotImplementedError

    def convert_timezone(self, expr: str, timezone: str) -> str:
        """Convert a UTC timestamp to the report timezone and format it as a datetime string."""
        raise NotImplementedError

    def format_date(self, expr: str) -> str:
        raise NotImplementedError

    def to_date(self, expr: str) -> str:
        raise NotImplementedError

    def days_ago(self, days: int) -> str:
        """The date ``days`` days before today."""
        raise NotImplementedError

    def date_literal(self, value: str) -> str:
        return f"DATE {self.case_literal(value)}"

    def string_agg(self, expr: str, separator: str = ", ") -> str:
        """Sorted, de-duplicated concatenation of the group values."""
        raise NotImplementedError

    def double_type(self) -> str:
        raise NotImplementedError

    def limit_clause(self, limit: int) -> str:
        return f" LIMIT {int(limit)}" if limit and limit > 0 else ""

    def format_duration(self, seconds_expr: str) -> str:
        """Render seconds as ``<H>h <M>m``; zero and NULL totals stay NULL."""
        return (
            f"CASE WHEN {seconds_expr} IS NULL OR {seconds_expr} = 0 THEN NULL "
            f"ELSE CONCAT(CAST(CAST(FLOOR({seconds_expr} / 3600) AS BIGINT) AS VARCHAR), 'h ', "
            f"CAST(CAST(FLOOR(MOD({seconds_expr}, 3600) / 60) AS BIGINT) AS VARCHAR), 'm') END"
        )

    def percentage(self, numerator: str, denominator: str) -> str:
        """Percentage guarded against an empty denominator."""
        return (
            f"CASE WHEN {denominator} = 0 THEN 0 "
            f"ELSE (CAST({numerator} AS DECIMAL(20, 2)) * 100) / {denominator} END"
        )

    def rounded_percentage(self, numerator: str, denominator: str) -> str:
        return (
            f"CASE WHEN {denominator} = 0 THEN 0 "
            f"ELSE ROUND(CAST({numerator} AS {self.double_type()}) * 100.0 / {denominator}, 2) END"
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name.value}>"


class AthenaDialect(Dialect):
    """Presto-flavoured SQL: unquoted camelCase identifiers."""

    name = DialectName.ATHENA

    def ident(self, column: str) -> str:
        return column

    def bool_literal(self, value: bool) -> str:
        return "1" if value else "0"

    def now(self) -> str:
        return "NOW()"

    def first_value_agg(self, expr: str) -> str:
        return f"ARBITRARY({expr})"

    def json_extract(self, expr: str, path: str) -> str:
        return f"json_extract_scalar({expr}, '$.{path}')"

    def convert_timezone(self, expr: str, timezone: str) -> str:
        return f"DATE_FORMAT({expr} AT TIME ZONE {self.case_literal(timezone)}, '%Y-%m-%d %H:%i:%s')"

    def format_date(self, expr: str) -> str:
        return f"DATE_FORMAT({expr}, '%Y-%m-%d')"

    def to_date(self, expr: str) -> str:
        return f"DATE({expr})"

    def days_ago(self, days: int) -> str:
        return f"DATE_ADD('day', -{int(days)}, CURRENT_DATE)"

    def string_agg(self, expr: str, separator: str = ", ") -> str:
        return f"ARRAY_JOIN(ARRAY_SORT(ARRAY_AGG(DISTINCT({expr}))), {self.case_literal(separator)})"

    def double_type(self) -> str:
        return "DOUBLE"


class SnowflakeDialect(Dialect):
    """Snowflake SQL: quoted lowercase identifiers."""

    name = DialectName.SNOWFLAKE
    pivots_additional_fields = True

    def ident(self, column: str) -> str:
        return '"' + column.lower() + '"'

    def bool_literal(self, value: bool) -> str:
        return "TRUE" if value else "FALSE"

    def now(self) -> str:
        return "current_timestamp()"

    def current_date(self) -> str:
        return "current_date()"

    def first_value_agg(self, expr: str) -> str:
        return f"ANY_VALUE({expr})"

    def json_extract(self, expr: str, path: str) -> str:
        return f"json_extract_path_text({expr}, '{path}')"

    def convert_timezone(self, expr: str, timezone: str) -> str:
        return f"TO_CHAR(CONVERT_TIMEZONE('UTC', {self.case_literal(timezone)}, {expr}), 'YYYY-MM-DD HH24:MI:SS')"

    def format_date(self, expr: str) -> str:
        return f"TO_CHAR({expr}, 'YYYY-MM-DD')"

    def to_date(self, expr: str) -> str:
        return f"TO_DATE({expr})"

    def days_ago(self, days: int) -> str:
        return f"DATEADD(day, -{int(days)}, current_date())"

    def string_agg(self, expr: str, separator: str = ", ") -> str:
        return f"LISTAGG(DISTINCT {expr}, {self.case_literal(separator)}) WITHIN GROUP (ORDER BY {expr})"

    def double_type(self) -> str:
        return "FLOAT"


ATHENA = AthenaDialect()
SNOWFLAKE = SnowflakeDialect()

_DIALECTS: Dict[DialectName, Dialect] = {
    DialectName.ATHENA: ATHENA,
    DialectName.SNOWFLAKE: SNOWFLAKE,
}


def get_dialect(name: Union[str, DialectName]) -> Dialect:
    """Return the emitter for a dialect name."""
    return _DIALECTS[DialectName(name)]
