# app/reports/assembly.py
"""Per-compilation accumulator of select expressions, joins, CTEs and grouping keys."""

from typing import Dict, List, Optional, Set, Tuple


class QueryAssemblyContext:
    """Mutable builder threaded through one compilation.

    A fresh instance is created for every compile call. Joins and CTEs are keyed by the
    logical alias they introduce and are registered at most once.
    """

    def __init__(self) -> None:
        self._from: List[str] = []
        self._join_keys: Set[str] = set()
        self._select: List[str] = []
        self._aliases: Dict[str, str] = {}
        self._where: List[str] = []
        self._group_by: List[str] = []
        self._ctes: List[Tuple[str, str]] = []
        self._cte_names: Set[str] = set()

    # ===== MUTATIONS =====

    def add_from(self, table_expr: str) -> None:
        """Add an unconditional FROM/JOIN segment of the base chain."""
        self._from.append(table_expr)

    def add_join_once(self, key: str, join_expr: str) -> bool:
        """Append a join unless ``key`` is already registered. Returns True when added."""
        if key in self._join_keys:
            return False
        self._join_keys.add(key)
        self._from.append(join_expr)
        return True

    def has_join(self, key: str) -> bool:
        return key in self._join_keys

    def add_select(self, expr: str, alias: str, field: Optional[str] = None) -> None:
        """Append one select expression; ``alias`` is the already rendered select alias."""
        self._select.append(f"{expr} AS {alias}")
        if field is not None:
            self._aliases[field] = alias

    def add_where(self, predicate: str) -> None:
        """Append a predicate fragment; fragments carry their own leading AND/OR."""
        if predicate and predicate.strip():
            self._where.append(predicate.strip())

    def add_group_by(self, expr: str) -> None:
        if expr not in self._group_by:
            self._group_by.append(expr)

    def add_cte(self, name: str, body: str) -> bool:
        if name in self._cte_names:
            return False
        self._cte_names.add(name)
        self._ctes.append((name, body))
        return True

    # ===== READ ACCESS =====

    @property
    def select(self) -> List[str]:
        return list(self._select)

    @property
    def joins(self) -> List[str]:
        return list(self._from)

    @property
    def group_by(self) -> List[str]:
        return list(self._group_by)

    @property
    def ctes(self) -> List[Tuple[str, str]]:
        return list(self._ctes)

    def alias_for(self, field: str) -> Optional[str]:
        """Rendered alias of a selected field, if the field produced a column."""
        return self._aliases.get(field)

    # ===== RENDERING =====

    def render(self, order_by: str = "", limit_clause: str = "") -> str:
        """Concatenate the collected parts into the final statement."""
        parts: List[str] = []
        if self._ctes:
            parts.append("WITH " + ", ".join(f"{name} AS ({body})" for name, body in self._ctes))
        parts.append("SELECT " + ", ".join(self._select))
        parts.append("FROM " + " ".join(self._from))
        parts.append("WHERE TRUE" + "".join(f" {predicate}" for predicate in self._where))
        if self._group_by:
            parts.append("GROUP BY " + ", ".join(self._group_by))
        query = "\n".join(parts)
        if order_by:
            query += order_by
        return query + limit_clause
