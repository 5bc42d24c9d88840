# app/reports/compiler.py
"""Report definition to SQL compiler.

One ``ReportCompiler`` serves every report type: the per-type behaviour (base join
chain, filters, grouping keys and the ordered field handler sets) comes from the
``ReportTypeConfig`` it is built with. Every call to ``compile`` owns a fresh
``CompilationState``, so concurrent compilations share nothing.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Set, Tuple, Union

from app.reports.assembly import QueryAssemblyContext
from app.reports.constants import AdditionalFieldEntity, DialectName, SortDirection, SortSelector
from app.reports.dialect import Dialect, get_dialect
from app.reports.exceptions import ReportError
from app.reports.fields import STRING_FIELDS
from app.reports.handlers.additional import AdditionalFieldHandler
from app.reports.interfaces import ExtraFieldCatalogue, IdSelection, TranslationService, VisibilityResolver
from app.reports.schemas import AdditionalField, ReportDefinition, SessionContext

if TYPE_CHECKING:
    from app.reports.types.base import ReportTypeConfig

logger = logging.getLogger(__name__)


@dataclass
class ResolvedFilters:
    """Visibility-restricted id sets. ``None`` means the entity is not restricted."""

    users: Optional[IdSelection] = None
    courses: Optional[IdSelection] = None
    groups: Optional[IdSelection] = None
    certifications: Optional[IdSelection] = None
    learning_plans: Optional[IdSelection] = None


class CompilationState:
    """Everything one compilation reads and writes.

    Catalogue lookups are cached on the instance so each class of lookup reaches the
    catalogue at most once per compilation.
    """

    def __init__(
        self,
        config: "ReportTypeConfig",
        definition: ReportDefinition,
        session: SessionContext,
        dialect: Dialect,
        labels: Dict[str, str],
        catalogue: ExtraFieldCatalogue,
    ):
        self.config = config
        self.definition = definition
        self.session = session
        self.dialect = dialect
        self.labels = labels
        self.ctx = QueryAssemblyContext()
        self.filters = ResolvedFilters()
        self.string_fields: Set[str] = set(STRING_FIELDS)
        self._catalogue = catalogue
        self._additional_fields: Dict[AdditionalFieldEntity, Dict[int, AdditionalField]] = {}
        self._existing_fields: Dict[Tuple[AdditionalFieldEntity, int], bool] = {}
        self.pivoted_fields: Dict[AdditionalFieldEntity, List[AdditionalField]] = {}

    # ===== RENDERING HELPERS =====

    @property
    def grouped(self) -> bool:
        return self.config.groups_rows

    @property
    def timezone(self) -> str:
        return self.definition.timezone or self.session.timezone

    def label(self, key: Union[str, Enum]) -> str:
        key = key.value if isinstance(key, Enum) else key
        return self.labels.get(key, key)

    def alias(self, key: Union[str, Enum]) -> str:
        return self.dialect.select_alias(self.label(key))

    def literal(self, key: Union[str, Enum]) -> str:
        """Translated label quoted for use inside a CASE expression."""
        return self.dialect.case_literal(self.label(key))

    def col(self, path: str) -> str:
        return self.dialect.ref(path)

    def ident(self, column: str) -> str:
        return self.dialect.ident(column)

    def value(self, expr: str) -> str:
        """Collapse a non-aggregated expression when the report groups rows."""
        return self.dialect.first_value_agg(expr) if self.grouped else expr

    def column(self, path: str) -> str:
        return self.value(self.col(path))

    def datetime(self, path: str) -> str:
        """Column converted to the report timezone and rendered as a datetime string."""
        return self.dialect.convert_timezone(self.column(path), self.timezone)

    def select(self, field: str, expr: str, alias: Optional[str] = None) -> None:
        self.ctx.add_select(expr, alias or self.alias(field), field)

    def join_once(self, key: str, join_expr: str) -> bool:
        return self.ctx.add_join_once(key, join_expr)

    def id_filter(self, column: str, selection: Optional[IdSelection]) -> str:
        """``AND column IN (...)`` for a restricted selection, ``AND FALSE`` for an empty one."""
        if selection is None or selection.all:
            return ""
        if not selection.ids:
            return " AND FALSE"
        return f" AND {column} IN ({','.join(str(i) for i in selection.ids)})"

    # ===== CATALOGUE LOOKUPS =====

    async def additional_fields(self, entity: AdditionalFieldEntity) -> Dict[int, AdditionalField]:
        if entity not in self._additional_fields:
            fields = await self._catalogue.get_additional_fields(entity)
            self._additional_fields[entity] = {int(f.id): f for f in fields}
        return self._additional_fields[entity]

    async def additional_field_exists(self, entity: AdditionalFieldEntity, field_id: int) -> bool:
        key = (entity, field_id)
        if key not in self._existing_fields:
            self._existing_fields[key] = await self._catalogue.additional_field_exists(entity, field_id)
        return self._existing_fields[key]


class ReportCompiler:
    """Compiles one report definition for a tenant session."""

    def __init__(
        self,
        config: "ReportTypeConfig",
        definition: ReportDefinition,
        session: SessionContext,
        catalogue: ExtraFieldCatalogue,
        visibility: VisibilityResolver,
        translations: TranslationService,
    ):
        self.config = config
        self.definition = definition
        self.session = session
        self.catalogue = catalogue
        self.visibility = visibility
        self.translations = translations
        self.additional_fields = AdditionalFieldHandler()

    async def compile(
        self,
        dialect: Union[Dialect, DialectName, str],
        limit: int = 0,
        is_preview: bool = False,
        check_visibility: bool = True,
        from_schedule: bool = False,
    ) -> str:
        """Render the definition as a single SQL statement.

        ``from_schedule`` marks scheduled exports in the logs only. Scheduled runs
        sort by the same rendered alias as interactive exports, so the SQL is the same.
        """
        if not isinstance(dialect, Dialect):
            dialect = get_dialect(dialect)
        self.config.ensure_dialect(dialect.name)
        if limit < 0:
            raise ReportError("Limit must be zero or positive")

        state = CompilationState(
            self.config,
            self.definition,
            self.session,
            dialect,
            self.translations.labels(self.session.lang_code),
            self.catalogue,
        )
        logger.debug(
            f"Compiling '{self.config.report_type.value}' on {dialect.name.value} "
            f"with {len(self.definition.fields)} fields (schedule={from_schedule})"
        )

        await self.config.resolve_filters(state, self.visibility, check_visibility)
        self.config.build_base(state)
        state.ctx.add_where(self.config.tenant_predicate(state))
        await self.additional_fields.apply_filters(state)

        for field in self.definition.fields:
            await self._render_field(state, field)
        self.additional_fields.finalize(state)

        if not state.ctx.select:
            raise ReportError("The report has no field to select")

        self.config.build_where(state)
        for key in self.config.group_by(state):
            state.ctx.add_group_by(key)

        order_by = "" if is_preview else self._order_by(state)
        return state.ctx.render(order_by, dialect.limit_clause(limit))

    async def _render_field(self, state: CompilationState, field: str) -> None:
        if not self.config.is_field_enabled(field, self.session):
            logger.debug(f"Field '{field}' skipped: its feature is disabled")
            return
        for handler_set in self.config.handler_sets:
            if handler_set.handle(state, field):
                return
        if not await self.additional_fields.handle(state, field):
            logger.warning(f"Field '{field}' is not available for '{self.config.report_type.value}'")

    def _order_by(self, state: CompilationState) -> str:
        options = self.definition.sorting_options
        if options is None:
            return ""

        candidates: List[str] = []
        if options.selector == SortSelector.CUSTOM and options.selected_field:
            candidates.append(options.selected_field)
        candidates.append(self.config.default_sort_field.value)

        for field in candidates:
            alias = state.ctx.alias_for(field)
            if alias is None:
                continue
            expr = f"LOWER({alias})" if field in state.string_fields else alias
            direction = "DESC" if options.order_by == SortDirection.DESC else "ASC"
            return f"\nORDER BY {expr} {direction}"
        return ""
