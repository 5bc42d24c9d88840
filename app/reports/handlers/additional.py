# app/reports/handlers/additional.py
"""Tenant additional fields: ``<entity>_extrafield_<id>`` columns and filters.

On back-ends that join value tables directly every additional field reads from one
shared value-table join. Back-ends that pivot collect the selected fields and emit two
CTEs per entity after the field loop: a projection of the value table and a pivot that
resolves dropdown and country labels.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, List

from app.reports.constants import AdditionalFieldEntity, AdditionalFieldType
from app.reports.fields import Label, parse_additional_field
from app.reports.schemas import AdditionalField

if TYPE_CHECKING:
    from app.reports.compiler import CompilationState

logger = logging.getLogger(__name__)

JoinAdder = Callable[[str, str], None]

NON_TEXT_TYPES = {
    AdditionalFieldType.DATE.value,
    AdditionalFieldType.YESNO.value,
}


@dataclass(frozen=True)
class AdditionalFieldSource:
    """Warehouse tables holding the values of one entity's additional fields."""

    entity: AdditionalFieldEntity
    value_table: str
    value_alias: str
    key: str
    dropdown_table: str
    dropdown_alias: str
    values_cte: str
    pivot_cte: str
    pivot_alias: str


SOURCES = {
    AdditionalFieldEntity.USER: AdditionalFieldSource(
        AdditionalFieldEntity.USER,
        "core_user_field_value",
        "cufv",
        "id_user",
        "core_user_field_dropdown_translations",
        "cufdt",
        "core_user_field_value_with",
        "users_additional_fields_translations",
        "uaft",
    ),
    AdditionalFieldEntity.COURSE: AdditionalFieldSource(
        AdditionalFieldEntity.COURSE,
        "learning_course_field_value",
        "lcfv",
        "id_course",
        "learning_course_field_dropdown_translations",
        "lcfdt",
        "learning_course_field_value_with",
        "courses_additional_fields_translations",
        "caft",
    ),
    AdditionalFieldEntity.LEARNING_PLAN: AdditionalFieldSource(
        AdditionalFieldEntity.LEARNING_PLAN,
        "learning_plan_field_value",
        "lpfv",
        "id_path",
        "learning_plan_field_dropdown_translations",
        "lpfdt",
        "learning_coursepath_field_value_with",
        "learning_plan_additional_fields_translations",
        "lpaft",
    ),
}


class AdditionalFieldHandler:
    """Fallback handler for fields no base handler set claimed."""

    # ===== FILTERS =====

    async def apply_filters(self, state: "CompilationState") -> None:
        """Equality predicates on user dropdown fields selected in the users filter."""
        definition = state.definition
        if not definition.user_additional_fields_filter:
            return
        if definition.users is None or not definition.users.is_user_add_fields:
            return
        key_path = state.config.additional_field_keys.get(AdditionalFieldEntity.USER)
        if key_path is None:
            return

        catalogue = await state.additional_fields(AdditionalFieldEntity.USER)
        source = SOURCES[AdditionalFieldEntity.USER]
        for raw_id, option in definition.user_additional_fields_filter.items():
            field_id = int(raw_id)
            field = catalogue.get(field_id)
            if field is None or field.type != AdditionalFieldType.DROPDOWN.value:
                logger.debug(f"User additional field filter {raw_id} ignored")
                continue
            if not await state.additional_field_exists(AdditionalFieldEntity.USER, field_id):
                continue
            self._join_values(state, source, key_path)
            column = state.col(f"{source.value_alias}.field_{field_id}")
            state.ctx.add_where(f"AND {column} = {int(option)}")

    # ===== FIELDS =====

    async def handle(self, state: "CompilationState", field: str) -> bool:
        parsed = parse_additional_field(field)
        if parsed is None:
            return False
        entity, field_id = parsed
        key_path = state.config.additional_field_keys.get(entity)
        if key_path is None:
            return False

        catalogue = await state.additional_fields(entity)
        additional = catalogue.get(field_id)
        if additional is None:
            logger.warning(f"Additional field {field} not found in the tenant catalogue")
            return True

        alias = state.dialect.select_alias(additional.title)
        if additional.type not in NON_TEXT_TYPES:
            state.string_fields.add(field)

        if not await state.additional_field_exists(entity, field_id):
            state.select(field, "''", alias)
            return True

        source = SOURCES[entity]
        if state.dialect.pivots_additional_fields:
            state.pivoted_fields.setdefault(entity, []).append(additional)
            state.join_once(
                source.pivot_alias,
                f"LEFT JOIN {source.pivot_cte} AS {source.pivot_alias} "
                f"ON {state.col(f'{source.pivot_alias}.{source.key}')} = {state.col(key_path)}",
            )
            state.select(field, state.column(f"{source.pivot_alias}.field_{field_id}"), alias)
            return True

        self._join_values(state, source, key_path)
        column = state.col(f"{source.value_alias}.field_{field_id}")
        expr = self._typed_value(state, source, additional, column, state.join_once, aggregate=True)
        state.select(field, expr, alias)
        return True

    def finalize(self, state: "CompilationState") -> None:
        """Emit the projection and pivot CTEs of every entity with pivoted fields."""
        for entity, fields in state.pivoted_fields.items():
            source = SOURCES[entity]
            key = state.ident(source.key)
            columns = ", ".join(state.ident(f"field_{f.id}") for f in fields)
            state.ctx.add_cte(source.values_cte, f"SELECT {key}, {columns} FROM {source.value_table}")

            joins: List[str] = []
            select = [state.col(f"{source.value_alias}.{source.key}")]
            for field in fields:
                column = state.col(f"{source.value_alias}.field_{field.id}")
                expr = self._typed_value(
                    state, source, field, column, lambda _key, join: joins.append(join), aggregate=False
                )
                select.append(f"{expr} AS {state.ident(f'field_{field.id}')}")
            body = f"SELECT {', '.join(select)} FROM {source.values_cte} AS {source.value_alias}"
            if joins:
                body += " " + " ".join(joins)
            state.ctx.add_cte(source.pivot_cte, body)

    # ===== EXPRESSIONS =====

    @staticmethod
    def _join_values(state: "CompilationState", source: AdditionalFieldSource, key_path: str) -> None:
        state.join_once(
            source.value_alias,
            f"LEFT JOIN {source.value_table} AS {source.value_alias} "
            f"ON {state.col(f'{source.value_alias}.{source.key}')} = {state.col(key_path)}",
        )

    @staticmethod
    def _typed_value(
        state: "CompilationState",
        source: AdditionalFieldSource,
        field: AdditionalField,
        column: str,
        add_join: JoinAdder,
        aggregate: bool,
    ) -> str:
        wrap = state.value if aggregate else (lambda expr: expr)
        field_type = field.type

        if field_type == AdditionalFieldType.DATE.value:
            return state.dialect.format_date(wrap(column))

        if field_type == AdditionalFieldType.DROPDOWN.value:
            alias = f"{source.dropdown_alias}_{field.id}"
            add_join(
                alias,
                f"LEFT JOIN {source.dropdown_table} AS {alias} "
                f"ON {state.col(f'{alias}.id_option')} = {column} "
                f"AND {state.col(f'{alias}.lang_code')} = {state.dialect.case_literal(state.session.lang_code)}",
            )
            return wrap(state.col(f"{alias}.translation"))

        if field_type == AdditionalFieldType.YESNO.value:
            value = wrap(column)
            return (
                f"CASE WHEN {value} = 1 THEN {state.literal(Label.YES)} "
                f"WHEN {value} = 2 THEN {state.literal(Label.NO)} ELSE '' END"
            )

        if field_type == AdditionalFieldType.COUNTRY.value:
            alias = f"cc_{field.id}"
            add_join(
                alias,
                f"LEFT JOIN core_country AS {alias} ON {state.col(f'{alias}.id_country')} = {column}",
            )
            return wrap(state.col(f"{alias}.name_country"))

        return wrap(column)
