# app/reports/handlers/base.py
"""Dispatch from a field id to the method rendering its select expression."""

from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, Optional, Union

if TYPE_CHECKING:
    from app.reports.compiler import CompilationState

Renderer = Callable[["CompilationState"], str]


def _key(field: Union[str, Enum]) -> str:
    return field.value if isinstance(field, Enum) else field


class FieldHandlerSet:
    """Renders the fields of one concern.

    Subclasses list plain column fields in ``columns`` (field id to ``alias.column``)
    and register computed fields in ``renderers()``. A renderer returns the select
    expression and registers the joins it depends on through the state.
    """

    columns: Dict[str, str] = {}

    def renderers(self) -> Dict[str, Renderer]:
        return {}

    def __init__(self) -> None:
        self._renderers: Dict[str, Renderer] = {_key(k): self._plain(path) for k, path in self.columns.items()}
        self._renderers.update({_key(k): renderer for k, renderer in self.renderers().items()})

    @property
    def fields(self):
        return list(self._renderers)

    def claims(self, field: str) -> bool:
        return field in self._renderers

    def handle(self, state: "CompilationState", field: str) -> bool:
        """Append the field's expression and return True, or return False if not ours."""
        renderer: Optional[Renderer] = self._renderers.get(field)
        if renderer is None:
            return False
        state.select(field, renderer(state))
        return True

    @staticmethod
    def _plain(path: str) -> Renderer:
        return lambda state: state.column(path)
