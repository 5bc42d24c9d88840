# app/reports/interfaces.py
"""Collaborator contracts consumed by the compilers and the migration orchestrator."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Tuple

from app.reports.constants import AdditionalFieldEntity
from app.reports.schemas import AdditionalField, LegacyReportDoc, MigrationPayload, ReportDefinition, VisibilityRule


@dataclass(frozen=True)
class IdSelection:
    """Result of a visibility resolution: either everything or an explicit id list."""

    all: bool
    ids: Tuple[int, ...] = field(default_factory=tuple)

    @classmethod
    def everything(cls) -> "IdSelection":
        return cls(all=True)

    @classmethod
    def only(cls, ids) -> "IdSelection":
        return cls(all=False, ids=tuple(int(i) for i in ids))

    @property
    def is_empty(self) -> bool:
        return not self.all and not self.ids


@dataclass(frozen=True)
class LegacyReportBatch:
    """Legacy reports fetched for one migration run."""

    reports: List[LegacyReportDoc]
    visibility_rules: List[VisibilityRule] = field(default_factory=list)


class ExtraFieldCatalogue(Protocol):
    """Tenant additional-field catalogue."""

    async def get_additional_fields(self, entity: AdditionalFieldEntity) -> List[AdditionalField]:
        ...

    async def additional_field_exists(self, entity: AdditionalFieldEntity, field_id: int) -> bool:
        """Whether the field is physically materialized in the warehouse."""
        ...


class VisibilityResolver(Protocol):
    """Resolves the entity ids a definition may read, scoped to the caller."""

    async def resolve_users(self, definition: ReportDefinition, check_visibility: bool) -> IdSelection:
        ...

    async def resolve_courses(self, definition: ReportDefinition, check_visibility: bool) -> IdSelection:
        ...

    async def resolve_groups(self, definition: ReportDefinition, check_visibility: bool) -> IdSelection:
        ...

    async def resolve_certifications(self, definition: ReportDefinition, check_visibility: bool) -> IdSelection:
        ...

    async def resolve_learning_plans(self, definition: ReportDefinition, check_visibility: bool) -> IdSelection:
        ...


class TranslationService(Protocol):
    def labels(self, lang_code: str) -> Dict[str, str]:
        """Label strings keyed by field id or literal key."""
        ...


class ReportStore(Protocol):
    async def get_already_migrated_ids(self) -> List[str]:
        ...

    async def batch_write(self, definitions: List[ReportDefinition]) -> None:
        ...


class LegacyReportSource(Protocol):
    async def fetch_legacy_reports(self, payload: MigrationPayload) -> Optional[LegacyReportBatch]:
        ...
