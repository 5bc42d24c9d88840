# app/reports/migration.py
"""Batch migration of legacy reports into report definitions."""

import logging
from typing import List, Optional

from app.reports.constants import LEGACY_TYPES, REPORT_ITEM_SIZE_LIMIT
from app.reports.exceptions import (
    DisabledReportTypeError,
    InfrastructureError,
    ReportError,
    ReportSizeLimitExceeded,
    UnknownReportTypeError,
)
from app.reports.interfaces import LegacyReportSource, ReportStore
from app.reports.legacy import translate_legacy
from app.reports.registry import get_report_type_config
from app.reports.schemas import (
    LegacyReportDoc,
    MigratedReport,
    MigrationOutcome,
    MigrationPayload,
    NotMigratedReport,
    ReportDefinition,
    SessionContext,
    VisibilityRule,
)

logger = logging.getLogger(__name__)


def definition_size(definition: ReportDefinition) -> int:
    """Size in bytes of the definition as persisted by the store."""
    return len(definition.model_dump_json(by_alias=True).encode("utf-8"))


class MigrationOrchestrator:
    """Fetch, translate, size-check and persist legacy reports.

    Per-report problems end up in ``not_migrated``; only infrastructure failures
    (legacy source, store) propagate to the caller.
    """

    def __init__(
        self,
        session: SessionContext,
        source: LegacyReportSource,
        store: ReportStore,
        size_limit: int = REPORT_ITEM_SIZE_LIMIT,
    ):
        self.session = session
        self.source = source
        self.store = store
        self.size_limit = size_limit

    async def migrate_reports(self, payload: MigrationPayload) -> MigrationOutcome:
        already_migrated = await self.store.get_already_migrated_ids()
        payload = payload.model_copy(
            update={
                "legacy_report_migrated_ids": sorted(
                    set(payload.legacy_report_migrated_ids) | {str(i) for i in already_migrated}
                )
            }
        )

        batch = await self.source.fetch_legacy_reports(payload)
        if batch is None or not batch.reports:
            logger.debug("No reports to migrate")
            return MigrationOutcome()
        logger.debug(f"Reports to migrate: {len(batch.reports)}")

        translated: List[ReportDefinition] = []
        not_migrated: List[NotMigratedReport] = []
        for doc in batch.reports:
            definition = self._translate(doc, batch.visibility_rules)
            if definition is None:
                not_migrated.append(
                    NotMigratedReport(id=doc.id_filter, title=doc.filter_name, legacy_type=doc.report_type_id)
                )
            else:
                translated.append(definition)

        if translated:
            await self.store.batch_write(translated)
        logger.info(f"Migrated: {len(translated)} - Not migrated: {len(not_migrated)}")

        return MigrationOutcome(
            migrated=[MigratedReport(id=definition.id_report, title=definition.title) for definition in translated],
            not_migrated=not_migrated,
        )

    def _translate(self, doc: LegacyReportDoc, visibility_rules: List[VisibilityRule]) -> Optional[ReportDefinition]:
        """Translated definition, or ``None`` when the report cannot be migrated."""
        report_type = LEGACY_TYPES.get(doc.report_type_id)
        if report_type is None:
            logger.error(f"No mappable type for the legacy type {doc.report_type_id}")
            return None

        try:
            config = get_report_type_config(report_type, self.session)
        except DisabledReportTypeError as e:
            logger.error(f"Required plug-in disabled for the legacy type {doc.report_type_id}: {e.message}")
            return None
        except UnknownReportTypeError:
            logger.error(f"No report type configuration for '{report_type.value}'")
            return None

        try:
            definition = translate_legacy(config, doc, self.session.platform, visibility_rules, self.session)
            size = definition_size(definition)
            if size > self.size_limit:
                raise ReportSizeLimitExceeded(size, self.size_limit)
        except InfrastructureError:
            raise
        except ReportError as e:
            logger.error(f"Error during the parse of the legacy report {doc.id_filter}: {e.message}", exc_info=True)
            return None
        except Exception as e:
            # Malformed legacy payloads surface as arbitrary errors from the translator
            logger.error(f"Error during the parse of the legacy report {doc.id_filter}: {str(e)}", exc_info=True)
            return None
        return definition
