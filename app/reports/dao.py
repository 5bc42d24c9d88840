# app/reports/dao.py
"""Data Access Objects for stored report definitions and legacy reports."""

import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.reports.exceptions import ReportStoreError
from app.reports.interfaces import LegacyReportBatch
from app.reports.models import LegacyReport, LegacyVisibilityRule, StoredReportDefinition
from app.reports.schemas import LegacyReportDoc, MigrationPayload, ReportDefinition, VisibilityRule

logger = logging.getLogger(__name__)


class ReportDefinitionDAO:
    """Definition store. Also records which legacy reports were already migrated."""

    def __init__(self, db_session: Session):
        self.db = db_session

    async def get_all(self) -> List[StoredReportDefinition]:
        stmt = select(StoredReportDefinition).order_by(StoredReportDefinition.created_date.desc())
        return list(self.db.execute(stmt).scalars().all())

    async def get_by_id(self, id_report: str) -> Optional[StoredReportDefinition]:
        stmt = select(StoredReportDefinition).where(StoredReportDefinition.id_report == id_report)
        return self.db.execute(stmt).scalars().first()

    async def get_already_migrated_ids(self) -> List[str]:
        stmt = select(StoredReportDefinition.imported_from_legacy_id).where(
            StoredReportDefinition.imported_from_legacy_id.is_not(None)
        )
        try:
            return [str(legacy_id) for legacy_id in self.db.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            raise ReportStoreError("Unable to read the migrated report ids", e) from e

    async def batch_write(self, definitions: List[ReportDefinition]) -> None:
        """Persist every definition in one transaction.

        A definition imported from a legacy report replaces any earlier import of the
        same legacy report.
        """
        legacy_ids = [d.imported_from_legacy_id for d in definitions if d.imported_from_legacy_id]
        try:
            if legacy_ids:
                self.db.execute(
                    delete(StoredReportDefinition).where(
                        StoredReportDefinition.imported_from_legacy_id.in_(legacy_ids)
                    )
                )
            for definition in definitions:
                self.db.merge(
                    StoredReportDefinition(
                        id_report=definition.id_report,
                        report_type=definition.type.value,
                        title=definition.title,
                        platform=definition.platform,
                        payload=definition.model_dump(mode="json", by_alias=True),
                        imported_from_legacy_id=definition.imported_from_legacy_id,
                    )
                )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Batch write of {len(definitions)} report definitions failed: {str(e)}")
            raise ReportStoreError("Unable to persist the report definitions", e) from e
        logger.info(f"Stored {len(definitions)} report definitions")


class LegacyReportDAO:
    """Legacy report source backed by the ``legacy_reports`` table."""

    def __init__(self, db_session: Session):
        self.db = db_session

    async def fetch_legacy_reports(self, payload: MigrationPayload) -> Optional[LegacyReportBatch]:
        stmt = select(LegacyReport).order_by(LegacyReport.id_filter)
        if payload.types:
            stmt = stmt.where(LegacyReport.report_type_id.in_(payload.types))
        if payload.name:
            stmt = stmt.where(LegacyReport.filter_name.like(f"%{payload.name}%"))
        if payload.legacy_report_migrated_ids and not payload.is_migration_with_overwrite:
            stmt = stmt.where(LegacyReport.id_filter.not_in(payload.legacy_report_migrated_ids))

        try:
            rows = list(self.db.execute(stmt).scalars().all())
            if not rows:
                return None
            rule_stmt = select(LegacyVisibilityRule).where(
                LegacyVisibilityRule.id_report.in_([row.id_filter for row in rows])
            )
            rules = list(self.db.execute(rule_stmt).scalars().all())
        except SQLAlchemyError as e:
            raise ReportStoreError("Unable to read the legacy reports", e) from e

        return LegacyReportBatch(
            reports=[LegacyReportDoc.model_validate(row) for row in rows],
            visibility_rules=[
                VisibilityRule(
                    id_report=rule.id_report,
                    member_type=rule.member_type,
                    member_id=rule.member_id,
                    select_state=rule.select_state,
                )
                for rule in rules
            ],
        )
