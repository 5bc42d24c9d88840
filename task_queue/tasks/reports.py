"""
Legacy report migration tasks
"""

import asyncio
import logging
from pathlib import Path

from celery import shared_task

from app.reports.dao import LegacyReportDAO, ReportDefinitionDAO
from app.reports.migration import MigrationOrchestrator
from app.reports.schemas import MigrationPayload, SessionContext
from task_queue.config.db import get_db_session

# Configure logging
logger = logging.getLogger('task_queue.tasks.reports')
logger.setLevel(logging.INFO)

# Ensure log directory exists
log_dir = Path(__file__).resolve().parent.parent / 'logs'
log_dir.mkdir(exist_ok=True)

# Add file handler for report tasks
file_handler = logging.FileHandler(log_dir / 'report_tasks.log')
file_handler.setFormatter(logging.Formatter(
    '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
))
logger.addHandler(file_handler)


def run_migration(payload, context, db):
    """Run the migration orchestrator for a tenant on an open database session"""
    session = SessionContext.model_validate(context or {})
    orchestrator = MigrationOrchestrator(session, LegacyReportDAO(db), ReportDefinitionDAO(db))
    outcome = asyncio.run(orchestrator.migrate_reports(MigrationPayload.model_validate(payload or {})))
    return outcome.model_dump(mode='json', by_alias=True)


@shared_task(bind=True, name='task_queue.tasks.reports.migrate_legacy_reports')
def migrate_legacy_reports(self, payload, context=None):
    """
    Migrate the legacy reports of a tenant outside the request cycle

    Args:
        payload: The migration filter payload (camelCase keys)
        context: The tenant session context (camelCase keys, optional)

    Returns:
        dict: The migration outcome with the migrated and not migrated reports
    """
    logger.info(f"Task {self.request.id}: migrating legacy reports with payload: {payload}")

    db = get_db_session()
    try:
        result = run_migration(payload, context, db)
        logger.info(
            f"Task {self.request.id}: migrated {len(result['migrated'])}, "
            f"not migrated {len(result['notMigrated'])}"
        )
        return result

    except Exception as e:
        logger.exception(f"Unexpected error during the legacy report migration: {str(e)}")
        raise

    finally:
        db.close()
