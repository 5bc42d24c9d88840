# app/reports/registry.py
"""Report type switcher: maps a report type to the configuration that compiles it."""

import logging
from typing import Dict, Type, Union

from app.reports.constants import ReportType
from app.reports.exceptions import UnknownReportTypeError
from app.reports.schemas import SessionContext
from app.reports.types.base import ReportTypeConfig
from app.reports.types.certifications_users import CertificationsUsersReport
from app.reports.types.courses_users import CoursesUsersReport
from app.reports.types.ecommerce_transactions import EcommerceTransactionsReport
from app.reports.types.groups_courses import GroupsCoursesReport
from app.reports.types.learning_plans_statistics import LearningPlansStatisticsReport
from app.reports.types.users_webinar import UsersWebinarReport

logger = logging.getLogger(__name__)

REPORT_TYPE_REGISTRY: Dict[str, Type[ReportTypeConfig]] = {}


def register_report_type(config_class: Type[ReportTypeConfig]) -> Type[ReportTypeConfig]:
    REPORT_TYPE_REGISTRY[config_class.report_type.value] = config_class
    return config_class


for _config_class in (
    CoursesUsersReport,
    GroupsCoursesReport,
    CertificationsUsersReport,
    EcommerceTransactionsReport,
    LearningPlansStatisticsReport,
    UsersWebinarReport,
):
    register_report_type(_config_class)


def get_report_type_config(report_type: Union[str, ReportType], session: SessionContext) -> ReportTypeConfig:
    """Build the configuration owning ``report_type`` for the tenant of ``session``.

    Raises ``UnknownReportTypeError`` when no compiler owns the type and
    ``DisabledReportTypeError`` when the tenant lacks a required feature.
    """
    key = report_type.value if isinstance(report_type, ReportType) else report_type
    config_class = REPORT_TYPE_REGISTRY.get(key)
    if config_class is None:
        raise UnknownReportTypeError(key)

    config = config_class()
    config.ensure_enabled(session)
    logger.debug(f"Report type '{key}' resolved to {config_class.__name__}")
    return config
