# app/reports/exceptions.py
"""Exceptions raised by the report compilers, the legacy translators and the migration."""

from typing import Optional


class ReportError(Exception):
    """Base class for every report error."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DisabledReportTypeError(ReportError):
    """The tenant has the feature required by the report type turned off."""

    status_code = 403

    def __init__(self, report_type: str, feature: str):
        super().__init__(f"Report type '{report_type}' disabled: missing '{feature}'")
        self.report_type = report_type
        self.feature = feature


class UnknownReportTypeError(ReportError):
    """No compiler owns the requested report type."""

    def __init__(self, report_type: str):
        super().__init__(f"Invalid report type: {report_type}")
        self.report_type = report_type


class LegacyReportStructureError(ReportError):
    """A legacy filter document cannot be translated."""

    def __init__(self, legacy_id: str, reason: str):
        super().__init__(f"Legacy report {legacy_id}: {reason}")
        self.legacy_id = legacy_id
        self.reason = reason


class ReportSizeLimitExceeded(ReportError):
    def __init__(self, size: int, limit: int):
        super().__init__(f"Size exceeds the store limit of {limit} bytes: {size} bytes")
        self.size = size
        self.limit = limit


class UnsupportedDialectCombination(ReportError):
    """The report type is intentionally not implemented for the dialect."""

    status_code = 501

    def __init__(self, report_type: str, dialect: str):
        super().__init__(f"Report type '{report_type}' is not available on dialect '{dialect}'")
        self.report_type = report_type
        self.dialect = dialect


class InfrastructureError(ReportError):
    """A collaborator could not be reached. Fatal to the whole call."""

    status_code = 503

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause


class CatalogueUnavailableError(InfrastructureError):
    pass


class VisibilityResolverError(InfrastructureError):
    pass


class ReportStoreError(InfrastructureError):
    pass
