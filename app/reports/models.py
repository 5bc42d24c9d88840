# app/reports/models.py
"""Persistence of report definitions and of the legacy reports they are migrated from."""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from app.core.database import Base


class StoredReportDefinition(Base):
    """Report definition stored as its camelCase JSON document."""

    __tablename__ = "report_definitions"

    id_report = Column(String, primary_key=True, index=True)
    report_type = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False, default="")
    platform = Column(String, nullable=False, default="")
    payload = Column(JSON, nullable=False)
    imported_from_legacy_id = Column(String, nullable=True, index=True)
    created_date = Column(DateTime, default=datetime.now)
    updated_date = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class LegacyReport(Base):
    """Legacy report row, ``filter_data`` kept as the original JSON string."""

    __tablename__ = "legacy_reports"

    id_filter = Column(String, primary_key=True, index=True)
    report_type_id = Column(Integer, nullable=False, index=True)
    author = Column(String, nullable=False, default="0")
    creation_date = Column(String, nullable=False, default="")
    filter_name = Column(String, nullable=False, default="")
    filter_data = Column(Text, nullable=False, default="")
    is_public = Column(String, nullable=False, default="0")
    views = Column(String, nullable=False, default="0")
    is_standard = Column(String, nullable=False, default="0")
    id_job = Column(String, nullable=True)
    last_edit_by = Column(String, nullable=True)
    last_edit = Column(String, nullable=True)
    visibility_type = Column(String, nullable=True)


class LegacyVisibilityRule(Base):
    __tablename__ = "legacy_report_visibility"

    id = Column(Integer, primary_key=True, index=True)
    id_report = Column(String, nullable=False, index=True)
    member_type = Column(String, nullable=False)  # 'user', 'group' or 'branch'
    member_id = Column(String, nullable=False)
    select_state = Column(String, nullable=False, default="1")
