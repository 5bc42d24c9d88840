# app/reports/schemas.py
"""Pydantic schemas for report definitions, legacy documents and migration outcomes."""

import re
from typing import Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from app.reports.constants import (
    CourseTypeFilter,
    DateConditions,
    DateFilterType,
    DateOperator,
    DialectName,
    ExportLimit,
    ReportType,
    SortDirection,
    SortSelector,
    TimeFrame,
    UserLevel,
    VisibilityType,
)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class CamelModel(BaseModel):
    """Base model persisted and exchanged with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ===== FILTER BLOCKS =====


class SelectionInfo(CamelModel):
    id: int
    name: Optional[str] = None
    descendants: Optional[bool] = None


class DateFilter(CamelModel):
    """Date-range filter descriptor. ``any`` means no restriction."""

    any: bool = True
    type: DateFilterType = DateFilterType.NONE
    operator: DateOperator = DateOperator.NONE
    days: int = 1
    from_: str = Field("", alias="from")
    to: str = ""

    @model_validator(mode="after")
    def validate_descriptor(self) -> "DateFilter":
        if self.any:
            return self
        if self.type == DateFilterType.RANGE:
            for value in (self.from_, self.to):
                if not _DATE_RE.match(value or ""):
                    raise ValueError("Range dates must be formatted as YYYY-MM-DD")
        elif self.type == DateFilterType.RELATIVE:
            if self.operator not in (DateOperator.IS_AFTER, DateOperator.IS_BEFORE, DateOperator.IS_EQUAL):
                raise ValueError("Relative dates accept only isAfter, isBefore and isEqual")
            if self.days < 0:
                raise ValueError("Relative days cannot be negative")
        elif self.type == DateFilterType.ABSOLUTE:
            if self.operator not in (DateOperator.IS_AFTER, DateOperator.IS_BEFORE):
                raise ValueError("Absolute dates accept only isAfter and isBefore")
            if not _DATE_RE.match(self.to or ""):
                raise ValueError("Absolute date must be formatted as YYYY-MM-DD")
        else:
            raise ValueError("A restricting date filter needs a type")
        return self


class UsersFilter(CamelModel):
    all: bool = False
    hide_deactivated: bool = True
    show_only_learners: bool = False
    hide_expired_users: bool = True
    is_user_add_fields: bool = False
    users: List[SelectionInfo] = []
    groups: List[SelectionInfo] = []
    branches: List[SelectionInfo] = []


class CoursesFilter(CamelModel):
    all: bool = False
    courses: List[SelectionInfo] = []
    categories: List[SelectionInfo] = []
    instructors: List[SelectionInfo] = []
    course_type: CourseTypeFilter = CourseTypeFilter.ALL


class GroupsFilter(CamelModel):
    all: bool = True
    groups: List[SelectionInfo] = []


class LearningPlansFilter(CamelModel):
    all: bool = False
    learning_plans: List[SelectionInfo] = []


class CertificationsFilter(CamelModel):
    all: bool = True
    certifications: List[SelectionInfo] = []
    active_certifications: bool = True
    expired_certifications: bool = True
    archived_certifications: bool = False
    certification_date: DateFilter = Field(default_factory=DateFilter)
    certification_expiration_date: DateFilter = Field(default_factory=DateFilter)
    conditions: DateConditions = DateConditions.ALL_CONDITIONS


class EnrollmentFilter(CamelModel):
    """Enrollment statuses to keep; all true means no restriction."""

    completed: bool = True
    in_progress: bool = True
    not_started: bool = True
    waiting_list: bool = True
    suspended: bool = True
    enrollments_to_confirm: bool = True
    subscribed: bool = True
    overbooking: bool = True


class SessionDates(CamelModel):
    start_date: DateFilter = Field(default_factory=DateFilter)
    end_date: DateFilter = Field(default_factory=DateFilter)
    conditions: DateConditions = DateConditions.ALL_CONDITIONS


class InstructorsFilter(CamelModel):
    all: bool = True
    instructors: List[SelectionInfo] = []


# ===== VIEW OPTIONS AND METADATA =====


class SortingOptions(CamelModel):
    selector: SortSelector = SortSelector.DEFAULT
    selected_field: str = ""
    order_by: SortDirection = SortDirection.ASC


class Visibility(CamelModel):
    type: VisibilityType = VisibilityType.ALL_GODADMINS
    users: List[SelectionInfo] = []
    groups: List[SelectionInfo] = []
    branches: List[SelectionInfo] = []


class PlanningOption(CamelModel):
    is_paused: bool = False
    recipients: List[str] = []
    every: int = 1
    time_frame: TimeFrame = TimeFrame.DAYS
    schedule_from: str = ""
    start_hour: str = "00:00"
    timezone: str = ""


class Planning(CamelModel):
    active: bool = False
    option: PlanningOption = Field(default_factory=PlanningOption)


class EditorInfo(CamelModel):
    id_user: int = 0
    firstname: str = ""
    lastname: str = ""
    username: str = ""
    avatar: str = ""


# ===== REPORT DEFINITION =====


class ReportDefinition(CamelModel):
    """Declarative description of a report: entity, columns, filters, sort and schedule."""

    id_report: str = Field(default_factory=lambda: str(uuid4()))
    type: ReportType
    platform: str = ""
    title: str = ""
    description: str = ""
    timezone: str = "UTC"
    author: int = 0
    creation_date: str = ""
    last_edit: str = ""
    last_edit_by: EditorInfo = Field(default_factory=EditorInfo)
    standard: bool = False
    deleted: bool = False
    visibility: Visibility = Field(default_factory=Visibility)
    planning: Planning = Field(default_factory=Planning)
    sorting_options: Optional[SortingOptions] = None
    fields: List[str] = []

    users: Optional[UsersFilter] = None
    courses: Optional[CoursesFilter] = None
    groups: Optional[GroupsFilter] = None
    learning_plans: Optional[LearningPlansFilter] = None
    certifications: Optional[CertificationsFilter] = None
    enrollment_date: Optional[DateFilter] = None
    completion_date: Optional[DateFilter] = None
    course_expiration_date: Optional[DateFilter] = None
    conditions: DateConditions = DateConditions.ALL_CONDITIONS
    enrollment: Optional[EnrollmentFilter] = None
    session_dates: Optional[SessionDates] = None
    instructors: Optional[InstructorsFilter] = None
    user_additional_fields_filter: Optional[Dict[str, int]] = None
    imported_from_legacy_id: Optional[str] = None

    @field_validator("fields")
    @classmethod
    def validate_unique_fields(cls, v: List[str]) -> List[str]:
        """Ensure no field is selected twice."""
        if len(v) != len(set(v)):
            raise ValueError("Duplicate fields not allowed")
        return v


# ===== SESSION CONTEXT =====


class PlatformFeatures(CamelModel):
    """Tenant plugin and toggle flags."""

    certification: bool = False
    ecommerce: bool = False
    e_signature: bool = False
    flow: bool = False
    flow_ms_teams: bool = False
    content_partners: bool = False
    datalake_v3: bool = False
    lp_statistics_report: bool = False


class SessionContext(CamelModel):
    """Tenant and caller information a compilation runs under."""

    platform: str = ""
    user_id: int = 0
    user_level: UserLevel = UserLevel.GOD_ADMIN
    lang_code: str = "english"
    timezone: str = "UTC"
    features: PlatformFeatures = Field(default_factory=PlatformFeatures)
    can_view_ecommerce_transactions: bool = True

    @property
    def is_power_user(self) -> bool:
        return self.user_level == UserLevel.POWER_USER


# ===== FIELD CATALOGUE =====


class ReportField(CamelModel):
    field: str
    id_label: str
    mandatory: bool = False
    is_additional_field: bool = False
    translation: str = ""


class AdditionalField(CamelModel):
    """Tenant-defined additional field as returned by the catalogue."""

    id: int
    title: str
    type: str
    options: Dict[str, str] = {}


# ===== LEGACY DOCUMENTS AND MIGRATION =====


class LegacyReportDoc(BaseModel):
    """Legacy report row with its free-form ``filter_data`` JSON."""

    model_config = ConfigDict(coerce_numbers_to_str=True, from_attributes=True)

    id_filter: str
    report_type_id: int
    author: str = "0"
    creation_date: str = ""
    filter_name: str = ""
    filter_data: str = ""
    is_public: str = "0"
    views: str = "0"
    is_standard: str = "0"
    id_job: Optional[str] = None
    last_edit_by: Optional[str] = None
    last_edit: Optional[str] = None
    visibility_type: Optional[str] = None


class VisibilityRule(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id_report: str
    member_type: str
    member_id: str
    select_state: str = "1"


class MigrationPayload(CamelModel):
    types: Optional[List[int]] = None
    name: Optional[str] = None
    is_migration_with_overwrite: bool = False
    legacy_report_migrated_ids: List[str] = []


class MigratedReport(CamelModel):
    id: str
    title: str


class NotMigratedReport(CamelModel):
    id: str
    title: str
    legacy_type: int


class MigrationOutcome(CamelModel):
    migrated: List[MigratedReport] = []
    not_migrated: List[NotMigratedReport] = []


# ===== API REQUESTS AND RESPONSES =====


class CompileRequest(CamelModel):
    definition: ReportDefinition
    dialect: Optional[DialectName] = None
    limit: int = Field(0, ge=0, le=ExportLimit.CSV)
    preview: bool = False
    check_visibility: bool = True
    from_schedule: bool = False
    context: Optional[SessionContext] = None


class CompileResponse(CamelModel):
    report_type: ReportType
    dialect: DialectName
    sql: str


class LegacyTranslateRequest(CamelModel):
    legacy_report: LegacyReportDoc
    visibility_rules: List[VisibilityRule] = []
    context: Optional[SessionContext] = None


class MigrateRequest(CamelModel):
    payload: MigrationPayload = Field(default_factory=MigrationPayload)
    context: Optional[SessionContext] = None


class StoredDefinitionSummary(CamelModel):
    id_report: str
    type: ReportType
    title: str
    platform: str
    imported_from_legacy_id: Optional[str] = None
