# app/reports/constants.py
"""Enumerations and fixed values shared by the report compilers and the legacy translators."""

from enum import Enum, IntEnum
from typing import Dict


class ReportType(str, Enum):
    """Report types as persisted on a report definition."""

    COURSES_USERS = "Courses - Users"
    ECOMMERCE_TRANSACTION = "Ecommerce - Transactions"
    GROUPS_COURSES = "Groups/Branches - Courses"
    CERTIFICATIONS_USERS = "Certifications - Users"
    LP_USERS_STATISTICS = "Learning plans - Users Statistics"
    USERS_WEBINAR = "Users - Webinar Sessions"

    # Legacy-only targets, no compiler in this service
    USERS_COURSES = "Users - Courses"
    USERS_ENROLLMENT_TIME = "Users - Enrollment Time"
    USERS_LEARNINGOBJECTS = "Users - Learning Objects"
    USERS_LP = "Users - Learning Plans"
    USERS_CLASSROOM_SESSIONS = "Users - Classroom Sessions"
    USERS_CERTIFICATIONS = "Users - Certifications"
    USERS_EXTERNAL_TRAINING = "Users - External Training"
    USERS_BADGES = "Users - Badges"
    ASSETS_STATISTICS = "Assets - Statistics"
    USER_CONTRIBUTIONS = "Users - Contributions"


class DialectName(str, Enum):
    """Supported SQL back-ends."""

    ATHENA = "athena"
    SNOWFLAKE = "snowflake"


class EnrollmentStatus(IntEnum):
    WAITING_LIST = -2
    CONFIRMED = -1
    SUBSCRIBED = 0
    IN_PROGRESS = 1
    COMPLETED = 2
    SUSPENDED = 3
    OVERBOOKING = 4


class CourseuserLevel(IntEnum):
    STUDENT = 3
    TUTOR = 4
    TEACHER = 6


class CourseType(str, Enum):
    ELEARNING = "elearning"
    CLASSROOM = "classroom"
    WEBINAR = "webinar"


class CourseTypeFilter(IntEnum):
    ALL = 0
    E_LEARNING = 1
    ILT = 2


class AdditionalFieldType(str, Enum):
    """Declared type of a tenant-defined additional field."""

    CODICE_FISCALE = "codicefiscale"
    COUNTRY = "country"
    DATE = "date"
    DROPDOWN = "dropdown"
    FREETEXT = "freetext"
    GMAIL = "gmail"
    ICQ = "icq"
    MSN = "msn"
    SKYPE = "skype"
    TEXTFIELD = "textfield"
    TEXT = "text"
    TEXTAREA = "textarea"
    UPLOAD = "upload"
    YAHOO = "yahoo"
    YESNO = "yesno"


class EcommerceItemType(str, Enum):
    COURSE = "course"
    COURSEPATH = "coursepath"
    COURSESEATS = "courseseats"
    SUBSCRIPTION_PLAN = "subscription_plan"


class SessionEvaluationStatus(IntEnum):
    PASSED = 1
    FAILED = -1


class VisibilityType(IntEnum):
    ALL_GODADMINS = 1
    ALL_GODADMINS_AND_PU = 2
    ALL_GODADMINS_AND_SELECTED_PU = 3


class DateConditions(str, Enum):
    ALL_CONDITIONS = "allConditions"
    AT_LEAST_ONE_CONDITION = "atLeastOneCondition"


class DateFilterType(str, Enum):
    NONE = ""
    RELATIVE = "relative"
    RANGE = "range"
    ABSOLUTE = "absolute"


class DateOperator(str, Enum):
    NONE = ""
    IS_AFTER = "isAfter"
    IS_BEFORE = "isBefore"
    IS_EQUAL = "isEqual"
    RANGE = "range"


class TimeFrame(str, Enum):
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"


class SortSelector(str, Enum):
    DEFAULT = "default"
    CUSTOM = "custom"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class UserLevel(str, Enum):
    GOD_ADMIN = "godadmin"
    POWER_USER = "admin"
    USER = "user"


class ExportLimit(IntEnum):
    """Row ceilings for each export target."""

    CSV = 2000000
    XLSX = 1000000
    PREVIEW = 100


class AdditionalFieldEntity(str, Enum):
    USER = "user"
    COURSE = "course"
    LEARNING_PLAN = "lp"


# Per-item ceiling of the definition store, in bytes
REPORT_ITEM_SIZE_LIMIT = 400000

ANONYMOUS_USERID = "/Anonymous"

LEGACY_TYPES: Dict[int, ReportType] = {
    1: ReportType.USERS_COURSES,
    2: ReportType.USERS_ENROLLMENT_TIME,
    3: ReportType.USERS_LEARNINGOBJECTS,
    4: ReportType.COURSES_USERS,
    5: ReportType.GROUPS_COURSES,
    6: ReportType.ECOMMERCE_TRANSACTION,
    10: ReportType.USERS_LP,
    20: ReportType.USERS_CLASSROOM_SESSIONS,
    26: ReportType.CERTIFICATIONS_USERS,
    27: ReportType.USERS_CERTIFICATIONS,
    28: ReportType.USERS_EXTERNAL_TRAINING,
    29: ReportType.USERS_BADGES,
    50: ReportType.ASSETS_STATISTICS,
    53: ReportType.USER_CONTRIBUTIONS,
}
