# app/reports/fields.py
"""Closed catalogue of base field ids, literal label keys and additional-field ids."""

import re
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from app.reports.constants import AdditionalFieldEntity


class FieldId(str, Enum):
    """Base fields selectable in a report definition."""

    # User
    USER_ID = "user_id"
    USER_USERID = "user_userid"
    USER_FIRSTNAME = "user_firstname"
    USER_LASTNAME = "user_lastname"
    USER_FULLNAME = "user_fullname"
    USER_EMAIL = "user_email"
    USER_EMAIL_VALIDATION_STATUS = "user_email_validation_status"
    USER_LEVEL = "user_level"
    USER_DEACTIVATED = "user_deactivated"
    USER_EXPIRATION = "user_expiration"
    USER_SUSPEND_DATE = "user_suspend_date"
    USER_REGISTER_DATE = "user_register_date"
    USER_LAST_ACCESS_DATE = "user_last_access_date"
    USER_BRANCH_NAME = "user_branch_name"
    USER_BRANCH_PATH = "user_branch_path"
    USER_BRANCHES_CODES = "user_branches_codes"
    USER_DIRECT_MANAGER = "user_direct_manager"

    # Course
    COURSE_ID = "course_id"
    COURSE_UNIQUE_ID = "course_unique_id"
    COURSE_CODE = "course_code"
    COURSE_NAME = "course_name"
    COURSE_CATEGORY_CODE = "course_category_code"
    COURSE_CATEGORY_NAME = "course_category"
    COURSE_STATUS = "course_status"
    COURSE_CREDITS = "course_credits"
    COURSE_DURATION = "course_duration"
    COURSE_TYPE = "course_type"
    COURSE_DATE_BEGIN = "course_date_begin"
    COURSE_DATE_END = "course_date_end"
    COURSE_EXPIRED = "course_expired"
    COURSE_CREATION_DATE = "course_creation_date"
    COURSE_E_SIGNATURE = "course_e_signature"
    COURSE_LANGUAGE = "course_language"
    COURSE_SKILLS = "course_skills"

    # Course enrollment
    COURSEUSER_DATE_COMPLETE = "courseuser_date_complete"

    # Webinar session
    WEBINAR_SESSION_NAME = "webinar_session_name"
    WEBINAR_SESSION_EVALUATION_SCORE_BASE = "webinar_session_score_base"
    WEBINAR_SESSION_START_DATE = "webinar_session_start_date"
    WEBINAR_SESSION_END_DATE = "webinar_session_end_date"
    WEBINAR_SESSION_SESSION_TIME = "webinar_session_session_time"
    WEBINAR_SESSION_WEBINAR_TOOL = "webinar_session_webinar_tool"
    WEBINAR_SESSION_TOOL_TIME_IN_SESSION = "webinar_session_tool_time_in_session"

    # Webinar session enrollment
    WEBINAR_SESSION_USER_LEVEL = "webinar_session_user_level"
    WEBINAR_SESSION_USER_ENROLL_DATE = "webinar_session_user_enroll_date"
    WEBINAR_SESSION_USER_STATUS = "webinar_session_user_status"
    WEBINAR_SESSION_USER_LEARN_EVAL = "webinar_session_user_learn_eval"
    WEBINAR_SESSION_USER_EVAL_STATUS = "webinar_session_user_eval_status"
    WEBINAR_SESSION_USER_INSTRUCTOR_FEEDBACK = "webinar_session_user_instructor_feedback"
    WEBINAR_SESSION_USER_ENROLLMENT_STATUS = "webinar_session_user_enrollment_status"
    WEBINAR_SESSION_USER_SUBSCRIBE_DATE = "webinar_session_user_subscribe_date"
    WEBINAR_SESSION_USER_COMPLETE_DATE = "webinar_session_user_complete_date"

    # Group
    GROUP_GROUP_OR_BRANCH_NAME = "group_group_or_branch_name"
    GROUP_MEMBERS_COUNT = "group_members_count"

    # Learning plan
    LP_NAME = "lp_name"
    LP_CODE = "lp_code"
    LP_CREDITS = "lp_credits"
    LP_UUID = "lp_uuid"
    LP_LAST_EDIT = "lp_last_edit"
    LP_CREATION_DATE = "lp_creation_date"
    LP_DESCRIPTION = "lp_description"
    LP_ASSOCIATED_COURSES = "lp_associated_courses"
    LP_MANDATORY_ASSOCIATED_COURSES = "lp_mandatory_associated_courses"
    LP_STATUS = "lp_status"
    LP_LANGUAGE = "lp_language"

    # Course statistics
    STATS_TOTAL_TIME_IN_COURSE = "stats_total_time_in_course"
    STATS_ENROLLED_USERS = "stats_enrolled_users"
    STATS_NOT_STARTED_USERS = "stats_not_started_users"
    STATS_NOT_STARTED_USERS_PERCENTAGE = "stats_not_started_users_percentage"
    STATS_IN_PROGRESS_USERS = "stats_in_progress_users"
    STATS_IN_PROGRESS_USERS_PERCENTAGE = "stats_in_progress_users_percentage"
    STATS_COMPLETED_USERS = "stats_completed_users"
    STATS_COMPLETED_USERS_PERCENTAGE = "stats_completed_users_percentage"
    STATS_SESSION_TIME = "stats_session_time"
    STATS_COURSE_RATING = "stats_course_rating"

    # Certification statistics
    STATS_ACTIVE = "stats_active"
    STATS_EXPIRED = "stats_expired"
    STATS_ISSUED = "stats_issued"
    STATS_ARCHIVED = "stats_archived"

    # Flow and mobile statistics
    STATS_USER_FLOW = "stats_user_flow"
    STATS_USER_FLOW_PERCENTAGE = "stats_user_flow_percentage"
    STATS_USER_FLOW_MS_TEAMS = "stats_user_flow_ms_teams"
    STATS_USER_FLOW_MS_TEAMS_PERCENTAGE = "stats_user_flow_ms_teams_percentage"
    STATS_ACCESS_FROM_MOBILE = "stats_access_from_mobile"
    STATS_PERCENTAGE_ACCESS_FROM_MOBILE = "stats_percentage_access_from_mobile"

    # Learning plan statistics
    STATS_PATH_ENROLLED_USERS = "stats_path_enrolled_users"
    STATS_PATH_NOT_STARTED_USERS = "stats_path_not_started_users"
    STATS_PATH_NOT_STARTED_USERS_PERCENTAGE = "stats_path_not_started_users_percentage"
    STATS_PATH_IN_PROGRESS_USERS = "stats_path_in_progress_users"
    STATS_PATH_IN_PROGRESS_USERS_PERCENTAGE = "stats_path_in_progress_users_percentage"
    STATS_PATH_COMPLETED_USERS = "stats_path_completed_users"
    STATS_PATH_COMPLETED_USERS_PERCENTAGE = "stats_path_completed_users_percentage"

    # Certification
    CERTIFICATION_TITLE = "certification_title"
    CERTIFICATION_CODE = "certification_code"
    CERTIFICATION_DESCRIPTION = "certification_description"
    CERTIFICATION_DURATION = "certification_duration"

    # Ecommerce transaction
    ECOMMERCE_TRANSACTION_ADDRESS_1 = "ecommerce_transaction_address_1"
    ECOMMERCE_TRANSACTION_ADDRESS_2 = "ecommerce_transaction_address_2"
    ECOMMERCE_TRANSACTION_CITY = "ecommerce_transaction_city"
    ECOMMERCE_TRANSACTION_COMPANY_NAME = "ecommerce_transaction_company_name"
    ECOMMERCE_TRANSACTION_COUPON_CODE = "ecommerce_transaction_coupon_code"
    ECOMMERCE_TRANSACTION_COUPON_DESCRIPTION = "ecommerce_transaction_coupon_description"
    ECOMMERCE_TRANSACTION_DISCOUNT = "ecommerce_transaction_discount"
    ECOMMERCE_TRANSACTION_EXTERNAL_TRANSACTION_ID = "ecommerce_transaction_external_transaction_id"
    ECOMMERCE_TRANSACTION_PAYMENT_DATE = "ecommerce_transaction_payment_date"
    ECOMMERCE_TRANSACTION_PAYMENT_METHOD = "ecommerce_transaction_payment_method"
    ECOMMERCE_TRANSACTION_PAYMENT_STATUS = "ecommerce_transaction_payment_status"
    ECOMMERCE_TRANSACTION_QUANTITY = "ecommerce_transaction_quantity"
    ECOMMERCE_TRANSACTION_STATE = "ecommerce_transaction_state"
    ECOMMERCE_TRANSACTION_SUBTOTAL_PRICE = "ecommerce_transaction_subtotal_price"
    ECOMMERCE_TRANSACTION_TOTAL_PRICE = "ecommerce_transaction_total_price"
    ECOMMERCE_TRANSACTION_TRANSACTION_CREATION_DATE = "ecommerce_transaction_transaction_creation_date"
    ECOMMERCE_TRANSACTION_TRANSACTION_ID = "ecommerce_transaction_transaction_id"
    ECOMMERCE_TRANSACTION_VAT_NUMBER = "ecommerce_transaction_vat_number"
    ECOMMERCE_TRANSACTION_ZIP_CODE = "ecommerce_transaction_zip_code"

    # Ecommerce transaction item
    ECOMMERCE_TRANSACTION_ITEM_COURSE_LP_CODE = "ecommerce_transaction_item_course_lp_code"
    ECOMMERCE_TRANSACTION_ITEM_COURSE_LP_NAME = "ecommerce_transaction_item_course_lp_name"
    ECOMMERCE_TRANSACTION_ITEM_START_DATE = "ecommerce_transaction_item_start_date"
    ECOMMERCE_TRANSACTION_ITEM_END_DATE = "ecommerce_transaction_item_end_date"
    ECOMMERCE_TRANSACTION_ITEM_ILT_WEBINAR_SESSION_NAME = "ecommerce_transaction_item_ilt_webinar_session_name"
    ECOMMERCE_TRANSACTION_ITEM_ILT_LOCATION = "ecommerce_transaction_item_ilt_location"
    ECOMMERCE_TRANSACTION_ITEM_TYPE = "ecommerce_transaction_item_type"
    ECOMMERCE_TRANSACTION_PRICE = "ecommerce_transaction_price"

    # Content partners
    CONTENT_PARTNERS_AFFILIATE = "content_partners_affiliate"
    CONTENT_PARTNERS_REFERRAL_LINK_CODE = "content_partners_referral_link_code"
    CONTENT_PARTNERS_REFERRAL_LINK_SOURCE = "content_partners_referral_link_source"


class Label(str, Enum):
    """Literal strings embedded in CASE expressions."""

    YES = "yes"
    NO = "no"
    NEVER = "never"
    COURSE_STATUS_PREPARATION = "course_status_preparation"
    COURSE_STATUS_EFFECTIVE = "course_status_effective"
    COURSE_TYPE_ELEARNING = "course_type_elearning"
    COURSE_TYPE_CLASSROOM = "course_type_classroom"
    COURSE_TYPE_WEBINAR = "course_type_webinar"
    COURSEUSER_LEVEL_STUDENT = "courseuser_level_students"
    COURSEUSER_LEVEL_TUTOR = "courseuser_level_tutor"
    COURSEUSER_LEVEL_TEACHER = "courseuser_level_teacher"
    COURSEUSER_STATUS_WAITING_LIST = "courseuser_status_waiting_list"
    COURSEUSER_STATUS_ENROLLMENTS_TO_CONFIRM = "courseuser_status_confirmed"
    COURSEUSER_STATUS_SUBSCRIBED = "courseuser_status_subscribed"
    COURSEUSER_STATUS_IN_PROGRESS = "courseuser_status_in_progress"
    COURSEUSER_STATUS_COMPLETED = "courseuser_status_completed"
    COURSEUSER_STATUS_SUSPENDED = "courseuser_status_suspended"
    COURSEUSER_STATUS_OVERBOOKING = "courseuser_status_overbooking"
    WEBINAR_SESSION_USER_EVAL_STATUS_PASSED = "webinar_session_user_eval_status_passed"
    WEBINAR_SESSION_USER_EVAL_STATUS_FAILED = "webinar_session_user_eval_status_failed"
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"
    PAYMENT_STATUS_CANCELED = "payment_status_canceled"
    PAYMENT_STATUS_PENDING = "payment_status_pending"
    PAYMENT_STATUS_SUCCESSFUL = "payment_status_successful"
    PAYMENT_STATUS_FAILED = "payment_status_failed"
    COURSE = "course"
    COURSEPATH = "coursepath"
    COURSESEATS = "courseseats"
    SUBSCRIPTION_PLAN = "subscription_plan"
    FREE_PURCHASE = "free_purchase"
    USER_LEVEL_USER = "user_level_user"
    USER_LEVEL_POWERUSER = "user_level_poweruser"
    USER_LEVEL_GODADMIN = "user_level_godadmin"
    LP_STATUS_PUBLISHED = "lp_status_published"
    LP_STATUS_UNDER_MAINTENANCE = "lp_status_under_maintenance"


# Fields ordered case-insensitively
STRING_FIELDS: FrozenSet[str] = frozenset(
    f.value
    for f in (
        FieldId.USER_USERID,
        FieldId.USER_FIRSTNAME,
        FieldId.USER_LASTNAME,
        FieldId.USER_FULLNAME,
        FieldId.USER_EMAIL,
        FieldId.USER_DIRECT_MANAGER,
        FieldId.COURSE_NAME,
        FieldId.COURSE_CODE,
        FieldId.COURSE_CATEGORY_CODE,
        FieldId.COURSE_CATEGORY_NAME,
        FieldId.WEBINAR_SESSION_NAME,
        FieldId.WEBINAR_SESSION_WEBINAR_TOOL,
        FieldId.GROUP_GROUP_OR_BRANCH_NAME,
        FieldId.LP_NAME,
        FieldId.LP_CODE,
        FieldId.CERTIFICATION_TITLE,
        FieldId.CERTIFICATION_CODE,
        FieldId.ECOMMERCE_TRANSACTION_ADDRESS_1,
        FieldId.ECOMMERCE_TRANSACTION_ADDRESS_2,
        FieldId.ECOMMERCE_TRANSACTION_CITY,
        FieldId.ECOMMERCE_TRANSACTION_COMPANY_NAME,
        FieldId.ECOMMERCE_TRANSACTION_COUPON_CODE,
        FieldId.ECOMMERCE_TRANSACTION_COUPON_DESCRIPTION,
        FieldId.ECOMMERCE_TRANSACTION_EXTERNAL_TRANSACTION_ID,
        FieldId.ECOMMERCE_TRANSACTION_PAYMENT_METHOD,
        FieldId.ECOMMERCE_TRANSACTION_PAYMENT_STATUS,
        FieldId.ECOMMERCE_TRANSACTION_STATE,
        FieldId.ECOMMERCE_TRANSACTION_ITEM_COURSE_LP_CODE,
        FieldId.ECOMMERCE_TRANSACTION_ITEM_COURSE_LP_NAME,
        FieldId.ECOMMERCE_TRANSACTION_ITEM_ILT_WEBINAR_SESSION_NAME,
        FieldId.ECOMMERCE_TRANSACTION_ITEM_ILT_LOCATION,
        FieldId.ECOMMERCE_TRANSACTION_ITEM_TYPE,
        FieldId.CONTENT_PARTNERS_AFFILIATE,
        FieldId.CONTENT_PARTNERS_REFERRAL_LINK_CODE,
        FieldId.CONTENT_PARTNERS_REFERRAL_LINK_SOURCE,
    )
)

_ADDITIONAL_FIELD_RE = re.compile(r"^(user|course|lp)_extrafield_(\d+)$")


def additional_field_id(entity: AdditionalFieldEntity, field_id: int) -> str:
    """Render the field id of a tenant additional field."""
    return f"{entity.value}_extrafield_{field_id}"


def parse_additional_field(field: str) -> Optional[Tuple[AdditionalFieldEntity, int]]:
    """Split ``<entity>_extrafield_<id>`` into its entity and numeric id."""
    match = _ADDITIONAL_FIELD_RE.match(field)
    if match is None:
        return None
    return AdditionalFieldEntity(match.group(1)), int(match.group(2))


def is_base_field(field: str) -> bool:
    try:
        FieldId(field)
    except ValueError:
        return False
    return True


# Plugin flag each gated field needs on the tenant
FIELD_FEATURES: Dict[str, str] = {
    FieldId.COURSE_E_SIGNATURE.value: "e_signature",
    FieldId.STATS_USER_FLOW.value: "flow",
    FieldId.STATS_USER_FLOW_PERCENTAGE.value: "flow",
    FieldId.STATS_USER_FLOW_MS_TEAMS.value: "flow_ms_teams",
    FieldId.STATS_USER_FLOW_MS_TEAMS_PERCENTAGE.value: "flow_ms_teams",
    FieldId.CONTENT_PARTNERS_AFFILIATE.value: "content_partners",
    FieldId.CONTENT_PARTNERS_REFERRAL_LINK_CODE.value: "content_partners",
    FieldId.CONTENT_PARTNERS_REFERRAL_LINK_SOURCE.value: "content_partners",
}
