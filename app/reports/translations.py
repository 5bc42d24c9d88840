# app/reports/translations.py
"""Label catalogue for column aliases and literal CASE strings."""

import logging
from typing import Dict, Optional

from app.reports.fields import FieldId, Label

logger = logging.getLogger(__name__)

DEFAULT_LANG = "english"

ENGLISH_LABELS: Dict[str, str] = {
    # User
    FieldId.USER_ID.value: "User Unique ID",
    FieldId.USER_USERID.value: "Username",
    FieldId.USER_FIRSTNAME.value: "First Name",
    FieldId.USER_LASTNAME.value: "Last Name",
    FieldId.USER_FULLNAME.value: "Full Name",
    FieldId.USER_EMAIL.value: "Email",
    FieldId.USER_EMAIL_VALIDATION_STATUS.value: "Email Validation Status",
    FieldId.USER_LEVEL.value: "User Level",
    FieldId.USER_DEACTIVATED.value: "User Deactivated",
    FieldId.USER_EXPIRATION.value: "User Expiration Date",
    FieldId.USER_SUSPEND_DATE.value: "User Suspension Date",
    FieldId.USER_REGISTER_DATE.value: "User Creation Date",
    FieldId.USER_LAST_ACCESS_DATE.value: "User Last Access Date",
    FieldId.USER_BRANCH_NAME.value: "Branch Name",
    FieldId.USER_BRANCH_PATH.value: "Branch Path",
    FieldId.USER_BRANCHES_CODES.value: "Branch Codes",
    FieldId.USER_DIRECT_MANAGER.value: "Direct Manager",
    # Course
    FieldId.COURSE_ID.value: "Course ID",
    FieldId.COURSE_UNIQUE_ID.value: "Course Unique ID",
    FieldId.COURSE_CODE.value: "Course Code",
    FieldId.COURSE_NAME.value: "Course Name",
    FieldId.COURSE_CATEGORY_CODE.value: "Course Category Code",
    FieldId.COURSE_CATEGORY_NAME.value: "Course Category",
    FieldId.COURSE_STATUS.value: "Course Status",
    FieldId.COURSE_CREDITS.value: "Credits (CEUs)",
    FieldId.COURSE_DURATION.value: "Course Duration",
    FieldId.COURSE_TYPE.value: "Course Type",
    FieldId.COURSE_DATE_BEGIN.value: "Course Start Date",
    FieldId.COURSE_DATE_END.value: "Course End Date",
    FieldId.COURSE_EXPIRED.value: "Course Has Expired",
    FieldId.COURSE_CREATION_DATE.value: "Course Creation Date",
    FieldId.COURSE_E_SIGNATURE.value: "Course E-Signature",
    FieldId.COURSE_LANGUAGE.value: "Course Language",
    FieldId.COURSE_SKILLS.value: "Skills in Course",
    FieldId.COURSEUSER_DATE_COMPLETE.value: "Course Completion Date",
    # Webinar session
    FieldId.WEBINAR_SESSION_NAME.value: "Session Name",
    FieldId.WEBINAR_SESSION_EVALUATION_SCORE_BASE.value: "Session Evaluation Score Base",
    FieldId.WEBINAR_SESSION_START_DATE.value: "Session Start Date",
    FieldId.WEBINAR_SESSION_END_DATE.value: "Session End Date",
    FieldId.WEBINAR_SESSION_SESSION_TIME.value: "Session Time (min)",
    FieldId.WEBINAR_SESSION_WEBINAR_TOOL.value: "Webinar Tool",
    FieldId.WEBINAR_SESSION_TOOL_TIME_IN_SESSION.value: "Time in Session via Webinar Tool",
    FieldId.WEBINAR_SESSION_USER_LEVEL.value: "User Course Level",
    FieldId.WEBINAR_SESSION_USER_ENROLL_DATE.value: "Course Enrollment Date",
    FieldId.WEBINAR_SESSION_USER_STATUS.value: "Course Enrollment Status",
    FieldId.WEBINAR_SESSION_USER_LEARN_EVAL.value: "Evaluation Score",
    FieldId.WEBINAR_SESSION_USER_EVAL_STATUS.value: "Evaluation Status",
    FieldId.WEBINAR_SESSION_USER_INSTRUCTOR_FEEDBACK.value: "Instructor Feedback",
    FieldId.WEBINAR_SESSION_USER_ENROLLMENT_STATUS.value: "Session Enrollment Status",
    FieldId.WEBINAR_SESSION_USER_SUBSCRIBE_DATE.value: "Session Enrollment Date",
    FieldId.WEBINAR_SESSION_USER_COMPLETE_DATE.value: "Session Completion Date",
    # Group
    FieldId.GROUP_GROUP_OR_BRANCH_NAME.value: "Group/Branch Name",
    FieldId.GROUP_MEMBERS_COUNT.value: "Group Members Count",
    # Learning plan
    FieldId.LP_NAME.value: "Learning Plan Name",
    FieldId.LP_CODE.value: "Learning Plan Code",
    FieldId.LP_CREDITS.value: "Learning Plan Credits (CEUs)",
    FieldId.LP_UUID.value: "Learning Plan Unique ID",
    FieldId.LP_LAST_EDIT.value: "Learning Plan Last Edit",
    FieldId.LP_CREATION_DATE.value: "Learning Plan Creation Date",
    FieldId.LP_DESCRIPTION.value: "Learning Plan Description",
    FieldId.LP_ASSOCIATED_COURSES.value: "Associated Courses",
    FieldId.LP_MANDATORY_ASSOCIATED_COURSES.value: "Mandatory Associated Courses",
    FieldId.LP_STATUS.value: "Learning Plan Status",
    FieldId.LP_LANGUAGE.value: "Learning Plan Language",
    # Statistics
    FieldId.STATS_TOTAL_TIME_IN_COURSE.value: "Training Material Time",
    FieldId.STATS_ENROLLED_USERS.value: "Enrolled Users",
    FieldId.STATS_NOT_STARTED_USERS.value: "Users Not Started",
    FieldId.STATS_NOT_STARTED_USERS_PERCENTAGE.value: "Users Not Started (%)",
    FieldId.STATS_IN_PROGRESS_USERS.value: "Users In Progress",
    FieldId.STATS_IN_PROGRESS_USERS_PERCENTAGE.value: "Users In Progress (%)",
    FieldId.STATS_COMPLETED_USERS.value: "Users Completed",
    FieldId.STATS_COMPLETED_USERS_PERCENTAGE.value: "Users Completed (%)",
    FieldId.STATS_SESSION_TIME.value: "Session Time",
    FieldId.STATS_COURSE_RATING.value: "Course Rating",
    FieldId.STATS_ACTIVE.value: "Active Certifications",
    FieldId.STATS_EXPIRED.value: "Expired Certifications",
    FieldId.STATS_ISSUED.value: "Issued Certifications",
    FieldId.STATS_ARCHIVED.value: "Archived Certifications",
    FieldId.STATS_USER_FLOW.value: "Users Accessing via Flow",
    FieldId.STATS_USER_FLOW_PERCENTAGE.value: "Users Accessing via Flow (%)",
    FieldId.STATS_USER_FLOW_MS_TEAMS.value: "Users Accessing via Flow for MS Teams",
    FieldId.STATS_USER_FLOW_MS_TEAMS_PERCENTAGE.value: "Users Accessing via Flow for MS Teams (%)",
    FieldId.STATS_ACCESS_FROM_MOBILE.value: "Users Accessing via Mobile App",
    FieldId.STATS_PERCENTAGE_ACCESS_FROM_MOBILE.value: "Users Accessing via Mobile App (%)",
    FieldId.STATS_PATH_ENROLLED_USERS.value: "Enrolled Users",
    FieldId.STATS_PATH_NOT_STARTED_USERS.value: "Users Not Started",
    FieldId.STATS_PATH_NOT_STARTED_USERS_PERCENTAGE.value: "Users Not Started (%)",
    FieldId.STATS_PATH_IN_PROGRESS_USERS.value: "Users In Progress",
    FieldId.STATS_PATH_IN_PROGRESS_USERS_PERCENTAGE.value: "Users In Progress (%)",
    FieldId.STATS_PATH_COMPLETED_USERS.value: "Users Completed",
    FieldId.STATS_PATH_COMPLETED_USERS_PERCENTAGE.value: "Users Completed (%)",
    # Certification
    FieldId.CERTIFICATION_TITLE.value: "Certification Title",
    FieldId.CERTIFICATION_CODE.value: "Certification Code",
    FieldId.CERTIFICATION_DESCRIPTION.value: "Certification Description",
    FieldId.CERTIFICATION_DURATION.value: "Certification Duration",
    # Ecommerce
    FieldId.ECOMMERCE_TRANSACTION_ADDRESS_1.value: "Address 1",
    FieldId.ECOMMERCE_TRANSACTION_ADDRESS_2.value: "Address 2",
    FieldId.ECOMMERCE_TRANSACTION_CITY.value: "City",
    FieldId.ECOMMERCE_TRANSACTION_COMPANY_NAME.value: "Company Name",
    FieldId.ECOMMERCE_TRANSACTION_COUPON_CODE.value: "Coupon Code",
    FieldId.ECOMMERCE_TRANSACTION_COUPON_DESCRIPTION.value: "Coupon Description",
    FieldId.ECOMMERCE_TRANSACTION_DISCOUNT.value: "Discount",
    FieldId.ECOMMERCE_TRANSACTION_EXTERNAL_TRANSACTION_ID.value: "External Transaction ID",
    FieldId.ECOMMERCE_TRANSACTION_PAYMENT_DATE.value: "Payment Confirmation Date",
    FieldId.ECOMMERCE_TRANSACTION_PAYMENT_METHOD.value: "Payment Method",
    FieldId.ECOMMERCE_TRANSACTION_PAYMENT_STATUS.value: "Payment Status",
    FieldId.ECOMMERCE_TRANSACTION_QUANTITY.value: "Quantity",
    FieldId.ECOMMERCE_TRANSACTION_STATE.value: "State",
    FieldId.ECOMMERCE_TRANSACTION_SUBTOTAL_PRICE.value: "Subtotal Price",
    FieldId.ECOMMERCE_TRANSACTION_TOTAL_PRICE.value: "Total Price",
    FieldId.ECOMMERCE_TRANSACTION_TRANSACTION_CREATION_DATE.value: "Transaction Creation Date",
    FieldId.ECOMMERCE_TRANSACTION_TRANSACTION_ID.value: "Transaction ID",
    FieldId.ECOMMERCE_TRANSACTION_VAT_NUMBER.value: "VAT Number",
    FieldId.ECOMMERCE_TRANSACTION_ZIP_CODE.value: "Zip Code",
    FieldId.ECOMMERCE_TRANSACTION_ITEM_COURSE_LP_CODE.value: "Course/Learning Plan Code",
    FieldId.ECOMMERCE_TRANSACTION_ITEM_COURSE_LP_NAME.value: "Course/Learning Plan Name",
    FieldId.ECOMMERCE_TRANSACTION_ITEM_START_DATE.value: "Start Date",
    FieldId.ECOMMERCE_TRANSACTION_ITEM_END_DATE.value: "End Date",
    FieldId.ECOMMERCE_TRANSACTION_ITEM_ILT_WEBINAR_SESSION_NAME.value: "ILT/Webinar Session Name",
    FieldId.ECOMMERCE_TRANSACTION_ITEM_ILT_LOCATION.value: "ILT Location",
    FieldId.ECOMMERCE_TRANSACTION_ITEM_TYPE.value: "Item Type",
    FieldId.ECOMMERCE_TRANSACTION_PRICE.value: "Item Price",
    FieldId.CONTENT_PARTNERS_AFFILIATE.value: "Affiliate",
    FieldId.CONTENT_PARTNERS_REFERRAL_LINK_CODE.value: "Referral Link Code",
    FieldId.CONTENT_PARTNERS_REFERRAL_LINK_SOURCE.value: "Referral Link Source",
    # Literal values
    Label.YES.value: "Yes",
    Label.NO.value: "No",
    Label.NEVER.value: "Never",
    Label.COURSE_STATUS_PREPARATION.value: "Under Maintenance",
    Label.COURSE_STATUS_EFFECTIVE.value: "Published",
    Label.COURSE_TYPE_ELEARNING.value: "E-Learning",
    Label.COURSE_TYPE_CLASSROOM.value: "ILT",
    Label.COURSE_TYPE_WEBINAR.value: "Webinar",
    Label.COURSEUSER_LEVEL_STUDENT.value: "Learner",
    Label.COURSEUSER_LEVEL_TUTOR.value: "Tutor",
    Label.COURSEUSER_LEVEL_TEACHER.value: "Instructor",
    Label.COURSEUSER_STATUS_WAITING_LIST.value: "Waiting List",
    Label.COURSEUSER_STATUS_ENROLLMENTS_TO_CONFIRM.value: "Enrollments to Confirm",
    Label.COURSEUSER_STATUS_SUBSCRIBED.value: "Enrolled",
    Label.COURSEUSER_STATUS_IN_PROGRESS.value: "In Progress",
    Label.COURSEUSER_STATUS_COMPLETED.value: "Completed",
    Label.COURSEUSER_STATUS_SUSPENDED.value: "Suspended",
    Label.COURSEUSER_STATUS_OVERBOOKING.value: "Overbooking",
    Label.WEBINAR_SESSION_USER_EVAL_STATUS_PASSED.value: "Passed",
    Label.WEBINAR_SESSION_USER_EVAL_STATUS_FAILED.value: "Failed",
    Label.DAYS.value: "Days",
    Label.WEEKS.value: "Weeks",
    Label.MONTHS.value: "Months",
    Label.YEARS.value: "Years",
    Label.PAYMENT_STATUS_CANCELED.value: "Canceled",
    Label.PAYMENT_STATUS_PENDING.value: "Pending",
    Label.PAYMENT_STATUS_SUCCESSFUL.value: "Successful",
    Label.PAYMENT_STATUS_FAILED.value: "Failed",
    Label.COURSE.value: "Course",
    Label.COURSEPATH.value: "Learning Plan",
    Label.COURSESEATS.value: "Course Seats",
    Label.SUBSCRIPTION_PLAN.value: "Subscription Plan",
    Label.FREE_PURCHASE.value: "Free Purchase",
    Label.USER_LEVEL_USER.value: "User",
    Label.USER_LEVEL_POWERUSER.value: "Power User",
    Label.USER_LEVEL_GODADMIN.value: "Superadmin",
    Label.LP_STATUS_PUBLISHED.value: "Published",
    Label.LP_STATUS_UNDER_MAINTENANCE.value: "Under Maintenance",
}


class StaticTranslationService:
    """In-process label lookup with per-language overrides on top of English."""

    def __init__(self, overrides: Optional[Dict[str, Dict[str, str]]] = None):
        self._overrides = overrides or {}

    def labels(self, lang_code: str) -> Dict[str, str]:
        labels = dict(ENGLISH_LABELS)
        if lang_code != DEFAULT_LANG and lang_code not in self._overrides:
            logger.debug(f"No labels for language '{lang_code}', falling back to {DEFAULT_LANG}")
        labels.update(self._overrides.get(lang_code, {}))
        return labels
