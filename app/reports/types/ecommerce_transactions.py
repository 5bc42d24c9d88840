# app/reports/types/ecommerce_transactions.py
"""Ecommerce - Transactions: one row per purchased transaction item."""

from app.reports.constants import AdditionalFieldEntity, CourseType, EcommerceItemType, ReportType
from app.reports.fields import FieldId, Label
from app.reports.handlers.base import FieldHandlerSet
from app.reports.handlers.users import UserFieldHandlers
from app.reports.legacy import LegacySpec
from app.reports.schemas import CoursesFilter, LearningPlansFilter, ReportDefinition, UsersFilter
from app.reports.types.base import ReportTypeConfig, core_user_table

USER_FIELDS = (
    FieldId.USER_USERID,
    FieldId.USER_BRANCH_NAME,
    FieldId.USER_BRANCH_PATH,
    FieldId.USER_BRANCHES_CODES,
    FieldId.USER_DEACTIVATED,
    FieldId.USER_EMAIL,
    FieldId.USER_EMAIL_VALIDATION_STATUS,
    FieldId.USER_FIRSTNAME,
    FieldId.USER_FULLNAME,
    FieldId.USER_LASTNAME,
    FieldId.USER_REGISTER_DATE,
    FieldId.USER_EXPIRATION,
    FieldId.USER_LAST_ACCESS_DATE,
    FieldId.USER_LEVEL,
    FieldId.USER_SUSPEND_DATE,
    FieldId.USER_ID,
    FieldId.USER_DIRECT_MANAGER,
)

TRANSACTION_FIELDS = (
    FieldId.ECOMMERCE_TRANSACTION_ADDRESS_1,
    FieldId.ECOMMERCE_TRANSACTION_ADDRESS_2,
    FieldId.ECOMMERCE_TRANSACTION_CITY,
    FieldId.ECOMMERCE_TRANSACTION_COMPANY_NAME,
    FieldId.ECOMMERCE_TRANSACTION_COUPON_CODE,
    FieldId.ECOMMERCE_TRANSACTION_COUPON_DESCRIPTION,
    FieldId.ECOMMERCE_TRANSACTION_DISCOUNT,
    FieldId.ECOMMERCE_TRANSACTION_EXTERNAL_TRANSACTION_ID,
    FieldId.ECOMMERCE_TRANSACTION_PAYMENT_DATE,
    FieldId.ECOMMERCE_TRANSACTION_PAYMENT_METHOD,
    FieldId.ECOMMERCE_TRANSACTION_PAYMENT_STATUS,
    FieldId.ECOMMERCE_TRANSACTION_QUANTITY,
    FieldId.ECOMMERCE_TRANSACTION_STATE,
    FieldId.ECOMMERCE_TRANSACTION_SUBTOTAL_PRICE,
    FieldId.ECOMMERCE_TRANSACTION_TOTAL_PRICE,
    FieldId.ECOMMERCE_TRANSACTION_TRANSACTION_CREATION_DATE,
    FieldId.ECOMMERCE_TRANSACTION_TRANSACTION_ID,
    FieldId.ECOMMERCE_TRANSACTION_VAT_NUMBER,
    FieldId.ECOMMERCE_TRANSACTION_ZIP_CODE,
)

TRANSACTION_ITEM_FIELDS = (
    FieldId.ECOMMERCE_TRANSACTION_ITEM_COURSE_LP_CODE,
    FieldId.ECOMMERCE_TRANSACTION_ITEM_COURSE_LP_NAME,
    FieldId.ECOMMERCE_TRANSACTION_ITEM_START_DATE,
    FieldId.ECOMMERCE_TRANSACTION_ITEM_END_DATE,
    FieldId.ECOMMERCE_TRANSACTION_ITEM_ILT_WEBINAR_SESSION_NAME,
    FieldId.ECOMMERCE_TRANSACTION_ITEM_ILT_LOCATION,
    FieldId.ECOMMERCE_TRANSACTION_ITEM_TYPE,
    FieldId.ECOMMERCE_TRANSACTION_PRICE,
)

CONTENT_PARTNER_FIELDS = (
    FieldId.CONTENT_PARTNERS_AFFILIATE,
    FieldId.CONTENT_PARTNERS_REFERRAL_LINK_CODE,
    FieldId.CONTENT_PARTNERS_REFERRAL_LINK_SOURCE,
)


class TransactionFieldHandlers(FieldHandlerSet):
    """Transaction header fields: billing, coupon, payment and totals."""

    columns = {
        FieldId.ECOMMERCE_TRANSACTION_TRANSACTION_ID: "et.id_trans",
        FieldId.ECOMMERCE_TRANSACTION_EXTERNAL_TRANSACTION_ID: "et.payment_txn_id",
    }

    billing_columns = {
        FieldId.ECOMMERCE_TRANSACTION_ADDRESS_1: "bill_address1",
        FieldId.ECOMMERCE_TRANSACTION_ADDRESS_2: "bill_address2",
        FieldId.ECOMMERCE_TRANSACTION_CITY: "bill_city",
        FieldId.ECOMMERCE_TRANSACTION_STATE: "bill_state",
        FieldId.ECOMMERCE_TRANSACTION_ZIP_CODE: "bill_zip",
        FieldId.ECOMMERCE_TRANSACTION_COMPANY_NAME: "bill_company_name",
        FieldId.ECOMMERCE_TRANSACTION_VAT_NUMBER: "bill_vat_number",
    }

    def renderers(self):
        renderers = {
            field: (lambda column: lambda state: self._billing(state, column))(column)
            for field, column in self.billing_columns.items()
        }
        renderers.update(
            {
                FieldId.ECOMMERCE_TRANSACTION_PAYMENT_STATUS: self.payment_status,
                FieldId.ECOMMERCE_TRANSACTION_PAYMENT_METHOD: self.payment_method,
                FieldId.ECOMMERCE_TRANSACTION_SUBTOTAL_PRICE: self.subtotal_price,
                FieldId.ECOMMERCE_TRANSACTION_DISCOUNT: self.discount,
                FieldId.ECOMMERCE_TRANSACTION_TOTAL_PRICE: self.total_price,
                FieldId.ECOMMERCE_TRANSACTION_COUPON_CODE: lambda state: self._coupon(state, "code"),
                FieldId.ECOMMERCE_TRANSACTION_COUPON_DESCRIPTION: lambda state: self._coupon(state, "description"),
                FieldId.ECOMMERCE_TRANSACTION_TRANSACTION_CREATION_DATE: lambda state: state.datetime("et.date_creation"),
                FieldId.ECOMMERCE_TRANSACTION_PAYMENT_DATE: lambda state: state.datetime("et.date_activated"),
                FieldId.ECOMMERCE_TRANSACTION_QUANTITY: self.quantity,
            }
        )
        return renderers

    @staticmethod
    def _billing(state, column: str) -> str:
        col = state.col
        state.join_once("cub", f"JOIN core_user_billing AS cub ON {col('cub.id')} = {col('et.billing_info_id')}")
        return col(f"cub.{column}")

    @staticmethod
    def _coupon(state, column: str) -> str:
        col = state.col
        state.join_once("ecp", f"LEFT JOIN ecommerce_coupon AS ecp ON {col('ecp.id_coupon')} = {col('et.id_coupon')}")
        return col(f"ecp.{column}")

    @staticmethod
    def _join_totals(state) -> None:
        ident, col = state.ident, state.col
        totals = (
            f"SELECT {ident('id_trans')}, SUM(CAST({ident('price')} AS {state.dialect.double_type()})) "
            f"AS {ident('total_price')} FROM ecommerce_transaction_info GROUP BY {ident('id_trans')}"
        )
        state.join_once("eti_a", f"LEFT JOIN ({totals}) AS eti_a ON {col('eti_a.id_trans')} = {col('eti.id_trans')}")

    @staticmethod
    def _discount(state) -> str:
        return f"CAST({state.col('et.discount')} AS {state.dialect.double_type()})"

    @staticmethod
    def payment_status(state) -> str:
        cancelled, paid = state.col("et.cancelled"), state.col("et.paid")
        return (
            f"CASE WHEN CAST({cancelled} AS INTEGER) = 1 THEN {state.literal(Label.PAYMENT_STATUS_CANCELED)} "
            f"WHEN CAST({paid} AS INTEGER) = 0 THEN {state.literal(Label.PAYMENT_STATUS_PENDING)} "
            f"WHEN CAST({paid} AS INTEGER) = 1 THEN {state.literal(Label.PAYMENT_STATUS_SUCCESSFUL)} "
            f"ELSE {state.literal(Label.PAYMENT_STATUS_FAILED)} END"
        )

    def payment_method(self, state) -> str:
        self._join_totals(state)
        return (
            f"CASE WHEN {state.col('eti_a.total_price')} - {self._discount(state)} <= 0 "
            f"THEN {state.literal(Label.FREE_PURCHASE)} ELSE {state.col('et.payment_type')} END"
        )

    def subtotal_price(self, state) -> str:
        self._join_totals(state)
        return f"CONCAT(CAST({state.col('eti_a.total_price')} AS VARCHAR), ' ', {state.col('et.payment_currency')})"

    def discount(self, state) -> str:
        return f"CONCAT(CAST({self._discount(state)} AS VARCHAR), ' ', {state.col('et.payment_currency')})"

    def total_price(self, state) -> str:
        self._join_totals(state)
        return (
            f"CONCAT(CAST(ROUND({state.col('eti_a.total_price')} - {self._discount(state)}, 2) AS VARCHAR), "
            f"' ', {state.col('et.payment_currency')})"
        )

    @staticmethod
    def quantity(state) -> str:
        seats = state.dialect.json_extract(state.col("eti.item_data_json"), "seats")
        return f"CASE WHEN {seats} IS NOT NULL THEN CAST({seats} AS INTEGER) ELSE 1 END"


class TransactionItemFieldHandlers(FieldHandlerSet):
    """Purchased item fields, with the ILT or webinar session of seat purchases."""

    columns = {
        FieldId.ECOMMERCE_TRANSACTION_ITEM_COURSE_LP_CODE: "eti.code",
        FieldId.ECOMMERCE_TRANSACTION_ITEM_COURSE_LP_NAME: "eti.name",
    }

    def renderers(self):
        return {
            FieldId.ECOMMERCE_TRANSACTION_ITEM_TYPE: self.item_type,
            FieldId.ECOMMERCE_TRANSACTION_PRICE: self.price,
            FieldId.ECOMMERCE_TRANSACTION_ITEM_ILT_WEBINAR_SESSION_NAME: lambda state: self._session_value(state, "name"),
            FieldId.ECOMMERCE_TRANSACTION_ITEM_START_DATE: lambda state: state.dialect.convert_timezone(
                self._session_value(state, "date_begin"), state.timezone
            ),
            FieldId.ECOMMERCE_TRANSACTION_ITEM_END_DATE: lambda state: state.dialect.convert_timezone(
                self._session_value(state, "date_end"), state.timezone
            ),
            FieldId.ECOMMERCE_TRANSACTION_ITEM_ILT_LOCATION: self.location,
        }

    @staticmethod
    def item_type(state) -> str:
        item_type = state.col("eti.item_type")
        quote = state.dialect.case_literal
        return (
            f"CASE WHEN {item_type} = {quote(EcommerceItemType.COURSE.value)} THEN {state.literal(Label.COURSE)} "
            f"WHEN {item_type} = {quote(EcommerceItemType.COURSEPATH.value)} THEN {state.literal(Label.COURSEPATH)} "
            f"WHEN {item_type} = {quote(EcommerceItemType.COURSESEATS.value)} THEN {state.literal(Label.COURSESEATS)} "
            f"ELSE {state.literal(Label.SUBSCRIPTION_PLAN)} END"
        )

    @staticmethod
    def price(state) -> str:
        """Unit price; seat purchases divide the price by the number of seats."""
        col, dialect = state.col, state.dialect
        seats = dialect.json_extract(col("eti.item_data_json"), "seats")
        price = col("eti.price")
        return (
            f"CONCAT(CASE WHEN {col('eti.item_type')} = {dialect.case_literal(EcommerceItemType.COURSESEATS.value)} "
            f"AND {seats} IS NOT NULL AND CAST({seats} AS INTEGER) > 0 "
            f"THEN CAST(CAST({price} AS {dialect.double_type()}) / CAST({seats} AS INTEGER) AS VARCHAR) "
            f"ELSE {price} END, ' ', {col('et.payment_currency')})"
        )

    @staticmethod
    def _join_sessions(state) -> None:
        col, quote = state.col, state.dialect.case_literal
        state.join_once(
            "lts",
            f"LEFT JOIN lt_course_session AS lts ON {col('lts.id_session')} = {col('eti.id_date')} "
            f"AND {col('lts.course_id')} = {col('lc.idCourse')} "
            f"AND {col('lc.course_type')} = {quote(CourseType.CLASSROOM.value)}",
        )
        state.join_once(
            "ws",
            f"LEFT JOIN webinar_session AS ws ON {col('ws.id_session')} = {col('eti.id_date')} "
            f"AND {col('ws.course_id')} = {col('lc.idCourse')} "
            f"AND {col('lc.course_type')} = {quote(CourseType.WEBINAR.value)}",
        )

    def _session_value(self, state, column: str) -> str:
        self._join_sessions(state)
        return f"COALESCE({state.col(f'lts.{column}')}, {state.col(f'ws.{column}')})"

    @staticmethod
    def location(state) -> str:
        col, quote = state.col, state.dialect.case_literal
        state.join_once(
            "ltse",
            f"LEFT JOIN lt_course_session AS ltse ON {col('ltse.id_session')} = {col('eti.id_date')} "
            f"AND {col('ltse.course_id')} = {col('lc.idCourse')} "
            f"AND {col('lc.course_type')} = {quote(CourseType.CLASSROOM.value)}",
        )
        state.join_once(
            "ltla",
            f"LEFT JOIN lt_location_aggregate AS ltla ON {col('ltla.id_session')} = {col('ltse.id_session')}",
        )
        return col("ltla.locations")


class ContentPartnerFieldHandlers(FieldHandlerSet):
    def renderers(self):
        return {
            FieldId.CONTENT_PARTNERS_AFFILIATE: self.affiliate,
            FieldId.CONTENT_PARTNERS_REFERRAL_LINK_CODE: self.referral_code,
            FieldId.CONTENT_PARTNERS_REFERRAL_LINK_SOURCE: self.referral_source,
        }

    @staticmethod
    def _snapshot(state, key: str, path: str = "eti.item_data_json") -> str:
        return state.dialect.json_extract(state.col(path), f"position_snapshot.{key}")

    def _join_partners(self, state) -> None:
        """One partner name per transaction, so the join never multiplies rows."""
        ident, col, dialect = state.ident, state.col, state.dialect
        view = (
            f"SELECT {dialect.first_value_agg(col('cp.name'))} AS {ident('name')}, "
            f"{col('cprl.transaction_id')} AS {ident('transaction_id')} "
            f"FROM content_partners_referral_log AS cprl "
            f"LEFT JOIN ecommerce_transaction_info AS etip ON {col('etip.id_trans')} = {col('cprl.transaction_id')} "
            f"LEFT JOIN content_partners_affiliates AS cpa ON {col('cpa.id_partner')} = {col('cprl.partner_id')} "
            f"OR {self._snapshot(state, 'is_affiliate', 'etip.item_data_json')} = '1' "
            f"LEFT JOIN content_partners AS cp "
            f"ON {col('cp.id')} = CAST({self._snapshot(state, 'id_partner', 'etip.item_data_json')} AS INTEGER) "
            f"GROUP BY {col('cprl.transaction_id')}"
        )
        state.join_once("cpv", f"LEFT JOIN ({view}) AS cpv ON {col('cpv.transaction_id')} = {col('et.id_trans')}")

    def affiliate(self, state) -> str:
        self._join_partners(state)
        return (
            f"CASE WHEN {self._snapshot(state, 'is_affiliate')} IS NOT NULL THEN {state.literal(Label.YES)} "
            f"ELSE {state.literal(Label.NO)} END"
        )

    def referral_code(self, state) -> str:
        self._join_partners(state)
        return f"REPLACE({self._snapshot(state, 'referral_id')}, '\"', '')"

    def referral_source(self, state) -> str:
        self._join_partners(state)
        return state.col("cpv.name")


class EcommerceTransactionsReport(ReportTypeConfig):
    report_type = ReportType.ECOMMERCE_TRANSACTION
    required_features = ("ecommerce",)
    mandatory_fields = (FieldId.USER_USERID, FieldId.ECOMMERCE_TRANSACTION_TRANSACTION_ID)
    default_sort_field = FieldId.USER_USERID
    groups_rows = False
    visibility_entities = ("users", "courses", "learning_plans")
    catalogue_groups = {
        "user": USER_FIELDS,
        "ecommerceTransaction": TRANSACTION_FIELDS,
        "ecommerceTransactionItem": TRANSACTION_ITEM_FIELDS,
        "contentPartners": CONTENT_PARTNER_FIELDS,
    }
    additional_field_groups = {AdditionalFieldEntity.USER: "user"}
    additional_field_keys = {AdditionalFieldEntity.USER: "et.id_user"}
    legacy = LegacySpec(
        imports=("users", "courses", "plans"),
        sections=(
            ("user", "user_"),
            ("ecommerce", "ecommerce_transaction_"),
            ("ecommerce_item", "ecommerce_transaction_item_"),
            ("content_partner", "content_partners_"),
        ),
    )

    def build_handler_sets(self):
        return (
            UserFieldHandlers(),
            TransactionFieldHandlers(),
            TransactionItemFieldHandlers(),
            ContentPartnerFieldHandlers(),
        )

    def apply_default_filters(self, definition: ReportDefinition) -> None:
        definition.users = UsersFilter(all=True)
        definition.courses = CoursesFilter(all=True)
        definition.learning_plans = LearningPlansFilter(all=True)

    def build_base(self, state) -> None:
        ident, col, filters = state.ident, state.col, state.filters
        quote = state.dialect.case_literal

        transactions = "SELECT * FROM ecommerce_transaction WHERE TRUE"
        transactions += state.id_filter(ident("id_user"), filters.users)
        state.ctx.add_from(f"({transactions}) AS et")
        state.ctx.add_from(f"JOIN ({core_user_table(state)}) AS cu ON {col('cu.idst')} = {col('et.id_user')}")

        items = "SELECT * FROM ecommerce_transaction_info WHERE TRUE" + self._items_filter(state)
        state.ctx.add_from(f"JOIN ({items}) AS eti ON {col('eti.id_trans')} = {col('et.id_trans')}")
        state.ctx.add_from(
            f"LEFT JOIN learning_course AS lc ON {col('lc.idCourse')} = {col('eti.id_course')} "
            f"AND {col('eti.item_type')} IN ({quote(EcommerceItemType.COURSE.value)}, "
            f"{quote(EcommerceItemType.COURSESEATS.value)})"
        )
        state.ctx.add_from(
            f"LEFT JOIN learning_coursepath AS lcp ON {col('lcp.id_path')} = {col('eti.id_path')} "
            f"AND {col('eti.item_type')} IN ({quote(EcommerceItemType.COURSEPATH.value)})"
        )

    @staticmethod
    def _items_filter(state) -> str:
        """Restrict items to the visible courses, the visible learning plans, or either."""
        ident, filters = state.ident, state.filters
        courses = state.id_filter(ident("id_course"), filters.courses)
        plans = state.id_filter(ident("id_path"), filters.learning_plans)
        if courses and plans:
            return f" AND ({courses[len(' AND '):]} OR {plans[len(' AND '):]})"
        return courses or plans

    def build_where(self, state) -> None:
        session = state.session
        if session.is_power_user and not session.can_view_ecommerce_transactions:
            state.ctx.add_where("AND TRUE = FALSE")
