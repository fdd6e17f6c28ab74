"""
Pydantic Schemas for the Ledger Engine
"""
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, field_serializer, model_validator
from typing import Any, ClassVar, Dict, List, Literal, Optional, Union
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from dateutil import parser as date_parser

from dailybook.core.formatting import to_decimal, quantize_money, money_str


# ==================== ENUMS ====================

class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    TRANSFER = "transfer"
    TRANSFER_OUT = "transfer_out"
    TRANSFER_IN = "transfer_in"
    PURCHASE = "purchase"
    PURCHASE_RETURN = "purchase_return"
    SALE = "sale"
    SALE_RETURN = "sale_return"
    ADVANCE_PURCHASE_INVENTORY = "advance_purchase_inventory"
    ADVANCE_SALE_PAYMENT = "advance_sale_payment"
    ADVANCE_PURCHASE_PAYMENT = "advance_purchase_payment"
    ADVANCE_SALE_INVENTORY = "advance_sale_inventory"
    ASSET_PURCHASE = "asset_purchase"
    LOAN = "loan"
    LOAN_RETURN = "loan_return"
    OTHER_EXPENSE = "other_expense"
    LOST_AND_DAMAGE = "lost_and_damage"
    PAY_ABLE = "pay_able"
    RECEIVE_ABLE = "receive_able"
    PAYABLE_ADVANCE = "payable_advance"
    RECEIVABLE_ADVANCE = "receivable_advance"
    PAY_ABLE_CLIENT = "pay_able_client"
    RECEIVE_ABLE_VENDOR = "receive_able_vendor"
    PAYROLL = "payroll"
    FIXED_UTILITY = "fixed_utility"
    FIXED_EXPENSE = "fixed_expense"
    MISCELLANEOUS = "miscellaneous"


class ModeOfPayment(str, Enum):
    CASH = "cash"
    CHECK = "check"
    BANK_TRANSFER = "bank_transfer"
    PAY_ORDER = "pay_order"


class AccountType(str, Enum):
    PETTY = "petty"
    BANK = "bank"
    CASH = "cash"


class AccountStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class EntityRole(str, Enum):
    PAYABLE = "payable"
    RECEIVABLE = "receivable"


class Classification(str, Enum):
    VENDOR = "vendor"
    CLIENT = "client"


class FlowDirection(str, Enum):
    PAYMENT = "payment"
    RECEIPT = "receipt"


class PaymentStatus(str, Enum):
    PAID = "paid"
    UNPAID = "unpaid"
    ALL = "all"


TRANSACTION_TYPE_LABELS = {
    TransactionType.DEPOSIT: "Deposit",
    TransactionType.TRANSFER: "Transfer",
    TransactionType.PAY_ABLE: "Payable",
    TransactionType.RECEIVE_ABLE: "Receivable",
    TransactionType.PAY_ABLE_CLIENT: "Client Payment",
    TransactionType.RECEIVE_ABLE_VENDOR: "Vendor Receipt",
    TransactionType.ADVANCE_SALE_PAYMENT: "Advance Sale Payment",
    TransactionType.ADVANCE_PURCHASE_PAYMENT: "Advance Purchase Payment",
    TransactionType.PAYROLL: "Payroll",
    TransactionType.FIXED_UTILITY: "Fixed Utility",
    TransactionType.FIXED_EXPENSE: "Fixed Expense",
    TransactionType.MISCELLANEOUS: "Miscellaneous",
}

MODE_OF_PAYMENT_LABELS = {
    ModeOfPayment.CHECK: "Check",
    ModeOfPayment.CASH: "Cash",
    ModeOfPayment.BANK_TRANSFER: "Bank Transfer",
    ModeOfPayment.PAY_ORDER: "Pay Order",
}


class ApiModel(BaseModel):
    """Base for records exchanged with the backend (ids may be ints or uuids)"""
    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore", populate_by_name=True)


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _is_sentinel(value) -> bool:
    """`all` and `all_*` select values mean "no constraint" """
    if not isinstance(value, str):
        return False
    value = value.strip().lower()
    return value == "all" or value.startswith("all_")


def parse_datetime(value) -> Optional[datetime]:
    """Accept ISO strings (with or without time / `Z`), dates and datetimes"""
    value = _blank_to_none(value)
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return date_parser.isoparse(str(value))


# ==================== ACCOUNT SCHEMAS ====================

class Account(ApiModel):
    """Internal cash/bank account"""
    id: str
    name: str
    account_number: Optional[str] = None
    account_type: Optional[AccountType] = None
    balance: Decimal = Decimal("0.00")
    status: AccountStatus = AccountStatus.ACTIVE

    @field_validator("balance", mode="before")
    @classmethod
    def coerce_balance(cls, value):
        return to_decimal(value)

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE


# ==================== COUNTERPARTY SCHEMAS ====================

class CounterpartyEntity(ApiModel):
    """Account payable (vendor) or account receivable (client).

    The role is fixed by the subclass when the record is loaded from the
    API; it is never inferred from the balance sign.
    """
    id: str
    name: str
    balance: Decimal = Decimal("0")

    role: ClassVar[EntityRole]
    role_label: ClassVar[str]

    @field_validator("balance", mode="before")
    @classmethod
    def coerce_balance(cls, value):
        return to_decimal(value)

    @classmethod
    def from_api(cls, payload: Dict[str, Any], role: Union[EntityRole, str]) -> "CounterpartyEntity":
        role = EntityRole(role)
        model = Vendor if role == EntityRole.PAYABLE else Client
        return model.model_validate(payload)

    @property
    def classification(self) -> Classification:
        return Classification(self.kind)


class Vendor(CounterpartyEntity):
    kind: Literal["vendor"] = "vendor"
    role: ClassVar[EntityRole] = EntityRole.PAYABLE
    role_label: ClassVar[str] = "Account Payable"


class Client(CounterpartyEntity):
    kind: Literal["client"] = "client"
    role: ClassVar[EntityRole] = EntityRole.RECEIVABLE
    role_label: ClassVar[str] = "Account Receivable"


# ==================== TRANSACTION SCHEMAS ====================

MONEY_FIELDS = ("total_amount", "paid_amount", "remaining_payment")
FOREIGN_KEY_FIELDS = (
    "source_account_id",
    "destination_account_id",
    "account_payable_id",
    "account_receivable_id",
    "purchaser_id",
)
DISPLAY_FIELDS = (
    "source_account_name",
    "destination_account_name",
    "account_payable_name",
    "account_receivable_name",
    "product_ids",
    "product_names",
)


class TransactionRecord(ApiModel):
    """A single ledger transaction as posted to / returned by the backend"""
    id: Optional[str] = None
    type: TransactionType
    date: Optional[datetime] = None
    total_amount: Optional[Decimal] = None
    paid_amount: Optional[Decimal] = None
    remaining_payment: Optional[Decimal] = None
    source_account_id: Optional[str] = None
    destination_account_id: Optional[str] = None
    account_payable_id: Optional[str] = None
    account_receivable_id: Optional[str] = None
    purchaser_id: Optional[str] = None
    mode_of_payment: Optional[ModeOfPayment] = None
    description: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None
    idempotency_key: Optional[str] = None

    # Relation names joined in by the backend for list views
    source_account_name: Optional[str] = None
    destination_account_name: Optional[str] = None
    account_payable_name: Optional[str] = None
    account_receivable_name: Optional[str] = None
    product_ids: List[str] = []
    product_names: List[str] = []

    @model_validator(mode="before")
    @classmethod
    def lift_product_junctions(cls, data):
        if isinstance(data, dict) and data.get("productJunctions"):
            data = dict(data)
            junctions = data.pop("productJunctions") or []
            data.setdefault("product_ids", [str(j["product_id"]) for j in junctions if j.get("product_id")])
            data.setdefault("product_names", [j["product_name"] for j in junctions if j.get("product_name")])
        return data

    @field_validator(*MONEY_FIELDS, mode="before")
    @classmethod
    def coerce_money(cls, value):
        value = _blank_to_none(value)
        if value is None:
            return None
        return quantize_money(value)

    @field_validator(*FOREIGN_KEY_FIELDS, mode="before")
    @classmethod
    def blank_foreign_key(cls, value):
        return _blank_to_none(value)

    @field_validator("mode_of_payment", mode="before")
    @classmethod
    def blank_mode(cls, value):
        return _blank_to_none(value)

    @field_validator("date", "created_at", mode="before")
    @classmethod
    def coerce_datetime(cls, value):
        return parse_datetime(value)

    @field_serializer(*MONEY_FIELDS)
    def serialize_money(self, value: Optional[Decimal]):
        return money_str(value) if value is not None else None

    @property
    def counterparty_id(self) -> Optional[str]:
        return self.account_payable_id or self.account_receivable_id

    @property
    def counterparty_name(self) -> Optional[str]:
        return self.account_payable_name or self.account_receivable_name

    @property
    def calendar_date(self) -> Optional[date]:
        return self.date.date() if self.date else None

    def to_api_payload(self) -> Dict[str, Any]:
        """Body for POST /transactions: no id, unset foreign keys as null"""
        payload = self.model_dump(
            mode="json",
            exclude={"id", "created_at", "idempotency_key", *DISPLAY_FIELDS},
        )
        for field in FOREIGN_KEY_FIELDS:
            payload[field] = payload.get(field) or None
        return {
            key: value for key, value in payload.items()
            if value is not None or key in FOREIGN_KEY_FIELDS
        }


# ==================== FILTER SCHEMAS ====================

class FilterCriteria(BaseModel):
    """Client-side filter set; also renders the equivalent server query.

    Empty strings and `all_*` sentinels mean "no constraint".
    """
    model_config = ConfigDict(coerce_numbers_to_str=True)

    search: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    account_id: Optional[str] = None
    account_side: Optional[Literal["source", "destination"]] = None
    counterparty_id: Optional[str] = None
    counterparty_role: Optional[EntityRole] = None
    payment_status: Optional[PaymentStatus] = None
    mode_of_payment: Optional[ModeOfPayment] = None
    # `type` is the query-string name used by the backend
    types: Optional[List[TransactionType]] = Field(default=None, validation_alias=AliasChoices("types", "type"))
    product_id: Optional[str] = None

    @field_validator(
        "account_id", "account_side", "counterparty_id", "counterparty_role",
        "payment_status", "mode_of_payment", "product_id", mode="before",
    )
    @classmethod
    def drop_sentinels(cls, value):
        value = _blank_to_none(value)
        if _is_sentinel(value):
            return None
        return value

    @field_validator("search", mode="before")
    @classmethod
    def blank_search(cls, value):
        return _blank_to_none(value)

    @field_validator("payment_status")
    @classmethod
    def all_means_none(cls, value):
        return None if value == PaymentStatus.ALL else value

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def coerce_date(cls, value):
        value = _blank_to_none(value)
        if isinstance(value, str):
            return date_parser.isoparse(value).date()
        if isinstance(value, datetime):
            return value.date()
        return value

    @field_validator("types", mode="before")
    @classmethod
    def split_types(cls, value):
        value = _blank_to_none(value)
        if value is None:
            return None
        if isinstance(value, str):
            value = [part.strip() for part in value.split(",") if part.strip()]
        value = [v for v in value if not _is_sentinel(v)]
        return value or None

    def to_query_params(self, page: Optional[int] = None, limit: Optional[int] = None) -> Dict[str, str]:
        """Query string for GET /transactions with the same semantics"""
        params: Dict[str, str] = {}
        if self.types:
            params["type"] = ",".join(t.value for t in self.types)
        if self.search:
            params["search"] = self.search
        if self.account_id:
            key = f"{self.account_side}_account_id" if self.account_side else "account_id"
            params[key] = self.account_id
        if self.counterparty_id:
            if self.counterparty_role == EntityRole.PAYABLE:
                params["account_payable_id"] = self.counterparty_id
            elif self.counterparty_role == EntityRole.RECEIVABLE:
                params["account_receivable_id"] = self.counterparty_id
            else:
                params["counterparty_id"] = self.counterparty_id
        if self.mode_of_payment:
            params["mode_of_payment"] = self.mode_of_payment.value
        if self.payment_status:
            params["payment_status"] = self.payment_status.value
        if self.product_id:
            params["product_id"] = self.product_id
        if self.date_from:
            params["date_from"] = self.date_from.isoformat()
        if self.date_to:
            params["date_to"] = self.date_to.isoformat()
        if page is not None:
            params["page"] = str(page)
        if limit is not None:
            params["limit"] = str(limit)
        return params


# ==================== METRICS SCHEMAS ====================

class Metrics(BaseModel):
    total_count: int = 0
    total_amount: Decimal = Decimal("0.00")
    paid_count: int = 0
    unpaid_count: int = 0
    paid_amount: Decimal = Decimal("0.00")
    unpaid_amount: Decimal = Decimal("0.00")
    counterparties: List[str] = []
    line_items: List[str] = []
    descriptions: List[str] = []


class TypeStat(BaseModel):
    type: TransactionType
    count: int
    total_amount: Decimal


class ModeStat(BaseModel):
    mode_of_payment: Optional[ModeOfPayment] = None
    count: int
    total_amount: Decimal


class TransactionStats(BaseModel):
    total_transactions: int = 0
    total_amount: Decimal = Decimal("0.00")
    average_amount: Decimal = Decimal("0.00")
    max_amount: Decimal = Decimal("0.00")
    min_amount: Decimal = Decimal("0.00")
    type_stats: List[TypeStat] = []
    mode_stats: List[ModeStat] = []


# ==================== LEDGER SCHEMAS ====================

class LedgerRow(BaseModel):
    transaction: TransactionRecord
    debit: Decimal
    credit: Decimal
    balance: Decimal


# ==================== JUNCTION SCHEMAS ====================

class JunctionAction(str, Enum):
    ADD = "add"
    REMOVE = "remove"


class JunctionPair(BaseModel):
    kind: str
    owner_id: str
    related_id: str
    action: JunctionAction = JunctionAction.ADD


class JunctionFailure(BaseModel):
    pair: JunctionPair
    message: str
    status_code: Optional[int] = None


class BatchResult(BaseModel):
    attempted: int = 0
    succeeded: int = 0
    duplicates: int = 0
    failed: List[JunctionFailure] = []

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def partial(self) -> bool:
        return bool(self.failed) and self.succeeded > 0
