# recordhub/schemas.py
"""
Record types for every collection.

Each model corresponds to a Firestore collection:
- Employee -> "employees"
- NormalOrder -> "normalOrders"
- Dissertation -> "dissertations"
- Project -> "projects"
- Invoice -> "invoices"

Stored documents use camelCase keys; the models expose snake_case attributes.
Documents are validated on the way in and on the way out of the store.
"""
import math
from datetime import date, datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Generic, List, Literal, Optional, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from . import settings


class OrderStatus(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


class OrderType(str, Enum):
    NORMAL = "Normal"
    DISSERTATION = "Dissertation"


class EmployeeStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


_STATUS_ALIASES = {
    "pending": OrderStatus.PENDING,
    "inprogress": OrderStatus.IN_PROGRESS,
    "in progress": OrderStatus.IN_PROGRESS,
    "in-progress": OrderStatus.IN_PROGRESS,
    "completed": OrderStatus.COMPLETED,
}

_TYPE_ALIASES = {
    "normal": OrderType.NORMAL,
    "normalorder": OrderType.NORMAL,
    "normal order": OrderType.NORMAL,
    "dissertation": OrderType.DISSERTATION,
}


def _coerce_date(value: Any) -> Any:
    """Accept date, datetime or ISO strings (with or without a time part)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        return s[:10]
    return value


def parse_number(value: Any) -> Any:
    """
    Number from form/import input. Thousands separators are stripped and junk
    becomes 0; infinities and NaN raise ValueError.
    """
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if not isinstance(value, float):
        try:
            value = float(str(value).replace(",", "").strip())
        except ValueError:
            return 0
    if not math.isfinite(value):
        raise ValueError("must be a finite number")
    return value


def _coerce_flag(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower() in ("yes", "true", "1", "y")
    return value


def _required_text(value: Any, label: str) -> str:
    text = "" if value is None else str(value).strip()
    if not text:
        raise ValueError(f"{label} is required")
    return text


class _Document(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        use_enum_values=False,
    )

    id: Optional[str] = None

    @classmethod
    def from_document(cls, doc_id: Optional[str], data: Dict[str, Any]):
        payload = dict(data or {})
        payload["id"] = doc_id
        return cls.model_validate(payload)

    def to_document(self) -> Dict[str, Any]:
        """Serialized form written to the store (id lives in the document key)."""
        return self.model_dump(mode="json", by_alias=True, exclude={"id"})


# -------------------------
# Orders
# -------------------------
class OrderBase(_Document):
    """Shared shape of normal orders, dissertations and generic projects."""

    # set on subclasses whose collection implies the order type
    fixed_type: ClassVar[Optional[OrderType]] = None

    project_name: str
    order_date: date
    submission_date: date
    supervisor_name: str
    season: str
    status: OrderStatus = OrderStatus.PENDING
    type: OrderType = OrderType.NORMAL
    word_count: int = Field(0, ge=0)
    cost_per_page: float = Field(
        0.0, ge=0, validation_alias=AliasChoices("costPerPage", "cpp", "cost_per_page")
    )
    has_code: bool = False
    code_price: float = Field(0.0, ge=0)
    budget: float = 0.0
    progress: int = Field(0, ge=0, le=100)
    updated_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def _pricing_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if cls.fixed_type is not None:
            data["type"] = cls.fixed_type
        order_type = data.get("type") or OrderType.NORMAL
        if isinstance(order_type, str):
            order_type = _TYPE_ALIASES.get(order_type.strip().lower(), order_type)
        defaults = settings.PRICING_DEFAULTS.get(getattr(order_type, "value", order_type), {})
        if all(data.get(k) in (None, "") for k in ("costPerPage", "cpp", "cost_per_page")):
            data["costPerPage"] = defaults.get("costPerPage", 0.0)
        if all(data.get(k) in (None, "") for k in ("codePrice", "code_price")):
            data["codePrice"] = defaults.get("codePrice", 0.0)
        return data

    @field_validator("project_name")
    @classmethod
    def _project_name(cls, v):
        return _required_text(v, "projectName")

    @field_validator("supervisor_name")
    @classmethod
    def _supervisor_name(cls, v):
        return _required_text(v, "supervisorName")

    @field_validator("season")
    @classmethod
    def _season(cls, v):
        return _required_text(v, "season")

    @field_validator("order_date", "submission_date", mode="before")
    @classmethod
    def _dates(cls, v):
        return _coerce_date(v)

    @field_validator("word_count", mode="before")
    @classmethod
    def _word_count(cls, v):
        return int(parse_number(v))

    @field_validator("cost_per_page", "code_price", "budget", mode="before")
    @classmethod
    def _money(cls, v):
        return parse_number(v)

    @field_validator("progress", mode="before")
    @classmethod
    def _progress(cls, v):
        return int(parse_number(v))

    @field_validator("has_code", mode="before")
    @classmethod
    def _has_code(cls, v):
        return _coerce_flag(v)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        if isinstance(v, str):
            return _STATUS_ALIASES.get(v.strip().lower(), v)
        return v

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v):
        if isinstance(v, str):
            return _TYPE_ALIASES.get(v.strip().lower(), v)
        return v


class NormalOrder(OrderBase):
    fixed_type: ClassVar[Optional[OrderType]] = OrderType.NORMAL


class Dissertation(OrderBase):
    fixed_type: ClassVar[Optional[OrderType]] = OrderType.DISSERTATION
    type: OrderType = OrderType.DISSERTATION
    words_paid: int = Field(0, ge=0)
    total_paid: float = Field(0.0, ge=0)
    remaining_balance: float = Field(0.0, ge=0)
    is_fully_paid: bool = False
    date_paid: Optional[date] = None

    @field_validator("words_paid", mode="before")
    @classmethod
    def _words_paid(cls, v):
        return int(parse_number(v))

    @field_validator("total_paid", "remaining_balance", mode="before")
    @classmethod
    def _paid(cls, v):
        return parse_number(v)

    @field_validator("date_paid", mode="before")
    @classmethod
    def _date_paid(cls, v):
        return _coerce_date(v)

    @field_validator("is_fully_paid", mode="before")
    @classmethod
    def _fully_paid(cls, v):
        return _coerce_flag(v)


class Project(OrderBase):
    """Generic order record; its type is carried in the document."""


class PaymentUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    words_paid: int = Field(0, ge=0)
    total_paid: float = Field(
        0.0, ge=0, validation_alias=AliasChoices("totalPaid", "amountPaid", "total_paid")
    )
    date_paid: Optional[date] = None
    is_fully_paid: bool = False

    @field_validator("words_paid", mode="before")
    @classmethod
    def _words_paid(cls, v):
        return int(parse_number(v))

    @field_validator("total_paid", mode="before")
    @classmethod
    def _total_paid(cls, v):
        return parse_number(v)

    @field_validator("date_paid", mode="before")
    @classmethod
    def _date_paid(cls, v):
        return _coerce_date(v)


# -------------------------
# Employees & invoices
# -------------------------
class Employee(_Document):
    employee_name: str
    hire_date: date
    department: str
    position: str
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    phone_number: str
    performance_score: float = Field(0.0, ge=0, le=100)

    @field_validator("employee_name", "department", "position", "phone_number", mode="before")
    @classmethod
    def _required(cls, v, info):
        return _required_text(v, to_camel(info.field_name))

    @field_validator("hire_date", mode="before")
    @classmethod
    def _hire_date(cls, v):
        return _coerce_date(v)

    @field_validator("performance_score", mode="before")
    @classmethod
    def _score(cls, v):
        return parse_number(v)


class Invoice(_Document):
    supervisor_name: str
    season: str
    project_type: Optional[OrderType] = None
    total_amount: float = 0.0
    project_count: int = 0
    is_paid: bool = False
    created_at: datetime


class InvoiceRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    supervisor_name: str
    season: str
    project_type: Optional[OrderType] = None

    @field_validator("supervisor_name", "season", mode="before")
    @classmethod
    def _required(cls, v, info):
        return _required_text(v, to_camel(info.field_name))


# -------------------------
# Listing
# -------------------------
class ListQuery(BaseModel):
    """View model of a list screen, built from query parameters."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    search: str = ""
    start: Optional[date] = None
    end: Optional[date] = None
    sort: Optional[str] = None
    direction: Literal["asc", "desc"] = "asc"
    page: int = Field(1, ge=1)
    per_page: int = Field(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE)
    # shared by order and employee lists, so it stays text; known spellings
    # are mapped to the value stored in documents
    status: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        if not isinstance(v, str):
            return v
        key = v.strip().lower()
        if not key:
            return None
        if key in _STATUS_ALIASES:
            return _STATUS_ALIASES[key].value
        for st in EmployeeStatus:
            if st.value.lower() == key:
                return st.value
        return v.strip()


T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    items: List[T]
    page: int
    per_page: int
    total: int
    total_pages: int


# -------------------------
# Auth
# -------------------------
class Credentials(BaseModel):
    email: str
    password: str


class SignUpRequest(Credentials):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    confirm_password: str


class PasswordResetRequest(BaseModel):
    email: str


class PasswordChangeRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    current_password: str
    new_password: str
    confirm_password: str


class AuthUser(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None
