"""
Row models for spreadsheet imports.

Cells arrive from the row mapper as trimmed text (or booleans for boolean
columns); blank cells arrive as "". These models turn them into typed values
with messages an operator can act on.
"""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from cargodock.services.imports.mapper import FALSE_TOKENS, TRUE_TOKENS

ORDER_NUMBER_PATTERN = re.compile(r"^[A-Z]{4}\d{7}$")
LOCATION_CODE_PATTERN = re.compile(r"^[A-Za-z0-9\-_. ]+$")
CUSTOMER_CODE_PATTERN = re.compile(r"^[A-Z0-9_-]+$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DATETIME_FORMATS = (
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
)

LOCATION_TYPES = {"port", "amazon", "warehouse"}
CONTAINER_TYPES = {"40DH", "45DH", "40RH", "45RH", "20GP", "OTHER"}
APPOINTMENT_ACCOUNTS = {"AA", "YTAQ", "AYIE", "KP", "OLPN", "DATONG", "GG", "other"}

# Accepted spellings -> stored code.
DELIVERY_METHODS = {
    "private_warehouse": "private_warehouse",
    "私仓": "private_warehouse",
    "self_pickup": "self_pickup",
    "自提": "self_pickup",
    "direct": "direct",
    "直送": "direct",
    "trucking": "trucking",
    "卡派": "trucking",
}
APPOINTMENT_TYPES = {
    "pallet": "pallet",
    "卡板": "pallet",
    "floor": "floor",
    "地板": "floor",
}
DELIVERY_NATURES = {
    "amz": "AMZ",
    "hold": "HOLD",
    "扣货": "HOLD",
    "released": "RELEASED",
    "已放行": "RELEASED",
    "private": "PRIVATE",
    "私仓": "PRIVATE",
    "transfer": "TRANSFER",
    "转仓": "TRANSFER",
}
ORDER_STATUSES = {
    "pending": "pending",
    "待处理": "pending",
    "confirmed": "confirmed",
    "已确认": "confirmed",
    "shipped": "shipped",
    "已发货": "shipped",
    "delivered": "delivered",
    "已送达": "delivered",
    "cancelled": "cancelled",
    "已取消": "cancelled",
    "archived": "archived",
    "已归档": "archived",
}
OPERATION_MODES = {
    "unload": "unload",
    "拆柜": "unload",
    "direct_delivery": "direct_delivery",
    "直送": "direct_delivery",
}
TRAILER_STATUSES = {"available", "in_use", "maintenance", "retired"}
FEE_SCOPES = {
    "all": "all",
    "所有客户": "all",
    "customers": "customers",
    "指定客户": "customers",
}
CUSTOMER_STATUSES = {
    "active": "active",
    "活跃": "active",
    "inactive": "inactive",
    "停用": "inactive",
}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def choose(value: Any, choices: dict[str, str]) -> str:
    text = str(value).strip()
    code = choices.get(text) or choices.get(text.casefold())
    if code is None:
        allowed = ", ".join(sorted(set(choices.values())))
        raise ValueError(f"'{text}' is not one of {allowed}")
    return code


def parse_date(value: Any) -> date | None:
    if _is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if len(text) > 10 and text[10] in " T":
        text = text[:10]
    if not _DATE_PATTERN.match(text):
        raise ValueError(f"'{value}' is not a date; use YYYY-MM-DD or a date-formatted cell")
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"'{value}' is not a valid calendar date") from exc


def parse_datetime(value: Any) -> datetime | None:
    if _is_blank(value):
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    for fmt in _DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    if _DATE_PATTERN.match(text):
        return datetime.combine(parse_date(text), datetime.min.time())
    raise ValueError(f"'{text}' is not a date-time; use YYYY-MM-DD HH:mm")


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if _is_blank(value):
        return False
    token = str(value).strip().casefold()
    if token in TRUE_TOKENS:
        return True
    if token in FALSE_TOKENS:
        return False
    raise ValueError(f"'{value}' is not a yes/no value")


def _optional_text(value: Any) -> str | None:
    if _is_blank(value):
        return None
    return str(value).strip()


class ImportRow(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    @field_validator("*", mode="before")
    @classmethod
    def _blank_cells(cls, value: Any, info: ValidationInfo) -> Any:
        if not _is_blank(value):
            return value
        field = cls.model_fields.get(info.field_name or "")
        if field is None or field.is_required():
            return None
        return field.get_default(call_default_factory=True)


class LocationImportRow(ImportRow):
    location_code: str = Field(max_length=50)
    name: str = Field(max_length=200)
    location_type: str
    address: str | None = Field(default=None, max_length=300)
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=50)
    postal_code: str | None = Field(default=None, max_length=20)
    country: str | None = Field(default=None, max_length=50)
    notes: str | None = None

    @field_validator("location_code")
    @classmethod
    def validate_location_code(cls, value: str) -> str:
        if not LOCATION_CODE_PATTERN.match(value):
            raise ValueError("only letters, digits, '-', '_', '.' and spaces are allowed")
        return value

    @field_validator("location_type")
    @classmethod
    def validate_location_type(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in LOCATION_TYPES:
            raise ValueError("must be one of port, amazon, warehouse")
        return normalized


class CustomerImportRow(ImportRow):
    code: str = Field(max_length=50)
    name: str = Field(max_length=200)
    company_name: str | None = Field(default=None, max_length=200)
    status: str = "active"
    credit_limit: float = Field(default=0, ge=0)
    contact_name: str | None = Field(default=None, max_length=100)
    contact_phone: str | None = Field(default=None, max_length=50)
    contact_email: str | None = Field(default=None, max_length=200)

    @field_validator("code")
    @classmethod
    def validate_code(cls, value: str) -> str:
        if not CUSTOMER_CODE_PATTERN.match(value):
            raise ValueError("use upper-case letters, digits, '_' or '-'")
        return value

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value: Any) -> str:
        if _is_blank(value):
            return "active"
        text = str(value).strip()
        return CUSTOMER_STATUSES.get(text.casefold(), CUSTOMER_STATUSES.get(text, "active"))

    @field_validator("contact_email", mode="before")
    @classmethod
    def drop_invalid_email(cls, value: Any) -> str | None:
        text = _optional_text(value)
        if text is None or not EMAIL_PATTERN.match(text):
            return None
        return text

    @property
    def has_contact(self) -> bool:
        return any((self.contact_name, self.contact_phone, self.contact_email))


class DriverImportRow(ImportRow):
    driver_code: str = Field(max_length=50)
    license_number: str = Field(max_length=100)
    license_plate: str = Field(max_length=10)
    carrier_code: str | None = None
    contact_name: str | None = Field(default=None, max_length=100)
    contact_phone: str | None = Field(default=None, max_length=50)
    contact_email: str | None = Field(default=None, max_length=200)
    license_expiration: date | None = None
    status: str = "active"
    notes: str | None = None

    @field_validator("contact_email")
    @classmethod
    def validate_email(cls, value: str | None) -> str | None:
        if value is not None and not EMAIL_PATTERN.match(value):
            raise ValueError("is not a valid email address")
        return value

    @field_validator("license_expiration", mode="before")
    @classmethod
    def parse_expiration(cls, value: Any) -> date | None:
        return parse_date(value)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value: Any) -> str:
        if _is_blank(value):
            return "active"
        text = str(value).strip()
        return CUSTOMER_STATUSES.get(text.casefold(), CUSTOMER_STATUSES.get(text, "active"))


class TrailerImportRow(ImportRow):
    trailer_code: str = Field(max_length=50)
    trailer_type: str = Field(max_length=50)
    length_feet: float | None = Field(default=None, ge=0)
    capacity_weight: float | None = Field(default=None, ge=0)
    capacity_volume: float | None = Field(default=None, ge=0)
    status: str = "available"
    notes: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value: Any) -> str:
        if _is_blank(value):
            return "available"
        normalized = str(value).strip().lower()
        return normalized if normalized in TRAILER_STATUSES else "available"


class FeeImportRow(ImportRow):
    fee_code: str = Field(max_length=50)
    fee_name: str = Field(max_length=100)
    unit: str | None = Field(default=None, max_length=20)
    unit_price: float = Field(ge=0)
    currency: str = Field(default="USD", max_length=10)
    scope_type: str
    container_type: str | None = Field(default=None, max_length=50)
    description: str | None = None

    @field_validator("unit_price", mode="before")
    @classmethod
    def strip_thousands(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.replace(",", "").strip() or None
        return value

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, value: str) -> str:
        return value.upper()

    @field_validator("scope_type", mode="before")
    @classmethod
    def normalize_scope(cls, value: Any) -> Any:
        if _is_blank(value):
            return None
        return choose(value, FEE_SCOPES)


class OrderImportRow(ImportRow):
    order_number: str
    customer_code: str
    order_date: date
    status: str = "pending"
    operation_mode: str
    delivery_location_code: str
    total_amount: float = Field(default=0, ge=0)
    container_type: str
    eta_date: date
    lfd_date: date | None = None
    pickup_date: date | None = None
    ready_date: date | None = None
    return_deadline: date | None = None
    mbl_number: str = Field(max_length=100)
    do_issued: bool = False
    notes: str | None = None
    detail_location_code: str
    delivery_nature: str
    quantity: int = Field(gt=0)
    volume: float = Field(gt=0)
    fba: str | None = None
    detail_notes: str | None = None
    po: str | None = Field(default=None, max_length=1000)
    window_period: str | None = Field(default=None, max_length=100)

    @field_validator("order_number")
    @classmethod
    def validate_order_number(cls, value: str) -> str:
        if not ORDER_NUMBER_PATTERN.match(value):
            raise ValueError("expected 4 upper-case letters and 7 digits, e.g. ABCD1234567")
        return value

    @field_validator("order_date", "eta_date", "lfd_date", "pickup_date", "ready_date", "return_deadline", mode="before")
    @classmethod
    def parse_dates(cls, value: Any) -> date | None:
        return parse_date(value)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value: Any) -> str:
        if _is_blank(value):
            return "pending"
        text = str(value).strip()
        return ORDER_STATUSES.get(text.casefold(), ORDER_STATUSES.get(text, text))

    @field_validator("operation_mode", mode="before")
    @classmethod
    def normalize_operation_mode(cls, value: Any) -> Any:
        if _is_blank(value):
            return None
        return choose(value, OPERATION_MODES)

    @field_validator("container_type")
    @classmethod
    def validate_container_type(cls, value: str) -> str:
        normalized = "OTHER" if value in {"其他", "other", "Other"} else value.upper()
        if normalized not in CONTAINER_TYPES:
            raise ValueError("must be one of 40DH, 45DH, 40RH, 45RH, 20GP, OTHER")
        return normalized

    @field_validator("do_issued", mode="before")
    @classmethod
    def parse_do_issued(cls, value: Any) -> bool:
        return parse_bool(value)

    @field_validator("delivery_nature", mode="before")
    @classmethod
    def normalize_delivery_nature(cls, value: Any) -> Any:
        if _is_blank(value):
            return None
        return choose(value, DELIVERY_NATURES)

    @property
    def estimated_pallets(self) -> int:
        # Two cubic metres per pallet, half rounded up, never below one.
        return max(1, int(self.volume / 2 + 0.5))


class AppointmentImportRow(ImportRow):
    reference_number: str = Field(max_length=100)
    order_number: str
    delivery_method: str
    appointment_account: str | None = None
    appointment_type: str
    origin_location_code: str | None = None
    destination_location_code: str
    confirmed_start: datetime
    rejected: bool = False
    po: str | None = Field(default=None, max_length=1000)
    notes: str | None = None
    detail_location_code: str
    delivery_nature: str
    estimated_pallets: int = Field(gt=0)

    @field_validator("order_number")
    @classmethod
    def validate_order_number(cls, value: str) -> str:
        if not ORDER_NUMBER_PATTERN.match(value):
            raise ValueError("expected 4 upper-case letters and 7 digits, e.g. ABCD1234567")
        return value

    @field_validator("delivery_method", mode="before")
    @classmethod
    def normalize_delivery_method(cls, value: Any) -> Any:
        if _is_blank(value):
            return None
        return choose(value, DELIVERY_METHODS)

    @field_validator("appointment_account")
    @classmethod
    def validate_account(cls, value: str | None) -> str | None:
        if value is not None and value not in APPOINTMENT_ACCOUNTS:
            raise ValueError(f"must be one of {', '.join(sorted(APPOINTMENT_ACCOUNTS))}")
        return value

    @field_validator("appointment_type", mode="before")
    @classmethod
    def normalize_appointment_type(cls, value: Any) -> Any:
        if _is_blank(value):
            return None
        return choose(value, APPOINTMENT_TYPES)

    @field_validator("delivery_nature", mode="before")
    @classmethod
    def normalize_delivery_nature(cls, value: Any) -> Any:
        if _is_blank(value):
            return None
        return choose(value, DELIVERY_NATURES)

    @field_validator("confirmed_start", mode="before")
    @classmethod
    def parse_confirmed_start(cls, value: Any) -> datetime | None:
        return parse_datetime(value)

    @field_validator("rejected", mode="before")
    @classmethod
    def parse_rejected(cls, value: Any) -> bool:
        return parse_bool(value)


class ContainerSheetRow(ImportRow):
    container_number: str
    mbl_number: str | None = Field(default=None, max_length=100)
    port_location_code: str | None = None
    shipping_line: str | None = Field(default=None, max_length=100)
    container_type: str | None = None
    carrier_name: str | None = None
    eta_date: date | None = None
    lfd_date: date | None = None
    return_deadline: date | None = None

    @field_validator("eta_date", "lfd_date", "return_deadline", mode="before")
    @classmethod
    def parse_dates(cls, value: Any) -> date | None:
        return parse_date(value)


class PickupSheetRow(ImportRow):
    container_number: str
    port_text: str | None = Field(default=None, max_length=200)
    driver_code: str | None = None
    pickup_date: datetime | None = None
    current_location: str | None = Field(default=None, max_length=200)

    @field_validator("pickup_date", mode="before")
    @classmethod
    def parse_pickup_date(cls, value: Any) -> datetime | None:
        return parse_datetime(value)


class ContainerUpdateRow(BaseModel):
    """
    One container after both sheets are merged. Only fields present in at
    least one sheet are set; `model_fields_set` tells the committer which
    columns to touch.
    """

    container_number: str
    mbl_number: str | None = None
    port_location_code: str | None = None
    shipping_line: str | None = None
    container_type: str | None = None
    carrier_name: str | None = None
    eta_date: date | None = None
    lfd_date: date | None = None
    return_deadline: date | None = None
    port_text: str | None = None
    driver_code: str | None = None
    pickup_date: datetime | None = None
    current_location: str | None = None
