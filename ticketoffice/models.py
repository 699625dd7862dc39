"""Shared Pydantic models for the ticket office toolkit.

Wire payloads from the ticketing API use camelCase keys; every model here
accepts either the camelCase alias or the snake_case attribute name.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class ApiModel(BaseModel):
    """Base for payloads exchanged with the remote API."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_api(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ------------------------------------------------------------------
# Search
# ------------------------------------------------------------------


class EventStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SOLD_OUT = "SOLD_OUT"


class EventCategory(str, Enum):
    FESTIVAL = "Festival"
    CONCIERTO = "Concierto"
    TEATRO = "Teatro"
    FERIA = "Feria"
    DISCOTECA = "Discoteca"
    OTROS = "Otros"


class SortKey(str, Enum):
    DATE_ASC = "dateAsc"
    DATE_DESC = "dateDesc"
    PRICE_ASC = "priceAsc"
    PRICE_DESC = "priceDesc"


class SearchEvent(ApiModel):
    """A search result card. Immutable once fetched."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    date: str
    location: str = ""
    banner_url: str = ""
    price: float = 0
    currency: str = ""
    status: EventStatus = EventStatus.ACTIVE
    min_age: int | None = None
    vendor_id: str | None = None
    vendor_name: str | None = None


class SearchEventParams(ApiModel):
    country: str = ""
    city: str | None = None
    query: str | None = None
    category: str | None = None
    date_from: str | None = None
    date_to: str | None = None
    page_size: int = 9
    page_number: int = 0
    vendors: str | None = None

    def to_query(self) -> dict[str, str]:
        """Query-string form: empty values dropped, everything stringified."""
        out: dict[str, str] = {}
        for key, value in self.model_dump(by_alias=True).items():
            if value is None or value == "":
                continue
            out[key] = str(value)
        return out


class SearchEventResponse(ApiModel):
    events: list[SearchEvent] = Field(default_factory=list)
    has_events_in_your_city: bool = False
    total_pages: int = 0
    current_page: int = 0
    page_size: int = 9


class Filters(BaseModel):
    """Client-side filter set, usually parsed from a query string."""

    model_config = ConfigDict(populate_by_name=True)

    country: str | None = None
    city: str | None = None
    category: str | None = None
    date_from: date | None = Field(
        default=None, validation_alias=AliasChoices("date_from", "dateFrom")
    )
    date_to: date | None = Field(
        default=None, validation_alias=AliasChoices("date_to", "dateTo")
    )
    saved_only: bool = Field(
        default=False, validation_alias=AliasChoices("saved_only", "savedOnly")
    )
    min_price: float | None = Field(
        default=None, validation_alias=AliasChoices("min_price", "minPrice")
    )
    max_price: float | None = Field(
        default=None, validation_alias=AliasChoices("max_price", "maxPrice")
    )
    adult_only: bool = Field(
        default=False, validation_alias=AliasChoices("adult_only", "adultOnly")
    )
    vendors: list[str] = Field(default_factory=list)

    @field_validator("vendors", mode="before")
    @classmethod
    def _split_vendors(cls, value: Any) -> Any:
        # "v1,v2" from a query string
        if isinstance(value, str):
            return [v.strip() for v in value.split(",") if v.strip()]
        return value


class Facets(BaseModel):
    countries: list[str] = Field(default_factory=list)
    cities: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    cities_by_country: dict[str, list[str]] = Field(default_factory=dict)


class Page(BaseModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    page_size: int
    total_pages: int


# ------------------------------------------------------------------
# Event detail / backoffice list
# ------------------------------------------------------------------


class Location(ApiModel):
    name: str = ""
    address: str = ""
    city: str = ""
    country: str = ""


class Image(ApiModel):
    url: str = ""
    alt: str = ""


class Ticket(ApiModel):
    id: str
    value: float = 0
    currency: str = ""
    type: str = ""
    is_free: bool = False
    stock: int = Field(default=0, ge=0)


class Organizer(ApiModel):
    id: str = ""
    name: str = ""
    url: str = ""
    logo_url: str | None = None


class EventDetail(ApiModel):
    id: str
    title: str
    date: str
    image: Image = Field(default_factory=Image)
    tickets: list[Ticket] = Field(default_factory=list)
    description: str = ""
    additional_info: list[str] = Field(default_factory=list)
    organizer: Organizer | None = None
    status: str = EventStatus.ACTIVE.value
    location: Location = Field(default_factory=Location)

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Any:
        return backend_date_to_iso(value) or value


class EventForList(ApiModel):
    id: str
    name: str
    date: str
    location: str = ""
    banner_url: str | None = None
    price: float | None = None
    currency: str | None = None
    status: str = EventStatus.ACTIVE.value

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Any:
        return backend_date_to_iso(value) or value


class EventListResponse(ApiModel):
    events: list[EventForList] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 10
    total_pages: int = 1


class EventRecommendation(ApiModel):
    id: str
    name: str
    date: str
    location: str = ""

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Any:
        return backend_date_to_iso(value) or value


# ------------------------------------------------------------------
# Users
# ------------------------------------------------------------------


class User(ApiModel):
    id: str | int
    username: str
    email: str | None = None
    name: str | None = None
    role: str = "user"


class LoginResponse(ApiModel):
    token: str
    user: User


# ------------------------------------------------------------------
# Checkout
# ------------------------------------------------------------------


class CheckoutSession(ApiModel):
    session_id: str = Field(min_length=1)
    expired_in: int = Field(ge=0)


class BuyerData(ApiModel):
    name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    phone: str = Field(min_length=1)
    nationality: str = Field(min_length=1)
    document_type: str = Field(min_length=1)
    document: str = Field(min_length=1)


class SessionData(ApiModel):
    main_email: str = Field(min_length=3)
    buyer: list[BuyerData] = Field(min_length=1)
    coupon_code: str | None = None


class SessionInfo(ApiModel):
    session_id: str
    event_id: str
    price_id: str
    quantity: int = Field(gt=0)
    main_email: str | None = None
    buyer: list[BuyerData] | None = None


class PaymentResult(ApiModel):
    success: bool
    redirect_url: str | None = None
    error: str | None = None


# ------------------------------------------------------------------
# Sales / validation / vendors
# ------------------------------------------------------------------


class PaymentStatus(str, Enum):
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"
    PENDING = "pending"


class SaleRecord(ApiModel):
    id: str
    date: str
    event_id: str
    event_name: str
    seller_id: str
    seller_name: str
    buyer_email: str
    quantity: int
    unit_price: float
    total: float
    coupon_code: str | None = None
    vendor_code: str | None = None
    payment_status: PaymentStatus
    order_id: str


class SalesFilters(ApiModel):
    date_from: date | None = Field(default=None, alias="from")
    date_to: date | None = Field(default=None, alias="to")
    event_id: str | None = None
    seller_id: str | None = None
    query: str | None = None


class ValidationResult(BaseModel):
    session_id: str
    success: bool
    message: str
    validated_at: datetime


class Vendor(ApiModel):
    id: str
    name: str
    email: str
    role: str = "seller"
    status: str = "invited"
    events: int = 0
    created_at: str = ""


# ------------------------------------------------------------------
# Coupons / stats / reports
# ------------------------------------------------------------------


class CouponType(str, Enum):
    PERCENT = "percent"
    FIXED = "fixed"


class NewCoupon(ApiModel):
    code: str = Field(min_length=1)
    type: CouponType
    value: float = Field(gt=0)
    max_uses: int | None = Field(default=None, ge=1)
    expires_at: str | None = None


class Coupon(ApiModel):
    id: str
    event_id: str
    code: str
    type: CouponType
    value: float
    max_uses: int | None = None
    used: int = 0
    expires_at: str | None = None
    active: bool = True


class StatsSummary(ApiModel):
    """Dashboard totals, for one seller or the whole platform."""

    total_events: int = 0
    tickets_sold: int = 0
    total_revenue: float = 0


class ReportScope(str, Enum):
    ALL = "all"
    SELF = "self"


class ReportFilters(ApiModel):
    date_from: date | None = Field(default=None, alias="from")
    date_to: date | None = Field(default=None, alias="to")
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1)
    scope: ReportScope | None = None


class ReportSale(ApiModel):
    id: str
    date: str
    event_name: str = ""
    buyer_email: str = ""
    ticket_type: str = ""
    price: float = 0


class ReportPage(ApiModel):
    items: list[ReportSale] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 10
    total_pages: int = 1


# ------------------------------------------------------------------
# Contact / organizer
# ------------------------------------------------------------------


class ContactForm(ApiModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    subject: str = Field(min_length=1)
    message: str = Field(min_length=1)


class Logo(ApiModel):
    url: str
    alt: str = ""


class OrganizerData(ApiModel):
    name: str = Field(min_length=1)
    url: str
    logo: Logo


# ------------------------------------------------------------------
# Region
# ------------------------------------------------------------------


class Country(ApiModel):
    code: str
    name: str


class City(ApiModel):
    code: str
    name: str


class Currency(ApiModel):
    code: str
    name: str
    symbol: str


class DocumentType(ApiModel):
    code: str
    name: str
    description: str | None = None
    format: str | None = None
    regex: str | None = None


class CountryConfig(ApiModel):
    data: Country
    cities: list[City] = Field(default_factory=list)
    language: str = "es"
    available_currencies: list[Currency] = Field(default_factory=list)
    document_type: list[DocumentType] = Field(default_factory=list)


class SavedRegion(BaseModel):
    country_code: str
    config: CountryConfig
    city_code: str | None = None
    currency_code: str | None = None
    saved_at: datetime
    is_expired: bool = False


# ------------------------------------------------------------------
# Dates
# ------------------------------------------------------------------


def backend_date_to_iso(value: Any) -> str | None:
    """Normalize a backend date (ISO string or ``[Y, M, D, h, m]``) to ISO.

    Array dates carry a 1-based month and no zone; they are read as UTC.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)) and len(value) >= 3:
        parts = list(value[:5]) + [0] * (5 - min(len(value), 5))
        if all(isinstance(p, int) and not isinstance(p, bool) for p in parts):
            year, month, day, hour, minute = parts
            try:
                dt = datetime(year, month, day, hour, minute, tzinfo=timezone.utc)
            except ValueError:
                return None
            return dt.isoformat().replace("+00:00", "Z")
    return None


def parse_iso(value: str | None) -> datetime | None:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def start_of_day(d: date) -> datetime:
    return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)


def end_of_day(d: date) -> datetime:
    """Last millisecond of the UTC day."""
    return start_of_day(d) + timedelta(days=1) - timedelta(milliseconds=1)
