from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Role = Literal["owner", "tradesperson", "investor", "admin"]
PropertyType = Literal["single_family", "condominium", "townhouse", "multi_family", "commercial"]
MaintenanceCategory = Literal[
    "plumbing",
    "electrical",
    "hvac",
    "roofing",
    "appliance",
    "structural",
    "cosmetic",
    "landscaping",
    "renovation",
    "flooring",
    "kitchen",
    "bathroom",
    "exterior",
    "other",
]
MaintenanceStatus = Literal["planned", "in_progress", "completed"]
Priority = Literal["low", "medium", "high", "urgent"]
ValuationMethod = Literal["professional", "automated", "manual", "owner_estimate"]
SubscriptionStatus = Literal["active", "canceled", "past_due", "trialing", "unpaid"]


# -------------------- Auth / users --------------------

class RegisterIn(BaseModel):
    email: str = Field(min_length=3, max_length=200)
    password: str = Field(min_length=8, max_length=200)
    full_name: Optional[str] = None
    role: Literal["owner", "tradesperson", "investor"] = "owner"
    specialty_type: Optional[str] = None
    license_number: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _email_shape(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("must be a valid email address")
        return v


class LoginIn(BaseModel):
    email: str
    password: str


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    role: str


class PrincipalOut(BaseModel):
    user_id: int
    email: str
    role: str


class UserOut(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    role: str
    specialty_type: Optional[str] = None
    license_number: Optional[str] = None
    is_active: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UserAdminUpdate(BaseModel):
    role: Optional[Role] = None
    is_active: Optional[bool] = None
    full_name: Optional[str] = None


# -------------------- Properties --------------------

class PropertyCreate(BaseModel):
    address: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=1, max_length=120)
    state: str = Field(min_length=2, max_length=60)
    zip_code: str = Field(min_length=3, max_length=12)
    property_type: PropertyType = "single_family"

    bedrooms: int = Field(default=0, ge=0)
    bathrooms: float = Field(default=0.0, ge=0)
    square_feet: int = Field(default=0, ge=0)
    year_built: Optional[int] = Field(default=None, ge=1600, le=2100)
    lot_size: float = Field(default=0.0, ge=0)
    image_url: Optional[str] = None

    purchase_price: Decimal = Field(default=Decimal("0"), ge=0)
    purchase_date: Optional[date] = None
    current_value: Optional[Decimal] = Field(default=None, ge=0)


class PropertyUpdate(BaseModel):
    address: Optional[str] = Field(default=None, min_length=1, max_length=255)
    city: Optional[str] = Field(default=None, min_length=1, max_length=120)
    state: Optional[str] = Field(default=None, min_length=2, max_length=60)
    zip_code: Optional[str] = Field(default=None, min_length=3, max_length=12)
    property_type: Optional[PropertyType] = None

    bedrooms: Optional[int] = Field(default=None, ge=0)
    bathrooms: Optional[float] = Field(default=None, ge=0)
    square_feet: Optional[int] = Field(default=None, ge=0)
    year_built: Optional[int] = Field(default=None, ge=1600, le=2100)
    lot_size: Optional[float] = Field(default=None, ge=0)
    image_url: Optional[str] = None

    purchase_price: Optional[Decimal] = Field(default=None, ge=0)
    purchase_date: Optional[date] = None
    current_value: Optional[Decimal] = Field(default=None, ge=0)
    valuation_notes: Optional[str] = None
    is_active: Optional[bool] = None


class PropertyOut(BaseModel):
    id: int
    user_id: int
    address: str
    city: str
    state: str
    zip_code: str
    property_type: str
    bedrooms: int
    bathrooms: float
    square_feet: int
    year_built: Optional[int] = None
    lot_size: float
    image_url: Optional[str] = None
    purchase_price: float
    purchase_date: Optional[date] = None
    current_value: float
    last_valuation_date: Optional[datetime] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# -------------------- Maintenance --------------------

class ContractorInfo(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    license: Optional[str] = None


class WarrantyInfo(BaseModel):
    has_warranty: bool = False
    expiration_date: Optional[date] = None
    details: Optional[str] = None


class MaintenanceCreate(BaseModel):
    property_id: int
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    category: MaintenanceCategory
    cost: Decimal = Field(ge=0)
    completion_date: date

    contractor: Optional[ContractorInfo] = None
    warranty: Optional[WarrantyInfo] = None
    receipt_urls: List[str] = Field(default_factory=list)
    image_urls: List[str] = Field(default_factory=list)
    notes: Optional[str] = None

    status: MaintenanceStatus = "completed"
    priority: Priority = "medium"


class MaintenanceUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1)
    category: Optional[MaintenanceCategory] = None
    cost: Optional[Decimal] = Field(default=None, ge=0)
    completion_date: Optional[date] = None

    contractor: Optional[ContractorInfo] = None
    warranty: Optional[WarrantyInfo] = None
    receipt_urls: Optional[List[str]] = None
    image_urls: Optional[List[str]] = None
    notes: Optional[str] = None

    status: Optional[MaintenanceStatus] = None
    priority: Optional[Priority] = None


class MaintenanceOut(BaseModel):
    id: int
    property_id: int
    tradesperson_id: Optional[int] = None
    title: str
    description: str
    category: str
    cost: float
    completion_date: date
    contractor: Optional[ContractorInfo] = None
    warranty: Optional[WarrantyInfo] = None
    receipt_urls: List[str] = Field(default_factory=list)
    image_urls: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    status: str
    priority: str
    estimated_value_added: float
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# -------------------- Valuations --------------------

class ValuationCreate(BaseModel):
    property_id: int
    value: Decimal = Field(gt=0)
    method: Literal["professional", "manual", "owner_estimate"] = "manual"
    notes: Optional[str] = None
    valuation_date: Optional[datetime] = None

    @field_validator("valuation_date")
    @classmethod
    def _not_in_future(cls, v: Optional[datetime]) -> Optional[datetime]:
        # automated adjustments are stamped "now" and must sort after the latest row
        if v is None:
            return v
        aware = v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)
        if aware > datetime.now(timezone.utc):
            raise ValueError("valuation_date cannot be in the future")
        return v


class ValuationOut(BaseModel):
    id: int
    property_id: int
    value: float
    method: str
    notes: Optional[str] = None
    valuation_date: datetime
    maintenance_impact: Optional[float] = None
    maintenance_record_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


# -------------------- Plans / subscriptions --------------------

class PlanOut(BaseModel):
    id: int
    code: str
    name: str
    description: str
    base_price: float
    price_per_property: float
    max_properties: Optional[int] = None
    features: List[str] = Field(default_factory=list)
    billing_cycle: str

    model_config = ConfigDict(from_attributes=True)


class SubscriptionCreate(BaseModel):
    plan_id: int


class SubscriptionOut(BaseModel):
    id: int
    user_id: int
    plan_id: int
    status: str
    property_count: int
    current_price: float
    start_date: datetime
    end_date: Optional[datetime] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    last_payment_date: Optional[datetime] = None
    next_payment_date: Optional[datetime] = None
    cancel_at_period_end: bool
    plan: Optional[PlanOut] = None

    model_config = ConfigDict(from_attributes=True)


class SubscriptionCheckoutOut(BaseModel):
    subscription: SubscriptionOut
    client_secret: Optional[str] = None
    receipt_id: Optional[int] = None


class SubscriptionAdminUpdate(BaseModel):
    plan_id: Optional[int] = None
    status: Optional[SubscriptionStatus] = None
    cancel_at_period_end: Optional[bool] = None


class PriceQuoteOut(BaseModel):
    plan_id: int
    plan_name: str
    property_count: int
    additional_properties: int
    base_price: float
    price_per_property: float
    total_price: float
    max_properties: Optional[int] = None
    within_allowance: bool


# -------------------- Receipts --------------------

class ReceiptOut(BaseModel):
    id: int
    user_id: int
    subscription_id: Optional[int] = None
    receipt_number: str
    amount: float
    currency: str
    description: str
    receipt_type: str
    items: List[dict[str, Any]] = Field(default_factory=list)
    payment_method: str
    payment_intent_id: Optional[str] = None
    payment_status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# -------------------- Admin --------------------

class AdminStatsOut(BaseModel):
    total_users: int
    users_by_role: dict[str, int]
    total_properties: int
    active_properties: int
    total_maintenance_records: int
    total_maintenance_cost: float
    total_portfolio_value: float
    active_subscriptions: int
    subscriptions_by_status: dict[str, int]
    monthly_recurring_revenue: float
    total_revenue: float


# -------------------- Notifications --------------------

NotificationType = Literal[
    "maintenance_due",
    "maintenance_completed",
    "subscription_renewal",
    "property_update",
    "valuation_update",
    "system_notice",
]


class NotificationOut(BaseModel):
    id: int
    user_id: int
    title: str
    message: str
    type: str
    is_read: bool
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UnreadCountOut(BaseModel):
    count: int


class SystemNoticeIn(BaseModel):
    title: str = Field(default="System Notice", min_length=1, max_length=200)
    message: str = Field(min_length=1)
    user_id: Optional[int] = None  # None broadcasts to every active user


# -------------------- Tradesperson directory --------------------

class TradespersonOut(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    specialty_type: Optional[str] = None
    license_number: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PropertySummaryOut(BaseModel):
    id: int
    address: str
    city: str
    state: str
    zip_code: str

    model_config = ConfigDict(from_attributes=True)
