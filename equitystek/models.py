from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base

Money = Numeric(14, 2)


# -----------------------------
# Users + audit
# -----------------------------
class AppUser(Base):
    __tablename__ = "app_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="owner")  # owner|tradesperson|investor|admin
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # tradesperson profile
    specialty_type: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    license_number: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)

    # payment processor references
    payment_customer_id: Mapped[Optional[str]] = mapped_column(String(120), nullable=True, index=True)
    payment_subscription_id: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    properties: Mapped[List["Property"]] = relationship(back_populates="owner")
    subscription: Mapped[Optional["Subscription"]] = relationship(back_populates="user", uselist=False)


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    actor_user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=True, index=True)

    action: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(80), nullable=False)

    before_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    after_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Portfolio: properties / maintenance / valuations
# -----------------------------
class Property(Base):
    __tablename__ = "properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=False, index=True)

    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(120), nullable=False)
    state: Mapped[str] = mapped_column(String(60), nullable=False)
    zip_code: Mapped[str] = mapped_column(String(12), nullable=False)
    property_type: Mapped[str] = mapped_column(String(30), nullable=False, default="single_family")

    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bathrooms: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    square_feet: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    year_built: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    lot_size: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    purchase_price: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    purchase_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    current_value: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    last_valuation_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # optimistic row version: every valuation append bumps it
    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    owner: Mapped["AppUser"] = relationship(back_populates="properties")
    maintenance_records: Mapped[List["MaintenanceRecord"]] = relationship(
        back_populates="property", cascade="all, delete-orphan"
    )
    valuations: Mapped[List["Valuation"]] = relationship(back_populates="property", cascade="all, delete-orphan")


class MaintenanceRecord(Base):
    __tablename__ = "maintenance_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tradesperson_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=True, index=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    cost: Mapped[Decimal] = mapped_column(Money, nullable=False)
    completion_date: Mapped[date] = mapped_column(Date, nullable=False)

    contractor: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    warranty: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    receipt_urls: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    image_urls: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="completed")
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")
    estimated_value_added: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    property: Mapped["Property"] = relationship(back_populates="maintenance_records")


class Valuation(Base):
    __tablename__ = "valuations"
    __table_args__ = (Index("ix_valuations_property_date", "property_id", "valuation_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )

    value: Mapped[Decimal] = mapped_column(Money, nullable=False)
    method: Mapped[str] = mapped_column(String(20), nullable=False, default="automated")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    valuation_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    maintenance_impact: Mapped[Optional[Decimal]] = mapped_column(Money, nullable=True)
    maintenance_record_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("maintenance_records.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    property: Mapped["Property"] = relationship(back_populates="valuations")


# -----------------------------
# Billing: plans / subscriptions / receipts
# -----------------------------
class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(40), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(80), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    base_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    price_per_property: Mapped[Decimal] = mapped_column(Money, nullable=False)
    max_properties: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # null = unlimited
    features: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    billing_cycle: Mapped[str] = mapped_column(String(20), nullable=False, default="monthly")

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class Subscription(Base):
    __tablename__ = "subscriptions"
    __table_args__ = (UniqueConstraint("user_id", name="uq_subscriptions_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=False, index=True)
    plan_id: Mapped[int] = mapped_column(Integer, ForeignKey("subscription_plans.id"), nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    property_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_price: Mapped[Decimal] = mapped_column(Money, nullable=False)

    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    current_period_start: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    current_period_end: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    last_payment_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    next_payment_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    cancel_at_period_end: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    processor_subscription_id: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    user: Mapped["AppUser"] = relationship(back_populates="subscription")
    plan: Mapped["SubscriptionPlan"] = relationship()
    receipts: Mapped[List["Receipt"]] = relationship(back_populates="subscription")


class Receipt(Base):
    __tablename__ = "receipts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=False, index=True)
    subscription_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("subscriptions.id", ondelete="SET NULL"), nullable=True
    )

    receipt_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="usd")
    description: Mapped[str] = mapped_column(Text, nullable=False)
    receipt_type: Mapped[str] = mapped_column(String(20), nullable=False, default="subscription")
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    payment_method: Mapped[str] = mapped_column(String(40), nullable=False, default="card")
    payment_intent_id: Mapped[Optional[str]] = mapped_column(String(120), nullable=True, index=True)
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    subscription: Mapped[Optional["Subscription"]] = relationship(back_populates="receipts")


# -----------------------------
# Notifications
# -----------------------------
class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_user_unread", "user_id", "is_read"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("app_users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False)  # see schemas.NotificationType
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # loose pointer to whatever the notice is about; rows outlive their subject
    related_entity_type: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    related_entity_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
