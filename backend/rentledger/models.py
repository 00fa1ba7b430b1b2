# backend/rentledger/models.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


class _DumpMixin:
    def model_dump(self) -> dict[str, Any]:
        """Column values as a plain dict (audit before/after snapshots)."""
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}


# -----------------------------
# Accounts
# -----------------------------
class Organization(Base):
    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    slug: Mapped[str] = mapped_column(String(80), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class AppUser(Base):
    __tablename__ = "app_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class OrgMembership(Base):
    __tablename__ = "org_memberships"
    __table_args__ = (UniqueConstraint("org_id", "user_id", name="uq_org_memberships_org_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), index=True, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_users.id"), index=True, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="owner")  # owner|operator|analyst
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), index=True, nullable=False)
    actor_user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=True)

    action: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(80), nullable=False)
    changed: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)  # comma-separated column names

    before_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    after_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Properties / Tenants
# -----------------------------
class Property(_DumpMixin, Base):
    __tablename__ = "properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    postal_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    property_type: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    size_sqm: Mapped[Optional[Decimal]] = mapped_column(Numeric(8, 1), nullable=True)
    purchase_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    purchase_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    tenants: Mapped[List["Tenant"]] = relationship(back_populates="property")
    rent_schedules: Mapped[List["RentSchedule"]] = relationship(
        back_populates="property", cascade="all, delete-orphan"
    )


class Tenant(_DumpMixin, Base):
    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    property_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="SET NULL"), nullable=True, index=True
    )

    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    lease_start: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    lease_end: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    deposit_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    property: Mapped[Optional["Property"]] = relationship(back_populates="tenants")


# -----------------------------
# Rent: schedules / increases / payments
# -----------------------------
class RentSchedule(_DumpMixin, Base):
    """
    One rent amount in effect for a date range.

    Schedules are superseded, never edited, by an applied increase: the old
    row gets end_date + is_active=False and the successor points back to it
    through previous_schedule_id.
    """

    __tablename__ = "rent_schedules"
    __table_args__ = (
        Index(
            "uq_rent_schedules_current",
            "org_id",
            "property_id",
            "tenant_id",
            unique=True,
            sqlite_where=text("is_active = 1 AND end_date IS NULL"),
            postgresql_where=text("is_active AND end_date IS NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tenant_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("tenants.id", ondelete="SET NULL"), nullable=True, index=True
    )
    previous_schedule_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("rent_schedules.id", ondelete="SET NULL"), nullable=True
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    due_day: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # increase policy
    increase_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    increase_type: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)  # index_tied|contract_based
    increase_percentage: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 3), nullable=True)
    increase_date_type: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)  # lease_anniversary|manual
    next_increase_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    last_increase_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    increase_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    property: Mapped["Property"] = relationship(back_populates="rent_schedules")
    tenant: Mapped[Optional["Tenant"]] = relationship()


class RentIncreaseHistory(_DumpMixin, Base):
    __tablename__ = "rent_increase_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tenant_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("tenants.id", ondelete="SET NULL"), nullable=True, index=True
    )
    old_schedule_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("rent_schedules.id", ondelete="SET NULL"), nullable=True
    )
    new_schedule_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("rent_schedules.id", ondelete="SET NULL"), nullable=True
    )

    old_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    new_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    increase_percentage: Mapped[Decimal] = mapped_column(Numeric(6, 3), nullable=False)
    increase_type: Mapped[str] = mapped_column(String(40), nullable=False)
    increase_date: Mapped[date] = mapped_column(Date, nullable=False)

    applied_by_user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=True)
    applied_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class RentPayment(_DumpMixin, Base):
    __tablename__ = "rent_payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tenant_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("tenants.id", ondelete="SET NULL"), nullable=True, index=True
    )
    schedule_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("rent_schedules.id", ondelete="SET NULL"), nullable=True, index=True
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    expected_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    period_month: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    period_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(40), nullable=False, default="received")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
