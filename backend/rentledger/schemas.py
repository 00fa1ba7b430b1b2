# backend/rentledger/schemas.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .domain.rent_increase import IncreasePolicy

IncreaseType = Literal["index_tied", "contract_based"]
IncreaseDateRule = Literal["lease_anniversary", "manual"]


# -------------------- Properties / Tenants --------------------

class PropertyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    property_type: Optional[str] = None
    size_sqm: Optional[Decimal] = None
    purchase_price: Optional[Decimal] = None
    purchase_date: Optional[date] = None
    notes: Optional[str] = None


class PropertyOut(PropertyCreate):
    id: int
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class TenantCreate(BaseModel):
    property_id: Optional[int] = None
    first_name: str = Field(min_length=1, max_length=120)
    last_name: str = Field(min_length=1, max_length=120)
    email: Optional[str] = None
    phone: Optional[str] = None
    lease_start: Optional[date] = None
    lease_end: Optional[date] = None
    deposit_amount: Optional[Decimal] = None
    notes: Optional[str] = None
    is_active: bool = True


class TenantOut(TenantCreate):
    id: int
    full_name: str
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# -------------------- Rent schedules / increase policy --------------------

class IncreasePolicyIn(BaseModel):
    enabled: bool = False
    increase_type: Optional[IncreaseType] = None
    percentage: Optional[Decimal] = Field(default=None, ge=0, le=100)
    date_rule: Optional[IncreaseDateRule] = None
    next_increase_date: Optional[date] = None
    notes: Optional[str] = None

    def to_policy(self) -> IncreasePolicy:
        return IncreasePolicy(
            enabled=self.enabled,
            increase_type=self.increase_type,
            percentage=self.percentage,
            date_rule=self.date_rule,
            next_increase_date=self.next_increase_date,
            notes=self.notes,
        )


class RentScheduleCreate(BaseModel):
    property_id: int
    tenant_id: Optional[int] = None
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    due_day: Optional[int] = Field(default=None, ge=1, le=31)
    start_date: date
    end_date: Optional[date] = None
    increase_policy: Optional[IncreasePolicyIn] = None


class RentScheduleUpdate(BaseModel):
    property_id: Optional[int] = None
    tenant_id: Optional[int] = None
    amount: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    due_day: Optional[int] = Field(default=None, ge=1, le=31)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None


class RentScheduleOut(BaseModel):
    id: int
    property_id: int
    tenant_id: Optional[int] = None
    previous_schedule_id: Optional[int] = None

    amount: Decimal
    due_day: int
    start_date: date
    end_date: Optional[date] = None
    is_active: bool

    increase_enabled: bool
    increase_type: Optional[str] = None
    increase_percentage: Optional[Decimal] = None
    increase_date_type: Optional[str] = None
    next_increase_date: Optional[date] = None
    last_increase_date: Optional[date] = None
    increase_notes: Optional[str] = None

    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class ApplyIncreaseIn(BaseModel):
    effective_date: date
    notes: Optional[str] = None


class AppliedIncreaseOut(BaseModel):
    old_schedule_id: int
    new_schedule_id: int
    old_amount: Decimal
    new_amount: Decimal
    effective_date: date
    next_increase_date: Optional[date] = None
    history_id: Optional[int] = None
    model_config = ConfigDict(from_attributes=True)


class PendingIncreaseOut(BaseModel):
    schedule_id: int
    property_id: int
    property_name: str
    tenant_id: Optional[int] = None
    tenant_name: Optional[str] = None
    current_amount: Decimal
    increase_percentage: Decimal
    new_amount: Decimal
    next_increase_date: date
    increase_type: str
    days_until_increase: int
    is_urgent: bool
    model_config = ConfigDict(from_attributes=True)


class RentIncreaseHistoryOut(BaseModel):
    id: int
    property_id: int
    tenant_id: Optional[int] = None
    old_schedule_id: Optional[int] = None
    new_schedule_id: Optional[int] = None
    old_amount: Decimal
    new_amount: Decimal
    increase_percentage: Decimal
    increase_type: str
    increase_date: date
    applied_by_user_id: Optional[int] = None
    applied_at: datetime
    notes: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


# -------------------- Payments --------------------

class RentPaymentCreate(BaseModel):
    property_id: int
    tenant_id: Optional[int] = None
    schedule_id: Optional[int] = None
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    expected_amount: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)
    payment_date: date
    status: Optional[str] = None
    notes: Optional[str] = None


class RentPaymentOut(BaseModel):
    id: int
    property_id: int
    tenant_id: Optional[int] = None
    schedule_id: Optional[int] = None
    amount: Decimal
    expected_amount: Optional[Decimal] = None
    payment_date: date
    period_month: Optional[int] = None
    period_year: Optional[int] = None
    status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)
