# backend/rentledger/services/ownership.py
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..errors import PaymentNotFound, PropertyNotFound, ScheduleNotFound, TenantNotFound
from ..models import Property, RentPayment, RentSchedule, Tenant


def must_get_property(db: Session, *, org_id: int, property_id: int) -> Property:
    row = db.scalar(select(Property).where(Property.id == property_id, Property.org_id == org_id))
    if not row:
        raise PropertyNotFound("property not found")
    return row


def must_get_tenant(db: Session, *, org_id: int, tenant_id: int) -> Tenant:
    row = db.scalar(select(Tenant).where(Tenant.id == tenant_id, Tenant.org_id == org_id))
    if not row:
        raise TenantNotFound("tenant not found")
    return row


def must_get_schedule(db: Session, *, org_id: int, schedule_id: int) -> RentSchedule:
    row = db.scalar(select(RentSchedule).where(RentSchedule.id == schedule_id, RentSchedule.org_id == org_id))
    if not row:
        raise ScheduleNotFound("rent schedule not found")
    return row


def must_get_payment(db: Session, *, org_id: int, payment_id: int) -> RentPayment:
    row = db.scalar(select(RentPayment).where(RentPayment.id == payment_id, RentPayment.org_id == org_id))
    if not row:
        raise PaymentNotFound("rent payment not found")
    return row
