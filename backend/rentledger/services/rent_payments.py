# backend/rentledger/services/rent_payments.py
from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.audit import audit_write
from ..domain.rent_increase import as_decimal
from ..errors import ValidationFailed
from ..models import RentPayment
from .ownership import must_get_payment, must_get_property, must_get_schedule, must_get_tenant

PAYMENT_STATUSES = ("received", "pending", "late", "partial")


def create_payment(
    db: Session,
    *,
    org_id: int,
    actor_user_id: Optional[int],
    payload: dict[str, Any],
) -> RentPayment:
    must_get_property(db, org_id=org_id, property_id=payload["property_id"])
    if payload.get("tenant_id") is not None:
        must_get_tenant(db, org_id=org_id, tenant_id=payload["tenant_id"])
    if payload.get("schedule_id") is not None:
        sched = must_get_schedule(db, org_id=org_id, schedule_id=payload["schedule_id"])
        if sched.property_id != payload["property_id"]:
            raise ValidationFailed("rent schedule belongs to a different property")

    status = payload.get("status") or settings.default_payment_status
    if status not in PAYMENT_STATUSES:
        raise ValidationFailed("payment status must be one of: " + ", ".join(PAYMENT_STATUSES))

    paid_on = payload["payment_date"]
    expected = payload.get("expected_amount")

    row = RentPayment(
        org_id=org_id,
        property_id=payload["property_id"],
        tenant_id=payload.get("tenant_id"),
        schedule_id=payload.get("schedule_id"),
        amount=as_decimal(payload["amount"]),
        expected_amount=as_decimal(expected) if expected is not None else None,
        payment_date=paid_on,
        period_month=paid_on.month,
        period_year=paid_on.year,
        status=status,
        notes=payload.get("notes"),
    )
    db.add(row)
    db.flush()

    audit_write(
        db,
        org_id=org_id,
        actor_user_id=actor_user_id,
        action="rent_payment.create",
        entity_type="RentPayment",
        entity_id=row.id,
        before=None,
        after=row,
    )
    db.commit()
    db.refresh(row)
    return row


def list_payments(
    db: Session,
    *,
    org_id: int,
    property_id: Optional[int] = None,
    year: Optional[int] = None,
    limit: int = 500,
) -> list[RentPayment]:
    q = select(RentPayment).where(RentPayment.org_id == org_id)

    if property_id is not None:
        must_get_property(db, org_id=org_id, property_id=property_id)
        q = q.where(RentPayment.property_id == property_id)

    if year is not None:
        q = q.where(RentPayment.period_year == int(year))

    q = q.order_by(desc(RentPayment.payment_date), desc(RentPayment.id)).limit(limit)
    return list(db.scalars(q).all())


def delete_payment(db: Session, *, org_id: int, actor_user_id: Optional[int], payment_id: int) -> None:
    row = must_get_payment(db, org_id=org_id, payment_id=payment_id)

    audit_write(
        db,
        org_id=org_id,
        actor_user_id=actor_user_id,
        action="rent_payment.delete",
        entity_type="RentPayment",
        entity_id=row.id,
        before=row,
        after=None,
    )
    db.delete(row)
    db.commit()
