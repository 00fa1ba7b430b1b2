# backend/rentledger/services/rent_schedules.py
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.audit import audit_write, snapshot
from ..domain.rent_increase import IncreasePolicy, as_decimal
from ..errors import ScheduleConflict, ValidationFailed
from ..models import RentSchedule
from .ownership import must_get_property, must_get_schedule, must_get_tenant
from .rent_increases import apply_policy_fields, ensure_not_superseded

log = logging.getLogger("rentledger.rent")

# Fields a caller may edit directly. Policy fields go through
# update_increase_policy, amount changes after an increase go through
# apply_increase.
EDITABLE_FIELDS = ("property_id", "tenant_id", "amount", "due_day", "start_date", "end_date", "is_active")


def _is_current(is_active: bool, end_date: Optional[date]) -> bool:
    return bool(is_active) and end_date is None


def ensure_single_current(
    db: Session,
    *,
    org_id: int,
    property_id: int,
    tenant_id: Optional[int],
    ignore_schedule_id: Optional[int] = None,
) -> None:
    """
    Raise ScheduleConflict if (property, tenant) already has an active,
    open-ended schedule.
    """
    q = select(RentSchedule.id).where(
        RentSchedule.org_id == int(org_id),
        RentSchedule.property_id == int(property_id),
        RentSchedule.is_active.is_(True),
        RentSchedule.end_date.is_(None),
    )
    if tenant_id is None:
        q = q.where(RentSchedule.tenant_id.is_(None))
    else:
        q = q.where(RentSchedule.tenant_id == int(tenant_id))

    if ignore_schedule_id is not None:
        q = q.where(RentSchedule.id != int(ignore_schedule_id))

    existing = db.scalar(q.limit(1))
    if existing is not None:
        raise ScheduleConflict(
            f"an active rent schedule already exists for this property/tenant (schedule id={int(existing)})"
        )


def _validate_dates(start_date: Optional[date], end_date: Optional[date]) -> None:
    if start_date is None:
        raise ValidationFailed("start_date is required")
    if end_date is not None and end_date < start_date:
        raise ValidationFailed("end_date cannot be before start_date")


def create_schedule(
    db: Session,
    *,
    org_id: int,
    actor_user_id: Optional[int],
    payload: dict[str, Any],
    policy: Optional[IncreasePolicy] = None,
    today: Optional[date] = None,
) -> RentSchedule:
    data = {k: payload.get(k) for k in EDITABLE_FIELDS if k in payload}
    if data.get("due_day") is None:
        data["due_day"] = settings.default_due_day
    if data.get("is_active") is None:
        data["is_active"] = True

    must_get_property(db, org_id=org_id, property_id=data["property_id"])
    tenant = None
    if data.get("tenant_id") is not None:
        tenant = must_get_tenant(db, org_id=org_id, tenant_id=data["tenant_id"])

    _validate_dates(data.get("start_date"), data.get("end_date"))
    data["amount"] = as_decimal(data["amount"])

    if _is_current(data["is_active"], data.get("end_date")):
        ensure_single_current(db, org_id=org_id, property_id=data["property_id"], tenant_id=data.get("tenant_id"))

    row = RentSchedule(**data, org_id=org_id)
    if policy is not None:
        lease_start = tenant.lease_start if tenant is not None else None
        apply_policy_fields(row, policy, today=today or date.today(), lease_start=lease_start)

    db.add(row)
    db.flush()

    audit_write(
        db,
        org_id=org_id,
        actor_user_id=actor_user_id,
        action="rent_schedule.create",
        entity_type="RentSchedule",
        entity_id=row.id,
        before=None,
        after=row,
    )
    db.commit()
    db.refresh(row)

    log.info(
        "rent schedule created",
        extra={"org_id": org_id, "user_id": actor_user_id, "property_id": row.property_id, "schedule_id": row.id},
    )
    return row


def update_schedule(
    db: Session,
    *,
    org_id: int,
    actor_user_id: Optional[int],
    schedule_id: int,
    changes: dict[str, Any],
) -> RentSchedule:
    row = must_get_schedule(db, org_id=org_id, schedule_id=schedule_id)
    ensure_not_superseded(db, row)
    before = snapshot(row)

    data = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}

    if "property_id" in data:
        must_get_property(db, org_id=org_id, property_id=data["property_id"])
    if data.get("tenant_id") is not None:
        must_get_tenant(db, org_id=org_id, tenant_id=data["tenant_id"])
    if data.get("amount") is not None:
        data["amount"] = as_decimal(data["amount"])

    for k, v in data.items():
        if k in ("property_id", "amount", "due_day", "start_date", "is_active") and v is None:
            raise ValidationFailed(f"{k} cannot be null")

    start = data.get("start_date", row.start_date)
    end = data["end_date"] if "end_date" in data else row.end_date
    _validate_dates(start, end)

    is_active = data.get("is_active", row.is_active)
    if _is_current(is_active, end):
        ensure_single_current(
            db,
            org_id=org_id,
            property_id=data.get("property_id", row.property_id),
            tenant_id=data["tenant_id"] if "tenant_id" in data else row.tenant_id,
            ignore_schedule_id=row.id,
        )

    for k, v in data.items():
        setattr(row, k, v)

    db.add(row)
    db.flush()

    audit_write(
        db,
        org_id=org_id,
        actor_user_id=actor_user_id,
        action="rent_schedule.update",
        entity_type="RentSchedule",
        entity_id=row.id,
        before=before,
        after=row,
    )
    db.commit()
    db.refresh(row)
    return row


def list_schedules(
    db: Session,
    *,
    org_id: int,
    property_id: Optional[int] = None,
    tenant_id: Optional[int] = None,
    active_only: bool = False,
    limit: int = 500,
) -> list[RentSchedule]:
    q = select(RentSchedule).where(RentSchedule.org_id == org_id)

    if property_id is not None:
        must_get_property(db, org_id=org_id, property_id=property_id)
        q = q.where(RentSchedule.property_id == property_id)

    if tenant_id is not None:
        must_get_tenant(db, org_id=org_id, tenant_id=tenant_id)
        q = q.where(RentSchedule.tenant_id == tenant_id)

    if active_only:
        q = q.where(RentSchedule.is_active.is_(True), RentSchedule.end_date.is_(None))

    q = q.order_by(desc(RentSchedule.start_date), desc(RentSchedule.id)).limit(limit)
    return list(db.scalars(q).all())


def current_schedule(
    db: Session,
    *,
    org_id: int,
    property_id: int,
    tenant_id: Optional[int] = None,
) -> Optional[RentSchedule]:
    """The one schedule currently in effect for (property, tenant), if any."""
    q = select(RentSchedule).where(
        RentSchedule.org_id == org_id,
        RentSchedule.property_id == property_id,
        RentSchedule.is_active.is_(True),
        RentSchedule.end_date.is_(None),
    )
    if tenant_id is None:
        q = q.where(RentSchedule.tenant_id.is_(None))
    else:
        q = q.where(RentSchedule.tenant_id == tenant_id)
    return db.scalar(q.order_by(desc(RentSchedule.id)).limit(1))


def schedule_versions(db: Session, *, org_id: int, schedule_id: int) -> list[RentSchedule]:
    """
    Every version of the rent chain that schedule_id belongs to, newest first.

    Walks forward through successors to the head, then back through
    previous_schedule_id to the first schedule of the lease.
    """
    row = must_get_schedule(db, org_id=org_id, schedule_id=schedule_id)

    head = row
    seen = {head.id}
    while True:
        nxt = db.scalar(
            select(RentSchedule)
            .where(RentSchedule.org_id == org_id, RentSchedule.previous_schedule_id == head.id)
            .order_by(RentSchedule.id)
            .limit(1)
        )
        if nxt is None or nxt.id in seen:
            break
        seen.add(nxt.id)
        head = nxt

    out = [head]
    cur = head
    while cur.previous_schedule_id is not None:
        prev = db.scalar(
            select(RentSchedule).where(RentSchedule.org_id == org_id, RentSchedule.id == cur.previous_schedule_id)
        )
        if prev is None or prev in out:
            break
        out.append(prev)
        cur = prev
    return out
