# backend/rentledger/services/rent_increases.py
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import desc, select, update
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.audit import audit_write, snapshot
from ..domain.rent_increase import (
    DATE_RULES,
    INCREASE_TYPES,
    LEASE_ANNIVERSARY,
    MANUAL,
    IncreasePolicy,
    as_decimal,
    days_until,
    increased_amount,
    next_increase_date,
    next_increase_date_for,
)
from ..errors import InvalidEffectiveDate, PolicyDisabled, PolicyIncomplete, ScheduleConflict, ScheduleNotFound
from ..models import Property, RentIncreaseHistory, RentSchedule, Tenant
from .ownership import must_get_property, must_get_schedule, must_get_tenant

log = logging.getLogger("rentledger.rent")

# -----------------------------------------------------------------------------
# Rent increase lifecycle
# -----------------------------------------------------------------------------
#   Active(amount=A) --apply_increase(effective, pct)--> Active(amount=A')
#   and the old row becomes Superseded (end_date set, is_active=False) for good.
#
# Deactivate + insert successor run in one transaction; the history row sits
# in a SAVEPOINT so a failed audit insert never undoes the rent change.
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class PendingIncrease:
    schedule_id: int
    property_id: int
    property_name: str
    tenant_id: Optional[int]
    tenant_name: Optional[str]
    current_amount: Decimal
    increase_percentage: Decimal
    new_amount: Decimal
    next_increase_date: date
    increase_type: str
    days_until_increase: int
    is_urgent: bool


@dataclass(frozen=True)
class AppliedIncrease:
    old_schedule_id: int
    new_schedule_id: int
    old_amount: Decimal
    new_amount: Decimal
    effective_date: date
    next_increase_date: Optional[date]
    history_id: Optional[int]


# -----------------------------
# Policy
# -----------------------------
def normalize_policy(policy: IncreasePolicy) -> IncreasePolicy:
    """
    Validate an increase policy before it is stored.

    A disabled policy is stored as given. An enabled one needs a positive
    percentage and a date rule; manual also needs the date itself.
    """
    if not policy.enabled:
        return policy

    if policy.percentage is None or as_decimal(policy.percentage) <= 0:
        raise PolicyIncomplete("increase percentage is required when rent increases are enabled")

    if policy.date_rule not in DATE_RULES:
        raise PolicyIncomplete("increase date rule must be one of: " + ", ".join(DATE_RULES))

    if policy.date_rule == MANUAL and policy.next_increase_date is None:
        raise PolicyIncomplete("a manual increase date is required for the manual date rule")

    increase_type = policy.increase_type or settings.default_increase_type
    if increase_type not in INCREASE_TYPES:
        raise PolicyIncomplete("increase type must be one of: " + ", ".join(INCREASE_TYPES))

    return dataclasses.replace(policy, increase_type=increase_type, percentage=as_decimal(policy.percentage))


def apply_policy_fields(
    row: RentSchedule, policy: IncreasePolicy, *, today: date, lease_start: Optional[date] = None
) -> RentSchedule:
    p = normalize_policy(policy)

    row.increase_enabled = bool(p.enabled)
    row.increase_type = p.increase_type
    row.increase_percentage = p.percentage
    row.increase_date_type = p.date_rule
    row.increase_notes = p.notes

    if p.enabled and p.date_rule == LEASE_ANNIVERSARY:
        row.next_increase_date = next_increase_date(
            LEASE_ANNIVERSARY,
            today=today,
            lease_start=lease_start or row.start_date,
            last_increase=row.last_increase_date,
        )
    else:
        row.next_increase_date = p.next_increase_date
    return row


def ensure_not_superseded(db: Session, row: RentSchedule) -> None:
    """Raise ScheduleConflict if an applied increase has already replaced row."""
    if row.is_active and row.end_date is None:
        return
    successor = db.scalar(
        select(RentSchedule.id)
        .where(RentSchedule.org_id == row.org_id, RentSchedule.previous_schedule_id == row.id)
        .limit(1)
    )
    if successor is not None:
        raise ScheduleConflict(
            f"rent schedule was superseded by schedule id={int(successor)} and can no longer be edited"
        )


def update_increase_policy(
    db: Session,
    *,
    org_id: int,
    actor_user_id: Optional[int],
    schedule_id: int,
    policy: IncreasePolicy,
    today: Optional[date] = None,
) -> RentSchedule:
    row = must_get_schedule(db, org_id=org_id, schedule_id=schedule_id)
    ensure_not_superseded(db, row)
    before = snapshot(row)

    lease_start = row.tenant.lease_start if row.tenant is not None else None
    apply_policy_fields(row, policy, today=today or date.today(), lease_start=lease_start)
    db.add(row)
    db.flush()

    audit_write(
        db,
        org_id=org_id,
        actor_user_id=actor_user_id,
        action="rent_schedule.policy_update",
        entity_type="RentSchedule",
        entity_id=row.id,
        before=before,
        after=row,
    )
    db.commit()
    db.refresh(row)
    return row


# -----------------------------
# Pending increases (read-only)
# -----------------------------
def list_pending_increases(
    db: Session,
    *,
    org_id: int,
    today: Optional[date] = None,
    within_days: Optional[int] = None,
    urgent_days: Optional[int] = None,
) -> list[PendingIncrease]:
    """
    Every current schedule with an enabled policy and a percentage, with its
    next increase date and new amount, soonest first.

    within_days keeps rows due in at most that many days; overdue rows
    (negative days) always pass the window.
    """
    today = today or date.today()
    urgent = settings.urgent_increase_days if urgent_days is None else int(urgent_days)

    rows = db.execute(
        select(RentSchedule, Property, Tenant)
        .join(Property, Property.id == RentSchedule.property_id)
        .outerjoin(Tenant, Tenant.id == RentSchedule.tenant_id)
        .where(
            RentSchedule.org_id == org_id,
            RentSchedule.is_active.is_(True),
            RentSchedule.end_date.is_(None),
            RentSchedule.increase_enabled.is_(True),
            RentSchedule.increase_percentage.is_not(None),
        )
        .order_by(RentSchedule.id)
    ).all()

    out: list[PendingIncrease] = []
    for s, prop, tenant in rows:
        try:
            nxt = next_increase_date_for(s, today=today, lease_start=tenant.lease_start if tenant is not None else None)
        except PolicyIncomplete:
            log.warning("skipping schedule with unknown increase date rule", extra={"org_id": org_id, "schedule_id": s.id})
            continue
        if nxt is None:
            continue

        days = days_until(nxt, today)
        if within_days is not None and days > int(within_days):
            continue

        pct = as_decimal(s.increase_percentage)
        out.append(
            PendingIncrease(
                schedule_id=int(s.id),
                property_id=int(prop.id),
                property_name=str(prop.name),
                tenant_id=int(tenant.id) if tenant is not None else None,
                tenant_name=tenant.full_name if tenant is not None else None,
                current_amount=as_decimal(s.amount),
                increase_percentage=pct,
                new_amount=increased_amount(s.amount, pct),
                next_increase_date=nxt,
                increase_type=s.increase_type or settings.default_increase_type,
                days_until_increase=days,
                is_urgent=days <= urgent,
            )
        )

    out.sort(key=lambda x: (x.next_increase_date, x.schedule_id))
    return out


# -----------------------------
# Apply increase
# -----------------------------
def _successor_schedule(old: RentSchedule, *, new_amount: Decimal, effective_date: date, today: date) -> RentSchedule:
    rule = old.increase_date_type

    # a manual date that has now been used up is not carried forward
    manual_date = old.next_increase_date if (old.next_increase_date and old.next_increase_date > effective_date) else None

    nxt = None
    if rule in DATE_RULES:
        nxt = next_increase_date(
            rule,
            today=today,
            lease_start=effective_date,
            last_increase=effective_date,
            manual_date=manual_date,
        )

    return RentSchedule(
        org_id=old.org_id,
        property_id=old.property_id,
        tenant_id=old.tenant_id,
        previous_schedule_id=old.id,
        amount=new_amount,
        due_day=old.due_day,
        start_date=effective_date,
        end_date=None,
        is_active=True,
        increase_enabled=old.increase_enabled,
        increase_type=old.increase_type,
        increase_percentage=old.increase_percentage,
        increase_date_type=rule,
        next_increase_date=nxt,
        last_increase_date=effective_date,
        increase_notes=old.increase_notes,
    )


def _write_history(db: Session, *, log_extra: dict[str, Any], **fields: Any) -> Optional[int]:
    try:
        with db.begin_nested():
            entry = RentIncreaseHistory(**fields)
            db.add(entry)
        return int(entry.id)
    except SQLAlchemyError:
        log.exception("rent increase history write failed; keeping the applied increase", extra=log_extra)
        return None


def _still_current(db: Session, *, org_id: int, schedule_id: int) -> bool:
    found = db.scalar(
        select(RentSchedule.id).where(
            RentSchedule.id == schedule_id,
            RentSchedule.org_id == org_id,
            RentSchedule.is_active.is_(True),
            RentSchedule.end_date.is_(None),
        )
    )
    return found is not None


def apply_increase(
    db: Session,
    *,
    org_id: int,
    actor_user_id: Optional[int],
    schedule_id: int,
    effective_date: date,
    notes: Optional[str] = None,
    today: Optional[date] = None,
) -> AppliedIncrease:
    today = today or date.today()

    old = db.scalar(select(RentSchedule).where(RentSchedule.id == schedule_id, RentSchedule.org_id == org_id))
    if old is None or not old.is_active or old.end_date is not None:
        raise ScheduleNotFound("active rent schedule not found")

    policy = IncreasePolicy.from_schedule(old)
    if not policy.enabled:
        raise PolicyDisabled("rent increases are not enabled for this schedule")
    if policy.percentage is None:
        raise PolicyIncomplete("increase percentage is not set for this schedule")
    if effective_date <= old.start_date:
        raise InvalidEffectiveDate(
            f"effective date must be after the schedule start date ({old.start_date.isoformat()})"
        )

    pct = policy.percentage
    old_amount = as_decimal(old.amount)
    new_amount = increased_amount(old_amount, pct)
    increase_type = policy.increase_type or settings.default_increase_type
    log_extra = {"org_id": org_id, "user_id": actor_user_id, "property_id": old.property_id, "schedule_id": old.id}
    before = snapshot(old)

    try:
        # compare-and-set: only one request can supersede a given schedule
        res = db.execute(
            update(RentSchedule)
            .where(
                RentSchedule.id == old.id,
                RentSchedule.org_id == org_id,
                RentSchedule.is_active.is_(True),
                RentSchedule.end_date.is_(None),
            )
            .values(is_active=False, end_date=effective_date - timedelta(days=1))
        )
        if res.rowcount != 1:
            raise ScheduleNotFound("rent schedule was already superseded")

        new = _successor_schedule(old, new_amount=new_amount, effective_date=effective_date, today=today)
        db.add(new)
        db.flush()

        audit_write(
            db,
            org_id=org_id,
            actor_user_id=actor_user_id,
            action="rent_increase.applied",
            entity_type="RentSchedule",
            entity_id=old.id,
            before=before,
            after=new,
        )
    except OperationalError:
        # SQLite refuses the write outright when another apply committed after
        # this transaction's snapshot; report that the same way as rowcount 0
        db.rollback()
        if _still_current(db, org_id=org_id, schedule_id=schedule_id):
            raise
        log.info("rent increase lost a concurrent apply", extra=log_extra)
        raise ScheduleNotFound("rent schedule was already superseded")
    except Exception:
        db.rollback()
        raise

    history_id = _write_history(
        db,
        log_extra=log_extra,
        org_id=org_id,
        property_id=old.property_id,
        tenant_id=old.tenant_id,
        old_schedule_id=old.id,
        new_schedule_id=new.id,
        old_amount=old_amount,
        new_amount=new_amount,
        increase_percentage=pct,
        increase_type=increase_type,
        increase_date=effective_date,
        applied_by_user_id=actor_user_id,
        notes=notes,
    )
    db.commit()

    log.info(
        "rent increase applied: %s -> %s from %s",
        old_amount,
        new_amount,
        effective_date.isoformat(),
        extra={**log_extra, "new_schedule_id": new.id},
    )

    return AppliedIncrease(
        old_schedule_id=int(old.id),
        new_schedule_id=int(new.id),
        old_amount=old_amount,
        new_amount=new_amount,
        effective_date=effective_date,
        next_increase_date=new.next_increase_date,
        history_id=history_id,
    )


def list_increase_history(
    db: Session,
    *,
    org_id: int,
    property_id: Optional[int] = None,
    tenant_id: Optional[int] = None,
    limit: int = 200,
) -> list[RentIncreaseHistory]:
    q = select(RentIncreaseHistory).where(RentIncreaseHistory.org_id == org_id)

    if property_id is not None:
        must_get_property(db, org_id=org_id, property_id=property_id)
        q = q.where(RentIncreaseHistory.property_id == property_id)

    if tenant_id is not None:
        must_get_tenant(db, org_id=org_id, tenant_id=tenant_id)
        q = q.where(RentIncreaseHistory.tenant_id == tenant_id)

    q = q.order_by(desc(RentIncreaseHistory.increase_date), desc(RentIncreaseHistory.id)).limit(limit)
    return list(db.scalars(q).all())
