# backend/rentledger/routers/rent.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, require_operator
from ..config import settings
from ..db import get_db
from ..schemas import (
    AppliedIncreaseOut,
    ApplyIncreaseIn,
    IncreasePolicyIn,
    PendingIncreaseOut,
    RentIncreaseHistoryOut,
    RentPaymentCreate,
    RentPaymentOut,
    RentScheduleCreate,
    RentScheduleOut,
    RentScheduleUpdate,
)
from ..services.ownership import must_get_schedule
from ..services.rent_increases import (
    apply_increase,
    list_increase_history,
    list_pending_increases,
    update_increase_policy,
)
from ..services.rent_payments import create_payment, delete_payment, list_payments
from ..services.rent_schedules import create_schedule, list_schedules, schedule_versions, update_schedule

router = APIRouter(prefix="/rent", tags=["rent"])


# -------------------- Schedules --------------------

@router.post("/schedules", response_model=RentScheduleOut)
def create_rent_schedule(
    payload: RentScheduleCreate,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_operator),
):
    policy = payload.increase_policy.to_policy() if payload.increase_policy else None
    return create_schedule(
        db,
        org_id=p.org_id,
        actor_user_id=p.user_id,
        payload=payload.model_dump(exclude={"increase_policy"}),
        policy=policy,
    )


@router.get("/schedules", response_model=list[RentScheduleOut])
def list_rent_schedules(
    property_id: int | None = Query(default=None),
    tenant_id: int | None = Query(default=None),
    active_only: bool = Query(default=False),
    limit: int = Query(default=500, ge=1, le=2000),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return list_schedules(
        db,
        org_id=p.org_id,
        property_id=property_id,
        tenant_id=tenant_id,
        active_only=active_only,
        limit=limit,
    )


@router.get("/schedules/{schedule_id}", response_model=RentScheduleOut)
def get_rent_schedule(schedule_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return must_get_schedule(db, org_id=p.org_id, schedule_id=schedule_id)


@router.patch("/schedules/{schedule_id}", response_model=RentScheduleOut)
def update_rent_schedule(
    schedule_id: int,
    payload: RentScheduleUpdate,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_operator),
):
    return update_schedule(
        db,
        org_id=p.org_id,
        actor_user_id=p.user_id,
        schedule_id=schedule_id,
        changes=payload.model_dump(exclude_unset=True),
    )


@router.get("/schedules/{schedule_id}/versions", response_model=list[RentScheduleOut])
def rent_schedule_versions(schedule_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return schedule_versions(db, org_id=p.org_id, schedule_id=schedule_id)


# -------------------- Increases --------------------

@router.put("/schedules/{schedule_id}/increase-policy", response_model=RentScheduleOut)
def put_increase_policy(
    schedule_id: int,
    payload: IncreasePolicyIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_operator),
):
    return update_increase_policy(
        db,
        org_id=p.org_id,
        actor_user_id=p.user_id,
        schedule_id=schedule_id,
        policy=payload.to_policy(),
    )


@router.post("/schedules/{schedule_id}/apply-increase", response_model=AppliedIncreaseOut)
def post_apply_increase(
    schedule_id: int,
    payload: ApplyIncreaseIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_operator),
):
    return apply_increase(
        db,
        org_id=p.org_id,
        actor_user_id=p.user_id,
        schedule_id=schedule_id,
        effective_date=payload.effective_date,
        notes=payload.notes,
    )


@router.get("/increases/pending", response_model=list[PendingIncreaseOut])
def pending_increases(
    within_days: int | None = Query(default=None, ge=0, le=3660),
    urgent: bool = Query(default=False),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    if urgent:
        window = settings.urgent_increase_days
    elif within_days is not None:
        window = within_days
    else:
        window = settings.pending_increase_window_days
    return list_pending_increases(db, org_id=p.org_id, within_days=window)


@router.get("/increases/history", response_model=list[RentIncreaseHistoryOut])
def increase_history(
    property_id: int | None = Query(default=None),
    tenant_id: int | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=2000),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return list_increase_history(db, org_id=p.org_id, property_id=property_id, tenant_id=tenant_id, limit=limit)


# -------------------- Payments --------------------

@router.post("/payments", response_model=RentPaymentOut)
def create_rent_payment(
    payload: RentPaymentCreate,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_operator),
):
    return create_payment(db, org_id=p.org_id, actor_user_id=p.user_id, payload=payload.model_dump())


@router.get("/payments", response_model=list[RentPaymentOut])
def list_rent_payments(
    property_id: int | None = Query(default=None),
    year: int | None = Query(default=None, ge=1900, le=3000),
    limit: int = Query(default=500, ge=1, le=2000),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    return list_payments(db, org_id=p.org_id, property_id=property_id, year=year, limit=limit)


@router.delete("/payments/{payment_id}")
def delete_rent_payment(payment_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_operator)):
    delete_payment(db, org_id=p.org_id, actor_user_id=p.user_id, payment_id=payment_id)
    return {"ok": True}
