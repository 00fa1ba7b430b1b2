# backend/rentledger/routers/tenants.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, require_operator
from ..db import get_db
from ..domain.audit import audit_write, snapshot
from ..errors import ScheduleConflict, ValidationFailed
from ..models import RentSchedule, Tenant
from ..schemas import TenantCreate, TenantOut
from ..services.ownership import must_get_property, must_get_tenant

router = APIRouter(prefix="/tenants", tags=["tenants"])


def _check_payload(db: Session, org_id: int, payload: TenantCreate) -> None:
    if payload.property_id is not None:
        must_get_property(db, org_id=org_id, property_id=payload.property_id)
    if payload.lease_start and payload.lease_end and payload.lease_end < payload.lease_start:
        raise ValidationFailed("lease_end cannot be before lease_start")


@router.post("", response_model=TenantOut)
def create_tenant(payload: TenantCreate, db: Session = Depends(get_db), p: Principal = Depends(require_operator)):
    _check_payload(db, p.org_id, payload)

    row = Tenant(**payload.model_dump(), org_id=p.org_id)
    db.add(row)
    db.flush()

    audit_write(
        db,
        org_id=p.org_id,
        actor_user_id=p.user_id,
        action="tenant.create",
        entity_type="Tenant",
        entity_id=row.id,
        before=None,
        after=row,
    )
    db.commit()
    db.refresh(row)
    return row


@router.get("", response_model=list[TenantOut])
def list_tenants(
    property_id: int | None = Query(default=None),
    active_only: bool = Query(default=False),
    limit: int = Query(default=200, ge=1, le=2000),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    q = select(Tenant).where(Tenant.org_id == p.org_id)

    if property_id is not None:
        must_get_property(db, org_id=p.org_id, property_id=property_id)
        q = q.where(Tenant.property_id == property_id)

    if active_only:
        q = q.where(Tenant.is_active.is_(True))

    q = q.order_by(desc(Tenant.id)).limit(limit)
    return list(db.scalars(q).all())


@router.get("/{tenant_id}", response_model=TenantOut)
def get_tenant(tenant_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return must_get_tenant(db, org_id=p.org_id, tenant_id=tenant_id)


@router.patch("/{tenant_id}", response_model=TenantOut)
def update_tenant(
    tenant_id: int,
    payload: TenantCreate,  # full-update for simplicity
    db: Session = Depends(get_db),
    p: Principal = Depends(require_operator),
):
    row = must_get_tenant(db, org_id=p.org_id, tenant_id=tenant_id)
    _check_payload(db, p.org_id, payload)
    before = snapshot(row)

    for k, v in payload.model_dump().items():
        setattr(row, k, v)

    db.add(row)
    db.flush()

    audit_write(
        db,
        org_id=p.org_id,
        actor_user_id=p.user_id,
        action="tenant.update",
        entity_type="Tenant",
        entity_id=row.id,
        before=before,
        after=row,
    )
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{tenant_id}")
def delete_tenant(tenant_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_operator)):
    row = must_get_tenant(db, org_id=p.org_id, tenant_id=tenant_id)

    # the FK would null out tenant_id and turn a current lease into a second
    # tenantless schedule on the property
    current = db.scalar(
        select(RentSchedule.id)
        .where(
            RentSchedule.org_id == p.org_id,
            RentSchedule.tenant_id == row.id,
            RentSchedule.is_active.is_(True),
            RentSchedule.end_date.is_(None),
        )
        .limit(1)
    )
    if current is not None:
        raise ScheduleConflict(f"tenant still has a current rent schedule (schedule id={int(current)}); end it first")

    audit_write(
        db,
        org_id=p.org_id,
        actor_user_id=p.user_id,
        action="tenant.delete",
        entity_type="Tenant",
        entity_id=row.id,
        before=row,
        after=None,
    )
    db.delete(row)
    db.commit()
    return {"ok": True}
