# backend/rentledger/routers/properties.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, require_operator, require_owner
from ..db import get_db
from ..domain.audit import audit_write, snapshot
from ..models import Property
from ..schemas import PropertyCreate, PropertyOut
from ..services.ownership import must_get_property

router = APIRouter(prefix="/properties", tags=["properties"])


@router.post("", response_model=PropertyOut)
def create_property(payload: PropertyCreate, db: Session = Depends(get_db), p: Principal = Depends(require_operator)):
    row = Property(**payload.model_dump(), org_id=p.org_id)
    db.add(row)
    db.flush()

    audit_write(
        db,
        org_id=p.org_id,
        actor_user_id=p.user_id,
        action="property.create",
        entity_type="Property",
        entity_id=row.id,
        before=None,
        after=row,
    )
    db.commit()
    db.refresh(row)
    return row


@router.get("", response_model=list[PropertyOut])
def list_properties(
    limit: int = Query(default=200, ge=1, le=2000),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    q = select(Property).where(Property.org_id == p.org_id).order_by(desc(Property.id)).limit(limit)
    return list(db.scalars(q).all())


@router.get("/{property_id}", response_model=PropertyOut)
def get_property(property_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return must_get_property(db, org_id=p.org_id, property_id=property_id)


@router.patch("/{property_id}", response_model=PropertyOut)
def update_property(
    property_id: int,
    payload: PropertyCreate,  # full-update for simplicity
    db: Session = Depends(get_db),
    p: Principal = Depends(require_operator),
):
    row = must_get_property(db, org_id=p.org_id, property_id=property_id)
    before = snapshot(row)

    for k, v in payload.model_dump().items():
        setattr(row, k, v)

    db.add(row)
    db.flush()

    audit_write(
        db,
        org_id=p.org_id,
        actor_user_id=p.user_id,
        action="property.update",
        entity_type="Property",
        entity_id=row.id,
        before=before,
        after=row,
    )
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{property_id}")
def delete_property(property_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_owner)):
    row = must_get_property(db, org_id=p.org_id, property_id=property_id)

    audit_write(
        db,
        org_id=p.org_id,
        actor_user_id=p.user_id,
        action="property.delete",
        entity_type="Property",
        entity_id=row.id,
        before=row,
        after=None,
    )
    db.delete(row)
    db.commit()
    return {"ok": True}
