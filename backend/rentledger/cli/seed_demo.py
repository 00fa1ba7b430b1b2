# backend/rentledger/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from rentledger import models  # noqa: F401
from rentledger.db import Base, SessionLocal, engine
from rentledger.domain.rent_increase import LEASE_ANNIVERSARY, IncreasePolicy
from rentledger.models import Property, Tenant
from rentledger.services.accounts import ensure_member
from rentledger.services.rent_schedules import create_schedule

DEMO_LEASE_START = date(2023, 1, 1)
DEMO_RENT = Decimal("800.00")
DEMO_INCREASE = IncreasePolicy(
    enabled=True,
    increase_type="contract_based",
    percentage=Decimal("3.5"),
    date_rule=LEASE_ANNIVERSARY,
    notes="demo: yearly increase on the lease anniversary",
)


@dataclass(frozen=True)
class SeedResult:
    org_slug: str
    user_email: str
    property_id: Optional[int]
    schedule_id: Optional[int]


def seed_demo(
    *,
    org_slug: str,
    org_name: str,
    user_email: str,
    user_name: str,
    create_sample_lease: bool = True,
    today: Optional[date] = None,
) -> SeedResult:
    """
    Owner account with, optionally, one flat, one tenant and an 800.00 rent
    that rises 3.5% every lease anniversary. Safe to re-run without a lease.
    """
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        member = ensure_member(
            db, org_slug=org_slug, org_name=org_name, email=user_email, display_name=user_name, role="owner"
        )
        org_id, user_id = member.org.id, member.user.id
        result = SeedResult(org_slug=member.org.slug, user_email=member.user.email, property_id=None, schedule_id=None)
        if not create_sample_lease:
            return result

        flat = Property(org_id=org_id, name="Demo flat A1", address="Mannerheimintie 1 A 1", city="Helsinki", postal_code="00100")
        db.add(flat)
        db.flush()
        tenant = Tenant(org_id=org_id, property_id=flat.id, first_name="Demo", last_name="Tenant", lease_start=DEMO_LEASE_START)
        db.add(tenant)
        db.commit()

        schedule = create_schedule(
            db,
            org_id=org_id,
            actor_user_id=user_id,
            payload={"property_id": flat.id, "tenant_id": tenant.id, "amount": DEMO_RENT, "start_date": DEMO_LEASE_START},
            policy=DEMO_INCREASE,
            today=today,
        )
        return SeedResult(
            org_slug=result.org_slug, user_email=result.user_email, property_id=flat.id, schedule_id=schedule.id
        )
    finally:
        db.close()
