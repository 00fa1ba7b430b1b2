# backend/tests/conftest.py
from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

# must run before rentledger.config is imported anywhere
_TMP_DIR = tempfile.mkdtemp(prefix="rentledger-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR}/rentledger-test.db"
os.environ["APP_ENV"] = "test"
os.environ["AUTH_MODE"] = "dev"

import pytest
from fastapi.testclient import TestClient

from rentledger import models  # noqa: F401
from rentledger.db import Base, SessionLocal, engine
from rentledger.domain.rent_increase import IncreasePolicy
from rentledger.main import create_app
from rentledger.models import Property, Tenant
from rentledger.services.accounts import ensure_member
from rentledger.services.rent_schedules import create_schedule


@dataclass(frozen=True)
class Account:
    org_id: int
    org_slug: str
    user_id: int
    email: str


@pytest.fixture(autouse=True)
def _fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client():
    return TestClient(create_app())


def _mk_account(db, slug: str, email: str, role: str = "owner") -> Account:
    m = ensure_member(db, org_slug=slug, email=email, role=role)
    return Account(org_id=m.org.id, org_slug=m.org.slug, user_id=m.user.id, email=m.user.email)


@pytest.fixture()
def account(db) -> Account:
    return _mk_account(db, "acct-a", "owner-a@t.local")


@pytest.fixture()
def other_account(db) -> Account:
    return _mk_account(db, "acct-b", "owner-b@t.local")


@pytest.fixture()
def make_property(db):
    def _make(acct: Account, name: str = "Flat A1") -> Property:
        row = Property(org_id=acct.org_id, name=name, address="Street 1", city="Helsinki")
        db.add(row)
        db.commit()
        return row

    return _make


@pytest.fixture()
def make_tenant(db):
    def _make(
        acct: Account,
        property_id: int | None = None,
        first_name: str = "Aino",
        last_name: str = "Virtanen",
        lease_start: date | None = None,
    ) -> Tenant:
        row = Tenant(
            org_id=acct.org_id,
            property_id=property_id,
            first_name=first_name,
            last_name=last_name,
            lease_start=lease_start,
        )
        db.add(row)
        db.commit()
        return row

    return _make


@pytest.fixture()
def make_schedule(db):
    def _make(
        acct: Account,
        *,
        property_id: int,
        tenant_id: int | None = None,
        amount: str = "1000.00",
        start_date: date = date(2023, 1, 1),
        policy: IncreasePolicy | None = None,
        today: date = date(2025, 2, 1),
    ):
        return create_schedule(
            db,
            org_id=acct.org_id,
            actor_user_id=acct.user_id,
            payload={
                "property_id": property_id,
                "tenant_id": tenant_id,
                "amount": Decimal(amount),
                "start_date": start_date,
            },
            policy=policy,
            today=today,
        )

    return _make
