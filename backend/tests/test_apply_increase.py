# backend/tests/test_apply_increase.py
from __future__ import annotations

import json
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from rentledger.db import SessionLocal
from rentledger.domain.rent_increase import LEASE_ANNIVERSARY, MANUAL, IncreasePolicy
from rentledger.errors import InvalidEffectiveDate, PolicyDisabled, PolicyIncomplete, ScheduleConflict, ScheduleNotFound
from rentledger.models import AuditEvent, RentIncreaseHistory, RentPayment, RentSchedule
from rentledger.services import rent_increases
from rentledger.services.rent_increases import (
    apply_increase,
    list_increase_history,
    list_pending_increases,
    update_increase_policy,
)
from rentledger.services.rent_payments import create_payment
from rentledger.services.rent_schedules import current_schedule, schedule_versions, update_schedule

TODAY = date(2025, 2, 1)

ANNIVERSARY_3_5 = IncreasePolicy(
    enabled=True,
    increase_type="contract_based",
    percentage=Decimal("3.5"),
    date_rule=LEASE_ANNIVERSARY,
)


def _lease(account, make_property, make_tenant, make_schedule, *, amount="800.00", policy=ANNIVERSARY_3_5):
    prop = make_property(account)
    tenant = make_tenant(account, property_id=prop.id)
    sched = make_schedule(
        account,
        property_id=prop.id,
        tenant_id=tenant.id,
        amount=amount,
        start_date=date(2023, 1, 1),
        policy=policy,
        today=TODAY,
    )
    return prop, tenant, sched


def _apply(db, account, schedule_id, effective=date(2025, 3, 1), **kw):
    return apply_increase(
        db,
        org_id=account.org_id,
        actor_user_id=account.user_id,
        schedule_id=schedule_id,
        effective_date=effective,
        today=TODAY,
        **kw,
    )


def test_anniversary_lease_end_to_end(db, account, make_property, make_tenant, make_schedule):
    prop, tenant, sched = _lease(account, make_property, make_tenant, make_schedule)
    assert sched.next_increase_date == date(2026, 1, 1)

    pending = list_pending_increases(db, org_id=account.org_id, today=TODAY)
    assert [p.schedule_id for p in pending] == [sched.id]
    assert pending[0].next_increase_date == date(2026, 1, 1)
    assert pending[0].new_amount == Decimal("828.00")
    assert pending[0].tenant_name == "Aino Virtanen"

    res = _apply(db, account, sched.id, notes="annual increase")
    assert res.old_amount == Decimal("800.00")
    assert res.new_amount == Decimal("828.00")
    assert res.next_increase_date == date(2026, 3, 1)
    assert res.history_id is not None

    check = SessionLocal()
    try:
        old = check.get(RentSchedule, sched.id)
        assert old.is_active is False
        assert old.end_date == date(2025, 2, 28)
        assert old.amount == Decimal("800.00")

        new = check.get(RentSchedule, res.new_schedule_id)
        assert new.is_active is True
        assert new.end_date is None
        assert new.amount == Decimal("828.00")
        assert new.start_date == date(2025, 3, 1)
        assert new.previous_schedule_id == sched.id
        assert new.last_increase_date == date(2025, 3, 1)
        assert new.next_increase_date == date(2026, 3, 1)
        assert new.increase_enabled is True
        assert new.increase_percentage == Decimal("3.5")
        assert new.tenant_id == tenant.id

        hist = check.get(RentIncreaseHistory, res.history_id)
        assert hist.old_amount == Decimal("800.00")
        assert hist.new_amount == Decimal("828.00")
        assert hist.increase_date == date(2025, 3, 1)
        assert hist.old_schedule_id == sched.id
        assert hist.new_schedule_id == new.id
        assert hist.applied_by_user_id == account.user_id
        assert hist.notes == "annual increase"
    finally:
        check.close()

    current = current_schedule(db, org_id=account.org_id, property_id=prop.id, tenant_id=tenant.id)
    assert current.id == res.new_schedule_id


def test_plain_five_percent_increase(db, account, make_property, make_schedule):
    prop = make_property(account)
    sched = make_schedule(
        account,
        property_id=prop.id,
        amount="1000.00",
        policy=IncreasePolicy(enabled=True, percentage=Decimal("5"), date_rule=MANUAL, next_increase_date=date(2025, 3, 1)),
    )
    res = _apply(db, account, sched.id)
    assert res.new_amount == Decimal("1050.00")
    # the manual date was used by this increase
    assert res.next_increase_date is None

    with pytest.raises(ScheduleNotFound):
        _apply(db, account, sched.id)

    rows = list(db.scalars(select(RentSchedule).where(RentSchedule.property_id == prop.id)).all())
    assert len(rows) == 2
    assert sum(1 for r in rows if r.is_active) == 1


def test_disabled_policy_is_refused(db, account, make_property, make_schedule):
    prop = make_property(account)
    sched = make_schedule(account, property_id=prop.id, policy=IncreasePolicy(enabled=False))
    with pytest.raises(PolicyDisabled):
        _apply(db, account, sched.id)
    assert db.get(RentSchedule, sched.id).is_active is True


def test_missing_percentage_is_refused(db, account, make_property, make_schedule):
    prop = make_property(account)
    sched = make_schedule(account, property_id=prop.id)
    # enabled without percentage can only come from data written outside the service
    sched.increase_enabled = True
    sched.increase_date_type = LEASE_ANNIVERSARY
    db.commit()

    with pytest.raises(PolicyIncomplete):
        _apply(db, account, sched.id)


def test_effective_date_must_follow_schedule_start(db, account, make_property, make_tenant, make_schedule):
    _, _, sched = _lease(account, make_property, make_tenant, make_schedule)
    with pytest.raises(InvalidEffectiveDate):
        _apply(db, account, sched.id, effective=date(2023, 1, 1))
    assert db.scalar(select(RentSchedule).where(RentSchedule.previous_schedule_id == sched.id)) is None


def test_schedule_of_other_account_is_not_found(db, account, other_account, make_property, make_tenant, make_schedule):
    _, _, sched = _lease(account, make_property, make_tenant, make_schedule)
    with pytest.raises(ScheduleNotFound):
        _apply(db, other_account, sched.id)


def test_failed_successor_insert_leaves_old_schedule_untouched(
    db, account, make_property, make_tenant, make_schedule, monkeypatch
):
    _, _, sched = _lease(account, make_property, make_tenant, make_schedule)

    def boom(*args, **kwargs):
        raise RuntimeError("insert failed")

    monkeypatch.setattr(rent_increases, "_successor_schedule", boom)

    with pytest.raises(RuntimeError):
        _apply(db, account, sched.id)

    check = SessionLocal()
    try:
        old = check.get(RentSchedule, sched.id)
        assert old.is_active is True
        assert old.end_date is None
        assert check.scalar(select(RentIncreaseHistory.id)) is None
        assert len(check.scalars(select(RentSchedule)).all()) == 1
    finally:
        check.close()


def test_history_failure_keeps_the_increase(db, account, make_property, make_tenant, make_schedule, monkeypatch, caplog):
    _, _, sched = _lease(account, make_property, make_tenant, make_schedule)

    def broken_history(**kwargs):
        raise SQLAlchemyError("history table unavailable")

    monkeypatch.setattr(rent_increases, "RentIncreaseHistory", broken_history)

    with caplog.at_level("ERROR", logger="rentledger.rent"):
        res = _apply(db, account, sched.id)

    assert res.history_id is None
    assert res.new_amount == Decimal("828.00")
    assert any("history write failed" in r.getMessage() for r in caplog.records)

    check = SessionLocal()
    try:
        assert check.get(RentSchedule, sched.id).is_active is False
        assert check.get(RentSchedule, res.new_schedule_id).is_active is True
        assert check.scalar(select(RentIncreaseHistory.id)) is None
    finally:
        check.close()


def test_payments_are_not_touched_by_an_increase(db, account, make_property, make_tenant, make_schedule):
    prop, tenant, sched = _lease(account, make_property, make_tenant, make_schedule)
    pay = create_payment(
        db,
        org_id=account.org_id,
        actor_user_id=account.user_id,
        payload={
            "property_id": prop.id,
            "tenant_id": tenant.id,
            "schedule_id": sched.id,
            "amount": Decimal("800.00"),
            "expected_amount": Decimal("800.00"),
            "payment_date": date(2025, 1, 2),
        },
    )

    _apply(db, account, sched.id)

    check = SessionLocal()
    try:
        row = check.get(RentPayment, pay.id)
        assert row.amount == Decimal("800.00")
        assert row.expected_amount == Decimal("800.00")
        assert row.schedule_id == sched.id
        assert row.period_month == 1
        assert row.period_year == 2025
    finally:
        check.close()


def test_increase_is_audited(db, account, make_property, make_tenant, make_schedule):
    _, _, sched = _lease(account, make_property, make_tenant, make_schedule)
    res = _apply(db, account, sched.id)

    ev = db.scalar(select(AuditEvent).where(AuditEvent.action == "rent_increase.applied"))
    assert ev is not None
    assert ev.org_id == account.org_id
    assert ev.actor_user_id == account.user_id
    assert ev.entity_id == str(sched.id)
    assert json.loads(ev.after_json)["id"] == res.new_schedule_id


def test_version_chain_after_two_increases(db, account, make_property, make_tenant, make_schedule):
    prop, tenant, a = _lease(account, make_property, make_tenant, make_schedule)
    b = _apply(db, account, a.id, effective=date(2025, 3, 1))
    c = _apply(db, account, b.new_schedule_id, effective=date(2026, 3, 1))

    assert c.old_amount == Decimal("828.00")
    assert c.new_amount == Decimal("856.98")

    for start in (a.id, b.new_schedule_id, c.new_schedule_id):
        chain = schedule_versions(db, org_id=account.org_id, schedule_id=start)
        assert [s.id for s in chain] == [c.new_schedule_id, b.new_schedule_id, a.id]

    hist = list_increase_history(db, org_id=account.org_id, property_id=prop.id)
    assert [h.increase_date for h in hist] == [date(2026, 3, 1), date(2025, 3, 1)]

    active = db.scalars(
        select(RentSchedule).where(RentSchedule.property_id == prop.id, RentSchedule.is_active.is_(True))
    ).all()
    assert [s.id for s in active] == [c.new_schedule_id]


def test_concurrent_apply_loses_with_not_found(db, account, make_property, make_tenant, make_schedule):
    _, _, sched = _lease(account, make_property, make_tenant, make_schedule)

    late = SessionLocal()
    try:
        # reads the schedule before the other request commits its apply
        assert late.get(RentSchedule, sched.id).is_active is True

        _apply(db, account, sched.id)

        with pytest.raises(ScheduleNotFound):
            _apply(late, account, sched.id)
    finally:
        late.close()

    successors = db.scalars(select(RentSchedule).where(RentSchedule.previous_schedule_id == sched.id)).all()
    assert len(successors) == 1
    assert len(list_increase_history(db, org_id=account.org_id)) == 1


def test_superseded_schedule_cannot_be_edited(db, account, make_property, make_tenant, make_schedule):
    _, _, sched = _lease(account, make_property, make_tenant, make_schedule)
    _apply(db, account, sched.id)

    with pytest.raises(ScheduleConflict):
        update_schedule(
            db,
            org_id=account.org_id,
            actor_user_id=account.user_id,
            schedule_id=sched.id,
            changes={"amount": Decimal("1.00")},
        )

    with pytest.raises(ScheduleConflict):
        update_increase_policy(
            db,
            org_id=account.org_id,
            actor_user_id=account.user_id,
            schedule_id=sched.id,
            policy=IncreasePolicy(enabled=False),
        )

    db.rollback()
    old = db.get(RentSchedule, sched.id)
    assert old.amount == Decimal("800.00")
    assert old.increase_enabled is True
