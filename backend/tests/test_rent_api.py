# backend/tests/test_rent_api.py
from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from rentledger.auth import issue_token


def _hdr(org: str = "acme", email: str = "owner@acme.test", role: str = "owner") -> dict[str, str]:
    return {"X-Org-Slug": org, "X-User-Email": email, "X-User-Role": role}


def _lease(client, headers, *, amount: str = "1000.00", pct: str = "5") -> dict:
    r = client.post("/api/properties", json={"name": "Flat B2", "city": "Espoo"}, headers=headers)
    assert r.status_code == 200, r.text
    prop = r.json()

    r = client.post(
        "/api/tenants",
        json={"property_id": prop["id"], "first_name": "Liisa", "last_name": "Koski"},
        headers=headers,
    )
    assert r.status_code == 200, r.text
    tenant = r.json()
    assert tenant["full_name"] == "Liisa Koski"

    start = date.today() - timedelta(days=400)
    r = client.post(
        "/api/rent/schedules",
        json={
            "property_id": prop["id"],
            "tenant_id": tenant["id"],
            "amount": amount,
            "start_date": start.isoformat(),
            "increase_policy": {"enabled": True, "percentage": pct, "date_rule": "manual",
                                "next_increase_date": (date.today() + timedelta(days=14)).isoformat()},
        },
        headers=headers,
    )
    assert r.status_code == 200, r.text
    return r.json()


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert r.headers.get("X-Request-ID")


def test_request_id_is_reused_only_when_well_formed(client):
    r = client.get("/api/health", headers={"X-Request-ID": "rent-run-42"})
    assert r.headers["X-Request-ID"] == "rent-run-42"

    r = client.get("/api/health", headers={"X-Request-ID": "bad id {json}"})
    assert r.headers["X-Request-ID"] != "bad id {json}"
    assert len(r.headers["X-Request-ID"]) == 32


def test_requests_without_org_are_rejected(client):
    r = client.get("/api/rent/increases/pending")
    assert r.status_code == 401
    assert r.json()["code"] == "unauthenticated"


def test_pending_and_apply_over_http(client):
    h = _hdr()
    sched = _lease(client, h)

    r = client.get("/api/rent/increases/pending", params={"within_days": 30}, headers=h)
    assert r.status_code == 200
    [row] = r.json()
    assert row["schedule_id"] == sched["id"]
    assert row["days_until_increase"] == 14
    assert row["is_urgent"] is True
    assert Decimal(str(row["new_amount"])) == Decimal("1050.00")

    r = client.get("/api/rent/increases/pending", params={"within_days": 7}, headers=h)
    assert r.json() == []

    r = client.post(
        f"/api/rent/schedules/{sched['id']}/apply-increase",
        json={"effective_date": date.today().isoformat(), "notes": "yearly"},
        headers=h,
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["old_schedule_id"] == sched["id"]
    assert Decimal(str(body["new_amount"])) == Decimal("1050.00")
    assert body["history_id"] is not None

    r = client.post(
        f"/api/rent/schedules/{sched['id']}/apply-increase",
        json={"effective_date": date.today().isoformat()},
        headers=h,
    )
    assert r.status_code == 404
    assert r.json()["code"] == "schedule_not_found"

    r = client.get(f"/api/rent/schedules/{body['new_schedule_id']}/versions", headers=h)
    assert [s["id"] for s in r.json()] == [body["new_schedule_id"], sched["id"]]

    r = client.get("/api/rent/increases/history", headers=h)
    [hist] = r.json()
    assert hist["new_schedule_id"] == body["new_schedule_id"]
    assert hist["notes"] == "yearly"


def test_disabled_policy_returns_conflict(client):
    h = _hdr()
    sched = _lease(client, h)
    r = client.put(f"/api/rent/schedules/{sched['id']}/increase-policy", json={"enabled": False}, headers=h)
    assert r.status_code == 200
    assert r.json()["increase_enabled"] is False

    r = client.post(
        f"/api/rent/schedules/{sched['id']}/apply-increase",
        json={"effective_date": date.today().isoformat()},
        headers=h,
    )
    assert r.status_code == 409
    assert r.json()["code"] == "policy_disabled"


def test_incomplete_policy_returns_422(client):
    h = _hdr()
    sched = _lease(client, h)
    r = client.put(
        f"/api/rent/schedules/{sched['id']}/increase-policy",
        json={"enabled": True, "date_rule": "lease_anniversary"},
        headers=h,
    )
    assert r.status_code == 422
    assert r.json()["code"] == "policy_incomplete"


def test_other_org_cannot_see_or_apply(client):
    sched = _lease(client, _hdr())
    intruder = _hdr(org="other", email="someone@other.test")

    r = client.get(f"/api/rent/schedules/{sched['id']}", headers=intruder)
    assert r.status_code == 404

    r = client.post(
        f"/api/rent/schedules/{sched['id']}/apply-increase",
        json={"effective_date": date.today().isoformat()},
        headers=intruder,
    )
    assert r.status_code == 404

    r = client.get("/api/rent/increases/pending", headers=intruder)
    assert r.json() == []


def test_analyst_cannot_apply(client):
    sched = _lease(client, _hdr())
    analyst = _hdr(email="viewer@acme.test", role="analyst")

    r = client.get("/api/rent/increases/pending", headers=analyst)
    assert r.status_code == 200

    r = client.post(
        f"/api/rent/schedules/{sched['id']}/apply-increase",
        json={"effective_date": date.today().isoformat()},
        headers=analyst,
    )
    assert r.status_code == 403
    assert r.json()["code"] == "forbidden"


def test_bearer_token_auth(client, account):
    token = issue_token(account.user_id)
    h = {"X-Org-Slug": account.org_slug, "Authorization": f"Bearer {token}"}
    r = client.get("/api/rent/schedules", headers=h)
    assert r.status_code == 200
    assert r.json() == []

    r = client.get("/api/rent/schedules", headers={"X-Org-Slug": account.org_slug, "Authorization": "Bearer nope"})
    assert r.status_code == 401

    expired = issue_token(account.user_id, ttl_minutes=-5)
    r = client.get("/api/rent/schedules", headers={"X-Org-Slug": account.org_slug, "Authorization": f"Bearer {expired}"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Token expired"


def test_payments_over_http(client):
    h = _hdr()
    sched = _lease(client, h)
    r = client.post(
        "/api/rent/payments",
        json={
            "property_id": sched["property_id"],
            "tenant_id": sched["tenant_id"],
            "schedule_id": sched["id"],
            "amount": "1000.00",
            "payment_date": "2025-03-03",
        },
        headers=h,
    )
    assert r.status_code == 200, r.text
    pay = r.json()
    assert pay["status"] == "received"
    assert (pay["period_month"], pay["period_year"]) == (3, 2025)

    r = client.get("/api/rent/payments", params={"year": 2025}, headers=h)
    assert [p["id"] for p in r.json()] == [pay["id"]]

    r = client.delete(f"/api/rent/payments/{pay['id']}", headers=h)
    assert r.status_code == 200
    r = client.get("/api/rent/payments", headers=h)
    assert r.json() == []


def test_property_delete_needs_owner_and_removes_its_schedules(client):
    owner = _hdr()
    sched = _lease(client, owner)
    operator = _hdr(email="ops@acme.test", role="operator")

    r = client.delete(f"/api/properties/{sched['property_id']}", headers=operator)
    assert r.status_code == 403

    r = client.delete(f"/api/properties/{sched['property_id']}", headers=owner)
    assert r.status_code == 200

    r = client.get(f"/api/rent/schedules/{sched['id']}", headers=owner)
    assert r.status_code == 404


def test_tenant_lease_dates_are_checked(client):
    r = client.post(
        "/api/tenants",
        json={"first_name": "Ville", "last_name": "Nieminen", "lease_start": "2025-06-01", "lease_end": "2025-01-01"},
        headers=_hdr(),
    )
    assert r.status_code == 422
    assert r.json()["code"] == "validation_failed"


def test_tenant_with_a_current_schedule_cannot_be_deleted(client):
    h = _hdr()
    sched = _lease(client, h)
    # a tenantless schedule already runs on the same property
    r = client.post(
        "/api/rent/schedules",
        json={"property_id": sched["property_id"], "amount": "900.00", "start_date": "2024-01-01"},
        headers=h,
    )
    assert r.status_code == 200, r.text

    r = client.delete(f"/api/tenants/{sched['tenant_id']}", headers=h)
    assert r.status_code == 409
    assert r.json()["code"] == "schedule_conflict"

    r = client.patch(f"/api/rent/schedules/{sched['id']}", json={"end_date": date.today().isoformat()}, headers=h)
    assert r.status_code == 200, r.text

    r = client.delete(f"/api/tenants/{sched['tenant_id']}", headers=h)
    assert r.status_code == 200

    r = client.get(
        "/api/rent/schedules", params={"property_id": sched["property_id"], "active_only": True}, headers=h
    )
    assert len(r.json()) == 1
    assert r.json()[0]["tenant_id"] is None
