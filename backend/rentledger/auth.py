# backend/rentledger/auth.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt  # PyJWT
from fastapi import Depends, Header, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .errors import Forbidden, Unauthenticated
from .models import AppUser, Organization, OrgMembership
from .services.accounts import ROLES, ensure_member

# analyst reads, operator changes rent state, owner deletes
ROLE_ORDER = {role: rank for rank, role in enumerate(ROLES, start=1)}


@dataclass(frozen=True)
class Principal:
    """Who is acting, and for which account. Every service call is scoped by org_id."""

    org_id: int
    org_slug: str
    user_id: int
    email: str
    role: str

    def at_least(self, role: str) -> bool:
        return ROLE_ORDER.get(self.role, 0) >= ROLE_ORDER.get(role, len(ROLE_ORDER) + 1)


# -------------------------
# Tokens (HS256 via PyJWT)
# -------------------------
def issue_token(user_id: int, *, ttl_minutes: Optional[int] = None) -> str:
    """
    Sign a token the way get_principal expects one.

    No route hands these out; the login service that shares jwt_secret
    issues them, and the tests use this to stand in for it.
    """
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(int(user_id)),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=int(ttl_minutes or settings.jwt_exp_minutes))).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def verify_token(token: str) -> dict[str, Any]:
    try:
        return dict(jwt.decode(token, settings.jwt_secret, algorithms=["HS256"]))
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Token expired")
    except jwt.InvalidTokenError:
        raise Unauthenticated("Invalid token")


def _bearer_or_cookie(request: Request, authorization: Optional[str]) -> Optional[str]:
    if settings.jwt_cookie_name:
        cookie = request.cookies.get(settings.jwt_cookie_name)
        if cookie:
            return cookie
    scheme, _, value = (authorization or "").partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return None


# -------------------------
# Resolution
# -------------------------
def _principal_for(db: Session, *, org_slug: str, user: AppUser) -> Principal:
    found = db.execute(
        select(Organization, OrgMembership)
        .outerjoin(
            OrgMembership,
            (OrgMembership.org_id == Organization.id) & (OrgMembership.user_id == user.id),
        )
        .where(Organization.slug == org_slug)
    ).first()
    if found is None:
        raise Unauthenticated(f"Unknown account {org_slug!r}")

    org, membership = found
    if membership is None:
        raise Forbidden("Not a member of this account")

    return Principal(
        org_id=int(org.id),
        org_slug=org.slug,
        user_id=int(user.id),
        email=user.email,
        role=membership.role,
    )


def get_principal(
    request: Request,
    db: Session = Depends(get_db),
    x_org_slug: Optional[str] = Header(default=None, alias="X-Org-Slug"),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Principal:
    """
    Resolve the caller before any rent operation runs.

    The account comes from X-Org-Slug. The user comes from the JWT cookie or
    bearer token, or, with auth_mode=dev only, from the X-User-Email header.
    """
    org_slug = (x_org_slug or "").strip()
    if not org_slug:
        raise Unauthenticated("Missing X-Org-Slug (active account).")

    token = _bearer_or_cookie(request, authorization)
    if token:
        sub = str(verify_token(token).get("sub") or "")
        user = db.get(AppUser, int(sub)) if sub.isdigit() else None
        if user is None:
            raise Unauthenticated("Token does not name a known user")
        return _principal_for(db, org_slug=org_slug, user=user)

    if settings.auth_mode != "dev":
        raise Unauthenticated("Not authenticated")

    email = (request.headers.get(settings.dev_header_user_email) or "").strip().lower()
    if not email:
        raise Unauthenticated(f"Missing {settings.dev_header_user_email} for dev auth")

    user = db.scalar(select(AppUser).where(AppUser.email == email))
    if settings.dev_auto_provision:
        role_hint = (request.headers.get(settings.dev_header_user_role) or "owner").strip().lower()
        user = ensure_member(db, org_slug=org_slug, email=email, role=role_hint).user
    if user is None:
        raise Unauthenticated("Unknown user")
    return _principal_for(db, org_slug=org_slug, user=user)


def require_role(role: str):
    def _dep(p: Principal = Depends(get_principal)) -> Principal:
        if not p.at_least(role):
            raise Forbidden(f"Requires role >= {role}")
        return p

    return _dep


require_operator = require_role("operator")
require_owner = require_role("owner")
