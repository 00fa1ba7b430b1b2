# backend/rentledger/services/accounts.py
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import AppUser, Organization, OrgMembership

ROLES = ("analyst", "operator", "owner")


@dataclass(frozen=True)
class AccountMember:
    org: Organization
    user: AppUser
    membership: OrgMembership


def ensure_member(
    db: Session,
    *,
    org_slug: str,
    email: str,
    org_name: str | None = None,
    display_name: str | None = None,
    role: str = "owner",
) -> AccountMember:
    """
    Get-or-create an account, a user and the user's membership in it.

    An existing membership keeps its role. Commits once at the end.
    """
    email = email.strip().lower()

    org = db.scalar(select(Organization).where(Organization.slug == org_slug))
    if org is None:
        org = Organization(slug=org_slug, name=org_name or org_slug)
        db.add(org)

    user = db.scalar(select(AppUser).where(AppUser.email == email))
    if user is None:
        user = AppUser(email=email, display_name=display_name or email.split("@")[0])
        db.add(user)

    db.flush()
    membership = db.scalar(
        select(OrgMembership).where(OrgMembership.org_id == org.id, OrgMembership.user_id == user.id)
    )
    if membership is None:
        membership = OrgMembership(org_id=org.id, user_id=user.id, role=role if role in ROLES else "owner")
        db.add(membership)

    db.commit()
    return AccountMember(org=org, user=user, membership=membership)
