# backend/rentledger/domain/rent_increase.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from dateutil.relativedelta import relativedelta

from ..errors import PolicyIncomplete

# -----------------------------------------------------------------------------
# Rent increase math
# -----------------------------------------------------------------------------
# Pure functions only: no session, no clock. Callers pass "today" explicitly
# so the same inputs always give the same next date.
# -----------------------------------------------------------------------------

INCREASE_TYPES = ("index_tied", "contract_based")
DATE_RULES = ("lease_anniversary", "manual")

LEASE_ANNIVERSARY = "lease_anniversary"
MANUAL = "manual"

CENT = Decimal("0.01")


@dataclass(frozen=True)
class IncreasePolicy:
    enabled: bool = False
    increase_type: Optional[str] = None
    percentage: Optional[Decimal] = None
    date_rule: Optional[str] = None
    next_increase_date: Optional[date] = None
    last_increase_date: Optional[date] = None
    notes: Optional[str] = None

    @classmethod
    def from_schedule(cls, s: Any) -> "IncreasePolicy":
        pct = getattr(s, "increase_percentage", None)
        return cls(
            enabled=bool(getattr(s, "increase_enabled", False)),
            increase_type=getattr(s, "increase_type", None),
            percentage=as_decimal(pct) if pct is not None else None,
            date_rule=getattr(s, "increase_date_type", None),
            next_increase_date=getattr(s, "next_increase_date", None),
            last_increase_date=getattr(s, "last_increase_date", None),
            notes=getattr(s, "increase_notes", None),
        )


def as_decimal(v: Any) -> Decimal:
    if isinstance(v, Decimal):
        return v
    # str() first so floats like 999.995 keep their decimal spelling
    return Decimal(str(v))


def increased_amount(amount: Any, percentage: Any) -> Decimal:
    """
    amount * (1 + percentage / 100), rounded to cents with ROUND_HALF_UP.

    Computed in Decimal, never float, so 999.995 at 5% is 1049.99475 and
    rounds to 1049.99 on every platform.
    """
    raw = as_decimal(amount) * (Decimal(1) + as_decimal(percentage) / Decimal(100))
    return raw.quantize(CENT, rounding=ROUND_HALF_UP)


def next_anniversary_after(reference: date, today: date) -> date:
    """First reference + k years (k >= 1) strictly after today."""
    k = 1
    candidate = reference + relativedelta(years=k)
    while candidate <= today:
        k += 1
        # always derived from the reference, so a Feb 29 start does not drift to Feb 28 forever
        candidate = reference + relativedelta(years=k)
    return candidate


def next_increase_date(
    date_rule: Optional[str],
    *,
    today: date,
    lease_start: Optional[date] = None,
    last_increase: Optional[date] = None,
    manual_date: Optional[date] = None,
) -> Optional[date]:
    """
    manual            -> manual_date unchanged (None if unset, may be overdue)
    lease_anniversary -> next anniversary of last_increase (or lease_start) after today;
                         None when neither reference date is known
    """
    if date_rule == MANUAL:
        return manual_date

    if date_rule == LEASE_ANNIVERSARY:
        reference = last_increase or lease_start
        if reference is None:
            return None
        return next_anniversary_after(reference, today)

    raise PolicyIncomplete(f"unknown increase date rule: {date_rule!r}")


def next_increase_date_for(schedule: Any, *, today: date, lease_start: Optional[date] = None) -> Optional[date]:
    """lease_start is the tenant's lease start when known; the schedule start stands in otherwise."""
    return next_increase_date(
        getattr(schedule, "increase_date_type", None),
        today=today,
        lease_start=lease_start or getattr(schedule, "start_date", None),
        last_increase=getattr(schedule, "last_increase_date", None),
        manual_date=getattr(schedule, "next_increase_date", None),
    )


def days_until(target: date, today: date) -> int:
    return (target - today).days
