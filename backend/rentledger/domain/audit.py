# backend/rentledger/domain/audit.py
from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..models import AuditEvent

Snapshot = Optional[dict[str, Any]]


def _plain(v: Any) -> Any:
    # money stays exact ("828.00"), dates stay ISO
    if isinstance(v, Decimal):
        return format(v, "f")
    if isinstance(v, (date, datetime)):
        return v.isoformat()
    return v


def snapshot(row: Any) -> Snapshot:
    """Column values of a model row (or an already-taken dict) as JSON-safe values."""
    if row is None:
        return None
    data = row if isinstance(row, dict) else row.model_dump()
    return {k: _plain(v) for k, v in data.items()}


def changed_fields(before: Snapshot, after: Snapshot) -> list[str]:
    if before is None or after is None:
        return sorted((before or after or {}).keys())
    return sorted(k for k in set(before) | set(after) if before.get(k) != after.get(k))


def audit_write(
    db: Session,
    *,
    org_id: int,
    actor_user_id: Optional[int],
    action: str,
    entity_type: str,
    entity_id: Any,
    before: Any = None,
    after: Any = None,
) -> AuditEvent:
    """
    Queue an audit row in the caller's transaction.

    Never commits: a rent change and its audit row are written together or
    not at all. `before`/`after` may be model rows or snapshot dicts.
    """
    b, a = snapshot(before), snapshot(after)
    row = AuditEvent(
        org_id=org_id,
        actor_user_id=actor_user_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        before_json=json.dumps(b, sort_keys=True) if b is not None else None,
        after_json=json.dumps(a, sort_keys=True) if a is not None else None,
        changed=",".join(changed_fields(b, a))[:500] or None,
    )
    db.add(row)
    return row
