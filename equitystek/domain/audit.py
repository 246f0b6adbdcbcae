from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..models import AuditEvent


def _dumps(v: Optional[dict[str, Any]]) -> Optional[str]:
    if v is None:
        return None
    return json.dumps(v, sort_keys=True, default=str)


def audit_write(
    db: Session,
    *,
    actor_user_id: Optional[int],
    action: str,
    entity_type: str,
    entity_id: Any,
    before: Optional[dict[str, Any]] = None,
    after: Optional[dict[str, Any]] = None,
) -> AuditEvent:
    """
    Adds an audit row to the current session without committing, so it lands
    in the same transaction as the change it describes.
    """
    row = AuditEvent(
        actor_user_id=actor_user_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        before_json=_dumps(before),
        after_json=_dumps(after),
        created_at=datetime.utcnow(),
    )
    db.add(row)
    return row


def snapshot(row: Any, fields: tuple[str, ...]) -> dict[str, Any]:
    return {f: getattr(row, f, None) for f in fields}
