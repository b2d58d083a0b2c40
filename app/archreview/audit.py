from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from flask import g, has_app_context, has_request_context, request
from sqlalchemy.orm import Session

from app.archreview.models import AuditEvent

if TYPE_CHECKING:
    from app.archreview.rbac import Actor


def record_event(
    s: Session,
    *,
    actor: Actor | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    """
    Append-only audit event helper. Lands in the caller's transaction.
    """
    rid = request_id or (getattr(g, "request_id", None) if has_app_context() else None)
    ev = AuditEvent(
        request_id=rid,
        client_ip=request.remote_addr if has_request_context() else None,
        actor_user_id=actor.user_id if actor else None,
        actor_user_email=actor.identity if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
        metadata_json=json.dumps(metadata, sort_keys=True) if metadata else None,
    )
    s.add(ev)
    return ev
