"""
Solution review transition executor.

``execute_transition`` validates and applies one lifecycle operation inside the
caller's transaction; ``apply_transition`` is the single write entry point that
wraps it in its own commit/rollback so concerns, state and sibling retirement
land together or not at all.
"""
from __future__ import annotations

import copy
import logging
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.archreview.audit import record_event
from app.archreview.db import atomic

from .completeness import missing_sections
from .errors import DocumentNotFound, Forbidden, IncompleteDocument, InvalidPayload, InvalidTransition, MissingOverview
from .models import SolutionReview
from .sections import parse_concerns
from .transitions import StateOperation, Transition, find_transition

if TYPE_CHECKING:
    from app.archreview.rbac import Actor

logger = logging.getLogger(__name__)

Handler = Callable[[Session, SolutionReview, Transition, "Actor", Any], None]


def stamp_modified(doc: SolutionReview, actor: Actor, when: datetime | None = None) -> None:
    doc.last_modified_at = when or datetime.utcnow()
    doc.last_modified_by = actor.identity


def get_document_for_update(s: Session, document_id: str) -> SolutionReview:
    doc = s.execute(
        select(SolutionReview)
        .where(SolutionReview.id == document_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if doc is None:
        raise DocumentNotFound(document_id)
    return doc


def merge_concerns(doc: SolutionReview, concerns: Any) -> int:
    """Append reviewer concerns to the solution overview. Returns how many were added."""
    parsed = parse_concerns(concerns, require_details=True)
    if not parsed:
        return 0
    if doc.solution_overview is None:
        raise MissingOverview(doc.id)

    added = []
    for c in parsed:
        if not c.id:
            c.id = uuid.uuid4().hex
        added.append(c.to_dict())

    overview = copy.deepcopy(doc.solution_overview)
    overview["concerns"] = list(overview.get("concerns") or []) + added
    doc.solution_overview = overview
    return len(added)


# ---------------------------------------------------------------------------
# Per-operation handlers: guards and side effects that run before the state flip.
# ---------------------------------------------------------------------------


def _no_guard(s: Session, doc: SolutionReview, t: Transition, actor: Actor, concerns: Any) -> None:
    return None


def _guard_complete(s: Session, doc: SolutionReview, t: Transition, actor: Actor, concerns: Any) -> None:
    missing = missing_sections(doc)
    if missing:
        raise IncompleteDocument(missing)


def _approve(s: Session, doc: SolutionReview, t: Transition, actor: Actor, concerns: Any) -> None:
    if concerns is not None:
        merge_concerns(doc, concerns)


def _take_current_slot(s: Session, doc: SolutionReview, t: Transition, actor: Actor, concerns: Any) -> None:
    from .versioning import retire_sibling

    # Old holder leaves the slot (and is flushed) before this document enters it.
    retire_sibling(s, doc.system_code, doc.id, actor)


_HANDLERS: dict[StateOperation, Handler] = {
    StateOperation.SUBMIT: _guard_complete,
    StateOperation.REMOVE_SUBMISSION: _no_guard,
    StateOperation.APPROVE: _approve,
    StateOperation.UNAPPROVE: _no_guard,
    StateOperation.ACTIVATE: _take_current_slot,
    StateOperation.MARK_OUTDATED: _no_guard,
    StateOperation.RESET_CURRENT: _take_current_slot,
}

_unhandled = set(StateOperation) - set(_HANDLERS)
if _unhandled:
    raise RuntimeError(f"No handler for operations: {sorted(op.value for op in _unhandled)}")


def execute_transition(
    s: Session,
    doc: SolutionReview,
    operation: StateOperation | str,
    actor: Actor,
    concerns: Any = None,
    *,
    auto_activate: bool = False,
) -> SolutionReview:
    """
    Validate and apply one operation to ``doc`` within the caller's transaction.

    Raises InvalidTransition, Forbidden, IncompleteDocument, MissingOverview or
    InvalidPayload; nothing is written before all guards pass.
    """
    try:
        op = StateOperation(operation)
    except ValueError:
        raise InvalidTransition(doc.document_state, str(operation)) from None

    t = find_transition(doc.document_state, op)
    if t is None:
        raise InvalidTransition(doc.document_state, op.value)
    if not t.allowed_for(actor):
        raise Forbidden(op.value, t.role_required.value)
    if concerns is not None and op is not StateOperation.APPROVE:
        raise InvalidPayload("Concerns can only be attached when approving.")

    _HANDLERS[op](s, doc, t, actor, concerns)

    from_state = doc.document_state
    doc.document_state = t.to.value
    stamp_modified(doc, actor)
    s.flush()

    record_event(
        s,
        actor=actor,
        action=f"solution_review.{op.value.lower()}",
        entity_type="SolutionReview",
        entity_id=doc.id,
        metadata={
            "system_code": doc.system_code,
            "version": doc.version,
            "from": from_state,
            "to": t.to.value,
        },
    )
    logger.info(
        "solution review %s (%s v%s): %s %s -> %s by %s",
        doc.id, doc.system_code, doc.version, op.value, from_state, t.to.value, actor.identity,
    )

    if op is StateOperation.APPROVE and auto_activate:
        return execute_transition(s, doc, StateOperation.ACTIVATE, actor)
    return doc


def apply_transition(
    s: Session,
    document_id: str,
    operation: StateOperation | str,
    actor: Actor,
    concerns: Any = None,
    *,
    auto_activate: bool = False,
) -> SolutionReview:
    """
    Single write entry point for lifecycle operations. Commits on success; on any
    error the whole unit (concerns, state, sibling retirement) is rolled back and
    the error re-raised.
    """
    with atomic(s):
        doc = get_document_for_update(s, document_id)
        execute_transition(s, doc, operation, actor, concerns, auto_activate=auto_activate)
    return doc
