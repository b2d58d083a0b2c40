"""
Version coordination per systemCode.

A system may have many solution reviews (its version history) but at most one
in CURRENT. This module is the only writer of that slot: it clones the current
version into a new draft and retires the previous holder when another document
takes its place.
"""
from __future__ import annotations

import copy
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.archreview.audit import record_event
from app.archreview.db import atomic

from .errors import InvalidPayload, NoCurrentVersion
from .models import SolutionReview, new_document_id
from .sections import SECTION_KEYS, normalize_section
from .transitions import DocumentState, StateOperation

if TYPE_CHECKING:
    from app.archreview.rbac import Actor


def normalize_system_code(system_code: str) -> str:
    code = (system_code or "").strip()
    if not code:
        raise InvalidPayload("systemCode is required.")
    return code


def next_version(s: Session, system_code: str) -> int:
    latest = s.execute(
        select(func.max(SolutionReview.version)).where(SolutionReview.system_code == system_code)
    ).scalar()
    return (latest or 0) + 1


def current_version(s: Session, system_code: str, *, for_update: bool = False) -> SolutionReview | None:
    q = select(SolutionReview).where(
        SolutionReview.system_code == system_code,
        SolutionReview.document_state == DocumentState.CURRENT.value,
    )
    if for_update:
        q = q.with_for_update()
    return s.execute(q).scalars().first()


def _new_draft(s: Session, system_code: str, actor: Actor, sections: dict[str, Any]) -> SolutionReview:
    now = datetime.utcnow()
    doc = SolutionReview(
        id=new_document_id(),
        system_code=system_code,
        version=next_version(s, system_code),
        document_state=DocumentState.DRAFT.value,
        created_at=now,
        created_by=actor.identity,
        last_modified_at=now,
        last_modified_by=actor.identity,
    )
    for key, value in sections.items():
        doc.set_section(key, value)
    s.add(doc)
    s.flush()
    return doc


def create_solution_review(
    s: Session,
    system_code: str,
    actor: Actor,
    sections: dict[str, Any] | None = None,
) -> SolutionReview:
    """Create a fresh DRAFT for ``system_code``, optionally seeded with section values."""
    code = normalize_system_code(system_code)
    if sections is not None and not isinstance(sections, dict):
        raise InvalidPayload("sections must be an object.")
    seeded = {key: normalize_section(key, value) for key, value in (sections or {}).items()}

    with atomic(s):
        doc = _new_draft(s, code, actor, seeded)
        record_event(
            s,
            actor=actor,
            action="solution_review.create",
            entity_type="SolutionReview",
            entity_id=doc.id,
            metadata={"system_code": code, "version": doc.version, "sections": sorted(seeded)},
        )
    return doc


def create_new_draft(s: Session, system_code: str, actor: Actor) -> SolutionReview:
    """
    Start the next version of a system from its CURRENT review.

    All eight sections are deep-copied; the copy gets a fresh id, the next
    version number and state DRAFT. Raises NoCurrentVersion when the system
    has no CURRENT review.
    """
    code = normalize_system_code(system_code)

    with atomic(s):
        source = current_version(s, code, for_update=True)
        if source is None:
            raise NoCurrentVersion(code)
        doc = _new_draft(
            s,
            code,
            actor,
            {key: copy.deepcopy(source.get_section(key)) for key in SECTION_KEYS},
        )
        record_event(
            s,
            actor=actor,
            action="solution_review.new_draft",
            entity_type="SolutionReview",
            entity_id=doc.id,
            metadata={
                "system_code": code,
                "from_id": source.id,
                "from_version": source.version,
                "version": doc.version,
            },
        )
    return doc


def retire_sibling(s: Session, system_code: str, excluding_id: str, actor: Actor) -> SolutionReview | None:
    """
    Move the system's CURRENT review (other than ``excluding_id``) to OUTDATED.

    Runs inside the caller's transaction through the executor's MARK_OUTDATED
    path. Returns the retired review, or None when there was nothing to retire.
    """
    from .service import execute_transition

    sibling = s.execute(
        select(SolutionReview)
        .where(
            SolutionReview.system_code == system_code,
            SolutionReview.document_state == DocumentState.CURRENT.value,
            SolutionReview.id != excluding_id,
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalars().first()
    if sibling is None:
        return None

    execute_transition(s, sibling, StateOperation.MARK_OUTDATED, actor)
    return sibling


def list_documents_by_system(s: Session, system_code: str) -> list[SolutionReview]:
    return list(
        s.execute(
            select(SolutionReview)
            .where(SolutionReview.system_code == system_code)
            .order_by(SolutionReview.version.desc())
        ).scalars()
    )


def list_documents_by_state(s: Session, state: DocumentState) -> list[SolutionReview]:
    return list(
        s.execute(
            select(SolutionReview)
            .where(SolutionReview.document_state == state.value)
            .order_by(SolutionReview.last_modified_at.desc())
        ).scalars()
    )


def system_view(s: Session) -> list[dict[str, Any]]:
    """One summary per system: review count, latest version and the CURRENT review id."""
    rows = s.execute(
        select(
            SolutionReview.system_code,
            func.count(SolutionReview.id),
            func.max(SolutionReview.version),
        )
        .group_by(SolutionReview.system_code)
        .order_by(SolutionReview.system_code.asc())
    ).all()
    current_ids = dict(
        s.execute(
            select(SolutionReview.system_code, SolutionReview.id).where(
                SolutionReview.document_state == DocumentState.CURRENT.value
            )
        ).all()
    )
    return [
        {
            "systemCode": code,
            "totalReviews": total,
            "latestVersion": latest,
            "currentReviewId": current_ids.get(code),
        }
        for code, total, latest in rows
    ]
