"""
Section-at-a-time persistence for the multi-step editor.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy.orm import Session

from app.archreview.audit import record_event
from app.archreview.db import atomic

from .errors import DocumentNotEditable, DocumentNotFound
from .models import SolutionReview
from .sections import get_section_spec, normalize_section
from .service import get_document_for_update, stamp_modified
from .transitions import DocumentState

if TYPE_CHECKING:
    from app.archreview.rbac import Actor


def load_document(s: Session, document_id: str) -> SolutionReview:
    doc = s.get(SolutionReview, document_id)
    if doc is None:
        raise DocumentNotFound(document_id)
    return doc


def save_section(s: Session, document_id: str, section_key: str, value: Any, actor: Actor) -> SolutionReview:
    """
    Write one section, leaving the other seven and the document state untouched.

    Only DRAFT documents are editable. ``value`` is validated against the
    section's record type; ``None`` clears the section.
    """
    spec = get_section_spec(section_key)
    normalized = normalize_section(section_key, value)

    with atomic(s):
        doc = get_document_for_update(s, document_id)
        if doc.document_state != DocumentState.DRAFT.value:
            raise DocumentNotEditable(doc.id, doc.document_state)

        doc.set_section(spec.key, normalized)
        stamp_modified(doc, actor)

        record_event(
            s,
            actor=actor,
            action="solution_review.section_save",
            entity_type="SolutionReview",
            entity_id=doc.id,
            metadata={
                "system_code": doc.system_code,
                "section": spec.key,
                "items": len(normalized) if isinstance(normalized, list) else None,
            },
        )
    return doc
