"""
Solution review lifecycle: states, operations and the fixed transition table.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .errors import InvalidPayload

if TYPE_CHECKING:
    from app.archreview.rbac import Actor


class DocumentState(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    CURRENT = "CURRENT"
    OUTDATED = "OUTDATED"


class StateOperation(str, Enum):
    SUBMIT = "SUBMIT"
    REMOVE_SUBMISSION = "REMOVE_SUBMISSION"
    APPROVE = "APPROVE"
    UNAPPROVE = "UNAPPROVE"
    ACTIVATE = "ACTIVATE"
    MARK_OUTDATED = "MARK_OUTDATED"
    RESET_CURRENT = "RESET_CURRENT"


class ReviewRole(str, Enum):
    ARCHITECT = "ARCHITECT"
    EAO = "EAO"  # enterprise architecture office (reviewer)
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class Transition:
    from_state: DocumentState
    operation: StateOperation
    to: DocumentState
    operation_name: str
    description: str
    role_required: ReviewRole | None = None

    def allowed_for(self, actor: Actor) -> bool:
        return self.role_required is None or actor.has_role(self.role_required)

    def to_dict(self) -> dict:
        return {
            "from": self.from_state.value,
            "to": self.to.value,
            "operation": self.operation.value,
            "operationName": self.operation_name,
            "description": self.description,
            "roleRequired": self.role_required.value if self.role_required else None,
        }


STATE_TRANSITIONS: dict[DocumentState, tuple[Transition, ...]] = {
    DocumentState.DRAFT: (
        Transition(
            DocumentState.DRAFT,
            StateOperation.SUBMIT,
            DocumentState.SUBMITTED,
            "Submit for Review",
            "Submit document for review and approval",
        ),
    ),
    DocumentState.SUBMITTED: (
        Transition(
            DocumentState.SUBMITTED,
            StateOperation.APPROVE,
            DocumentState.APPROVED,
            "Approve",
            "Approve document, optionally recording concerns",
            role_required=ReviewRole.EAO,
        ),
        Transition(
            DocumentState.SUBMITTED,
            StateOperation.REMOVE_SUBMISSION,
            DocumentState.DRAFT,
            "Return to Draft",
            "Return document to draft state",
        ),
    ),
    DocumentState.APPROVED: (
        Transition(
            DocumentState.APPROVED,
            StateOperation.UNAPPROVE,
            DocumentState.SUBMITTED,
            "Unapprove",
            "Remove approval and return to review",
        ),
        Transition(
            DocumentState.APPROVED,
            StateOperation.ACTIVATE,
            DocumentState.CURRENT,
            "Activate",
            "Mark document as the current version",
        ),
    ),
    DocumentState.CURRENT: (
        Transition(
            DocumentState.CURRENT,
            StateOperation.MARK_OUTDATED,
            DocumentState.OUTDATED,
            "Mark as Outdated",
            "Mark document as outdated",
        ),
    ),
    DocumentState.OUTDATED: (
        Transition(
            DocumentState.OUTDATED,
            StateOperation.RESET_CURRENT,
            DocumentState.CURRENT,
            "Reset as Current",
            "Reset document as current version",
        ),
    ),
}

STATE_DESCRIPTIONS: dict[DocumentState, str] = {
    DocumentState.DRAFT: "Document is being edited and is not ready for review",
    DocumentState.SUBMITTED: "Document has been submitted for review and approval",
    DocumentState.APPROVED: "Document has been approved and is waiting to be activated",
    DocumentState.CURRENT: "Document is approved and represents the current active version",
    DocumentState.OUTDATED: "Document was previously current but has been superseded",
}


def parse_state(value: str) -> DocumentState:
    try:
        return DocumentState((value or "").strip().upper())
    except ValueError:
        raise InvalidPayload(f"Unknown document state: {value!r}") from None


def find_transition(state: DocumentState | str, operation: StateOperation | str) -> Transition | None:
    for t in STATE_TRANSITIONS.get(DocumentState(state), ()):
        if t.operation == operation:
            return t
    return None


def available_transitions(state: DocumentState | str, actor: Actor) -> list[Transition]:
    """Transitions from ``state`` that ``actor`` may be offered."""
    return [t for t in STATE_TRANSITIONS.get(DocumentState(state), ()) if t.allowed_for(actor)]


def state_description(state: DocumentState | str) -> str:
    try:
        return STATE_DESCRIPTIONS[DocumentState(state)]
    except ValueError:
        return "Unknown state"
