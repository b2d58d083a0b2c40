"""
Errors raised by the solution review lifecycle.

Every error carries a stable ``code``, a user-facing ``message``, whether the
caller may retry, and the HTTP status the API layer renders it with.
"""
from __future__ import annotations

from typing import Any


class SolutionReviewError(Exception):
    code = "SOLUTION_REVIEW_ERROR"
    http_status = 400
    retryable = False

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.details:
            out["details"] = self.details
        return out


class InvalidTransition(SolutionReviewError):
    code = "INVALID_TRANSITION"
    http_status = 409

    def __init__(self, state: str, operation: str) -> None:
        super().__init__(
            f"Operation {operation} is not allowed while the document is {state}.",
            details={"documentState": state, "operation": operation},
        )
        self.state = state
        self.operation = operation


class Forbidden(SolutionReviewError):
    code = "FORBIDDEN"
    http_status = 403

    def __init__(self, operation: str, role_required: str) -> None:
        super().__init__(
            f"You do not have permission to {operation}; role {role_required} is required.",
            details={"operation": operation, "roleRequired": role_required},
        )
        self.role_required = role_required


class IncompleteDocument(SolutionReviewError):
    code = "INCOMPLETE_DOCUMENT"
    http_status = 422
    retryable = True

    def __init__(self, missing_sections: list[str]) -> None:
        super().__init__(
            "Complete all sections before submitting. Missing: " + ", ".join(missing_sections),
            details={"missingSections": list(missing_sections)},
        )
        self.missing_sections = list(missing_sections)


class MissingOverview(SolutionReviewError):
    code = "MISSING_OVERVIEW"
    http_status = 409

    def __init__(self, document_id: str) -> None:
        super().__init__(
            "Solution overview is required to add concerns.",
            details={"id": document_id},
        )


class NoCurrentVersion(SolutionReviewError):
    code = "NO_CURRENT_VERSION"
    http_status = 404

    def __init__(self, system_code: str) -> None:
        super().__init__(
            f"System {system_code} has no current solution review to copy from.",
            details={"systemCode": system_code},
        )
        self.system_code = system_code


class DocumentNotFound(SolutionReviewError):
    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, document_id: str) -> None:
        super().__init__(f"Solution review {document_id} was not found.", details={"id": document_id})


class DocumentNotEditable(SolutionReviewError):
    code = "NOT_EDITABLE"
    http_status = 409

    def __init__(self, document_id: str, state: str) -> None:
        super().__init__(
            f"Sections can only be edited while the document is DRAFT (currently {state}).",
            details={"id": document_id, "documentState": state},
        )


class InvalidPayload(SolutionReviewError, ValueError):
    code = "INVALID_PAYLOAD"
    http_status = 400
