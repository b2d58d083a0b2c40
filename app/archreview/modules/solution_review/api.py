from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from app.archreview.db import db_session
from app.archreview.rbac import current_actor, require_permission

from .completeness import missing_sections
from .drafts import load_document, save_section
from .errors import InvalidPayload, SolutionReviewError
from .service import apply_transition
from .transitions import available_transitions, parse_state, state_description
from .versioning import (
    create_new_draft,
    create_solution_review,
    list_documents_by_state,
    list_documents_by_system,
    normalize_system_code,
    system_view,
)

bp = Blueprint("solution_review", __name__)


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise InvalidPayload("Request body must be a JSON object.")
    return payload


@bp.errorhandler(SolutionReviewError)
def _solution_review_error(e: SolutionReviewError):
    current_app.logger.info(
        "solution review request rejected: %s %s (request_id=%s)",
        e.code,
        e.message,
        getattr(g, "request_id", None),
    )
    return jsonify({"error": e.to_dict()}), e.http_status


@bp.post("/system/<system_code>")
@require_permission("reviews.edit")
def create_review(system_code: str):
    s = db_session()
    payload = _json_body()
    doc = create_solution_review(s, system_code, current_actor(), sections=payload.get("sections"))
    return jsonify(doc.to_dict()), 201


@bp.get("/<document_id>")
@require_permission("reviews.view")
def get_review(document_id: str):
    s = db_session()
    doc = load_document(s, document_id)
    out = doc.to_dict()
    out["stateDescription"] = state_description(doc.document_state)
    return jsonify(out)


@bp.get("/system")
@require_permission("reviews.view")
def list_system_reviews():
    s = db_session()
    code = normalize_system_code(request.args.get("systemCode") or "")
    docs = list_documents_by_system(s, code)
    return jsonify([d.to_dict() for d in docs])


@bp.get("/system-view")
@require_permission("reviews.view")
def list_systems():
    s = db_session()
    return jsonify(system_view(s))


@bp.get("/by-state")
@require_permission("reviews.view")
def list_reviews_by_state():
    s = db_session()
    state = parse_state(request.args.get("documentState") or "")
    docs = list_documents_by_state(s, state)
    return jsonify([d.to_dict() for d in docs])


@bp.put("/<document_id>/sections/<section_key>")
@require_permission("reviews.edit")
def put_section(document_id: str, section_key: str):
    s = db_session()
    payload = _json_body()
    if "value" not in payload:
        raise InvalidPayload("Request body must contain 'value'.")
    doc = save_section(s, document_id, section_key, payload["value"], current_actor())
    return jsonify(doc.to_dict())


@bp.get("/<document_id>/missing-sections")
@require_permission("reviews.view")
def get_missing_sections(document_id: str):
    s = db_session()
    doc = load_document(s, document_id)
    return jsonify({"id": doc.id, "missingSections": missing_sections(doc)})


@bp.get("/<document_id>/transitions")
@require_permission("reviews.view")
def get_transitions(document_id: str):
    s = db_session()
    doc = load_document(s, document_id)
    actor = current_actor()
    return jsonify(
        {
            "id": doc.id,
            "documentState": doc.document_state,
            "transitions": [t.to_dict() for t in available_transitions(doc.document_state, actor)],
        }
    )


@bp.post("/lifecycle/transition")
@require_permission("reviews.transition")
def post_transition():
    s = db_session()
    payload = _json_body()
    document_id = str(payload.get("id") or "").strip()
    operation = str(payload.get("operation") or "").strip().upper()
    if not document_id or not operation:
        raise InvalidPayload("id and operation are required.")

    doc = apply_transition(
        s,
        document_id,
        operation,
        current_actor(),
        payload.get("concerns"),
        auto_activate=bool(current_app.config.get("AUTO_ACTIVATE_ON_APPROVE")),
    )
    return jsonify(doc.to_dict())


@bp.post("/existing/<system_code>")
@require_permission("reviews.edit")
def post_new_draft(system_code: str):
    s = db_session()
    doc = create_new_draft(s, system_code, current_actor())
    return jsonify(doc.to_dict()), 201
