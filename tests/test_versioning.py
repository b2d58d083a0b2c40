import pytest
from sqlalchemy.exc import IntegrityError

from app.archreview.models import AuditEvent
from app.archreview.modules.solution_review import service
from app.archreview.modules.solution_review.errors import InvalidPayload, NoCurrentVersion
from app.archreview.modules.solution_review.models import SolutionReview, new_document_id
from app.archreview.modules.solution_review.service import apply_transition
from app.archreview.modules.solution_review.drafts import save_section
from app.archreview.modules.solution_review.transitions import DocumentState
from app.archreview.modules.solution_review.versioning import (
    create_new_draft,
    create_solution_review,
    current_version,
    list_documents_by_state,
    list_documents_by_system,
    normalize_system_code,
    retire_sibling,
    system_view,
)


def _make_current(s, doc, architect, eao):
    apply_transition(s, doc.id, "SUBMIT", architect)
    apply_transition(s, doc.id, "APPROVE", eao)
    return apply_transition(s, doc.id, "ACTIVATE", architect)


def _current_count(s, code):
    return s.query(SolutionReview).filter(
        SolutionReview.system_code == code, SolutionReview.document_state == "CURRENT"
    ).count()


def test_new_draft_from_current_then_activate_retires_previous(s, architect, eao, full_sections):
    a = create_solution_review(s, "SYS-001", architect, sections=full_sections)
    _make_current(s, a, architect, eao)

    b = create_new_draft(s, "SYS-001", architect)
    assert b.id != a.id
    assert b.document_state == "DRAFT"
    assert b.version == 2
    assert b.sections() == a.sections()

    _make_current(s, b, architect, eao)
    s.expire_all()

    assert s.get(SolutionReview, b.id).document_state == "CURRENT"
    assert s.get(SolutionReview, a.id).document_state == "OUTDATED"
    assert _current_count(s, "SYS-001") == 1


def test_new_draft_is_a_deep_copy(s, architect, eao, full_sections):
    a = _make_current(s, create_solution_review(s, "SYS-001", architect, sections=full_sections), architect, eao)
    b = create_new_draft(s, "SYS-001", architect)

    save_section(s, b.id, "businessCapabilities", [{"l1Capability": "Treasury"}], architect)
    s.expire_all()

    assert s.get(SolutionReview, a.id).business_capabilities == [{"l1Capability": "Finance", "l2Capability": "Payments"}]
    assert s.get(SolutionReview, b.id).business_capabilities == [{"l1Capability": "Treasury"}]


def test_new_draft_without_current_version(s, architect, full_sections):
    create_solution_review(s, "SYS-001", architect, sections=full_sections)
    with pytest.raises(NoCurrentVersion) as ei:
        create_new_draft(s, "SYS-001", architect)
    assert ei.value.system_code == "SYS-001"
    assert len(list_documents_by_system(s, "SYS-001")) == 1


def test_reset_current_retires_the_sibling(s, architect, eao, full_sections):
    a = _make_current(s, create_solution_review(s, "SYS-001", architect, sections=full_sections), architect, eao)
    b = _make_current(s, create_new_draft(s, "SYS-001", architect), architect, eao)
    assert a.document_state == "OUTDATED"

    apply_transition(s, a.id, "RESET_CURRENT", architect)
    s.expire_all()

    assert s.get(SolutionReview, a.id).document_state == "CURRENT"
    assert s.get(SolutionReview, b.id).document_state == "OUTDATED"
    assert current_version(s, "SYS-001").id == a.id


def test_activation_failure_keeps_previous_current(s, architect, eao, full_sections, monkeypatch):
    a = _make_current(s, create_solution_review(s, "SYS-001", architect, sections=full_sections), architect, eao)
    b = create_new_draft(s, "SYS-001", architect)
    apply_transition(s, b.id, "SUBMIT", architect)
    apply_transition(s, b.id, "APPROVE", eao)

    real_record_event = service.record_event

    def _fail_on_activate(sess, **kwargs):
        if kwargs.get("action") == "solution_review.activate":
            raise RuntimeError("audit store unavailable")
        return real_record_event(sess, **kwargs)

    monkeypatch.setattr(service, "record_event", _fail_on_activate)
    with pytest.raises(RuntimeError):
        apply_transition(s, b.id, "ACTIVATE", architect)

    s.expire_all()
    assert s.get(SolutionReview, a.id).document_state == "CURRENT"
    assert s.get(SolutionReview, b.id).document_state == "APPROVED"


def test_new_draft_locks_the_current_source(s, architect, eao, full_sections, monkeypatch):
    from app.archreview.modules.solution_review import versioning

    _make_current(s, create_solution_review(s, "SYS-001", architect, sections=full_sections), architect, eao)
    calls = []
    real_current_version = versioning.current_version

    def _spy(sess, code, *, for_update=False):
        calls.append((code, for_update))
        return real_current_version(sess, code, for_update=for_update)

    monkeypatch.setattr(versioning, "current_version", _spy)
    create_new_draft(s, "SYS-001", architect)
    assert calls == [("SYS-001", True)]


def test_retire_sibling_is_a_noop_without_current(s, architect, full_sections):
    doc = create_solution_review(s, "SYS-001", architect, sections=full_sections)
    assert retire_sibling(s, "SYS-001", doc.id, architect) is None


def test_store_rejects_two_current_rows(s):
    for version in (1, 2):
        s.add(
            SolutionReview(
                id=new_document_id(),
                system_code="SYS-009",
                version=version,
                document_state=DocumentState.CURRENT.value,
            )
        )
    with pytest.raises(IntegrityError):
        s.commit()
    s.rollback()


def test_versions_increase_per_system(s, architect):
    docs = [create_solution_review(s, "SYS-001", architect) for _ in range(3)]
    other = create_solution_review(s, "SYS-002", architect)

    assert [d.version for d in docs] == [1, 2, 3]
    assert other.version == 1
    assert [d.version for d in list_documents_by_system(s, "SYS-001")] == [3, 2, 1]
    assert docs[0].created_by == "architect@example.com"


def test_create_seeds_and_validates_sections(s, architect):
    doc = create_solution_review(s, " SYS-001 ", architect, sections={"solutionOverview": {"businessUnit": "Retail"}})
    assert doc.system_code == "SYS-001"
    assert doc.solution_overview == {"businessUnit": "Retail"}
    assert doc.business_capabilities is None

    with pytest.raises(InvalidPayload):
        create_solution_review(s, "SYS-001", architect, sections={"solutionOverview": {"colour": "red"}})
    with pytest.raises(InvalidPayload):
        normalize_system_code("   ")

    ev = s.query(AuditEvent).filter(AuditEvent.entity_id == doc.id).one()
    assert ev.action == "solution_review.create"
    assert ev.actor_user_email == "architect@example.com"


def test_system_view_and_state_listing(s, architect, eao, full_sections):
    a = _make_current(s, create_solution_review(s, "SYS-001", architect, sections=full_sections), architect, eao)
    create_new_draft(s, "SYS-001", architect)
    draft = create_solution_review(s, "SYS-002", architect)

    assert system_view(s) == [
        {"systemCode": "SYS-001", "totalReviews": 2, "latestVersion": 2, "currentReviewId": a.id},
        {"systemCode": "SYS-002", "totalReviews": 1, "latestVersion": 1, "currentReviewId": None},
    ]
    assert [d.id for d in list_documents_by_state(s, DocumentState.CURRENT)] == [a.id]
    assert draft.id in {d.id for d in list_documents_by_state(s, DocumentState.DRAFT)}
