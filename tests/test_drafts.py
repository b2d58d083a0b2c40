import pytest

from app.archreview.rbac import Actor
from app.archreview.modules.solution_review.drafts import load_document, save_section
from app.archreview.modules.solution_review.errors import DocumentNotEditable, DocumentNotFound, InvalidPayload
from app.archreview.modules.solution_review.service import apply_transition
from app.archreview.modules.solution_review.versioning import create_solution_review


def test_save_section_touches_only_that_section(s, architect, full_sections):
    doc = create_solution_review(s, "SYS-001", architect, sections=full_sections)
    before = doc.sections()
    editor = Actor(identity="second@example.com", roles=frozenset({"ARCHITECT"}))

    doc = save_section(
        s,
        doc.id,
        "dataAssets",
        [{"componentName": "ledger", "dataEntities": ["Payment", "Refund"]}, {"componentName": "cache"}],
        editor,
    )

    assert doc.data_assets == [
        {"componentName": "ledger", "dataEntities": ["Payment", "Refund"]},
        {"componentName": "cache"},
    ]
    assert doc.document_state == "DRAFT"
    assert doc.last_modified_by == "second@example.com"
    assert doc.created_by == "architect@example.com"
    after = doc.sections()
    for key in before:
        if key != "dataAssets":
            assert after[key] == before[key]


def test_save_section_stores_a_copy(s, architect):
    doc = create_solution_review(s, "SYS-001", architect)
    value = [{"l1Capability": "Finance"}]
    save_section(s, doc.id, "businessCapabilities", value, architect)
    value[0]["l1Capability"] = "Changed"
    assert load_document(s, doc.id).business_capabilities == [{"l1Capability": "Finance"}]


def test_save_none_clears_section(s, architect, full_sections):
    doc = create_solution_review(s, "SYS-001", architect, sections=full_sections)
    doc = save_section(s, doc.id, "solutionOverview", None, architect)
    assert doc.solution_overview is None


def test_save_overview_normalizes_concerns(s, architect):
    doc = create_solution_review(s, "SYS-001", architect)
    doc = save_section(
        s,
        doc.id,
        "solutionOverview",
        {"businessUnit": "Retail", "concerns": [{"type": "deviation", "followUpDate": "2026-03-01T10:30:00Z"}]},
        architect,
    )
    assert doc.solution_overview["concerns"] == [
        {"type": "DEVIATION", "status": "UNKNOWN", "followUpDate": "2026-03-01T10:30:00"}
    ]


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("2026-03-01T23:30:00-05:00", "2026-03-02T04:30:00"),
        ("2026-03-01T10:30:00+02:00", "2026-03-01T08:30:00"),
        ("2026-03-01T10:30:00.250", "2026-03-01T10:30:00"),
        ("2026-03-01", "2026-03-01T23:59:59"),
    ],
)
def test_follow_up_dates_are_stored_in_utc(s, architect, raw, expected):
    doc = create_solution_review(s, "SYS-001", architect)
    doc = save_section(
        s, doc.id, "solutionOverview", {"concerns": [{"type": "RISK", "followUpDate": raw}]}, architect
    )
    assert doc.solution_overview["concerns"][0]["followUpDate"] == expected


@pytest.mark.parametrize(
    "key,value",
    [
        ("architectureNotes", []),
        ("dataAssets", {"componentName": "ledger"}),
        ("dataAssets", [{"componentName": "ledger", "owner": "me"}]),
        ("solutionOverview", ["not", "an", "object"]),
    ],
)
def test_save_section_rejects_bad_input(s, architect, key, value):
    doc = create_solution_review(s, "SYS-001", architect)
    with pytest.raises(InvalidPayload):
        save_section(s, doc.id, key, value, architect)


def test_only_drafts_are_editable(s, architect, full_sections):
    doc = create_solution_review(s, "SYS-001", architect, sections=full_sections)
    apply_transition(s, doc.id, "SUBMIT", architect)

    with pytest.raises(DocumentNotEditable):
        save_section(s, doc.id, "dataAssets", [], architect)
    assert load_document(s, doc.id).data_assets == full_sections["dataAssets"]


def test_unknown_document(s, architect):
    with pytest.raises(DocumentNotFound):
        load_document(s, "missing")
    with pytest.raises(DocumentNotFound):
        save_section(s, "missing", "dataAssets", [], architect)
