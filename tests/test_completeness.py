from app.archreview.modules.solution_review.completeness import (
    is_complete,
    is_object_missing,
    is_sequence_missing,
    missing_section_keys,
    missing_sections,
)

ALL_LABELS = [
    "Solution Overview",
    "Business Capabilities",
    "Data & Assets",
    "System Components",
    "Technology Components",
    "Integration Flow",
    "Enterprise Tools",
    "Process Compliance",
]


def test_full_document_has_nothing_missing(full_sections):
    assert missing_sections(full_sections) == []
    assert is_complete(full_sections)


def test_empty_document_reports_every_section_in_order():
    assert missing_sections({}) == ALL_LABELS
    assert missing_sections({k: None for k in ("solutionOverview", "dataAssets")}) == ALL_LABELS


def test_empty_array_counts_as_missing(full_sections):
    full_sections["dataAssets"] = []
    assert missing_sections(full_sections) == ["Data & Assets"]
    assert not is_complete(full_sections)


def test_empty_overview_object_is_present(full_sections):
    full_sections["solutionOverview"] = {}
    assert missing_sections(full_sections) == []


def test_order_is_fixed_regardless_of_input_order(full_sections):
    full_sections["processCompliances"] = None
    full_sections["solutionOverview"] = None
    full_sections["integrationFlows"] = []
    assert missing_sections(full_sections) == ["Solution Overview", "Integration Flow", "Process Compliance"]
    assert missing_section_keys(full_sections) == ["solutionOverview", "integrationFlows", "processCompliances"]


def test_unknown_keys_are_ignored(full_sections):
    full_sections["somethingElse"] = None
    assert missing_sections(full_sections) == []


def test_predicates():
    assert is_object_missing(None)
    assert not is_object_missing({})
    assert is_sequence_missing(None)
    assert is_sequence_missing([])
    assert not is_sequence_missing([{}])
