"""
Which sections of a solution review are still unfilled.

This is the only place that decides "missing"; the submission gate and the
read-only missing-sections endpoint both call :func:`missing_sections`.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .sections import SECTION_LABELS, SECTION_SPECS, SectionKind


def is_object_missing(value: Any) -> bool:
    return value is None


def is_sequence_missing(value: Any) -> bool:
    return value is None or len(value) == 0


_PREDICATES = {
    SectionKind.OBJECT: is_object_missing,
    SectionKind.SEQUENCE: is_sequence_missing,
}


def _section_values(document: Any) -> Mapping[str, Any]:
    if isinstance(document, Mapping):
        return document
    return document.sections()


def missing_section_keys(document: Any) -> list[str]:
    values = _section_values(document)
    return [spec.key for spec in SECTION_SPECS if _PREDICATES[spec.kind](values.get(spec.key))]


def missing_sections(document: Any) -> list[str]:
    """
    Labels of unfilled sections, in fixed section order.

    ``document`` is a SolutionReview row or a mapping of section key to value.
    Keys other than the eight sections are ignored; an absent key is missing.
    """
    return [SECTION_LABELS[key] for key in missing_section_keys(document)]


def is_complete(document: Any) -> bool:
    return not missing_section_keys(document)
