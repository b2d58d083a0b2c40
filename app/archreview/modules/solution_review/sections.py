"""
Typed records for the eight solution review sections and for reviewer concerns.

Section payloads arrive as camelCase JSON from the editor wizard. Every field is
optional so a section can be saved half-filled; unknown keys are rejected so a
typo in the client never silently drops data.
"""
from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, fields
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from .errors import InvalidPayload


class SectionKind(str, Enum):
    OBJECT = "object"
    SEQUENCE = "sequence"


def _record_from_dict(cls, raw: Any, where: str):
    if not isinstance(raw, dict):
        raise InvalidPayload(f"{where} must be an object.")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise InvalidPayload(f"{where} has unknown fields: {', '.join(unknown)}")
    return cls(**copy.deepcopy(raw))


def _prune(d: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


@dataclass
class SolutionOverview:
    id: str | None = None
    solutionDetails: dict[str, Any] | None = None
    reviewType: str | None = None
    businessUnit: str | None = None
    businessDriver: str | None = None
    valueOutcome: str | None = None
    applicationUsers: list[str] | None = None
    concerns: list[dict[str, Any]] | None = None


@dataclass
class BusinessCapability:
    id: str | None = None
    l1Capability: str | None = None
    l2Capability: str | None = None
    l3Capability: str | None = None
    remarks: str | None = None


@dataclass
class DataAsset:
    id: str | None = None
    componentName: str | None = None
    solutionOverviewId: str | None = None
    dataDomain: str | None = None
    dataClassification: str | None = None
    dataOwnedBy: str | None = None
    dataEntities: list[str] | None = None
    masteredIn: str | None = None


@dataclass
class SystemComponent:
    id: str | None = None
    name: str | None = None
    status: str | None = None
    role: str | None = None
    hostedOn: str | None = None
    hostingRegion: str | None = None
    solutionType: str | None = None
    languageFramework: dict[str, Any] | None = None
    isOwnedByUs: bool | None = None
    isCICDUsed: bool | None = None
    customizationLevel: str | None = None
    upgradeStrategy: str | None = None
    upgradeFrequency: str | None = None
    isSubscription: bool | None = None
    isInternetFacing: bool | None = None
    availabilityRequirement: str | None = None
    latencyRequirement: float | None = None
    throughputRequirement: float | None = None
    scalabilityMethod: str | None = None
    backupSite: str | None = None
    securityDetails: dict[str, Any] | None = None


@dataclass
class TechnologyComponent:
    id: str | None = None
    componentName: str | None = None
    productName: str | None = None
    productVersion: str | None = None
    usage: str | None = None


@dataclass
class IntegrationFlow:
    id: str | None = None
    componentName: str | None = None
    counterpartSystemCode: str | None = None
    counterpartSystemRole: str | None = None
    integrationMethod: str | None = None
    middleware: str | None = None
    frequency: str | None = None
    purpose: str | None = None


@dataclass
class EnterpriseTool:
    id: str | None = None
    tool: dict[str, Any] | None = None
    onboarded: str | None = None
    integrationDetails: str | None = None
    issues: str | None = None


@dataclass
class ProcessCompliance:
    id: str | None = None
    standardGuideline: str | None = None
    compliant: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class SectionSpec:
    key: str
    label: str
    kind: SectionKind
    record: type


# Order matters: it is the order missing sections are reported in.
SECTION_SPECS: tuple[SectionSpec, ...] = (
    SectionSpec("solutionOverview", "Solution Overview", SectionKind.OBJECT, SolutionOverview),
    SectionSpec("businessCapabilities", "Business Capabilities", SectionKind.SEQUENCE, BusinessCapability),
    SectionSpec("dataAssets", "Data & Assets", SectionKind.SEQUENCE, DataAsset),
    SectionSpec("systemComponents", "System Components", SectionKind.SEQUENCE, SystemComponent),
    SectionSpec("technologyComponents", "Technology Components", SectionKind.SEQUENCE, TechnologyComponent),
    SectionSpec("integrationFlows", "Integration Flow", SectionKind.SEQUENCE, IntegrationFlow),
    SectionSpec("enterpriseTools", "Enterprise Tools", SectionKind.SEQUENCE, EnterpriseTool),
    SectionSpec("processCompliances", "Process Compliance", SectionKind.SEQUENCE, ProcessCompliance),
)

SECTIONS_BY_KEY: dict[str, SectionSpec] = {spec.key: spec for spec in SECTION_SPECS}
SECTION_KEYS: tuple[str, ...] = tuple(spec.key for spec in SECTION_SPECS)
SECTION_LABELS: dict[str, str] = {spec.key: spec.label for spec in SECTION_SPECS}


def get_section_spec(section_key: str) -> SectionSpec:
    spec = SECTIONS_BY_KEY.get(section_key)
    if spec is None:
        raise InvalidPayload(f"Unknown section: {section_key!r}")
    return spec


def normalize_section(section_key: str, value: Any) -> Any:
    """
    Validate a section value and return the JSON-ready form that gets stored.

    ``None`` clears the section. Object sections take a dict, sequence sections
    a list of dicts.
    """
    spec = get_section_spec(section_key)
    if value is None:
        return None

    if spec.kind is SectionKind.OBJECT:
        rec = _record_from_dict(spec.record, value, spec.label)
        out = _prune(asdict(rec))
        if section_key == "solutionOverview" and rec.concerns is not None:
            out["concerns"] = [c.to_dict() for c in parse_concerns(rec.concerns)]
        return out

    if not isinstance(value, list):
        raise InvalidPayload(f"{spec.label} must be a list.")
    return [
        _prune(asdict(_record_from_dict(spec.record, item, f"{spec.label}[{i}]")))
        for i, item in enumerate(value)
    ]


# ---------------------------------------------------------------------------
# Concerns
# ---------------------------------------------------------------------------


class ConcernType(str, Enum):
    RISK = "RISK"
    DECISION = "DECISION"
    DEVIATION = "DEVIATION"


class ConcernStatus(str, Enum):
    UNKNOWN = "UNKNOWN"


# Reviewer-supplied fields every concern recorded at approval must carry.
REQUIRED_CONCERN_FIELDS: tuple[str, ...] = ("description", "impact", "disposition", "followUpDate")


def normalize_follow_up_date(raw: str | None) -> str | None:
    """
    Normalize to ``YYYY-MM-DDTHH:MM:SS``. A bare date means end of that day.
    """
    if raw is None:
        return None
    s = str(raw).strip()
    if not s:
        return None
    try:
        if len(s) == 10:
            d = date.fromisoformat(s)
            return datetime(d.year, d.month, d.day, 23, 59, 59).isoformat()
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        raise InvalidPayload(f"Invalid followUpDate: {raw!r}") from None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.replace(tzinfo=None, microsecond=0).isoformat()


@dataclass
class Concern:
    type: ConcernType
    description: str | None = None
    impact: str | None = None
    disposition: str | None = None
    status: ConcernStatus = ConcernStatus.UNKNOWN
    followUpDate: str | None = None
    id: str | None = None

    @classmethod
    def from_dict(cls, raw: Any, where: str = "Concern", *, require_details: bool = False) -> Concern:
        """
        Parse one concern. With ``require_details`` the reviewer fields must all
        be filled, as the approval dialog demands.
        """
        if not isinstance(raw, dict):
            raise InvalidPayload(f"{where} must be an object.")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise InvalidPayload(f"{where} has unknown fields: {', '.join(unknown)}")
        try:
            ctype = ConcernType(str(raw.get("type") or "").strip().upper())
        except ValueError:
            raise InvalidPayload(
                f"{where}.type must be one of {', '.join(t.value for t in ConcernType)}."
            ) from None
        try:
            status = ConcernStatus(str(raw.get("status") or ConcernStatus.UNKNOWN.value).strip().upper())
        except ValueError:
            raise InvalidPayload(f"{where}.status is not a known concern status.") from None
        if require_details:
            blank = [k for k in REQUIRED_CONCERN_FIELDS if not str(raw.get(k) or "").strip()]
            if blank:
                raise InvalidPayload(f"{where} is missing required fields: {', '.join(blank)}")
        return cls(
            type=ctype,
            description=raw.get("description"),
            impact=raw.get("impact"),
            disposition=raw.get("disposition"),
            status=status,
            followUpDate=normalize_follow_up_date(raw.get("followUpDate")),
            id=raw.get("id"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _prune(
            {
                "id": self.id,
                "type": self.type.value,
                "description": self.description,
                "impact": self.impact,
                "disposition": self.disposition,
                "status": self.status.value,
                "followUpDate": self.followUpDate,
            }
        )


def parse_concerns(raw: Any, *, require_details: bool = False) -> list[Concern]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise InvalidPayload("concerns must be a list.")
    return [
        Concern.from_dict(item, f"concerns[{i}]", require_details=require_details)
        for i, item in enumerate(raw)
    ]
