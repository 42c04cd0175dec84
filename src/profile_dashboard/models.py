from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, Optional, Sequence, Union

ObjectId = Union[int, str]

PASS_GRADE = 1.0
"""Minimum grade counted as a pass, for audits and project results alike"""

_ONE_DECIMAL = Decimal("0.1")


def percentage(part: float, whole: float) -> float:
    """
    ``part`` as a percentage of ``whole``, rounded to one decimal.

    Ties round up on the exact binary value (``6.25`` becomes ``6.3``), the way
    the platform UI formats percentages.
    """

    value = Decimal(part / whole * 100)
    return float(value.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class ObjectRef:
    """The curriculum object (project, exercise, quest...) a record points at."""

    id: Optional[ObjectId] = None
    name: Optional[str] = None
    type: Optional[str] = None


@dataclass(frozen=True)
class TransactionRecord:
    """
    XP grant emitted by the platform.

    The ``type == "xp"`` filter is applied by the query, so every record here
    counts towards the learner's XP. ``created_at`` is ``None`` when the upstream
    timestamp is missing or unparsable.
    """

    amount: int
    created_at: Optional[datetime]
    path: str = ""
    object_id: Optional[ObjectId] = None
    object: Optional[ObjectRef] = None


@dataclass(frozen=True)
class AuditRecord:
    grade: float
    auditor_id: Optional[ObjectId] = None

    @property
    def passed(self) -> bool:
        return self.grade >= PASS_GRADE


@dataclass(frozen=True)
class CompletionRecord:
    """
    A progress or result row describing the completion of an object.

    Progress and result tables carry the same logical fact; ``source`` keeps
    track of where the row came from so the completed-project reconciliation
    can process progress rows before result rows.
    """

    source: str
    object_id: Optional[ObjectId]
    grade: float
    path: str = ""
    updated_at: Optional[datetime] = None
    object: Optional[ObjectRef] = None


@dataclass(frozen=True)
class UserInfo:
    id: int
    login: Optional[str] = None


@dataclass(frozen=True)
class AggregatedPoint:
    date: date
    daily_xp: int
    cumulative_xp: int


@dataclass(frozen=True)
class ProjectXp:
    path: str
    xp: int

    @property
    def label(self) -> str:
        return self.path.rstrip("/").split("/")[-1] or "Unknown"


@dataclass(frozen=True)
class CompletedProject:
    id: ObjectId
    name: str
    path: str
    grade: float
    completed_at: Optional[datetime]


RATIO_NOT_APPLICABLE = "not applicable"


@dataclass(frozen=True)
class RatioResult:
    """
    Pass/fail split of a set of graded records.

    ``ratio`` is the pass percentage rounded to one decimal, or ``None`` (the
    "not applicable" sentinel) when there is nothing to divide by.
    """

    passed: int = 0
    failed: int = 0
    total: int = 0
    ratio: Optional[float] = None

    @property
    def is_applicable(self) -> bool:
        return self.total > 0 and self.ratio is not None

    @property
    def label(self) -> str:
        return f"{self.ratio:.1f}%" if self.is_applicable else RATIO_NOT_APPLICABLE


@dataclass(frozen=True)
class ExclusionVocabulary:
    """
    Ordered, case-insensitive substrings that disqualify a project.

    Matching is done on ``"<path> <name>"`` lower-cased, so a hit in either
    field excludes the candidate.
    """

    substrings: Sequence[str] = field(default_factory=tuple)

    def matches(self, path: Optional[str], name: Optional[str]) -> bool:
        combined = f"{(path or '').lower()} {(name or '').lower()}"
        return any(needle.lower() in combined for needle in self.substrings)


DEFAULT_EXCLUSIONS = ExclusionVocabulary(
    substrings=("piscine", "check-in", "checkin", "checkpoint", "administration", "toad")
)
PISCINE_ONLY = ExclusionVocabulary(substrings=("piscine",))


@dataclass(frozen=True)
class DashboardSnapshot:
    user: Optional[UserInfo]
    total_xp: int
    xp_over_time: Sequence[AggregatedPoint]
    xp_by_project: Sequence[ProjectXp]
    audit_ratio: RatioResult
    completed_projects: Sequence[CompletedProject]
    failures: Dict[str, str] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        """
        Convert the nested dataclasses into a JSON-serialisable structure.

        The FastAPI layer ships this straight to the UI.
        """

        return {
            "user": to_payload(self.user),
            "totalXp": self.total_xp,
            "xpOverTime": to_payload(self.xp_over_time),
            "xpByProject": to_payload(self.xp_by_project),
            "auditRatio": to_payload(self.audit_ratio),
            "completedProjects": to_payload(self.completed_projects),
            "failures": dict(self.failures),
        }


def to_payload(obj: Any) -> Any:
    if obj is None:
        return None
    if isinstance(obj, UserInfo):
        return {"id": obj.id, "login": obj.login}
    if isinstance(obj, AggregatedPoint):
        return {"date": obj.date.isoformat(), "xp": obj.daily_xp, "cumulative": obj.cumulative_xp}
    if isinstance(obj, ProjectXp):
        return {"path": obj.path, "xp": obj.xp}
    if isinstance(obj, CompletedProject):
        return {
            "id": obj.id,
            "name": obj.name,
            "path": obj.path,
            "grade": obj.grade,
            "completedAt": obj.completed_at.isoformat() if obj.completed_at else None,
        }
    if isinstance(obj, RatioResult):
        return {
            "passed": obj.passed,
            "failed": obj.failed,
            "total": obj.total,
            "ratio": obj.ratio,
            "ratioLabel": obj.label,
        }
    if isinstance(obj, Iterable) and not isinstance(obj, (str, bytes, dict)):
        return [to_payload(item) for item in obj]
    return obj
