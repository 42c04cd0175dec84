from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from .models import (
    DEFAULT_EXCLUSIONS,
    PASS_GRADE,
    PISCINE_ONLY,
    AggregatedPoint,
    AuditRecord,
    CompletedProject,
    CompletionRecord,
    ExclusionVocabulary,
    ObjectId,
    ProjectXp,
    RatioResult,
    TransactionRecord,
    percentage,
)

logger = logging.getLogger(__name__)

UNKNOWN_PATH = "Unknown"
UNKNOWN_PROJECT = "Unknown Project"
TOP_PROJECTS = 10
NON_PROJECT_SEGMENTS = ("/exercise", "/quest")

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def total_xp(records: Iterable[TransactionRecord]) -> int:
    return sum(record.amount for record in records)


def xp_over_time(records: Iterable[TransactionRecord]) -> List[AggregatedPoint]:
    """
    Daily XP with a running total, one point per UTC calendar day.

    Days are emitted in ascending order regardless of the input order.
    """

    daily: Dict[date, int] = defaultdict(int)
    for record in records:
        if record.created_at is None:
            logger.debug("Transaction on %r has no timestamp, left out of the series", record.path)
            continue
        daily[record.created_at.astimezone(timezone.utc).date()] += record.amount

    points: List[AggregatedPoint] = []
    cumulative = 0
    for day in sorted(daily):
        cumulative += daily[day]
        points.append(AggregatedPoint(date=day, daily_xp=daily[day], cumulative_xp=cumulative))
    return points


def xp_by_project(records: Iterable[TransactionRecord], limit: int = TOP_PROJECTS) -> List[ProjectXp]:
    totals: Dict[str, int] = {}
    for record in records:
        path = record.path or UNKNOWN_PATH
        totals[path] = totals.get(path, 0) + record.amount

    # sorted() is stable, so equal totals keep their encounter order
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [ProjectXp(path=path, xp=xp) for path, xp in ranked[: max(0, limit)]]


def _ratio(passed: int, failed: int) -> RatioResult:
    total = passed + failed
    ratio = percentage(passed, total) if total else None
    return RatioResult(passed=passed, failed=failed, total=total, ratio=ratio)


def audit_ratio(records: Iterable[AuditRecord]) -> RatioResult:
    passed = failed = 0
    for record in records:
        if record.passed:
            passed += 1
        else:
            failed += 1
    return _ratio(passed, failed)


def pass_fail_ratio(results: Iterable[CompletionRecord]) -> RatioResult:
    """
    Pass/fail split over project results, piscine activity excluded.

    Only rows explicitly typed ``project`` are counted; exercises and quests
    are graded too but do not say anything about project outcomes.
    """

    passed = failed = 0
    for result in results:
        if result.object is None or result.object.type != "project":
            continue
        if PISCINE_ONLY.matches(result.path, None):
            continue
        if result.grade >= PASS_GRADE:
            passed += 1
        else:
            failed += 1
    return _ratio(passed, failed)


# ---------------------------------------------------------------------------
# Completed projects
# ---------------------------------------------------------------------------


def _is_project(record: CompletionRecord) -> bool:
    if record.object is not None and record.object.type == "project":
        return True
    return bool(record.path) and not any(segment in record.path for segment in NON_PROJECT_SEGMENTS)


def _display_name(name: Optional[str], path: str) -> str:
    return name or path.rstrip("/").split("/")[-1]


def _completed_sort_key(project: CompletedProject) -> datetime:
    return project.completed_at or _EARLIEST


@dataclass
class CompletionStage:
    """
    Output of the first stage of the completed-project pipeline.

    ``projects`` is keyed by object id and already de-duplicated. When it is
    empty the caller is expected to run the transaction fallback.
    """

    projects: Dict[ObjectId, CompletedProject] = field(default_factory=dict)
    considered: int = 0
    excluded: int = 0

    @property
    def needs_fallback(self) -> bool:
        return not self.projects


def _candidate(record: CompletionRecord, vocabulary: ExclusionVocabulary) -> Optional[CompletedProject]:
    if not _is_project(record):
        return None
    object_id = record.object_id
    if object_id is None and record.object is not None:
        object_id = record.object.id
    if object_id is None:
        logger.debug("Completion on %r has no object id, cannot de-duplicate it", record.path)
        return None

    name = _display_name(record.object.name if record.object else None, record.path)
    if vocabulary.matches(record.path, name):
        return None
    return CompletedProject(
        id=object_id,
        name=name or UNKNOWN_PROJECT,
        path=record.path,
        grade=record.grade,
        completed_at=record.updated_at,
    )


def _supersedes(new: CompletedProject, existing: CompletedProject) -> bool:
    # Either a strictly later completion or a strictly higher grade replaces the entry.
    return _completed_sort_key(new) > _completed_sort_key(existing) or new.grade > existing.grade


def collect_completed_projects(
    progress: Sequence[CompletionRecord],
    results: Sequence[CompletionRecord],
    vocabulary: ExclusionVocabulary = DEFAULT_EXCLUSIONS,
) -> CompletionStage:
    """
    Reconcile progress and result rows into one entry per object id.

    Progress rows are inserted first (the first row for an id wins). Result rows
    are inserted when their id is new and otherwise replace the existing entry
    only when they completed strictly later or scored strictly higher.
    Excluded vocabulary is filtered out before de-duplication.
    """

    stage = CompletionStage()

    for record in progress:
        stage.considered += 1
        project = _candidate(record, vocabulary)
        if project is None:
            stage.excluded += 1
            continue
        stage.projects.setdefault(project.id, project)

    for record in results:
        stage.considered += 1
        project = _candidate(record, vocabulary)
        if project is None:
            stage.excluded += 1
            continue
        existing = stage.projects.get(project.id)
        if existing is None or _supersedes(project, existing):
            stage.projects[project.id] = project

    return stage


def projects_from_transactions(
    transactions: Iterable[TransactionRecord],
    vocabulary: ExclusionVocabulary = DEFAULT_EXCLUSIONS,
) -> List[CompletedProject]:
    """Treat XP received from a project as an implicit pass, one entry per path."""

    seen_paths = set()
    projects: List[CompletedProject] = []
    for record in transactions:
        if record.object is None or record.object.type != "project" or not record.path:
            continue
        name = _display_name(record.object.name, record.path)
        if vocabulary.matches(record.path, name):
            continue
        if record.path in seen_paths:
            continue
        seen_paths.add(record.path)
        object_id = record.object_id if record.object_id is not None else record.object.id
        projects.append(
            CompletedProject(
                id=object_id if object_id is not None else record.path,
                name=name or UNKNOWN_PROJECT,
                path=record.path,
                grade=PASS_GRADE,
                completed_at=record.created_at,
            )
        )
    return projects


def finalize_completed_projects(
    stage: CompletionStage,
    fallback_transactions: Iterable[TransactionRecord] = (),
    vocabulary: ExclusionVocabulary = DEFAULT_EXCLUSIONS,
) -> List[CompletedProject]:
    if stage.needs_fallback:
        projects = projects_from_transactions(fallback_transactions, vocabulary)
        # Two XP paths can share an object id; keep the ids distinct.
        unique: Dict[ObjectId, CompletedProject] = {}
        for project in projects:
            unique.setdefault(project.id, project)
        projects = list(unique.values())
    else:
        projects = list(stage.projects.values())
    return sorted(projects, key=_completed_sort_key, reverse=True)


def completed_projects(
    progress: Sequence[CompletionRecord],
    results: Sequence[CompletionRecord],
    fallback_transactions: Iterable[TransactionRecord] = (),
    vocabulary: ExclusionVocabulary = DEFAULT_EXCLUSIONS,
) -> List[CompletedProject]:
    stage = collect_completed_projects(progress, results, vocabulary)
    return finalize_completed_projects(stage, fallback_transactions, vocabulary)
