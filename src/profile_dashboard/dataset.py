"""
Turn raw GraphQL record sets into typed records.

Upstream rows are loosely shaped: optional fields go missing, ``object`` may be
``null`` and timestamps come in several ISO flavours. The parsers substitute
defaults instead of failing so aggregation always runs to completion.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Callable, Iterable, List, Mapping, Optional, TypeVar

from .errors import MalformedRecordError
from .models import AuditRecord, CompletionRecord, ObjectRef, TransactionRecord, UserInfo

logger = logging.getLogger(__name__)

T = TypeVar("T")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    Accepts ``Z`` suffixes, explicit offsets and bare dates. Naive values are
    assumed to be UTC. Anything unparsable yields ``None``.
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _as_int(value: Any, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return default


def _as_float(value: Any, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _require_mapping(row: Any) -> Mapping[str, Any]:
    if not isinstance(row, Mapping):
        raise MalformedRecordError(f"expected a mapping, got {type(row).__name__}")
    return row


def _parse_object(raw: Any) -> Optional[ObjectRef]:
    if not isinstance(raw, Mapping):
        return None
    name = raw.get("name")
    kind = raw.get("type")
    return ObjectRef(
        id=raw.get("id"),
        name=name if isinstance(name, str) else None,
        type=kind if isinstance(kind, str) else None,
    )


def _parse_rows(rows: Optional[Iterable[Any]], parse: Callable[[Mapping[str, Any]], T], kind: str) -> List[T]:
    parsed: List[T] = []
    for row in rows or ():
        try:
            parsed.append(parse(_require_mapping(row)))
        except MalformedRecordError as exc:
            logger.debug("Skipping malformed %s record: %s", kind, exc)
    return parsed


def _transaction(row: Mapping[str, Any]) -> TransactionRecord:
    obj = _parse_object(row.get("object"))
    object_id = row.get("objectId")
    if object_id is None and obj is not None:
        object_id = obj.id
    return TransactionRecord(
        amount=_as_int(row.get("amount")),
        created_at=parse_timestamp(row.get("createdAt")),
        path=_as_str(row.get("path")),
        object_id=object_id,
        object=obj,
    )


def _audit(row: Mapping[str, Any]) -> AuditRecord:
    return AuditRecord(grade=_as_float(row.get("grade")), auditor_id=row.get("auditorId"))


def parse_transactions(rows: Optional[Iterable[Any]]) -> List[TransactionRecord]:
    return _parse_rows(rows, _transaction, "transaction")


def parse_audits(rows: Optional[Iterable[Any]]) -> List[AuditRecord]:
    return _parse_rows(rows, _audit, "audit")


def parse_completions(rows: Optional[Iterable[Any]], source: str) -> List[CompletionRecord]:
    """Parse progress or result rows; ``source`` is ``"progress"`` or ``"result"``."""

    def _completion(row: Mapping[str, Any]) -> CompletionRecord:
        obj = _parse_object(row.get("object"))
        return CompletionRecord(
            source=source,
            object_id=row.get("objectId"),
            grade=_as_float(row.get("grade")),
            path=_as_str(row.get("path")),
            updated_at=parse_timestamp(row.get("updatedAt") or row.get("createdAt")),
            object=obj,
        )

    return _parse_rows(rows, _completion, source)


def parse_user_info(rows: Any) -> Optional[UserInfo]:
    """
    Extract the signed-in user from a ``user`` field.

    The query service returns a list with a single row; a bare mapping is
    accepted too. Returns ``None`` when no integer id is present.
    """

    if isinstance(rows, Mapping):
        rows = [rows]
    if not rows:
        return None
    first = rows[0]
    if not isinstance(first, Mapping):
        return None
    user_id = _as_int(first.get("id"), default=-1)
    if user_id < 0:
        return None
    login = first.get("login")
    return UserInfo(id=user_id, login=login if isinstance(login, str) else None)
