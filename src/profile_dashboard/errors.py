from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence


class DashboardError(Exception):
    """Base class for every error raised by the profile dashboard."""


class IdentityError(DashboardError):
    """
    The numeric user id could not be resolved.

    Raised when neither the stored session state nor the user-info query yields
    an integer id. Every per-user query depends on the id, so this is fatal for
    the whole dashboard load.
    """


class AuthenticationError(DashboardError):
    """No usable credentials are available for the query service."""


class TransportError(DashboardError):
    """
    The query service answered with a non-2xx status or an unreadable body.

    ``status`` is ``None`` when the request never produced an HTTP response
    (DNS failure, refused connection, ...).
    """

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status
        self.message = message

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"[{self.status}] {self.message}"


class RequestTimeoutError(DashboardError, TimeoutError):
    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(f"Request timed out after {timeout_seconds:g}s")
        self.timeout_seconds = timeout_seconds


class GraphQLError(DashboardError):
    """A 2xx response whose envelope carries an ``errors`` list."""

    def __init__(self, message: str, errors: Optional[Sequence[Dict[str, Any]]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors: List[Dict[str, Any]] = list(errors or [])


class MalformedRecordError(DashboardError):
    """
    A raw record could not be interpreted at all.

    Only raised inside the record parsers, which recover locally by logging and
    skipping the record. It never escapes an aggregation call.
    """


class DashboardLoadError(DashboardError):
    """Every query of the initial dashboard load failed."""

    def __init__(self, failures: Dict[str, str]) -> None:
        summary = "; ".join(f"{name}: {reason}" for name, reason in failures.items())
        super().__init__(f"Failed to load profile data ({summary})")
        self.failures = dict(failures)
