from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, Union

from .charts import render_audit_ratio, render_pass_fail_ratio, render_xp_by_project, render_xp_over_time
from .configuration import DashboardConfig
from .errors import DashboardError, DashboardLoadError, IdentityError, RequestTimeoutError
from .models import DashboardSnapshot, RatioResult
from .repository import ProfileRepository
from .scene import Scene

logger = logging.getLogger(__name__)


class ViewKey(str, Enum):
    XP_OVER_TIME = "xp-over-time"
    XP_BY_PROJECT = "xp-by-project"
    AUDIT_RATIO = "audit-ratio"
    PASS_FAIL_RATIO = "pass-fail-ratio"


VIEW_NAMES = {key.value for key in ViewKey}


class ViewState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    RENDERED = "rendered"
    FAILED = "failed"


@dataclass(frozen=True)
class ViewSpec:
    fetch: Callable[[ProfileRepository], Awaitable[Any]]
    render: Callable[..., Scene]
    default: Callable[[], Any]


VIEWS: Dict[ViewKey, ViewSpec] = {
    ViewKey.XP_OVER_TIME: ViewSpec(ProfileRepository.fetch_xp_over_time, render_xp_over_time, list),
    ViewKey.XP_BY_PROJECT: ViewSpec(ProfileRepository.fetch_xp_by_project, render_xp_by_project, list),
    ViewKey.AUDIT_RATIO: ViewSpec(ProfileRepository.fetch_audit_ratio, render_audit_ratio, RatioResult),
    ViewKey.PASS_FAIL_RATIO: ViewSpec(ProfileRepository.fetch_pass_fail_ratio, render_pass_fail_ratio, RatioResult),
}


class ViewCache:
    """
    Per-controller cache of aggregated view data.

    Entries live until ``invalidate``/``clear``; there is no TTL. Writes for the
    same key overwrite (last writer wins).
    """

    def __init__(self) -> None:
        self._entries: Dict[ViewKey, Any] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[ViewKey]:
        return iter(list(self._entries))

    def get(self, key: ViewKey) -> Optional[Any]:
        return self._entries.get(key)

    def put(self, key: ViewKey, value: Any) -> None:
        self._entries[key] = value

    def invalidate(self, key: ViewKey) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()


class DashboardController:
    """
    Orchestrates the dashboard: concurrent initial load, lazy per-view fetches
    and rendering of the active view.
    """

    def __init__(
        self,
        repository: ProfileRepository,
        config: Optional[DashboardConfig] = None,
        cache: Optional[ViewCache] = None,
    ) -> None:
        self.repository = repository
        self.config = config or repository.config
        self.cache = cache if cache is not None else ViewCache()
        self.states: Dict[ViewKey, ViewState] = {key: ViewState.IDLE for key in ViewKey}
        self.active_view: ViewKey = ViewKey.XP_OVER_TIME
        self.snapshot: Optional[DashboardSnapshot] = None

    @property
    def timeout_s(self) -> float:
        return self.config.request.timeout_seconds

    async def _bounded(self, operation: Awaitable[Any]) -> Any:
        try:
            return await asyncio.wait_for(operation, timeout=self.timeout_s)
        except asyncio.TimeoutError as exc:
            raise RequestTimeoutError(self.timeout_s) from exc

    async def load_dashboard(self) -> DashboardSnapshot:
        """
        Fetch every dashboard section concurrently.

        Identity resolution happens first and aborts the load with
        ``IdentityError``, also when it runs past the deadline. After that, each
        section degrades on its own to its default value; only when every
        section fails is ``DashboardLoadError`` raised.
        """

        try:
            await self._bounded(self.repository.resolve_user_id())
        except RequestTimeoutError as exc:
            raise IdentityError(f"Unable to determine user ID: {exc}") from exc

        repo = self.repository
        operations: Dict[str, Awaitable[Any]] = {
            "user": repo.fetch_user_info(),
            "total_xp": repo.fetch_total_xp(),
            ViewKey.XP_OVER_TIME.value: repo.fetch_xp_over_time(),
            ViewKey.XP_BY_PROJECT.value: repo.fetch_xp_by_project(),
            ViewKey.AUDIT_RATIO.value: repo.fetch_audit_ratio(),
            "completed_projects": repo.fetch_completed_projects(),
        }
        defaults: Dict[str, Any] = {
            "user": None,
            "total_xp": 0,
            ViewKey.XP_OVER_TIME.value: [],
            ViewKey.XP_BY_PROJECT.value: [],
            ViewKey.AUDIT_RATIO.value: RatioResult(),
            "completed_projects": [],
        }

        for name in operations:
            if name in VIEW_NAMES:
                self.states[ViewKey(name)] = ViewState.LOADING

        settled = await asyncio.gather(
            *(self._bounded(operation) for operation in operations.values()),
            return_exceptions=True,
        )

        values: Dict[str, Any] = {}
        failures: Dict[str, str] = {}
        for name, outcome in zip(operations, settled):
            if isinstance(outcome, IdentityError):
                raise outcome
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, DashboardError):
                    raise outcome
                logger.warning("Failed to load %s: %s", name, outcome)
                failures[name] = str(outcome)
                values[name] = defaults[name]
                if name in VIEW_NAMES:
                    self.states[ViewKey(name)] = ViewState.FAILED
                continue
            values[name] = outcome
            if name in VIEW_NAMES:
                self.cache.put(ViewKey(name), outcome)
                self.states[ViewKey(name)] = ViewState.READY

        if len(failures) == len(operations):
            raise DashboardLoadError(failures)

        self.snapshot = DashboardSnapshot(
            user=values["user"],
            total_xp=values["total_xp"],
            xp_over_time=values[ViewKey.XP_OVER_TIME.value],
            xp_by_project=values[ViewKey.XP_BY_PROJECT.value],
            audit_ratio=values[ViewKey.AUDIT_RATIO.value],
            completed_projects=values["completed_projects"],
            failures=failures,
        )
        return self.snapshot

    async def fetch_view(self, view: Union[ViewKey, str]) -> Any:
        """Return cached data for ``view``, fetching it once when missing."""

        key = ViewKey(view)
        if key in self.cache:
            return self.cache.get(key)

        spec = VIEWS[key]
        self.states[key] = ViewState.LOADING
        try:
            data = await self._bounded(spec.fetch(self.repository))
        except IdentityError:
            self.states[key] = ViewState.FAILED
            raise
        except DashboardError as exc:
            logger.warning("Failed to load %s: %s", key.value, exc)
            self.states[key] = ViewState.FAILED
            return spec.default()

        self.cache.put(key, data)
        self.states[key] = ViewState.READY
        return data

    def render(
        self,
        view: Union[ViewKey, str],
        data: Any,
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> Scene:
        key = ViewKey(view)
        return VIEWS[key].render(
            data,
            width or self.config.charts.default_width,
            height or self.config.charts.default_height,
        )

    async def select_view(
        self,
        view: Union[ViewKey, str],
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> Scene:
        key = ViewKey(view)
        data = await self.fetch_view(key)
        scene = self.render(key, data, width, height)
        self.active_view = key
        if self.states[key] is not ViewState.FAILED:
            self.states[key] = ViewState.RENDERED
        return scene

    def invalidate(self, view: Union[ViewKey, str]) -> bool:
        key = ViewKey(view)
        self.states[key] = ViewState.IDLE
        return self.cache.invalidate(key)

    def cached_views(self) -> List[ViewKey]:
        return list(self.cache)

