from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from . import queries
from .client import QueryExecutor
from .configuration import DashboardConfig
from .dataset import parse_audits, parse_completions, parse_transactions, parse_user_info
from .errors import DashboardError, IdentityError
from .models import AggregatedPoint, CompletedProject, ProjectXp, RatioResult, UserInfo
from .service import (
    PASS_GRADE,
    audit_ratio,
    collect_completed_projects,
    finalize_completed_projects,
    pass_fail_ratio,
    total_xp,
    xp_by_project,
    xp_over_time,
)
from .session import SessionStore

logger = logging.getLogger(__name__)


class ProfileRepository:
    """
    Load one learner's records from the query service and aggregate them.

    Every per-user fetch resolves the numeric user id first and fails fast with
    ``IdentityError`` when it cannot be determined; no partial aggregation is
    attempted without it.
    """

    def __init__(self, executor: QueryExecutor, session: SessionStore, config: Optional[DashboardConfig] = None):
        self.executor = executor
        self.session = session
        self.config = config or DashboardConfig()
        self.vocabulary = self.config.exclusions.to_vocabulary()

    async def fetch_user_info(self) -> Optional[UserInfo]:
        data = await self.executor.execute_query(queries.USER_INFO)
        user = parse_user_info(data.get("user"))
        if user is not None and self.session.current_user_id() is None:
            self.session.remember_user_id(user.id)
        return user

    async def resolve_user_id(self) -> int:
        user_id = self.session.current_user_id()
        if user_id is not None:
            return user_id

        try:
            user = await self.fetch_user_info()
        except DashboardError as exc:
            raise IdentityError(f"Unable to determine user ID: {exc}") from exc
        if user is None:
            raise IdentityError("Unable to determine user ID")

        self.session.remember_user_id(user.id)
        return user.id

    async def _query_for_user(self, query: str, **extra: Any) -> Dict[str, Any]:
        user_id = await self.resolve_user_id()
        return await self.executor.execute_query(query, {"userId": user_id, **extra})

    async def fetch_total_xp(self) -> int:
        data = await self._query_for_user(queries.TOTAL_XP)
        return total_xp(parse_transactions(data.get("transaction")))

    async def fetch_xp_over_time(self) -> List[AggregatedPoint]:
        data = await self._query_for_user(queries.XP_OVER_TIME)
        return xp_over_time(parse_transactions(data.get("transaction")))

    async def fetch_xp_by_project(self) -> List[ProjectXp]:
        data = await self._query_for_user(queries.XP_BY_PROJECT)
        return xp_by_project(parse_transactions(data.get("transaction")), limit=self.config.charts.top_projects)

    async def fetch_audit_ratio(self) -> RatioResult:
        data = await self._query_for_user(queries.AUDIT_RATIO)
        return audit_ratio(parse_audits(data.get("audit")))

    async def fetch_pass_fail_ratio(self) -> RatioResult:
        data = await self._query_for_user(queries.PASS_FAIL_RESULTS)
        return pass_fail_ratio(parse_completions(data.get("result"), "result"))

    async def fetch_completed_projects(self) -> List[CompletedProject]:
        data = await self._query_for_user(queries.COMPLETED_PROJECTS, minGrade=PASS_GRADE)
        stage = collect_completed_projects(
            parse_completions(data.get("progress"), "progress"),
            parse_completions(data.get("result"), "result"),
            self.vocabulary,
        )
        if not stage.needs_fallback:
            return finalize_completed_projects(stage, vocabulary=self.vocabulary)

        logger.info(
            "No completed projects in progress/result (%d rows, %d excluded), falling back to XP transactions",
            stage.considered,
            stage.excluded,
        )
        try:
            fallback = await self._query_for_user(queries.PROJECT_XP_FALLBACK)
        except IdentityError:
            raise
        except DashboardError as exc:
            logger.warning("Project XP fallback query failed: %s", exc)
            return []
        return finalize_completed_projects(stage, parse_transactions(fallback.get("transaction")), self.vocabulary)
