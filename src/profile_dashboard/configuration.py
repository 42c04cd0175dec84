"""
Dashboard configuration.

Every section is a pydantic model with sensible defaults. ``load_dashboard_config``
layers a ``configurable`` mapping (e.g. request overrides) and then environment
variables on top of those defaults.
"""

from __future__ import annotations

import os
from typing import Any, Mapping, Optional, Tuple

from pydantic import BaseModel

from .models import DEFAULT_EXCLUSIONS, ExclusionVocabulary


class EndpointConfig(BaseModel):
    domain: str = "https://learn.example.com"
    """Base domain of the learning platform"""

    graphql_path: str = "/api/graphql-engine/v1/graphql"
    signin_path: str = "/api/auth/signin"

    cors_proxy: Optional[str] = None
    """Optional proxy prefix, e.g. ``https://corsproxy.io``"""

    use_proxy: bool = False

    def _resolve(self, path: str) -> str:
        direct = f"{self.domain.rstrip('/')}{path}"
        if self.use_proxy and self.cors_proxy:
            return f"{self.cors_proxy.rstrip('/')}/?{direct}"
        return direct

    @property
    def graphql_endpoint(self) -> str:
        return self._resolve(self.graphql_path)

    @property
    def signin_endpoint(self) -> str:
        return self._resolve(self.signin_path)


class RequestConfig(BaseModel):
    timeout_seconds: float = 30.0
    """Deadline applied to every network-bound operation"""

    max_sessions: int = 256
    """Dashboard sessions kept in memory by the HTTP server; the least recently used is dropped first"""


class ChartConfig(BaseModel):
    default_width: int = 800
    default_height: int = 400
    top_projects: int = 10
    """Length of the XP-by-project ranking"""


class ExclusionConfig(BaseModel):
    substrings: Tuple[str, ...] = tuple(DEFAULT_EXCLUSIONS.substrings)
    """Case-insensitive substrings that remove a project from the completed list"""

    def to_vocabulary(self) -> ExclusionVocabulary:
        return ExclusionVocabulary(substrings=tuple(self.substrings))


class DashboardConfig(BaseModel):
    """Configuration for the learner profile dashboard."""

    endpoint: EndpointConfig = EndpointConfig()
    request: RequestConfig = RequestConfig()
    charts: ChartConfig = ChartConfig()
    exclusions: ExclusionConfig = ExclusionConfig()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def load_dashboard_config(configurable: Optional[Mapping[str, Any]] = None) -> DashboardConfig:
    cfg = DashboardConfig()
    configurable = configurable or {}

    endpoint_cfg = configurable.get("endpoint", {})
    cfg.endpoint = EndpointConfig(
        domain=os.getenv("DASHBOARD_DOMAIN", endpoint_cfg.get("domain", cfg.endpoint.domain)),
        graphql_path=endpoint_cfg.get("graphql_path", cfg.endpoint.graphql_path),
        signin_path=endpoint_cfg.get("signin_path", cfg.endpoint.signin_path),
        cors_proxy=os.getenv("DASHBOARD_CORS_PROXY", endpoint_cfg.get("cors_proxy", cfg.endpoint.cors_proxy)),
        use_proxy=_env_bool("DASHBOARD_USE_PROXY", endpoint_cfg.get("use_proxy", cfg.endpoint.use_proxy)),
    )

    request_cfg = configurable.get("request", {})
    cfg.request = RequestConfig(
        timeout_seconds=_env_float(
            "DASHBOARD_REQUEST_TIMEOUT",
            request_cfg.get("timeout_seconds", cfg.request.timeout_seconds),
        ),
        max_sessions=_env_int("DASHBOARD_MAX_SESSIONS", request_cfg.get("max_sessions", cfg.request.max_sessions)),
    )

    charts_cfg = configurable.get("charts", {})
    cfg.charts = ChartConfig(
        default_width=_env_int("DASHBOARD_CHART_WIDTH", charts_cfg.get("default_width", cfg.charts.default_width)),
        default_height=_env_int("DASHBOARD_CHART_HEIGHT", charts_cfg.get("default_height", cfg.charts.default_height)),
        top_projects=charts_cfg.get("top_projects", cfg.charts.top_projects),
    )

    exclusion_cfg = configurable.get("exclusions", {})
    cfg.exclusions = ExclusionConfig(
        substrings=_env_list(
            "DASHBOARD_EXCLUSIONS",
            tuple(exclusion_cfg.get("substrings", cfg.exclusions.substrings)),
        ),
    )

    return cfg
