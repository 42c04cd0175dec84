"""
Learner profile dashboard.

This package reduces a learner's raw event log (XP transactions, audits,
progress/result rows fetched from the platform's GraphQL service) into the
dashboard metrics and renders them as SVG chart scenes.
"""

from .charts import (  # noqa: F401
    render_audit_ratio,
    render_pass_fail_ratio,
    render_xp_by_project,
    render_xp_over_time,
)
from .client import GraphQLClient, QueryExecutor  # noqa: F401
from .configuration import DashboardConfig, load_dashboard_config  # noqa: F401
from .controller import DashboardController, ViewCache, ViewKey, ViewState  # noqa: F401
from .errors import (  # noqa: F401
    AuthenticationError,
    DashboardError,
    DashboardLoadError,
    GraphQLError,
    IdentityError,
    MalformedRecordError,
    RequestTimeoutError,
    TransportError,
)
from .models import (  # noqa: F401
    AggregatedPoint,
    AuditRecord,
    CompletedProject,
    CompletionRecord,
    DashboardSnapshot,
    ExclusionVocabulary,
    ProjectXp,
    RatioResult,
    TransactionRecord,
    UserInfo,
)
from .repository import ProfileRepository  # noqa: F401
from .scene import Scene  # noqa: F401
from .service import (  # noqa: F401
    audit_ratio,
    completed_projects,
    pass_fail_ratio,
    total_xp,
    xp_by_project,
    xp_over_time,
)
from .session import SessionStore  # noqa: F401
