from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, Header, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel

from .client import GraphQLClient, QueryExecutor
from .configuration import DashboardConfig, load_dashboard_config
from .controller import VIEW_NAMES, DashboardController
from .errors import AuthenticationError, DashboardLoadError, IdentityError
from .repository import ProfileRepository
from .session import SessionStore

logger = logging.getLogger(__name__)

ExecutorFactory = Callable[[DashboardConfig, SessionStore], QueryExecutor]


class ControllerRegistry:
    """
    One ``DashboardController`` (and therefore one view cache) per bearer token.

    At most ``config.request.max_sessions`` controllers are kept; the least
    recently used one is dropped, together with its cache, to make room.
    """

    def __init__(self, config: DashboardConfig, executor_factory: Optional[ExecutorFactory] = None):
        self.config = config
        self.executor_factory: ExecutorFactory = executor_factory or GraphQLClient
        self._controllers: OrderedDict[str, DashboardController] = OrderedDict()

    def get(self, token: str) -> DashboardController:
        controller = self._controllers.get(token)
        if controller is not None:
            self._controllers.move_to_end(token)
        else:
            session = SessionStore(token=token)
            executor = self.executor_factory(self.config, session)
            repository = ProfileRepository(executor, session, self.config)
            controller = DashboardController(repository, self.config)
            self._controllers[token] = controller
            self._evict()
        return controller

    def _evict(self) -> None:
        limit = max(1, self.config.request.max_sessions)
        while len(self._controllers) > limit:
            self._controllers.popitem(last=False)
            logger.debug("Dropping least recently used dashboard session (%d kept)", limit)

    def discard(self, token: str) -> None:
        self._controllers.pop(token, None)

    def __contains__(self, token: object) -> bool:
        return token in self._controllers

    def __len__(self) -> int:
        return len(self._controllers)


app = FastAPI(title="Learner Profile Dashboard API", version="0.1.0")
registry = ControllerRegistry(load_dashboard_config())


class DashboardResponse(BaseModel):
    data: Dict[str, Any]
    views: Dict[str, str]


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="No authentication token found.")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Expected a bearer token.")
    return token.strip()


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/dashboard", response_model=DashboardResponse)
async def dashboard_endpoint(authorization: Optional[str] = Header(None)) -> DashboardResponse:
    token = _bearer_token(authorization)
    controller = registry.get(token)
    try:
        snapshot = await controller.load_dashboard()
    except (IdentityError, AuthenticationError) as exc:
        registry.discard(token)
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except DashboardLoadError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return DashboardResponse(
        data=snapshot.as_dict(),
        views={key.value: state.value for key, state in controller.states.items()},
    )


@app.get("/charts/{view}")
async def chart_endpoint(
    view: str,
    width: Optional[int] = Query(None, ge=100, le=4000),
    height: Optional[int] = Query(None, ge=100, le=4000),
    authorization: Optional[str] = Header(None),
) -> Response:
    if view not in VIEW_NAMES:
        raise HTTPException(status_code=404, detail=f"Unknown graph type: {view}")
    token = _bearer_token(authorization)
    controller = registry.get(token)
    try:
        scene = await controller.select_view(view, width=width, height=height)
    except (IdentityError, AuthenticationError) as exc:
        registry.discard(token)
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    return Response(content=scene.to_svg(), media_type="image/svg+xml")


@app.delete("/charts/{view}/cache")
async def invalidate_chart(view: str, authorization: Optional[str] = Header(None)) -> Dict[str, Any]:
    if view not in VIEW_NAMES:
        raise HTTPException(status_code=404, detail=f"Unknown graph type: {view}")
    token = _bearer_token(authorization)
    removed = registry.get(token).invalidate(view)
    return {"view": view, "invalidated": removed}
