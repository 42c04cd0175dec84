from __future__ import annotations

import asyncio
import base64
import json
import logging
import socket
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Protocol

from .configuration import DashboardConfig
from .errors import AuthenticationError, GraphQLError, RequestTimeoutError, TransportError
from .session import SessionStore, extract_token

logger = logging.getLogger(__name__)


class QueryExecutor(Protocol):
    """Anything able to run a GraphQL document and return its ``data`` mapping."""

    async def execute_query(
        self, query: str, variables: Optional[Mapping[str, Any]] = None
    ) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class HttpResponse:
    status: int
    body: str
    content_type: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def extract_error_message(body: str) -> Optional[str]:
    """Best-effort error text from a JSON (``message``/``error``/``errors``) or plain-text body."""

    text = (body or "").strip()
    if not text:
        return None
    try:
        parsed = json.loads(text)
    except ValueError:
        return text[:500]
    if isinstance(parsed, dict):
        for key in ("message", "error"):
            value = parsed.get(key)
            if isinstance(value, str) and value:
                return value
        errors = parsed.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            message = errors[0].get("message")
            if isinstance(message, str) and message:
                return message
    if isinstance(parsed, str) and parsed:
        return parsed
    return None


def _default_status_message(status: int) -> str:
    if status == 401:
        return "Authentication expired. Please login again."
    if status == 403:
        return "Access forbidden."
    if status >= 500:
        return "Server error. Please try again later."
    return f"GraphQL request failed with status {status}"


def _post(url: str, data: bytes, headers: Dict[str, str], timeout_s: float) -> HttpResponse:
    req = urllib.request.Request(url, data=data, headers=headers, method="POST")
    try:
        with urllib.request.urlopen(req, timeout=timeout_s) as resp:
            return HttpResponse(
                status=resp.status,
                body=resp.read().decode("utf-8", errors="replace"),
                content_type=resp.headers.get("Content-Type", ""),
            )
    except urllib.error.HTTPError as exc:
        body = exc.read().decode("utf-8", errors="replace") if exc.fp else ""
        return HttpResponse(status=exc.code, body=body, content_type=exc.headers.get("Content-Type", "") if exc.headers else "")
    except urllib.error.URLError as exc:
        if isinstance(exc.reason, (socket.timeout, TimeoutError)):
            raise RequestTimeoutError(timeout_s) from exc
        raise TransportError(f"Network error: could not connect to server ({exc.reason})") from exc
    except (socket.timeout, TimeoutError) as exc:
        raise RequestTimeoutError(timeout_s) from exc


class GraphQLClient:
    """
    Reference ``QueryExecutor`` talking to the platform's GraphQL endpoint.

    urllib is blocking, so every request runs in a worker thread and is bounded
    by ``config.request.timeout_seconds``.
    """

    def __init__(self, config: DashboardConfig, session: SessionStore) -> None:
        self.config = config
        self.session = session

    @property
    def timeout_s(self) -> float:
        return self.config.request.timeout_seconds

    async def _send(self, url: str, payload: bytes, headers: Dict[str, str]) -> HttpResponse:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(_post, url, payload, headers, self.timeout_s),
                timeout=self.timeout_s,
            )
        except asyncio.TimeoutError as exc:
            raise RequestTimeoutError(self.timeout_s) from exc

    async def execute_query(
        self, query: str, variables: Optional[Mapping[str, Any]] = None
    ) -> Dict[str, Any]:
        headers = self.session.auth_header()
        payload = json.dumps({"query": query, "variables": dict(variables or {})}).encode("utf-8")
        response = await self._send(self.config.endpoint.graphql_endpoint, payload, headers)

        if not response.ok:
            if response.status == 401:
                self.session.clear()
            message = extract_error_message(response.body) or _default_status_message(response.status)
            raise TransportError(message, status=response.status)

        return self._parse_envelope(response)

    @staticmethod
    def _parse_envelope(response: HttpResponse) -> Dict[str, Any]:
        try:
            envelope = json.loads(response.body)
        except ValueError as exc:
            raise TransportError("Invalid response from server", status=response.status) from exc
        if not isinstance(envelope, dict):
            raise TransportError("Invalid response from server", status=response.status)

        errors = envelope.get("errors")
        if errors:
            errors = errors if isinstance(errors, list) else [errors]
            first = errors[0] if isinstance(errors[0], dict) else {}
            logger.warning("GraphQL errors: %s", errors)
            raise GraphQLError(first.get("message") or "GraphQL query error", errors)

        data = envelope.get("data")
        return data if isinstance(data, dict) else {}

    async def sign_in(self, username: str, password: str) -> str:
        """Exchange Basic credentials for a JWT and store it in the session."""

        credentials = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
        headers = {"Authorization": f"Basic {credentials}", "Content-Type": "application/json"}
        response = await self._send(self.config.endpoint.signin_endpoint, b"", headers)

        if response.status == 401:
            raise AuthenticationError("Invalid username/email or password")
        if not response.ok:
            message = extract_error_message(response.body) or f"Authentication failed with status {response.status}"
            raise TransportError(message, status=response.status)

        try:
            parsed: Any = json.loads(response.body)
        except ValueError:
            parsed = response.body
        token = extract_token(parsed)
        if not token:
            raise AuthenticationError("No token received from server")

        self.session.set_token(token)
        return token
