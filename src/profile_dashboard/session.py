"""
In-memory session state: the bearer token and the resolved user id.

The platform has shipped several response shapes over time, so both the sign-in
token and the user id claim are looked up through explicit, ordered field lists.
These lists are a compatibility contract: add new names at the end.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Dict, Optional, Sequence

from .errors import AuthenticationError

logger = logging.getLogger(__name__)

TOKEN_FIELDS: Sequence[str] = ("token", "accessToken", "jwt")
USER_ID_CLAIMS: Sequence[str] = ("userId", "id", "user_id", "sub")


def _first_present(payload: Dict[str, Any], names: Sequence[str]) -> Any:
    for name in names:
        value = payload.get(name)
        if value not in (None, ""):
            return value
    return None


def extract_token(payload: Any) -> Optional[str]:
    """
    Pull the JWT out of a sign-in response.

    Accepts a JSON object (``TOKEN_FIELDS`` in priority order), a bare JSON
    string, or the raw token text.
    """

    if isinstance(payload, str):
        token = payload.strip().strip('"')
        return token or None
    if isinstance(payload, dict):
        value = _first_present(payload, TOKEN_FIELDS)
        return str(value) if value is not None else None
    return None


def decode_token_payload(token: str) -> Dict[str, Any]:
    """Decode the claims segment of a JWT. The signature is not verified."""

    try:
        segment = token.split(".")[1]
        padded = segment + "=" * (-len(segment) % 4)
        claims = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8"))
    except (IndexError, ValueError, UnicodeError) as exc:
        logger.debug("Could not decode token payload: %s", exc)
        return {}
    return claims if isinstance(claims, dict) else {}


def extract_user_id(token: str) -> Optional[int]:
    value = _first_present(decode_token_payload(token), USER_ID_CLAIMS)
    return _to_user_id(value)


def _to_user_id(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


class SessionStore:
    """
    Holds the credentials of one dashboard session.

    Stands in for the browser storage the platform UI relies on; nothing is
    persisted beyond the lifetime of the instance.
    """

    def __init__(self, token: Optional[str] = None, user_id: Optional[Any] = None) -> None:
        self._token: Optional[str] = None
        self._user_id: Optional[str] = None
        if token:
            self.set_token(token)
        if user_id is not None:
            self._user_id = str(user_id)

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return bool(self._token)

    def set_token(self, token: str) -> None:
        self._token = token
        user_id = extract_user_id(token)
        if user_id is not None:
            self._user_id = str(user_id)

    def current_user_id(self) -> Optional[int]:
        if self._user_id is None:
            return None
        user_id = _to_user_id(self._user_id)
        if user_id is None:
            logger.warning("Ignoring stored user id %r: not an integer", self._user_id)
        return user_id

    def remember_user_id(self, user_id: int) -> None:
        self._user_id = str(user_id)

    def auth_header(self) -> Dict[str, str]:
        if not self._token:
            raise AuthenticationError("No authentication token found")
        return {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
        }

    def clear(self) -> None:
        self._token = None
        self._user_id = None
