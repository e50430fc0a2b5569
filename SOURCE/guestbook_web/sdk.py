"""
Client for the guestbook backend.

Mirrors the shape of a hosted-backend SDK: an ``auth`` namespace with
session-change subscriptions, and ``table(name)`` query builders. Calls never
raise for backend or transport failures; they return an ``APIResponse``
holding either ``data`` or an ``error``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import requests


logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
USER_UPDATED = "USER_UPDATED"


@dataclass
class APIError:
    message: str
    code: Optional[str] = None
    status: Optional[int] = None
    details: Any = None


@dataclass
class APIResponse:
    data: Any = None
    error: Optional[APIError] = None


@dataclass
class User:
    id: str
    email: str
    user_metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "User":
        return cls(
            id=payload["id"],
            email=payload.get("email", ""),
            user_metadata=dict(payload.get("user_metadata") or {}),
        )


@dataclass
class Session:
    access_token: str
    user: User


AuthCallback = Callable[[str, Optional[Session]], None]


class Subscription:
    def __init__(self, callback: AuthCallback, listeners: List[AuthCallback]) -> None:
        self.callback = callback
        self._listeners = listeners

    def unsubscribe(self) -> None:
        if self.callback in self._listeners:
            self._listeners.remove(self.callback)


def _error_from_response(response) -> APIError:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("error") or payload.get("msg")
        return APIError(
            message=message or f"Request failed with status {response.status_code}",
            code=payload.get("error"),
            status=response.status_code,
            details=payload.get("details"),
        )
    body = response.text or getattr(response, "reason", None) or "Unknown error"
    return APIError(message=body, status=response.status_code)


def _to_api_response(response, key: Optional[str] = None) -> APIResponse:
    if response.status_code >= 400:
        return APIResponse(error=_error_from_response(response))

    if not response.content:
        return APIResponse(data=None)

    try:
        payload = response.json()
    except ValueError as exc:
        return APIResponse(
            error=APIError(
                message=f"Invalid JSON response: {exc}. Body: {response.text!r}",
                status=response.status_code,
            )
        )
    if key is not None and isinstance(payload, dict):
        return APIResponse(data=payload.get(key))
    return APIResponse(data=payload)


class AuthClient:
    def __init__(self, client: "GuestbookClient") -> None:
        self._client = client
        self._session: Optional[Session] = None
        self._listeners: List[AuthCallback] = []

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def access_token(self) -> Optional[str]:
        return self._session.access_token if self._session else None

    def on_auth_state_change(self, callback: AuthCallback) -> Subscription:
        self._listeners.append(callback)
        return Subscription(callback, self._listeners)

    def _notify(self, event: str) -> None:
        for callback in list(self._listeners):
            callback(event, self._session)

    def _start_session(self, response: APIResponse) -> APIResponse:
        if response.error:
            return response
        payload = response.data or {}
        self._session = Session(
            access_token=payload["access_token"],
            user=User.from_payload(payload["user"]),
        )
        self._notify(SIGNED_IN)
        return APIResponse(data=self._session)

    def sign_in_with_password(self, email: str, password: str) -> APIResponse:
        response = self._client.request(
            "POST", "/auth/token", payload={"email": email, "password": password}
        )
        return self._start_session(response)

    def sign_up(self, email: str, password: str) -> APIResponse:
        response = self._client.request(
            "POST", "/auth/signup", payload={"email": email, "password": password}
        )
        return self._start_session(response)

    def sign_out(self) -> APIResponse:
        """Revoke the session server-side; the local session is dropped regardless."""
        response = APIResponse()
        if self._session is not None:
            response = self._client.request("POST", "/auth/logout")
            if response.error:
                logger.warning("Sign-out request failed: %s", response.error.message)
        self._session = None
        self._notify(SIGNED_OUT)
        return APIResponse(error=response.error)

    def get_user(self) -> APIResponse:
        if self._session is None:
            return APIResponse(data=None)
        response = self._client.request("GET", "/auth/user", key="user")
        if response.error:
            return response
        user = User.from_payload(response.data)
        self._session.user = user
        return APIResponse(data=user)

    def update_user(self, data: Dict[str, Any]) -> APIResponse:
        if self._session is None:
            return APIResponse(error=APIError(message="Auth session missing!", code="no-session"))
        response = self._client.request("PUT", "/auth/user", payload={"data": data}, key="user")
        if response.error:
            return response
        user = User.from_payload(response.data)
        self._session.user = user
        self._notify(USER_UPDATED)
        return APIResponse(data=user)


class QueryBuilder:
    """Builds one request against a table; finish with ``execute()``."""

    def __init__(self, client: "GuestbookClient", table: str) -> None:
        self._client = client
        self._table = table
        self._method = "GET"
        self._params: Dict[str, str] = {}
        self._payload: Optional[Dict[str, Any]] = None

    def select(self, columns: str = "*") -> "QueryBuilder":
        self._method = "GET"
        self._params["select"] = "".join(columns.split())
        return self

    def insert(self, row: Dict[str, Any]) -> "QueryBuilder":
        self._method = "POST"
        self._payload = row
        return self

    def update(self, values: Dict[str, Any]) -> "QueryBuilder":
        self._method = "PATCH"
        self._payload = values
        return self

    def delete(self) -> "QueryBuilder":
        self._method = "DELETE"
        return self

    def eq(self, column: str, value: Any) -> "QueryBuilder":
        self._params[column] = f"eq.{value}"
        return self

    def order(self, column: str, desc: bool = False) -> "QueryBuilder":
        self._params["order"] = f"{column}.{'desc' if desc else 'asc'}"
        return self

    def execute(self) -> APIResponse:
        return self._client.request(
            self._method,
            f"/{self._table}",
            params=self._params,
            payload=self._payload,
            key="data",
        )


class GuestbookClient:
    def __init__(
        self,
        base_url: str,
        api_prefix: str = "/api",
        timeout: float = 30,
        http: Optional[Any] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_prefix = api_prefix
        self.timeout = timeout
        self.http = http or requests.Session()
        self.auth = AuthClient(self)

    def api_url(self, path: str) -> str:
        return f"{self.base_url}{self.api_prefix}{path}"

    def table(self, name: str) -> QueryBuilder:
        return QueryBuilder(self, name)

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
        key: Optional[str] = None,
    ) -> APIResponse:
        headers = {}
        if payload is not None:
            headers["Content-Type"] = "application/json"
        token = self.auth.access_token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            response = self.http.request(
                method,
                self.api_url(path),
                params=params or {},
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            return APIResponse(error=APIError(message=str(exc), code="network-error"))
        return _to_api_response(response, key=key)


__all__ = [
    "APIError",
    "APIResponse",
    "AuthClient",
    "GuestbookClient",
    "QueryBuilder",
    "Session",
    "Subscription",
    "User",
    "SIGNED_IN",
    "SIGNED_OUT",
    "USER_UPDATED",
]
