from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

# Settings are read once at import time, so point them at a throwaway database first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["API_PREFIX"] = "/api"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-that-is-long-enough"

import pytest

from guestbook_service import create_app
from guestbook_service.database import engine
from guestbook_service.models import Base
from guestbook_web.sdk import GuestbookClient


PASSWORD = "secret123"


class _TestResponse:
    """The subset of ``requests.Response`` the client reads."""

    def __init__(self, response) -> None:
        self.status_code = response.status_code
        self.content = response.get_data()
        self.text = response.get_data(as_text=True)
        self.reason = response.status

    def json(self) -> Any:
        return json.loads(self.text)


class FlaskTransport:
    """Routes client requests into the Flask test client instead of the network."""

    def __init__(self, test_client) -> None:
        self._client = test_client
        self.calls = []

    def request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> _TestResponse:
        self.calls.append((method, urlsplit(url).path, dict(params or {})))
        response = self._client.open(
            urlsplit(url).path,
            method=method,
            query_string=params or {},
            json=json,
            headers=headers or {},
        )
        return _TestResponse(response)


class _ServerErrorResponse:
    status_code = 500
    reason = "INTERNAL SERVER ERROR"
    text = '{"error": "internal", "message": "database unavailable"}'
    content = text.encode()

    def json(self) -> Any:
        return json.loads(self.text)


class FailingTransport:
    """Wraps a transport and answers 500 for the given ``(method, path)`` pairs."""

    def __init__(self, inner, *failing) -> None:
        self.inner = inner
        self.failing = set(failing)

    def request(self, method: str, url: str, **kwargs) -> Any:
        if (method, urlsplit(url).path) in self.failing:
            return _ServerErrorResponse()
        return self.inner.request(method, url, **kwargs)


@pytest.fixture
def app():
    Base.metadata.drop_all(bind=engine)
    application = create_app({"TESTING": True})
    yield application
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def api(app):
    return app.test_client()


@pytest.fixture
def make_client(app):
    def _make() -> GuestbookClient:
        return GuestbookClient("http://testserver", http=FlaskTransport(app.test_client()))

    return _make


@pytest.fixture
def client(make_client) -> GuestbookClient:
    return make_client()


def sign_up(api, email: str, password: str = PASSWORD) -> Dict[str, Any]:
    response = api.post("/api/auth/signup", json={"email": email, "password": password})
    assert response.status_code == 201, response.get_json()
    return response.get_json()


def auth_headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def post_entry(api, token: str, message: str, nickname: str = "tester"):
    return api.post(
        "/api/guestbook",
        json={"nickname": nickname, "message": message},
        headers=auth_headers(token),
    )
