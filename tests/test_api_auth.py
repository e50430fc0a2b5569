from __future__ import annotations

from conftest import PASSWORD, auth_headers, sign_up


def test_sign_up_returns_session(api) -> None:
    body = sign_up(api, "alice@example.com")

    assert body["access_token"]
    assert body["user"]["email"] == "alice@example.com"
    assert body["user"]["user_metadata"] == {}
    assert body["user"]["id"]


def test_sign_up_twice_is_rejected(api) -> None:
    sign_up(api, "alice@example.com")

    response = api.post(
        "/api/auth/signup", json={"email": "Alice@example.com", "password": PASSWORD}
    )

    assert response.status_code == 422
    assert response.get_json()["message"] == "User already registered"


def test_sign_up_rejects_short_password(api) -> None:
    response = api.post("/api/auth/signup", json={"email": "a@example.com", "password": "123"})

    assert response.status_code == 400
    body = response.get_json()
    assert body["error"] == "invalid-request"
    assert body["message"] == "Password should be at least 6 characters"


def test_sign_up_rejects_malformed_email(api) -> None:
    response = api.post("/api/auth/signup", json={"email": "not-an-email", "password": PASSWORD})

    assert response.status_code == 400
    assert response.get_json()["message"] == "Unable to validate email address: invalid format"


def test_sign_in_with_valid_credentials(api) -> None:
    created = sign_up(api, "alice@example.com")

    response = api.post(
        "/api/auth/token", json={"email": "alice@example.com", "password": PASSWORD}
    )

    assert response.status_code == 200
    body = response.get_json()
    assert body["user"]["id"] == created["user"]["id"]
    assert body["user"]["last_sign_in_at"] is not None


def test_sign_in_with_wrong_password(api) -> None:
    sign_up(api, "alice@example.com")

    response = api.post(
        "/api/auth/token", json={"email": "alice@example.com", "password": "wrong-password"}
    )

    assert response.status_code == 400
    assert response.get_json() == {
        "error": "invalid_credentials",
        "message": "Invalid login credentials",
    }


def test_get_user_requires_token(api) -> None:
    response = api.get("/api/auth/user")

    assert response.status_code == 401
    assert response.get_json()["error"] == "not-authenticated"


def test_update_user_merges_metadata(api) -> None:
    token = sign_up(api, "alice@example.com")["access_token"]

    api.put("/api/auth/user", json={"data": {"theme": "dark"}}, headers=auth_headers(token))
    response = api.put(
        "/api/auth/user", json={"data": {"nickname": "  Alice  "}}, headers=auth_headers(token)
    )

    assert response.status_code == 200
    assert response.get_json()["user"]["user_metadata"] == {"theme": "dark", "nickname": "Alice"}
    fetched = api.get("/api/auth/user", headers=auth_headers(token)).get_json()
    assert fetched["user"]["user_metadata"]["nickname"] == "Alice"


def test_update_user_rejects_blank_nickname(api) -> None:
    token = sign_up(api, "alice@example.com")["access_token"]

    response = api.put(
        "/api/auth/user", json={"data": {"nickname": "   "}}, headers=auth_headers(token)
    )

    assert response.status_code == 400


def test_logout_revokes_token(api) -> None:
    token = sign_up(api, "alice@example.com")["access_token"]

    response = api.post("/api/auth/logout", headers=auth_headers(token))
    assert response.status_code == 200

    response = api.get("/api/auth/user", headers=auth_headers(token))
    assert response.status_code == 401
    assert response.get_json()["error"] == "token-revoked"


def test_health(api) -> None:
    assert api.get("/health").get_json() == {"status": "ok"}
