"""
End-to-end tests for the /api/v1/users routes.
"""

import os

from tests.helpers import PNG_BYTES, login_user, register_user, stored_user

API = "/api/v1/users"


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def set_cookie_headers(response) -> list[str]:
    return response.headers.get_list("set-cookie")


class TestRegister:
    def test_register_returns_sanitized_user(self, client):
        response = register_user(client)
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["statusCode"] == 201
        data = body["data"]
        assert data["userName"] == "ab"
        assert data["email"] == "a@b.com"
        assert data["fullName"] == "A B"
        assert data["avatar"].startswith("/media/")
        assert "password" not in data
        assert "passwordHash" not in data
        assert "refreshToken" not in data

    def test_password_stored_hashed(self, client, db):
        register_user(client)
        user = stored_user(db, "ab")
        assert user.password_hash != "secret123"

    def test_avatar_is_served(self, client):
        avatar = register_user(client).json()["data"]["avatar"]
        assert client.get(avatar).status_code == 200

    def test_missing_fields(self, client):
        response = register_user(client, full_name="  ")
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "All fields are required"

    def test_missing_avatar(self, client):
        response = register_user(client, with_avatar=False)
        assert response.status_code == 400
        assert response.json()["message"] == "Avatar file is required"

    def test_duplicate_email(self, client):
        register_user(client)
        response = register_user(client, user_name="different")
        assert response.status_code == 409

    def test_duplicate_user_name_case_insensitive(self, client):
        register_user(client)
        response = register_user(client, user_name="AB", email="x@y.com")
        assert response.status_code == 409

    def test_rejected_cover_leaves_no_files(self, client, settings):
        response = client.post(
            "/api/v1/users/register",
            data={
                "fullName": "A B",
                "email": "a@b.com",
                "userName": "ab",
                "password": "secret123",
            },
            files={
                "avatar": ("avatar.png", PNG_BYTES, "image/png"),
                "coverImage": ("cover.txt", b"not an image", "text/plain"),
            },
        )
        assert response.status_code == 400
        assert os.listdir(settings.MEDIA_ROOT) == []
        assert login_user(client).status_code == 404

    def test_cover_image(self, client):
        data = register_user(client, cover=True).json()["data"]
        assert data["coverImage"].startswith("/media/")


class TestLogin:
    def test_login_sets_secure_http_only_cookies(self, client):
        register_user(client)
        response = login_user(client)
        assert response.status_code == 200

        cookies = set_cookie_headers(response)
        for name in ("accessToken", "refreshToken"):
            header = next(c for c in cookies if c.startswith(f"{name}="))
            assert "httponly" in header.lower()
            assert "secure" in header.lower()

        data = response.json()["data"]
        assert data["user"]["userName"] == "ab"
        assert "password" not in data["user"]
        assert data["accessToken"] and data["refreshToken"]

    def test_returned_refresh_token_is_stored(self, client, db):
        register_user(client)
        data = login_user(client, email="A@B.com").json()["data"]
        assert stored_user(db, "ab").refresh_token == data["refreshToken"]

    def test_wrong_password(self, client):
        register_user(client)
        response = login_user(client, password="wrong-password")
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_unknown_user(self, client):
        response = login_user(client, userName="nobody")
        assert response.status_code == 404

    def test_identifier_required(self, client):
        response = client.post(f"{API}/login", json={"password": "secret123"})
        assert response.status_code == 400


class TestRefresh:
    def test_refresh_from_cookie(self, client):
        register_user(client)
        first = login_user(client).json()["data"]
        response = client.post(f"{API}/refresh-token")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["refreshToken"] != first["refreshToken"]
        assert client.cookies.get("refreshToken") == data["refreshToken"]

    def test_refresh_from_body_and_reuse_rejected(self, client):
        register_user(client)
        first = login_user(client).json()["data"]
        client.cookies.clear()

        response = client.post(
            f"{API}/refresh-token", json={"refreshToken": first["refreshToken"]}
        )
        assert response.status_code == 200
        client.cookies.clear()

        reused = client.post(
            f"{API}/refresh-token", json={"refreshToken": first["refreshToken"]}
        )
        assert reused.status_code == 401
        assert reused.json()["errors"] == ["TokenExpiredOrReused"]

    def test_missing_token(self, client):
        response = client.post(f"{API}/refresh-token")
        assert response.status_code == 401
        assert response.json()["errors"] == ["Unauthorized"]

    def test_access_token_is_not_accepted(self, client):
        register_user(client)
        data = login_user(client).json()["data"]
        client.cookies.clear()
        response = client.post(
            f"{API}/refresh-token", json={"refreshToken": data["accessToken"]}
        )
        assert response.status_code == 401
        assert response.json()["errors"] == ["InvalidToken"]


class TestLogout:
    def test_logout_clears_session(self, client, db):
        register_user(client)
        data = login_user(client).json()["data"]

        response = client.post(f"{API}/logout")
        assert response.status_code == 200
        cleared = set_cookie_headers(response)
        assert any(c.startswith("accessToken=") for c in cleared)
        assert any(c.startswith("refreshToken=") for c in cleared)
        assert stored_user(db, "ab").refresh_token is None

        client.cookies.clear()
        response = client.post(
            f"{API}/refresh-token", json={"refreshToken": data["refreshToken"]}
        )
        assert response.status_code == 401

    def test_logout_twice(self, client):
        register_user(client)
        token = login_user(client).json()["data"]["accessToken"]
        client.cookies.clear()
        assert client.post(f"{API}/logout", headers=bearer(token)).status_code == 200
        assert client.post(f"{API}/logout", headers=bearer(token)).status_code == 200

    def test_logout_requires_auth(self, client):
        assert client.post(f"{API}/logout").status_code == 401


class TestAccount:
    def test_current_user_with_bearer(self, client):
        register_user(client)
        token = login_user(client).json()["data"]["accessToken"]
        client.cookies.clear()
        response = client.get(f"{API}/current-user", headers=bearer(token))
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["userName"] == "ab"
        assert "refreshToken" not in data

    def test_current_user_rejects_refresh_token(self, client):
        register_user(client)
        token = login_user(client).json()["data"]["refreshToken"]
        client.cookies.clear()
        response = client.get(f"{API}/current-user", headers=bearer(token))
        assert response.status_code == 401

    def test_change_password(self, client, db):
        register_user(client)
        old_refresh = login_user(client).json()["data"]["refreshToken"]

        wrong = client.post(
            f"{API}/change-password",
            json={"oldPassword": "nope", "newPassword": "n3w-secret"},
        )
        assert wrong.status_code == 401

        response = client.post(
            f"{API}/change-password",
            json={"oldPassword": "secret123", "newPassword": "n3w-secret"},
        )
        assert response.status_code == 200
        assert stored_user(db, "ab").refresh_token is None

        client.cookies.clear()
        stale = client.post(f"{API}/refresh-token", json={"refreshToken": old_refresh})
        assert stale.status_code == 401
        assert login_user(client, password="secret123").status_code == 401
        assert login_user(client, password="n3w-secret").status_code == 200

    def test_update_account(self, client):
        register_user(client)
        login_user(client)
        response = client.patch(
            f"{API}/update-account", json={"fullName": "Alice B", "email": "alice@b.com"}
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["fullName"] == "Alice B"
        assert data["email"] == "alice@b.com"

    def test_update_account_email_conflict(self, client):
        register_user(client, user_name="cd", email="c@d.com")
        register_user(client)
        login_user(client)
        response = client.patch(
            f"{API}/update-account", json={"fullName": "A B", "email": "c@d.com"}
        )
        assert response.status_code == 409

    def test_update_avatar(self, client):
        old = register_user(client).json()["data"]["avatar"]
        login_user(client)
        response = client.patch(
            f"{API}/update-avatar",
            files={"avatar": ("new.jpg", b"\xff\xd8\xff" + b"\x00" * 32, "image/jpeg")},
        )
        assert response.status_code == 200
        new = response.json()["data"]["avatar"]
        assert new != old
        assert new.endswith(".jpg")

    def test_update_cover_image_missing_file(self, client):
        register_user(client)
        login_user(client)
        response = client.patch(f"{API}/update-cover-image")
        assert response.status_code == 400

    def test_update_avatar_rejects_non_image(self, client):
        register_user(client)
        login_user(client)
        response = client.patch(
            f"{API}/update-avatar",
            files={"avatar": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 400


class TestEnvelope:
    def test_unknown_route(self, client):
        response = client.get("/api/v1/nope")
        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["statusCode"] == 404

    def test_unhandled_error_is_generic_500(self, app):
        from fastapi.testclient import TestClient

        def boom():
            raise RuntimeError("database exploded")

        app.add_api_route("/boom", boom)
        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/boom", headers={"x-request-id": "req-500"})
        assert response.status_code == 500
        assert response.headers["x-request-id"] == "req-500"
        body = response.json()
        assert body["message"] == "Internal Server Error"
        assert "exploded" not in response.text

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"x-request-id": "abc123"})
        assert response.headers["x-request-id"] == "abc123"
