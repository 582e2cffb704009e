from datetime import datetime, timedelta, timezone

from src.api.tokens import TokenService

AUTH = "/api/v1/auth"


def register(client, username="alice", password="correct-horse", email="alice@example.com"):
    return client.post(
        f"{AUTH}/register",
        json={"username": username, "password": password, "email": email},
    )


def login(client, username="alice", password="correct-horse"):
    return client.post(f"{AUTH}/login", json={"username": username, "password": password})


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestRegister:
    def test_register_returns_public_user(self, client):
        res = register(client)
        assert res.status_code == 201
        body = res.json()
        assert body["data"] == {"id": 1, "username": "alice", "email": "alice@example.com"}
        assert body["links"]["login"] == f"{AUTH}/login"
        assert "password" not in body["data"]

    def test_duplicate_username_is_conflict(self, client):
        assert register(client).status_code == 201
        res = register(client, email="other@example.com")
        assert res.status_code == 409
        assert res.json()["detail"] == "Username 'alice' is already taken."

        # The first account still logs in with its own password
        assert login(client).status_code == 200

    def test_register_validation(self, client):
        res = client.post(
            f"{AUTH}/register",
            json={"username": "bob", "password": "short", "email": "not-an-email"},
        )
        assert res.status_code == 400
        errors = res.json()["errors"]
        assert "password" in errors
        assert "email" in errors


class TestLogin:
    def test_login_issues_bearer_token(self, client, settings):
        register(client)
        res = login(client)
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["token_type"] == "Bearer"
        assert data["user_id"] == 1
        assert data["username"] == "alice"
        assert data["expires_in"] == 3600

        service = TokenService(settings.jwt_secret, 3600, settings.jwt_issuer)
        assert service.verify(data["token"]) == 1

    def test_wrong_password_and_unknown_user_look_the_same(self, client):
        register(client)
        wrong_password = login(client, password="wrong-password")
        unknown_user = login(client, username="mallory")
        assert wrong_password.status_code == unknown_user.status_code == 401
        assert wrong_password.json()["detail"] == unknown_user.json()["detail"]
        assert wrong_password.headers["WWW-Authenticate"] == "Bearer"


class TestMe:
    def test_me_with_valid_token(self, client):
        register(client)
        token = login(client).json()["data"]["token"]
        res = client.get(f"{AUTH}/me", headers=bearer(token))
        assert res.status_code == 200
        assert res.json()["data"]["username"] == "alice"

    def test_me_without_token_is_unauthorized(self, client):
        res = client.get(f"{AUTH}/me")
        assert res.status_code == 401
        assert res.json()["title"] == "Unauthorized"

    def test_me_with_malformed_header_is_unauthorized(self, client):
        register(client)
        token = login(client).json()["data"]["token"]
        res = client.get(f"{AUTH}/me", headers={"Authorization": f"Token {token}"})
        assert res.status_code == 401

    def test_me_with_foreign_token_is_unauthorized(self, client, settings):
        register(client)
        foreign = TokenService("another-secret-key-that-is-also-long-enough", 3600, settings.jwt_issuer)
        token = foreign.issue({"id": 1, "username": "alice", "password": "", "email": ""})
        assert client.get(f"{AUTH}/me", headers=bearer(token)).status_code == 401

    def test_me_with_expired_token_is_unauthorized(self, client, settings):
        register(client)
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        stale = TokenService(settings.jwt_secret, 3600, settings.jwt_issuer, clock=lambda: past)
        token = stale.issue({"id": 1, "username": "alice", "password": "", "email": ""})
        assert client.get(f"{AUTH}/me", headers=bearer(token)).status_code == 401

    def test_me_for_unknown_user_is_not_found(self, client, settings):
        # Valid signature, but no such user registered in this app
        token = TokenService(settings.jwt_secret, 3600, settings.jwt_issuer).issue(
            {"id": 42, "username": "ghost", "password": "", "email": ""}
        )
        res = client.get(f"{AUTH}/me", headers=bearer(token))
        assert res.status_code == 404
        assert res.json()["detail"] == "User not found."


class TestOpenEndpoints:
    def test_invalid_token_does_not_block_open_endpoints(self, client):
        res = client.get("/api/v1/todos/", headers=bearer("not.a.token"))
        assert res.status_code == 200
