"""
tests/test_api_routes.py -- Integration tests for the account REST routes.

These tests exercise the full stack: FastAPI routing -> request model ->
provisioner/authenticator -> AccountStore -> response model serialization ->
exception handlers. Unit tests cover the same rules one layer down; these make
sure the HTTP contract (status codes, camelCase payloads, no credential
leakage, session cookie) holds end to end.

Fixtures used (from conftest.py):
  - api_client: (client, transport) -- TestClient whose dispatcher records mail
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from auth.errors import StoreUnavailable
from conftest import ADMIN_EMAIL, OPERATOR_EMAIL
from fakes import RecordingTransport

_FORBIDDEN_KEYS = {"credentialDigest", "credential_digest", "password", "hashedPassword"}


def _signup(client: TestClient, **body):
    return client.post("/api/v1/auth/signup", json=body)


class TestSignup:
    def test_created_response_shape(self, api_client: tuple[TestClient, RecordingTransport]) -> None:
        client, _ = api_client
        resp = _signup(client, email="shape@example.com", password="x")
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["message"] == "User created successfully"
        assert data["emailSent"] is True
        user = data["user"]
        assert user["email"] == "shape@example.com"
        assert user["displayName"] == "shape"
        assert user["role"] == "user"
        assert (user["xp"], user["level"], user["streak"], user["maxStreak"]) == (0, 1, 0, 0)
        assert isinstance(user["id"], int)

    def test_response_never_contains_credentials(self, api_client: tuple[TestClient, RecordingTransport]) -> None:
        client, _ = api_client
        resp = _signup(client, email="leak@example.com", password="super-secret")
        assert resp.status_code == 201
        assert not _FORBIDDEN_KEYS & set(resp.json()["user"])
        assert "super-secret" not in resp.text
        assert "$2b$" not in resp.text

    def test_sets_session_cookie(self, api_client: tuple[TestClient, RecordingTransport]) -> None:
        client, _ = api_client
        resp = _signup(client, email="cookie@example.com", password="x")
        assert resp.status_code == 201
        assert "access_token" in resp.cookies
        assert resp.headers["Cache-Control"] == "no-store"

    def test_admin_email_gets_admin_role_and_no_operator_mail(
        self, api_client: tuple[TestClient, RecordingTransport]
    ) -> None:
        client, transport = api_client
        before = len(transport.sent)
        resp = _signup(client, email=ADMIN_EMAIL, password="x", name="Boss")
        assert resp.status_code == 201
        assert resp.json()["user"]["role"] == "admin"
        assert resp.json()["user"]["displayName"] == "Boss"
        assert [m["To"] for m in transport.sent[before:]] == [ADMIN_EMAIL]

    def test_new_user_mails_learner_and_operator(self, api_client: tuple[TestClient, RecordingTransport]) -> None:
        client, transport = api_client
        before = len(transport.sent)
        assert _signup(client, email="mailme@example.com", password="x").status_code == 201
        assert [m["To"] for m in transport.sent[before:]] == ["mailme@example.com", OPERATOR_EMAIL]

    def test_duplicate_is_400_and_sends_nothing(self, api_client: tuple[TestClient, RecordingTransport]) -> None:
        client, transport = api_client
        assert _signup(client, email="twice@example.com", password="x").status_code == 201
        before = len(transport.sent)
        resp = _signup(client, email="twice@example.com", password="y")
        assert resp.status_code == 400
        assert resp.json()["error"] == {
            "code": "duplicate_account",
            "message": "User with this email already exists",
            "detail": None,
        }
        assert len(transport.sent) == before

    @pytest.mark.parametrize(
        ("body", "message"),
        [
            ({"password": "x"}, "Email and password are required"),
            ({"email": "a@b.com"}, "Email and password are required"),
            ({"email": 123, "password": "x"}, "Email must be a valid email address"),
            ({"email": "a@b.com", "password": ["x"]}, "Password is required"),
            ({"email": "bad", "password": "x"}, "Invalid email format"),
            ({"email": "long@example.com", "password": "x", "name": "n" * 300}, "Name must be at most 255 characters"),
        ],
    )
    def test_invalid_input_is_400(self, api_client: tuple[TestClient, RecordingTransport], body, message) -> None:
        client, _ = api_client
        resp = _signup(client, **body)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_input"
        assert resp.json()["error"]["message"] == message

    def test_mail_outage_does_not_fail_signup(self, api_client: tuple[TestClient, RecordingTransport]) -> None:
        client, _ = api_client
        original = client.app.state.dispatcher
        client.app.state.dispatcher = type(original)(transport=None)
        try:
            resp = _signup(client, email="nomail@example.com", password="x")
        finally:
            client.app.state.dispatcher = original
        assert resp.status_code == 201
        assert resp.json()["emailSent"] is False


class TestSignIn:
    def test_sign_in_after_signup_returns_same_account(
        self, api_client: tuple[TestClient, RecordingTransport]
    ) -> None:
        client, _ = api_client
        created = _signup(client, email="a@b.com", password="x").json()["user"]
        resp = client.post("/api/v1/auth/signin", json={"email": "a@b.com"})
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["created"] is False
        assert data["user"]["id"] == created["id"]
        for key in ("xp", "level", "streak", "maxStreak"):
            assert data["user"][key] == created[key]

    def test_first_contact_creates_account(self, api_client: tuple[TestClient, RecordingTransport]) -> None:
        client, transport = api_client
        before = len(transport.sent)
        resp = client.post("/api/v1/auth/signin", json={"email": "fresh@example.com", "name": "Fresh"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["created"] is True
        assert data["user"]["displayName"] == "Fresh"
        assert (data["user"]["xp"], data["user"]["level"]) == (0, 1)
        assert not _FORBIDDEN_KEYS & set(data["user"])
        assert [m["To"] for m in transport.sent[before:]] == ["fresh@example.com", OPERATOR_EMAIL]
        stored = client.app.state.account_store.find_by_email("fresh@example.com")
        assert stored.credential_digest is None

    def test_repeat_sign_in_sends_no_mail(self, api_client: tuple[TestClient, RecordingTransport]) -> None:
        client, transport = api_client
        client.post("/api/v1/auth/signin", json={"email": "repeat@example.com"})
        before = len(transport.sent)
        resp = client.post("/api/v1/auth/signin", json={"email": "repeat@example.com"})
        assert resp.json()["created"] is False
        assert len(transport.sent) == before

    def test_invalid_email_is_400(self, api_client: tuple[TestClient, RecordingTransport]) -> None:
        client, _ = api_client
        resp = client.post("/api/v1/auth/signin", json={"email": "nope"})
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Please enter a valid email"
        assert "access_token" not in resp.cookies

    def test_overlong_name_is_400(self, api_client: tuple[TestClient, RecordingTransport]) -> None:
        client, _ = api_client
        resp = client.post("/api/v1/auth/signin", json={"email": "longname@example.com", "name": "n" * 300})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_input"
        assert "access_token" not in resp.cookies

    def test_store_failure_is_503_without_session(
        self, api_client: tuple[TestClient, RecordingTransport], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        client, _ = api_client

        def down(email):
            raise StoreUnavailable()

        monkeypatch.setattr(client.app.state.account_store, "find_by_email", down)
        resp = client.post("/api/v1/auth/signin", json={"email": "down@example.com"})
        assert resp.status_code == 503
        assert resp.json()["error"]["code"] == "store_unavailable"
        assert "access_token" not in resp.cookies


class TestSession:
    def test_me_after_sign_in(self, api_client: tuple[TestClient, RecordingTransport]) -> None:
        client, _ = api_client
        signed = client.post("/api/v1/auth/signin", json={"email": "me@example.com"})
        token = signed.cookies["access_token"]
        client.cookies.clear()
        resp = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json()["email"] == "me@example.com"
        assert not _FORBIDDEN_KEYS & set(resp.json())

    def test_me_without_session_is_401(self, api_client: tuple[TestClient, RecordingTransport]) -> None:
        client, _ = api_client
        client.cookies.clear()
        resp = client.get("/api/v1/auth/me")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"

    def test_logout_clears_cookie(self, api_client: tuple[TestClient, RecordingTransport]) -> None:
        client, _ = api_client
        resp = client.post("/api/v1/auth/logout")
        assert resp.status_code == 200
        set_cookie = resp.headers.get("set-cookie", "")
        assert "access_token" in set_cookie
        assert "max-age=0" in set_cookie.lower()

