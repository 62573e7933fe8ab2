"""Tests for signup, login, profile and bearer-token checks."""

import pytest
from itsdangerous.timed import TimestampSigner

from conftest import auth_headers, signup
from finance_tracker.models import User, db


class TestSignup:
    def test_signup_returns_token_and_public_user(self, client):
        resp = client.post(
            "/api/auth/signup", json={"name": "Ada", "email": "ada@x.com", "password": "secret1"}
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["success"] is True
        assert body["token"]
        assert body["user"]["name"] == "Ada"
        assert body["user"]["email"] == "ada@x.com"
        assert set(body["user"]) == {"id", "name", "email"}

    @pytest.mark.parametrize(
        "payload",
        [
            {"email": "a@b.com", "password": "secret1"},
            {"name": "A", "password": "secret1"},
            {"name": "A", "email": "a@b.com"},
            {"name": "A", "email": "a@b.com", "password": "12345"},
        ],
    )
    def test_signup_rejects_missing_fields_and_short_password(self, client, payload):
        resp = client.post("/api/auth/signup", json=payload)
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False

    def test_email_is_normalized_before_uniqueness_check(self, client, app):
        signup(client, email="A@B.com")
        resp = client.post(
            "/api/auth/signup", json={"name": "Other", "email": "a@b.com", "password": "secret1"}
        )
        assert resp.status_code == 409
        assert resp.get_json() == {"success": False, "message": "User with this email already exists"}
        with app.app_context():
            assert [u.email for u in User.query.all()] == ["a@b.com"]

    def test_password_is_stored_hashed(self, client, app):
        signup(client)
        with app.app_context():
            user = User.query.one()
            assert user.password_hash != "secret1"


class TestLogin:
    def test_login_is_case_insensitive_and_returns_same_user(self, client):
        _, user = signup(client)
        resp = client.post("/api/auth/login", json={"email": "ADA@X.com", "password": "secret1"})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["user"]["id"] == user["id"]
        assert body["token"]

    def test_wrong_password_and_unknown_email_look_identical(self, client):
        signup(client)
        wrong = client.post("/api/auth/login", json={"email": "ada@x.com", "password": "nope123"})
        unknown = client.post("/api/auth/login", json={"email": "who@x.com", "password": "secret1"})
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.get_json() == unknown.get_json() == {
            "success": False,
            "message": "Invalid email or password",
        }

    def test_login_requires_both_fields(self, client):
        resp = client.post("/api/auth/login", json={"email": "ada@x.com"})
        assert resp.status_code == 400


class TestProfileAndTokens:
    def test_me_returns_profile(self, client, ada):
        resp = client.get("/api/auth/me", headers=ada["headers"])
        assert resp.status_code == 200
        user = resp.get_json()["user"]
        assert user["id"] == ada["user"]["id"]
        assert user["createdAt"].endswith("Z")

    def test_missing_token_is_rejected_with_envelope(self, client):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        body = resp.get_json()
        assert body["success"] is False
        assert body["message"]

    @pytest.mark.parametrize("header", ["Bearer not-a-token", "Basic abc", "Bearer"])
    def test_malformed_tokens_are_rejected(self, client, header):
        resp = client.get("/api/transactions", headers={"Authorization": header})
        assert resp.status_code == 401

    def test_tampered_token_is_rejected(self, client, ada):
        token = ada["token"]
        tampered = token[:-2] + ("AA" if not token.endswith("AA") else "BB")
        resp = client.get("/api/auth/me", headers=auth_headers(tampered))
        assert resp.status_code == 401

    def test_expired_token_is_rejected(self, client, app, ada, monkeypatch):
        ttl = app.config["TOKEN_TTL"]
        issued = TimestampSigner.get_timestamp(TimestampSigner("x"))
        monkeypatch.setattr(TimestampSigner, "get_timestamp", lambda self: issued + ttl + 60)
        resp = client.get("/api/auth/me", headers=ada["headers"])
        assert resp.status_code == 401
        assert resp.get_json()["message"] == "Token expired"

    def test_profile_of_deleted_user_is_not_found(self, client, app, ada):
        with app.app_context():
            db.session.delete(db.session.get(User, ada["user"]["id"]))
            db.session.commit()
        resp = client.get("/api/auth/me", headers=ada["headers"])
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "User not found"
