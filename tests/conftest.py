"""Shared fixtures: an app on in-memory SQLite and helpers to act as users."""

import pytest

from finance_tracker.api_client import ApiClient
from finance_tracker.config import AppConfig
from finance_tracker.models import db
from finance_tracker.webapp import create_app


@pytest.fixture
def app():
    cfg = AppConfig(database_url="sqlite://", secret_key="test-secret", env="test", log_level="WARNING")
    app = create_app(cfg)
    app.config["TESTING"] = True
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


def signup(client, name="Ada", email="ada@x.com", password="secret1"):
    resp = client.post("/api/auth/signup", json={"name": name, "email": email, "password": password})
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    return body["token"], body["user"]


@pytest.fixture
def ada(client):
    """Token and auth headers for a freshly signed-up user."""
    token, user = signup(client)
    return {"token": token, "user": user, "headers": auth_headers(token)}


@pytest.fixture
def bob(client):
    token, user = signup(client, name="Bob", email="bob@x.com", password="hunter22")
    return {"token": token, "user": user, "headers": auth_headers(token)}


def make_transaction(client, headers, **overrides):
    payload = {
        "type": "expense",
        "amount": 42.50,
        "description": "Lunch",
        "category": "Food",
        "date": "2024-01-01T12:00:00Z",
    }
    payload.update(overrides)
    resp = client.post("/api/transactions", json=payload, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["transaction"]


def make_account(client, headers, **overrides):
    payload = {"name": "Checking", "type": "bank"}
    payload.update(overrides)
    resp = client.post("/api/accounts", json=payload, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["account"]


class _FlaskResponse:
    def __init__(self, response):
        self._response = response
        self.status_code = response.status_code
        self.ok = 200 <= response.status_code < 400

    def json(self):
        data = self._response.get_json(silent=True)
        if data is None:
            raise ValueError("No JSON body")
        return data


class FlaskSession:
    """Stands in for ``requests.Session`` by routing calls to the Flask test client."""

    def __init__(self, test_client, base_url):
        self.test_client = test_client
        self.base_url = base_url

    def request(self, method, url, json=None, headers=None, timeout=None):
        path = url[len(self.base_url):] if url.startswith(self.base_url) else url
        kwargs = {"method": method, "headers": headers or {}}
        if json is not None:
            kwargs["json"] = json
        return _FlaskResponse(self.test_client.open(path, **kwargs))


@pytest.fixture
def api(client):
    base_url = "http://testserver"
    return ApiClient(base_url=base_url, session=FlaskSession(client, base_url))
