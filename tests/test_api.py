# tests/test_api.py

"""
API endpoint tests against an in-memory session (fake auth, stub loader).
"""

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from api.main import app, get_session
from core.auth import AuthSession
from tests.helpers import make_records


@pytest.fixture
def session(make_session):
    s = make_session(make_records(250))
    s.start()
    return s


@pytest.fixture
def client(session):
    app.dependency_overrides[get_session] = lambda: session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def logged_in(client):
    resp = client.post("/auth/login", json={"email": "staff@iku.com", "password": "secret"})
    assert resp.status_code == status.HTTP_200_OK
    client.headers["Authorization"] = f"Bearer {resp.json()['id_token']}"
    return client


class TestAuthEndpoints:
    def test_login_success(self, client):
        resp = client.post("/auth/login", json={"email": "admin@iku.com", "password": "admin"})
        assert resp.status_code == status.HTTP_200_OK
        assert resp.json()["email"] == "admin@iku.com"
        assert resp.json()["is_admin"] is True

    def test_login_bad_credentials(self, client):
        resp = client.post("/auth/login", json={"email": "staff@iku.com", "password": "nope"})
        assert resp.status_code == status.HTTP_401_UNAUTHORIZED
        assert resp.json()["error"] == "Invalid username or password"

    @pytest.mark.parametrize("method,path", [("get", "/overview"), ("post", "/refresh"), ("get", "/export.csv")])
    def test_signed_out_requests_rejected(self, client, method, path):
        resp = getattr(client, method)(path)
        assert resp.status_code == status.HTTP_401_UNAUTHORIZED

    def test_logout(self, logged_in, session):
        resp = logged_in.post("/auth/logout")
        assert resp.status_code == status.HTTP_200_OK
        assert session.user is None
        assert logged_in.get("/overview").status_code == status.HTTP_401_UNAUTHORIZED

    def test_login_returns_id_token(self, client):
        resp = client.post("/auth/login", json={"email": "staff@iku.com", "password": "secret"})
        assert resp.json()["id_token"] == "token"


class TestBearerToken:
    """Signing in on one client does not admit other clients."""

    @pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer wrong"}, {"Authorization": "token"}])
    def test_other_client_rejected(self, logged_in, session, headers):
        other = TestClient(app)
        assert other.get("/overview", headers=headers).status_code == status.HTTP_401_UNAUTHORIZED
        resp = other.post(
            "/records/edit",
            json={"row": 0, "field": "STATUS", "value": "Incomplete"},
            headers=headers,
        )
        assert resp.status_code == status.HTTP_401_UNAUTHORIZED
        assert resp.json()["type"] == "AuthFailure"
        assert session.store.snapshot()[0]["STATUS"] == "Complete"

    def test_other_client_cannot_sign_out(self, logged_in, session):
        other = TestClient(app)
        assert other.post("/auth/logout").status_code == status.HTTP_401_UNAUTHORIZED
        assert session.user is not None

    def test_token_holder_admitted(self, logged_in):
        assert logged_in.get("/overview").status_code == status.HTTP_200_OK

    def test_empty_token_never_matches(self, logged_in, session, monkeypatch):
        monkeypatch.setattr(session, "user", AuthSession(uid="u", email="e", id_token=""))
        resp = logged_in.get("/overview", headers={"Authorization": "Bearer "})
        assert resp.status_code == status.HTTP_401_UNAUTHORIZED


class TestMeta:
    def test_options(self, client):
        data = client.get("/meta/options").json()
        assert data["status_options"] == ["", "Complete", "Incomplete"]
        assert "FATIHAH" in data["staff_options"]
        assert data["page_size"] == 100
        assert "TITLE" not in data["editable_fields"]


class TestOverview:
    def test_first_page(self, logged_in):
        data = logged_in.get("/overview").json()
        assert data["kpis"]["total_records"] == 250
        assert data["page"]["page_count"] == 3
        assert len(data["rows"]) == 100
        assert data["last_error"] is None

    def test_last_page(self, logged_in):
        data = logged_in.get("/overview", params={"page": 3}).json()
        assert len(data["rows"]) == 50

    def test_page_out_of_bounds(self, logged_in):
        resp = logged_in.get("/overview", params={"page": 4})
        assert resp.status_code == status.HTTP_400_BAD_REQUEST


class TestEdit:
    def test_edit_translates_to_absolute_position(self, logged_in, session):
        resp = logged_in.post("/records/edit", json={"page": 2, "row": 4, "field": "STATUS", "value": "Incomplete"})
        assert resp.status_code == status.HTTP_200_OK
        assert resp.json()["position"] == 104
        assert session.store.snapshot()[104]["STATUS"] == "Incomplete"
        kpis = logged_in.get("/overview").json()["kpis"]
        assert kpis["complete_count"] == 249
        assert kpis["incomplete_count"] == 1

    def test_invalid_value(self, logged_in):
        resp = logged_in.post("/records/edit", json={"row": 0, "field": "STAFF", "value": "NOBODY"})
        assert resp.status_code == status.HTTP_400_BAD_REQUEST
        assert resp.json()["type"] == "InvalidEdit"

    def test_row_beyond_data(self, logged_in):
        resp = logged_in.post("/records/edit", json={"page": 3, "row": 60, "field": "DATE", "value": "x"})
        assert resp.status_code == status.HTTP_409_CONFLICT


class TestRefresh:
    def test_refresh_ok(self, logged_in, session):
        session.loader.results = [make_records(7)]
        resp = logged_in.post("/refresh")
        assert resp.status_code == status.HTTP_200_OK
        assert resp.json()["total_records"] == 7

    def test_refresh_failure_keeps_data(self, logged_in, session, ingestion_error):
        session.loader.results = [ingestion_error]
        resp = logged_in.post("/refresh")
        assert resp.status_code == status.HTTP_502_BAD_GATEWAY
        assert resp.json()["total_records"] == 250
        assert logged_in.get("/overview").json()["last_error"]


def test_export_csv(logged_in):
    resp = logged_in.get("/export.csv")
    assert resp.status_code == status.HTTP_200_OK
    lines = resp.text.strip().splitlines()
    assert lines[0].startswith("NO,CONTROL NUMBER")
    assert len(lines) == 251


def test_shutdown_stops_session(monkeypatch):
    monkeypatch.delenv("IKU_FIREBASE_API_KEY", raising=False)
    get_session.cache_clear()
    try:
        with TestClient(app):
            session = get_session()
            assert session.started
        assert not session.started
    finally:
        get_session.cache_clear()
