from contextlib import contextmanager
from types import SimpleNamespace

from fastapi.testclient import TestClient

from app.core.database import get_db
from app.core.security import create_access_token
from app.main import app
from app.models import UserRole


class _StubQuery:
    def __init__(self, result):
        self._result = result

    def filter(self, *args, **kwargs):
        return self

    def first(self):
        return self._result


class _StubSession:
    def __init__(self, user):
        self._user = user

    def query(self, *args, **kwargs):
        return _StubQuery(self._user)


@contextmanager
def _client_with_user(user):
    app.dependency_overrides.clear()

    def _override_get_db():
        yield _StubSession(user)

    app.dependency_overrides[get_db] = _override_get_db
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()


def _auth(user):
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role.value)}"}


def test_missing_token_is_rejected():
    with _client_with_user(None) as client:
        res = client.get("/api/v1/alerts")
    assert res.status_code == 401


def test_garbage_token_is_rejected():
    with _client_with_user(None) as client:
        res = client.get("/api/v1/alerts", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401
    assert res.json()["detail"] == "Invalid token"


def test_inactive_user_is_rejected():
    user = SimpleNamespace(id="u1", is_active=False, role=UserRole.ADMIN, guardian_id=None)
    with _client_with_user(user) as client:
        res = client.get("/api/v1/alerts", headers=_auth(user))
    assert res.status_code == 401


def test_adjust_requires_admin():
    operator = SimpleNamespace(id="op", is_active=True, role=UserRole.OPERATOR, guardian_id=None)
    with _client_with_user(operator) as client:
        res = client.post(
            "/api/v1/wallets/s1/adjust",
            json={"amount": "10.00", "description": "top-up"},
            headers=_auth(operator),
        )
    assert res.status_code == 403
    assert res.json()["detail"] == "Admin access required"


def test_guardian_cannot_use_pos():
    guardian = SimpleNamespace(id="g", is_active=True, role=UserRole.GUARDIAN, guardian_id="gid")
    with _client_with_user(guardian) as client:
        res = client.post(
            "/api/v1/pos/purchase",
            json={"student_id": "s1", "items": [{"product_id": "p1", "quantity": 1}]},
            headers=_auth(guardian),
        )
    assert res.status_code == 403


def test_guardian_cannot_bill_another_guardian():
    guardian = SimpleNamespace(id="g", is_active=True, role=UserRole.GUARDIAN, guardian_id="gid")
    with _client_with_user(guardian) as client:
        res = client.post(
            "/api/v1/billing/pix",
            json={"guardian_id": "someone-else", "amount": "10.00"},
            headers=_auth(guardian),
        )
    assert res.status_code == 403


def test_jobs_require_token():
    with _client_with_user(None) as client:
        assert client.post("/api/v1/jobs/dispatch-outbox").status_code == 401
        res = client.post("/api/v1/jobs/weekly-summary", headers={"X-Job-Token": "wrong"})
    assert res.status_code == 401


def test_healthz():
    with _client_with_user(None) as client:
        res = client.get("/healthz")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"
