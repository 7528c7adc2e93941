from contextlib import contextmanager
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app.core.config import get_settings
from app.core.database import get_db
from app.core.enums import UserRole
from app.core.security import create_access_token
from app.main import app
from app.models import User
from app.utils.cache import invalidate


@contextmanager
def _client(db):
    app.dependency_overrides.clear()

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    invalidate()
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()
        invalidate()


def _user(db, email, role, guardian_id=None):
    user = User(email=email, full_name=email.split("@")[0], role=role, guardian_id=guardian_id)
    db.add(user)
    db.commit()
    db.refresh(user)
    return {"Authorization": f"Bearer {create_access_token(user.id, role.value)}"}


@pytest.fixture
def staff(db):
    return {
        "admin": _user(db, "admin@cantina.test", UserRole.ADMIN),
        "operator": _user(db, "caixa@cantina.test", UserRole.OPERATOR),
    }


def test_register_sell_alert_and_adjust(db, staff):
    with _client(db) as client:
        res = client.post(
            "/api/v1/guardians",
            json={"full_name": "Ana Lima", "phone": "(21) 99876-5432", "cpf": "123.456.789-00"},
            headers=staff["operator"],
        )
        assert res.status_code == 200, res.text
        guardian_id = res.json()["id"]

        res = client.post(
            "/api/v1/students",
            json={
                "guardian_id": guardian_id,
                "full_name": "Pedro Lima",
                "grade": "3B",
                "period": "morning",
                "pricing_model": "prepaid",
                "alert_baseline": "50",
            },
            headers=staff["operator"],
        )
        assert res.status_code == 200, res.text
        student_id = res.json()["id"]

        res = client.post("/api/v1/products", json={"name": "Lunch", "price": "50.00"}, headers=staff["admin"])
        assert res.status_code == 200, res.text
        product_id = res.json()["id"]
        res = client.get("/api/v1/products", headers=staff["operator"])
        assert [p["id"] for p in res.json()] == [product_id]

        res = client.post(
            f"/api/v1/wallets/{student_id}/adjust",
            json={"amount": "45.00", "description": "Cash top-up"},
            headers=staff["admin"],
        )
        assert Decimal(res.json()["balance"]) == Decimal("45")

        purchase = {"student_id": student_id, "items": [{"product_id": product_id, "quantity": 1}]}
        res = client.post("/api/v1/pos/purchase", json=purchase, headers=staff["operator"])
        assert res.status_code == 200, res.text
        body = res.json()
        assert Decimal(body["wallet"]["balance"]) == Decimal("-5")
        assert body["wallet"]["blocked"] is True
        assert [a["alert_type"] for a in body["alerts"]] == ["negative", "balance", "balance", "balance"]

        res = client.post("/api/v1/pos/purchase", json=purchase, headers=staff["operator"])
        assert res.status_code == 409
        assert res.json()["detail"]["code"] == "WALLET_BLOCKED"

        res = client.get("/api/v1/alerts", params={"unacknowledged": True}, headers=staff["operator"])
        alerts = res.json()
        assert len(alerts) == 4
        res = client.post(f"/api/v1/alerts/{alerts[0]['id']}/ack", headers=staff["operator"])
        assert res.json()["acknowledged_at"] is not None
        res = client.get("/api/v1/alerts", params={"unacknowledged": True}, headers=staff["operator"])
        assert len(res.json()) == 3

        res = client.post(
            f"/api/v1/wallets/{student_id}/adjust",
            json={"amount": "100.00", "description": "Guardian paid at the counter"},
            headers=staff["admin"],
        )
        wallet = res.json()
        assert Decimal(wallet["balance"]) == Decimal("95")
        assert wallet["blocked"] is False
        assert wallet["last_alert_level"] is None

        res = client.get(f"/api/v1/wallets/{student_id}/ledger", headers=staff["operator"])
        ledger = res.json()
        assert len(ledger) == 3
        assert sum(Decimal(e["amount"]) for e in ledger) == Decimal("95")


def test_postpaid_over_limit_returns_conflict(db, staff, make_student, make_product):
    from app.core.enums import PricingModel

    student = make_student(model=PricingModel.POSTPAID, balance="20", credit_limit="80")
    product = make_product("Meal", "70.00")
    with _client(db) as client:
        res = client.post(
            "/api/v1/pos/purchase",
            json={"student_id": student.id, "items": [{"product_id": product.id, "quantity": 1}]},
            headers=staff["operator"],
        )
        assert res.status_code == 409
        assert res.json()["detail"] == {
            "message": "Credit limit exceeded. Student blocked.",
            "code": "CREDIT_LIMIT_EXCEEDED",
        }
        wallet = client.get(f"/api/v1/wallets/{student.id}", headers=staff["operator"]).json()
        assert wallet["blocked"] is True
        assert wallet["blocked_reason"] == "credit limit exceeded"


def test_model_change_endpoint(db, staff, make_student):
    student = make_student(balance="-5", blocked=True, allow_negative_once_used=True)
    with _client(db) as client:
        res = client.patch(
            f"/api/v1/wallets/{student.id}/model",
            json={"model": "postpaid", "credit_limit": "120.00", "blocked_reason": "review"},
            headers=staff["admin"],
        )
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["model"] == "postpaid"
    assert body["blocked"] is True
    assert body["blocked_reason"] == "review"


def test_guardian_sees_only_own_wallet(db, make_student):
    mine = make_student(balance="12")
    other = make_student(balance="30")
    headers = _user(db, "familia@cantina.test", UserRole.GUARDIAN, guardian_id=mine.guardian_id)
    with _client(db) as client:
        res = client.get(f"/api/v1/wallets/{mine.id}", headers=headers)
        assert res.status_code == 200
        assert Decimal(res.json()["balance"]) == Decimal("12")
        assert client.get(f"/api/v1/wallets/{other.id}", headers=headers).status_code == 404
        assert client.get("/api/v1/alerts", headers=headers).status_code == 403


def test_pix_webhook_signature(db, make_student, monkeypatch):
    monkeypatch.setattr(get_settings(), "pagseguro_webhook_secret", "s3cret")
    with _client(db) as client:
        res = client.post("/api/v1/billing/pix/webhook", json={"txid": "x", "status": "paid"})
        assert res.status_code == 401
        res = client.post(
            "/api/v1/billing/pix/webhook",
            json={"txid": "x", "status": "paid"},
            headers={"x-pagseguro-signature": "s3cret"},
        )
        assert res.status_code == 404
        assert res.json()["detail"]["code"] == "NOT_FOUND"


def test_pix_charge_without_provider_is_unavailable(db, staff, make_student):
    student = make_student()
    with _client(db) as client:
        res = client.post(
            "/api/v1/billing/pix",
            json={"guardian_id": student.guardian_id, "student_id": student.id, "amount": "20.00"},
            headers=staff["operator"],
        )
    assert res.status_code == 503
    assert res.json()["detail"]["code"] == "BILLING_UNAVAILABLE"


def test_jobs_with_token(db):
    with _client(db) as client:
        res = client.post("/api/v1/jobs/dispatch-outbox", headers={"X-Job-Token": "job-secret"})
        assert res.status_code == 200
        assert res.json() == {"message": "Z-API not configured"}
        res = client.post("/api/v1/jobs/weekly-summary", headers={"X-Job-Token": "job-secret"})
        assert res.status_code == 200
        assert res.json()["queued"] == 0


def test_student_listing_is_scoped_to_guardian(db, staff, make_student):
    mine = make_student()
    other = make_student()
    headers = _user(db, "familia2@cantina.test", UserRole.GUARDIAN, guardian_id=mine.guardian_id)
    with _client(db) as client:
        res = client.get("/api/v1/students", headers=headers)
        assert res.status_code == 200, res.text
        assert [s["id"] for s in res.json()] == [mine.id]

        res = client.get("/api/v1/students", params={"guardian_id": other.guardian_id}, headers=headers)
        assert [s["id"] for s in res.json()] == [mine.id]

        res = client.get("/api/v1/students", headers=staff["operator"])
        assert {s["id"] for s in res.json()} == {mine.id, other.id}
        res = client.get("/api/v1/students", params={"guardian_id": other.guardian_id}, headers=staff["operator"])
        assert [s["id"] for s in res.json()] == [other.id]


def test_guardian_listing_is_staff_only(db, staff, make_student):
    student = make_student()
    headers = _user(db, "familia3@cantina.test", UserRole.GUARDIAN, guardian_id=student.guardian_id)
    with _client(db) as client:
        res = client.get("/api/v1/guardians", headers=staff["admin"])
        assert res.status_code == 200, res.text
        assert [g["id"] for g in res.json()] == [student.guardian_id]

        res = client.get("/api/v1/guardians", headers=headers)
        assert res.status_code == 403


def test_pix_charge_listing_is_scoped_to_guardian(db, staff, make_student):
    from app.models import PixCharge, PixChargeStatus

    mine = make_student()
    other = make_student()
    for student, txid in ((mine, "TX-MINE"), (other, "TX-OTHER")):
        db.add(
            PixCharge(
                guardian_id=student.guardian_id,
                student_id=student.id,
                txid=txid,
                status=PixChargeStatus.PENDING,
                amount=Decimal("20.00"),
            )
        )
    db.commit()
    headers = _user(db, "familia4@cantina.test", UserRole.GUARDIAN, guardian_id=mine.guardian_id)
    with _client(db) as client:
        res = client.get("/api/v1/billing/pix", headers=headers)
        assert res.status_code == 200, res.text
        assert [c["txid"] for c in res.json()] == ["TX-MINE"]

        res = client.get("/api/v1/billing/pix", headers=staff["operator"])
        assert {c["txid"] for c in res.json()} == {"TX-MINE", "TX-OTHER"}


def test_dashboard_summarizes_sales_and_wallets(db, staff, make_student, make_product):
    from app.core.enums import PricingModel

    prepaid = make_student(balance="100", alert_baseline="100")
    make_student(model=PricingModel.POSTPAID, credit_limit="50")
    make_student(balance="-5", blocked=True, allow_negative_once_used=True)
    product = make_product("Lunch", "80.00")
    with _client(db) as client:
        res = client.post(
            "/api/v1/pos/purchase",
            json={"student_id": prepaid.id, "items": [{"product_id": product.id, "quantity": 1}]},
            headers=staff["operator"],
        )
        assert res.status_code == 200, res.text
        order_id = res.json()["order"]["id"]

        res = client.get("/api/v1/dashboard", headers=staff["admin"])
        assert res.status_code == 200, res.text
        body = res.json()
        assert Decimal(body["total_sales"]) == Decimal("80.00")
        assert body["order_count"] == 1
        assert body["prepaid_count"] == 2
        assert body["postpaid_count"] == 1
        assert body["blocked_count"] == 1
        assert body["open_alerts"] == 1
        assert [o["id"] for o in body["latest_orders"]] == [order_id]


def test_dashboard_requires_staff(db, make_student):
    student = make_student()
    headers = _user(db, "familia5@cantina.test", UserRole.GUARDIAN, guardian_id=student.guardian_id)
    with _client(db) as client:
        assert client.get("/api/v1/dashboard", headers=headers).status_code == 403


def test_empty_product_list_is_cached_until_a_product_is_added(db, staff, make_product):
    with _client(db) as client:
        res = client.get("/api/v1/products", headers=staff["operator"])
        assert res.status_code == 200
        assert res.json() == []

        make_product("Juice", "5.00")
        assert client.get("/api/v1/products", headers=staff["operator"]).json() == []

        res = client.post("/api/v1/products", json={"name": "Cake", "price": "7.00"}, headers=staff["admin"])
        assert res.status_code == 200, res.text
        names = {p["name"] for p in client.get("/api/v1/products", headers=staff["operator"]).json()}
        assert names == {"Juice", "Cake"}
