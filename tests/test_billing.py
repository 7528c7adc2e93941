import json
from decimal import Decimal

import httpx
import pytest
from sqlalchemy import event
from sqlalchemy.dialects import postgresql

from app.core.enums import PricingModel
from app.models import PixCharge, PixChargeStatus, Wallet, WalletLedger
from app.services.billing import create_pix_charge, handle_pix_webhook
from app.services.errors import (
    BillingProviderError,
    BillingUnavailableError,
    NotFoundError,
    ValidationError,
)
from app.services.pix import PagSeguroClient


def _pagseguro(handler):
    client = PagSeguroClient(transport=httpx.MockTransport(handler))
    client.token = "pagseguro-token"
    client.base_url = "https://sandbox.api.pagseguro.test"
    return client


def _charge_handler(captured):
    def handler(request):
        captured["auth"] = request.headers.get("Authorization")
        captured["body"] = json.loads(request.content)
        return httpx.Response(
            201,
            json={"id": "CHAR_1", "charge_id": "TX123", "qr_codes": [{"emv": "00020126...6304ABCD"}]},
        )

    return handler


def _pending_charge(db, student, amount="50.00"):
    captured = {}
    return create_pix_charge(
        db,
        _pagseguro(_charge_handler(captured)),
        guardian_id=student.guardian_id,
        student_id=student.id,
        amount=Decimal(amount),
    )


def test_create_charge_stores_pending(db, make_student):
    student = make_student()
    captured = {}
    charge = create_pix_charge(
        db,
        _pagseguro(_charge_handler(captured)),
        guardian_id=student.guardian_id,
        student_id=student.id,
        amount=Decimal("25"),
        description="Credit for March",
    )

    assert charge.txid == "TX123"
    assert charge.status == PixChargeStatus.PENDING
    assert charge.br_code.startswith("000201")
    assert charge.expires_at is not None
    assert captured["auth"] == "Bearer pagseguro-token"
    assert captured["body"]["value"]["amount"] == "25.00"
    assert captured["body"]["reference_id"] == student.id


def test_create_charge_validation(db, make_student):
    student = make_student()
    other = make_student()
    client = _pagseguro(_charge_handler({}))
    with pytest.raises(ValidationError):
        create_pix_charge(db, client, guardian_id=student.guardian_id, amount=Decimal("0"))
    with pytest.raises(NotFoundError):
        create_pix_charge(db, client, guardian_id="nope", amount=Decimal("10"))
    with pytest.raises(ValidationError):
        create_pix_charge(db, client, guardian_id=student.guardian_id, student_id=other.id, amount=Decimal("10"))


def test_create_charge_provider_failures(db, make_student):
    student = make_student()
    unconfigured = PagSeguroClient()
    unconfigured.token = ""
    with pytest.raises(BillingUnavailableError):
        create_pix_charge(db, unconfigured, guardian_id=student.guardian_id, amount=Decimal("10"))

    failing = _pagseguro(lambda request: httpx.Response(422, json={"error_messages": ["invalid"]}))
    with pytest.raises(BillingProviderError):
        create_pix_charge(db, failing, guardian_id=student.guardian_id, amount=Decimal("10"))
    assert db.query(PixCharge).count() == 0


def test_paid_webhook_credits_wallet_once(db, make_student):
    student = make_student(balance="-5", blocked=True, allow_negative_once_used=True)
    charge = _pending_charge(db, student, "50.00")

    handle_pix_webhook(db, {"txid": charge.txid, "status": "PAID"})
    handle_pix_webhook(db, {"charge_id": charge.txid, "charge_status": "paid"})

    db.expire_all()
    wallet = db.query(Wallet).filter(Wallet.student_id == student.id).one()
    assert wallet.balance == Decimal("45.00")
    assert wallet.blocked is False
    entries = db.query(WalletLedger).filter(WalletLedger.wallet_id == wallet.id).all()
    assert len(entries) == 1
    stored = db.query(PixCharge).filter(PixCharge.txid == charge.txid).one()
    assert stored.status == PixChargeStatus.PAID
    assert stored.ledger_id == entries[0].id


def test_paid_webhook_pays_down_postpaid_debt(db, make_student):
    student = make_student(model=PricingModel.POSTPAID, balance="30", credit_limit="100")
    charge = _pending_charge(db, student, "50.00")
    handle_pix_webhook(db, {"txid": charge.txid, "status": "paid"})
    db.expire_all()
    wallet = db.query(Wallet).filter(Wallet.student_id == student.id).one()
    assert wallet.balance == Decimal("0.00")


def test_non_paid_webhook_only_updates_status(db, make_student):
    student = make_student(balance="10")
    charge = _pending_charge(db, student)
    handle_pix_webhook(db, {"txid": charge.txid, "status": "expired"})
    assert db.query(WalletLedger).count() == 0
    assert db.query(PixCharge).one().status == PixChargeStatus.EXPIRED


def test_webhook_errors(db, make_student):
    student = make_student()
    charge = _pending_charge(db, student)
    with pytest.raises(ValidationError):
        handle_pix_webhook(db, {"status": "paid"})
    with pytest.raises(ValidationError):
        handle_pix_webhook(db, {"txid": charge.txid, "status": "settled"})
    with pytest.raises(NotFoundError):
        handle_pix_webhook(db, {"txid": "unknown", "status": "paid"})


def test_paid_webhook_locks_the_charge_row(db, make_student):
    student = make_student(balance="0")
    charge = _pending_charge(db, student)
    statements = []

    def _capture(state):
        statements.append(str(state.statement.compile(dialect=postgresql.dialect())))

    event.listen(db, "do_orm_execute", _capture)
    try:
        handle_pix_webhook(db, {"txid": charge.txid, "status": "paid"})
    finally:
        event.remove(db, "do_orm_execute", _capture)

    charge_selects = [sql for sql in statements if "FROM pix_charges" in sql]
    assert any("FOR UPDATE" in sql for sql in charge_selects)


def test_paid_webhook_rejects_zero_amount(db, make_student):
    student = make_student(balance="10")
    charge = _pending_charge(db, student, "50.00")

    with pytest.raises(ValidationError):
        handle_pix_webhook(db, {"txid": charge.txid, "status": "paid", "amount": "0"})

    db.expire_all()
    wallet = db.query(Wallet).filter(Wallet.student_id == student.id).one()
    assert wallet.balance == Decimal("10.00")
    assert db.query(WalletLedger).count() == 0
    assert db.query(PixCharge).one().status == PixChargeStatus.PENDING


def test_paid_webhook_uses_reported_amount(db, make_student):
    student = make_student(balance="0")
    charge = _pending_charge(db, student, "50.00")
    handle_pix_webhook(db, {"txid": charge.txid, "status": "paid", "value": {"amount": "20.00"}})
    db.expire_all()
    wallet = db.query(Wallet).filter(Wallet.student_id == student.id).one()
    assert wallet.balance == Decimal("20.00")
