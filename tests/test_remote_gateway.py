import json
import uuid
from dataclasses import asdict
from decimal import Decimal

import httpx
import pytest

from app.core.enums import PricingModel, UserRole
from app.models import Order, Wallet
from app.services.errors import CreditLimitExceededError, GatewayError, GatewayUnavailableError, LedgerError
from app.services.gateway import BackendRpcClient, LocalPurchaseGateway, RemotePurchaseGateway
from app.services.ledger_engine import Actor, PurchaseContext, apply_purchase
from app.services.purchases import CartLine, record_purchase
from app.services.wallet import wallet_state_from_row

OPERATOR = Actor(id="operator-1", role=UserRole.OPERATOR)


class FakeBackend:
    """In-memory stand-in for the hosted purchase procedure, driven by the same engine."""

    def __init__(self):
        self.wallets = {}
        self.calls = []

    def seed(self, state):
        self.wallets[state.student_id] = state

    def _row(self, state):
        row = asdict(state)
        row["model"] = state.model.value
        for key in ("balance", "credit_limit", "alert_baseline", "last_alert_level"):
            if row[key] is not None:
                row[key] = str(row[key])
        row["created_at"] = "2026-03-02T10:00:00+00:00"
        return row

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.method, request.url.path))
        if request.url.path == "/rest/v1/rpc/process_purchase":
            body = json.loads(request.content)
            state = self.wallets[body["p_student_id"]]
            total = sum(Decimal(str(i["unit_price"])) * i["quantity"] for i in body["p_items"])
            context = PurchaseContext(guardian_id="g", student_id=state.student_id, actor_id="rpc")
            try:
                result = apply_purchase(state, total, context)
            except CreditLimitExceededError as exc:
                self.wallets[state.student_id] = exc.blocked_wallet
                return httpx.Response(400, json={"message": exc.message, "code": exc.code})
            except LedgerError as exc:
                return httpx.Response(400, json={"message": exc.message, "code": exc.code})
            self.wallets[state.student_id] = result.wallet
            return httpx.Response(200, json=str(uuid.uuid4()))
        if request.url.path == "/rest/v1/wallets":
            student_id = request.url.params["student_id"].removeprefix("eq.")
            state = self.wallets.get(student_id)
            return httpx.Response(200, json=[self._row(state)] if state else [])
        return httpx.Response(404, json={"message": "not found"})


def _client(backend):
    client = BackendRpcClient(transport=httpx.MockTransport(backend.handler))
    client.base_url = "https://backend.test"
    client.service_key = "service-key"
    return client


def _snapshot(db, student):
    db.expire_all()
    wallet = db.query(Wallet).filter(Wallet.student_id == student.id).one()
    state = wallet_state_from_row(wallet)
    return (state.balance, state.blocked, state.blocked_reason, state.allow_negative_once_used, state.last_alert_level)


@pytest.mark.parametrize(
    "model,balance,credit_limit,baseline,totals",
    [
        (PricingModel.PREPAID, "45", "50", "50", ["20.00", "30.00"]),
        (PricingModel.PREPAID, "100", "0", "100", ["30.00", "45.50", "10.00"]),
        (PricingModel.POSTPAID, "20", "80", None, ["15.00", "70.00"]),
    ],
)
def test_local_and_remote_gateways_agree(db, make_student, make_product, model, balance, credit_limit, baseline, totals):
    local_student = make_student(model=model, balance=balance, credit_limit=credit_limit, alert_baseline=baseline)
    remote_student = make_student(model=model, balance=balance, credit_limit=credit_limit, alert_baseline=baseline)

    backend = FakeBackend()
    remote_row = db.query(Wallet).filter(Wallet.student_id == remote_student.id).one()
    backend.seed(wallet_state_from_row(remote_row))
    remote = RemotePurchaseGateway(db, client=_client(backend))
    local = LocalPurchaseGateway(db)

    for total in totals:
        product = make_product(f"Item {total}", total)
        outcomes = []
        for gateway, student in ((local, local_student), (remote, remote_student)):
            try:
                record_purchase(db, gateway, student_id=student.id, lines=[CartLine(product.id, 1)], actor=OPERATOR)
                outcomes.append("ok")
            except LedgerError as exc:
                outcomes.append(exc.code)
        assert outcomes[0] == outcomes[1]
        assert _snapshot(db, local_student) == _snapshot(db, remote_student)


def test_remote_gateway_records_order_under_remote_id(db, make_student, make_product):
    student = make_student(balance="50", alert_baseline="50")
    product = make_product("Juice", "8.00")
    backend = FakeBackend()
    backend.seed(wallet_state_from_row(db.query(Wallet).filter(Wallet.student_id == student.id).one()))

    outcome = record_purchase(
        db,
        RemotePurchaseGateway(db, client=_client(backend)),
        student_id=student.id,
        lines=[CartLine(product.id, 1)],
        actor=OPERATOR,
    )

    assert outcome.alerts == []
    assert db.query(Order).filter(Order.id == outcome.order.id).one().total == Decimal("8.00")
    assert ("POST", "/rest/v1/rpc/process_purchase") in backend.calls
    assert _snapshot(db, student)[0] == Decimal("42.00")


def test_remote_gateway_requires_configuration(db, make_student, make_product):
    student = make_student(balance="50")
    product = make_product()
    client = BackendRpcClient()
    client.base_url = ""
    with pytest.raises(GatewayUnavailableError):
        record_purchase(
            db,
            RemotePurchaseGateway(db, client=client),
            student_id=student.id,
            lines=[CartLine(product.id, 1)],
            actor=OPERATOR,
        )


def test_backend_network_error_is_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = BackendRpcClient(transport=httpx.MockTransport(handler))
    client.base_url = "https://backend.test"
    client.service_key = "k"
    with pytest.raises(GatewayUnavailableError):
        client.fetch_wallet("s1")


def test_backend_error_message_and_code_forwarded():
    def handler(request):
        return httpx.Response(400, json={"message": "Saldo insuficiente", "code": "P0001"})

    client = BackendRpcClient(transport=httpx.MockTransport(handler))
    client.base_url = "https://backend.test"
    client.service_key = "k"
    with pytest.raises(GatewayError) as excinfo:
        client.process_purchase("s1", [])
    assert excinfo.value.message == "Saldo insuficiente"
    assert excinfo.value.code == "P0001"
