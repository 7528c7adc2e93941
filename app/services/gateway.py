"""Purchase gateways.

Both gateways take the same request and leave the local database in the
same shape: wallet updated, order recorded, ledger/alerts persisted where the
path produces them.

* :class:`LocalPurchaseGateway` runs the ledger engine against our own rows.
* :class:`RemotePurchaseGateway` calls the hosted ``process_purchase``
  procedure, treats its wallet row as the source of truth and reconciles the
  local copy with it.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Protocol

import httpx
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.models import Order, OrderItem, Wallet
from app.models.base import new_id
from app.schemas.wallet import RemoteWalletRow
from app.services.alerts import AlertDraft
from app.services.errors import (
    CreditLimitExceededError,
    GatewayError,
    GatewayUnavailableError,
    NotFoundError,
)
from app.services.ledger_engine import (
    Actor,
    PurchaseContext,
    WalletState,
    apply_purchase,
    to_money,
)
from app.services.wallet import (
    add_alerts,
    add_ledger_entry,
    apply_state_to_row,
    get_wallet_for_student,
    wallet_state_from_row,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurchaseItem:
    product_id: str
    quantity: int
    unit_price: Decimal

    @property
    def subtotal(self) -> Decimal:
        return to_money(Decimal(self.unit_price) * self.quantity)


@dataclass(frozen=True)
class PurchaseRequest:
    student_id: str
    guardian_id: str
    items: list[PurchaseItem]
    actor: Actor
    now: Optional[datetime] = None

    @property
    def total(self) -> Decimal:
        return to_money(sum((item.subtotal for item in self.items), Decimal("0")))


@dataclass
class PurchaseOutcome:
    order: Order
    wallet: WalletState
    alerts: list[AlertDraft] = field(default_factory=list)


class PurchaseGateway(Protocol):
    def process_purchase(self, request: PurchaseRequest) -> PurchaseOutcome: ...


def _record_order(db: Session, request: PurchaseRequest, order_id: Optional[str], now: datetime) -> Order:
    order = Order(
        student_id=request.student_id,
        total=request.total,
        created_by=request.actor.id,
        created_at=now,
        items=[
            OrderItem(product_id=item.product_id, quantity=item.quantity, unit_price=to_money(item.unit_price))
            for item in request.items
        ],
    )
    if order_id:
        order.id = order_id
    db.add(order)
    db.flush()
    return order


class LocalPurchaseGateway:
    def __init__(self, db: Session):
        self.db = db

    def process_purchase(self, request: PurchaseRequest) -> PurchaseOutcome:
        db = self.db
        now = request.now or datetime.now(timezone.utc)
        wallet = get_wallet_for_student(db, request.student_id, for_update=True)
        order_id = new_id()

        context = PurchaseContext(
            guardian_id=request.guardian_id,
            student_id=request.student_id,
            actor_id=request.actor.id,
            order_id=order_id,
            now=now,
        )
        try:
            result = apply_purchase(wallet_state_from_row(wallet), request.total, context)
        except CreditLimitExceededError as exc:
            # The failed purchase still blocks the wallet.
            apply_state_to_row(wallet, exc.blocked_wallet)
            db.commit()
            logger.warning(
                "Purchase of %s rejected for student %s: credit limit %s exceeded (debt %s); wallet blocked",
                request.total,
                request.student_id,
                wallet.credit_limit,
                wallet.balance,
            )
            raise

        order = _record_order(db, request, order_id, now)
        add_ledger_entry(db, result.ledger_entry)
        add_alerts(db, result.alerts)
        apply_state_to_row(wallet, result.wallet)
        db.commit()
        db.refresh(order)
        if result.wallet.blocked:
            logger.info("Wallet %s blocked: %s", wallet.id, result.wallet.blocked_reason)
        return PurchaseOutcome(order=order, wallet=result.wallet, alerts=result.alerts)


class BackendRpcClient:
    """Thin client for the hosted backend's REST/RPC surface."""

    def __init__(self, transport: Optional[httpx.BaseTransport] = None):
        settings = get_settings()
        self.base_url = (settings.supabase_url or "").rstrip("/")
        self.service_key = settings.supabase_service_role_key or ""
        self.timeout = settings.remote_gateway_timeout_seconds
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.base_url and self.service_key)

    def _headers(self) -> dict:
        return {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self._transport) as client:
                resp = client.request(method, path, headers=self._headers(), **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Backend %s %s failed: %s", method, path, exc)
            raise GatewayUnavailableError("Purchase service unavailable") from exc
        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = {"message": resp.text}
            message = body.get("message") or body.get("error") or f"Backend error {resp.status_code}"
            code = body.get("code")
            raise GatewayError(str(message), code=str(code) if code else None)
        return resp

    def process_purchase(self, student_id: str, items: list[PurchaseItem]) -> Optional[str]:
        payload = {
            "p_student_id": student_id,
            "p_items": [
                {"product_id": item.product_id, "quantity": item.quantity, "unit_price": float(item.unit_price)}
                for item in items
            ],
        }
        resp = self._request("POST", "/rest/v1/rpc/process_purchase", json=payload)
        data = resp.json()
        return str(data) if data else None

    def fetch_wallet(self, student_id: str) -> RemoteWalletRow:
        resp = self._request(
            "GET",
            "/rest/v1/wallets",
            params={"student_id": f"eq.{student_id}", "select": "*"},
        )
        rows = resp.json()
        if isinstance(rows, dict):
            rows = [rows]
        if not rows:
            raise NotFoundError("Wallet not found after purchase")
        try:
            return RemoteWalletRow.model_validate(rows[0])
        except PydanticValidationError as exc:
            raise GatewayError(f"Unexpected wallet row from backend: {exc.error_count()} invalid field(s)") from exc


def wallet_state_from_remote(row: RemoteWalletRow) -> WalletState:
    return WalletState(
        id=row.id,
        student_id=row.student_id,
        balance=to_money(row.balance),
        credit_limit=to_money(row.credit_limit),
        model=row.model,
        allow_negative_once_used=row.allow_negative_once_used,
        blocked=row.blocked,
        blocked_reason=row.blocked_reason,
        alert_baseline=row.alert_baseline,
        last_alert_level=row.last_alert_level,
    )


class RemotePurchaseGateway:
    def __init__(self, db: Session, client: Optional[BackendRpcClient] = None):
        self.db = db
        self.client = client or BackendRpcClient()

    def process_purchase(self, request: PurchaseRequest) -> PurchaseOutcome:
        if not self.client.is_configured():
            raise GatewayUnavailableError("Remote purchase service is not configured")
        db = self.db
        now = request.now or datetime.now(timezone.utc)

        try:
            order_id = self.client.process_purchase(request.student_id, request.items)
        except GatewayError:
            # A rejected purchase may still have changed the row (e.g. blocked on credit limit).
            self._reconcile_after_failure(request.student_id)
            raise
        state = wallet_state_from_remote(self.client.fetch_wallet(request.student_id))

        self._reconcile(request.student_id, state)
        order = _record_order(db, request, order_id, now)
        db.commit()
        db.refresh(order)
        logger.info("Remote purchase %s for student %s reconciled (balance=%s)", order.id, request.student_id, state.balance)
        return PurchaseOutcome(order=order, wallet=state, alerts=[])

    def _reconcile(self, student_id: str, state: WalletState) -> None:
        local_wallet = self.db.query(Wallet).filter(Wallet.student_id == student_id).first()
        if local_wallet:
            apply_state_to_row(local_wallet, state)

    def _reconcile_after_failure(self, student_id: str) -> None:
        try:
            state = wallet_state_from_remote(self.client.fetch_wallet(student_id))
        except (GatewayError, GatewayUnavailableError, NotFoundError) as exc:
            logger.warning("Could not refresh wallet for student %s after rejected purchase: %s", student_id, exc)
            return
        self._reconcile(student_id, state)
        self.db.commit()


def get_purchase_gateway(db: Session) -> PurchaseGateway:
    settings = get_settings()
    if (settings.purchase_gateway or "local").strip().lower() == "remote":
        return RemotePurchaseGateway(db)
    return LocalPurchaseGateway(db)
