"""Notification outbox: message builders, enqueue and the batch dispatcher.

Rows are written with ``status=pending`` and drained by
:func:`dispatch_outbox`, which makes at most one delivery attempt per row.
A row marked ``sent`` or ``failed`` is never picked up again unless its
status is reset to ``pending`` by hand.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.enums import PricingModel
from app.models import (
    Guardian,
    NotificationKind,
    NotificationOutbox,
    Order,
    OutboxStatus,
    Student,
    Wallet,
)
from app.utils.phone import normalize_phone

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 20


class MessageSender(Protocol):
    def is_configured(self) -> bool: ...

    def send_text(self, to_phone: str, message: str): ...


@dataclass
class DispatchReport:
    processed: int = 0
    sent: int = 0
    failed: int = 0


def format_brl(value) -> str:
    amount = Decimal(str(value or 0)).quantize(Decimal("0.01"))
    sign = "-" if amount < 0 else ""
    whole, cents = f"{abs(amount):.2f}".split(".")
    whole = f"{int(whole):,}".replace(",", ".")
    return f"{sign}R$ {whole},{cents}"


def portal_link() -> str:
    base = (get_settings().app_base_url or "").rstrip("/")
    return f"{base}/painel-do-responsavel" if base else ""


def _available(wallet: Wallet) -> Decimal:
    balance = Decimal(str(wallet.balance or 0))
    if PricingModel(wallet.model) == PricingModel.PREPAID:
        return balance
    return max(Decimal(str(wallet.credit_limit or 0)) - balance, Decimal("0"))


def build_purchase_message(order: Order, student: Student, wallet: Wallet, item_names: dict[str, str]) -> str:
    settings = get_settings()
    items = ", ".join(
        f"{item.quantity}x {item_names.get(item.product_id, 'Item')} ({format_brl(item.unit_price)})"
        for item in order.items
    ) or "Items unavailable"
    model_label = "Prepaid" if PricingModel(wallet.model) == PricingModel.PREPAID else "Tab"
    link = portal_link()
    lines = [
        settings.whatsapp_from_name,
        "Purchase registered",
        f"Student: {student.full_name} ({student.grade} - {student.period.value})",
        f"Items: {items}",
        f"Total: {format_brl(order.total)}",
        f"Plan: {model_label} | Available balance/limit: {format_brl(_available(wallet))}",
        f"Add credit: {link}" if link else "",
    ]
    return "\n".join(line for line in lines if line)


def build_alert_message(student: Student, alert_message: str) -> str:
    settings = get_settings()
    link = portal_link()
    lines = [
        settings.whatsapp_from_name,
        f"Student: {student.full_name}",
        alert_message,
        f"Add credit: {link}" if link else "",
    ]
    return "\n".join(line for line in lines if line)


def enqueue_notification(
    db: Session,
    *,
    guardian_id: str,
    kind: NotificationKind,
    to_phone: str,
    payload: dict,
    student_id: Optional[str] = None,
) -> NotificationOutbox:
    row = NotificationOutbox(
        guardian_id=guardian_id,
        student_id=student_id,
        kind=kind,
        to_phone=to_phone,
        payload=payload,
        status=OutboxStatus.PENDING,
        attempt_count=0,
    )
    db.add(row)
    return row


def enqueue_purchase_notifications(db: Session, *, order: Order, student: Student, wallet: Wallet, alerts: list) -> int:
    """Queue the purchase receipt and one message per alert.

    Failures are logged and swallowed: a purchase never fails because its
    notification could not be queued.
    """
    try:
        guardian = db.query(Guardian).filter(Guardian.id == student.guardian_id).first()
        if not guardian:
            logger.warning("No guardian for student %s; purchase %s not notified", student.id, order.id)
            return 0
        to_phone = normalize_phone(guardian.phone)
        names = {item.product_id: (item.product.name if item.product else "Item") for item in order.items}
        enqueue_notification(
            db,
            guardian_id=guardian.id,
            student_id=student.id,
            kind=NotificationKind.PURCHASE,
            to_phone=to_phone,
            payload={
                "message": build_purchase_message(order, student, wallet, names),
                "order_id": order.id,
                "purchased_at": order.created_at.isoformat() if order.created_at else None,
                "student": {
                    "id": student.id,
                    "full_name": student.full_name,
                    "grade": student.grade,
                    "period": student.period.value,
                },
                "items": [
                    {
                        "name": names.get(item.product_id, "Item"),
                        "quantity": item.quantity,
                        "unit_price": str(item.unit_price),
                        "total": str(Decimal(str(item.unit_price)) * item.quantity),
                    }
                    for item in order.items
                ],
                "total": str(order.total),
            },
        )
        for alert in alerts:
            enqueue_notification(
                db,
                guardian_id=guardian.id,
                student_id=student.id,
                kind=NotificationKind.ALERT,
                to_phone=to_phone,
                payload={
                    "message": build_alert_message(student, alert.message),
                    "alert_type": alert.alert_type.value,
                    "level": str(alert.level),
                },
            )
        db.commit()
        return 1 + len(alerts)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Failed to queue notifications for order %s: %s", order.id, exc)
        return 0


def dispatch_outbox(db: Session, sender: MessageSender, batch_size: int = DEFAULT_BATCH_SIZE) -> DispatchReport:
    pending = (
        db.query(NotificationOutbox)
        .filter(NotificationOutbox.status == OutboxStatus.PENDING)
        .order_by(NotificationOutbox.created_at.asc(), NotificationOutbox.id.asc())
        .limit(batch_size)
        .all()
    )
    report = DispatchReport()
    for row in pending:
        attempt = (row.attempt_count or 0) + 1
        message = (row.payload or {}).get("message") or ""
        result = sender.send_text(row.to_phone, message)
        row.attempt_count = attempt
        if result.ok:
            row.status = OutboxStatus.SENT
            row.sent_at = datetime.now(timezone.utc)
            row.last_error = None
            report.sent += 1
        else:
            row.status = OutboxStatus.FAILED
            row.last_error = result.error or "send error"
            report.failed += 1
            logger.warning("Notification %s to %s failed: %s", row.id, row.to_phone, row.last_error)
        db.commit()
        report.processed += 1
    return report
