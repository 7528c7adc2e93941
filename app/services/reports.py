import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.enums import PricingModel
from app.models import Alert, Guardian, NotificationKind, Order, Student, Wallet
from app.services.ledger_engine import to_money
from app.services.outbox import enqueue_notification, format_brl, portal_link
from app.utils.phone import normalize_phone

logger = logging.getLogger(__name__)


def _format_date(value: Optional[datetime]) -> str:
    return value.strftime("%d/%m/%Y") if value else "-"


def weekly_consumption(db: Session, since: datetime) -> list:
    """Per-student spending since ``since``: (guardian_id, student_id, full_name, total, first, last)."""
    return (
        db.query(
            Student.guardian_id,
            Student.id,
            Student.full_name,
            func.coalesce(func.sum(Order.total), 0),
            func.min(Order.created_at),
            func.max(Order.created_at),
        )
        .join(Order, Order.student_id == Student.id)
        .filter(Order.created_at >= since)
        .group_by(Student.guardian_id, Student.id, Student.full_name)
        .all()
    )


def build_weekly_message(rows: list[dict]) -> str:
    settings = get_settings()
    link = portal_link()
    lines = [settings.whatsapp_from_name, "Weekly summary"]
    for row in rows:
        lines.append(
            f"- {row['student_name']}: {format_brl(row['total_spent'])} "
            f"(from {_format_date(row['first_purchase'])} to {_format_date(row['last_purchase'])})"
        )
    if link:
        lines.append(f"Follow up: {link}")
    return "\n".join(lines)


def queue_weekly_summaries(db: Session, now: Optional[datetime] = None, days: Optional[int] = None) -> int:
    settings = get_settings()
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(days=days or settings.weekly_summary_days)

    grouped: dict[str, list[dict]] = defaultdict(list)
    for guardian_id, student_id, full_name, total, first, last in weekly_consumption(db, since):
        grouped[guardian_id].append(
            {
                "student_id": student_id,
                "student_name": full_name,
                "total_spent": to_money(total or 0),
                "first_purchase": first,
                "last_purchase": last,
            }
        )

    queued = 0
    for guardian_id, rows in grouped.items():
        guardian = db.query(Guardian).filter(Guardian.id == guardian_id).first()
        if not guardian:
            continue
        firsts = [row["first_purchase"] for row in rows if row["first_purchase"]]
        lasts = [row["last_purchase"] for row in rows if row["last_purchase"]]
        first_purchase = min(firsts) if firsts else None
        last_purchase = max(lasts) if lasts else None
        enqueue_notification(
            db,
            guardian_id=guardian_id,
            kind=NotificationKind.WEEKLY_REPORT,
            to_phone=normalize_phone(guardian.phone),
            payload={
                "message": build_weekly_message(rows),
                "period": {
                    "start": first_purchase.isoformat() if first_purchase else None,
                    "end": last_purchase.isoformat() if last_purchase else None,
                },
                "total_spent": str(sum((row["total_spent"] for row in rows), Decimal("0"))),
                "summary": [
                    {
                        "student_id": row["student_id"],
                        "student_name": row["student_name"],
                        "total_spent": str(row["total_spent"]),
                        "first_purchase": row["first_purchase"].isoformat() if row["first_purchase"] else None,
                        "last_purchase": row["last_purchase"].isoformat() if row["last_purchase"] else None,
                    }
                    for row in rows
                ],
            },
        )
        queued += 1
    db.commit()
    logger.info("Queued %s weekly summaries", queued)
    return queued


def dashboard_summary(db: Session, latest: int = 10) -> dict:
    """Headline numbers for the staff dashboard."""
    total_sales = db.query(func.coalesce(func.sum(Order.total), 0)).scalar()
    order_count = db.query(func.count(Order.id)).scalar() or 0
    model_counts = dict(db.query(Wallet.model, func.count(Wallet.id)).group_by(Wallet.model).all())
    blocked_count = db.query(func.count(Wallet.id)).filter(Wallet.blocked.is_(True)).scalar() or 0
    open_alerts = db.query(func.count(Alert.id)).filter(Alert.acknowledged_at.is_(None)).scalar() or 0
    latest_orders = db.query(Order).order_by(Order.created_at.desc()).limit(latest).all()
    return {
        "total_sales": to_money(total_sales or 0),
        "order_count": order_count,
        "prepaid_count": model_counts.get(PricingModel.PREPAID, 0),
        "postpaid_count": model_counts.get(PricingModel.POSTPAID, 0),
        "blocked_count": blocked_count,
        "open_alerts": open_alerts,
        "latest_orders": latest_orders,
    }
