import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.models import NotificationOutbox, OutboxStatus
from app.services.outbox import MessageSender, dispatch_outbox
from app.services.reports import queue_weekly_summaries
from app.services.zapi import ZapiClient

logger = logging.getLogger(__name__)


@dataclass
class JobResult:
    status_code: int
    body: dict = field(default_factory=dict)


def _database_ready(db: Session) -> bool:
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as exc:
        logger.error("Job aborted, database unavailable: %s", exc)
        db.rollback()
        return False


def run_dispatch_outbox(db: Session, sender: Optional[MessageSender] = None) -> JobResult:
    if not _database_ready(db):
        return JobResult(500, {"message": "database unavailable"})
    sender = sender or ZapiClient()
    if not sender.is_configured():
        logger.info("Outbox dispatch skipped: Z-API not configured")
        return JobResult(200, {"message": "Z-API not configured"})

    pending = db.query(NotificationOutbox).filter(NotificationOutbox.status == OutboxStatus.PENDING).count()
    if not pending:
        return JobResult(200, {"message": "no pending messages"})

    report = dispatch_outbox(db, sender, batch_size=get_settings().outbox_batch_size)
    logger.info("Outbox dispatch: processed=%s sent=%s failed=%s", report.processed, report.sent, report.failed)
    return JobResult(
        200,
        {
            "message": f"processed {report.processed}",
            "processed": report.processed,
            "sent": report.sent,
            "failed": report.failed,
        },
    )


def run_weekly_summary(db: Session) -> JobResult:
    if not _database_ready(db):
        return JobResult(500, {"message": "database unavailable"})
    try:
        queued = queue_weekly_summaries(db)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Weekly summary failed: %s", exc)
        return JobResult(500, {"message": "weekly summary failed"})
    return JobResult(200, {"message": f"queued {queued}", "queued": queued})
