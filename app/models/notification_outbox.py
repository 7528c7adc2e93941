import enum
from sqlalchemy import Column, String, ForeignKey, Integer, Enum, Index, DateTime, JSON, Text
from app.core.database import Base
from app.models.base import TimestampMixin, enum_values, new_id


class OutboxStatus(str, enum.Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class NotificationKind(str, enum.Enum):
    PURCHASE = "purchase"
    ALERT = "alert"
    WEEKLY_REPORT = "weekly_report"


class NotificationOutbox(Base, TimestampMixin):
    __tablename__ = "notification_outbox"

    id = Column(String(36), primary_key=True, default=new_id)
    guardian_id = Column(String(36), ForeignKey("guardians.id"), nullable=False)
    student_id = Column(String(36), ForeignKey("students.id"), nullable=True)
    kind = Column(Enum(NotificationKind, values_callable=enum_values), nullable=False)
    to_phone = Column(String(32), nullable=False)
    payload = Column(JSON, nullable=False)
    status = Column(Enum(OutboxStatus, values_callable=enum_values), nullable=False, default=OutboxStatus.PENDING)
    attempt_count = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)


Index("ix_notification_outbox_status_created", NotificationOutbox.status, NotificationOutbox.created_at)
