from sqlalchemy import Column, String, ForeignKey, Numeric, Enum, Index, DateTime
from app.core.database import Base
from app.core.enums import AlertType
from app.models.base import TimestampMixin, enum_values, new_id


class Alert(Base, TimestampMixin):
    __tablename__ = "alerts"

    id = Column(String(36), primary_key=True, default=new_id)
    student_id = Column(String(36), ForeignKey("students.id"), nullable=False)
    guardian_id = Column(String(36), ForeignKey("guardians.id"), nullable=False)
    alert_type = Column("type", Enum(AlertType, values_callable=enum_values), nullable=False)
    # Threshold ratio (0.30, 0.15, 0) or -1 when the negative-balance exception was used.
    level = Column(Numeric(4, 2), nullable=False)
    message = Column(String(500), nullable=False)
    acknowledged_at = Column(DateTime(timezone=True), nullable=True)


Index("ix_alerts_student_created", Alert.student_id, Alert.created_at)
Index("ix_alerts_acknowledged", Alert.acknowledged_at)
