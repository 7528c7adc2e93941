import enum
from sqlalchemy import Column, String, ForeignKey, Numeric, Enum, Index, DateTime, Text
from app.core.database import Base
from app.models.base import TimestampMixin, enum_values, new_id


class PixChargeStatus(str, enum.Enum):
    CREATED = "created"
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    EXPIRED = "expired"
    REFUNDED = "refunded"


class PixCharge(Base, TimestampMixin):
    __tablename__ = "pix_charges"

    id = Column(String(36), primary_key=True, default=new_id)
    guardian_id = Column(String(36), ForeignKey("guardians.id"), nullable=False)
    student_id = Column(String(36), ForeignKey("students.id"), nullable=True)
    txid = Column(String(128), unique=True, nullable=False, index=True)
    status = Column(Enum(PixChargeStatus, values_callable=enum_values), nullable=False, default=PixChargeStatus.CREATED)
    amount = Column(Numeric(12, 2), nullable=False)
    br_code = Column(Text, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    description = Column(String(255), nullable=True)
    ledger_id = Column(String(36), ForeignKey("wallet_ledger.id"), nullable=True)


Index("ix_pix_charges_guardian_status", PixCharge.guardian_id, PixCharge.status)
