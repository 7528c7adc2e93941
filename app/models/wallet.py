from sqlalchemy import Column, String, ForeignKey, Numeric, Boolean, Enum, Index
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin, enum_values, new_id
from app.core.enums import PricingModel


class Wallet(Base, TimestampMixin):
    __tablename__ = "wallets"

    id = Column(String(36), primary_key=True, default=new_id)
    student_id = Column(String(36), ForeignKey("students.id"), unique=True, nullable=False)
    # Prepaid: available credit. Postpaid: accumulated debt.
    balance = Column(Numeric(12, 2), default=0, nullable=False)
    credit_limit = Column(Numeric(12, 2), default=0, nullable=False)
    model = Column(Enum(PricingModel, values_callable=enum_values), nullable=False, default=PricingModel.PREPAID)
    allow_negative_once_used = Column(Boolean, default=False, nullable=False)
    blocked = Column(Boolean, default=False, nullable=False)
    blocked_reason = Column(String(255), nullable=True)
    alert_baseline = Column(Numeric(12, 2), nullable=True)
    last_alert_level = Column(Numeric(4, 2), nullable=True)

    student = relationship("Student", back_populates="wallet")
    ledger_entries = relationship("WalletLedger", back_populates="wallet")


Index("ix_wallets_student_id", Wallet.student_id)
