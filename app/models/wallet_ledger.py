from sqlalchemy import Column, String, ForeignKey, Numeric, Enum, Index
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.core.enums import LedgerKind
from app.models.base import TimestampMixin, enum_values, new_id


class WalletLedger(Base, TimestampMixin):
    __tablename__ = "wallet_ledger"

    id = Column(String(36), primary_key=True, default=new_id)
    wallet_id = Column(String(36), ForeignKey("wallets.id"), nullable=False)
    kind = Column(Enum(LedgerKind, values_callable=enum_values), nullable=False)
    # Signed balance delta; the running sum reproduces Wallet.balance.
    amount = Column(Numeric(12, 2), nullable=False)
    balance_after = Column(Numeric(12, 2), nullable=False)
    description = Column(String(255), nullable=True)
    related_order_id = Column(String(36), ForeignKey("orders.id"), nullable=True)
    created_by = Column(String(36), nullable=True)

    wallet = relationship("Wallet", back_populates="ledger_entries")


Index("ix_wallet_ledger_wallet_id_kind", WalletLedger.wallet_id, WalletLedger.kind)
