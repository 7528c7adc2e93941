from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.core.enums import LedgerKind, PricingModel


class WalletOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    balance: Decimal
    credit_limit: Decimal
    model: PricingModel
    allow_negative_once_used: bool
    blocked: bool
    blocked_reason: Optional[str] = None
    alert_baseline: Optional[Decimal] = None
    last_alert_level: Optional[Decimal] = None


class LedgerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    kind: LedgerKind
    amount: Decimal
    balance_after: Decimal
    description: Optional[str] = None
    related_order_id: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


class AdjustWalletRequest(BaseModel):
    amount: Decimal
    description: str = Field(..., min_length=1, max_length=255)


class UpdateWalletModelRequest(BaseModel):
    model: PricingModel
    credit_limit: Decimal = Field(default=Decimal("0"), ge=0)
    blocked_reason: Optional[str] = Field(default=None, max_length=255)


class RemoteWalletRow(BaseModel):
    """Wallet row as returned by the hosted backend (snake_case columns)."""

    model_config = ConfigDict(extra="ignore")

    id: str
    student_id: str
    balance: Decimal = Decimal("0")
    credit_limit: Decimal = Decimal("0")
    model: PricingModel
    allow_negative_once_used: bool = False
    blocked: bool = False
    blocked_reason: Optional[str] = None
    alert_baseline: Optional[Decimal] = None
    last_alert_level: Optional[Decimal] = None
