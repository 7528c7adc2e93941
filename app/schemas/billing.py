from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models import PixChargeStatus


class PixChargeRequest(BaseModel):
    guardian_id: Optional[str] = None
    student_id: Optional[str] = None
    amount: Decimal = Field(..., gt=0)
    description: Optional[str] = Field(default=None, max_length=255)


class PixChargeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    txid: str
    status: PixChargeStatus
    amount: Decimal
    br_code: Optional[str] = None
    expires_at: Optional[datetime] = None
    student_id: Optional[str] = None
    guardian_id: str
