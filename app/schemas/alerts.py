from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.core.enums import AlertType


class AlertOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    guardian_id: str
    alert_type: AlertType
    level: Decimal
    message: str
    acknowledged_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
