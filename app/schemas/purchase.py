from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.core.enums import AlertType
from app.schemas.wallet import WalletOut


class PurchaseItemIn(BaseModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    unit_price: Optional[Decimal] = Field(default=None, ge=0)


class PurchaseRequestIn(BaseModel):
    student_id: str = Field(..., min_length=1)
    items: list[PurchaseItemIn] = Field(..., min_length=1)


class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: str
    quantity: int
    unit_price: Decimal


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    total: Decimal
    created_by: str
    created_at: Optional[datetime] = None
    items: list[OrderItemOut] = []


class AlertDraftOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    alert_type: AlertType
    level: Decimal
    message: str


class PurchaseResponse(BaseModel):
    order: OrderOut
    wallet: WalletOut
    alerts: list[AlertDraftOut] = []


class DashboardOut(BaseModel):
    total_sales: Decimal
    order_count: int
    prepaid_count: int
    postpaid_count: int
    blocked_count: int
    open_alerts: int
    latest_orders: list[OrderOut] = []
