from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.core.enums import PricingModel
from app.models import StudentStatus, StudyPeriod


class AddressIn(BaseModel):
    street: Optional[str] = None
    number: Optional[str] = None
    complement: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None


class GuardianCreate(BaseModel):
    full_name: str = Field(..., min_length=2, max_length=255)
    phone: str = Field(..., min_length=8, max_length=32)
    cpf: str = Field(..., min_length=11, max_length=14)
    address: Optional[AddressIn] = None
    terms_version: Optional[str] = Field(default=None, max_length=32)
    terms_accepted_at: Optional[datetime] = None


class GuardianOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    full_name: str
    phone: str
    cpf: str
    address: Optional[dict] = None
    terms_version: Optional[str] = None
    terms_accepted_at: Optional[datetime] = None


class StudentCreate(BaseModel):
    guardian_id: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=2, max_length=255)
    grade: str = Field(..., min_length=1, max_length=64)
    period: StudyPeriod
    pricing_model: PricingModel = PricingModel.PREPAID
    observations: Optional[str] = None
    credit_limit: Optional[Decimal] = Field(default=None, ge=0)
    alert_baseline: Optional[Decimal] = Field(default=None, ge=0)


class StudentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    guardian_id: str
    full_name: str
    grade: str
    period: StudyPeriod
    status: StudentStatus
    pricing_model: PricingModel
    observations: Optional[str] = None


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    price: Decimal = Field(..., ge=0)
    category: Optional[str] = Field(default=None, max_length=64)


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    price: Decimal
    category: Optional[str] = None
    active: bool
