from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.dependencies import get_current_user, require_admin, require_staff
from app.models import STAFF_ROLES, User
from app.schemas.registry import (
    GuardianCreate,
    GuardianOut,
    ProductCreate,
    ProductOut,
    StudentCreate,
    StudentOut,
)
from app.services.registry import (
    create_product,
    list_guardians,
    list_products,
    list_students,
    register_guardian,
    register_student,
)
from app.utils.cache import PRODUCTS_KEY, get_cached, invalidate, set_cached

router = APIRouter()


@router.post("/guardians", response_model=GuardianOut)
def create_guardian(payload: GuardianCreate, user: User = Depends(require_staff), db: Session = Depends(get_db)):
    return register_guardian(
        db,
        full_name=payload.full_name,
        phone=payload.phone,
        cpf=payload.cpf,
        address=payload.address.model_dump() if payload.address else None,
        terms_version=payload.terms_version,
        terms_accepted_at=payload.terms_accepted_at,
    )


@router.get("/guardians", response_model=list[GuardianOut])
def get_guardians(user: User = Depends(require_staff), db: Session = Depends(get_db)):
    return list_guardians(db)


@router.get("/students", response_model=list[StudentOut])
def get_students(
    guardian_id: Optional[str] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if user.role not in STAFF_ROLES:
        if not user.guardian_id:
            raise HTTPException(status_code=403, detail="Not allowed")
        guardian_id = user.guardian_id
    return list_students(db, guardian_id=guardian_id)


@router.post("/students", response_model=StudentOut)
def create_student(payload: StudentCreate, user: User = Depends(require_staff), db: Session = Depends(get_db)):
    return register_student(
        db,
        guardian_id=payload.guardian_id,
        full_name=payload.full_name,
        grade=payload.grade,
        period=payload.period,
        pricing_model=payload.pricing_model,
        observations=payload.observations,
        credit_limit=payload.credit_limit,
        alert_baseline=payload.alert_baseline,
    )


@router.get("/products", response_model=list[ProductOut])
def get_products(user: User = Depends(require_staff), db: Session = Depends(get_db)):
    cached = get_cached(PRODUCTS_KEY)
    if cached is not None:
        return cached
    products = [ProductOut.model_validate(p) for p in list_products(db)]
    set_cached(PRODUCTS_KEY, products, ttl_seconds=60)
    return products


@router.post("/products", response_model=ProductOut)
def add_product(payload: ProductCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    product = create_product(db, name=payload.name, price=payload.price, category=payload.category)
    invalidate(PRODUCTS_KEY)
    return product
