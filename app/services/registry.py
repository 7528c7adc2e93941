import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from app.core.enums import PricingModel
from app.models import Guardian, Product, Student, StudentStatus, StudyPeriod, Wallet
from app.services.errors import NotFoundError, ValidationError
from app.services.ledger_engine import to_money

logger = logging.getLogger(__name__)

DEFAULT_PREPAID_BASELINE = Decimal("50")


def register_guardian(
    db: Session,
    *,
    full_name: str,
    phone: str,
    cpf: str,
    address: Optional[dict] = None,
    terms_version: Optional[str] = None,
    terms_accepted_at=None,
) -> Guardian:
    if not (full_name or "").strip() or not (phone or "").strip() or not (cpf or "").strip():
        raise ValidationError("Guardian name, phone and CPF are required")
    if db.query(Guardian).filter(Guardian.cpf == cpf.strip()).first():
        raise ValidationError("A guardian with this CPF is already registered")
    guardian = Guardian(
        full_name=full_name.strip(),
        phone=phone.strip(),
        cpf=cpf.strip(),
        address=address,
        terms_version=terms_version,
        terms_accepted_at=terms_accepted_at,
    )
    db.add(guardian)
    db.commit()
    db.refresh(guardian)
    return guardian


def default_alert_baseline(model: PricingModel, credit_limit: Optional[Decimal]) -> Optional[Decimal]:
    if model == PricingModel.PREPAID:
        return to_money(credit_limit) if credit_limit is not None else DEFAULT_PREPAID_BASELINE
    return to_money(credit_limit) if credit_limit is not None else None


def register_student(
    db: Session,
    *,
    guardian_id: str,
    full_name: str,
    grade: str,
    period: Optional[StudyPeriod],
    pricing_model: PricingModel = PricingModel.PREPAID,
    observations: Optional[str] = None,
    credit_limit: Optional[Decimal] = None,
    alert_baseline: Optional[Decimal] = None,
) -> Student:
    """Create the student and its wallet (balance 0)."""
    if not (full_name or "").strip() or not guardian_id or not (grade or "").strip() or not period:
        raise ValidationError("Student data is incomplete")
    if credit_limit is not None and credit_limit < 0:
        raise ValidationError("Credit limit must not be negative")
    if not db.query(Guardian).filter(Guardian.id == guardian_id).first():
        raise NotFoundError("Guardian not found")

    student = Student(
        guardian_id=guardian_id,
        full_name=full_name.strip(),
        grade=grade.strip(),
        period=period,
        status=StudentStatus.ACTIVE,
        pricing_model=pricing_model,
        observations=observations,
    )
    db.add(student)
    db.flush()
    wallet = Wallet(
        student_id=student.id,
        balance=Decimal("0"),
        credit_limit=to_money(credit_limit or 0),
        model=pricing_model,
        allow_negative_once_used=False,
        blocked=False,
        alert_baseline=(
            to_money(alert_baseline)
            if alert_baseline is not None
            else default_alert_baseline(pricing_model, credit_limit)
        ),
    )
    db.add(wallet)
    db.commit()
    db.refresh(student)
    logger.info("Registered student %s (%s) for guardian %s", student.id, pricing_model.value, guardian_id)
    return student


def create_product(db: Session, *, name: str, price: Decimal, category: Optional[str] = None) -> Product:
    if not (name or "").strip():
        raise ValidationError("Product name is required")
    price = to_money(price)
    if price < 0:
        raise ValidationError("Price must not be negative")
    product = Product(name=name.strip(), price=price, category=category, active=True)
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def list_products(db: Session, include_inactive: bool = False) -> list[Product]:
    query = db.query(Product)
    if not include_inactive:
        query = query.filter(Product.active.is_(True))
    return query.order_by(Product.created_at.asc(), Product.name.asc()).all()


def list_guardians(db: Session, limit: int = 200) -> list[Guardian]:
    return db.query(Guardian).order_by(Guardian.full_name.asc()).limit(limit).all()


def list_students(db: Session, guardian_id: Optional[str] = None, limit: int = 500) -> list[Student]:
    query = db.query(Student)
    if guardian_id:
        query = query.filter(Student.guardian_id == guardian_id)
    return query.order_by(Student.full_name.asc()).limit(limit).all()
