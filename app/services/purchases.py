import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from app.core.enums import UserRole
from app.models import Product, Student, StudentStatus, Wallet
from app.services.errors import (
    NotFoundError,
    PermissionDeniedError,
    StudentInactiveError,
    ValidationError,
    WalletBlockedError,
)
from app.services.gateway import PurchaseGateway, PurchaseItem, PurchaseOutcome, PurchaseRequest
from app.services.ledger_engine import Actor, to_money
from app.services.outbox import enqueue_purchase_notifications

logger = logging.getLogger(__name__)

POS_ROLES = {UserRole.ADMIN, UserRole.OPERATOR}


@dataclass(frozen=True)
class CartLine:
    product_id: str
    quantity: int
    unit_price: Optional[Decimal] = None


def resolve_items(db: Session, lines: list[CartLine]) -> list[PurchaseItem]:
    """Validate cart lines against the catalog; an explicit unit price overrides the catalog price."""
    if not lines:
        raise ValidationError("At least one item is required")
    items = []
    for line in lines:
        if not line.product_id:
            raise ValidationError("product_id is required")
        if line.quantity is None or int(line.quantity) <= 0:
            raise ValidationError("Quantity must be greater than zero")
        product = db.query(Product).filter(Product.id == line.product_id).first()
        if not product or not product.active:
            raise ValidationError(f"Product {line.product_id} is not available")
        price = line.unit_price if line.unit_price is not None else product.price
        price = to_money(price)
        if price < 0:
            raise ValidationError("Unit price must not be negative")
        items.append(PurchaseItem(product_id=product.id, quantity=int(line.quantity), unit_price=price))
    return items


def record_purchase(
    db: Session,
    gateway: PurchaseGateway,
    *,
    student_id: str,
    lines: list[CartLine],
    actor: Actor,
) -> PurchaseOutcome:
    if actor.role not in POS_ROLES:
        raise PermissionDeniedError("Not allowed to register purchases")

    student = db.query(Student).filter(Student.id == student_id).first()
    if not student:
        raise NotFoundError("Student not found")
    if student.status != StudentStatus.ACTIVE:
        raise StudentInactiveError("Student is not active")

    wallet = db.query(Wallet).filter(Wallet.student_id == student_id).first()
    if not wallet:
        raise NotFoundError("Wallet not found")
    if wallet.blocked:
        raise WalletBlockedError("Student is blocked for purchases")

    items = resolve_items(db, lines)
    request = PurchaseRequest(student_id=student.id, guardian_id=student.guardian_id, items=items, actor=actor)
    outcome = gateway.process_purchase(request)
    logger.info(
        "Purchase %s for student %s: total=%s balance=%s alerts=%s",
        outcome.order.id,
        student.id,
        outcome.order.total,
        outcome.wallet.balance,
        len(outcome.alerts),
    )

    db.refresh(wallet)
    enqueue_purchase_notifications(db, order=outcome.order, student=student, wallet=wallet, alerts=outcome.alerts)
    return outcome
