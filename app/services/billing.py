import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy.orm import Session

from app.models import Guardian, PixCharge, PixChargeStatus, Student, Wallet
from app.services.errors import NotFoundError, ValidationError
from app.services.ledger_engine import to_money
from app.services.pix import PagSeguroClient
from app.services.wallet import credit_payment

logger = logging.getLogger(__name__)

PIX_PAYMENT_DESCRIPTION = "Pix payment (PagSeguro)"


def create_pix_charge(
    db: Session,
    client: PagSeguroClient,
    *,
    guardian_id: str,
    amount: Decimal,
    student_id: Optional[str] = None,
    description: Optional[str] = None,
) -> PixCharge:
    if not guardian_id:
        raise ValidationError("guardian_id is required")
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Amount must be greater than zero")
    guardian = db.query(Guardian).filter(Guardian.id == guardian_id).first()
    if not guardian:
        raise NotFoundError("Guardian not found")
    if student_id:
        student = db.query(Student).filter(Student.id == student_id).first()
        if not student or student.guardian_id != guardian_id:
            raise ValidationError("Student does not belong to this guardian")

    result = client.create_charge(reference_id=student_id or guardian_id, amount=amount, description=description)
    charge = PixCharge(
        guardian_id=guardian_id,
        student_id=student_id,
        txid=result["txid"],
        status=PixChargeStatus.PENDING,
        amount=amount,
        br_code=result["br_code"],
        expires_at=result["expires_at"],
        description=description,
    )
    db.add(charge)
    db.commit()
    db.refresh(charge)
    logger.info("Pix charge %s created for guardian %s (amount=%s)", charge.txid, guardian_id, amount)
    return charge


def _coerce_status(raw) -> PixChargeStatus:
    value = str(raw or "").strip().lower()
    for status in PixChargeStatus:
        if value == status.value:
            return status
    raise ValidationError(f"Unknown charge status: {raw}")


def _payload_amount(payload: dict) -> Optional[Decimal]:
    raw = payload.get("amount")
    if raw is None:
        raw = (payload.get("value") or {}).get("amount")
    if raw is None:
        return None
    try:
        return to_money(raw)
    except (InvalidOperation, ValueError):
        raise ValidationError("Invalid amount")


def handle_pix_webhook(db: Session, payload: dict) -> PixCharge:
    """Apply a provider confirmation. A charge is credited at most once."""
    txid = payload.get("txid") or payload.get("charge_id")
    if not txid:
        raise ValidationError("txid is required")
    status = _coerce_status(payload.get("status") or payload.get("charge_status"))
    paid_amount = _payload_amount(payload)
    if status == PixChargeStatus.PAID and paid_amount is not None and paid_amount <= 0:
        raise ValidationError("Paid amount must be greater than zero")

    # Row lock: concurrent deliveries for one txid are serialized so only one sees it unpaid.
    charge = (
        db.query(PixCharge)
        .filter(PixCharge.txid == str(txid))
        .populate_existing()
        .with_for_update()
        .first()
    )
    if not charge:
        raise NotFoundError("Charge not found")

    already_paid = charge.status == PixChargeStatus.PAID
    charge.status = status
    qr_codes = payload.get("qr_codes") or []
    if qr_codes and qr_codes[0].get("emv"):
        charge.br_code = qr_codes[0]["emv"]

    if status == PixChargeStatus.PAID and not already_paid:
        amount = paid_amount if paid_amount is not None else to_money(charge.amount)
        if charge.student_id:
            wallet = db.query(Wallet).filter(Wallet.student_id == charge.student_id).with_for_update().first()
            if wallet:
                entry = credit_payment(db, wallet, amount, PIX_PAYMENT_DESCRIPTION)
                charge.ledger_id = entry.id
                logger.info("Pix %s credited %s to wallet %s (balance=%s)", charge.txid, amount, wallet.id, wallet.balance)
            else:
                logger.warning("Pix %s paid but student %s has no wallet", charge.txid, charge.student_id)
        else:
            logger.info("Pix %s paid without student; nothing to credit", charge.txid)
    elif status == PixChargeStatus.PAID:
        logger.info("Duplicate paid confirmation for Pix %s ignored", charge.txid)

    db.commit()
    db.refresh(charge)
    return charge


def list_pix_charges(db: Session, guardian_id: Optional[str] = None, limit: int = 50) -> list[PixCharge]:
    query = db.query(PixCharge)
    if guardian_id:
        query = query.filter(PixCharge.guardian_id == guardian_id)
    return query.order_by(PixCharge.created_at.desc()).limit(limit).all()
