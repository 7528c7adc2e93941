import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from app.core.enums import PricingModel
from app.models import Alert, Student, Wallet, WalletLedger
from app.services.alerts import AlertDraft
from app.services.errors import NotFoundError
from app.services.ledger_engine import (
    Actor,
    LedgerEntryDraft,
    WalletState,
    apply_adjustment,
    apply_model_change,
    apply_payment,
    to_money,
)

logger = logging.getLogger(__name__)


def _optional_decimal(value) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(value))


def wallet_state_from_row(row: Wallet) -> WalletState:
    return WalletState(
        id=row.id,
        student_id=row.student_id,
        balance=to_money(row.balance or 0),
        credit_limit=to_money(row.credit_limit or 0),
        model=PricingModel(row.model),
        allow_negative_once_used=bool(row.allow_negative_once_used),
        blocked=bool(row.blocked),
        blocked_reason=row.blocked_reason,
        alert_baseline=_optional_decimal(row.alert_baseline),
        last_alert_level=_optional_decimal(row.last_alert_level),
    )


def apply_state_to_row(row: Wallet, state: WalletState) -> Wallet:
    row.balance = state.balance
    row.credit_limit = state.credit_limit
    row.model = state.model
    row.allow_negative_once_used = state.allow_negative_once_used
    row.blocked = state.blocked
    row.blocked_reason = state.blocked_reason
    row.alert_baseline = state.alert_baseline
    row.last_alert_level = state.last_alert_level
    return row


def add_ledger_entry(db: Session, draft: LedgerEntryDraft) -> WalletLedger:
    entry = WalletLedger(
        wallet_id=draft.wallet_id,
        kind=draft.kind,
        amount=draft.amount,
        balance_after=draft.balance_after,
        description=draft.description,
        related_order_id=draft.related_order_id,
        created_by=draft.created_by,
        created_at=draft.created_at,
    )
    db.add(entry)
    return entry


def add_alerts(db: Session, drafts: list[AlertDraft]) -> list[Alert]:
    rows = []
    for draft in drafts:
        row = Alert(
            student_id=draft.student_id,
            guardian_id=draft.guardian_id,
            alert_type=draft.alert_type,
            level=draft.level,
            message=draft.message,
            created_at=draft.created_at,
        )
        db.add(row)
        rows.append(row)
    return rows


def get_wallet_for_student(db: Session, student_id: str, *, for_update: bool = False) -> Wallet:
    query = db.query(Wallet).filter(Wallet.student_id == student_id)
    if for_update:
        query = query.with_for_update()
    wallet = query.first()
    if not wallet:
        raise NotFoundError("Wallet not found")
    return wallet


def adjust_wallet(db: Session, *, student_id: str, amount: Decimal, description: str, actor: Actor) -> Wallet:
    wallet = get_wallet_for_student(db, student_id, for_update=True)
    change = apply_adjustment(wallet_state_from_row(wallet), amount, description, actor)
    was_blocked = bool(wallet.blocked)
    apply_state_to_row(wallet, change.wallet)
    add_ledger_entry(db, change.ledger_entry)
    db.commit()
    db.refresh(wallet)
    logger.info(
        "Wallet %s adjusted by %s (%s): balance=%s blocked=%s",
        wallet.id,
        change.ledger_entry.amount,
        actor.id,
        wallet.balance,
        wallet.blocked,
    )
    if was_blocked and not wallet.blocked:
        logger.info("Wallet %s unblocked by adjustment", wallet.id)
    return wallet


def credit_payment(
    db: Session,
    wallet: Wallet,
    amount: Decimal,
    description: str,
    actor_id: Optional[str] = None,
) -> WalletLedger:
    """Apply a confirmed payment to ``wallet``. The caller commits."""
    change = apply_payment(wallet_state_from_row(wallet), amount, description=description, actor_id=actor_id)
    if change.wallet.model == PricingModel.POSTPAID and to_money(amount) > wallet.balance:
        logger.warning(
            "Payment of %s exceeds postpaid debt %s on wallet %s; debt clamped to zero",
            amount,
            wallet.balance,
            wallet.id,
        )
    apply_state_to_row(wallet, change.wallet)
    entry = add_ledger_entry(db, change.ledger_entry)
    db.flush()
    return entry


def update_wallet_model(
    db: Session,
    *,
    student_id: str,
    model: PricingModel,
    credit_limit: Decimal,
    blocked_reason: Optional[str] = None,
    actor_id: Optional[str] = None,
) -> Wallet:
    wallet = get_wallet_for_student(db, student_id, for_update=True)
    change = apply_model_change(
        wallet_state_from_row(wallet),
        model,
        credit_limit,
        blocked_reason=blocked_reason,
        actor_id=actor_id,
    )
    apply_state_to_row(wallet, change.wallet)
    if change.ledger_entry is not None:
        add_ledger_entry(db, change.ledger_entry)
    student = db.query(Student).filter(Student.id == student_id).first()
    if student:
        student.pricing_model = model
    db.commit()
    db.refresh(wallet)
    logger.info("Wallet %s switched to %s with credit_limit=%s", wallet.id, model.value, wallet.credit_limit)
    return wallet


def list_ledger(db: Session, wallet: Wallet, limit: int = 50) -> list[WalletLedger]:
    return (
        db.query(WalletLedger)
        .filter(WalletLedger.wallet_id == wallet.id)
        .order_by(WalletLedger.created_at.desc(), WalletLedger.id.desc())
        .limit(limit)
        .all()
    )


def list_alerts(db: Session, *, unacknowledged_only: bool = False, student_id: Optional[str] = None, limit: int = 100) -> list[Alert]:
    query = db.query(Alert)
    if unacknowledged_only:
        query = query.filter(Alert.acknowledged_at.is_(None))
    if student_id:
        query = query.filter(Alert.student_id == student_id)
    return query.order_by(Alert.created_at.desc()).limit(limit).all()


def acknowledge_alert(db: Session, alert_id: str) -> Alert:
    alert = db.query(Alert).filter(Alert.id == alert_id).first()
    if not alert:
        raise NotFoundError("Alert not found")
    if alert.acknowledged_at is None:
        alert.acknowledged_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(alert)
    return alert
