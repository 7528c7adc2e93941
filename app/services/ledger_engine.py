"""Wallet ledger engine.

Pure state transitions over :class:`WalletState`: given a wallet and a
purchase total (or a manual delta, a payment, a model change) produce the
new wallet, exactly one ledger entry draft and any alerts. Nothing here
touches the database or the network; persistence lives in
``app.services.wallet`` and ``app.services.gateway``.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from app.core.enums import AlertType, LedgerKind, PricingModel, UserRole
from app.services.alerts import (
    NEGATIVE_LEVEL,
    THRESHOLD_LEVELS,
    AlertDraft,
    available_ratio,
    evaluate_thresholds,
)
from app.services.errors import (
    CreditLimitExceededError,
    InsufficientBalanceError,
    PermissionDeniedError,
    ValidationError,
    WalletBlockedError,
)

CENT = Decimal("0.01")

NEGATIVE_BALANCE_REASON = "negative balance, credit required"
CREDIT_LIMIT_REASON = "credit limit exceeded"


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class WalletState:
    id: str
    student_id: str
    balance: Decimal
    credit_limit: Decimal
    model: PricingModel
    allow_negative_once_used: bool = False
    blocked: bool = False
    blocked_reason: Optional[str] = None
    alert_baseline: Optional[Decimal] = None
    last_alert_level: Optional[Decimal] = None


@dataclass(frozen=True)
class LedgerEntryDraft:
    wallet_id: str
    kind: LedgerKind
    amount: Decimal
    balance_after: Decimal
    created_at: datetime
    description: Optional[str] = None
    related_order_id: Optional[str] = None
    created_by: Optional[str] = None


@dataclass(frozen=True)
class PurchaseContext:
    guardian_id: str
    student_id: str
    actor_id: str
    order_id: Optional[str] = None
    description: str = "Purchase registered at POS"
    now: Optional[datetime] = None


@dataclass(frozen=True)
class Actor:
    id: str
    role: UserRole


@dataclass(frozen=True)
class PurchaseResult:
    wallet: WalletState
    ledger_entry: LedgerEntryDraft
    alerts: list[AlertDraft] = field(default_factory=list)


@dataclass(frozen=True)
class BalanceChange:
    wallet: WalletState
    ledger_entry: Optional[LedgerEntryDraft]


def available_amount(wallet: WalletState) -> Decimal:
    if wallet.model == PricingModel.PREPAID:
        return wallet.balance
    return max(wallet.credit_limit - wallet.balance, Decimal("0"))


def reset_alert_cycle(wallet: WalletState) -> WalletState:
    """Start a new alert cycle once the wallet is back above the highest threshold."""
    if wallet.last_alert_level is None:
        return wallet
    if available_ratio(wallet, available_amount(wallet)) > THRESHOLD_LEVELS[0]:
        return replace(wallet, last_alert_level=None)
    return wallet


def apply_purchase(wallet: WalletState, total, context: PurchaseContext) -> PurchaseResult:
    if wallet.blocked:
        raise WalletBlockedError("Student is blocked for purchases")
    total = to_money(total)
    if total < 0:
        raise ValidationError("Purchase total must not be negative")

    now = context.now or _utcnow()
    alerts: list[AlertDraft] = []

    if wallet.model == PricingModel.PREPAID:
        new_balance = to_money(wallet.balance - total)
        if wallet.balance >= total:
            updated = replace(wallet, balance=new_balance)
        elif not wallet.allow_negative_once_used:
            # One purchase into negative is allowed; the wallet blocks until credited.
            updated = replace(
                wallet,
                balance=new_balance,
                allow_negative_once_used=True,
                blocked=True,
                blocked_reason=NEGATIVE_BALANCE_REASON,
            )
            alerts.append(
                AlertDraft(
                    student_id=context.student_id,
                    guardian_id=context.guardian_id,
                    alert_type=AlertType.NEGATIVE,
                    level=NEGATIVE_LEVEL,
                    message=(
                        f"Purchase allowed with negative balance ({total:.2f}). "
                        "Student blocked until credit is added."
                    ),
                    created_at=now,
                )
            )
        else:
            raise InsufficientBalanceError(
                "Insufficient balance. The negative balance exception was already used."
            )
        ledger_amount = -total
    else:
        new_debt = to_money(wallet.balance + total)
        if new_debt > wallet.credit_limit:
            blocked = replace(wallet, blocked=True, blocked_reason=CREDIT_LIMIT_REASON)
            raise CreditLimitExceededError("Credit limit exceeded. Student blocked.", blocked_wallet=blocked)
        updated = replace(wallet, balance=new_debt)
        ledger_amount = total

    updated, threshold_alerts = evaluate_thresholds(
        updated,
        guardian_id=context.guardian_id,
        student_id=context.student_id,
        available=available_amount(updated),
        now=now,
    )
    alerts.extend(threshold_alerts)

    entry = LedgerEntryDraft(
        wallet_id=wallet.id,
        kind=LedgerKind.PURCHASE,
        amount=ledger_amount,
        balance_after=updated.balance,
        created_at=now,
        description=context.description,
        related_order_id=context.order_id,
        created_by=context.actor_id,
    )
    return PurchaseResult(wallet=updated, ledger_entry=entry, alerts=alerts)


def apply_adjustment(
    wallet: WalletState,
    amount,
    description: str,
    actor: Actor,
    now: Optional[datetime] = None,
) -> BalanceChange:
    if actor.role != UserRole.ADMIN:
        raise PermissionDeniedError("Adjustments are restricted to administrators")
    if not (description or "").strip():
        raise ValidationError("Adjustment description is required")
    amount = to_money(amount)

    updated = replace(wallet, balance=to_money(wallet.balance + amount))
    if updated.balance >= 0:
        # Any non-negative balance lifts the block, whatever caused it.
        updated = replace(updated, blocked=False, blocked_reason=None)
    updated = reset_alert_cycle(updated)

    entry = LedgerEntryDraft(
        wallet_id=wallet.id,
        kind=LedgerKind.CREDIT if amount >= 0 else LedgerKind.DEBIT,
        amount=amount,
        balance_after=updated.balance,
        created_at=now or _utcnow(),
        description=description.strip(),
        created_by=actor.id,
    )
    return BalanceChange(wallet=updated, ledger_entry=entry)


def apply_payment(
    wallet: WalletState,
    amount,
    description: str = "Pix payment",
    actor_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> BalanceChange:
    """Credit a confirmed payment: top up a prepaid balance or pay down postpaid debt."""
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than zero")

    if wallet.model == PricingModel.PREPAID:
        new_balance = to_money(wallet.balance + amount)
    else:
        new_balance = max(to_money(wallet.balance - amount), Decimal("0.00"))

    updated = replace(wallet, balance=new_balance, blocked=False, blocked_reason=None)
    updated = reset_alert_cycle(updated)

    entry = LedgerEntryDraft(
        wallet_id=wallet.id,
        kind=LedgerKind.PAYMENT,
        amount=to_money(new_balance - wallet.balance),
        balance_after=new_balance,
        created_at=now or _utcnow(),
        description=description,
        created_by=actor_id,
    )
    return BalanceChange(wallet=updated, ledger_entry=entry)


def apply_model_change(
    wallet: WalletState,
    model: PricingModel,
    credit_limit,
    blocked_reason: Optional[str] = None,
    actor_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> BalanceChange:
    credit_limit = to_money(credit_limit)
    if credit_limit < 0:
        raise ValidationError("Credit limit must not be negative")

    if model == PricingModel.PREPAID:
        updated = replace(
            wallet,
            model=model,
            credit_limit=credit_limit,
            balance=max(wallet.balance, Decimal("0.00")),
            blocked=False,
            blocked_reason=None,
        )
    else:
        updated = replace(
            wallet,
            model=model,
            credit_limit=credit_limit,
            blocked_reason=blocked_reason if blocked_reason is not None else wallet.blocked_reason,
        )
    updated = reset_alert_cycle(updated)

    entry = None
    delta = to_money(updated.balance - wallet.balance)
    if delta != 0:
        entry = LedgerEntryDraft(
            wallet_id=wallet.id,
            kind=LedgerKind.ADJUSTMENT,
            amount=delta,
            balance_after=updated.balance,
            created_at=now or _utcnow(),
            description="Negative balance cleared on switch to prepaid",
            created_by=actor_id,
        )
    return BalanceChange(wallet=updated, ledger_entry=entry)
