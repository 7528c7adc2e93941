"""Percentage-based low balance / low limit alerts.

A wallet's available amount is compared against its alert base (the
configured baseline, else the credit limit). Each threshold fires once per
cycle: ``last_alert_level`` records the lowest level already fired and only
moves down here. Resetting it is the job of the credit paths
(see :func:`app.services.ledger_engine.reset_alert_cycle`).
"""

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal

from app.core.enums import AlertType, PricingModel

THRESHOLD_LEVELS = (Decimal("0.30"), Decimal("0.15"), Decimal("0"))
NEGATIVE_LEVEL = Decimal("-1")

ZERO_MESSAGE = "Automatic notice: balance/limit has reached zero"


@dataclass(frozen=True)
class AlertDraft:
    student_id: str
    guardian_id: str
    alert_type: AlertType
    level: Decimal
    message: str
    created_at: datetime


def alert_base(wallet) -> Decimal:
    if wallet.alert_baseline is not None:
        return Decimal(wallet.alert_baseline)
    return Decimal(wallet.credit_limit or 0)


def available_ratio(wallet, available: Decimal) -> Decimal:
    base = alert_base(wallet)
    if base == 0:
        return Decimal("0")
    return Decimal(available) / base


def _already_fired(last_alert_level, level: Decimal) -> bool:
    return last_alert_level is not None and Decimal(last_alert_level) <= level


def _threshold_message(model: PricingModel, level: Decimal) -> str:
    percent = int((level * 100).to_integral_value())
    if model == PricingModel.PREPAID:
        return f"Balance reached {percent}%"
    return f"Remaining credit limit reached {percent}%"


def evaluate_thresholds(wallet, *, guardian_id: str, student_id: str, available: Decimal, now: datetime):
    """Return ``(wallet', alerts)`` for the thresholds crossed at ``available``.

    Several levels can fire in one call; alerts come out in descending level
    order, the zero-level alert last.
    """
    alert_type = AlertType.BALANCE if wallet.model == PricingModel.PREPAID else AlertType.LIMIT
    base = alert_base(wallet)
    ratio = available_ratio(wallet, available)
    last_level = wallet.last_alert_level
    triggered: list[AlertDraft] = []

    # With no base there is no meaningful percentage; only the zero notice applies.
    if base > 0:
        for level in THRESHOLD_LEVELS:
            if level <= 0:
                continue
            if not _already_fired(last_level, level) and ratio <= level:
                triggered.append(
                    AlertDraft(
                        student_id=student_id,
                        guardian_id=guardian_id,
                        alert_type=alert_type,
                        level=level,
                        message=_threshold_message(wallet.model, level),
                        created_at=now,
                    )
                )
                last_level = level

    if available <= 0 and (last_level is None or Decimal(last_level) > 0):
        triggered.append(
            AlertDraft(
                student_id=student_id,
                guardian_id=guardian_id,
                alert_type=alert_type,
                level=Decimal("0"),
                message=ZERO_MESSAGE,
                created_at=now,
            )
        )
        last_level = Decimal("0")

    if last_level != wallet.last_alert_level:
        wallet = replace(wallet, last_alert_level=last_level)
    return wallet, triggered
