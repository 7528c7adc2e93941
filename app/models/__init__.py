from app.models.user import User, UserRole, STAFF_ROLES
from app.models.guardian import Guardian
from app.models.student import Student, StudentStatus, StudyPeriod, PricingModel
from app.models.wallet import Wallet
from app.models.wallet_ledger import WalletLedger, LedgerKind
from app.models.product import Product
from app.models.order import Order, OrderItem
from app.models.alert import Alert, AlertType
from app.models.pix_charge import PixCharge, PixChargeStatus
from app.models.notification_outbox import NotificationOutbox, NotificationKind, OutboxStatus

__all__ = [
    "User",
    "UserRole",
    "STAFF_ROLES",
    "Guardian",
    "Student",
    "StudentStatus",
    "StudyPeriod",
    "PricingModel",
    "Wallet",
    "WalletLedger",
    "LedgerKind",
    "Product",
    "Order",
    "OrderItem",
    "Alert",
    "AlertType",
    "PixCharge",
    "PixChargeStatus",
    "NotificationOutbox",
    "NotificationKind",
    "OutboxStatus",
]
