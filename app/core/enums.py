import enum


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    OPERATOR = "operator"
    GUARDIAN = "guardian"


class PricingModel(str, enum.Enum):
    PREPAID = "prepaid"
    POSTPAID = "postpaid"


class LedgerKind(str, enum.Enum):
    PURCHASE = "purchase"
    CREDIT = "credit"
    DEBIT = "debit"
    ADJUSTMENT = "adjustment"
    PAYMENT = "payment"


class AlertType(str, enum.Enum):
    BALANCE = "balance"
    LIMIT = "limit"
    NEGATIVE = "negative"
    BLOCK = "block"
