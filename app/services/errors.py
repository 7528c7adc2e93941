class LedgerError(Exception):
    """Base class for canteen domain errors. Carries a machine code and the HTTP status to report."""

    code = "LEDGER_ERROR"
    status_code = 400

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_detail(self) -> dict:
        return {"message": self.message, "code": self.code}


class ValidationError(LedgerError):
    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(LedgerError):
    code = "NOT_FOUND"
    status_code = 404


class PermissionDeniedError(LedgerError):
    code = "PERMISSION_DENIED"
    status_code = 403


class StudentInactiveError(LedgerError):
    code = "STUDENT_INACTIVE"
    status_code = 409


class WalletBlockedError(LedgerError):
    code = "WALLET_BLOCKED"
    status_code = 409


class InsufficientBalanceError(LedgerError):
    code = "INSUFFICIENT_BALANCE"
    status_code = 409


class CreditLimitExceededError(LedgerError):
    code = "CREDIT_LIMIT_EXCEEDED"
    status_code = 409

    def __init__(self, message: str, blocked_wallet=None):
        super().__init__(message)
        # Wallet state the caller must persist even though the purchase failed.
        self.blocked_wallet = blocked_wallet


class GatewayError(LedgerError):
    """Error returned by the remote purchase procedure, forwarded as-is."""

    code = "GATEWAY_ERROR"
    status_code = 400


class GatewayUnavailableError(LedgerError):
    code = "GATEWAY_UNAVAILABLE"
    status_code = 503


class BillingUnavailableError(LedgerError):
    code = "BILLING_UNAVAILABLE"
    status_code = 503


class BillingProviderError(LedgerError):
    code = "BILLING_PROVIDER_ERROR"
    status_code = 502
