"""
Domain Exceptions

Every failure the booking core reports to a caller is one of these.
The customer's in-progress draft is never discarded when they are raised.
"""


class DomainError(Exception):
    """Base class for booking core errors."""

    def __init__(self, message: str = ''):
        super().__init__(message)
        self.message = message


class ValidationError(DomainError, ValueError):
    """
    Incomplete selection, invalid phone, quantity mismatch in group mode.

    Surfaced immediately, blocks submission. ``missing`` is set when a group
    selection is short of the declared head-count.
    """

    def __init__(self, message: str = '', *, field: str | None = None, missing: int | None = None):
        super().__init__(message)
        self.field = field
        self.missing = missing


class CapacityError(DomainError):
    """Selection exceeds available units or the declared friend count."""

    def __init__(self, message: str = '', *, limit: int | None = None):
        super().__init__(message)
        self.limit = limit


class AvailabilityUnknown(DomainError):
    """The availability service failed or timed out."""


class BackendUnavailable(DomainError):
    """The cafe backend could not be reached or answered with an error."""

    def __init__(self, message: str = '', *, status_code: int | None = None, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class PaymentError(DomainError):
    """Base class for settlement failures. Safe to retry unless stated otherwise."""

    retryable = True


class InsufficientBalance(PaymentError):
    """Wallet balance is lower than the obligation."""

    def __init__(self, message: str = '', *, balance=None, required=None):
        super().__init__(message)
        self.balance = balance
        self.required = required


class GatewayOrderError(PaymentError):
    """The payment gateway refused to create an order."""


class VerificationFailed(PaymentError):
    """The gateway reported the transaction as not successful."""


class ReconciliationRequired(PaymentError):
    """
    The customer was charged but verification failed.

    Never retried automatically; the customer is told to contact support.
    """

    retryable = False

    def __init__(self, message: str = '', *, payment_id: str | None = None):
        super().__init__(message)
        self.payment_id = payment_id


class PolicyError(DomainError):
    """An operation is not allowed by booking policy."""

    DATE_PASSED = 'date_passed'
    TOO_LATE_TODAY = 'too_late_today'
    WRONG_STATUS = 'wrong_status'
    VENUE_CLOSED = 'venue_closed'

    def __init__(self, message: str = '', *, reason: str):
        super().__init__(message)
        self.reason = reason
