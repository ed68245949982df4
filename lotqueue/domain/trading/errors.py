"""
Domain-specific errors for the trading bounded context.

All errors raised from the domain and application layers are defined here.
They are mapped to HTTP responses at the interface layer.
No framework imports allowed.

Families:
    ValidationError: malformed or out-of-range input.
    EligibilityError: business-rule rejection; nothing was changed.
    NotFoundError: a referenced record does not exist.
    InvalidStateError: the record exists but is in the wrong state.
    ConflictError: transient storage contention; safe to retry.
"""

from decimal import Decimal


class TradingDomainError(Exception):
    """Base error for all trading domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


# ----------------------------------------------------------------------
# Validation
# ----------------------------------------------------------------------


class ValidationError(TradingDomainError):
    """Raised when input is malformed or out of range."""


class InvalidLotTypeError(ValidationError):
    """Raised when the requested lot type is not one of 1-4."""

    def __init__(self, lot_type: int) -> None:
        super().__init__(f"Invalid lot type: {lot_type}. Must be between 1 and 4.")
        self.lot_type = lot_type


class InvalidAmountError(ValidationError):
    """Raised when a monetary amount is not positive or has sub-cent digits."""

    def __init__(self, amount: Decimal) -> None:
        super().__init__(f"Amount must be a positive number of cents, got {amount}")
        self.amount = amount


class InvalidConfigError(ValidationError):
    """Raised when a system configuration fails schema validation."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid system configuration: {reason}")
        self.reason = reason


# ----------------------------------------------------------------------
# Eligibility
# ----------------------------------------------------------------------


class EligibilityError(TradingDomainError):
    """Raised when a business rule rejects the operation."""


class NoActivePackageError(EligibilityError):
    """Raised when a user without a package tries to trade."""

    def __init__(self) -> None:
        super().__init__("Activate a package first")


class ReferralRequiredError(EligibilityError):
    """Raised when the cycle trade count demands more direct referrals."""

    def __init__(self, required: int, actual: int, max_trades: int, interval: int) -> None:
        super().__init__(
            f"Referral required: {required} direct referrals needed to keep "
            f"trading after {max_trades} trades (1 per {interval} trades), "
            f"you have {actual}"
        )
        self.required = required
        self.actual = actual


class InsufficientBalanceError(EligibilityError):
    """Raised when the balance does not cover the requested debit."""

    def __init__(self, required: Decimal, available: Decimal) -> None:
        super().__init__(
            f"Insufficient balance: required {required}, available {available}"
        )
        self.required = required
        self.available = available


class DailyLimitExceededError(EligibilityError):
    """Raised when a purchase would exceed the package's daily limit."""

    def __init__(self, limit: Decimal, attempted: Decimal) -> None:
        super().__init__(f"Daily buy limit reached: {attempted} exceeds {limit}")
        self.limit = limit
        self.attempted = attempted


class WithdrawalCooldownError(EligibilityError):
    """Raised when the user has not traded on enough distinct days."""

    def __init__(self, required_days: int, actual_days: int) -> None:
        super().__init__(
            f"Minimum {required_days} consecutive trade days required, "
            f"you have {actual_days}"
        )
        self.required_days = required_days
        self.actual_days = actual_days


class MaxLevelReachedError(EligibilityError):
    """Raised when no package exists above the user's current level."""

    def __init__(self, level: int) -> None:
        super().__init__(f"Max level reached: {level}")
        self.level = level


class AutofillPoolEmptyError(EligibilityError):
    """Raised when there is nothing in the autofill pool to distribute."""

    def __init__(self) -> None:
        super().__init__("Autofill pool is empty")


class NoEligibleRecipientsError(EligibilityError):
    """Raised when no user qualifies for an autofill share."""

    def __init__(self, min_referrals: int) -> None:
        super().__init__(f"No eligible users ({min_referrals}+ referrals)")
        self.min_referrals = min_referrals


# ----------------------------------------------------------------------
# Not found
# ----------------------------------------------------------------------


class NotFoundError(TradingDomainError):
    """Raised when a referenced record does not exist."""


class UserNotFoundError(NotFoundError):
    """Raised when a user cannot be found by id or wallet address."""

    def __init__(self, reference: str) -> None:
        super().__init__(f"User not found: {reference}")
        self.reference = reference


class TransactionNotFoundError(NotFoundError):
    """Raised when a transaction cannot be found."""

    def __init__(self, transaction_id: int) -> None:
        super().__init__(f"Transaction not found: {transaction_id}")
        self.transaction_id = transaction_id


class PackageNotFoundError(NotFoundError):
    """Raised when the package table has no entry for a level."""

    def __init__(self, level: int) -> None:
        super().__init__(f"Package not found for level {level}")
        self.level = level


class SystemConfigNotFoundError(NotFoundError):
    """Raised when the system configuration row has not been seeded."""

    def __init__(self) -> None:
        super().__init__("System configuration not found")


# ----------------------------------------------------------------------
# State
# ----------------------------------------------------------------------


class InvalidStateError(TradingDomainError):
    """Raised when a record is not in a state that allows the operation."""


class WithdrawalNotPendingError(InvalidStateError):
    """Raised when reviewing a transaction that is not a pending withdrawal."""

    def __init__(self, transaction_id: int, status: str) -> None:
        super().__init__(
            f"Transaction {transaction_id} is not a pending withdrawal (status: {status})"
        )
        self.transaction_id = transaction_id
        self.status = status


class UserAlreadyExistsError(InvalidStateError):
    """Raised when registering a wallet that already has an account."""

    def __init__(self, wallet_address: str) -> None:
        super().__init__(f"User already exists: {wallet_address}")
        self.wallet_address = wallet_address


class DuplicateDepositError(InvalidStateError):
    """Raised when a deposit references an already-credited tx hash."""

    def __init__(self, tx_hash: str) -> None:
        super().__init__(f"Deposit already recorded for tx hash {tx_hash}")
        self.tx_hash = tx_hash


class StaleConfigError(InvalidStateError):
    """Raised when a config update was based on an outdated version."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"System configuration changed (expected version {expected}, found {actual})"
        )
        self.expected = expected
        self.actual = actual


# ----------------------------------------------------------------------
# Concurrency
# ----------------------------------------------------------------------


class ConflictError(TradingDomainError):
    """Raised when the storage layer detects concurrent-update contention."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Concurrent update conflict: {reason}")
        self.reason = reason
