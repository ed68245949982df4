"""
Data Transfer Objects for the trading application layer.

DTOs carry data between the interface and application layers.
They are plain dataclasses with no behavior.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from lotqueue.domain.trading.entities import AutofillShare, Lot, Transaction, User


@dataclass(frozen=True)
class RegisterUserCommand:
    """Input DTO for creating an account.

    Attributes:
        wallet_address: Wallet verified by the identity gateway.
        sponsor_address: Optional wallet of the referrer.
    """

    wallet_address: str
    sponsor_address: Optional[str] = None


@dataclass(frozen=True)
class BuyLotCommand:
    """Input DTO for buying a lot.

    Attributes:
        user_id: The authenticated buyer.
        lot_type: Lot type 1-4.
    """

    user_id: int
    lot_type: int


@dataclass(frozen=True)
class BuyLotResult:
    """Output DTO of a purchase.

    Attributes:
        lot: The lot just created.
        balance: Buyer balance after the whole purchase, payout included.
        sold_lot: The lot sold by the FIFO match, if one fired.
        paid_to_buyer: True if the buyer owned the sold lot.
    """

    lot: Lot
    balance: Decimal
    sold_lot: Optional[Lot] = None
    paid_to_buyer: bool = False


@dataclass(frozen=True)
class UpgradePackageCommand:
    """Input DTO for moving to the next package level."""

    user_id: int


@dataclass(frozen=True)
class UpgradePackageResult:
    """Output DTO of an upgrade."""

    level: int
    balance: Decimal


@dataclass(frozen=True)
class RequestWithdrawalCommand:
    """Input DTO for a withdrawal request.

    Attributes:
        user_id: The requesting user.
        amount: Positive amount to withdraw.
        address: Destination wallet.
    """

    user_id: int
    amount: Decimal
    address: str


@dataclass(frozen=True)
class ReviewWithdrawalCommand:
    """Input DTO for an admin decision on a pending withdrawal."""

    transaction_id: int
    approve: bool


@dataclass(frozen=True)
class DepositFundsCommand:
    """Input DTO for an admin-recorded deposit.

    Attributes:
        wallet_address: Wallet of the credited user.
        amount: Positive amount to credit.
        tx_hash: Optional on-chain reference; credited at most once.
    """

    wallet_address: str
    amount: Decimal
    tx_hash: Optional[str] = None


@dataclass(frozen=True)
class DepositFundsResult:
    """Output DTO of a deposit."""

    balance: Decimal
    transaction: Transaction


@dataclass(frozen=True)
class AutofillDistributionResult:
    """Output DTO of an autofill distribution.

    Attributes:
        amount: Pool total before the reset.
        recipients_count: Number of users credited.
        shares: Per-recipient amounts, summing to amount.
    """

    amount: Decimal
    recipients_count: int
    shares: list[AutofillShare] = field(default_factory=list)


@dataclass(frozen=True)
class AccountSummary:
    """Output DTO describing the current user's account.

    Attributes:
        user: The stored user record.
        daily_limit: The package daily limit, or None without a package.
        daily_remaining: What can still be bought today.
        required_referrals: Referrals the current cycle count demands.
    """

    user: User
    daily_limit: Optional[Decimal]
    daily_remaining: Decimal
    required_referrals: int


@dataclass(frozen=True)
class UpdateUserCommand:
    """Input DTO for an admin edit of a user's trade counters.

    Only the fields that are not None are changed.
    """

    user_id: int
    package_level: Optional[int] = None
    direct_referrals: Optional[int] = None
    total_lots_bought: Optional[int] = None


@dataclass(frozen=True)
class UpdateSystemConfigCommand:
    """Input DTO for a partial configuration update.

    Attributes:
        changes: Field name to new (already typed) value.
        expected_version: If set, the update fails when the stored
            version differs.
    """

    changes: dict[str, Any]
    expected_version: Optional[int] = None
