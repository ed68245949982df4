"""
Domain entities for the trading bounded context.

Entities represent core business objects with identity and lifecycle.
They contain no framework imports and no IO operations.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

ZERO = Decimal("0.00")
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

LOT_TYPES = (1, 2, 3, 4)
MAX_PACKAGE_LEVEL = 12


class LotStatus(Enum):
    """Lifecycle state of a lot in the queue."""

    ACTIVE = "active"
    SOLD = "sold"


class TransactionType(Enum):
    """Kind of ledger movement recorded by a transaction."""

    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    BUY_LOT = "buy_lot"
    SELL_REWARD = "sell_reward"
    REFERRAL_REWARD = "referral_reward"
    UPGRADE = "upgrade"


class TransactionStatus(Enum):
    """Settlement state of a transaction. Only withdrawals are ever pending."""

    PENDING = "pending"
    COMPLETED = "completed"
    REJECTED = "rejected"


@dataclass
class User:
    """A wallet-identified account holding balance and trade counters."""

    wallet_address: str
    sponsor_address: str = ZERO_ADDRESS
    id: Optional[int] = None
    balance: Decimal = ZERO
    package_level: int = 0
    daily_buy_amount: Decimal = ZERO
    last_buy_at: Optional[datetime] = None
    total_lots_bought: int = 0
    direct_referrals: int = 0
    upgrade_package_wallet: Decimal = ZERO
    consecutive_trade_days: int = 0
    last_withdrawal_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        """Return True when the user holds a package."""
        return self.package_level > 0


@dataclass
class Lot:
    """A purchased position waiting in its type's FIFO queue."""

    user_id: int
    lot_type: int
    buy_price: Decimal
    sell_price: Decimal
    package_level: int
    status: LotStatus = LotStatus.ACTIVE
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    sold_at: Optional[datetime] = None


@dataclass
class Transaction:
    """An audit record of a single balance movement."""

    user_id: int
    type: TransactionType
    amount: Decimal
    status: TransactionStatus = TransactionStatus.COMPLETED
    description: Optional[str] = None
    tx_hash: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class GlobalState:
    """Snapshot of the singleton counters row."""

    total_lot1_buys: int
    autofill_pool: Decimal


@dataclass(frozen=True)
class PackageConfig:
    """Prices and limits attached to one package level."""

    level: int
    activation: Decimal
    lot_prices: tuple[Decimal, Decimal, Decimal, Decimal]
    daily_limit: Decimal

    def lot_price(self, lot_type: int) -> Decimal:
        """Return the price of a lot type (1-4) at this level."""
        return self.lot_prices[lot_type - 1]


@dataclass(frozen=True)
class SystemConfig:
    """Typed, versioned business rules edited by administrators."""

    packages: tuple[PackageConfig, ...]
    referral_rewards: tuple[Decimal, ...]
    referral_requirements: tuple[int, ...]
    withdrawal_min_days: int
    admin_wallet: str
    deposit_wallet: str
    withdrawal_wallet: str
    max_trades_before_referral: int
    referral_interval: int
    autofill_min_referrals: int
    version: int = 1


@dataclass(frozen=True)
class AutofillDistribution:
    """Audit record of one autofill pool distribution."""

    amount: Decimal
    recipients_count: int
    distributed_at: datetime
    id: Optional[int] = None


@dataclass(frozen=True)
class QueueCount:
    """Active (waiting) and sold lot counts for one lot type."""

    lot_type: int
    active: int = 0
    sold: int = 0


@dataclass
class AutofillShare:
    """The amount one recipient receives from a distribution."""

    user_id: int
    amount: Decimal = field(default=ZERO)
