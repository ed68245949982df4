"""
Pydantic schemas for the LotQueue API.

These schemas enforce input validation and define the API contract.
Money is exchanged as decimal strings with two fractional digits.
No business logic belongs here.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from lotqueue.domain.trading.entities import (
    AutofillShare,
    Lot,
    PackageConfig,
    SystemConfig,
    Transaction,
    User,
)
from lotqueue.domain.trading.packages import money

WALLET_PATTERN = r"^0x[0-9a-fA-F]{40}$"
MONEY_FIELD = {"max_digits": 20, "decimal_places": 2}


# ----------------------------------------------------------------------
# Common
# ----------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Response schema for the health endpoint."""

    status: str
    version: str


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str
    message: str


# ----------------------------------------------------------------------
# Users
# ----------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request schema for registration.

    Attributes:
        sponsor_address: Wallet of the referrer, if any.
    """

    sponsor_address: Optional[str] = Field(default=None, pattern=WALLET_PATTERN)


class UserResponse(BaseModel):
    """A user as exposed by the API."""

    id: int
    wallet_address: str
    sponsor_address: str
    balance: Decimal
    package_level: int
    daily_buy_amount: Decimal
    last_buy_at: Optional[datetime]
    total_lots_bought: int
    direct_referrals: int
    upgrade_package_wallet: Decimal
    consecutive_trade_days: int
    last_withdrawal_at: Optional[datetime]
    created_at: Optional[datetime]

    @classmethod
    def from_entity(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            wallet_address=user.wallet_address,
            sponsor_address=user.sponsor_address,
            balance=user.balance,
            package_level=user.package_level,
            daily_buy_amount=user.daily_buy_amount,
            last_buy_at=user.last_buy_at,
            total_lots_bought=user.total_lots_bought,
            direct_referrals=user.direct_referrals,
            upgrade_package_wallet=user.upgrade_package_wallet,
            consecutive_trade_days=user.consecutive_trade_days,
            last_withdrawal_at=user.last_withdrawal_at,
            created_at=user.created_at,
        )


class AccountResponse(BaseModel):
    """The current user plus the limits that apply to them today."""

    user: UserResponse
    is_active: bool
    daily_limit: Optional[Decimal]
    daily_remaining: Decimal
    required_referrals: int


class UpdateUserRequest(BaseModel):
    """Admin edit of a user's trade counters. Omitted fields are unchanged."""

    package_level: Optional[int] = Field(default=None, ge=0, le=12)
    direct_referrals: Optional[int] = Field(default=None, ge=0)
    total_lots_bought: Optional[int] = Field(default=None, ge=0)


# ----------------------------------------------------------------------
# Trading
# ----------------------------------------------------------------------


class BuyLotRequest(BaseModel):
    """Request schema for a purchase.

    Attributes:
        lot_type: Lot type 1-4, sent as "type".
    """

    model_config = ConfigDict(populate_by_name=True)

    lot_type: int = Field(..., alias="type", ge=1, le=4, description="Lot type (1-4)")


class LotItem(BaseModel):
    """A lot in the ledger."""

    id: int
    user_id: int
    lot_type: int
    buy_price: Decimal
    sell_price: Decimal
    package_level: int
    status: str
    created_at: Optional[datetime]
    sold_at: Optional[datetime]

    @classmethod
    def from_entity(cls, lot: Lot) -> "LotItem":
        return cls(
            id=lot.id,
            user_id=lot.user_id,
            lot_type=lot.lot_type,
            buy_price=lot.buy_price,
            sell_price=lot.sell_price,
            package_level=lot.package_level,
            status=lot.status.value,
            created_at=lot.created_at,
            sold_at=lot.sold_at,
        )


class BuyLotResponse(BaseModel):
    """Response schema for a purchase."""

    lot: LotItem
    balance: Decimal
    sold_lot: Optional[LotItem] = None
    paid_to_buyer: bool = False


class UpgradeResponse(BaseModel):
    """Response schema for a package upgrade."""

    level: int
    balance: Decimal


class QueueCountItem(BaseModel):
    """Waiting (buy) and completed (sell) counts of one lot type."""

    buy: int
    sell: int


# ----------------------------------------------------------------------
# Transactions
# ----------------------------------------------------------------------


class TransactionItem(BaseModel):
    """A ledger transaction."""

    id: int
    user_id: int
    type: str
    amount: Decimal
    status: str
    description: Optional[str]
    tx_hash: Optional[str]
    created_at: Optional[datetime]

    @classmethod
    def from_entity(cls, tx: Transaction) -> "TransactionItem":
        return cls(
            id=tx.id,
            user_id=tx.user_id,
            type=tx.type.value,
            amount=tx.amount,
            status=tx.status.value,
            description=tx.description,
            tx_hash=tx.tx_hash,
            created_at=tx.created_at,
        )


class WithdrawRequest(BaseModel):
    """Request schema for a withdrawal."""

    amount: Decimal = Field(..., gt=0, **MONEY_FIELD)
    address: str = Field(..., min_length=1, max_length=128)


class DepositRequest(BaseModel):
    """Request schema for an admin-recorded deposit."""

    wallet_address: str = Field(..., pattern=WALLET_PATTERN)
    amount: Decimal = Field(..., gt=0, **MONEY_FIELD)
    tx_hash: Optional[str] = Field(default=None, min_length=1, max_length=128)


class DepositResponse(BaseModel):
    """Response schema for a deposit."""

    balance: Decimal
    transaction: TransactionItem


class AutofillShareItem(BaseModel):
    user_id: int
    amount: Decimal

    @classmethod
    def from_entity(cls, share: AutofillShare) -> "AutofillShareItem":
        return cls(user_id=share.user_id, amount=share.amount)


class AutofillDistributionResponse(BaseModel):
    """Response schema for an autofill distribution."""

    amount: Decimal
    recipients_count: int
    shares: list[AutofillShareItem]


# ----------------------------------------------------------------------
# System configuration
# ----------------------------------------------------------------------


class PackageSchema(BaseModel):
    """One row of the package table."""

    level: int = Field(..., ge=1, le=12)
    activation: Decimal = Field(..., ge=0, **MONEY_FIELD)
    lot_prices: list[Decimal] = Field(..., min_length=4, max_length=4)
    daily_limit: Decimal = Field(..., gt=0, **MONEY_FIELD)

    def to_entity(self) -> PackageConfig:
        return PackageConfig(
            level=self.level,
            activation=money(self.activation),
            lot_prices=tuple(money(p) for p in self.lot_prices),
            daily_limit=money(self.daily_limit),
        )

    @classmethod
    def from_entity(cls, package: PackageConfig) -> "PackageSchema":
        return cls(
            level=package.level,
            activation=package.activation,
            lot_prices=list(package.lot_prices),
            daily_limit=package.daily_limit,
        )


class SystemConfigResponse(BaseModel):
    """The stored system configuration."""

    version: int
    packages: list[PackageSchema]
    referral_rewards: list[Decimal]
    referral_requirements: list[int]
    withdrawal_min_days: int
    admin_wallet: str
    deposit_wallet: str
    withdrawal_wallet: str
    max_trades_before_referral: int
    referral_interval: int
    autofill_min_referrals: int

    @classmethod
    def from_entity(cls, config: SystemConfig) -> "SystemConfigResponse":
        return cls(
            version=config.version,
            packages=[PackageSchema.from_entity(p) for p in config.packages],
            referral_rewards=list(config.referral_rewards),
            referral_requirements=list(config.referral_requirements),
            withdrawal_min_days=config.withdrawal_min_days,
            admin_wallet=config.admin_wallet,
            deposit_wallet=config.deposit_wallet,
            withdrawal_wallet=config.withdrawal_wallet,
            max_trades_before_referral=config.max_trades_before_referral,
            referral_interval=config.referral_interval,
            autofill_min_referrals=config.autofill_min_referrals,
        )


class SystemConfigUpdateRequest(BaseModel):
    """Partial configuration update. Omitted fields are unchanged.

    Attributes:
        expected_version: If given, the update is refused when the stored
            configuration has moved past this version.
    """

    model_config = ConfigDict(extra="forbid")

    expected_version: Optional[int] = Field(default=None, ge=1)
    packages: Optional[list[PackageSchema]] = Field(default=None, min_length=1, max_length=12)
    referral_rewards: Optional[list[Decimal]] = None
    referral_requirements: Optional[list[int]] = None
    withdrawal_min_days: Optional[int] = Field(default=None, ge=0)
    admin_wallet: Optional[str] = Field(default=None, pattern=WALLET_PATTERN)
    deposit_wallet: Optional[str] = Field(default=None, pattern=WALLET_PATTERN)
    withdrawal_wallet: Optional[str] = Field(default=None, pattern=WALLET_PATTERN)
    max_trades_before_referral: Optional[int] = Field(default=None, ge=0)
    referral_interval: Optional[int] = Field(default=None, ge=1)
    autofill_min_referrals: Optional[int] = Field(default=None, ge=0)

    def changes(self) -> dict:
        """Return the set fields as typed domain values."""
        data = self.model_dump(exclude_unset=True, exclude={"expected_version"})
        changes = {k: v for k, v in data.items() if v is not None}
        if "packages" in changes:
            changes["packages"] = tuple(p.to_entity() for p in self.packages)
        for name in ("referral_rewards", "referral_requirements"):
            if name in changes:
                changes[name] = tuple(changes[name])
        return changes
