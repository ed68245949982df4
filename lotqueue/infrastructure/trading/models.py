"""
SQLAlchemy table mappings for the ledger store.

Rows are persistence shapes only; repositories translate them to and
from domain entities. Money columns are NUMERIC(20, 2).
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

MONEY = Numeric(20, 2)


class Base(DeclarativeBase):
    """Declarative base for all ledger tables."""


class UserRow(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_users_balance_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    wallet_address: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    sponsor_address: Mapped[str] = mapped_column(String(64))
    balance: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    package_level: Mapped[int] = mapped_column(Integer, default=0)
    daily_buy_amount: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    last_buy_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    total_lots_bought: Mapped[int] = mapped_column(Integer, default=0)
    direct_referrals: Mapped[int] = mapped_column(Integer, default=0, index=True)
    upgrade_package_wallet: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    consecutive_trade_days: Mapped[int] = mapped_column(Integer, default=0)
    last_withdrawal_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class LotRow(Base):
    __tablename__ = "lots"
    # FIFO queue index: oldest active lot of a type first.
    __table_args__ = (
        Index("ix_lots_queue", "lot_type", "status", "created_at", "id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    lot_type: Mapped[int] = mapped_column(Integer)
    buy_price: Mapped[Decimal] = mapped_column(MONEY)
    sell_price: Mapped[Decimal] = mapped_column(MONEY)
    package_level: Mapped[int] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(16), default="active")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    sold_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class TransactionRow(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_type_status", "type", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    type: Mapped[str] = mapped_column(String(32))
    amount: Mapped[Decimal] = mapped_column(MONEY)
    status: Mapped[str] = mapped_column(String(16), default="completed")
    description: Mapped[Optional[str]] = mapped_column(Text)
    tx_hash: Mapped[Optional[str]] = mapped_column(String(128), unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class GlobalStateRow(Base):
    __tablename__ = "global_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    total_lot1_buys: Mapped[int] = mapped_column(Integer, default=0)
    autofill_pool: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))


class SystemConfigRow(Base):
    __tablename__ = "system_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    version: Mapped[int] = mapped_column(Integer, default=1)
    packages: Mapped[list[dict[str, Any]]] = mapped_column(JSON)
    referral_rewards: Mapped[list[str]] = mapped_column(JSON)
    referral_requirements: Mapped[list[int]] = mapped_column(JSON)
    withdrawal_min_days: Mapped[int] = mapped_column(Integer)
    admin_wallet: Mapped[str] = mapped_column(String(64))
    deposit_wallet: Mapped[str] = mapped_column(String(64))
    withdrawal_wallet: Mapped[str] = mapped_column(String(64))
    max_trades_before_referral: Mapped[int] = mapped_column(Integer)
    referral_interval: Mapped[int] = mapped_column(Integer)
    autofill_min_referrals: Mapped[int] = mapped_column(Integer)


class AutofillDistributionRow(Base):
    __tablename__ = "autofill_distributions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    amount: Mapped[Decimal] = mapped_column(MONEY)
    recipients_count: Mapped[int] = mapped_column(Integer)
    distributed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive timestamps read back from the database."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize an aware timestamp to UTC before it is written."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc)
