"""
Port interfaces (ABCs) for the trading bounded context.

Ports define the contracts that the domain requires from the outside world.
Infrastructure adapters implement these interfaces.
The domain layer never depends on concrete implementations.

All repositories operate inside a LedgerUnitOfWork: nothing they write is
visible to other requests until the unit of work commits, and everything
is discarded if it does not.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Optional

from lotqueue.domain.trading.entities import (
    AutofillDistribution,
    GlobalState,
    Lot,
    QueueCount,
    SystemConfig,
    Transaction,
    TransactionStatus,
    User,
)


class UserRepository(ABC):
    """Port for persisting and retrieving users."""

    @abstractmethod
    def get(self, user_id: int) -> Optional[User]:
        """Return a user by id, or None if not found."""
        raise NotImplementedError

    @abstractmethod
    def get_for_update(self, user_id: int) -> Optional[User]:
        """Return a user by id and lock its row until the unit of work ends."""
        raise NotImplementedError

    @abstractmethod
    def get_by_wallet(self, wallet_address: str) -> Optional[User]:
        """Return a user by wallet address (case-insensitive), or None."""
        raise NotImplementedError

    @abstractmethod
    def add(self, user: User) -> User:
        """Insert a new user and return it with id and timestamps set."""
        raise NotImplementedError

    @abstractmethod
    def save(self, user: User) -> None:
        """Write every mutable field of an existing user."""
        raise NotImplementedError

    @abstractmethod
    def increment_direct_referrals(self, user_id: int) -> None:
        """Atomically add one to a user's direct referral count."""
        raise NotImplementedError

    @abstractmethod
    def list_all(self) -> list[User]:
        """Return every user ordered by id."""
        raise NotImplementedError

    @abstractmethod
    def lock_with_min_referrals(self, min_referrals: int) -> list[User]:
        """Return and lock users with at least min_referrals, ordered by id."""
        raise NotImplementedError


class LotRepository(ABC):
    """Port for the lot ledger and its per-type FIFO queues."""

    @abstractmethod
    def add(self, lot: Lot) -> Lot:
        """Insert a new lot and return it with id set."""
        raise NotImplementedError

    @abstractmethod
    def pop_oldest_active(self, lot_type: int, sold_at: datetime) -> Optional[Lot]:
        """Mark the oldest active lot of a type as sold and return it.

        Ordering is by creation time, ties broken by lowest id. Two
        concurrent callers never receive the same lot.

        Returns:
            The sold lot, or None when the queue is empty.
        """
        raise NotImplementedError

    @abstractmethod
    def list_by_user(self, user_id: int) -> list[Lot]:
        """Return a user's lots, newest first."""
        raise NotImplementedError

    @abstractmethod
    def count_by_type(self) -> list[QueueCount]:
        """Return active and sold counts for every lot type."""
        raise NotImplementedError


class TransactionRepository(ABC):
    """Port for the append-only transaction ledger."""

    @abstractmethod
    def add(self, transaction: Transaction) -> Transaction:
        """Append a transaction and return it with id set.

        Raises:
            DuplicateDepositError: If tx_hash is already recorded.
        """
        raise NotImplementedError

    @abstractmethod
    def get_for_update(self, transaction_id: int) -> Optional[Transaction]:
        """Return a transaction by id and lock its row."""
        raise NotImplementedError

    @abstractmethod
    def update_status(self, transaction_id: int, status: TransactionStatus) -> None:
        """Change the status of a transaction."""
        raise NotImplementedError

    @abstractmethod
    def exists_with_hash(self, tx_hash: str) -> bool:
        """Return True if any transaction references tx_hash."""
        raise NotImplementedError

    @abstractmethod
    def list_by_user(self, user_id: int) -> list[Transaction]:
        """Return a user's transactions, newest first."""
        raise NotImplementedError

    @abstractmethod
    def list_pending_withdrawals(self) -> list[Transaction]:
        """Return all pending withdrawals, oldest first."""
        raise NotImplementedError


class GlobalStateRepository(ABC):
    """Port for the singleton counters row.

    Every mutation is a single atomic statement, never a read followed
    by a write.
    """

    @abstractmethod
    def get(self) -> GlobalState:
        """Return the current counters without locking."""
        raise NotImplementedError

    @abstractmethod
    def get_for_update(self) -> GlobalState:
        """Return the current counters and lock the row."""
        raise NotImplementedError

    @abstractmethod
    def increment_lot1_buys(self) -> int:
        """Add one to the type-1 purchase counter and return the new value."""
        raise NotImplementedError

    @abstractmethod
    def add_to_autofill_pool(self, amount: Decimal) -> None:
        """Add amount to the autofill pool."""
        raise NotImplementedError

    @abstractmethod
    def reset_autofill_pool(self) -> None:
        """Set the autofill pool to zero."""
        raise NotImplementedError


class SystemConfigRepository(ABC):
    """Port for the singleton system configuration record."""

    @abstractmethod
    def get(self) -> SystemConfig:
        """Return the stored configuration.

        Raises:
            SystemConfigNotFoundError: If it has never been seeded.
        """
        raise NotImplementedError

    @abstractmethod
    def seed(self, config: SystemConfig) -> bool:
        """Store config if no configuration exists. Return True if stored."""
        raise NotImplementedError

    @abstractmethod
    def save(self, config: SystemConfig, expected_version: int) -> None:
        """Replace the configuration if its version is still expected_version.

        Raises:
            StaleConfigError: If another write landed first.
        """
        raise NotImplementedError


class AutofillDistributionRepository(ABC):
    """Port for the autofill distribution audit log."""

    @abstractmethod
    def add(self, distribution: AutofillDistribution) -> AutofillDistribution:
        """Append a distribution record."""
        raise NotImplementedError


class LedgerUnitOfWork(ABC):
    """A single atomic transaction against the ledger store.

    Usage:
        with uow_factory() as uow:
            user = uow.users.get_for_update(user_id)
            ...
            uow.commit()

    Leaving the block without commit() rolls everything back.
    """

    users: UserRepository
    lots: LotRepository
    transactions: TransactionRepository
    global_state: GlobalStateRepository
    system_config: SystemConfigRepository
    autofill_distributions: AutofillDistributionRepository

    def __enter__(self) -> "LedgerUnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.rollback()

    @abstractmethod
    def commit(self) -> None:
        """Make every change in this unit of work durable."""
        raise NotImplementedError

    @abstractmethod
    def rollback(self) -> None:
        """Discard every uncommitted change."""
        raise NotImplementedError
