"""
Adapter: SQLAlchemy unit of work.

One session, one database transaction. Every repository shares the
session so their writes commit or roll back together.

Lock waits, deadlocks and serialization failures reported by the
database surface as ConflictError so callers can retry the whole
operation.
"""

import logging
from typing import Optional

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, sessionmaker

from lotqueue.domain.trading.errors import ConflictError
from lotqueue.domain.trading.ports import LedgerUnitOfWork
from lotqueue.infrastructure.trading.autofill_distribution_repository import (
    SqlAlchemyAutofillDistributionRepository,
)
from lotqueue.infrastructure.trading.global_state_repository import (
    SqlAlchemyGlobalStateRepository,
)
from lotqueue.infrastructure.trading.lot_repository import SqlAlchemyLotRepository
from lotqueue.infrastructure.trading.system_config_repository import (
    SqlAlchemySystemConfigRepository,
)
from lotqueue.infrastructure.trading.transaction_repository import (
    SqlAlchemyTransactionRepository,
)
from lotqueue.infrastructure.trading.user_repository import SqlAlchemyUserRepository

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected, lock_not_available
CONFLICT_PGCODES = frozenset({"40001", "40P01", "55P03"})


def conflict_reason(exc: BaseException) -> Optional[str]:
    """Return a short reason if exc is transient contention, else None."""
    if not isinstance(exc, DBAPIError):
        return None
    pgcode = getattr(exc.orig, "pgcode", None)
    if pgcode in CONFLICT_PGCODES:
        return f"database reported {pgcode}"
    if "database is locked" in str(exc.orig):
        return "database is locked"
    return None


class SqlAlchemyUnitOfWork(LedgerUnitOfWork):
    """Ledger unit of work bound to a fresh session."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory
        self._session: Optional[Session] = None

    def __enter__(self) -> "SqlAlchemyUnitOfWork":
        self._session = self._session_factory()
        self.users = SqlAlchemyUserRepository(self._session)
        self.lots = SqlAlchemyLotRepository(self._session)
        self.transactions = SqlAlchemyTransactionRepository(self._session)
        self.global_state = SqlAlchemyGlobalStateRepository(self._session)
        self.system_config = SqlAlchemySystemConfigRepository(self._session)
        self.autofill_distributions = SqlAlchemyAutofillDistributionRepository(
            self._session
        )
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.rollback()
        finally:
            self._session.close()
            self._session = None

        if exc is not None:
            reason = conflict_reason(exc)
            if reason is not None:
                logger.warning("Unit of work aborted by contention: %s", reason)
                raise ConflictError(reason) from exc

    def commit(self) -> None:
        try:
            self._session.commit()
        except DBAPIError as exc:
            reason = conflict_reason(exc)
            if reason is None:
                raise
            self._session.rollback()
            raise ConflictError(reason) from exc

    def rollback(self) -> None:
        self._session.rollback()
