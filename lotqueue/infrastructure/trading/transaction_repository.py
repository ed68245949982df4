"""
Adapter: Transaction repository.

The ledger is append-only apart from withdrawal status transitions.
"""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lotqueue.domain.trading.entities import (
    Transaction,
    TransactionStatus,
    TransactionType,
)
from lotqueue.domain.trading.errors import DuplicateDepositError
from lotqueue.domain.trading.ports import TransactionRepository
from lotqueue.infrastructure.trading.models import TransactionRow, as_utc, to_utc


def _to_entity(row: TransactionRow) -> Transaction:
    return Transaction(
        id=row.id,
        user_id=row.user_id,
        type=TransactionType(row.type),
        amount=row.amount,
        status=TransactionStatus(row.status),
        description=row.description,
        tx_hash=row.tx_hash,
        created_at=as_utc(row.created_at),
    )


class SqlAlchemyTransactionRepository(TransactionRepository):
    """Persists transactions in the transactions table."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, transaction: Transaction) -> Transaction:
        row = TransactionRow(
            user_id=transaction.user_id,
            type=transaction.type.value,
            amount=transaction.amount,
            status=transaction.status.value,
            description=transaction.description,
            tx_hash=transaction.tx_hash,
            created_at=to_utc(transaction.created_at),
        )
        self._session.add(row)
        try:
            self._session.flush()
        except IntegrityError as exc:
            if transaction.tx_hash is None:
                raise
            raise DuplicateDepositError(transaction.tx_hash) from exc
        return _to_entity(row)

    def get_for_update(self, transaction_id: int) -> Optional[Transaction]:
        stmt = (
            select(TransactionRow)
            .where(TransactionRow.id == transaction_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        row = self._session.execute(stmt).scalar_one_or_none()
        return _to_entity(row) if row else None

    def update_status(self, transaction_id: int, status: TransactionStatus) -> None:
        table = TransactionRow.__table__
        self._session.execute(
            update(table)
            .where(table.c.id == transaction_id)
            .values(status=status.value)
        )

    def exists_with_hash(self, tx_hash: str) -> bool:
        stmt = select(TransactionRow.id).where(TransactionRow.tx_hash == tx_hash).limit(1)
        return self._session.execute(stmt).first() is not None

    def list_by_user(self, user_id: int) -> list[Transaction]:
        stmt = (
            select(TransactionRow)
            .where(TransactionRow.user_id == user_id)
            .order_by(TransactionRow.created_at.desc(), TransactionRow.id.desc())
        )
        return [_to_entity(r) for r in self._session.execute(stmt).scalars()]

    def list_pending_withdrawals(self) -> list[Transaction]:
        stmt = (
            select(TransactionRow)
            .where(TransactionRow.type == TransactionType.WITHDRAW.value)
            .where(TransactionRow.status == TransactionStatus.PENDING.value)
            .order_by(TransactionRow.created_at, TransactionRow.id)
        )
        return [_to_entity(r) for r in self._session.execute(stmt).scalars()]
