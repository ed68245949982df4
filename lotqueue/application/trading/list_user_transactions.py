"""
Use case: List the current user's transactions.

Input: user_id
Output: list[Transaction], newest first
Side effects: None.
"""

from typing import Callable

from lotqueue.domain.trading.entities import Transaction
from lotqueue.domain.trading.ports import LedgerUnitOfWork


class ListUserTransactionsUseCase:
    """Returns a user's ledger history."""

    def __init__(self, uow_factory: Callable[[], LedgerUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def execute(self, user_id: int) -> list[Transaction]:
        """Run the transaction listing use case."""
        with self._uow_factory() as uow:
            return uow.transactions.list_by_user(user_id)
