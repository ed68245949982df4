"""
Use case: List withdrawals waiting for admin review.

Output: list[Transaction], oldest first
Side effects: None.
"""

from typing import Callable

from lotqueue.domain.trading.entities import Transaction
from lotqueue.domain.trading.ports import LedgerUnitOfWork


class ListPendingWithdrawalsUseCase:
    """Returns the admin review queue."""

    def __init__(self, uow_factory: Callable[[], LedgerUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def execute(self) -> list[Transaction]:
        """Run the pending withdrawals use case."""
        with self._uow_factory() as uow:
            return uow.transactions.list_pending_withdrawals()
