"""
Use case: Approve or reject a pending withdrawal (admin only).

Input: ReviewWithdrawalCommand (transaction_id, approve)
Output: Transaction (completed or rejected)
Side effects: Approval only changes the status; the funds were already
    debited at request time. Rejection changes the status and refunds
    abs(amount) to the user.
Failure cases: TransactionNotFoundError, WithdrawalNotPendingError,
    UserNotFoundError.
"""

import logging
from dataclasses import replace
from typing import Callable

from lotqueue.application.trading.dtos import ReviewWithdrawalCommand
from lotqueue.domain.trading.entities import (
    Transaction,
    TransactionStatus,
    TransactionType,
)
from lotqueue.domain.trading.errors import (
    TransactionNotFoundError,
    UserNotFoundError,
    WithdrawalNotPendingError,
)
from lotqueue.domain.trading.ports import LedgerUnitOfWork
from lotqueue.shared.retry import retry_on_conflict

logger = logging.getLogger(__name__)


class ReviewWithdrawalUseCase:
    """Moves a withdrawal out of pending, refunding it on rejection."""

    def __init__(self, uow_factory: Callable[[], LedgerUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    @retry_on_conflict()
    def execute(self, command: ReviewWithdrawalCommand) -> Transaction:
        """Run the review use case.

        Raises:
            TransactionNotFoundError: If the transaction does not exist.
            WithdrawalNotPendingError: If it is not a pending withdrawal.
        """
        with self._uow_factory() as uow:
            transaction = uow.transactions.get_for_update(command.transaction_id)
            if transaction is None:
                raise TransactionNotFoundError(command.transaction_id)
            if (
                transaction.type is not TransactionType.WITHDRAW
                or transaction.status is not TransactionStatus.PENDING
            ):
                raise WithdrawalNotPendingError(
                    command.transaction_id, transaction.status.value
                )

            if command.approve:
                status = TransactionStatus.COMPLETED
            else:
                status = TransactionStatus.REJECTED
                user = uow.users.get_for_update(transaction.user_id)
                if user is None:
                    raise UserNotFoundError(str(transaction.user_id))
                user.balance += abs(transaction.amount)
                uow.users.save(user)

            uow.transactions.update_status(transaction.id, status)
            uow.commit()

        logger.info("Withdrawal #%s %s", transaction.id, status.value)
        return replace(transaction, status=status)
