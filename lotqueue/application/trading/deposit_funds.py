"""
Use case: Credit an external deposit to a user (admin only).

Input: DepositFundsCommand (wallet_address, amount, tx_hash)
Output: DepositFundsResult
Side effects: Credits the balance and appends a deposit transaction.
    A tx_hash is credited at most once: it is checked under the user lock
    and the transactions table holds a unique index on it.
Failure cases: InvalidAmountError, UserNotFoundError, DuplicateDepositError.
"""

import logging
from typing import Callable

from lotqueue.application.trading.dtos import DepositFundsCommand, DepositFundsResult
from lotqueue.domain.trading.entities import Transaction, TransactionType
from lotqueue.domain.trading.errors import DuplicateDepositError, UserNotFoundError
from lotqueue.domain.trading.packages import positive_money
from lotqueue.domain.trading.ports import LedgerUnitOfWork
from lotqueue.shared.clock import Clock, utc_now
from lotqueue.shared.retry import retry_on_conflict

logger = logging.getLogger(__name__)


class DepositFundsUseCase:
    """Records a confirmed on-chain deposit against a user's balance."""

    def __init__(
        self,
        uow_factory: Callable[[], LedgerUnitOfWork],
        clock: Clock = utc_now,
    ) -> None:
        self._uow_factory = uow_factory
        self._clock = clock

    @retry_on_conflict()
    def execute(self, command: DepositFundsCommand) -> DepositFundsResult:
        """Run the deposit use case."""
        amount = positive_money(command.amount)

        now = self._clock()

        with self._uow_factory() as uow:
            found = uow.users.get_by_wallet(command.wallet_address)
            if found is None:
                raise UserNotFoundError(command.wallet_address)
            user = uow.users.get_for_update(found.id)
            if command.tx_hash and uow.transactions.exists_with_hash(command.tx_hash):
                raise DuplicateDepositError(command.tx_hash)

            user.balance += amount
            uow.users.save(user)

            transaction = uow.transactions.add(
                Transaction(
                    user_id=user.id,
                    type=TransactionType.DEPOSIT,
                    amount=amount,
                    description="External USDT Deposit",
                    tx_hash=command.tx_hash,
                    created_at=now,
                )
            )
            uow.commit()

        logger.info("Deposited %s to user %s", amount, user.id)
        return DepositFundsResult(balance=user.balance, transaction=transaction)
