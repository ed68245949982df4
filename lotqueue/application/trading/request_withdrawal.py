"""
Use case: Request a withdrawal.

Input: RequestWithdrawalCommand (user_id, amount, address)
Output: Transaction (pending withdraw)
Side effects: Debits the balance immediately and queues a pending
    withdraw transaction for admin review.
Failure cases: InvalidAmountError, UserNotFoundError,
    InsufficientBalanceError, WithdrawalCooldownError.
"""

import logging
from typing import Callable

from lotqueue.application.trading.dtos import RequestWithdrawalCommand
from lotqueue.domain.trading.entities import (
    Transaction,
    TransactionStatus,
    TransactionType,
)
from lotqueue.domain.trading.errors import (
    InsufficientBalanceError,
    UserNotFoundError,
    ValidationError,
    WithdrawalCooldownError,
)
from lotqueue.domain.trading.packages import positive_money
from lotqueue.domain.trading.ports import LedgerUnitOfWork
from lotqueue.shared.clock import Clock, utc_now
from lotqueue.shared.retry import retry_on_conflict

logger = logging.getLogger(__name__)


class RequestWithdrawalUseCase:
    """Validates a withdrawal, reserves the funds and queues it."""

    def __init__(
        self,
        uow_factory: Callable[[], LedgerUnitOfWork],
        clock: Clock = utc_now,
    ) -> None:
        self._uow_factory = uow_factory
        self._clock = clock

    @retry_on_conflict()
    def execute(self, command: RequestWithdrawalCommand) -> Transaction:
        """Run the withdrawal request use case.

        Returns:
            The pending withdraw transaction (amount stored negative).
        """
        amount = positive_money(command.amount)
        if not command.address.strip():
            raise ValidationError("Withdrawal address must not be empty")

        now = self._clock()

        with self._uow_factory() as uow:
            user = uow.users.get_for_update(command.user_id)
            if user is None:
                raise UserNotFoundError(str(command.user_id))

            config = uow.system_config.get()
            if user.balance < amount:
                raise InsufficientBalanceError(required=amount, available=user.balance)
            if user.consecutive_trade_days < config.withdrawal_min_days:
                raise WithdrawalCooldownError(
                    required_days=config.withdrawal_min_days,
                    actual_days=user.consecutive_trade_days,
                )

            user.balance -= amount
            user.last_withdrawal_at = now
            uow.users.save(user)

            transaction = uow.transactions.add(
                Transaction(
                    user_id=user.id,
                    type=TransactionType.WITHDRAW,
                    amount=-amount,
                    status=TransactionStatus.PENDING,
                    description=f"Withdrawal request to {command.address.strip()}",
                    created_at=now,
                )
            )
            uow.commit()

        logger.info(
            "User %s requested withdrawal #%s of %s", user.id, transaction.id, amount
        )
        return transaction
