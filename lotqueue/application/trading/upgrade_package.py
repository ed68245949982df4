"""
Use case: Upgrade a user to the next package level.

Input: UpgradePackageCommand (user_id)
Output: UpgradePackageResult
Side effects: Debits the activation cost, raises the level, resets the
    cycle trade count and appends an upgrade transaction.
Failure cases: UserNotFoundError, MaxLevelReachedError,
    InsufficientBalanceError.
"""

import logging
from typing import Callable

from lotqueue.application.trading.dtos import UpgradePackageCommand, UpgradePackageResult
from lotqueue.domain.trading.entities import Transaction, TransactionType
from lotqueue.domain.trading.errors import (
    InsufficientBalanceError,
    MaxLevelReachedError,
    UserNotFoundError,
)
from lotqueue.domain.trading.packages import PackageResolver
from lotqueue.domain.trading.ports import LedgerUnitOfWork
from lotqueue.shared.clock import Clock, utc_now
from lotqueue.shared.retry import retry_on_conflict

logger = logging.getLogger(__name__)


class UpgradePackageUseCase:
    """Moves a user one package level up and starts a new trade cycle."""

    def __init__(
        self,
        uow_factory: Callable[[], LedgerUnitOfWork],
        clock: Clock = utc_now,
    ) -> None:
        self._uow_factory = uow_factory
        self._clock = clock

    @retry_on_conflict()
    def execute(self, command: UpgradePackageCommand) -> UpgradePackageResult:
        """Run the upgrade use case.

        Raises:
            MaxLevelReachedError: If the user is already at the top level.
            InsufficientBalanceError: If the activation cost is not covered.
        """
        now = self._clock()

        with self._uow_factory() as uow:
            user = uow.users.get_for_update(command.user_id)
            if user is None:
                raise UserNotFoundError(str(command.user_id))

            package = PackageResolver(uow.system_config.get()).next_after(user.package_level)
            if package is None:
                raise MaxLevelReachedError(user.package_level)
            if user.balance < package.activation:
                raise InsufficientBalanceError(
                    required=package.activation, available=user.balance
                )

            user.balance -= package.activation
            user.package_level = package.level
            user.total_lots_bought = 0
            uow.users.save(user)

            uow.transactions.add(
                Transaction(
                    user_id=user.id,
                    type=TransactionType.UPGRADE,
                    amount=-package.activation,
                    description=f"Upgraded to Level {package.level}",
                    created_at=now,
                )
            )
            uow.commit()

        logger.info("User %s upgraded to level %d", user.id, package.level)
        return UpgradePackageResult(level=package.level, balance=user.balance)
