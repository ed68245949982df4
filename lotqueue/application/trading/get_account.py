"""
Use case: Describe the current user's account.

Input: user_id
Output: AccountSummary
Side effects: None.
Failure cases: UserNotFoundError.
"""

from datetime import timezone, tzinfo
from typing import Callable

from lotqueue.application.trading.dtos import AccountSummary
from lotqueue.domain.trading.eligibility import EligibilityChecker, required_referrals
from lotqueue.domain.trading.entities import ZERO
from lotqueue.domain.trading.errors import UserNotFoundError
from lotqueue.domain.trading.packages import PackageResolver
from lotqueue.domain.trading.ports import LedgerUnitOfWork
from lotqueue.shared.clock import Clock, utc_now


class GetAccountUseCase:
    """Reads a user together with the limits that currently apply to them."""

    def __init__(
        self,
        uow_factory: Callable[[], LedgerUnitOfWork],
        clock: Clock = utc_now,
        tz: tzinfo = timezone.utc,
    ) -> None:
        self._uow_factory = uow_factory
        self._clock = clock
        self._tz = tz

    def execute(self, user_id: int) -> AccountSummary:
        """Run the account summary use case."""
        with self._uow_factory() as uow:
            user = uow.users.get(user_id)
            if user is None:
                raise UserNotFoundError(str(user_id))
            config = uow.system_config.get()

        package = PackageResolver(config).find(user.package_level)
        if package is None:
            daily_limit = None
            remaining = ZERO
        else:
            daily_limit = package.daily_limit
            spent = EligibilityChecker(config, self._tz).daily_accumulated(user, self._clock())
            remaining = max(ZERO, daily_limit - spent)

        return AccountSummary(
            user=user,
            daily_limit=daily_limit,
            daily_remaining=remaining,
            required_referrals=required_referrals(user.total_lots_bought, config),
        )
