"""
Use case: Distribute the autofill pool (admin only).

Input: none
Output: AutofillDistributionResult
Side effects: Credits each eligible user's upgrade package wallet with a
    referral_reward transaction, resets the pool to zero and appends an
    audit record.
Failure cases: AutofillPoolEmptyError, NoEligibleRecipientsError.
"""

import logging
from typing import Callable

from lotqueue.application.trading.dtos import AutofillDistributionResult
from lotqueue.domain.trading.autofill import split_pool
from lotqueue.domain.trading.entities import (
    AutofillDistribution,
    Transaction,
    TransactionType,
)
from lotqueue.domain.trading.errors import (
    AutofillPoolEmptyError,
    NoEligibleRecipientsError,
)
from lotqueue.domain.trading.ports import LedgerUnitOfWork
from lotqueue.shared.clock import Clock, utc_now
from lotqueue.shared.retry import retry_on_conflict

logger = logging.getLogger(__name__)


class DistributeAutofillUseCase:
    """Splits the accumulated autofill pool among referral-qualified users.

    The pool row is locked first, so purchases that want to add to the
    pool wait until the distribution has committed.
    """

    def __init__(
        self,
        uow_factory: Callable[[], LedgerUnitOfWork],
        clock: Clock = utc_now,
    ) -> None:
        self._uow_factory = uow_factory
        self._clock = clock

    @retry_on_conflict()
    def execute(self) -> AutofillDistributionResult:
        """Run the distribution use case."""
        now = self._clock()

        with self._uow_factory() as uow:
            pool = uow.global_state.get_for_update().autofill_pool
            if pool <= 0:
                raise AutofillPoolEmptyError()

            threshold = uow.system_config.get().autofill_min_referrals
            recipients = uow.users.lock_with_min_referrals(threshold)
            if not recipients:
                raise NoEligibleRecipientsError(threshold)

            shares = split_pool(pool, [u.id for u in recipients])
            for user, share in zip(recipients, shares):
                user.upgrade_package_wallet += share.amount
                uow.users.save(user)
                uow.transactions.add(
                    Transaction(
                        user_id=user.id,
                        type=TransactionType.REFERRAL_REWARD,
                        amount=share.amount,
                        description="Monthly Global Autofill Distribution",
                        created_at=now,
                    )
                )

            uow.global_state.reset_autofill_pool()
            uow.autofill_distributions.add(
                AutofillDistribution(
                    amount=pool,
                    recipients_count=len(recipients),
                    distributed_at=now,
                )
            )
            uow.commit()

        logger.info("Distributed %s to %d users", pool, len(recipients))
        return AutofillDistributionResult(
            amount=pool, recipients_count=len(recipients), shares=shares
        )
