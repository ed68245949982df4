"""
Use case: Edit a user's trade counters (admin only).

Input: UpdateUserCommand (user_id, package_level, direct_referrals,
    total_lots_bought)
Output: User
Side effects: Overwrites the given fields. Balances are never edited
    here; they only move through ledgered operations.
Failure cases: UserNotFoundError, ValidationError.
"""

import logging
from typing import Callable

from lotqueue.application.trading.dtos import UpdateUserCommand
from lotqueue.domain.trading.entities import MAX_PACKAGE_LEVEL, User
from lotqueue.domain.trading.errors import UserNotFoundError, ValidationError
from lotqueue.domain.trading.ports import LedgerUnitOfWork
from lotqueue.shared.retry import retry_on_conflict

logger = logging.getLogger(__name__)


class UpdateUserUseCase:
    """Lets an administrator correct package level and referral counters."""

    def __init__(self, uow_factory: Callable[[], LedgerUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    @retry_on_conflict()
    def execute(self, command: UpdateUserCommand) -> User:
        """Run the user update use case."""
        if command.package_level is not None and not (
            0 <= command.package_level <= MAX_PACKAGE_LEVEL
        ):
            raise ValidationError(
                f"Package level must be between 0 and {MAX_PACKAGE_LEVEL}"
            )
        for name in ("direct_referrals", "total_lots_bought"):
            value = getattr(command, name)
            if value is not None and value < 0:
                raise ValidationError(f"{name} must be non-negative")

        with self._uow_factory() as uow:
            user = uow.users.get_for_update(command.user_id)
            if user is None:
                raise UserNotFoundError(str(command.user_id))

            if command.package_level is not None:
                user.package_level = command.package_level
            if command.direct_referrals is not None:
                user.direct_referrals = command.direct_referrals
            if command.total_lots_bought is not None:
                user.total_lots_bought = command.total_lots_bought
            uow.users.save(user)
            uow.commit()

        logger.info("Admin updated user %s", user.id)
        return user
