"""
Use case: Register a wallet as a new user.

Input: RegisterUserCommand (wallet_address, sponsor_address)
Output: User
Side effects: Inserts an inactive user; bumps the sponsor's direct
    referral count when the sponsor is registered.
Failure cases: ValidationError (self-sponsoring), UserAlreadyExistsError.

Signature verification happens upstream; the wallet address arriving
here is already trusted.
"""

import logging
from typing import Callable

from lotqueue.application.trading.dtos import RegisterUserCommand
from lotqueue.domain.trading.entities import ZERO_ADDRESS, User
from lotqueue.domain.trading.errors import UserAlreadyExistsError, ValidationError
from lotqueue.domain.trading.ports import LedgerUnitOfWork
from lotqueue.shared.clock import Clock, utc_now
from lotqueue.shared.retry import retry_on_conflict

logger = logging.getLogger(__name__)


class RegisterUserUseCase:
    """Creates an account and credits the sponsor with a referral."""

    def __init__(
        self,
        uow_factory: Callable[[], LedgerUnitOfWork],
        clock: Clock = utc_now,
    ) -> None:
        self._uow_factory = uow_factory
        self._clock = clock

    @retry_on_conflict()
    def execute(self, command: RegisterUserCommand) -> User:
        """Run the registration use case."""
        wallet = command.wallet_address.strip().lower()
        sponsor_wallet = (command.sponsor_address or ZERO_ADDRESS).strip().lower()
        if sponsor_wallet == wallet:
            raise ValidationError("A wallet cannot sponsor itself")

        with self._uow_factory() as uow:
            if uow.users.get_by_wallet(wallet) is not None:
                raise UserAlreadyExistsError(wallet)

            user = uow.users.add(
                User(
                    wallet_address=wallet,
                    sponsor_address=sponsor_wallet,
                    created_at=self._clock(),
                )
            )

            sponsor = None
            if sponsor_wallet != ZERO_ADDRESS:
                sponsor = uow.users.get_by_wallet(sponsor_wallet)
                if sponsor is not None:
                    uow.users.increment_direct_referrals(sponsor.id)

            uow.commit()

        logger.info(
            "Registered user %s%s",
            user.id,
            f" sponsored by user {sponsor.id}" if sponsor else "",
        )
        return user
