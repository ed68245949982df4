"""
Use case: Buy a lot and run the FIFO payout match.

Input: BuyLotCommand (user_id, lot_type)
Output: BuyLotResult
Side effects: Debits the buyer, updates daily/cycle counters, feeds the
    autofill pool, creates a lot and a buy_lot transaction. For type-1
    lots, every second purchase system-wide sells the oldest active
    type-1 lot and credits its owner with a sell_reward transaction.
    All of it commits in one unit of work or not at all.
Failure cases: InvalidLotTypeError, UserNotFoundError, NoActivePackageError,
    ReferralRequiredError, InsufficientBalanceError, DailyLimitExceededError,
    ConflictError (after retries).
"""

import logging
from datetime import datetime, timezone, tzinfo
from typing import Callable, Optional

from lotqueue.application.trading.dtos import BuyLotCommand, BuyLotResult
from lotqueue.domain.trading.eligibility import EligibilityChecker, TradeQuote
from lotqueue.domain.trading.entities import (
    Lot,
    LotStatus,
    Transaction,
    TransactionType,
    User,
)
from lotqueue.domain.trading.errors import UserNotFoundError
from lotqueue.domain.trading.packages import (
    MATCH_EVERY,
    MATCHED_LOT_TYPE,
    autofill_contribution,
    sell_price_for,
    validate_lot_type,
)
from lotqueue.domain.trading.ports import LedgerUnitOfWork
from lotqueue.shared.clock import Clock, utc_now
from lotqueue.shared.retry import retry_on_conflict

logger = logging.getLogger(__name__)


class BuyLotUseCase:
    """Orchestrates a lot purchase and the match it may trigger.

    Lock order is global state, then buyer, then seller. Distribution takes
    global state before any user as well, so the two never wait on each
    other in opposite order. Counters are bumped with atomic increments and
    the queue pop never hands the same lot to two matches.
    """

    def __init__(
        self,
        uow_factory: Callable[[], LedgerUnitOfWork],
        clock: Clock = utc_now,
        tz: tzinfo = timezone.utc,
    ) -> None:
        self._uow_factory = uow_factory
        self._clock = clock
        self._tz = tz

    @retry_on_conflict()
    def execute(self, command: BuyLotCommand) -> BuyLotResult:
        """Run the purchase use case.

        Args:
            command: Buyer id and requested lot type.

        Returns:
            The new lot, the buyer's final balance and the sold lot, if any.
        """
        validate_lot_type(command.lot_type)
        now = self._clock()

        with self._uow_factory() as uow:
            uow.global_state.get_for_update()
            buyer = uow.users.get_for_update(command.user_id)
            if buyer is None:
                raise UserNotFoundError(str(command.user_id))

            config = uow.system_config.get()
            quote = EligibilityChecker(config, self._tz).check(buyer, command.lot_type, now)

            self._debit_buyer(buyer, quote, now)
            uow.users.save(buyer)

            uow.global_state.add_to_autofill_pool(autofill_contribution(quote.price))

            lot = uow.lots.add(
                Lot(
                    user_id=buyer.id,
                    lot_type=command.lot_type,
                    buy_price=quote.price,
                    sell_price=sell_price_for(quote.price),
                    package_level=buyer.package_level,
                    status=LotStatus.ACTIVE,
                    created_at=now,
                )
            )
            uow.transactions.add(
                Transaction(
                    user_id=buyer.id,
                    type=TransactionType.BUY_LOT,
                    amount=-quote.price,
                    description=f"Bought Lot {command.lot_type} (level {buyer.package_level})",
                    created_at=now,
                )
            )

            sold_lot: Optional[Lot] = None
            seller: Optional[User] = None
            if command.lot_type == MATCHED_LOT_TYPE:
                sold_lot, seller = self._run_match(uow, now)

            paid_to_buyer = seller is not None and seller.id == buyer.id
            balance = seller.balance if paid_to_buyer else buyer.balance

            uow.commit()

        logger.info(
            "User %s bought lot %s type=%d price=%s%s",
            buyer.id,
            lot.id,
            command.lot_type,
            quote.price,
            f" (matched lot {sold_lot.id})" if sold_lot else "",
        )
        return BuyLotResult(
            lot=lot,
            balance=balance,
            sold_lot=sold_lot,
            paid_to_buyer=paid_to_buyer,
        )

    @staticmethod
    def _debit_buyer(buyer: User, quote: TradeQuote, now: datetime) -> None:
        """Apply the accepted purchase to the buyer snapshot."""
        buyer.balance -= quote.price
        buyer.daily_buy_amount = quote.daily_total
        buyer.last_buy_at = now
        buyer.total_lots_bought += 1
        if quote.first_buy_today:
            buyer.consecutive_trade_days += 1

    @staticmethod
    def _run_match(
        uow: LedgerUnitOfWork, now: datetime
    ) -> tuple[Optional[Lot], Optional[User]]:
        """Count the purchase and sell the oldest lot when the trigger fires.

        Returns:
            (sold lot, credited seller), or (None, None) if nothing sold.
        """
        count = uow.global_state.increment_lot1_buys()
        if count % MATCH_EVERY != 0:
            return None, None

        sold = uow.lots.pop_oldest_active(MATCHED_LOT_TYPE, sold_at=now)
        if sold is None:
            logger.warning(
                "Match trigger at type-%d purchase #%d found no active lot",
                MATCHED_LOT_TYPE,
                count,
            )
            return None, None

        seller = uow.users.get_for_update(sold.user_id)
        if seller is None:
            raise UserNotFoundError(str(sold.user_id))

        seller.balance += sold.sell_price
        uow.users.save(seller)
        uow.transactions.add(
            Transaction(
                user_id=seller.id,
                type=TransactionType.SELL_REWARD,
                amount=sold.sell_price,
                description=f"Lot {sold.lot_type} #{sold.id} sold",
                created_at=now,
            )
        )
        return sold, seller
