"""
Trade eligibility rules.

Pure predicates over a user snapshot and the system configuration.
The checker never mutates its inputs; it either raises the first
failing EligibilityError or returns a TradeQuote describing the
accepted purchase.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo
from decimal import Decimal
from typing import Optional

from lotqueue.domain.trading.entities import ZERO, PackageConfig, SystemConfig, User
from lotqueue.domain.trading.errors import (
    DailyLimitExceededError,
    InsufficientBalanceError,
    NoActivePackageError,
    ReferralRequiredError,
)
from lotqueue.domain.trading.packages import PackageResolver, validate_lot_type


@dataclass(frozen=True)
class TradeQuote:
    """The outcome of a successful eligibility check.

    Attributes:
        package: The buyer's current package.
        price: Price of the requested lot.
        accumulated_today: Amount already bought today, before this lot.
        first_buy_today: True if no purchase has been made yet today.
    """

    package: PackageConfig
    price: Decimal
    accumulated_today: Decimal
    first_buy_today: bool

    @property
    def daily_total(self) -> Decimal:
        """Daily accumulator value once this purchase is applied."""
        return self.accumulated_today + self.price


def trading_day(moment: datetime, tz: tzinfo) -> date:
    """Return the calendar day of a moment in the reference timezone.

    Naive datetimes are taken to be UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz).date()


def is_same_trading_day(earlier: Optional[datetime], now: datetime, tz: tzinfo) -> bool:
    """Return True if earlier falls on the same reference-timezone day as now."""
    if earlier is None:
        return False
    return trading_day(earlier, tz) == trading_day(now, tz)


def required_referrals(total_lots_bought: int, config: SystemConfig) -> int:
    """Return how many direct referrals the current cycle count demands.

    Zero until the cycle reaches max_trades_before_referral, then one more
    for every referral_interval trades.
    """
    if total_lots_bought < config.max_trades_before_referral:
        return 0
    over = total_lots_bought - config.max_trades_before_referral
    return over // config.referral_interval + 1


class EligibilityChecker:
    """Evaluates whether a user may buy a lot right now.

    Checks, in order: active package, referral gate, balance, daily cap.
    """

    def __init__(self, config: SystemConfig, tz: tzinfo = timezone.utc) -> None:
        self._config = config
        self._resolver = PackageResolver(config)
        self._tz = tz

    def daily_accumulated(self, user: User, now: datetime) -> Decimal:
        """Return today's accumulated buy amount, reset on a new day."""
        if is_same_trading_day(user.last_buy_at, now, self._tz):
            return user.daily_buy_amount
        return ZERO

    def check(self, user: User, lot_type: int, now: datetime) -> TradeQuote:
        """Run all purchase checks against a user snapshot.

        Args:
            user: The buyer as currently stored.
            lot_type: Requested lot type (1-4).
            now: Current time, timezone-aware.

        Returns:
            A TradeQuote for the accepted purchase.

        Raises:
            InvalidLotTypeError: If lot_type is not 1-4.
            NoActivePackageError: If the user has no package.
            PackageNotFoundError: If the user's level is missing from the table.
            ReferralRequiredError: If the referral gate is not met.
            InsufficientBalanceError: If the balance cannot cover the price.
            DailyLimitExceededError: If the daily limit would be exceeded.
        """
        validate_lot_type(lot_type)

        if not user.is_active:
            raise NoActivePackageError()

        package = self._resolver.get(user.package_level)
        price = package.lot_price(lot_type)

        required = required_referrals(user.total_lots_bought, self._config)
        if user.direct_referrals < required:
            raise ReferralRequiredError(
                required=required,
                actual=user.direct_referrals,
                max_trades=self._config.max_trades_before_referral,
                interval=self._config.referral_interval,
            )

        if user.balance < price:
            raise InsufficientBalanceError(required=price, available=user.balance)

        first_buy_today = not is_same_trading_day(user.last_buy_at, now, self._tz)
        accumulated = ZERO if first_buy_today else user.daily_buy_amount
        if accumulated + price > package.daily_limit:
            raise DailyLimitExceededError(
                limit=package.daily_limit, attempted=accumulated + price
            )

        return TradeQuote(
            package=package,
            price=price,
            accumulated_today=accumulated,
            first_buy_today=first_buy_today,
        )
