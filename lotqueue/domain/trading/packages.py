"""
Package and pricing rules.

Pure lookups and money arithmetic. No side effects.
All amounts are Decimal quantized to cents. Prices and pool shares of a
purchase round half up; autofill shares are floored (see money_floor).
"""

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Optional

from lotqueue.domain.trading.entities import LOT_TYPES, PackageConfig, SystemConfig
from lotqueue.domain.trading.errors import (
    InvalidAmountError,
    InvalidLotTypeError,
    PackageNotFoundError,
)

CENT = Decimal("0.01")
SELL_PREMIUM = Decimal("1.30")
AUTOFILL_RATE = Decimal("0.05")

# Every MATCH_EVERY-th purchase of MATCHED_LOT_TYPE sells the oldest lot.
MATCHED_LOT_TYPE = 1
MATCH_EVERY = 2


def money(value: Decimal | int | str) -> Decimal:
    """Quantize an amount to cents."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def money_floor(value: Decimal) -> Decimal:
    """Quantize an amount to cents, rounding toward zero."""
    return value.quantize(CENT, rounding=ROUND_DOWN)


def positive_money(value: Decimal | int | str) -> Decimal:
    """Return a caller-supplied amount as cents.

    Raises:
        InvalidAmountError: If the amount is not positive or has fractions
            of a cent. Sub-cent amounts are rejected, never rounded.
    """
    amount = Decimal(value)
    if not amount.is_finite() or amount <= 0 or amount != money(amount):
        raise InvalidAmountError(value)
    return money(amount)


def sell_price_for(buy_price: Decimal) -> Decimal:
    """Return the fixed payout of a lot bought at buy_price."""
    return money(buy_price * SELL_PREMIUM)


def autofill_contribution(price: Decimal) -> Decimal:
    """Return the share of a purchase that feeds the autofill pool."""
    return money(price * AUTOFILL_RATE)


def validate_lot_type(lot_type: int) -> None:
    """Raise InvalidLotTypeError unless lot_type is one of 1-4."""
    if lot_type not in LOT_TYPES:
        raise InvalidLotTypeError(lot_type)


class PackageResolver:
    """Resolves package levels against a SystemConfig."""

    def __init__(self, config: SystemConfig) -> None:
        self._by_level = {p.level: p for p in config.packages}

    def find(self, level: int) -> Optional[PackageConfig]:
        """Return the package for a level, or None."""
        return self._by_level.get(level)

    def get(self, level: int) -> PackageConfig:
        """Return the package for a level.

        Raises:
            PackageNotFoundError: If the level has no package.
        """
        package = self.find(level)
        if package is None:
            raise PackageNotFoundError(level)
        return package

    def next_after(self, level: int) -> Optional[PackageConfig]:
        """Return the package one level above, or None at the top."""
        return self.find(level + 1)
