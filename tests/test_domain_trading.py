"""
Tests for the trading domain layer.

Pure functions and value objects only. No database needed.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from lotqueue.domain.trading.autofill import split_pool
from lotqueue.domain.trading.eligibility import (
    EligibilityChecker,
    is_same_trading_day,
    required_referrals,
    trading_day,
)
from lotqueue.domain.trading.entities import User
from lotqueue.domain.trading.errors import (
    DailyLimitExceededError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidConfigError,
    InvalidLotTypeError,
    NoActivePackageError,
    PackageNotFoundError,
    ReferralRequiredError,
)
from lotqueue.domain.trading.packages import (
    PackageResolver,
    autofill_contribution,
    money,
    positive_money,
    sell_price_for,
)
from lotqueue.domain.trading.system_config import (
    default_system_config,
    merge_config,
    validate_system_config,
)

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _user(**fields) -> User:
    defaults = {"wallet_address": "0x" + "a" * 40, "id": 1, "package_level": 1, "balance": Decimal("100")}
    defaults.update(fields)
    return User(**defaults)


# ══════════════════════════════════════════════════════════════════════
# Prices
# ══════════════════════════════════════════════════════════════════════


class TestPricing:
    """Tests for sell prices, pool contributions and the package table."""

    @pytest.mark.parametrize(
        "buy, sell",
        [("10.00", "13.00"), ("22.50", "29.25"), ("33.75", "43.88"), ("0.05", "0.07")],
    )
    def test_sell_price_is_thirty_percent_premium(self, buy: str, sell: str) -> None:
        """Sell price is buy x 1.30 rounded half up to the cent."""
        assert sell_price_for(Decimal(buy)) == Decimal(sell)

    def test_autofill_contribution_is_five_percent(self) -> None:
        assert autofill_contribution(Decimal("10.00")) == Decimal("0.50")
        assert autofill_contribution(Decimal("33.75")) == Decimal("1.69")

    def test_default_package_prices_scale_with_level(self) -> None:
        resolver = PackageResolver(default_system_config())
        assert resolver.get(1).lot_prices == tuple(
            Decimal(p) for p in ("10.00", "15.00", "22.50", "33.75")
        )
        assert resolver.get(4).lot_price(3) == Decimal("90.00")
        assert resolver.get(12).activation == Decimal("2500.00")
        assert all(resolver.get(lvl).daily_limit == Decimal("225.00") for lvl in range(1, 13))

    def test_level_zero_has_no_package(self) -> None:
        resolver = PackageResolver(default_system_config())
        assert resolver.find(0) is None
        with pytest.raises(PackageNotFoundError):
            resolver.get(0)

    def test_next_after_top_level_is_none(self) -> None:
        resolver = PackageResolver(default_system_config())
        assert resolver.next_after(0).level == 1
        assert resolver.next_after(12) is None

    def test_money_rounds_half_up(self) -> None:
        assert money("1.005") == Decimal("1.01")
        assert money(3) == Decimal("3.00")

    def test_positive_money_accepts_whole_cents(self) -> None:
        assert positive_money("12.5") == Decimal("12.50")
        assert positive_money(Decimal("0.01")) == Decimal("0.01")

    @pytest.mark.parametrize("amount", ["0", "-1", "0.005", "10.001", "NaN", "Infinity"])
    def test_positive_money_rejects_without_rounding(self, amount: str) -> None:
        with pytest.raises(InvalidAmountError):
            positive_money(amount)


# ══════════════════════════════════════════════════════════════════════
# Trading day and referral gate
# ══════════════════════════════════════════════════════════════════════


class TestTradingDay:
    def test_same_day_in_utc(self) -> None:
        assert is_same_trading_day(NOW - timedelta(hours=11), NOW, timezone.utc)
        assert not is_same_trading_day(NOW - timedelta(hours=13), NOW, timezone.utc)

    def test_day_boundary_follows_reference_timezone(self) -> None:
        """23:30 UTC is already the next day in Tunis (UTC+1)."""
        tz = ZoneInfo("Africa/Tunis")
        late = datetime(2024, 3, 1, 23, 30, tzinfo=timezone.utc)
        assert trading_day(late, timezone.utc).day == 1
        assert trading_day(late, tz).day == 2

    def test_never_bought_is_not_same_day(self) -> None:
        assert not is_same_trading_day(None, NOW, timezone.utc)


class TestRequiredReferrals:
    @pytest.mark.parametrize(
        "total, required",
        [(0, 0), (224, 0), (225, 1), (244, 1), (245, 2), (265, 3)],
    )
    def test_one_more_referral_every_interval(self, total: int, required: int) -> None:
        assert required_referrals(total, default_system_config()) == required


# ══════════════════════════════════════════════════════════════════════
# Eligibility
# ══════════════════════════════════════════════════════════════════════


class TestEligibilityChecker:
    """Checks run in order and never mutate the user."""

    def setup_method(self) -> None:
        self.checker = EligibilityChecker(default_system_config())

    def test_quote_for_first_buy_of_day(self) -> None:
        quote = self.checker.check(_user(), 1, NOW)
        assert quote.price == Decimal("10.00")
        assert quote.first_buy_today
        assert quote.daily_total == Decimal("10.00")

    def test_accumulator_carries_within_day(self) -> None:
        user = _user(last_buy_at=NOW - timedelta(hours=1), daily_buy_amount=Decimal("50.00"))
        quote = self.checker.check(user, 2, NOW)
        assert not quote.first_buy_today
        assert quote.daily_total == Decimal("65.00")

    def test_accumulator_resets_on_new_day(self) -> None:
        user = _user(last_buy_at=NOW - timedelta(days=1), daily_buy_amount=Decimal("220.00"))
        quote = self.checker.check(user, 1, NOW)
        assert quote.accumulated_today == Decimal("0.00")

    def test_invalid_lot_type(self) -> None:
        with pytest.raises(InvalidLotTypeError):
            self.checker.check(_user(), 5, NOW)

    def test_inactive_user_rejected(self) -> None:
        with pytest.raises(NoActivePackageError):
            self.checker.check(_user(package_level=0), 1, NOW)

    def test_referral_gate(self) -> None:
        user = _user(total_lots_bought=225, direct_referrals=0)
        with pytest.raises(ReferralRequiredError) as exc_info:
            self.checker.check(user, 1, NOW)
        assert exc_info.value.required == 1

        self.checker.check(replace(user, direct_referrals=1), 1, NOW)

    def test_insufficient_balance(self) -> None:
        with pytest.raises(InsufficientBalanceError):
            self.checker.check(_user(balance=Decimal("9.99")), 1, NOW)

    def test_daily_cap(self) -> None:
        user = _user(
            balance=Decimal("1000"),
            last_buy_at=NOW - timedelta(minutes=5),
            daily_buy_amount=Decimal("200.00"),
        )
        self.checker.check(user, 2, NOW)  # 215 <= 225
        with pytest.raises(DailyLimitExceededError):
            self.checker.check(user, 4, NOW)  # 233.75 > 225

    def test_referral_gate_checked_before_balance(self) -> None:
        user = _user(balance=Decimal("0"), total_lots_bought=300)
        with pytest.raises(ReferralRequiredError):
            self.checker.check(user, 1, NOW)


# ══════════════════════════════════════════════════════════════════════
# Autofill split
# ══════════════════════════════════════════════════════════════════════


class TestSplitPool:
    def test_even_split(self) -> None:
        shares = split_pool(Decimal("10.00"), [1, 2, 3, 4])
        assert [s.amount for s in shares] == [Decimal("2.50")] * 4

    def test_remainder_goes_to_last_recipient(self) -> None:
        shares = split_pool(Decimal("10.00"), [1, 2, 3])
        assert [s.amount for s in shares] == [Decimal("3.33"), Decimal("3.33"), Decimal("3.34")]
        assert sum(s.amount for s in shares) == Decimal("10.00")

    def test_never_overdistributes(self) -> None:
        pool = Decimal("0.05")
        shares = split_pool(pool, list(range(1, 8)))
        assert sum(s.amount for s in shares) == pool
        assert all(s.amount >= 0 for s in shares)

    def test_no_recipients(self) -> None:
        assert split_pool(Decimal("5.00"), []) == []


# ══════════════════════════════════════════════════════════════════════
# System configuration
# ══════════════════════════════════════════════════════════════════════


class TestSystemConfig:
    def test_defaults_are_valid(self) -> None:
        validate_system_config(default_system_config())

    def test_merge_bumps_version_and_lowercases_wallets(self) -> None:
        current = default_system_config()
        updated = merge_config(current, {"admin_wallet": "0x" + "AB" * 20, "referral_interval": 10})
        assert updated.version == current.version + 1
        assert updated.admin_wallet == "0x" + "ab" * 20
        assert updated.referral_interval == 10
        assert updated.packages == current.packages

    def test_merge_rejects_unknown_field(self) -> None:
        with pytest.raises(InvalidConfigError):
            merge_config(default_system_config(), {"house_edge": 3})

    def test_merge_rejects_invalid_result(self) -> None:
        with pytest.raises(InvalidConfigError):
            merge_config(default_system_config(), {"referral_interval": 0})

    def test_mismatched_referral_tables_rejected(self) -> None:
        config = replace(default_system_config(), referral_requirements=(1, 1))
        with pytest.raises(InvalidConfigError):
            validate_system_config(config)

    def test_gap_in_package_levels_rejected(self) -> None:
        packages = default_system_config().packages
        config = replace(default_system_config(), packages=packages[:3] + packages[4:])
        with pytest.raises(InvalidConfigError):
            validate_system_config(config)
