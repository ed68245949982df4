"""
Default business rules and configuration validation.

The system configuration is a single versioned record. It is validated
every time it is written so that the purchase engine never reads a
malformed package table.
"""

from dataclasses import replace
from decimal import Decimal
from typing import Any

from lotqueue.domain.trading.entities import (
    LOT_TYPES,
    MAX_PACKAGE_LEVEL,
    PackageConfig,
    SystemConfig,
)
from lotqueue.domain.trading.errors import InvalidConfigError
from lotqueue.domain.trading.packages import money

DEFAULT_ACTIVATIONS = (20, 50, 100, 200, 500, 600, 800, 1000, 1200, 1500, 2000, 2500)
DEFAULT_LOT_MULTIPLIERS = (Decimal("10"), Decimal("15"), Decimal("22.50"), Decimal("33.75"))
DEFAULT_DAILY_LIMIT = Decimal("225")
DEFAULT_REFERRAL_REWARDS = ("0.06", "0.03", "0.02", "0.02", "0.02", "0.01", "0.01", "0.01", "0.01", "0.01")
DEFAULT_REFERRAL_REQUIREMENTS = (1, 1, 2, 2, 3, 3, 4, 4, 5, 5)

DEFAULT_ADMIN_WALLET = "0xb416d5c1d8a7546f5be3fa550374868d90d79615"
DEFAULT_DEPOSIT_WALLET = "0x8dc184d5dfae5dba51ea03b291f081058b4484b2"
DEFAULT_WITHDRAWAL_WALLET = "0xd10f1b960bd66a9cbd48380a545ab637d42ed407"


def default_packages() -> tuple[PackageConfig, ...]:
    """Build the stock 12-level package table."""
    return tuple(
        PackageConfig(
            level=level,
            activation=money(activation),
            lot_prices=tuple(money(m * level) for m in DEFAULT_LOT_MULTIPLIERS),
            daily_limit=money(DEFAULT_DAILY_LIMIT),
        )
        for level, activation in enumerate(DEFAULT_ACTIVATIONS, start=1)
    )


def default_system_config() -> SystemConfig:
    """Return the configuration seeded on first start."""
    return SystemConfig(
        packages=default_packages(),
        referral_rewards=tuple(Decimal(r) for r in DEFAULT_REFERRAL_REWARDS),
        referral_requirements=DEFAULT_REFERRAL_REQUIREMENTS,
        withdrawal_min_days=2,
        admin_wallet=DEFAULT_ADMIN_WALLET,
        deposit_wallet=DEFAULT_DEPOSIT_WALLET,
        withdrawal_wallet=DEFAULT_WITHDRAWAL_WALLET,
        max_trades_before_referral=225,
        referral_interval=20,
        autofill_min_referrals=5,
        version=1,
    )


def validate_system_config(config: SystemConfig) -> None:
    """Check structural and numeric rules of a configuration.

    Raises:
        InvalidConfigError: On the first violated rule.
    """
    if not config.packages:
        raise InvalidConfigError("package table is empty")

    levels = [p.level for p in config.packages]
    if levels != list(range(1, len(levels) + 1)):
        raise InvalidConfigError("package levels must be contiguous starting at 1")
    if len(levels) > MAX_PACKAGE_LEVEL:
        raise InvalidConfigError(f"at most {MAX_PACKAGE_LEVEL} package levels allowed")

    for package in config.packages:
        if len(package.lot_prices) != len(LOT_TYPES):
            raise InvalidConfigError(f"level {package.level} must define {len(LOT_TYPES)} lot prices")
        if any(price <= 0 for price in package.lot_prices):
            raise InvalidConfigError(f"level {package.level} has a non-positive lot price")
        if package.activation < 0:
            raise InvalidConfigError(f"level {package.level} has a negative activation cost")
        if package.daily_limit <= 0:
            raise InvalidConfigError(f"level {package.level} has a non-positive daily limit")

    if len(config.referral_rewards) != len(config.referral_requirements):
        raise InvalidConfigError("referral rewards and requirements must have equal length")
    if any(r < 0 or r > 1 for r in config.referral_rewards):
        raise InvalidConfigError("referral rewards must be fractions between 0 and 1")
    if any(r < 0 for r in config.referral_requirements):
        raise InvalidConfigError("referral requirements must be non-negative")

    if config.referral_interval <= 0:
        raise InvalidConfigError("referral interval must be positive")
    if config.max_trades_before_referral < 0:
        raise InvalidConfigError("max trades before referral must be non-negative")
    if config.withdrawal_min_days < 0:
        raise InvalidConfigError("withdrawal minimum days must be non-negative")
    if config.autofill_min_referrals < 0:
        raise InvalidConfigError("autofill minimum referrals must be non-negative")

    for name in ("admin_wallet", "deposit_wallet", "withdrawal_wallet"):
        if not getattr(config, name):
            raise InvalidConfigError(f"{name} must not be empty")


def merge_config(current: SystemConfig, changes: dict[str, Any]) -> SystemConfig:
    """Apply a partial update and return a validated, version-bumped config.

    Args:
        current: The configuration currently stored.
        changes: Field name to new value; unknown names are rejected.

    Raises:
        InvalidConfigError: If a field is unknown or the result is invalid.
    """
    unknown = set(changes) - set(SystemConfig.__dataclass_fields__) - {"version"}
    if unknown:
        raise InvalidConfigError(f"unknown fields: {', '.join(sorted(unknown))}")

    normalized = dict(changes)
    normalized.pop("version", None)
    for name in ("admin_wallet", "deposit_wallet", "withdrawal_wallet"):
        if name in normalized and normalized[name] is not None:
            normalized[name] = normalized[name].lower()

    updated = replace(current, **normalized, version=current.version + 1)
    validate_system_config(updated)
    return updated
