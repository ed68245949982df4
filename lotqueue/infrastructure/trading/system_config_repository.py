"""
Adapter: System configuration repository.

The configuration is one row. Decimal values inside JSON columns are
stored as strings so they survive the round trip without float drift.
Writes are optimistic: the row is only replaced when its version still
matches the version the caller read.
"""

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from lotqueue.domain.trading.entities import PackageConfig, SystemConfig
from lotqueue.domain.trading.errors import StaleConfigError, SystemConfigNotFoundError
from lotqueue.domain.trading.ports import SystemConfigRepository
from lotqueue.infrastructure.trading.models import SystemConfigRow

logger = logging.getLogger(__name__)

SYSTEM_CONFIG_ID = 1


def _package_to_json(package: PackageConfig) -> dict[str, Any]:
    return {
        "level": package.level,
        "activation": str(package.activation),
        "lot_prices": [str(p) for p in package.lot_prices],
        "daily_limit": str(package.daily_limit),
    }


def _package_from_json(data: dict[str, Any]) -> PackageConfig:
    return PackageConfig(
        level=int(data["level"]),
        activation=Decimal(data["activation"]),
        lot_prices=tuple(Decimal(p) for p in data["lot_prices"]),
        daily_limit=Decimal(data["daily_limit"]),
    )


def _columns(config: SystemConfig) -> dict[str, Any]:
    return {
        "version": config.version,
        "packages": [_package_to_json(p) for p in config.packages],
        "referral_rewards": [str(r) for r in config.referral_rewards],
        "referral_requirements": list(config.referral_requirements),
        "withdrawal_min_days": config.withdrawal_min_days,
        "admin_wallet": config.admin_wallet,
        "deposit_wallet": config.deposit_wallet,
        "withdrawal_wallet": config.withdrawal_wallet,
        "max_trades_before_referral": config.max_trades_before_referral,
        "referral_interval": config.referral_interval,
        "autofill_min_referrals": config.autofill_min_referrals,
    }


def _to_entity(row: SystemConfigRow) -> SystemConfig:
    return SystemConfig(
        packages=tuple(_package_from_json(p) for p in row.packages),
        referral_rewards=tuple(Decimal(r) for r in row.referral_rewards),
        referral_requirements=tuple(int(r) for r in row.referral_requirements),
        withdrawal_min_days=row.withdrawal_min_days,
        admin_wallet=row.admin_wallet,
        deposit_wallet=row.deposit_wallet,
        withdrawal_wallet=row.withdrawal_wallet,
        max_trades_before_referral=row.max_trades_before_referral,
        referral_interval=row.referral_interval,
        autofill_min_referrals=row.autofill_min_referrals,
        version=row.version,
    )


class SqlAlchemySystemConfigRepository(SystemConfigRepository):
    """Persists the singleton system_config row."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self) -> SystemConfig:
        stmt = (
            select(SystemConfigRow)
            .where(SystemConfigRow.id == SYSTEM_CONFIG_ID)
            .execution_options(populate_existing=True)
        )
        row = self._session.execute(stmt).scalar_one_or_none()
        if row is None:
            raise SystemConfigNotFoundError()
        return _to_entity(row)

    def seed(self, config: SystemConfig) -> bool:
        if self._session.get(SystemConfigRow, SYSTEM_CONFIG_ID) is not None:
            return False
        self._session.add(SystemConfigRow(id=SYSTEM_CONFIG_ID, **_columns(config)))
        self._session.flush()
        return True

    def save(self, config: SystemConfig, expected_version: int) -> None:
        table = SystemConfigRow.__table__
        result = self._session.execute(
            update(table)
            .where(table.c.id == SYSTEM_CONFIG_ID)
            .where(table.c.version == expected_version)
            .values(**_columns(config))
        )
        if result.rowcount != 1:
            current = self._session.execute(
                select(table.c.version).where(table.c.id == SYSTEM_CONFIG_ID)
            ).scalar_one_or_none()
            if current is None:
                raise SystemConfigNotFoundError()
            raise StaleConfigError(expected_version, current)
        logger.info("System config saved at version %s", config.version)
