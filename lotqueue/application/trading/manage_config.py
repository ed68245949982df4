"""
Use cases: Read and update the system configuration (admin only).

Update input: UpdateSystemConfigCommand (changes, expected_version)
Output: SystemConfig
Side effects: Replaces the stored configuration with a validated,
    version-bumped copy and notifies the process-wide cache.
Failure cases: InvalidConfigError, StaleConfigError,
    SystemConfigNotFoundError.
"""

import logging
from typing import Callable, Optional

from lotqueue.application.trading.dtos import UpdateSystemConfigCommand
from lotqueue.domain.trading.entities import SystemConfig
from lotqueue.domain.trading.errors import StaleConfigError
from lotqueue.domain.trading.ports import LedgerUnitOfWork
from lotqueue.domain.trading.system_config import merge_config
from lotqueue.shared.retry import retry_on_conflict

logger = logging.getLogger(__name__)


class GetSystemConfigUseCase:
    """Returns the stored configuration."""

    def __init__(self, uow_factory: Callable[[], LedgerUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def execute(self) -> SystemConfig:
        """Run the config read use case."""
        with self._uow_factory() as uow:
            return uow.system_config.get()


class UpdateSystemConfigUseCase:
    """Applies a partial, validated configuration update."""

    def __init__(
        self,
        uow_factory: Callable[[], LedgerUnitOfWork],
        on_updated: Optional[Callable[[SystemConfig], None]] = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._on_updated = on_updated

    @retry_on_conflict()
    def execute(self, command: UpdateSystemConfigCommand) -> SystemConfig:
        """Run the config update use case."""
        with self._uow_factory() as uow:
            current = uow.system_config.get()
            if (
                command.expected_version is not None
                and command.expected_version != current.version
            ):
                raise StaleConfigError(command.expected_version, current.version)

            updated = merge_config(current, command.changes)
            uow.system_config.save(updated, expected_version=current.version)
            uow.commit()

        logger.info(
            "System configuration updated to version %d (fields: %s)",
            updated.version,
            ", ".join(sorted(command.changes)),
        )
        if self._on_updated is not None:
            self._on_updated(updated)
        return updated
