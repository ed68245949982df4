"""
Process-wide cache of the system configuration.

Reads that only need the current rules (the admin check, the public
package table) go through this cache instead of the database. Writers
refresh it after committing a new version.
"""

import logging
import threading
from typing import Callable, Optional

from lotqueue.domain.trading.entities import SystemConfig
from lotqueue.domain.trading.ports import LedgerUnitOfWork

logger = logging.getLogger(__name__)


class SystemConfigProvider:
    """Caches the stored SystemConfig, loading it on first use."""

    def __init__(self, uow_factory: Callable[[], LedgerUnitOfWork]) -> None:
        self._uow_factory = uow_factory
        self._config: Optional[SystemConfig] = None
        self._lock = threading.Lock()

    def get(self) -> SystemConfig:
        config = self._config
        if config is None:
            config = self.reload()
        return config

    def reload(self) -> SystemConfig:
        with self._uow_factory() as uow:
            config = uow.system_config.get()
        self.set(config)
        return config

    def set(self, config: SystemConfig) -> None:
        with self._lock:
            # Never move backwards if a slower reload finishes late.
            if self._config is None or config.version >= self._config.version:
                self._config = config
                logger.info("System config cache now at version %s", config.version)
