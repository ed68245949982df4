"""
Use case: Report queue depth per lot type.

Output: dict of lot type to QueueCount; every type 1-4 is present.
Side effects: None.

"buy" in the public view is the number of active lots still waiting to
be matched, "sell" is the number already sold.
"""

from typing import Callable

from lotqueue.domain.trading.entities import LOT_TYPES, QueueCount
from lotqueue.domain.trading.ports import LedgerUnitOfWork


class GetQueueCountsUseCase:
    """Counts active and sold lots for the public queue display."""

    def __init__(self, uow_factory: Callable[[], LedgerUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def execute(self) -> dict[int, QueueCount]:
        """Run the queue count use case."""
        with self._uow_factory() as uow:
            counts = {c.lot_type: c for c in uow.lots.count_by_type()}
        return {t: counts.get(t, QueueCount(lot_type=t)) for t in LOT_TYPES}
