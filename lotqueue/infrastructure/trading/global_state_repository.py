"""
Adapter: Global state repository.

The counters live in a single row. Mutations are issued as one
UPDATE ... RETURNING statement each so concurrent buyers never lose an
increment.
"""

from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from lotqueue.domain.trading.entities import ZERO, GlobalState
from lotqueue.domain.trading.ports import GlobalStateRepository
from lotqueue.infrastructure.trading.models import GlobalStateRow

GLOBAL_STATE_ID = 1


class SqlAlchemyGlobalStateRepository(GlobalStateRepository):
    """Reads and atomically mutates the global_state row."""

    def __init__(self, session: Session) -> None:
        self._session = session
        self._table = GlobalStateRow.__table__

    def _select(self, lock: bool) -> GlobalState:
        stmt = select(GlobalStateRow).where(GlobalStateRow.id == GLOBAL_STATE_ID)
        if lock:
            stmt = stmt.with_for_update()
        row = self._session.execute(
            stmt.execution_options(populate_existing=True)
        ).scalar_one()
        return GlobalState(
            total_lot1_buys=row.total_lot1_buys,
            autofill_pool=row.autofill_pool,
        )

    def get(self) -> GlobalState:
        return self._select(lock=False)

    def get_for_update(self) -> GlobalState:
        return self._select(lock=True)

    def increment_lot1_buys(self) -> int:
        col = self._table.c.total_lot1_buys
        stmt = (
            update(self._table)
            .where(self._table.c.id == GLOBAL_STATE_ID)
            .values(total_lot1_buys=col + 1)
            .returning(col)
        )
        return self._session.execute(stmt).scalar_one()

    def add_to_autofill_pool(self, amount: Decimal) -> None:
        col = self._table.c.autofill_pool
        self._session.execute(
            update(self._table)
            .where(self._table.c.id == GLOBAL_STATE_ID)
            .values(autofill_pool=col + amount)
        )

    def reset_autofill_pool(self) -> None:
        self._session.execute(
            update(self._table)
            .where(self._table.c.id == GLOBAL_STATE_ID)
            .values(autofill_pool=ZERO)
        )
