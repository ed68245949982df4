"""
Adapter: Lot repository.

Each lot type is a FIFO queue of active lots ordered by creation time
then id. Popping the head is done in two steps: pick a candidate with
FOR UPDATE SKIP LOCKED, then flip it to sold with an UPDATE guarded on
status = 'active'. A candidate lost to a concurrent pop is skipped and
the next one is tried, so no lot is ever sold twice.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from lotqueue.domain.trading.entities import LOT_TYPES, Lot, LotStatus, QueueCount
from lotqueue.domain.trading.errors import ConflictError
from lotqueue.domain.trading.ports import LotRepository
from lotqueue.infrastructure.trading.models import LotRow, as_utc, to_utc

logger = logging.getLogger(__name__)

MAX_POP_ATTEMPTS = 5


def _to_entity(row: LotRow) -> Lot:
    return Lot(
        id=row.id,
        user_id=row.user_id,
        lot_type=row.lot_type,
        buy_price=row.buy_price,
        sell_price=row.sell_price,
        package_level=row.package_level,
        status=LotStatus(row.status),
        created_at=as_utc(row.created_at),
        sold_at=as_utc(row.sold_at),
    )


class SqlAlchemyLotRepository(LotRepository):
    """Persists lots and serves the per-type FIFO queues."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, lot: Lot) -> Lot:
        row = LotRow(
            user_id=lot.user_id,
            lot_type=lot.lot_type,
            buy_price=lot.buy_price,
            sell_price=lot.sell_price,
            package_level=lot.package_level,
            status=lot.status.value,
            created_at=to_utc(lot.created_at),
            sold_at=to_utc(lot.sold_at),
        )
        self._session.add(row)
        self._session.flush()
        return _to_entity(row)

    def pop_oldest_active(self, lot_type: int, sold_at: datetime) -> Optional[Lot]:
        """Sell the head of a queue.

        Raises:
            ConflictError: If every attempt lost its candidate to a
                concurrent pop.
        """
        table = LotRow.__table__
        for attempt in range(1, MAX_POP_ATTEMPTS + 1):
            candidate_id = self._session.execute(
                select(LotRow.id)
                .where(LotRow.lot_type == lot_type)
                .where(LotRow.status == LotStatus.ACTIVE.value)
                .order_by(LotRow.created_at, LotRow.id)
                .limit(1)
                .with_for_update(skip_locked=True)
            ).scalar_one_or_none()
            if candidate_id is None:
                return None

            result = self._session.execute(
                update(table)
                .where(table.c.id == candidate_id)
                .where(table.c.status == LotStatus.ACTIVE.value)
                .values(status=LotStatus.SOLD.value, sold_at=to_utc(sold_at))
            )
            if result.rowcount == 1:
                row = self._session.get(LotRow, candidate_id, populate_existing=True)
                return _to_entity(row)

            logger.debug(
                "Lot %s taken concurrently, retrying pop (attempt %d)",
                candidate_id,
                attempt,
            )

        raise ConflictError(f"could not claim a type {lot_type} lot")

    def list_by_user(self, user_id: int) -> list[Lot]:
        stmt = (
            select(LotRow)
            .where(LotRow.user_id == user_id)
            .order_by(LotRow.created_at.desc(), LotRow.id.desc())
        )
        return [_to_entity(r) for r in self._session.execute(stmt).scalars()]

    def count_by_type(self) -> list[QueueCount]:
        stmt = select(LotRow.lot_type, LotRow.status, func.count(LotRow.id)).group_by(
            LotRow.lot_type, LotRow.status
        )
        counts = {t: {"active": 0, "sold": 0} for t in LOT_TYPES}
        for lot_type, status, total in self._session.execute(stmt):
            if lot_type in counts and status in counts[lot_type]:
                counts[lot_type][status] = total
        return [QueueCount(lot_type=t, **counts[t]) for t in LOT_TYPES]
