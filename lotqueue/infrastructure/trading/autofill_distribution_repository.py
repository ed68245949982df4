"""Adapter: Autofill distribution audit log."""

from sqlalchemy.orm import Session

from lotqueue.domain.trading.entities import AutofillDistribution
from lotqueue.domain.trading.ports import AutofillDistributionRepository
from lotqueue.infrastructure.trading.models import AutofillDistributionRow, as_utc, to_utc


class SqlAlchemyAutofillDistributionRepository(AutofillDistributionRepository):
    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, distribution: AutofillDistribution) -> AutofillDistribution:
        row = AutofillDistributionRow(
            amount=distribution.amount,
            recipients_count=distribution.recipients_count,
            distributed_at=to_utc(distribution.distributed_at),
        )
        self._session.add(row)
        self._session.flush()
        return AutofillDistribution(
            id=row.id,
            amount=row.amount,
            recipients_count=row.recipients_count,
            distributed_at=as_utc(row.distributed_at),
        )
