"""
Adapter: User repository.

Implements UserRepository port on a SQLAlchemy session.
Row locks are taken with SELECT ... FOR UPDATE and held until the
owning unit of work ends.
"""

import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lotqueue.domain.trading.entities import User
from lotqueue.domain.trading.errors import UserAlreadyExistsError
from lotqueue.domain.trading.ports import UserRepository
from lotqueue.infrastructure.trading.models import UserRow, as_utc, to_utc

logger = logging.getLogger(__name__)


def _to_entity(row: UserRow) -> User:
    return User(
        id=row.id,
        wallet_address=row.wallet_address,
        sponsor_address=row.sponsor_address,
        balance=row.balance,
        package_level=row.package_level,
        daily_buy_amount=row.daily_buy_amount,
        last_buy_at=as_utc(row.last_buy_at),
        total_lots_bought=row.total_lots_bought,
        direct_referrals=row.direct_referrals,
        upgrade_package_wallet=row.upgrade_package_wallet,
        consecutive_trade_days=row.consecutive_trade_days,
        last_withdrawal_at=as_utc(row.last_withdrawal_at),
        created_at=as_utc(row.created_at),
    )


def _copy_mutable_fields(user: User, row: UserRow) -> None:
    row.balance = user.balance
    row.package_level = user.package_level
    row.daily_buy_amount = user.daily_buy_amount
    row.last_buy_at = to_utc(user.last_buy_at)
    row.total_lots_bought = user.total_lots_bought
    row.direct_referrals = user.direct_referrals
    row.upgrade_package_wallet = user.upgrade_package_wallet
    row.consecutive_trade_days = user.consecutive_trade_days
    row.last_withdrawal_at = to_utc(user.last_withdrawal_at)


class SqlAlchemyUserRepository(UserRepository):
    """Persists users in the users table."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, user_id: int) -> Optional[User]:
        row = self._session.get(UserRow, user_id, populate_existing=True)
        return _to_entity(row) if row else None

    def get_for_update(self, user_id: int) -> Optional[User]:
        stmt = (
            select(UserRow)
            .where(UserRow.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        row = self._session.execute(stmt).scalar_one_or_none()
        return _to_entity(row) if row else None

    def get_by_wallet(self, wallet_address: str) -> Optional[User]:
        stmt = select(UserRow).where(UserRow.wallet_address == wallet_address.lower())
        row = self._session.execute(stmt).scalar_one_or_none()
        return _to_entity(row) if row else None

    def add(self, user: User) -> User:
        """Insert a user.

        Raises:
            UserAlreadyExistsError: If the wallet is already registered,
                including by a concurrent request.
        """
        row = UserRow(
            wallet_address=user.wallet_address.lower(),
            sponsor_address=user.sponsor_address.lower(),
            created_at=to_utc(user.created_at),
        )
        _copy_mutable_fields(user, row)
        self._session.add(row)
        try:
            self._session.flush()
        except IntegrityError as exc:
            raise UserAlreadyExistsError(user.wallet_address) from exc
        return _to_entity(row)

    def save(self, user: User) -> None:
        row = self._session.get(UserRow, user.id)
        _copy_mutable_fields(user, row)
        self._session.flush()

    def increment_direct_referrals(self, user_id: int) -> None:
        table = UserRow.__table__
        self._session.execute(
            update(table)
            .where(table.c.id == user_id)
            .values(direct_referrals=table.c.direct_referrals + 1)
        )

    def list_all(self) -> list[User]:
        rows = self._session.execute(select(UserRow).order_by(UserRow.id)).scalars()
        return [_to_entity(r) for r in rows]

    def lock_with_min_referrals(self, min_referrals: int) -> list[User]:
        stmt = (
            select(UserRow)
            .where(UserRow.direct_referrals >= min_referrals)
            .order_by(UserRow.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return [_to_entity(r) for r in self._session.execute(stmt).scalars()]
