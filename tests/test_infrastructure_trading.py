"""
Tests for the SQLAlchemy adapters.

Covers behavior the use case tests do not reach directly: queue pops,
optimistic config writes, conflict translation and the config cache.
"""

from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from lotqueue.domain.trading.entities import Lot, LotStatus, Transaction, TransactionType
from lotqueue.domain.trading.errors import (
    ConflictError,
    DuplicateDepositError,
    StaleConfigError,
)
from lotqueue.domain.trading.system_config import default_system_config, merge_config
from lotqueue.infrastructure.trading.config_provider import SystemConfigProvider
from lotqueue.infrastructure.trading.database import seed_ledger
from lotqueue.infrastructure.trading.unit_of_work import conflict_reason


def _lot(user_id: int, created_at, lot_type: int = 1) -> Lot:
    return Lot(
        user_id=user_id,
        lot_type=lot_type,
        buy_price=Decimal("10.00"),
        sell_price=Decimal("13.00"),
        package_level=1,
        created_at=created_at,
    )


class TestLotQueue:
    def test_pop_takes_oldest_then_lowest_id(self, uow_factory, make_user, clock) -> None:
        owner = make_user()
        with uow_factory() as uow:
            newer = uow.lots.add(_lot(owner.id, clock.now + timedelta(seconds=5)))
            first = uow.lots.add(_lot(owner.id, clock.now))
            second = uow.lots.add(_lot(owner.id, clock.now))
            uow.lots.add(_lot(owner.id, clock.now - timedelta(days=1), lot_type=2))
            uow.commit()

        with uow_factory() as uow:
            popped = [uow.lots.pop_oldest_active(1, sold_at=clock.now) for _ in range(4)]
            uow.commit()

        assert [p.id if p else None for p in popped] == [first.id, second.id, newer.id, None]
        assert all(p.status is LotStatus.SOLD for p in popped[:3])

    def test_pop_gives_up_when_every_candidate_is_taken(self, uow_factory, make_user, clock) -> None:
        owner = make_user()
        with uow_factory() as uow:
            uow.lots.add(_lot(owner.id, clock.now))
            uow.commit()

        lost_race = SimpleNamespace(rowcount=0)
        with uow_factory() as uow:
            real_execute = uow._session.execute

            def execute(stmt, *args, **kwargs):
                if stmt.is_dml:
                    return lost_race
                return real_execute(stmt, *args, **kwargs)

            with patch.object(uow._session, "execute", side_effect=execute):
                with pytest.raises(ConflictError):
                    uow.lots.pop_oldest_active(1, sold_at=clock.now)

    def test_counts_cover_every_type(self, uow_factory, make_user, clock) -> None:
        owner = make_user()
        with uow_factory() as uow:
            uow.lots.add(_lot(owner.id, clock.now, lot_type=3))
            uow.lots.add(_lot(owner.id, clock.now, lot_type=3))
            uow.lots.pop_oldest_active(3, sold_at=clock.now)
            uow.commit()

        with uow_factory() as uow:
            counts = {c.lot_type: (c.active, c.sold) for c in uow.lots.count_by_type()}
        assert counts == {1: (0, 0), 2: (0, 0), 3: (1, 1), 4: (0, 0)}


class TestSystemConfigStore:
    def test_seed_is_idempotent(self, session_factory, uow_factory) -> None:
        seed_ledger(session_factory)
        with uow_factory() as uow:
            assert uow.system_config.get() == default_system_config()

    def test_save_requires_expected_version(self, uow_factory) -> None:
        with uow_factory() as uow:
            current = uow.system_config.get()
            updated = merge_config(current, {"withdrawal_min_days": 4})
            uow.system_config.save(updated, expected_version=current.version)
            uow.commit()

        with uow_factory() as uow:
            stored = uow.system_config.get()
            assert (stored.version, stored.withdrawal_min_days) == (2, 4)
            with pytest.raises(StaleConfigError):
                uow.system_config.save(merge_config(stored, {}), expected_version=1)


class TestConflictTranslation:
    def _operational(self, message: str, pgcode=None) -> OperationalError:
        orig = Exception(message)
        orig.pgcode = pgcode
        return OperationalError("UPDATE users ...", {}, orig)

    @pytest.mark.parametrize("pgcode", ["40001", "40P01", "55P03"])
    def test_postgres_contention_codes(self, pgcode) -> None:
        assert conflict_reason(self._operational("boom", pgcode)) is not None

    def test_sqlite_locked(self) -> None:
        assert conflict_reason(self._operational("database is locked")) == "database is locked"

    def test_other_errors_pass_through(self) -> None:
        assert conflict_reason(self._operational("disk full", "53100")) is None
        assert conflict_reason(ValueError("nope")) is None

    def test_unit_of_work_raises_conflict(self, uow_factory) -> None:
        with pytest.raises(ConflictError):
            with uow_factory():
                raise self._operational("deadlock", "40P01")


class TestSystemConfigProvider:
    def test_loads_once_and_never_moves_backwards(self, uow_factory) -> None:
        provider = SystemConfigProvider(uow_factory)
        original = provider.get()
        assert original.version == 1

        newer = merge_config(original, {"referral_interval": 10})
        provider.set(newer)
        provider.set(original)
        assert provider.get() is newer


class TestTransactionLedger:
    def _deposit(self, user_id: int, created_at, tx_hash=None) -> Transaction:
        return Transaction(
            user_id=user_id,
            type=TransactionType.DEPOSIT,
            amount=Decimal("5.00"),
            tx_hash=tx_hash,
            created_at=created_at,
        )

    def test_tx_hash_is_unique_in_storage(self, uow_factory, make_user, clock) -> None:
        """The index rejects a repeated hash even when the lookup is skipped."""
        first, second = make_user(), make_user()
        with uow_factory() as uow:
            uow.transactions.add(self._deposit(first.id, clock.now, tx_hash="0xdup"))
            uow.commit()

        with pytest.raises(DuplicateDepositError):
            with uow_factory() as uow:
                uow.transactions.add(self._deposit(second.id, clock.now, tx_hash="0xdup"))

    def test_deposits_without_hash_may_repeat(self, uow_factory, make_user, clock) -> None:
        user = make_user()
        with uow_factory() as uow:
            for _ in range(2):
                uow.transactions.add(self._deposit(user.id, clock.now))
            uow.commit()

        with uow_factory() as uow:
            assert len(uow.transactions.list_by_user(user.id)) == 2
