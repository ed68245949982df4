"""
Shared fixtures for the LotQueue test suite.

Every test gets a fresh in-memory SQLite ledger, created and seeded the
same way the application does at startup. Time is pinned by FixedClock.
"""

import os

# Settings are read at import time; rate limiting would leak state between tests.
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from lotqueue.application.trading.dtos import RegisterUserCommand
from lotqueue.application.trading.register_user import RegisterUserUseCase
from lotqueue.domain.trading.entities import User
from lotqueue.domain.trading.ports import LedgerUnitOfWork
from lotqueue.infrastructure.trading.database import (
    build_session_factory,
    create_schema,
    seed_ledger,
)
from lotqueue.infrastructure.trading.unit_of_work import SqlAlchemyUnitOfWork

START = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


class FixedClock:
    """A clock that only moves when told to."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def wallet(n: int) -> str:
    """Deterministic, valid-looking wallet address number n."""
    return "0x" + f"{n:040x}"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    factory = build_session_factory(engine)
    seed_ledger(factory)
    return factory


@pytest.fixture
def uow_factory(session_factory) -> Callable[[], LedgerUnitOfWork]:
    return lambda: SqlAlchemyUnitOfWork(session_factory)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def make_user(uow_factory, clock) -> Callable[..., User]:
    """Register a user and set trading fields directly in storage."""

    counter = {"n": 0}

    def _make(
        balance: Decimal | str = "0",
        package_level: int = 0,
        sponsor: Optional[str] = None,
        address: Optional[str] = None,
        **fields,
    ) -> User:
        counter["n"] += 1
        address = address or wallet(1000 + counter["n"])
        user = RegisterUserUseCase(uow_factory, clock=clock).execute(
            RegisterUserCommand(wallet_address=address, sponsor_address=sponsor)
        )
        with uow_factory() as uow:
            stored = uow.users.get_for_update(user.id)
            stored.balance = Decimal(balance)
            stored.package_level = package_level
            for name, value in fields.items():
                setattr(stored, name, value)
            uow.users.save(stored)
            uow.commit()
        return stored

    return _make


@pytest.fixture
def get_user(uow_factory) -> Callable[[int], User]:
    def _get(user_id: int) -> User:
        with uow_factory() as uow:
            return uow.users.get(user_id)

    return _get
