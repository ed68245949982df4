"""
Ledger database wiring.

Builds the SQLAlchemy engine and session factory from settings, creates
the schema and seeds the singleton rows. PostgreSQL is the production
target; SQLite is supported for local runs and tests.
"""

import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from lotqueue.domain.trading.entities import SystemConfig
from lotqueue.domain.trading.system_config import default_system_config
from lotqueue.infrastructure.trading.global_state_repository import GLOBAL_STATE_ID
from lotqueue.infrastructure.trading.models import Base, GlobalStateRow
from lotqueue.infrastructure.trading.system_config_repository import (
    SqlAlchemySystemConfigRepository,
)

logger = logging.getLogger(__name__)


def build_engine(database_url: str, statement_timeout_ms: Optional[int] = None) -> Engine:
    """Create an engine with driver-specific connection settings.

    Args:
        database_url: SQLAlchemy URL.
        statement_timeout_ms: PostgreSQL statement timeout; a timed-out
            statement aborts and rolls back the whole transaction.
    """
    connect_args: dict = {}
    if database_url.startswith("postgresql"):
        connect_args = {"connect_timeout": 10}
        if statement_timeout_ms:
            connect_args["options"] = f"-c statement_timeout={statement_timeout_ms}"
    elif database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}

    return create_engine(
        database_url,
        connect_args=connect_args,
        pool_pre_ping=True,
    )


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory for units of work."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def create_schema(engine: Engine) -> None:
    """Create every ledger table that does not exist yet."""
    Base.metadata.create_all(bind=engine)


def seed_ledger(
    session_factory: sessionmaker[Session],
    config: Optional[SystemConfig] = None,
) -> None:
    """Insert the singleton global state and configuration rows if absent.

    Args:
        session_factory: Factory bound to the ledger database.
        config: Configuration to seed; defaults to the stock rules.
    """
    with session_factory() as session, session.begin():
        if session.get(GlobalStateRow, GLOBAL_STATE_ID) is None:
            session.add(GlobalStateRow(id=GLOBAL_STATE_ID, total_lot1_buys=0))
            logger.info("Seeded global state row")

        seeded = SqlAlchemySystemConfigRepository(session).seed(
            config or default_system_config()
        )
        if seeded:
            logger.info("No system config found, seeded defaults")
