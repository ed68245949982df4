"""
Dependency injection for the LotQueue API.

Provides FastAPI dependency functions that wire infrastructure
adapters into use cases via constructor injection.
These are the composition root of the application.

Tests swap the storage and the clock by overriding
get_session_factory and get_clock through app.dependency_overrides.
"""

import logging
from datetime import tzinfo
from functools import lru_cache
from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from lotqueue.application.trading.buy_lot import BuyLotUseCase
from lotqueue.application.trading.deposit_funds import DepositFundsUseCase
from lotqueue.application.trading.distribute_autofill import DistributeAutofillUseCase
from lotqueue.application.trading.get_account import GetAccountUseCase
from lotqueue.application.trading.get_queue_counts import GetQueueCountsUseCase
from lotqueue.application.trading.list_pending_withdrawals import (
    ListPendingWithdrawalsUseCase,
)
from lotqueue.application.trading.list_user_lots import ListUserLotsUseCase
from lotqueue.application.trading.list_user_transactions import (
    ListUserTransactionsUseCase,
)
from lotqueue.application.trading.list_users import ListUsersUseCase
from lotqueue.application.trading.manage_config import (
    GetSystemConfigUseCase,
    UpdateSystemConfigUseCase,
)
from lotqueue.application.trading.register_user import RegisterUserUseCase
from lotqueue.application.trading.request_withdrawal import RequestWithdrawalUseCase
from lotqueue.application.trading.review_withdrawal import ReviewWithdrawalUseCase
from lotqueue.application.trading.update_user import UpdateUserUseCase
from lotqueue.application.trading.upgrade_package import UpgradePackageUseCase
from lotqueue.core.config import settings
from lotqueue.domain.trading.entities import User
from lotqueue.domain.trading.ports import LedgerUnitOfWork
from lotqueue.infrastructure.trading.config_provider import SystemConfigProvider
from lotqueue.infrastructure.trading.database import build_engine, build_session_factory
from lotqueue.infrastructure.trading.unit_of_work import SqlAlchemyUnitOfWork
from lotqueue.shared.clock import Clock, resolve_timezone, utc_now

logger = logging.getLogger(__name__)

UowFactory = Callable[[], LedgerUnitOfWork]


# ----------------------------------------------------------------------
# Infrastructure
# ----------------------------------------------------------------------


@lru_cache
def get_engine() -> Engine:
    """Build the process-wide SQLAlchemy engine from settings."""
    return build_engine(settings.database_url, settings.db_statement_timeout_ms)


@lru_cache
def _default_session_factory() -> sessionmaker[Session]:
    return build_session_factory(get_engine())


def get_session_factory() -> sessionmaker[Session]:
    """Return the session factory bound to the ledger database."""
    return _default_session_factory()


def get_unit_of_work_factory(
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
) -> UowFactory:
    """Return a callable opening a fresh unit of work per call."""
    return lambda: SqlAlchemyUnitOfWork(session_factory)


def get_clock() -> Clock:
    return utc_now


@lru_cache
def get_trading_timezone() -> tzinfo:
    """Return the zone whose calendar day bounds daily limits."""
    return resolve_timezone(settings.trading_timezone)


def get_config_provider(
    request: Request,
    uow_factory: UowFactory = Depends(get_unit_of_work_factory),
) -> SystemConfigProvider:
    """Return the application's config cache, creating it on first use."""
    provider = getattr(request.app.state, "config_provider", None)
    if provider is None:
        provider = SystemConfigProvider(uow_factory)
        request.app.state.config_provider = provider
    return provider


# ----------------------------------------------------------------------
# Identity
# ----------------------------------------------------------------------


def get_wallet_address(
    wallet: Optional[str] = Header(default=None, alias=settings.identity_header),
) -> str:
    """Return the caller's wallet from the gateway header.

    Raises:
        HTTPException: 401 if the header is missing or blank.
    """
    if wallet is None or not wallet.strip():
        raise HTTPException(status_code=401, detail="Missing wallet identity")
    return wallet.strip().lower()


def get_current_user(
    wallet: str = Depends(get_wallet_address),
    uow_factory: UowFactory = Depends(get_unit_of_work_factory),
) -> User:
    """Resolve the registered user behind the caller's wallet.

    Raises:
        HTTPException: 401 if the wallet is not registered.
    """
    with uow_factory() as uow:
        user = uow.users.get_by_wallet(wallet)
    if user is None:
        raise HTTPException(status_code=401, detail="Wallet is not registered")
    return user


def require_admin(
    user: User = Depends(get_current_user),
    provider: SystemConfigProvider = Depends(get_config_provider),
) -> User:
    """Allow only the configured admin wallet through.

    Raises:
        HTTPException: 403 for any other user.
    """
    if user.wallet_address.lower() != provider.get().admin_wallet.lower():
        logger.warning("User %s denied admin access", user.id)
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


# ----------------------------------------------------------------------
# Use cases
# ----------------------------------------------------------------------


def get_register_user_use_case(
    uow_factory: UowFactory = Depends(get_unit_of_work_factory),
    clock: Clock = Depends(get_clock),
) -> RegisterUserUseCase:
    return RegisterUserUseCase(uow_factory, clock=clock)


def get_account_use_case(
    uow_factory: UowFactory = Depends(get_unit_of_work_factory),
    clock: Clock = Depends(get_clock),
    tz: tzinfo = Depends(get_trading_timezone),
) -> GetAccountUseCase:
    return GetAccountUseCase(uow_factory, clock=clock, tz=tz)


def get_buy_lot_use_case(
    uow_factory: UowFactory = Depends(get_unit_of_work_factory),
    clock: Clock = Depends(get_clock),
    tz: tzinfo = Depends(get_trading_timezone),
) -> BuyLotUseCase:
    """Build BuyLotUseCase with its infrastructure dependencies."""
    return BuyLotUseCase(uow_factory, clock=clock, tz=tz)


def get_upgrade_package_use_case(
    uow_factory: UowFactory = Depends(get_unit_of_work_factory),
    clock: Clock = Depends(get_clock),
) -> UpgradePackageUseCase:
    return UpgradePackageUseCase(uow_factory, clock=clock)


def get_list_user_lots_use_case(
    uow_factory: UowFactory = Depends(get_unit_of_work_factory),
) -> ListUserLotsUseCase:
    return ListUserLotsUseCase(uow_factory)


def get_queue_counts_use_case(
    uow_factory: UowFactory = Depends(get_unit_of_work_factory),
) -> GetQueueCountsUseCase:
    return GetQueueCountsUseCase(uow_factory)


def get_list_user_transactions_use_case(
    uow_factory: UowFactory = Depends(get_unit_of_work_factory),
) -> ListUserTransactionsUseCase:
    return ListUserTransactionsUseCase(uow_factory)


def get_request_withdrawal_use_case(
    uow_factory: UowFactory = Depends(get_unit_of_work_factory),
    clock: Clock = Depends(get_clock),
) -> RequestWithdrawalUseCase:
    return RequestWithdrawalUseCase(uow_factory, clock=clock)


def get_deposit_funds_use_case(
    uow_factory: UowFactory = Depends(get_unit_of_work_factory),
    clock: Clock = Depends(get_clock),
) -> DepositFundsUseCase:
    return DepositFundsUseCase(uow_factory, clock=clock)


def get_distribute_autofill_use_case(
    uow_factory: UowFactory = Depends(get_unit_of_work_factory),
    clock: Clock = Depends(get_clock),
) -> DistributeAutofillUseCase:
    return DistributeAutofillUseCase(uow_factory, clock=clock)


def get_list_pending_withdrawals_use_case(
    uow_factory: UowFactory = Depends(get_unit_of_work_factory),
) -> ListPendingWithdrawalsUseCase:
    return ListPendingWithdrawalsUseCase(uow_factory)


def get_review_withdrawal_use_case(
    uow_factory: UowFactory = Depends(get_unit_of_work_factory),
) -> ReviewWithdrawalUseCase:
    return ReviewWithdrawalUseCase(uow_factory)


def get_system_config_use_case(
    uow_factory: UowFactory = Depends(get_unit_of_work_factory),
) -> GetSystemConfigUseCase:
    return GetSystemConfigUseCase(uow_factory)


def get_update_system_config_use_case(
    uow_factory: UowFactory = Depends(get_unit_of_work_factory),
    provider: SystemConfigProvider = Depends(get_config_provider),
) -> UpdateSystemConfigUseCase:
    """Build UpdateSystemConfigUseCase; committed versions refresh the cache."""
    return UpdateSystemConfigUseCase(uow_factory, on_updated=provider.set)


def get_list_users_use_case(
    uow_factory: UowFactory = Depends(get_unit_of_work_factory),
) -> ListUsersUseCase:
    return ListUsersUseCase(uow_factory)


def get_update_user_use_case(
    uow_factory: UowFactory = Depends(get_unit_of_work_factory),
) -> UpdateUserUseCase:
    return UpdateUserUseCase(uow_factory)
