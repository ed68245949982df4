"""
FastAPI router for user-facing LotQueue routes.

All routes delegate to use cases. No business logic here.
Input validation is handled by Pydantic schemas.
Error mapping is handled by centralized error handlers.
"""

from fastapi import APIRouter, Depends, Request

from lotqueue.application.trading.buy_lot import BuyLotUseCase
from lotqueue.application.trading.dtos import (
    BuyLotCommand,
    RegisterUserCommand,
    RequestWithdrawalCommand,
    UpgradePackageCommand,
)
from lotqueue.application.trading.get_account import GetAccountUseCase
from lotqueue.application.trading.get_queue_counts import GetQueueCountsUseCase
from lotqueue.application.trading.list_user_lots import ListUserLotsUseCase
from lotqueue.application.trading.list_user_transactions import (
    ListUserTransactionsUseCase,
)
from lotqueue.application.trading.register_user import RegisterUserUseCase
from lotqueue.application.trading.request_withdrawal import RequestWithdrawalUseCase
from lotqueue.application.trading.upgrade_package import UpgradePackageUseCase
from lotqueue.core.config import settings
from lotqueue.domain.trading.entities import User
from lotqueue.interfaces.trading.dependencies import (
    get_account_use_case,
    get_buy_lot_use_case,
    get_current_user,
    get_list_user_lots_use_case,
    get_list_user_transactions_use_case,
    get_queue_counts_use_case,
    get_register_user_use_case,
    get_request_withdrawal_use_case,
    get_upgrade_package_use_case,
    get_wallet_address,
)
from lotqueue.interfaces.trading.schemas import (
    AccountResponse,
    BuyLotRequest,
    BuyLotResponse,
    ErrorResponse,
    LotItem,
    QueueCountItem,
    RegisterRequest,
    TransactionItem,
    UpgradeResponse,
    UserResponse,
    WithdrawRequest,
)
from lotqueue.shared.security.rate_limiting import limiter

router = APIRouter(tags=["trading"])

AUTH_ERRORS = {401: {"model": ErrorResponse}}


@router.post(
    "/auth/register",
    response_model=UserResponse,
    status_code=201,
    responses={401: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Register the caller's wallet",
)
def register(
    payload: RegisterRequest,
    wallet: str = Depends(get_wallet_address),
    use_case: RegisterUserUseCase = Depends(get_register_user_use_case),
) -> UserResponse:
    """Create an inactive account for the wallet in the identity header."""
    user = use_case.execute(
        RegisterUserCommand(wallet_address=wallet, sponsor_address=payload.sponsor_address)
    )
    return UserResponse.from_entity(user)


@router.get(
    "/account",
    response_model=AccountResponse,
    responses=AUTH_ERRORS,
    summary="Current account",
)
def get_account(
    user: User = Depends(get_current_user),
    use_case: GetAccountUseCase = Depends(get_account_use_case),
) -> AccountResponse:
    """Return the caller's account with today's remaining allowance."""
    summary = use_case.execute(user.id)
    return AccountResponse(
        user=UserResponse.from_entity(summary.user),
        is_active=summary.user.is_active,
        daily_limit=summary.daily_limit,
        daily_remaining=summary.daily_remaining,
        required_referrals=summary.required_referrals,
    )


@router.post(
    "/trading/buy",
    response_model=BuyLotResponse,
    responses={**AUTH_ERRORS, 400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    summary="Buy a lot",
    description="Buy a lot of type 1-4 at the caller's package level. "
    "Every second type-1 purchase sells the oldest waiting type-1 lot.",
)
@limiter.limit(settings.rate_limit_trading)
def buy_lot(
    request: Request,
    payload: BuyLotRequest,
    user: User = Depends(get_current_user),
    use_case: BuyLotUseCase = Depends(get_buy_lot_use_case),
) -> BuyLotResponse:
    """Run the purchase engine for the caller."""
    result = use_case.execute(BuyLotCommand(user_id=user.id, lot_type=payload.lot_type))
    return BuyLotResponse(
        lot=LotItem.from_entity(result.lot),
        balance=result.balance,
        sold_lot=LotItem.from_entity(result.sold_lot) if result.sold_lot else None,
        paid_to_buyer=result.paid_to_buyer,
    )


@router.post(
    "/trading/upgrade",
    response_model=UpgradeResponse,
    responses={**AUTH_ERRORS, 400: {"model": ErrorResponse}},
    summary="Upgrade to the next package level",
)
@limiter.limit(settings.rate_limit_trading)
def upgrade_package(
    request: Request,
    user: User = Depends(get_current_user),
    use_case: UpgradePackageUseCase = Depends(get_upgrade_package_use_case),
) -> UpgradeResponse:
    """Pay the next level's activation cost."""
    result = use_case.execute(UpgradePackageCommand(user_id=user.id))
    return UpgradeResponse(level=result.level, balance=result.balance)


@router.get(
    "/trading/lots",
    response_model=list[LotItem],
    responses=AUTH_ERRORS,
    summary="The caller's lots",
)
def list_lots(
    user: User = Depends(get_current_user),
    use_case: ListUserLotsUseCase = Depends(get_list_user_lots_use_case),
) -> list[LotItem]:
    return [LotItem.from_entity(lot) for lot in use_case.execute(user.id)]


@router.get(
    "/trading/queue-counts",
    response_model=dict[str, QueueCountItem],
    summary="Queue depth per lot type",
    description="Waiting (buy) and sold (sell) lot counts for each type. Public.",
)
def queue_counts(
    use_case: GetQueueCountsUseCase = Depends(get_queue_counts_use_case),
) -> dict[str, QueueCountItem]:
    return {
        str(lot_type): QueueCountItem(buy=count.active, sell=count.sold)
        for lot_type, count in use_case.execute().items()
    }


@router.get(
    "/transactions",
    response_model=list[TransactionItem],
    responses=AUTH_ERRORS,
    summary="The caller's transactions",
)
def list_transactions(
    user: User = Depends(get_current_user),
    use_case: ListUserTransactionsUseCase = Depends(get_list_user_transactions_use_case),
) -> list[TransactionItem]:
    return [TransactionItem.from_entity(tx) for tx in use_case.execute(user.id)]


@router.post(
    "/withdraw",
    response_model=TransactionItem,
    responses={**AUTH_ERRORS, 400: {"model": ErrorResponse}},
    summary="Request a withdrawal",
    description="Debits the balance now and files a pending withdrawal for admin review.",
)
@limiter.limit(settings.rate_limit_trading)
def request_withdrawal(
    request: Request,
    payload: WithdrawRequest,
    user: User = Depends(get_current_user),
    use_case: RequestWithdrawalUseCase = Depends(get_request_withdrawal_use_case),
) -> TransactionItem:
    transaction = use_case.execute(
        RequestWithdrawalCommand(user_id=user.id, amount=payload.amount, address=payload.address)
    )
    return TransactionItem.from_entity(transaction)
