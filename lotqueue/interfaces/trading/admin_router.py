"""
FastAPI router for administrator routes.

Every route requires the configured admin wallet. Deposits are recorded
here after the on-chain transfer has been verified out of band.
"""

from fastapi import APIRouter, Depends

from lotqueue.application.trading.deposit_funds import DepositFundsUseCase
from lotqueue.application.trading.distribute_autofill import DistributeAutofillUseCase
from lotqueue.application.trading.dtos import (
    DepositFundsCommand,
    ReviewWithdrawalCommand,
    UpdateSystemConfigCommand,
    UpdateUserCommand,
)
from lotqueue.application.trading.list_pending_withdrawals import (
    ListPendingWithdrawalsUseCase,
)
from lotqueue.application.trading.list_users import ListUsersUseCase
from lotqueue.application.trading.manage_config import (
    GetSystemConfigUseCase,
    UpdateSystemConfigUseCase,
)
from lotqueue.application.trading.review_withdrawal import ReviewWithdrawalUseCase
from lotqueue.application.trading.update_user import UpdateUserUseCase
from lotqueue.interfaces.trading.dependencies import (
    get_deposit_funds_use_case,
    get_distribute_autofill_use_case,
    get_list_pending_withdrawals_use_case,
    get_list_users_use_case,
    get_review_withdrawal_use_case,
    get_system_config_use_case,
    get_update_system_config_use_case,
    get_update_user_use_case,
    require_admin,
)
from lotqueue.interfaces.trading.schemas import (
    AutofillDistributionResponse,
    AutofillShareItem,
    DepositRequest,
    DepositResponse,
    ErrorResponse,
    SystemConfigResponse,
    SystemConfigUpdateRequest,
    TransactionItem,
    UpdateUserRequest,
    UserResponse,
)

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)


@router.post(
    "/deposit",
    response_model=DepositResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Credit a verified deposit",
)
def deposit(
    payload: DepositRequest,
    use_case: DepositFundsUseCase = Depends(get_deposit_funds_use_case),
) -> DepositResponse:
    result = use_case.execute(
        DepositFundsCommand(
            wallet_address=payload.wallet_address,
            amount=payload.amount,
            tx_hash=payload.tx_hash,
        )
    )
    return DepositResponse(
        balance=result.balance,
        transaction=TransactionItem.from_entity(result.transaction),
    )


@router.post(
    "/distribute-autofill",
    response_model=AutofillDistributionResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Distribute the autofill pool",
    description="Splits the pool equally among users with enough direct "
    "referrals, credits their upgrade wallets and empties the pool.",
)
def distribute_autofill(
    use_case: DistributeAutofillUseCase = Depends(get_distribute_autofill_use_case),
) -> AutofillDistributionResponse:
    result = use_case.execute()
    return AutofillDistributionResponse(
        amount=result.amount,
        recipients_count=result.recipients_count,
        shares=[AutofillShareItem.from_entity(s) for s in result.shares],
    )


@router.get(
    "/withdrawals/pending",
    response_model=list[TransactionItem],
    summary="Pending withdrawals, oldest first",
)
def list_pending_withdrawals(
    use_case: ListPendingWithdrawalsUseCase = Depends(get_list_pending_withdrawals_use_case),
) -> list[TransactionItem]:
    return [TransactionItem.from_entity(tx) for tx in use_case.execute()]


def _review(use_case: ReviewWithdrawalUseCase, transaction_id: int, approve: bool) -> TransactionItem:
    transaction = use_case.execute(
        ReviewWithdrawalCommand(transaction_id=transaction_id, approve=approve)
    )
    return TransactionItem.from_entity(transaction)


@router.post(
    "/withdrawals/{transaction_id}/approve",
    response_model=TransactionItem,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Approve a pending withdrawal",
)
def approve_withdrawal(
    transaction_id: int,
    use_case: ReviewWithdrawalUseCase = Depends(get_review_withdrawal_use_case),
) -> TransactionItem:
    return _review(use_case, transaction_id, approve=True)


@router.post(
    "/withdrawals/{transaction_id}/reject",
    response_model=TransactionItem,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Reject a pending withdrawal and refund it",
)
def reject_withdrawal(
    transaction_id: int,
    use_case: ReviewWithdrawalUseCase = Depends(get_review_withdrawal_use_case),
) -> TransactionItem:
    return _review(use_case, transaction_id, approve=False)


@router.get(
    "/config",
    response_model=SystemConfigResponse,
    summary="Current system configuration",
)
def get_config(
    use_case: GetSystemConfigUseCase = Depends(get_system_config_use_case),
) -> SystemConfigResponse:
    return SystemConfigResponse.from_entity(use_case.execute())


@router.post(
    "/config",
    response_model=SystemConfigResponse,
    responses={409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    summary="Update the system configuration",
    description="Partial update. The result is validated as a whole and "
    "stored as a new version.",
)
def update_config(
    payload: SystemConfigUpdateRequest,
    use_case: UpdateSystemConfigUseCase = Depends(get_update_system_config_use_case),
) -> SystemConfigResponse:
    config = use_case.execute(
        UpdateSystemConfigCommand(
            changes=payload.changes(),
            expected_version=payload.expected_version,
        )
    )
    return SystemConfigResponse.from_entity(config)


@router.get(
    "/users",
    response_model=list[UserResponse],
    summary="All users",
)
def list_users(
    use_case: ListUsersUseCase = Depends(get_list_users_use_case),
) -> list[UserResponse]:
    return [UserResponse.from_entity(u) for u in use_case.execute()]


@router.post(
    "/users/{user_id}",
    response_model=UserResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Edit a user's trade counters",
)
def update_user(
    user_id: int,
    payload: UpdateUserRequest,
    use_case: UpdateUserUseCase = Depends(get_update_user_use_case),
) -> UserResponse:
    user = use_case.execute(
        UpdateUserCommand(
            user_id=user_id,
            package_level=payload.package_level,
            direct_referrals=payload.direct_referrals,
            total_lots_bought=payload.total_lots_bought,
        )
    )
    return UserResponse.from_entity(user)
