"""
Tests for the trading application layer (use cases).

Use cases run against a real SQLAlchemy unit of work on in-memory
SQLite, so each test covers orchestration and persistence together.
"""

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from lotqueue.application.trading.buy_lot import BuyLotUseCase
from lotqueue.application.trading.deposit_funds import DepositFundsUseCase
from lotqueue.application.trading.distribute_autofill import DistributeAutofillUseCase
from lotqueue.application.trading.dtos import (
    BuyLotCommand,
    DepositFundsCommand,
    RegisterUserCommand,
    RequestWithdrawalCommand,
    ReviewWithdrawalCommand,
    UpdateSystemConfigCommand,
    UpdateUserCommand,
    UpgradePackageCommand,
)
from lotqueue.application.trading.get_account import GetAccountUseCase
from lotqueue.application.trading.get_queue_counts import GetQueueCountsUseCase
from lotqueue.application.trading.list_pending_withdrawals import (
    ListPendingWithdrawalsUseCase,
)
from lotqueue.application.trading.list_user_lots import ListUserLotsUseCase
from lotqueue.application.trading.list_user_transactions import (
    ListUserTransactionsUseCase,
)
from lotqueue.application.trading.manage_config import UpdateSystemConfigUseCase
from lotqueue.application.trading.register_user import RegisterUserUseCase
from lotqueue.application.trading.request_withdrawal import RequestWithdrawalUseCase
from lotqueue.application.trading.review_withdrawal import ReviewWithdrawalUseCase
from lotqueue.application.trading.update_user import UpdateUserUseCase
from lotqueue.application.trading.upgrade_package import UpgradePackageUseCase
from lotqueue.domain.trading.entities import (
    LotStatus,
    TransactionStatus,
    TransactionType,
)
from lotqueue.domain.trading.errors import (
    AutofillPoolEmptyError,
    ConflictError,
    DailyLimitExceededError,
    DuplicateDepositError,
    InsufficientBalanceError,
    InvalidAmountError,
    MaxLevelReachedError,
    NoEligibleRecipientsError,
    ReferralRequiredError,
    StaleConfigError,
    UserAlreadyExistsError,
    ValidationError,
    WithdrawalCooldownError,
    WithdrawalNotPendingError,
)
from lotqueue.domain.trading.packages import sell_price_for
from lotqueue.infrastructure.trading.lot_repository import SqlAlchemyLotRepository
from lotqueue.infrastructure.trading.unit_of_work import SqlAlchemyUnitOfWork
from tests.conftest import wallet


def _buy(uow_factory, clock, user_id: int, lot_type: int = 1):
    return BuyLotUseCase(uow_factory, clock=clock).execute(
        BuyLotCommand(user_id=user_id, lot_type=lot_type)
    )


def _pool(uow_factory) -> Decimal:
    with uow_factory() as uow:
        return uow.global_state.get().autofill_pool


class RecordingUnitOfWork(SqlAlchemyUnitOfWork):
    """Real unit of work that logs locking reads and duplicate checks in call order."""

    def __init__(self, session_factory, calls: list) -> None:
        super().__init__(session_factory)
        self.calls = calls

    def __enter__(self) -> "RecordingUnitOfWork":
        super().__enter__()
        self._record(self.global_state, "get_for_update", "global_state")
        self._record(self.users, "get_for_update", "user")
        self._record(self.users, "lock_with_min_referrals", "users")
        self._record(self.transactions, "exists_with_hash", "tx_hash")
        return self

    def _record(self, repository, method: str, label: str) -> None:
        original = getattr(repository, method)

        def recorded(*args, **kwargs):
            self.calls.append((label, *args))
            return original(*args, **kwargs)

        setattr(repository, method, recorded)


# ══════════════════════════════════════════════════════════════════════
# Registration and deposits
# ══════════════════════════════════════════════════════════════════════


class TestRegisterUser:
    def test_registers_inactive_user_and_credits_sponsor(self, uow_factory, clock, get_user) -> None:
        use_case = RegisterUserUseCase(uow_factory, clock=clock)
        sponsor = use_case.execute(RegisterUserCommand(wallet_address=wallet(1)))
        user = use_case.execute(
            RegisterUserCommand(wallet_address=wallet(0xABC).upper(), sponsor_address=wallet(1))
        )

        assert user.wallet_address == wallet(0xABC)
        assert user.package_level == 0
        assert user.balance == Decimal("0")
        assert user.sponsor_address == wallet(1)
        assert get_user(sponsor.id).direct_referrals == 1

    def test_duplicate_wallet_rejected(self, uow_factory, clock) -> None:
        use_case = RegisterUserUseCase(uow_factory, clock=clock)
        use_case.execute(RegisterUserCommand(wallet_address=wallet(1)))
        with pytest.raises(UserAlreadyExistsError):
            use_case.execute(RegisterUserCommand(wallet_address=wallet(1)))

    def test_self_sponsoring_rejected(self, uow_factory, clock) -> None:
        with pytest.raises(ValidationError):
            RegisterUserUseCase(uow_factory, clock=clock).execute(
                RegisterUserCommand(wallet_address=wallet(1), sponsor_address=wallet(1))
            )


class TestDepositFunds:
    def test_deposit_credits_balance_once_per_hash(self, uow_factory, clock, make_user) -> None:
        user = make_user(balance="5")
        use_case = DepositFundsUseCase(uow_factory, clock=clock)

        result = use_case.execute(
            DepositFundsCommand(wallet_address=user.wallet_address, amount=Decimal("20"), tx_hash="0xabc")
        )
        assert result.balance == Decimal("25.00")
        assert result.transaction.type is TransactionType.DEPOSIT
        assert result.transaction.amount == Decimal("20.00")

        with pytest.raises(DuplicateDepositError):
            use_case.execute(
                DepositFundsCommand(wallet_address=user.wallet_address, amount=Decimal("20"), tx_hash="0xabc")
            )

    def test_duplicate_check_runs_under_user_lock(self, session_factory, clock, make_user) -> None:
        user = make_user()
        calls = []

        DepositFundsUseCase(lambda: RecordingUnitOfWork(session_factory, calls), clock=clock).execute(
            DepositFundsCommand(wallet_address=user.wallet_address, amount=Decimal("1"), tx_hash="0xbeef")
        )

        assert calls == [("user", user.id), ("tx_hash", "0xbeef")]

    def test_sub_cent_amount_rejected(self, uow_factory, clock, make_user, get_user) -> None:
        user = make_user(balance="5")
        with pytest.raises(InvalidAmountError):
            DepositFundsUseCase(uow_factory, clock=clock).execute(
                DepositFundsCommand(wallet_address=user.wallet_address, amount=Decimal("1.005"))
            )
        assert get_user(user.id).balance == Decimal("5.00")


# ══════════════════════════════════════════════════════════════════════
# Purchase engine
# ══════════════════════════════════════════════════════════════════════


class TestBuyLot:
    """Purchase properties: debit equality, pricing, FIFO and match cadence."""

    def test_accepted_purchase_debits_exact_price(self, uow_factory, clock, make_user, get_user) -> None:
        user = make_user(balance="100", package_level=2)

        result = _buy(uow_factory, clock, user.id, lot_type=3)

        assert result.lot.buy_price == Decimal("45.00")
        assert result.lot.sell_price == sell_price_for(Decimal("45.00"))
        assert result.lot.package_level == 2
        stored = get_user(user.id)
        assert stored.balance == Decimal("55.00")
        assert stored.daily_buy_amount == Decimal("45.00")
        assert stored.total_lots_bought == 1
        assert stored.consecutive_trade_days == 1
        assert _pool(uow_factory) == Decimal("2.25")

    def test_rejected_purchase_changes_nothing(self, uow_factory, clock, make_user, get_user) -> None:
        user = make_user(balance="9.99", package_level=1)

        with pytest.raises(InsufficientBalanceError):
            _buy(uow_factory, clock, user.id)

        stored = get_user(user.id)
        assert stored.balance == Decimal("9.99")
        assert stored.total_lots_bought == 0
        assert _pool(uow_factory) == Decimal("0.00")
        assert ListUserLotsUseCase(uow_factory).execute(user.id) == []

    def test_five_purchase_scenario(self, uow_factory, clock, make_user, get_user) -> None:
        """Level 1, $100: buys 2 and 4 each sell one of the user's own lots for $13."""
        user = make_user(balance="100", package_level=1)

        results = [_buy(uow_factory, clock, user.id) for _ in range(5)]

        assert [r.sold_lot is not None for r in results] == [False, True, False, True, False]
        assert results[1].paid_to_buyer
        assert results[1].sold_lot.id == results[0].lot.id
        assert results[1].balance == Decimal("93.00")  # 100 - 20 + 13

        stored = get_user(user.id)
        assert stored.daily_buy_amount == Decimal("50.00")
        assert stored.total_lots_bought == 5
        assert stored.balance == Decimal("76.00")  # 100 - 50 + 2 * 13
        assert _pool(uow_factory) == Decimal("2.50")

        rewards = [
            t for t in ListUserTransactionsUseCase(uow_factory).execute(user.id)
            if t.type is TransactionType.SELL_REWARD
        ]
        assert [t.amount for t in rewards] == [Decimal("13.00"), Decimal("13.00")]

    def test_fifo_order_and_floor_half_matches(self, uow_factory, clock, make_user, get_user) -> None:
        """Across N type-1 buys exactly N // 2 lots sell, oldest first."""
        users = [make_user(balance="100", package_level=1) for _ in range(3)]
        created = []
        for i in range(7):
            clock.advance(minutes=1)
            created.append(_buy(uow_factory, clock, users[i % 3].id).lot)

        lots = [lot for u in users for lot in ListUserLotsUseCase(uow_factory).execute(u.id)]
        sold = sorted((lot for lot in lots if lot.status is LotStatus.SOLD), key=lambda lot: lot.sold_at)
        assert len(sold) == 7 // 2
        assert [lot.id for lot in sold] == [lot.id for lot in created[:3]]

        # User 0 bought three lots and had only the first one sold.
        assert get_user(users[0].id).balance == Decimal("83.00")

    def test_other_lot_types_never_match(self, uow_factory, clock, make_user) -> None:
        user = make_user(balance="200", package_level=1)
        for _ in range(4):
            assert _buy(uow_factory, clock, user.id, lot_type=2).sold_lot is None

        counts = GetQueueCountsUseCase(uow_factory).execute()
        assert counts[2].active == 4
        assert counts[1].active == 0 and counts[1].sold == 0

    def test_daily_limit_resets_on_new_day(self, uow_factory, clock, make_user, get_user) -> None:
        user = make_user(balance="1000", package_level=1)
        for _ in range(6):
            _buy(uow_factory, clock, user.id, lot_type=4)  # 6 x 33.75 = 202.50

        with pytest.raises(DailyLimitExceededError):
            _buy(uow_factory, clock, user.id, lot_type=4)

        clock.advance(days=1)
        _buy(uow_factory, clock, user.id, lot_type=4)

        stored = get_user(user.id)
        assert stored.daily_buy_amount == Decimal("33.75")
        assert stored.consecutive_trade_days == 2

    def test_failure_after_debit_rolls_back_everything(self, uow_factory, clock, make_user, get_user) -> None:
        """A purchase that fails at the match step leaves no partial writes."""
        user = make_user(balance="100", package_level=1)
        first = _buy(uow_factory, clock, user.id)

        with patch.object(
            SqlAlchemyLotRepository, "pop_oldest_active", side_effect=RuntimeError("storage lost")
        ):
            with pytest.raises(RuntimeError):
                _buy(uow_factory, clock, user.id)

        stored = get_user(user.id)
        assert stored.balance == Decimal("90.00")
        assert stored.total_lots_bought == 1
        assert stored.daily_buy_amount == Decimal("10.00")
        with uow_factory() as uow:
            state = uow.global_state.get()
        assert (state.total_lot1_buys, state.autofill_pool) == (1, Decimal("0.50"))
        assert [lot.id for lot in ListUserLotsUseCase(uow_factory).execute(user.id)] == [first.lot.id]
        assert len(ListUserTransactionsUseCase(uow_factory).execute(user.id)) == 1

    def test_locks_global_state_before_any_user(self, session_factory, uow_factory, clock, make_user) -> None:
        seller = make_user(balance="100", package_level=1)
        buyer = make_user(balance="100", package_level=1)
        _buy(uow_factory, clock, seller.id)
        calls = []

        result = _buy(lambda: RecordingUnitOfWork(session_factory, calls), clock, buyer.id)

        assert result.sold_lot is not None
        assert calls == [("global_state",), ("user", buyer.id), ("user", seller.id)]


# ══════════════════════════════════════════════════════════════════════
# Upgrades and referral gate
# ══════════════════════════════════════════════════════════════════════


class TestUpgradePackage:
    def test_upgrade_charges_activation_and_resets_cycle(self, uow_factory, clock, make_user, get_user) -> None:
        user = make_user(balance="100", package_level=1, total_lots_bought=230)

        with pytest.raises(ReferralRequiredError):
            _buy(uow_factory, clock, user.id)

        result = UpgradePackageUseCase(uow_factory, clock=clock).execute(
            UpgradePackageCommand(user_id=user.id)
        )
        assert result.level == 2
        assert result.balance == Decimal("50.00")
        assert get_user(user.id).total_lots_bought == 0

        # The new cycle count no longer trips the referral gate.
        assert _buy(uow_factory, clock, user.id).lot.buy_price == Decimal("20.00")

    def test_activation_from_level_zero(self, uow_factory, clock, make_user) -> None:
        user = make_user(balance="20")
        result = UpgradePackageUseCase(uow_factory, clock=clock).execute(
            UpgradePackageCommand(user_id=user.id)
        )
        assert (result.level, result.balance) == (1, Decimal("0.00"))

    def test_top_level_and_balance_checks(self, uow_factory, clock, make_user) -> None:
        use_case = UpgradePackageUseCase(uow_factory, clock=clock)
        with pytest.raises(MaxLevelReachedError):
            use_case.execute(UpgradePackageCommand(user_id=make_user(balance="9999", package_level=12).id))
        with pytest.raises(InsufficientBalanceError):
            use_case.execute(UpgradePackageCommand(user_id=make_user(balance="49", package_level=1).id))


# ══════════════════════════════════════════════════════════════════════
# Withdrawals
# ══════════════════════════════════════════════════════════════════════


class TestWithdrawals:
    def _request(self, uow_factory, clock, user_id: int, amount: str = "30"):
        return RequestWithdrawalUseCase(uow_factory, clock=clock).execute(
            RequestWithdrawalCommand(user_id=user_id, amount=Decimal(amount), address=wallet(99))
        )

    def test_request_debits_and_files_pending(self, uow_factory, clock, make_user, get_user) -> None:
        user = make_user(balance="100", consecutive_trade_days=2)

        tx = self._request(uow_factory, clock, user.id)

        assert tx.status is TransactionStatus.PENDING
        assert tx.amount == Decimal("-30.00")
        assert get_user(user.id).balance == Decimal("70.00")
        assert [t.id for t in ListPendingWithdrawalsUseCase(uow_factory).execute()] == [tx.id]

    def test_cooldown_enforced(self, uow_factory, clock, make_user) -> None:
        user = make_user(balance="100", consecutive_trade_days=1)
        with pytest.raises(WithdrawalCooldownError):
            self._request(uow_factory, clock, user.id)

    def test_insufficient_balance(self, uow_factory, clock, make_user) -> None:
        user = make_user(balance="10", consecutive_trade_days=5)
        with pytest.raises(InsufficientBalanceError):
            self._request(uow_factory, clock, user.id)

    def test_reject_refunds_and_cannot_be_approved_after(self, uow_factory, clock, make_user, get_user) -> None:
        user = make_user(balance="100", consecutive_trade_days=2)
        tx = self._request(uow_factory, clock, user.id)
        review = ReviewWithdrawalUseCase(uow_factory)

        rejected = review.execute(ReviewWithdrawalCommand(transaction_id=tx.id, approve=False))
        assert rejected.status is TransactionStatus.REJECTED
        assert get_user(user.id).balance == Decimal("100.00")

        with pytest.raises(WithdrawalNotPendingError):
            review.execute(ReviewWithdrawalCommand(transaction_id=tx.id, approve=True))
        assert get_user(user.id).balance == Decimal("100.00")

    def test_approve_leaves_balance_unchanged(self, uow_factory, clock, make_user, get_user) -> None:
        user = make_user(balance="100", consecutive_trade_days=2)
        tx = self._request(uow_factory, clock, user.id)

        approved = ReviewWithdrawalUseCase(uow_factory).execute(
            ReviewWithdrawalCommand(transaction_id=tx.id, approve=True)
        )
        assert approved.status is TransactionStatus.COMPLETED
        assert get_user(user.id).balance == Decimal("70.00")
        assert ListPendingWithdrawalsUseCase(uow_factory).execute() == []

    def test_sub_cent_amount_rejected_not_rounded(self, uow_factory, clock, make_user, get_user) -> None:
        user = make_user(balance="100", consecutive_trade_days=2)
        with pytest.raises(InvalidAmountError):
            self._request(uow_factory, clock, user.id, amount="0.005")
        assert get_user(user.id).balance == Decimal("100.00")
        assert ListPendingWithdrawalsUseCase(uow_factory).execute() == []


# ══════════════════════════════════════════════════════════════════════
# Autofill
# ══════════════════════════════════════════════════════════════════════


class TestDistributeAutofill:
    def test_pool_split_among_qualified_users(self, uow_factory, clock, make_user, get_user) -> None:
        buyer = make_user(balance="200", package_level=1)
        for _ in range(2):
            _buy(uow_factory, clock, buyer.id, lot_type=4)  # 2 x 1.69 into the pool
        qualified = [make_user(direct_referrals=5), make_user(direct_referrals=7)]
        make_user(direct_referrals=4)

        result = DistributeAutofillUseCase(uow_factory, clock=clock).execute()

        assert result.amount == Decimal("3.38")
        assert result.recipients_count == 2
        assert [get_user(u.id).upgrade_package_wallet for u in qualified] == [
            Decimal("1.69"),
            Decimal("1.69"),
        ]
        assert _pool(uow_factory) == Decimal("0.00")

    def test_empty_pool_rejected(self, uow_factory, clock, make_user) -> None:
        make_user(direct_referrals=5)
        with pytest.raises(AutofillPoolEmptyError):
            DistributeAutofillUseCase(uow_factory, clock=clock).execute()

    def test_no_recipients_keeps_pool(self, uow_factory, clock, make_user) -> None:
        buyer = make_user(balance="100", package_level=1)
        _buy(uow_factory, clock, buyer.id)
        with pytest.raises(NoEligibleRecipientsError):
            DistributeAutofillUseCase(uow_factory, clock=clock).execute()
        assert _pool(uow_factory) == Decimal("0.50")

    def test_locks_global_state_before_recipients(self, session_factory, uow_factory, clock, make_user) -> None:
        buyer = make_user(balance="100", package_level=1)
        _buy(uow_factory, clock, buyer.id, lot_type=2)
        make_user(direct_referrals=5)
        calls = []

        DistributeAutofillUseCase(lambda: RecordingUnitOfWork(session_factory, calls), clock=clock).execute()

        assert calls == [("global_state",), ("users", 5)]


# ══════════════════════════════════════════════════════════════════════
# Admin maintenance
# ══════════════════════════════════════════════════════════════════════


class TestAdminUseCases:
    def test_update_user_counters(self, uow_factory, make_user) -> None:
        user = make_user(balance="10")
        updated = UpdateUserUseCase(uow_factory).execute(
            UpdateUserCommand(user_id=user.id, package_level=3, direct_referrals=6)
        )
        assert (updated.package_level, updated.direct_referrals) == (3, 6)
        assert updated.balance == Decimal("10.00")

        with pytest.raises(ValidationError):
            UpdateUserUseCase(uow_factory).execute(UpdateUserCommand(user_id=user.id, package_level=13))

    def test_config_update_is_versioned_and_notifies(self, uow_factory, clock, make_user) -> None:
        seen = []
        use_case = UpdateSystemConfigUseCase(uow_factory, on_updated=seen.append)

        updated = use_case.execute(
            UpdateSystemConfigCommand(changes={"max_trades_before_referral": 2}, expected_version=1)
        )
        assert updated.version == 2
        assert seen == [updated]

        with pytest.raises(StaleConfigError):
            use_case.execute(
                UpdateSystemConfigCommand(changes={"referral_interval": 5}, expected_version=1)
            )

        # Purchases read the new rules in their own transaction.
        user = make_user(balance="100", package_level=1)
        _buy(uow_factory, clock, user.id)
        _buy(uow_factory, clock, user.id)
        with pytest.raises(ReferralRequiredError):
            _buy(uow_factory, clock, user.id)

    def test_account_summary(self, uow_factory, clock, make_user) -> None:
        user = make_user(balance="100", package_level=1)
        _buy(uow_factory, clock, user.id, lot_type=2)

        summary = GetAccountUseCase(uow_factory, clock=clock).execute(user.id)
        assert summary.daily_limit == Decimal("225.00")
        assert summary.daily_remaining == Decimal("210.00")
        assert summary.required_referrals == 0

        clock.advance(days=1)
        assert GetAccountUseCase(uow_factory, clock=clock).execute(user.id).daily_remaining == Decimal("225.00")


# ══════════════════════════════════════════════════════════════════════
# Conflict retries
# ══════════════════════════════════════════════════════════════════════


class TestConflictRetry:
    def test_conflict_is_retried_then_succeeds(self, uow_factory, clock, make_user, get_user) -> None:
        user = make_user(balance="100", package_level=1)
        calls = {"n": 0}

        def flaky_factory():
            calls["n"] += 1
            if calls["n"] == 1:
                raise ConflictError("deadlock detected")
            return uow_factory()

        with patch("lotqueue.shared.retry.time.sleep") as sleep:
            BuyLotUseCase(flaky_factory, clock=clock).execute(BuyLotCommand(user_id=user.id, lot_type=1))

        assert sleep.call_count == 1
        assert get_user(user.id).balance == Decimal("90.00")

    def test_conflict_surfaces_after_max_retries(self, clock) -> None:
        factory = MagicMock(side_effect=ConflictError("serialization failure"))

        with patch("lotqueue.shared.retry.time.sleep"):
            with pytest.raises(ConflictError):
                BuyLotUseCase(factory, clock=clock).execute(BuyLotCommand(user_id=1, lot_type=1))

        assert factory.call_count == 4
