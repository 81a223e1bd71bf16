import uuid

import pytest
from sqlalchemy import func, select, update

from ledgerapi.config import settings
from ledgerapi.core.exceptions import (
    ConflictError,
    InsufficientFundsError,
    NotFoundError,
    ValidationError,
)
from ledgerapi.models import Coin, CoinAction, Transaction, TransactionType
from ledgerapi.models.ledger import GENESIS_HASH
from scripts.init_db import ensure_treasury_wallet


def _tx_count(db_session) -> int:
    return db_session.execute(select(func.count(Transaction.id))).scalar_one()


class TestWallets:
    """지갑 생성/조회 테스트"""

    def test_create_wallet_starts_empty(self, ledger):
        owner_id = uuid.uuid4()

        wallet = ledger.create_wallet(owner_id)

        assert wallet.owner_id == owner_id
        assert wallet.currency_symbol == "PL"
        assert ledger.get_balance(wallet.id) == 0

    def test_duplicate_owner_rejected(self, ledger):
        owner_id = uuid.uuid4()
        ledger.create_wallet(owner_id)

        with pytest.raises(ConflictError):
            ledger.create_wallet(owner_id)

    def test_unknown_wallet_not_found(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.get_balance(uuid.uuid4())

        with pytest.raises(NotFoundError):
            ledger.get_wallet_by_owner(uuid.uuid4())

    def test_treasury_bootstrap_goes_through_create_wallet(self, db_session, ledger):
        treasury_id = uuid.UUID(settings.TREASURY_WALLET_ID)

        assert ensure_treasury_wallet(db_session) == treasury_id
        assert ensure_treasury_wallet(db_session) == treasury_id

        treasury = ledger.get_wallet_by_owner(uuid.UUID(settings.TREASURY_OWNER_ID))
        assert treasury.id == treasury_id
        assert treasury.balance == 0


class TestMint:
    """발행 테스트"""

    def test_mint_creates_coins_transaction_and_history(self, ledger, treasury_wallet):
        # Act
        tx = ledger.mint_tokens(treasury_wallet.id, 1000)

        # Assert
        assert ledger.get_balance(treasury_wallet.id) == 1000
        assert ledger.get_supply().total_supply == 1000
        assert tx.type == TransactionType.MINT
        assert tx.from_wallet_id is None
        assert tx.amount == 1000
        assert tx.sequence == 1
        assert tx.previous_hash == GENESIS_HASH
        assert ledger.coin_repo.count_history_for_transaction(tx.id) == 1000

    def test_mint_shares_one_batch_id(self, ledger, treasury_wallet, db_session):
        ledger.mint_tokens(treasury_wallet.id, 5, mint_batch_id="MINT_TEST_BATCH")

        batch_ids = set(db_session.execute(select(Coin.mint_batch_id)).scalars())
        assert batch_ids == {"MINT_TEST_BATCH"}

    @pytest.mark.parametrize("amount", [0, -3, True, 2.5])
    def test_mint_rejects_invalid_amount(self, ledger, treasury_wallet, db_session, amount):
        with pytest.raises(ValidationError):
            ledger.mint_tokens(treasury_wallet.id, amount)

        assert _tx_count(db_session) == 0

    def test_mint_to_unknown_wallet_leaves_nothing(self, ledger, db_session):
        with pytest.raises(NotFoundError):
            ledger.mint_tokens(uuid.uuid4(), 10)

        assert ledger.get_supply().total_supply == 0
        assert _tx_count(db_session) == 0

    def test_mint_into_treasury_does_not_notify(self, ledger, treasury_wallet, publisher):
        ledger.mint_tokens(treasury_wallet.id, 10)

        publisher.publish_balance_changed.assert_not_called()


class TestTransfer:
    """이동 테스트 - 보존 법칙과 원자성"""

    def test_transfer_moves_exact_coins_and_conserves_supply(
        self, ledger, treasury_wallet, make_user, wallet_of
    ):
        # Arrange
        user = make_user("alice")
        user_wallet = wallet_of(user.id)
        ledger.mint_tokens(treasury_wallet.id, 100)

        # Act
        tx = ledger.transfer_tokens(treasury_wallet.id, user_wallet.id, 40, reference_id="GIFT")

        # Assert
        assert ledger.get_balance(treasury_wallet.id) == 60
        assert ledger.get_balance(user_wallet.id) == 40
        assert ledger.get_supply().total_supply == 100
        assert tx.type == TransactionType.TRANSFER
        assert tx.sequence == 2
        assert ledger.coin_repo.count_history_for_transaction(tx.id) == 40

    def test_insufficient_funds_changes_nothing(
        self, ledger, treasury_wallet, make_user, wallet_of, db_session
    ):
        # Arrange
        user = make_user("bob")
        user_wallet = wallet_of(user.id)
        ledger.mint_tokens(treasury_wallet.id, 10)
        tx_before = _tx_count(db_session)

        # Act
        with pytest.raises(InsufficientFundsError) as exc_info:
            ledger.transfer_tokens(treasury_wallet.id, user_wallet.id, 11)

        # Assert
        assert exc_info.value.status_code == 402
        assert exc_info.value.details == {"available": 10, "required": 11}
        assert ledger.get_balance(treasury_wallet.id) == 10
        assert ledger.get_balance(user_wallet.id) == 0
        assert _tx_count(db_session) == tx_before

    def test_transfer_to_same_wallet_rejected(self, ledger, treasury_wallet):
        ledger.mint_tokens(treasury_wallet.id, 5)

        with pytest.raises(ValidationError):
            ledger.transfer_tokens(treasury_wallet.id, treasury_wallet.id, 1)

    def test_transfer_from_unknown_wallet(self, ledger, treasury_wallet):
        with pytest.raises(NotFoundError):
            ledger.transfer_tokens(uuid.uuid4(), treasury_wallet.id, 1)

    def test_transfer_rejects_mint_type(self, ledger, treasury_wallet, make_user, wallet_of):
        user = make_user()
        with pytest.raises(ValidationError):
            ledger.transfer_tokens(
                treasury_wallet.id, wallet_of(user.id).id, 1, tx_type=TransactionType.MINT
            )

    def test_commit_false_is_rolled_back_with_caller(
        self, ledger, treasury_wallet, make_user, wallet_of, db_session, publisher
    ):
        # Arrange
        user = make_user()
        user_wallet = wallet_of(user.id)
        ledger.mint_tokens(treasury_wallet.id, 20)

        # Act - 호출자가 트랜잭션을 소유하고 결국 롤백
        ledger.transfer_tokens(treasury_wallet.id, user_wallet.id, 5, commit=False)
        assert ledger.get_balance(user_wallet.id) == 5
        db_session.rollback()

        # Assert
        assert ledger.get_balance(user_wallet.id) == 0
        assert ledger.get_balance(treasury_wallet.id) == 20
        publisher.publish_balance_changed.assert_not_called()

    def test_committed_transfer_notifies_user_not_treasury(
        self, ledger, treasury_wallet, make_user, wallet_of, publisher
    ):
        user = make_user()
        ledger.mint_tokens(treasury_wallet.id, 3)

        tx = ledger.transfer_tokens(treasury_wallet.id, wallet_of(user.id).id, 3)

        publisher.publish_balance_changed.assert_called_once_with(user.id, "TRANSFER", tx.id)

    def test_oldest_coins_move_first(self, ledger, treasury_wallet, make_user, wallet_of):
        # Arrange
        user = make_user()
        user_wallet = wallet_of(user.id)
        ledger.mint_tokens(treasury_wallet.id, 3, mint_batch_id="OLD")
        ledger.mint_tokens(treasury_wallet.id, 3, mint_batch_id="NEW")

        # Act
        ledger.transfer_tokens(treasury_wallet.id, user_wallet.id, 3)

        # Assert
        moved = ledger.list_coins(user_wallet.id)
        assert moved.total == 3
        assert {coin.mint_batch_id for coin in moved.coins} == {"OLD"}


class TestHistoryAndReads:
    def test_coin_history_follows_the_coin(self, ledger, treasury_wallet, make_user, wallet_of):
        user = make_user()
        user_wallet = wallet_of(user.id)
        ledger.mint_tokens(treasury_wallet.id, 1)
        ledger.transfer_tokens(treasury_wallet.id, user_wallet.id, 1, reason="Welcome gift")

        coin = ledger.list_coins(user_wallet.id).coins[0]
        history = ledger.get_coin_history(coin.id)

        assert [entry.action for entry in history] == [CoinAction.MINT, CoinAction.TRANSFER]
        assert history[0].from_wallet_id is None
        assert history[1].from_wallet_id == treasury_wallet.id
        assert history[1].to_wallet_id == user_wallet.id
        assert history[1].reason == "Welcome gift"

    def test_unknown_coin_history(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.get_coin_history(uuid.uuid4())

    def test_wallet_transactions_paginated(self, ledger, treasury_wallet, make_user, wallet_of):
        user = make_user()
        user_wallet = wallet_of(user.id)
        ledger.mint_tokens(treasury_wallet.id, 10)
        for _ in range(3):
            ledger.transfer_tokens(treasury_wallet.id, user_wallet.id, 1)

        page = ledger.get_wallet_transactions(user_wallet.id, limit=2, offset=0)

        assert page.total_count == 3
        assert len(page.transactions) == 2
        assert page.has_next is True
        # 최신 거래가 먼저
        assert page.transactions[0].sequence > page.transactions[1].sequence


class TestChainIntegrity:
    """해시 체인 검증 테스트"""

    def test_chain_links_each_transaction_to_previous(
        self, ledger, treasury_wallet, make_user, wallet_of
    ):
        user = make_user()
        first = ledger.mint_tokens(treasury_wallet.id, 10)
        second = ledger.transfer_tokens(treasury_wallet.id, wallet_of(user.id).id, 4)

        assert second.previous_hash == first.hash
        assert second.sequence == first.sequence + 1

        result = ledger.verify_chain()
        assert result.status == "OK"
        assert result.checked == 2

    def test_empty_chain_is_ok(self, ledger):
        result = ledger.verify_chain()

        assert result.status == "OK"
        assert result.checked == 0

    def test_tampered_amount_breaks_chain(
        self, ledger, treasury_wallet, make_user, wallet_of, db_session
    ):
        # Arrange
        user = make_user()
        ledger.mint_tokens(treasury_wallet.id, 10)
        ledger.transfer_tokens(treasury_wallet.id, wallet_of(user.id).id, 4)
        ledger.transfer_tokens(treasury_wallet.id, wallet_of(user.id).id, 1)

        # Act - 두 번째 거래의 금액을 몰래 변경
        db_session.execute(
            update(Transaction).where(Transaction.sequence == 2).values(amount=400)
        )
        db_session.commit()

        # Assert
        result = ledger.verify_chain()
        assert result.status == "BROKEN"
        assert result.broken_at_sequence == 2
        assert result.checked == 1
