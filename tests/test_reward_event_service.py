import time
import uuid

import pytest
from sqlalchemy import update

from ledgerapi.core import claim_ticket
from ledgerapi.core.exceptions import (
    AlreadyClaimedError,
    BudgetExhaustedError,
    EventInactiveError,
    InsufficientFundsError,
    InsufficientTreasuryBudgetError,
    NotFoundError,
    TicketExpiredError,
)
from ledgerapi.models.rewards import RewardEvent
from ledgerapi.services.reward_event_service import RewardEventService
from ledgerapi.utils.cache_utils import REWARD_EVENTS_KEY


@pytest.fixture
def reward_service(db_session, cache, publisher):
    return RewardEventService(db_session, cache=cache, publisher=publisher)


@pytest.fixture
def funded_treasury(ledger, treasury_wallet):
    ledger.mint_tokens(treasury_wallet.id, 100)
    return treasury_wallet


def _ticket_for(reward_service, event_id, now=None, ttl=60) -> str:
    event = reward_service.event_repo.get_model(event_id)
    return claim_ticket.sign({"event_id": str(event.id)}, event.secret_key, ttl, now=now)


class TestCreateEvent:
    """이벤트 생성 테스트 - 트레저리 순가용액 검증"""

    def test_create_event_within_vault(self, reward_service, funded_treasury):
        event = reward_service.create_event("Welcome Week", reward_amount=10, total_budget=40)

        assert event.remaining_budget == 40
        assert event.is_active is True
        assert reward_service.get_vault_status().committed == 40
        assert reward_service.get_vault_status().available == 60

    def test_budget_above_net_available_rejected(self, reward_service, funded_treasury):
        # Arrange - 60 은 다른 이벤트에 약정
        reward_service.create_event("Hackathon", reward_amount=10, total_budget=60)

        # Act & Assert
        with pytest.raises(InsufficientTreasuryBudgetError) as exc_info:
            reward_service.create_event("Career Fair", reward_amount=10, total_budget=50)

        assert exc_info.value.details["available"] == 40
        assert len(reward_service.list_events()) == 1

    def test_inactive_events_release_budget(self, reward_service, funded_treasury):
        first = reward_service.create_event("Hackathon", reward_amount=10, total_budget=100)
        reward_service.toggle_event(first.id, False)

        second = reward_service.create_event("Career Fair", reward_amount=10, total_budget=100)

        assert second.total_budget == 100

    def test_secret_key_is_not_exposed(self, reward_service, funded_treasury):
        event = reward_service.create_event("Welcome Week", reward_amount=10, total_budget=10)

        assert "secret_key" not in event.model_dump()


class TestClaimReward:
    """리워드 수령 테스트"""

    def test_claim_moves_reward_from_treasury(
        self, reward_service, funded_treasury, make_user, wallet_of, ledger, publisher
    ):
        # Arrange
        user = make_user()
        event = reward_service.create_event("Welcome Week", reward_amount=10, total_budget=30)
        token = reward_service.issue_claim_ticket(event.id).token

        # Act
        result = reward_service.claim_reward(event.id, user.id, token)

        # Assert
        assert result.success is True
        assert result.amount_received == 10
        assert result.was_finalized is False
        assert ledger.get_balance(wallet_of(user.id).id) == 10
        assert ledger.get_balance(funded_treasury.id) == 90
        assert reward_service.event_repo.get_model(event.id).remaining_budget == 20
        assert reward_service.event_repo.count_claims(event.id) == 1
        publisher.publish_balance_changed.assert_called_once()

    def test_second_claim_by_same_user_rejected(
        self, reward_service, funded_treasury, make_user, wallet_of, ledger
    ):
        user = make_user()
        event = reward_service.create_event("Welcome Week", reward_amount=10, total_budget=30)
        token = reward_service.issue_claim_ticket(event.id).token
        reward_service.claim_reward(event.id, user.id, token)

        with pytest.raises(AlreadyClaimedError):
            reward_service.claim_reward(event.id, user.id, token)

        assert ledger.get_balance(wallet_of(user.id).id) == 10
        assert reward_service.event_repo.get_model(event.id).remaining_budget == 20

    def test_duplicate_claim_caught_by_unique_constraint(
        self, reward_service, funded_treasury, make_user, wallet_of, ledger, monkeypatch
    ):
        # Arrange - 사전 중복 검사를 통과한 동시 요청을 재현
        user = make_user()
        event = reward_service.create_event("Welcome Week", reward_amount=10, total_budget=30)
        token = reward_service.issue_claim_ticket(event.id).token
        reward_service.claim_reward(event.id, user.id, token)
        monkeypatch.setattr(reward_service.event_repo, "has_claim", lambda *args: False)

        # Act
        with pytest.raises(AlreadyClaimedError):
            reward_service.claim_reward(event.id, user.id, token)

        # Assert - 예산 차감과 코인 이동이 모두 롤백
        assert reward_service.event_repo.get_model(event.id).remaining_budget == 20
        assert reward_service.event_repo.count_claims(event.id) == 1
        assert ledger.get_balance(wallet_of(user.id).id) == 10
        assert ledger.get_balance(funded_treasury.id) == 90
        assert ledger.get_supply().total_supply == 100
        assert ledger.verify_chain().status == "OK"

    def test_budget_taken_between_check_and_update(
        self, reward_service, funded_treasury, make_user, wallet_of, ledger, db_session, monkeypatch
    ):
        # Arrange - 사전 검사 이후 다른 수령자가 예산을 가져가 잔여 5 가 된 상황
        user = make_user()
        event = reward_service.create_event("Welcome Week", reward_amount=10, total_budget=10)
        token = reward_service.issue_claim_ticket(event.id).token
        consume_budget = reward_service.event_repo.consume_budget

        def consume_after_competitor(event_id):
            db_session.execute(
                update(RewardEvent)
                .where(RewardEvent.id == event_id)
                .values(remaining_budget=5)
            )
            db_session.commit()
            return consume_budget(event_id)

        monkeypatch.setattr(
            reward_service.event_repo, "consume_budget", consume_after_competitor
        )

        # Act
        with pytest.raises(BudgetExhaustedError):
            reward_service.claim_reward(event.id, user.id, token)

        # Assert - 조건부 UPDATE 가 0행이면 코인은 움직이지 않음
        assert reward_service.event_repo.get_model(event.id).remaining_budget == 5
        assert reward_service.event_repo.count_claims(event.id) == 0
        assert ledger.get_balance(wallet_of(user.id).id) == 0
        assert ledger.get_balance(funded_treasury.id) == 100
        assert ledger.get_supply().total_supply == 100

    def test_expired_ticket_rejected(self, reward_service, funded_treasury, make_user):
        user = make_user()
        event = reward_service.create_event("Welcome Week", reward_amount=10, total_budget=30)
        token = _ticket_for(reward_service, event.id, now=int(time.time()) - 200, ttl=60)

        with pytest.raises(TicketExpiredError) as exc_info:
            reward_service.claim_reward(event.id, user.id, token)

        assert exc_info.value.status_code == 401

    def test_ticket_within_clock_tolerance_accepted(
        self, reward_service, funded_treasury, make_user
    ):
        # exp 가 5초 지났지만 허용 오차(10초) 이내
        user = make_user()
        event = reward_service.create_event("Welcome Week", reward_amount=10, total_budget=30)
        token = _ticket_for(reward_service, event.id, now=int(time.time()) - 65, ttl=60)

        result = reward_service.claim_reward(event.id, user.id, token)

        assert result.amount_received == 10

    def test_ticket_signed_with_other_secret_rejected(
        self, reward_service, funded_treasury, make_user
    ):
        user = make_user()
        event = reward_service.create_event("Welcome Week", reward_amount=10, total_budget=30)
        forged = claim_ticket.sign({"event_id": str(event.id)}, "not-the-secret", 60)

        with pytest.raises(TicketExpiredError):
            reward_service.claim_reward(event.id, user.id, forged)

    def test_ticket_for_other_event_rejected(self, reward_service, funded_treasury, make_user):
        user = make_user()
        event = reward_service.create_event("Welcome Week", reward_amount=10, total_budget=30)
        secret = reward_service.event_repo.get_model(event.id).secret_key
        token = claim_ticket.sign({"event_id": str(uuid.uuid4())}, secret, 60)

        with pytest.raises(TicketExpiredError):
            reward_service.claim_reward(event.id, user.id, token)

    def test_budget_smaller_than_reward(self, reward_service, funded_treasury, make_user, db_session):
        # Arrange - 잔여 예산 5, 지급액 10 인 상태를 직접 구성
        user = make_user()
        event = reward_service.create_event("Leftovers", reward_amount=10, total_budget=10)
        model = db_session.get(RewardEvent, event.id)
        model.remaining_budget = 5
        db_session.commit()
        token = reward_service.issue_claim_ticket(event.id).token

        # Act & Assert
        with pytest.raises(BudgetExhaustedError):
            reward_service.claim_reward(event.id, user.id, token)

    def test_event_finalizes_when_budget_runs_out(self, reward_service, funded_treasury, make_user):
        # Arrange - 예산 25, 지급액 10: 두 번 지급 후 잔여 5 로 자동 종료
        event = reward_service.create_event("Welcome Week", reward_amount=10, total_budget=25)
        token = reward_service.issue_claim_ticket(event.id).token
        first, second, third = make_user("a"), make_user("b"), make_user("c")

        # Act
        first_result = reward_service.claim_reward(event.id, first.id, token)
        second_result = reward_service.claim_reward(event.id, second.id, token)

        # Assert
        assert first_result.was_finalized is False
        assert second_result.was_finalized is True
        stored = reward_service.event_repo.get_model(event.id)
        assert stored.remaining_budget == 5
        assert stored.is_active is False

        with pytest.raises(EventInactiveError):
            reward_service.claim_reward(event.id, third.id, token)

    def test_underfunded_treasury_rolls_back_budget(
        self, reward_service, treasury_wallet, ledger, make_user, db_session
    ):
        # Arrange - 예산 생성 후 트레저리 코인이 빠져나간 상황
        ledger.mint_tokens(treasury_wallet.id, 10)
        event = reward_service.create_event("Welcome Week", reward_amount=10, total_budget=10)
        drain = make_user("drain")
        ledger.transfer_tokens(
            treasury_wallet.id, ledger.get_wallet_id_by_owner(drain.id), 10
        )
        user = make_user()
        token = reward_service.issue_claim_ticket(event.id).token

        # Act
        with pytest.raises(InsufficientFundsError):
            reward_service.claim_reward(event.id, user.id, token)

        # Assert - 예산 차감과 수령 기록 모두 롤백
        stored = db_session.get(RewardEvent, event.id)
        assert stored.remaining_budget == 10
        assert stored.is_active is True
        assert reward_service.event_repo.count_claims(event.id) == 0

    def test_claim_without_wallet(self, reward_service, funded_treasury, make_user):
        user = make_user(with_wallet=False)
        event = reward_service.create_event("Welcome Week", reward_amount=10, total_budget=30)
        token = reward_service.issue_claim_ticket(event.id).token

        with pytest.raises(NotFoundError):
            reward_service.claim_reward(event.id, user.id, token)

        assert reward_service.event_repo.get_model(event.id).remaining_budget == 30


class TestEventAdministration:
    def test_list_events_uses_cache(self, reward_service, funded_treasury, cache):
        reward_service.create_event("Welcome Week", reward_amount=10, total_budget=30)

        first = reward_service.list_events()

        assert REWARD_EVENTS_KEY in cache.store
        assert reward_service.list_events() == first

    def test_create_invalidates_event_list(self, reward_service, funded_treasury, cache):
        reward_service.list_events()
        assert REWARD_EVENTS_KEY in cache.store

        reward_service.create_event("Welcome Week", reward_amount=10, total_budget=30)

        assert REWARD_EVENTS_KEY not in cache.store
        assert len(reward_service.list_events()) == 1

    def test_toggle_event(self, reward_service, funded_treasury):
        event = reward_service.create_event("Welcome Week", reward_amount=10, total_budget=30)

        result = reward_service.toggle_event(event.id, False)

        assert result.event.is_active is False
        assert reward_service.get_vault_status().committed == 0

    def test_inactive_event_has_no_ticket(self, reward_service, funded_treasury):
        event = reward_service.create_event("Welcome Week", reward_amount=10, total_budget=30)
        reward_service.toggle_event(event.id, False)

        with pytest.raises(EventInactiveError):
            reward_service.issue_claim_ticket(event.id)

    def test_delete_event_removes_claims(self, reward_service, funded_treasury, make_user):
        user = make_user()
        event = reward_service.create_event("Welcome Week", reward_amount=10, total_budget=30)
        token = reward_service.issue_claim_ticket(event.id).token
        reward_service.claim_reward(event.id, user.id, token)

        assert reward_service.delete_event(event.id) is True

        assert reward_service.event_repo.get_model(event.id) is None
        assert reward_service.event_repo.count_claims(event.id) == 0

    def test_unknown_event(self, reward_service):
        with pytest.raises(NotFoundError):
            reward_service.delete_event(uuid.uuid4())

        with pytest.raises(NotFoundError):
            reward_service.toggle_event(uuid.uuid4(), True)
