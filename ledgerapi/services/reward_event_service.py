"""
리워드 이벤트 엔진

상태: 생성(활성) -> 수령마다 예산 차감 -> 자동 비활성화
관리자는 활성/비활성 전환과 삭제(수령 기록 포함)를 할 수 있습니다.
"""

import logging
import secrets
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledgerapi.config import settings
from ledgerapi.core import claim_ticket
from ledgerapi.core.exceptions import (
    AlreadyClaimedError,
    BaseAPIException,
    BudgetExhaustedError,
    EventInactiveError,
    InsufficientTreasuryBudgetError,
    InternalServerError,
    NotFoundError,
    TicketExpiredError,
    ValidationError,
)
from ledgerapi.database.session import unit_of_work
from ledgerapi.models.rewards import RewardEvent
from ledgerapi.repositories.reward_event_repository import RewardEventRepository
from ledgerapi.schemas.rewards import (
    ClaimTicketResponse,
    RewardClaimResponse,
    RewardEventResponse,
    RewardEventStatusResponse,
    VaultStatusResponse,
)
from ledgerapi.services.ledger_service import LedgerService
from ledgerapi.utils.cache_utils import REWARD_EVENTS_KEY

logger = logging.getLogger(__name__)


class RewardEventService:
    """리워드 이벤트 생성/수령을 담당하는 서비스"""

    def __init__(self, db: Session, cache=None, publisher=None):
        self.db = db
        self.event_repo = RewardEventRepository(db)
        self.ledger = LedgerService(db)
        self.cache = cache
        self.publisher = publisher

    def _require_event(self, event_id: uuid.UUID) -> RewardEvent:
        event = self.event_repo.get_model(event_id)
        if event is None:
            raise NotFoundError("Reward event not found", details={"event_id": str(event_id)})
        return event

    def _invalidate_events(self) -> None:
        if self.cache is not None:
            self.cache.delete(REWARD_EVENTS_KEY)

    def get_vault_status(self) -> VaultStatusResponse:
        """트레저리 실잔액, 활성 이벤트 약정액, 순가용액"""
        physical = self.ledger.get_balance(self.ledger.treasury_wallet_id())
        committed = self.event_repo.committed_budget()
        return VaultStatusResponse(
            physical=physical, committed=committed, available=physical - committed
        )

    def create_event(
        self,
        name: str,
        reward_amount: int,
        total_budget: int,
        expires_at: Optional[datetime] = None,
        refresh_rate_seconds: int = settings.DEFAULT_QR_REFRESH_RATE,
        description: Optional[str] = None,
    ) -> RewardEventResponse:
        """리워드 이벤트 생성

        총 예산은 트레저리 순가용액(실잔액 - 다른 활성 이벤트 잔여 예산) 이하여야 합니다.

        Raises:
            InsufficientTreasuryBudgetError: 예산이 순가용액을 초과
        """
        if reward_amount <= 0 or total_budget <= 0:
            raise ValidationError("reward_amount and total_budget must be positive")
        if refresh_rate_seconds <= 0:
            raise ValidationError("qr_refresh_rate must be positive")

        try:
            with unit_of_work(self.db):
                vault = self.get_vault_status()
                if total_budget > vault.available:
                    raise InsufficientTreasuryBudgetError(
                        f"Insufficient budget. Vault: {vault.physical}, "
                        f"committed to other events: {vault.committed}, "
                        f"net available: {vault.available} {settings.CURRENCY_SYMBOL}",
                        details=vault.model_dump(),
                    )

                event = self.event_repo.create(
                    commit=False,
                    id=uuid.uuid4(),
                    name=name,
                    description=description,
                    reward_amount=reward_amount,
                    total_budget=total_budget,
                    remaining_budget=total_budget,
                    secret_key=secrets.token_urlsafe(32),
                    expires_at=expires_at,
                    is_active=True,
                    qr_refresh_rate=refresh_rate_seconds,
                )
                result = RewardEventResponse.model_validate(event)
        except BaseAPIException:
            raise
        except Exception as e:
            logger.error(f"Failed to create reward event {name}: {str(e)}")
            raise InternalServerError("Failed to create reward event") from e

        self._invalidate_events()
        logger.info(
            f"Created reward event {result.id} ({name}): reward={reward_amount}, budget={total_budget}"
        )
        return result

    def toggle_event(self, event_id: uuid.UUID, is_active: bool) -> RewardEventStatusResponse:
        event = self.event_repo.update(event_id, is_active=is_active)
        if event is None:
            raise NotFoundError("Reward event not found", details={"event_id": str(event_id)})
        self._invalidate_events()
        logger.info(f"Reward event {event_id} set is_active={is_active}")
        return RewardEventStatusResponse(
            message=(
                "Event reactivated"
                if is_active
                else "Event finished. Remaining budget released to the vault."
            ),
            event=RewardEventResponse.model_validate(event),
        )

    def delete_event(self, event_id: uuid.UUID) -> bool:
        deleted = self.event_repo.delete_event(event_id)
        if not deleted:
            raise NotFoundError("Reward event not found", details={"event_id": str(event_id)})
        self._invalidate_events()
        logger.info(f"Deleted reward event {event_id}")
        return True

    def list_events(self) -> List[RewardEventResponse]:
        """이벤트 목록 (rewards:events 캐시 우선)"""
        if self.cache is not None:
            cached = self.cache.get(REWARD_EVENTS_KEY)
            if cached is not None:
                return [RewardEventResponse.model_validate(item) for item in cached]

        events = self.event_repo.list_events()
        if self.cache is not None:
            self.cache.set(
                REWARD_EVENTS_KEY,
                [event.model_dump(mode="json") for event in events],
                settings.CACHE_TTL_SHORT,
            )
        return events

    def issue_claim_ticket(self, event_id: uuid.UUID) -> ClaimTicketResponse:
        """qr_refresh_rate 초 동안 유효한 회전형 클레임 티켓 발급"""
        event = self._require_event(event_id)
        if not event.is_active:
            raise EventInactiveError()

        expires_in = event.qr_refresh_rate or settings.DEFAULT_QR_REFRESH_RATE
        token = claim_ticket.sign(
            {"event_id": str(event.id)}, event.secret_key, ttl_seconds=expires_in
        )
        return ClaimTicketResponse(token=token, expires_in=expires_in)

    def claim_reward(
        self, event_id: uuid.UUID, user_id: uuid.UUID, token: str
    ) -> RewardClaimResponse:
        """리워드 수령

        1. 이벤트 상태/잔여 예산 확인
        2. 티켓 서명/유효 시간 확인 (허용 오차 포함)
        3. 중복 수령 확인
        4. 하나의 트랜잭션: 조건부 예산 차감 -> 트레저리에서 사용자에게 이동 -> 수령 기록

        Raises:
            EventInactiveError, BudgetExhaustedError, TicketExpiredError,
            AlreadyClaimedError, NotFoundError, InsufficientFundsError
        """
        event = self._require_event(event_id)
        if not event.is_active:
            raise EventInactiveError("This link has expired or the event is inactive")
        if event.remaining_budget < event.reward_amount:
            raise BudgetExhaustedError()

        try:
            payload = claim_ticket.verify(token, event.secret_key)
        except claim_ticket.ClaimTicketError as e:
            logger.info(f"Rejected claim ticket for event {event_id}: {e}")
            raise TicketExpiredError() from e
        if payload.get("event_id") != str(event.id):
            raise TicketExpiredError(details={"reason": "ticket issued for another event"})

        if self.event_repo.has_claim(event.id, user_id):
            raise AlreadyClaimedError()

        user_wallet_id = self.ledger.get_wallet_id_by_owner(user_id)
        reward_amount = event.reward_amount
        event_name = event.name

        try:
            with unit_of_work(self.db):
                if not self.event_repo.consume_budget(event.id):
                    raise BudgetExhaustedError(
                        "Budget ran out just now or the event was deactivated"
                    )

                tx = self.ledger.transfer_tokens(
                    self.ledger.treasury_wallet_id(),
                    user_wallet_id,
                    reward_amount,
                    reference_id=f"EVENT_REWARD: {event_name}",
                    commit=False,
                )

                try:
                    self.event_repo.add_claim(event.id, user_id)
                except IntegrityError as e:
                    raise AlreadyClaimedError() from e

                self.db.refresh(event)
                was_finalized = not event.is_active
        except BaseAPIException:
            raise
        except Exception as e:
            logger.error(f"Reward claim failed for event {event_id}, user {user_id}: {str(e)}")
            raise InternalServerError("Failed to process reward claim") from e

        self._invalidate_events()
        if self.publisher is not None:
            self.publisher.publish_balance_changed(user_id, "EVENT_REWARD", tx.id)

        logger.info(
            f"User {user_id} claimed {reward_amount} from event {event_id} "
            f"(tx={tx.id}, finalized={was_finalized})"
        )
        return RewardClaimResponse(
            amount_received=reward_amount,
            was_finalized=was_finalized,
            message=f"Reward claimed! You received {reward_amount} {settings.CURRENCY_SYMBOL}.",
        )
