"""
리워드 이벤트 리포지토리

예산 차감은 조건부 UPDATE 한 문장으로 처리합니다. WHERE 절이 잔여 예산과
활성 상태를 함께 확인하므로, 동시에 들어온 수령 요청 중 예산이 허락하는 만큼만
성공하고 나머지는 0 행 갱신으로 끝납니다.
"""

import uuid
from typing import List, Optional

from sqlalchemy import case, delete, false, func, select, true, update
from sqlalchemy.orm import Session

from ledgerapi.models.rewards import RewardClaim, RewardEvent
from ledgerapi.schemas.rewards import RewardEventResponse
from ledgerapi.repositories.base import BaseRepository


class RewardEventRepository(BaseRepository[RewardEvent, RewardEventResponse]):
    def __init__(self, db: Session):
        super().__init__(RewardEvent, RewardEventResponse, db)

    def list_events(self) -> List[RewardEventResponse]:
        rows = self.db.execute(
            select(RewardEvent).order_by(RewardEvent.created_at.desc())
        ).scalars()
        return [self._to_schema(event) for event in rows]

    def committed_budget(self) -> int:
        """활성 이벤트들의 잔여 예산 합계 (트레저리 약정액)"""
        total = self.db.execute(
            select(func.coalesce(func.sum(RewardEvent.remaining_budget), 0)).where(
                RewardEvent.is_active.is_(True)
            )
        ).scalar_one()
        return int(total)

    def consume_budget(self, event_id: uuid.UUID) -> bool:
        """
        reward_amount 만큼 예산을 차감하고, 남은 예산이 1회 지급분보다 작아지면
        같은 문장에서 비활성화합니다.

        Returns:
            bool: 갱신된 행이 있으면 True (예산 확보 성공)
        """
        stmt = (
            update(RewardEvent)
            .where(
                RewardEvent.id == event_id,
                RewardEvent.is_active.is_(True),
                RewardEvent.remaining_budget >= RewardEvent.reward_amount,
            )
            .values(
                remaining_budget=RewardEvent.remaining_budget - RewardEvent.reward_amount,
                is_active=case(
                    (
                        RewardEvent.remaining_budget - RewardEvent.reward_amount
                        < RewardEvent.reward_amount,
                        false(),
                    ),
                    else_=true(),
                ),
            )
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    def has_claim(self, event_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        return (
            self.db.execute(
                select(RewardClaim.id).where(
                    RewardClaim.event_id == event_id, RewardClaim.user_id == user_id
                )
            ).first()
            is not None
        )

    def add_claim(self, event_id: uuid.UUID, user_id: uuid.UUID) -> RewardClaim:
        """flush 시 (event_id, user_id) 유니크 위반이면 IntegrityError"""
        claim = RewardClaim(id=uuid.uuid4(), event_id=event_id, user_id=user_id)
        self.db.add(claim)
        self.db.flush()
        return claim

    def count_claims(self, event_id: uuid.UUID) -> int:
        return int(
            self.db.execute(
                select(func.count(RewardClaim.id)).where(RewardClaim.event_id == event_id)
            ).scalar_one()
        )

    def delete_event(self, event_id: uuid.UUID, commit: bool = True) -> bool:
        """이벤트와 수령 기록을 함께 삭제 (FK cascade 를 지원하지 않는 DB 포함)"""
        event: Optional[RewardEvent] = self.get_model(event_id)
        if event is None:
            return False
        self.db.execute(delete(RewardClaim).where(RewardClaim.event_id == event_id))
        self.db.delete(event)
        self._finish(commit)
        return True
