import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from ledgerapi.models.base import Base, BaseModel


class RewardEvent(BaseModel):
    """
    리워드 이벤트 - 기간/예산이 제한된 토큰 지급 캠페인

    remaining_budget 은 지급 1건당 reward_amount 만큼만 감소하며 절대 증가하지 않습니다.
    remaining_budget < reward_amount 가 되면 자동으로 비활성화됩니다.
    """

    __tablename__ = "reward_events"
    __table_args__ = (
        CheckConstraint("remaining_budget >= 0", name="ck_reward_events_budget_non_negative"),
        CheckConstraint(
            "remaining_budget <= total_budget", name="ck_reward_events_budget_le_total"
        ),
        CheckConstraint("reward_amount > 0", name="ck_reward_events_reward_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reward_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    total_budget: Mapped[int] = mapped_column(Integer, nullable=False)
    remaining_budget: Mapped[int] = mapped_column(Integer, nullable=False)
    secret_key: Mapped[str] = mapped_column(String(255), nullable=False)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    qr_refresh_rate: Mapped[int] = mapped_column(Integer, nullable=False, default=60)  # seconds


class RewardClaim(Base):
    """(event_id, user_id) 유니크 제약이 중복 수령을 막는 유일한 장치"""

    __tablename__ = "reward_claims"
    __table_args__ = (UniqueConstraint("event_id", "user_id", name="uq_reward_claims_event_user"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("reward_events.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    claimed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
