import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class RewardEventCreateRequest(BaseModel):
    """리워드 이벤트 생성 요청 (관리자용)"""

    name: str = Field(..., min_length=1, max_length=255, description="이벤트 이름")
    description: Optional[str] = Field(None, description="설명")
    reward_amount: int = Field(..., gt=0, description="1인당 지급 코인 수")
    total_budget: int = Field(..., gt=0, description="총 예산")
    expires_at: Optional[datetime] = Field(None, description="종료 시각")
    qr_refresh_rate: int = Field(60, gt=0, le=3600, description="QR 갱신 주기 (초)")


class RewardEventStatusRequest(BaseModel):
    is_active: bool = Field(..., description="활성화 여부")


class RewardEventResponse(BaseModel):
    """리워드 이벤트 (secret_key 는 노출하지 않음)"""

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    reward_amount: int
    total_budget: int
    remaining_budget: int
    is_active: bool
    expires_at: Optional[datetime] = None
    qr_refresh_rate: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RewardEventStatusResponse(BaseModel):
    message: str
    event: RewardEventResponse


class ClaimTicketResponse(BaseModel):
    token: str = Field(..., description="서명된 클레임 티켓")
    expires_in: int = Field(..., description="유효 시간 (초)")


class RewardClaimRequest(BaseModel):
    event_id: uuid.UUID = Field(..., description="이벤트 ID")
    token: str = Field(..., min_length=1, description="QR 클레임 티켓")


class RewardClaimResponse(BaseModel):
    success: bool = True
    amount_received: int = Field(..., description="수령한 코인 수")
    was_finalized: bool = Field(..., description="이번 수령으로 이벤트가 종료되었는지 여부")
    message: str


class VaultStatusResponse(BaseModel):
    """트레저리 실잔액 / 이벤트 약정액 / 순가용액"""

    physical: int
    committed: int
    available: int


class DeleteResultResponse(BaseModel):
    success: bool
    message: str

