"""
리워드 이벤트 API 라우터

- GET /rewards/events: 이벤트 목록
- POST /rewards/events: 이벤트 생성 (관리자)
- PATCH /rewards/events/{event_id}/status: 활성/비활성 전환 (관리자)
- DELETE /rewards/events/{event_id}: 삭제 (관리자)
- GET /rewards/events/{event_id}/ticket: QR 클레임 티켓 발급 (관리자)
- POST /rewards/claim: 리워드 수령
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, Path, status

from ledgerapi.core.security import get_current_user, require_admin
from ledgerapi.deps import get_reward_event_service
from ledgerapi.schemas.rewards import (
    ClaimTicketResponse,
    DeleteResultResponse,
    RewardClaimRequest,
    RewardClaimResponse,
    RewardEventCreateRequest,
    RewardEventResponse,
    RewardEventStatusRequest,
    RewardEventStatusResponse,
)
from ledgerapi.schemas.user import User as UserSchema
from ledgerapi.services.reward_event_service import RewardEventService

router = APIRouter(prefix="/rewards", tags=["rewards"])


@router.get("/events", response_model=List[RewardEventResponse])
def list_events(
    current_user: UserSchema = Depends(get_current_user),
    reward_service: RewardEventService = Depends(get_reward_event_service),
) -> List[RewardEventResponse]:
    return reward_service.list_events()


@router.post(
    "/events", response_model=RewardEventResponse, status_code=status.HTTP_201_CREATED
)
def create_event(
    request: RewardEventCreateRequest,
    _: UserSchema = Depends(require_admin),
    reward_service: RewardEventService = Depends(get_reward_event_service),
) -> RewardEventResponse:
    """이벤트 생성 - 총 예산은 트레저리 순가용액 이하"""
    return reward_service.create_event(
        name=request.name,
        reward_amount=request.reward_amount,
        total_budget=request.total_budget,
        expires_at=request.expires_at,
        refresh_rate_seconds=request.qr_refresh_rate,
        description=request.description,
    )


@router.patch("/events/{event_id}/status", response_model=RewardEventStatusResponse)
def toggle_event(
    request: RewardEventStatusRequest,
    event_id: uuid.UUID = Path(..., description="이벤트 ID"),
    _: UserSchema = Depends(require_admin),
    reward_service: RewardEventService = Depends(get_reward_event_service),
) -> RewardEventStatusResponse:
    return reward_service.toggle_event(event_id, request.is_active)


@router.delete("/events/{event_id}", response_model=DeleteResultResponse)
def delete_event(
    event_id: uuid.UUID = Path(..., description="이벤트 ID"),
    _: UserSchema = Depends(require_admin),
    reward_service: RewardEventService = Depends(get_reward_event_service),
) -> DeleteResultResponse:
    reward_service.delete_event(event_id)
    return DeleteResultResponse(success=True, message="Event deleted")


@router.get("/events/{event_id}/ticket", response_model=ClaimTicketResponse)
def issue_ticket(
    event_id: uuid.UUID = Path(..., description="이벤트 ID"),
    _: UserSchema = Depends(require_admin),
    reward_service: RewardEventService = Depends(get_reward_event_service),
) -> ClaimTicketResponse:
    """QR 화면이 qr_refresh_rate 주기로 호출하여 새 티켓을 받습니다."""
    return reward_service.issue_claim_ticket(event_id)


@router.post("/claim", response_model=RewardClaimResponse)
def claim_reward(
    request: RewardClaimRequest,
    current_user: UserSchema = Depends(get_current_user),
    reward_service: RewardEventService = Depends(get_reward_event_service),
) -> RewardClaimResponse:
    return reward_service.claim_reward(request.event_id, current_user.id, request.token)
