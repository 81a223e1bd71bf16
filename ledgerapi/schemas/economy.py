import uuid
from typing import Dict, Optional

from pydantic import BaseModel, Field


class ManualMintRequest(BaseModel):
    """트레저리 수동 발행 요청"""

    amount: int = Field(..., gt=0, description="발행할 코인 수")
    concept: str = Field("", max_length=255, description="발행 사유")


class SemesterMintRequest(BaseModel):
    semester: str = Field(..., min_length=1, max_length=20, description="학기 (예: 2026-2)")


class GrantRequest(BaseModel):
    """트레저리 -> 사용자 지급"""

    owner_id: uuid.UUID = Field(..., description="받는 사용자 ID")
    amount: int = Field(..., gt=0)
    reason: str = Field(..., min_length=1, max_length=255)


class MintResponse(BaseModel):
    message: str
    minted_amount: int
    target: str = "TREASURY"
    transaction_id: uuid.UUID


class SemesterMintResponse(BaseModel):
    message: str
    total_minted: int
    eligible_users: int
    distributed: int = 0
    transaction_id: Optional[uuid.UUID] = None


class EconomyConfigUpdateRequest(BaseModel):
    configs: Dict[str, str] = Field(..., description="키/값 설정")


class EconomyConfigResponse(BaseModel):
    configs: Dict[str, str]
