import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ledgerapi.models.ledger import CoinAction, CoinStatus, TransactionType


class WalletCreateRequest(BaseModel):
    """지갑 발급 요청 (관리자용)"""

    owner_id: uuid.UUID = Field(..., description="소유자 ID")


class WalletResponse(BaseModel):
    """지갑 정보 (잔액은 ACTIVE 코인 개수로 계산된 값)"""

    id: uuid.UUID = Field(..., description="지갑 ID")
    owner_id: uuid.UUID = Field(..., description="소유자 ID")
    currency_symbol: str = Field(..., description="통화 기호")
    balance: int = Field(0, description="ACTIVE 코인 개수")

    class Config:
        from_attributes = True


class CoinResponse(BaseModel):
    id: uuid.UUID
    wallet_id: uuid.UUID
    mint_batch_id: str
    status: CoinStatus
    created_at: datetime

    class Config:
        from_attributes = True


class CoinListResponse(BaseModel):
    total: int = Field(..., description="반환된 코인 수")
    coins: List[CoinResponse] = Field(default_factory=list)


class TransactionResponse(BaseModel):
    """해시 체인 거래 기록"""

    id: uuid.UUID
    sequence: int
    from_wallet_id: Optional[uuid.UUID] = None
    to_wallet_id: Optional[uuid.UUID] = None
    amount: int
    type: TransactionType
    reference_id: Optional[str] = None
    previous_hash: str
    hash: str
    created_at: datetime

    class Config:
        from_attributes = True


class TransactionListResponse(BaseModel):
    transactions: List[TransactionResponse]
    total_count: int
    has_next: bool


class CoinHistoryEntry(BaseModel):
    id: uuid.UUID
    coin_id: uuid.UUID
    transaction_id: uuid.UUID
    from_wallet_id: Optional[uuid.UUID] = None
    to_wallet_id: Optional[uuid.UUID] = None
    action: CoinAction
    reason: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ChainVerificationResponse(BaseModel):
    """체인 정합성 검증 결과"""

    status: str = Field(..., description="검증 상태 (OK, BROKEN)")
    checked: int = Field(..., description="검증한 거래 수")
    broken_at_sequence: Optional[int] = Field(None, description="처음 끊어진 위치")
    reason: Optional[str] = Field(None, description="끊어진 이유")


class SupplyResponse(BaseModel):
    total_supply: int = Field(..., description="전체 ACTIVE 코인 수")
