from pydantic import BaseModel
from typing import Optional


class BalanceChangedEvent(BaseModel):
    """지갑 잔액 변동 알림 - 배지 재평가 워커가 소비"""

    user_id: str
    reason: str
    transaction_id: Optional[str] = None
