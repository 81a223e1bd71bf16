"""
코인 리포지토리

코인은 개별 레코드이며 이동은 wallet_id 변경으로만 표현됩니다.
선택/잠금/재할당/이력 기록은 모두 호출자의 트랜잭션 안에서 실행되어야 합니다.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func, insert, select, update
from sqlalchemy.orm import Session

from ledgerapi.models.base import utcnow
from ledgerapi.models.ledger import Coin, CoinHistory, CoinStatus
from ledgerapi.schemas.ledger import CoinHistoryEntry, CoinResponse
from ledgerapi.repositories.base import BaseRepository


class CoinRepository(BaseRepository[Coin, CoinResponse]):
    def __init__(self, db: Session):
        super().__init__(Coin, CoinResponse, db)

    def lock_active_coins(self, wallet_id: uuid.UUID, limit: int) -> List[uuid.UUID]:
        """
        송신 지갑의 ACTIVE 코인을 최대 limit 개 잠그고 ID 를 반환

        FOR UPDATE SKIP LOCKED: 다른 트랜잭션이 잡고 있는 코인은 건너뛰므로
        같은 코인이 두 번 선택되는 일은 없습니다. 잠금은 커밋/롤백까지 유지됩니다.
        """
        stmt = (
            select(Coin.id)
            .where(Coin.wallet_id == wallet_id, Coin.status == CoinStatus.ACTIVE)
            .order_by(Coin.created_at, Coin.id)
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        return list(self.db.execute(stmt).scalars().all())

    def reassign(self, coin_ids: Sequence[uuid.UUID], to_wallet_id: uuid.UUID) -> int:
        """잠근 코인의 소유 지갑을 한 번의 UPDATE 로 변경 (상태는 ACTIVE 유지)"""
        if not coin_ids:
            return 0
        result = self.db.execute(
            update(Coin)
            .where(Coin.id.in_(list(coin_ids)))
            .values(wallet_id=to_wallet_id)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def bulk_mint(
        self,
        wallet_id: uuid.UUID,
        amount: int,
        mint_batch_id: str,
        created_at: Optional[datetime] = None,
    ) -> List[uuid.UUID]:
        """amount 개의 ACTIVE 코인을 단일 bulk INSERT 로 생성"""
        created_at = created_at or utcnow()
        coin_ids = [uuid.uuid4() for _ in range(amount)]
        self.db.execute(
            insert(Coin),
            [
                {
                    "id": coin_id,
                    "wallet_id": wallet_id,
                    "mint_batch_id": mint_batch_id,
                    "status": CoinStatus.ACTIVE,
                    "created_at": created_at,
                }
                for coin_id in coin_ids
            ],
        )
        return coin_ids

    def add_history(self, rows: List[Dict[str, Any]]) -> None:
        if rows:
            self.db.execute(insert(CoinHistory), rows)

    def count_active(self, wallet_id: Optional[uuid.UUID] = None) -> int:
        stmt = select(func.count(Coin.id)).where(Coin.status == CoinStatus.ACTIVE)
        if wallet_id is not None:
            stmt = stmt.where(Coin.wallet_id == wallet_id)
        return int(self.db.execute(stmt).scalar_one())

    def list_by_wallet(self, wallet_id: uuid.UUID, limit: int = 100) -> List[CoinResponse]:
        stmt = (
            select(Coin)
            .where(Coin.wallet_id == wallet_id, Coin.status == CoinStatus.ACTIVE)
            .order_by(Coin.created_at, Coin.id)
            .limit(limit)
        )
        return [self._to_schema(coin) for coin in self.db.execute(stmt).scalars()]

    def history_for_coin(self, coin_id: uuid.UUID) -> List[CoinHistoryEntry]:
        stmt = (
            select(CoinHistory)
            .where(CoinHistory.coin_id == coin_id)
            .order_by(CoinHistory.created_at, CoinHistory.id)
        )
        return [
            CoinHistoryEntry.model_validate(row) for row in self.db.execute(stmt).scalars()
        ]

    def count_history_for_transaction(self, transaction_id: uuid.UUID) -> int:
        return int(
            self.db.execute(
                select(func.count(CoinHistory.id)).where(
                    CoinHistory.transaction_id == transaction_id
                )
            ).scalar_one()
        )
