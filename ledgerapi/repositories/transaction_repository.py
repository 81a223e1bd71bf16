"""
거래 리포지토리 - 해시 체인 추가 전용 로그

체인 꼬리(tail) 읽기와 새 거래 추가는 같은 트랜잭션 안에서 직렬화됩니다.
PostgreSQL 에서는 트랜잭션 범위 advisory lock 으로 추가 작업을 한 줄로 세우고,
sequence 유니크 제약이 마지막 방어선 역할을 합니다.
"""

import uuid
from typing import Iterator, List, Optional, Tuple

from sqlalchemy import func, or_, select, text
from sqlalchemy.orm import Session

from ledgerapi.models.base import utcnow
from ledgerapi.models.ledger import GENESIS_HASH, Transaction, TransactionType
from ledgerapi.schemas.ledger import TransactionResponse
from ledgerapi.repositories.base import BaseRepository
from ledgerapi.utils.hash_chain import compute_hash, transaction_fields

# pg_advisory_xact_lock 키 (임의의 고정 64bit 정수)
CHAIN_LOCK_KEY = 7_340_512_001


class TransactionRepository(BaseRepository[Transaction, TransactionResponse]):
    def __init__(self, db: Session):
        super().__init__(Transaction, TransactionResponse, db)

    def _dialect(self) -> str:
        return self.db.get_bind().dialect.name

    def lock_chain(self) -> None:
        """체인 추가 직렬화 (PostgreSQL 전용, 커밋/롤백 시 자동 해제)"""
        if self._dialect() == "postgresql":
            self.db.execute(
                text("SELECT pg_advisory_xact_lock(:key)"), {"key": CHAIN_LOCK_KEY}
            )

    def get_tail(self) -> Optional[Tuple[int, str]]:
        row = self.db.execute(
            select(Transaction.sequence, Transaction.hash)
            .order_by(Transaction.sequence.desc())
            .limit(1)
        ).first()
        return (int(row[0]), row[1]) if row else None

    def append(
        self,
        from_wallet_id: Optional[uuid.UUID],
        to_wallet_id: Optional[uuid.UUID],
        amount: int,
        tx_type: TransactionType,
        reference_id: Optional[str] = None,
    ) -> Transaction:
        """체인 끝에 거래를 추가하고 flush 합니다 (커밋은 호출자 몫)."""
        self.lock_chain()
        tail = self.get_tail()
        sequence, previous_hash = (tail[0] + 1, tail[1]) if tail else (1, GENESIS_HASH)

        tx_id = uuid.uuid4()
        created_at = utcnow()
        fields = transaction_fields(
            tx_id,
            sequence,
            from_wallet_id,
            to_wallet_id,
            amount,
            tx_type,
            reference_id,
            created_at,
        )
        tx = Transaction(
            id=tx_id,
            sequence=sequence,
            from_wallet_id=from_wallet_id,
            to_wallet_id=to_wallet_id,
            amount=amount,
            type=tx_type,
            reference_id=reference_id,
            previous_hash=previous_hash,
            hash=compute_hash(previous_hash, fields),
            created_at=created_at,
        )
        self.db.add(tx)
        self.db.flush()
        return tx

    def iter_chain(self, batch_size: int = 500) -> Iterator[Transaction]:
        """sequence 순서로 전체 체인을 순회"""
        stmt = (
            select(Transaction)
            .order_by(Transaction.sequence)
            .execution_options(yield_per=batch_size)
        )
        for tx in self.db.execute(stmt).scalars():
            yield tx

    def list_for_wallet(
        self, wallet_id: uuid.UUID, limit: int = 50, offset: int = 0
    ) -> Tuple[List[TransactionResponse], int]:
        condition = or_(
            Transaction.from_wallet_id == wallet_id,
            Transaction.to_wallet_id == wallet_id,
        )
        total = int(
            self.db.execute(select(func.count(Transaction.id)).where(condition)).scalar_one()
        )
        rows = self.db.execute(
            select(Transaction)
            .where(condition)
            .order_by(Transaction.sequence.desc())
            .limit(limit)
            .offset(offset)
        ).scalars()
        return [self._to_schema(tx) for tx in rows], total
