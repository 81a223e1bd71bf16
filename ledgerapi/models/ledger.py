"""
코인 원장 데이터 모델

잔액은 어디에도 저장하지 않습니다. 지갑의 잔액은 항상
ACTIVE 상태인 코인 레코드의 개수로 계산됩니다.

- wallets: 소유자(사용자 또는 트레저리)당 하나의 지갑
- coins: 1 단위 가치를 갖는 개별 코인. 이동 = wallet_id 변경
- transactions: 해시 체인으로 연결된 추가 전용(append-only) 거래 로그
- coin_history: 코인별 이동 감사 로그 (거래당 코인당 1행)
"""

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    BigInteger,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from ledgerapi.models.base import Base, BaseModel, utcnow


class CoinStatus(enum.Enum):
    ACTIVE = "ACTIVE"
    SPENT = "SPENT"  # 선언만 되어 있음 (현재 흐름에서는 사용하지 않음)
    BURNED = "BURNED"  # 선언만 되어 있음 (향후 소각 기능)


class TransactionType(str, enum.Enum):
    MINT = "MINT"
    TRANSFER = "TRANSFER"
    PURCHASE = "PURCHASE"
    AD_PURCHASE = "AD_PURCHASE"
    MINT_TREASURY = "MINT_TREASURY"
    MINT_MANUAL = "MINT_MANUAL"
    REFUND = "REFUND"

    @property
    def is_mint(self) -> bool:
        return self in (
            TransactionType.MINT,
            TransactionType.MINT_TREASURY,
            TransactionType.MINT_MANUAL,
        )


class CoinAction(str, enum.Enum):
    MINT = "MINT"
    TRANSFER = "TRANSFER"


GENESIS_HASH = "0" * 64


class Wallet(BaseModel):
    __tablename__ = "wallets"
    __table_args__ = (UniqueConstraint("owner_id", name="uq_wallets_owner"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    currency_symbol: Mapped[str] = mapped_column(String(10), nullable=False, default="PL")

    def __repr__(self):
        return f"<Wallet(id={self.id}, owner_id={self.owner_id})>"


class Coin(Base):
    __tablename__ = "coins"
    __table_args__ = (
        Index("ix_coins_wallet_status", "wallet_id", "status"),
        Index("ix_coins_mint_batch", "mint_batch_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    wallet_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("wallets.id"), nullable=False
    )
    mint_batch_id: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[CoinStatus] = mapped_column(
        Enum(CoinStatus), nullable=False, default=CoinStatus.ACTIVE
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class Transaction(Base):
    """
    해시 체인 거래 로그

    hash = SHA256(previous_hash || canonical_json(hash 를 제외한 필드))
    sequence 는 체인 순서를 나타내며 유니크합니다. 동일한 선행 거래를
    가리키는 두 거래가 동시에 커밋되는 것을 막는 최종 방어선입니다.
    """

    __tablename__ = "transactions"
    __table_args__ = (
        UniqueConstraint("sequence", name="uq_transactions_sequence"),
        Index("ix_transactions_from_wallet", "from_wallet_id"),
        Index("ix_transactions_to_wallet", "to_wallet_id"),
        Index("ix_transactions_reference", "reference_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    sequence: Mapped[int] = mapped_column(BigInteger, nullable=False)
    from_wallet_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("wallets.id"), nullable=True
    )  # 발행(MINT)일 때만 NULL
    to_wallet_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("wallets.id"), nullable=True
    )  # 소각(BURN)일 때만 NULL
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[TransactionType] = mapped_column(Enum(TransactionType), nullable=False)
    reference_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    previous_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class CoinHistory(Base):
    __tablename__ = "coin_history"
    __table_args__ = (
        Index("ix_coin_history_coin", "coin_id"),
        Index("ix_coin_history_transaction", "transaction_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    coin_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("coins.id"), nullable=False)
    transaction_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("transactions.id"), nullable=False
    )
    from_wallet_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    to_wallet_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    action: Mapped[CoinAction] = mapped_column(Enum(CoinAction), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
