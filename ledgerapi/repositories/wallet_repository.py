import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledgerapi.models.ledger import Coin, CoinStatus, Wallet
from ledgerapi.schemas.ledger import WalletResponse
from ledgerapi.repositories.base import BaseRepository


class WalletRepository(BaseRepository[Wallet, WalletResponse]):
    """지갑 리포지토리 - 잔액은 ACTIVE 코인 수로 계산"""

    def __init__(self, db: Session):
        super().__init__(Wallet, WalletResponse, db)

    def get_by_owner(self, owner_id: uuid.UUID) -> Optional[Wallet]:
        return self.db.execute(
            select(Wallet).where(Wallet.owner_id == owner_id)
        ).scalar_one_or_none()

    def create_wallet(
        self,
        owner_id: uuid.UUID,
        currency_symbol: str,
        wallet_id: Optional[uuid.UUID] = None,
        commit: bool = True,
    ) -> Wallet:
        return self.create(
            commit=commit,
            id=wallet_id or uuid.uuid4(),
            owner_id=owner_id,
            currency_symbol=currency_symbol,
        )

    def balance(self, wallet_id: uuid.UUID) -> int:
        return int(
            self.db.execute(
                select(func.count(Coin.id)).where(
                    Coin.wallet_id == wallet_id, Coin.status == CoinStatus.ACTIVE
                )
            ).scalar_one()
        )

    def to_response(self, wallet: Wallet) -> WalletResponse:
        return WalletResponse(
            id=wallet.id,
            owner_id=wallet.owner_id,
            currency_symbol=wallet.currency_symbol,
            balance=self.balance(wallet.id),
        )
