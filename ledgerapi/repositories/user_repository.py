from typing import Dict

from sqlalchemy import func
from sqlalchemy.orm import Session

from ledgerapi.models.ledger import Wallet
from ledgerapi.models.user import User as UserModel
from ledgerapi.schemas.user import User as UserSchema
from ledgerapi.repositories.base import BaseRepository


class UserRepository(BaseRepository[UserModel, UserSchema]):
    """사용자 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(UserModel, UserSchema, db)

    def count_wallet_holders_by_role(self) -> Dict[str, int]:
        """지갑을 가진 활성 사용자 수를 역할별로 집계 (학기 발행량 계산용)"""
        rows = (
            self.db.query(self.model_class.role, func.count(self.model_class.id))
            .join(Wallet, Wallet.owner_id == self.model_class.id)
            .filter(self.model_class.is_active.is_(True))
            .group_by(self.model_class.role)
            .all()
        )
        return {str(role): int(count) for role, count in rows}
