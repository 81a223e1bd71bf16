"""
트레저리 발행/지급 서비스

새 코인은 항상 트레저리로 발행되고, 사용자에게는 지급(grant)이나
리워드 이벤트를 통해 트레저리에서 이동합니다.
"""

import logging
import time
import uuid
from typing import Dict

from sqlalchemy.orm import Session

from ledgerapi.config import settings
from ledgerapi.core.exceptions import ValidationError
from ledgerapi.models.ledger import TransactionType
from ledgerapi.repositories.economy_config_repository import EconomyConfigRepository
from ledgerapi.repositories.user_repository import UserRepository
from ledgerapi.schemas.economy import MintResponse, SemesterMintResponse
from ledgerapi.schemas.ledger import TransactionResponse
from ledgerapi.services.ledger_service import LedgerService
from ledgerapi.utils.cache_utils import ECONOMY_CONFIG_KEY

logger = logging.getLogger(__name__)

ROLE_MINT_PREFIX = "ROLE_MINT_"
DEFAULT_ROLE_MINT_KEY = "ROLE_MINT_ESTUDIANTE"


def role_allowances(configs: Dict[str, str]) -> Dict[str, int]:
    """ROLE_MINT_<ROLE> 설정을 {ROLE: 수량} 으로 변환 (숫자가 아니면 무시)"""
    allowances: Dict[str, int] = {}
    for key, value in configs.items():
        if not key.startswith(ROLE_MINT_PREFIX):
            continue
        try:
            allowances[key[len(ROLE_MINT_PREFIX):].upper()] = int(value)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring non-numeric economy config {key}={value!r}")
    return allowances


class EconomyService:
    """경제 정책과 트레저리 발행을 담당하는 서비스"""

    def __init__(self, db: Session, cache=None, publisher=None):
        self.db = db
        self.config_repo = EconomyConfigRepository(db)
        self.user_repo = UserRepository(db)
        self.ledger = LedgerService(db, publisher=publisher)
        self.cache = cache

    def get_config(self) -> Dict[str, str]:
        if self.cache is not None:
            cached = self.cache.get(ECONOMY_CONFIG_KEY)
            if cached is not None:
                return cached

        configs = self.config_repo.get_all()
        if self.cache is not None:
            self.cache.set(ECONOMY_CONFIG_KEY, configs, settings.CACHE_TTL_LONG)
        return configs

    def update_config(self, configs: Dict[str, str]) -> Dict[str, str]:
        if not configs:
            raise ValidationError("Configs required")
        updated = self.config_repo.upsert_many(configs)
        if self.cache is not None:
            self.cache.delete(ECONOMY_CONFIG_KEY)
        logger.info(f"Economy config updated: {sorted(configs)}")
        return updated

    def trigger_semester_minting(self, semester: str) -> SemesterMintResponse:
        """학기 발행 - 역할별 할당량 합계를 트레저리에 발행

        사용자별 할당량은 ROLE_MINT_<역할> 값이며, 해당 설정이 없으면
        ROLE_MINT_ESTUDIANTE 를 사용합니다. 분배는 정책상 하지 않습니다.
        """
        allowances = role_allowances(self.config_repo.get_all())
        default_allowance = allowances.get(DEFAULT_ROLE_MINT_KEY[len(ROLE_MINT_PREFIX):], 0)

        total_needed = 0
        eligible_users = 0
        for role, count in self.user_repo.count_wallet_holders_by_role().items():
            amount = allowances.get(role.upper(), 0) or default_allowance
            if amount > 0:
                total_needed += amount * count
                eligible_users += count

        logger.info(
            f"Economy plan for semester {semester}: need {total_needed} for {eligible_users} users"
        )
        if total_needed <= 0:
            raise ValidationError(
                "Nothing to mint: no role allowances configured for current users",
                details={"semester": semester},
            )

        batch_id = f"MINT_SEM_{semester}_TREASURY"
        tx = self.ledger.mint_tokens(
            self.ledger.treasury_wallet_id(),
            total_needed,
            reference_id=batch_id,
            tx_type=TransactionType.MINT_TREASURY,
            reason=f"Semester {semester} treasury mint",
            mint_batch_id=batch_id,
        )
        return SemesterMintResponse(
            message="Semester minting completed. Funds stored in Treasury Reserve.",
            total_minted=total_needed,
            eligible_users=eligible_users,
            distributed=0,
            transaction_id=tx.id,
        )

    def manual_mint(self, admin_id: uuid.UUID, amount: int, concept: str = "") -> MintResponse:
        batch_id = f"MINT_MANUAL_{int(time.time() * 1000)}"
        tx = self.ledger.mint_tokens(
            self.ledger.treasury_wallet_id(),
            amount,
            reference_id=concept or batch_id,
            tx_type=TransactionType.MINT_MANUAL,
            reason=f"Manual mint by {admin_id}",
            mint_batch_id=batch_id,
        )
        logger.info(f"Admin {admin_id} minted {amount} into treasury ({concept or batch_id})")
        return MintResponse(
            message="Minting Successful", minted_amount=amount, target="TREASURY", transaction_id=tx.id
        )

    def grant(self, to_owner_id: uuid.UUID, amount: int, reason: str) -> TransactionResponse:
        """트레저리에서 사용자 지갑으로 지급"""
        return self.ledger.transfer_tokens(
            self.ledger.treasury_wallet_id(),
            self.ledger.get_wallet_id_by_owner(to_owner_id),
            amount,
            reference_id=f"GRANT: {reason}",
            reason=reason,
        )
