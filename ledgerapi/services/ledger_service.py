"""
원장 서비스 - 코인 발행/이동의 유일한 진입점

coins, transactions, coin_history 테이블은 이 서비스만 씁니다.
모든 변경 연산은 commit 인자를 받습니다. 구매/광고/리워드 흐름은
commit=False 로 호출하여 자신의 트랜잭션 안에서 이동을 조합합니다.
"""

import logging
import secrets
import time
import uuid
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledgerapi.config import settings
from ledgerapi.core.exceptions import (
    BaseAPIException,
    ConflictError,
    InsufficientFundsError,
    InternalServerError,
    NotFoundError,
    ValidationError,
)
from ledgerapi.database.session import unit_of_work
from ledgerapi.models.base import utcnow
from ledgerapi.models.ledger import CoinAction, GENESIS_HASH, TransactionType, Wallet
from ledgerapi.repositories.coin_repository import CoinRepository
from ledgerapi.repositories.transaction_repository import TransactionRepository
from ledgerapi.repositories.wallet_repository import WalletRepository
from ledgerapi.schemas.ledger import (
    ChainVerificationResponse,
    CoinHistoryEntry,
    CoinListResponse,
    SupplyResponse,
    TransactionListResponse,
    TransactionResponse,
    WalletResponse,
)
from ledgerapi.utils.hash_chain import hash_transaction

logger = logging.getLogger(__name__)


def _validate_amount(amount) -> int:
    # bool 은 int 의 하위 타입이므로 별도로 거른다
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationError(
            "Amount must be a positive integer", details={"amount": amount}
        )
    return amount


def new_mint_batch_id() -> str:
    return f"MINT_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


class LedgerService:
    """코인 원장 비즈니스 로직을 담당하는 서비스"""

    def __init__(self, db: Session, publisher=None):
        self.db = db
        self.wallet_repo = WalletRepository(db)
        self.coin_repo = CoinRepository(db)
        self.tx_repo = TransactionRepository(db)
        self.publisher = publisher

    # ------------------------------------------------------------------
    # Wallets
    # ------------------------------------------------------------------

    def create_wallet(
        self,
        owner_id: uuid.UUID,
        wallet_id: Optional[uuid.UUID] = None,
        commit: bool = True,
    ) -> WalletResponse:
        """소유자당 하나의 지갑 생성

        Raises:
            ConflictError: 이미 지갑이 있는 소유자
        """
        try:
            with unit_of_work(self.db, commit):
                wallet = self.wallet_repo.create_wallet(
                    owner_id,
                    settings.CURRENCY_SYMBOL,
                    wallet_id=wallet_id,
                    commit=False,
                )
        except IntegrityError as e:
            logger.warning(f"Wallet already exists for owner {owner_id}")
            raise ConflictError(
                "Wallet already exists for this owner", details={"owner_id": str(owner_id)}
            ) from e

        logger.info(f"Created wallet {wallet.id} for owner {owner_id}")
        return WalletResponse(
            id=wallet.id,
            owner_id=wallet.owner_id,
            currency_symbol=wallet.currency_symbol,
            balance=0,
        )

    def _require_wallet(self, wallet_id: uuid.UUID) -> Wallet:
        wallet = self.wallet_repo.get_model(wallet_id)
        if wallet is None:
            raise NotFoundError("Wallet not found", details={"wallet_id": str(wallet_id)})
        return wallet

    def get_wallet(self, wallet_id: uuid.UUID) -> WalletResponse:
        return self.wallet_repo.to_response(self._require_wallet(wallet_id))

    def get_wallet_by_owner(self, owner_id: uuid.UUID) -> WalletResponse:
        wallet = self.wallet_repo.get_by_owner(owner_id)
        if wallet is None:
            raise NotFoundError("Wallet not found", details={"owner_id": str(owner_id)})
        return self.wallet_repo.to_response(wallet)

    def get_wallet_id_by_owner(self, owner_id: uuid.UUID) -> uuid.UUID:
        wallet = self.wallet_repo.get_by_owner(owner_id)
        if wallet is None:
            raise NotFoundError("Wallet not found", details={"owner_id": str(owner_id)})
        return wallet.id

    def get_balance(self, wallet_id: uuid.UUID) -> int:
        """지갑 잔액 = ACTIVE 코인 수"""
        self._require_wallet(wallet_id)
        return self.wallet_repo.balance(wallet_id)

    def treasury_wallet_id(self) -> uuid.UUID:
        return uuid.UUID(settings.TREASURY_WALLET_ID)

    # ------------------------------------------------------------------
    # Read APIs
    # ------------------------------------------------------------------

    def list_coins(self, wallet_id: uuid.UUID, limit: int = 100) -> CoinListResponse:
        self._require_wallet(wallet_id)
        coins = self.coin_repo.list_by_wallet(wallet_id, limit=min(limit, 1000))
        return CoinListResponse(total=len(coins), coins=coins)

    def get_coin_history(self, coin_id: uuid.UUID) -> List[CoinHistoryEntry]:
        """코인의 전체 이동 이력 (발행부터 시간순)"""
        if self.coin_repo.get_model(coin_id) is None:
            raise NotFoundError("Coin not found", details={"coin_id": str(coin_id)})
        return self.coin_repo.history_for_coin(coin_id)

    def get_wallet_transactions(
        self, wallet_id: uuid.UUID, limit: int = 50, offset: int = 0
    ) -> TransactionListResponse:
        if limit > 100:
            limit = 100
        self._require_wallet(wallet_id)
        transactions, total = self.tx_repo.list_for_wallet(wallet_id, limit, offset)
        return TransactionListResponse(
            transactions=transactions,
            total_count=total,
            has_next=offset + len(transactions) < total,
        )

    def get_supply(self) -> SupplyResponse:
        return SupplyResponse(total_supply=self.coin_repo.count_active())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def mint_tokens(
        self,
        to_wallet_id: uuid.UUID,
        amount: int,
        reference_id: Optional[str] = None,
        tx_type: TransactionType = TransactionType.MINT,
        reason: Optional[str] = None,
        mint_batch_id: Optional[str] = None,
        commit: bool = True,
    ) -> TransactionResponse:
        """코인 발행 - 공급량을 늘리는 유일한 연산

        amount 개의 ACTIVE 코인을 하나의 mint_batch_id 로 한 번에 생성하고,
        체인 거래 1건과 코인별 MINT 이력을 남깁니다. 전부 성공하거나 전부 실패합니다.

        Args:
            to_wallet_id: 받는 지갑
            amount: 발행 개수 (양의 정수)
            reference_id: 외부 참조 (예: 학기, 관리자 메모)
            tx_type: MINT / MINT_TREASURY / MINT_MANUAL
            reason: 코인 이력에 남길 사유
            mint_batch_id: 지정하지 않으면 MINT_<ms>_<random>
            commit: False 이면 호출자의 트랜잭션에 합류

        Returns:
            TransactionResponse: 체인에 추가된 거래
        """
        amount = _validate_amount(amount)
        if not tx_type.is_mint:
            raise ValidationError(
                "Mint requires a mint transaction type", details={"type": tx_type.value}
            )
        batch_id = mint_batch_id or new_mint_batch_id()

        try:
            with unit_of_work(self.db, commit):
                self._require_wallet(to_wallet_id)
                coin_ids = self.coin_repo.bulk_mint(to_wallet_id, amount, batch_id)
                tx = self.tx_repo.append(
                    from_wallet_id=None,
                    to_wallet_id=to_wallet_id,
                    amount=amount,
                    tx_type=tx_type,
                    reference_id=reference_id,
                )
                now = utcnow()
                self.coin_repo.add_history(
                    [
                        {
                            "id": uuid.uuid4(),
                            "coin_id": coin_id,
                            "transaction_id": tx.id,
                            "from_wallet_id": None,
                            "to_wallet_id": to_wallet_id,
                            "action": CoinAction.MINT,
                            "reason": reason or settings.MINT_REASON,
                            "created_at": now,
                        }
                        for coin_id in coin_ids
                    ]
                )
                result = TransactionResponse.model_validate(tx)
        except BaseAPIException:
            raise
        except Exception as e:
            logger.error(f"Mint of {amount} to wallet {to_wallet_id} failed: {str(e)}")
            raise InternalServerError("Failed to mint tokens") from e

        logger.info(
            f"Minted {amount} coins into wallet {to_wallet_id} "
            f"(batch={batch_id}, tx={result.id}, seq={result.sequence})"
        )
        if commit:
            self._notify_balance_changed(to_wallet_id, "MINT", result.id)
        return result

    def transfer_tokens(
        self,
        from_wallet_id: uuid.UUID,
        to_wallet_id: uuid.UUID,
        amount: int,
        reference_id: Optional[str] = None,
        tx_type: TransactionType = TransactionType.TRANSFER,
        reason: Optional[str] = None,
        commit: bool = True,
    ) -> TransactionResponse:
        """코인 이동 - 송신 지갑의 코인을 잠그고 소유 지갑을 바꿉니다

        1. 송신 지갑 ACTIVE 코인 amount 개를 잠금 (오래된 순)
        2. 부족하면 InsufficientFundsError, 아무것도 바뀌지 않음
        3. 잠근 코인만 수신 지갑으로 재할당
        4. 체인 거래 추가, 코인별 TRANSFER 이력 기록

        Raises:
            InsufficientFundsError: ACTIVE 코인이 amount 보다 적은 경우
            NotFoundError: 존재하지 않는 지갑
        """
        amount = _validate_amount(amount)
        if tx_type.is_mint:
            raise ValidationError(
                "Transfer cannot use a mint transaction type", details={"type": tx_type.value}
            )
        if from_wallet_id == to_wallet_id:
            raise ValidationError(
                "Sender and receiver wallets must differ",
                details={"wallet_id": str(from_wallet_id)},
            )

        try:
            with unit_of_work(self.db, commit):
                self._require_wallet(from_wallet_id)
                self._require_wallet(to_wallet_id)

                coin_ids = self.coin_repo.lock_active_coins(from_wallet_id, amount)
                if len(coin_ids) < amount:
                    raise InsufficientFundsError(
                        f"Insufficient funds. Available: {len(coin_ids)}, Required: {amount}",
                        details={"available": len(coin_ids), "required": amount},
                    )

                self.coin_repo.reassign(coin_ids, to_wallet_id)
                tx = self.tx_repo.append(
                    from_wallet_id=from_wallet_id,
                    to_wallet_id=to_wallet_id,
                    amount=amount,
                    tx_type=tx_type,
                    reference_id=reference_id,
                )
                now = utcnow()
                self.coin_repo.add_history(
                    [
                        {
                            "id": uuid.uuid4(),
                            "coin_id": coin_id,
                            "transaction_id": tx.id,
                            "from_wallet_id": from_wallet_id,
                            "to_wallet_id": to_wallet_id,
                            "action": CoinAction.TRANSFER,
                            "reason": reason or reference_id or "Transfer",
                            "created_at": now,
                        }
                        for coin_id in coin_ids
                    ]
                )
                result = TransactionResponse.model_validate(tx)
        except BaseAPIException as e:
            logger.info(
                f"Transfer {from_wallet_id} -> {to_wallet_id} ({amount}) rejected: {e.message}"
            )
            raise
        except Exception as e:
            logger.error(
                f"Transfer {from_wallet_id} -> {to_wallet_id} ({amount}) failed: {str(e)}"
            )
            raise InternalServerError("Failed to transfer tokens") from e

        logger.info(
            f"Transferred {amount} coins {from_wallet_id} -> {to_wallet_id} "
            f"(type={tx_type.value}, tx={result.id}, seq={result.sequence})"
        )
        if commit:
            self._notify_balance_changed(from_wallet_id, tx_type.value, result.id)
            self._notify_balance_changed(to_wallet_id, tx_type.value, result.id)
        return result

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def verify_chain(self) -> ChainVerificationResponse:
        """체인을 sequence 순으로 순회하며 첫 번째 끊어진 지점을 보고"""
        expected_previous = GENESIS_HASH
        expected_sequence = 1
        checked = 0

        for tx in self.tx_repo.iter_chain():
            broken_reason = None
            if tx.sequence != expected_sequence:
                broken_reason = f"sequence gap (expected {expected_sequence})"
            elif tx.previous_hash != expected_previous:
                broken_reason = "previous_hash does not match the preceding transaction"
            elif hash_transaction(tx) != tx.hash:
                broken_reason = "stored hash does not match recomputed hash"

            if broken_reason:
                logger.warning(f"Ledger chain broken at sequence {tx.sequence}: {broken_reason}")
                return ChainVerificationResponse(
                    status="BROKEN",
                    checked=checked,
                    broken_at_sequence=tx.sequence,
                    reason=broken_reason,
                )

            expected_previous = tx.hash
            expected_sequence += 1
            checked += 1

        return ChainVerificationResponse(status="OK", checked=checked)

    # ------------------------------------------------------------------

    def _notify_balance_changed(self, wallet_id: uuid.UUID, reason: str, tx_id) -> None:
        if self.publisher is None:
            return
        wallet = self.wallet_repo.get_model(wallet_id)
        if wallet is None or str(wallet.owner_id) == settings.TREASURY_OWNER_ID:
            return
        self.publisher.publish_balance_changed(wallet.owner_id, reason, tx_id)
