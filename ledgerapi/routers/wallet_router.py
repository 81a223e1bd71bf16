"""
지갑 API 라우터

- GET /wallets/me: 내 지갑과 잔액
- GET /wallets/me/coins: 내 ACTIVE 코인 목록
- GET /wallets/me/transactions: 내 지갑 관련 체인 거래
- GET /wallets/coins/{coin_id}/history: 코인 이동 이력
- POST /wallets: 소유자 지갑 발급 (관리자)
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, Path, Query, status

from ledgerapi.core.security import get_current_user, require_admin
from ledgerapi.deps import get_ledger_service
from ledgerapi.schemas.ledger import (
    CoinHistoryEntry,
    CoinListResponse,
    TransactionListResponse,
    WalletCreateRequest,
    WalletResponse,
)
from ledgerapi.schemas.user import User as UserSchema
from ledgerapi.services.ledger_service import LedgerService

router = APIRouter(prefix="/wallets", tags=["wallets"])


@router.post("", response_model=WalletResponse, status_code=status.HTTP_201_CREATED)
def create_wallet(
    request: WalletCreateRequest,
    _: UserSchema = Depends(require_admin),
    ledger: LedgerService = Depends(get_ledger_service),
) -> WalletResponse:
    """지갑 발급 - 소유자당 하나, 이미 있으면 409"""
    return ledger.create_wallet(request.owner_id)


@router.get("/me", response_model=WalletResponse)
def get_my_wallet(
    current_user: UserSchema = Depends(get_current_user),
    ledger: LedgerService = Depends(get_ledger_service),
) -> WalletResponse:
    """내 지갑 조회 - 잔액은 ACTIVE 코인 수"""
    return ledger.get_wallet_by_owner(current_user.id)


@router.get("/me/coins", response_model=CoinListResponse)
def get_my_coins(
    limit: int = Query(100, ge=1, le=1000, description="최대 개수"),
    current_user: UserSchema = Depends(get_current_user),
    ledger: LedgerService = Depends(get_ledger_service),
) -> CoinListResponse:
    wallet_id = ledger.get_wallet_id_by_owner(current_user.id)
    return ledger.list_coins(wallet_id, limit=limit)


@router.get("/me/transactions", response_model=TransactionListResponse)
def get_my_transactions(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: UserSchema = Depends(get_current_user),
    ledger: LedgerService = Depends(get_ledger_service),
) -> TransactionListResponse:
    wallet_id = ledger.get_wallet_id_by_owner(current_user.id)
    return ledger.get_wallet_transactions(wallet_id, limit=limit, offset=offset)


@router.get("/coins/{coin_id}/history", response_model=List[CoinHistoryEntry])
def get_coin_history(
    coin_id: uuid.UUID = Path(..., description="코인 ID"),
    current_user: UserSchema = Depends(get_current_user),
    ledger: LedgerService = Depends(get_ledger_service),
) -> List[CoinHistoryEntry]:
    return ledger.get_coin_history(coin_id)
