"""
경제(트레저리) 관리자 API 라우터

관리자용 엔드포인트:
- POST /economy/mint: 트레저리 수동 발행
- POST /economy/semester-mint: 학기 발행
- POST /economy/grant: 트레저리 -> 사용자 지급
- GET/PUT /economy/config: 경제 정책 설정
- GET /economy/vault: 트레저리 실잔액/약정액/가용액
- GET /economy/chain/verify: 해시 체인 검증
- GET /economy/supply: 전체 유통량
"""

from fastapi import APIRouter, Depends

from ledgerapi.core.security import require_admin
from ledgerapi.deps import get_economy_service, get_ledger_service, get_reward_event_service
from ledgerapi.schemas.economy import (
    EconomyConfigResponse,
    EconomyConfigUpdateRequest,
    GrantRequest,
    ManualMintRequest,
    MintResponse,
    SemesterMintRequest,
    SemesterMintResponse,
)
from ledgerapi.schemas.ledger import (
    ChainVerificationResponse,
    SupplyResponse,
    TransactionResponse,
)
from ledgerapi.schemas.rewards import VaultStatusResponse
from ledgerapi.schemas.user import User as UserSchema
from ledgerapi.services.economy_service import EconomyService
from ledgerapi.services.ledger_service import LedgerService
from ledgerapi.services.reward_event_service import RewardEventService

router = APIRouter(prefix="/economy", tags=["economy"])


@router.post("/mint", response_model=MintResponse)
def manual_mint(
    request: ManualMintRequest,
    admin: UserSchema = Depends(require_admin),
    economy: EconomyService = Depends(get_economy_service),
) -> MintResponse:
    return economy.manual_mint(admin.id, request.amount, request.concept)


@router.post("/semester-mint", response_model=SemesterMintResponse)
def semester_mint(
    request: SemesterMintRequest,
    _: UserSchema = Depends(require_admin),
    economy: EconomyService = Depends(get_economy_service),
) -> SemesterMintResponse:
    return economy.trigger_semester_minting(request.semester)


@router.post("/grant", response_model=TransactionResponse)
def grant(
    request: GrantRequest,
    _: UserSchema = Depends(require_admin),
    economy: EconomyService = Depends(get_economy_service),
) -> TransactionResponse:
    return economy.grant(request.owner_id, request.amount, request.reason)


@router.get("/config", response_model=EconomyConfigResponse)
def get_config(
    _: UserSchema = Depends(require_admin),
    economy: EconomyService = Depends(get_economy_service),
) -> EconomyConfigResponse:
    return EconomyConfigResponse(configs=economy.get_config())


@router.put("/config", response_model=EconomyConfigResponse)
def update_config(
    request: EconomyConfigUpdateRequest,
    _: UserSchema = Depends(require_admin),
    economy: EconomyService = Depends(get_economy_service),
) -> EconomyConfigResponse:
    return EconomyConfigResponse(configs=economy.update_config(request.configs))


@router.get("/vault", response_model=VaultStatusResponse)
def vault_status(
    _: UserSchema = Depends(require_admin),
    rewards: RewardEventService = Depends(get_reward_event_service),
) -> VaultStatusResponse:
    return rewards.get_vault_status()


@router.get("/chain/verify", response_model=ChainVerificationResponse)
def verify_chain(
    _: UserSchema = Depends(require_admin),
    ledger: LedgerService = Depends(get_ledger_service),
) -> ChainVerificationResponse:
    return ledger.verify_chain()


@router.get("/supply", response_model=SupplyResponse)
def total_supply(
    _: UserSchema = Depends(require_admin),
    ledger: LedgerService = Depends(get_ledger_service),
) -> SupplyResponse:
    return ledger.get_supply()
