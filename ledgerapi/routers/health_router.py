import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from ledgerapi.database.session import get_db
from ledgerapi.deps import get_cache_service
from ledgerapi.schemas.health import HealthCheckResponse
from ledgerapi.services.cache_service import CacheService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
def health_check(
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
) -> HealthCheckResponse:
    """Health check endpoint (DB 필수, 캐시는 참고용)."""
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check database probe failed: {e}")
        return HealthCheckResponse(status="unhealthy", database=False, error=str(e))

    return HealthCheckResponse(database=True, cache=cache.ping())
