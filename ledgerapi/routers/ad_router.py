from typing import List

from fastapi import APIRouter, Depends, Query

from ledgerapi.core.security import get_current_user
from ledgerapi.deps import get_ad_service
from ledgerapi.schemas.ads import (
    AdPurchaseRequest,
    AdPurchaseResponse,
    AdvertisingPackageResponse,
    FeaturedProductsResponse,
)
from ledgerapi.schemas.user import User as UserSchema
from ledgerapi.services.ad_service import AdService

router = APIRouter(prefix="/ads", tags=["ads"])


@router.get("/packages", response_model=List[AdvertisingPackageResponse])
def list_packages(ad_service: AdService = Depends(get_ad_service)):
    return ad_service.list_packages()


@router.post("/purchase", response_model=AdPurchaseResponse)
def purchase_package(
    request: AdPurchaseRequest,
    current_user: UserSchema = Depends(get_current_user),
    ad_service: AdService = Depends(get_ad_service),
) -> AdPurchaseResponse:
    """광고 패키지 구매 - 대금은 트레저리로 이동"""
    return ad_service.purchase_package(current_user.id, request.product_id, request.package_id)


@router.get("/featured", response_model=FeaturedProductsResponse)
def featured_products(
    limit: int = Query(5, ge=1, le=20),
    ad_service: AdService = Depends(get_ad_service),
) -> FeaturedProductsResponse:
    return FeaturedProductsResponse(products=ad_service.list_featured(limit=limit))
