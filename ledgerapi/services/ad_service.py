import logging
import math
import uuid
from datetime import timedelta
from typing import List

from sqlalchemy.orm import Session

from ledgerapi.config import settings
from ledgerapi.core.exceptions import (
    BaseAPIException,
    ConflictError,
    InternalServerError,
    NotFoundError,
)
from ledgerapi.database.session import unit_of_work
from ledgerapi.models.base import utcnow
from ledgerapi.models.ledger import TransactionType
from ledgerapi.repositories.ad_repository import AdRepository
from ledgerapi.repositories.product_repository import ProductRepository
from ledgerapi.schemas.ads import (
    AdPurchaseResponse,
    AdvertisingPackageResponse,
    FeaturedProduct,
)
from ledgerapi.services.ledger_service import LedgerService
from ledgerapi.utils.cache_utils import AD_PACKAGES_KEY, FEATURED_ADS_KEY

logger = logging.getLogger(__name__)


class AdService:
    """광고 패키지 구매 서비스 - 대금은 트레저리로 이동"""

    def __init__(self, db: Session, cache=None, publisher=None):
        self.db = db
        self.ad_repo = AdRepository(db)
        self.product_repo = ProductRepository(db)
        self.ledger = LedgerService(db)
        self.cache = cache
        self.publisher = publisher

    def list_packages(self) -> List[AdvertisingPackageResponse]:
        if self.cache is not None:
            cached = self.cache.get(AD_PACKAGES_KEY)
            if cached is not None:
                return [AdvertisingPackageResponse.model_validate(item) for item in cached]

        packages = self.ad_repo.list_packages()
        if self.cache is not None:
            self.cache.set(
                AD_PACKAGES_KEY,
                [package.model_dump(mode="json") for package in packages],
                settings.CACHE_TTL_LONG,
            )
        return packages

    def purchase_package(
        self, user_id: uuid.UUID, product_id: uuid.UUID, package_id: uuid.UUID
    ) -> AdPurchaseResponse:
        """상품 광고 구매

        Raises:
            NotFoundError: 본인 소유 상품이 아니거나 패키지 없음
            ConflictError: 이미 진행 중인 광고가 있음
            InsufficientFundsError: 코인 부족
        """
        try:
            with unit_of_work(self.db):
                # 같은 상품의 동시 광고 구매는 이 잠금에서 직렬화된다
                product = self.product_repo.lock_owned_product(product_id, user_id)
                if product is None:
                    raise NotFoundError(
                        "Product not found or not owned by user",
                        details={"product_id": str(product_id)},
                    )

                now = utcnow()
                if self.ad_repo.get_active_ad(product_id, now) is not None:
                    raise ConflictError("This product already has an active promotion")

                package = self.ad_repo.get_model(package_id)
                if package is None:
                    raise NotFoundError("Package not found", details={"package_id": str(package_id)})

                tx = self.ledger.transfer_tokens(
                    self.ledger.get_wallet_id_by_owner(user_id),
                    self.ledger.treasury_wallet_id(),
                    int(math.ceil(package.price)),
                    reference_id=f"AD:{package.name}:{product_id}",
                    tx_type=TransactionType.AD_PURCHASE,
                    reason=f"Ad package {package.name}",
                    commit=False,
                )

                expires_at = now + timedelta(hours=package.duration_hours)
                self.ad_repo.add_product_ad(product_id, package_id, expires_at)
        except BaseAPIException:
            raise
        except Exception as e:
            logger.error(f"Ad purchase for product {product_id} failed: {str(e)}")
            raise InternalServerError("Failed to purchase advertising package") from e

        if self.cache is not None:
            self.cache.delete(FEATURED_ADS_KEY)
        if self.publisher is not None:
            self.publisher.publish_balance_changed(user_id, "AD_PURCHASE", tx.id)

        logger.info(f"Product {product_id} promoted until {expires_at.isoformat()}")
        return AdPurchaseResponse(
            message="Promotion activated", expires_at=expires_at, transaction_id=tx.id
        )

    def list_featured(self, limit: int = 5) -> List[FeaturedProduct]:
        return [
            FeaturedProduct(
                product_id=product.id,
                name=product.name,
                price=product.price,
                image_url=product.image_url,
                expires_at=expires_at,
            )
            for product, expires_at in self.ad_repo.list_featured(utcnow(), limit)
        ]
