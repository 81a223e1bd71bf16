import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledgerapi.models.marketplace import AdvertisingPackage, Product, ProductAd
from ledgerapi.schemas.ads import AdvertisingPackageResponse
from ledgerapi.repositories.base import BaseRepository


class AdRepository(BaseRepository[AdvertisingPackage, AdvertisingPackageResponse]):
    """광고 패키지 / 상품 광고 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(AdvertisingPackage, AdvertisingPackageResponse, db)

    def list_packages(self) -> List[AdvertisingPackageResponse]:
        rows = self.db.execute(
            select(AdvertisingPackage).order_by(AdvertisingPackage.price)
        ).scalars()
        return [self._to_schema(package) for package in rows]

    def get_active_ad(self, product_id: uuid.UUID, now: datetime) -> Optional[ProductAd]:
        return self.db.execute(
            select(ProductAd)
            .where(ProductAd.product_id == product_id, ProductAd.expires_at > now)
            .limit(1)
        ).scalar_one_or_none()

    def add_product_ad(
        self, product_id: uuid.UUID, package_id: uuid.UUID, expires_at: datetime
    ) -> ProductAd:
        ad = ProductAd(
            id=uuid.uuid4(), product_id=product_id, package_id=package_id, expires_at=expires_at
        )
        self.db.add(ad)
        self.db.flush()
        return ad

    def list_featured(self, now: datetime, limit: int = 5) -> List[tuple]:
        """만료되지 않은 광고 상품 (최근 만료 예정 순)"""
        rows = self.db.execute(
            select(Product, ProductAd.expires_at)
            .join(ProductAd, ProductAd.product_id == Product.id)
            .where(ProductAd.expires_at > now)
            .order_by(ProductAd.expires_at.desc())
            .limit(limit)
        ).all()
        return [(row[0], row[1]) for row in rows]
