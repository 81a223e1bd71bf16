import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledgerapi.models.marketplace import Product, Store
from ledgerapi.schemas.products import ProductResponse
from ledgerapi.repositories.base import BaseRepository


class ProductRepository(BaseRepository[Product, ProductResponse]):
    """상품/상점 조회 - 구매 시 상품 행 잠금"""

    def __init__(self, db: Session):
        super().__init__(Product, ProductResponse, db)

    def lock_product(self, product_id: uuid.UUID) -> Optional[Product]:
        """SELECT ... FOR UPDATE - 재고 변경이 끝날 때까지 다른 구매를 대기시킴"""
        return self.db.execute(
            select(Product).where(Product.id == product_id).with_for_update()
        ).scalar_one_or_none()

    def get_store(self, store_id: uuid.UUID) -> Optional[Store]:
        return self.db.get(Store, store_id)

    def lock_owned_product(
        self, product_id: uuid.UUID, owner_id: uuid.UUID
    ) -> Optional[Product]:
        """판매자 소유 상품을 잠금 조회 - 광고 중복 구매 검사가 끝날 때까지 다른 구매를 대기시킴"""
        return self.db.execute(
            select(Product)
            .join(Store, Store.id == Product.store_id)
            .where(Product.id == product_id, Store.owner_id == owner_id)
            .with_for_update(of=Product)
        ).scalar_one_or_none()
