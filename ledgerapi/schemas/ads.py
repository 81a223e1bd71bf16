import uuid
from datetime import datetime
from decimal import Decimal
from typing import List

from pydantic import BaseModel, Field


class AdvertisingPackageResponse(BaseModel):
    id: uuid.UUID
    name: str
    price: Decimal
    duration_hours: int

    class Config:
        from_attributes = True


class AdPurchaseRequest(BaseModel):
    product_id: uuid.UUID = Field(..., description="광고할 상품 ID")
    package_id: uuid.UUID = Field(..., description="광고 패키지 ID")


class AdPurchaseResponse(BaseModel):
    message: str
    expires_at: datetime
    transaction_id: uuid.UUID


class FeaturedProduct(BaseModel):
    product_id: uuid.UUID
    name: str
    price: Decimal
    image_url: str | None = None
    expires_at: datetime


class FeaturedProductsResponse(BaseModel):
    products: List[FeaturedProduct]
