import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ledgerapi.models.marketplace import OrderStatus


class PurchaseRequest(BaseModel):
    product_id: uuid.UUID = Field(..., description="구매할 상품 ID")


class OrderResponse(BaseModel):
    id: uuid.UUID
    buyer_id: uuid.UUID
    store_id: uuid.UUID
    product_id: uuid.UUID
    price_paid: int
    status: OrderStatus
    transaction_id: Optional[uuid.UUID] = None
    product_snapshot: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PurchaseResponse(BaseModel):
    message: str = "Purchase Successful"
    order: OrderResponse
    delivery_code: str = Field(..., description="구매자에게만 전달되는 수령 코드")


class ConfirmDeliveryRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=10, description="수령 코드")


class ConfirmDeliveryResponse(BaseModel):
    message: str
    order: OrderResponse


class OrderListResponse(BaseModel):
    orders: List[OrderResponse]
