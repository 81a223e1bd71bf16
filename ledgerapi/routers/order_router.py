"""
주문 API 라우터

- POST /orders: 상품 구매 (원자적)
- GET /orders?role=buyer|seller: 내 주문 목록
- POST /orders/{order_id}/confirm: 수령 코드 확인 (판매자)
"""

import uuid
from typing import List, Literal

from fastapi import APIRouter, Depends, Path, Query, status

from ledgerapi.core.security import get_current_user
from ledgerapi.deps import get_order_service
from ledgerapi.schemas.orders import (
    ConfirmDeliveryRequest,
    ConfirmDeliveryResponse,
    OrderResponse,
    PurchaseRequest,
    PurchaseResponse,
)
from ledgerapi.schemas.user import User as UserSchema
from ledgerapi.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=PurchaseResponse, status_code=status.HTTP_201_CREATED)
def create_order(
    request: PurchaseRequest,
    current_user: UserSchema = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service),
) -> PurchaseResponse:
    return order_service.purchase(current_user.id, request.product_id)


@router.get("", response_model=List[OrderResponse])
def list_my_orders(
    role: Literal["buyer", "seller"] = Query("buyer"),
    current_user: UserSchema = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service),
) -> List[OrderResponse]:
    return order_service.list_orders(current_user.id, role=role)


@router.post("/{order_id}/confirm", response_model=ConfirmDeliveryResponse)
def confirm_delivery(
    request: ConfirmDeliveryRequest,
    order_id: uuid.UUID = Path(..., description="주문 ID"),
    current_user: UserSchema = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service),
) -> ConfirmDeliveryResponse:
    return order_service.confirm_delivery(current_user.id, order_id, request.code)
