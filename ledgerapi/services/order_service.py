"""
구매 오케스트레이터

구매는 하나의 DB 트랜잭션입니다: 상품 행 잠금 -> 재고/자기구매 확인 ->
구매자에서 판매자로 코인 이동 -> 재고 차감 -> 주문 생성 -> 판매자 알림.
어느 단계든 실패하면 전체가 롤백되어 코인/재고/주문이 모두 원래대로 남습니다.
"""

import logging
import math
import secrets
import uuid
from typing import List

from sqlalchemy.orm import Session

from ledgerapi.config import settings
from ledgerapi.core.exceptions import (
    AuthorizationError,
    BaseAPIException,
    InternalServerError,
    InvalidDeliveryCodeError,
    NotFoundError,
    OutOfStockError,
    SelfPurchaseError,
    ValidationError,
)
from ledgerapi.database.session import unit_of_work
from ledgerapi.models.ledger import TransactionType
from ledgerapi.models.marketplace import NotificationType, OrderStatus
from ledgerapi.repositories.order_repository import OrderRepository
from ledgerapi.repositories.product_repository import ProductRepository
from ledgerapi.schemas.orders import (
    ConfirmDeliveryResponse,
    OrderResponse,
    PurchaseResponse,
)
from ledgerapi.services.ledger_service import LedgerService
from ledgerapi.utils.cache_utils import orders_key, purchase_invalidation_keys

logger = logging.getLogger(__name__)


def generate_delivery_code(digits: int = settings.DELIVERY_CODE_DIGITS) -> str:
    """선행 0 없는 N 자리 숫자 코드 (기본 4자리: 1000-9999)"""
    low = 10 ** (digits - 1)
    return str(low + secrets.randbelow(9 * low))


class OrderService:
    """주문 관련 비즈니스 로직을 담당하는 서비스"""

    def __init__(self, db: Session, cache=None, publisher=None):
        self.db = db
        self.product_repo = ProductRepository(db)
        self.order_repo = OrderRepository(db)
        self.ledger = LedgerService(db)
        self.cache = cache
        self.publisher = publisher

    def purchase(self, buyer_id: uuid.UUID, product_id: uuid.UUID) -> PurchaseResponse:
        """상품 구매 (원자적)

        Args:
            buyer_id: 구매자 ID
            product_id: 상품 ID

        Returns:
            PurchaseResponse: 주문과 수령 코드 (수령 코드는 구매자에게만 노출)

        Raises:
            NotFoundError: 상품/상점/지갑 없음
            OutOfStockError: 재고 없음
            SelfPurchaseError: 자기 상점 상품
            InsufficientFundsError: 코인 부족
        """
        try:
            with unit_of_work(self.db):
                product = self.product_repo.lock_product(product_id)
                if product is None:
                    raise NotFoundError(
                        "Product not found", details={"product_id": str(product_id)}
                    )
                if product.stock < 1:
                    raise OutOfStockError()

                store = self.product_repo.get_store(product.store_id)
                if store is None:
                    raise NotFoundError("Store not found", details={"store_id": str(product.store_id)})
                seller_id = store.owner_id
                if seller_id == buyer_id:
                    raise SelfPurchaseError()

                buyer_wallet_id = self.ledger.get_wallet_id_by_owner(buyer_id)
                seller_wallet_id = self.ledger.get_wallet_id_by_owner(seller_id)

                price = int(math.ceil(product.price))
                if price <= 0:
                    raise ValidationError(
                        "Product price must be positive", details={"price": str(product.price)}
                    )

                tx = self.ledger.transfer_tokens(
                    buyer_wallet_id,
                    seller_wallet_id,
                    price,
                    reference_id=str(product.id),
                    tx_type=TransactionType.PURCHASE,
                    reason=f"Purchase: {product.name}",
                    commit=False,
                )

                product.stock = product.stock - 1

                delivery_code = generate_delivery_code()
                order = self.order_repo.add_order(
                    buyer_id=buyer_id,
                    store_id=store.id,
                    product_id=product.id,
                    price_paid=price,
                    status=OrderStatus.PENDING_DELIVERY,
                    delivery_code=delivery_code,
                    transaction_id=tx.id,
                    product_snapshot={
                        "name": product.name,
                        "image": product.image_url,
                        "description": product.description,
                    },
                )
                self.order_repo.add_notification(
                    user_id=seller_id,
                    type=NotificationType.ORDER_NEW.value,
                    title="New sale",
                    message=f"You sold {product.name} for {price} {settings.CURRENCY_SYMBOL}",
                    related_entity_id=order.id,
                )
                result = OrderResponse.model_validate(order)
        except BaseAPIException as e:
            logger.info(f"Purchase of {product_id} by {buyer_id} rejected: {e.message}")
            raise
        except Exception as e:
            logger.error(f"Purchase of {product_id} by {buyer_id} failed: {str(e)}")
            raise InternalServerError("Transaction failed") from e

        if self.cache is not None:
            self.cache.invalidate(*purchase_invalidation_keys(product_id, buyer_id, seller_id))
        if self.publisher is not None:
            self.publisher.publish_balance_changed(buyer_id, "PURCHASE", tx.id)
            self.publisher.publish_balance_changed(seller_id, "SALE", tx.id)

        logger.info(f"Order {result.id}: {buyer_id} bought {product_id} for {price}")
        return PurchaseResponse(order=result, delivery_code=delivery_code)

    def confirm_delivery(
        self, seller_id: uuid.UUID, order_id: uuid.UUID, code: str
    ) -> ConfirmDeliveryResponse:
        """판매자가 구매자에게 받은 코드로 수령 확인. 코인은 이동하지 않습니다."""
        try:
            with unit_of_work(self.db):
                found = self.order_repo.get_with_store(order_id)
                if found is None:
                    raise NotFoundError("Order not found", details={"order_id": str(order_id)})
                order, store = found

                if store.owner_id != seller_id:
                    raise AuthorizationError("Not your order")
                if order.status != OrderStatus.PENDING_DELIVERY:
                    raise InvalidDeliveryCodeError(
                        "Order is not pending delivery", details={"status": order.status.value}
                    )
                if not secrets.compare_digest(str(order.delivery_code), str(code)):
                    raise InvalidDeliveryCodeError()

                order.status = OrderStatus.DELIVERED
                self.order_repo.add_notification(
                    user_id=order.buyer_id,
                    type=NotificationType.ORDER_DELIVERED.value,
                    title="Order delivered",
                    message="Your order has been marked as delivered.",
                    related_entity_id=order.id,
                )
                result = OrderResponse.model_validate(order)
        except BaseAPIException:
            raise
        except Exception as e:
            logger.error(f"Confirm delivery of order {order_id} failed: {str(e)}")
            raise InternalServerError("Failed to confirm delivery") from e

        if self.cache is not None:
            self.cache.invalidate(orders_key(result.buyer_id), orders_key(seller_id))
        if self.publisher is not None:
            self.publisher.publish_balance_changed(seller_id, "ORDER_DELIVERED", None)

        logger.info(f"Order {order_id} delivered")
        return ConfirmDeliveryResponse(message="Order delivered successfully", order=result)

    def list_orders(self, user_id: uuid.UUID, role: str = "buyer") -> List[OrderResponse]:
        """구매/판매 주문 목록 (orders:<user>:<role> 캐시)"""
        if role not in ("buyer", "seller"):
            raise ValidationError("role must be 'buyer' or 'seller'", details={"role": role})

        cache_key = orders_key(user_id, role)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return [OrderResponse.model_validate(item) for item in cached]

        if role == "seller":
            orders = self.order_repo.list_for_seller(user_id)
        else:
            orders = self.order_repo.list_for_buyer(user_id)

        if self.cache is not None:
            self.cache.set(
                cache_key,
                [order.model_dump(mode="json") for order in orders],
                settings.CACHE_TTL_SHORT,
            )
        return orders
