import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledgerapi.models.marketplace import Notification, Order, Store
from ledgerapi.schemas.orders import OrderResponse
from ledgerapi.repositories.base import BaseRepository


class OrderRepository(BaseRepository[Order, OrderResponse]):
    """주문 + 알림 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(Order, OrderResponse, db)

    def add_order(self, **kwargs) -> Order:
        order = Order(id=uuid.uuid4(), **kwargs)
        self.db.add(order)
        self.db.flush()
        return order

    def add_notification(
        self,
        user_id: uuid.UUID,
        type: str,
        title: str,
        message: str,
        related_entity_id: Optional[uuid.UUID] = None,
    ) -> Notification:
        notification = Notification(
            id=uuid.uuid4(),
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            related_entity_id=related_entity_id,
            is_read=False,
        )
        self.db.add(notification)
        self.db.flush()
        return notification

    def get_with_store(self, order_id: uuid.UUID) -> Optional[tuple]:
        row = self.db.execute(
            select(Order, Store)
            .join(Store, Store.id == Order.store_id)
            .where(Order.id == order_id)
        ).first()
        return (row[0], row[1]) if row else None

    def list_for_buyer(self, buyer_id: uuid.UUID, limit: int = 50) -> List[OrderResponse]:
        rows = self.db.execute(
            select(Order)
            .where(Order.buyer_id == buyer_id)
            .order_by(Order.created_at.desc())
            .limit(limit)
        ).scalars()
        return [self._to_schema(order) for order in rows]

    def list_for_seller(self, owner_id: uuid.UUID, limit: int = 50) -> List[OrderResponse]:
        rows = self.db.execute(
            select(Order)
            .join(Store, Store.id == Order.store_id)
            .where(Store.owner_id == owner_id)
            .order_by(Order.created_at.desc())
            .limit(limit)
        ).scalars()
        return [self._to_schema(order) for order in rows]

    def notifications_for(self, user_id: uuid.UUID) -> List[Notification]:
        return list(
            self.db.execute(
                select(Notification)
                .where(Notification.user_id == user_id)
                .order_by(Notification.created_at.desc())
            ).scalars()
        )
