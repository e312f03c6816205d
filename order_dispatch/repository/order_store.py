from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session, selectinload

from order_dispatch.models.delivery import Delivery
from order_dispatch.models.order import Order, OrderItem, OrderStatus, OrderType
from order_dispatch.models.restaurant import Restaurant
from order_dispatch.utils.clock import utcnow


class OrderStore:
    """
    Data access for orders and their items.

    Never commits: the calling service owns the transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(Order).options(
            selectinload(Order.items).selectinload(OrderItem.item),
            selectinload(Order.restaurant),
            selectinload(Order.customer),
            selectinload(Order.delivery).selectinload(Delivery.delivery_person),
        )

    def get(self, order_id: int) -> Optional[Order]:
        return self._query().filter(Order.id == order_id).first()

    def add(self, order: Order, items: List[OrderItem]) -> Order:
        order.items = items
        self.db.add(order)
        self.db.flush()
        return order

    def list_for_customer(self, customer_id: int) -> List[Order]:
        return self._query().filter(
            Order.customer_id == customer_id
        ).order_by(Order.order_time.desc(), Order.id.desc()).all()

    def list_for_owner(self, owner_id: int) -> List[Order]:
        return self._query().join(Restaurant, Order.restaurant_id == Restaurant.id).filter(
            Restaurant.owner_id == owner_id
        ).order_by(Order.order_time.desc(), Order.id.desc()).all()

    def list_all(self) -> List[Order]:
        return self._query().order_by(Order.order_time.desc(), Order.id.desc()).all()

    def list_ready_for_delivery(self, owner_id: int) -> List[Order]:
        return self._query().join(Restaurant, Order.restaurant_id == Restaurant.id).filter(
            Restaurant.owner_id == owner_id,
            Order.status == OrderStatus.READY,
            Order.order_type == OrderType.DELIVERY,
        ).order_by(Order.order_time.asc(), Order.id.asc()).all()

    def set_status(self, order: Order, status: OrderStatus) -> Order:
        order.status = status
        order.updated_at = utcnow()
        self.db.flush()
        return order

    def compare_and_set_status(self, order_id: int, expected: OrderStatus, new: OrderStatus) -> bool:
        """
        Conditional UPDATE keyed on the current status. Returns False when
        another writer moved the order first.
        """
        result = self.db.execute(
            update(Order)
            .where(Order.id == order_id, Order.status == expected)
            .values(status=new, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
