from sqlalchemy.orm import Session
from typing import Dict, FrozenSet, List, Union
from order_dispatch.models.order import Order, OrderItem, OrderStatus, OrderType
from order_dispatch.models.user import User, UserRole
from order_dispatch.repository.directory import Directory
from order_dispatch.repository.order_store import OrderStore
from order_dispatch.core.exception import (
    InvalidInputException,
    InvalidStateException,
    NotFoundException,
    PermissionDeniedException,
)
from order_dispatch.core.logging import logger


# Moves an operator may make by hand. READY -> DELIVERING belongs to the
# dispatcher and DELIVERING -> DELIVERED to the courier's delivered report.
OPERATOR_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED, OrderStatus.REJECTED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED, OrderStatus.REJECTED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERING: frozenset(),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REJECTED: frozenset(),
}


def parse_order_status(value: Union[str, OrderStatus]) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidInputException(f"Invalid order status: {value}")


def parse_order_type(value: Union[str, OrderType]) -> OrderType:
    try:
        return OrderType(value)
    except ValueError:
        raise InvalidInputException(f"Invalid order type: {value}")


def check_transition(order: Order, new_status: OrderStatus) -> None:
    allowed = OPERATOR_TRANSITIONS[order.status]
    if new_status not in allowed:
        raise InvalidStateException(
            f"Cannot transition from {order.status.value} to {new_status.value}"
        )

    # A delivery order leaves READY through courier assignment only
    if (order.status == OrderStatus.READY and new_status == OrderStatus.DELIVERED
            and order.order_type == OrderType.DELIVERY):
        raise InvalidStateException("Delivery orders must be assigned to a courier")


class OrderLifecycle:
    def __init__(self, db: Session, orders: OrderStore, directory: Directory):
        self.db = db
        self.orders = orders
        self.directory = directory

    def create_order(
        self,
        customer_id: int,
        restaurant_id: int,
        order_type: Union[str, OrderType],
        items: List[Dict],
    ) -> Order:

        order_type = parse_order_type(order_type)

        if not items:
            raise InvalidInputException("Order must contain at least one item")

        restaurant = self.directory.get_restaurant(restaurant_id)
        if not restaurant:
            raise NotFoundException("Restaurant")

        total_price = 0.0
        order_items = []

        for item in items:
            if item['quantity'] <= 0:
                raise InvalidInputException("Quantity must be greater than 0")

            menu_item = self.directory.get_menu_item(item['item_id'])
            if not menu_item or menu_item.restaurant_id != restaurant_id:
                raise NotFoundException(f"Menu item {item['item_id']}")

            total_price += menu_item.price * item['quantity']

            order_items.append(OrderItem(
                item_id=menu_item.id,
                quantity=item['quantity'],
                unit_price=menu_item.price,
                preferences=item.get('preferences') or '',
            ))

        order = Order(
            customer_id=customer_id,
            restaurant_id=restaurant_id,
            order_type=order_type,
            status=OrderStatus.PENDING,
            total_price=round(total_price, 2),
        )

        try:
            self.orders.add(order, order_items)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Order created",
            order_id=order.id,
            customer_id=customer_id,
            restaurant_id=restaurant_id,
            total_price=order.total_price,
        )

        return self.orders.get(order.id)

    def get_order(self, order_id: int) -> Order:
        order = self.orders.get(order_id)
        if not order:
            raise NotFoundException("Order")
        return order

    def get_order_for(self, order_id: int, actor: User) -> Order:
        """Fetch an order the actor is a party to."""
        order = self.get_order(order_id)

        if actor.role == UserRole.ADMIN:
            return order
        if order.customer_id == actor.id:
            return order
        if order.restaurant and order.restaurant.owner_id == actor.id:
            return order
        if order.delivery and order.delivery.delivery_person_id == actor.id:
            return order

        raise PermissionDeniedException("Access denied to this order")

    def update_status(
        self,
        order_id: int,
        new_status: Union[str, OrderStatus],
        actor: User,
        override: bool = False,
    ) -> Order:

        new_status = parse_order_status(new_status)

        order = self.get_order(order_id)

        if actor.role == UserRole.OWNER:
            if order.restaurant.owner_id != actor.id:
                raise PermissionDeniedException("Not authorized to update this order")
            if override:
                raise PermissionDeniedException("Only admins may override status transitions")
        elif actor.role != UserRole.ADMIN:
            raise PermissionDeniedException("Not authorized to update order status")

        old_status = order.status

        if override:
            logger.warning(
                "Order status override",
                order_id=order_id,
                old_status=old_status.value,
                new_status=new_status.value,
                updated_by=actor.id,
            )
        else:
            check_transition(order, new_status)

        try:
            if not self.orders.compare_and_set_status(order_id, old_status, new_status):
                raise InvalidStateException("Order status changed concurrently, reload and retry")
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Order status updated",
            order_id=order_id,
            old_status=old_status.value,
            new_status=new_status.value,
            updated_by=actor.id,
        )

        return self.orders.get(order_id)

    def list_for_customer(self, customer_id: int) -> List[Order]:
        return self.orders.list_for_customer(customer_id)

    def list_for_owner(self, owner_id: int) -> List[Order]:
        return self.orders.list_for_owner(owner_id)

    def list_all(self) -> List[Order]:
        return self.orders.list_all()

    def list_ready_for_delivery(self, owner_id: int) -> List[Order]:
        """Work queue for the dispatcher: ready delivery orders of the owner's restaurants."""
        return self.orders.list_ready_for_delivery(owner_id)
