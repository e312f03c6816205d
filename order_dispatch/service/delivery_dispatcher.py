from typing import List
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from order_dispatch.models.delivery import Delivery, DeliveryStatus
from order_dispatch.models.order import OrderStatus, OrderType
from order_dispatch.models.user import User, UserRole
from order_dispatch.repository.delivery_store import DeliveryStore
from order_dispatch.repository.directory import Directory
from order_dispatch.repository.order_store import OrderStore
from order_dispatch.core.exception import (
    InvalidInputException,
    InvalidStateException,
    NotFoundException,
    PermissionDeniedException,
)
from order_dispatch.core.logging import logger


class DeliveryDispatcher:
    """
    Binds couriers to ready delivery orders.

    An assignment is two writes, the order moving ready -> delivering and the
    delivery row being inserted. Both happen in one transaction and the status
    move is a conditional update on ``status = 'ready'``, so of two racing
    assigns exactly one commits.
    """

    def __init__(self, db: Session, orders: OrderStore, deliveries: DeliveryStore, directory: Directory):
        self.db = db
        self.orders = orders
        self.deliveries = deliveries
        self.directory = directory

    def _eligible_courier(self, delivery_person_id: int) -> User:
        courier = self.directory.get_user(delivery_person_id)

        if not courier or courier.role != UserRole.DELIVERY or not courier.is_active:
            raise InvalidInputException("Invalid delivery person")

        return courier

    def assign(self, order_id: int, delivery_person_id: int, requesting_owner_id: int) -> Delivery:
        order = self.orders.get(order_id)
        if not order:
            raise NotFoundException("Order")

        if order.restaurant.owner_id != requesting_owner_id:
            raise PermissionDeniedException("Not authorized to assign deliveries for this order")

        if order.status != OrderStatus.READY:
            raise InvalidStateException("Order is not ready for delivery")

        if order.order_type != OrderType.DELIVERY:
            raise InvalidStateException("Order is not a delivery order")

        self._eligible_courier(delivery_person_id)

        try:
            if not self.orders.compare_and_set_status(order_id, OrderStatus.READY, OrderStatus.DELIVERING):
                raise InvalidStateException("Order is not ready for delivery")

            delivery = self.deliveries.add(Delivery(
                order_id=order_id,
                delivery_person_id=delivery_person_id,
                status=DeliveryStatus.PENDING,
            ))
            self.db.commit()

        except IntegrityError:
            # Another assign already inserted the delivery row for this order
            self.db.rollback()
            raise InvalidStateException("Order already has a delivery assigned")

        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Delivery assigned",
            order_id=order_id,
            delivery_id=delivery.id,
            delivery_person_id=delivery_person_id,
            assigned_by=requesting_owner_id,
        )

        return self.deliveries.get(delivery.id)

    def reassign(self, delivery_id: int, new_delivery_person_id: int, actor: User) -> Delivery:
        """
        Hand a delivery to another courier. The order's status is left alone,
        the same delivery row is reused and goes back to pending. A delivered
        delivery is closed and cannot be reassigned.
        """
        delivery = self.deliveries.get(delivery_id)
        if not delivery:
            raise NotFoundException("Delivery")

        if actor.role != UserRole.ADMIN and delivery.order.restaurant.owner_id != actor.id:
            raise PermissionDeniedException("Not authorized to reassign this delivery")

        if delivery.status == DeliveryStatus.DELIVERED:
            raise InvalidStateException("Delivery already completed")

        self._eligible_courier(new_delivery_person_id)

        previous_courier = delivery.delivery_person_id

        try:
            delivery.delivery_person_id = new_delivery_person_id
            delivery.status = DeliveryStatus.PENDING
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Delivery reassigned",
            delivery_id=delivery_id,
            previous_delivery_person_id=previous_courier,
            delivery_person_id=new_delivery_person_id,
            reassigned_by=actor.id,
        )

        return self.deliveries.get(delivery_id)

    def list_available_couriers(self, caller: User) -> List[User]:
        if caller.role not in (UserRole.OWNER, UserRole.ADMIN):
            raise PermissionDeniedException("Only owners and admins can list couriers")

        return self.directory.list_available_couriers()

    def list_deliveries_for_courier(self, courier_id: int) -> List[Delivery]:
        return self.deliveries.list_for_courier(courier_id)

    def list_deliveries_for_owner(self, owner_id: int) -> List[Delivery]:
        return self.deliveries.list_for_owner(owner_id)

    def list_all_deliveries(self) -> List[Delivery]:
        return self.deliveries.list_all()
