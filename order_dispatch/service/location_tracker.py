from datetime import datetime
from typing import Optional, Union
from sqlalchemy.orm import Session
from order_dispatch.models.delivery import Delivery, DeliveryStatus
from order_dispatch.models.order import OrderStatus
from order_dispatch.repository.delivery_store import DeliveryStore
from order_dispatch.repository.order_store import OrderStore
from order_dispatch.core.exception import (
    InvalidInputException,
    InvalidStateException,
    NotFoundException,
    PermissionDeniedException,
)
from order_dispatch.core.logging import logger
from order_dispatch.utils.clock import to_naive_utc
from order_dispatch.utils.geo import is_valid_latitude, is_valid_longitude


def parse_delivery_status(value: Union[str, DeliveryStatus]) -> DeliveryStatus:
    try:
        return DeliveryStatus(value)
    except ValueError:
        raise InvalidInputException(f"Invalid delivery status: {value}")


class LocationTracker:
    """
    Ingests courier position reports.

    No staleness window: a report is accepted however long it has been since
    the previous one. When the courier sends ``reported_at`` the report must
    be newer than the last accepted one, so a retried old report cannot
    overwrite a fresher position. A delivered delivery is closed, only a
    repeated delivered report is accepted for it.

    The checks run once against the loaded row and again inside the UPDATE,
    so two reports racing on the same delivery cannot undo each other.
    """

    def __init__(self, db: Session, orders: OrderStore, deliveries: DeliveryStore):
        self.db = db
        self.orders = orders
        self.deliveries = deliveries

    def report_position(
        self,
        delivery_id: int,
        status: Union[str, DeliveryStatus],
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        courier_id: Optional[int] = None,
        reported_at: Optional[datetime] = None,
    ) -> Delivery:

        status = parse_delivery_status(status)

        if (latitude is None) != (longitude is None):
            raise InvalidInputException("Latitude and longitude must be sent together")

        if latitude is not None and not (is_valid_latitude(latitude) and is_valid_longitude(longitude)):
            raise InvalidInputException("Coordinates out of range")

        delivery = self.deliveries.get(delivery_id)
        if not delivery:
            raise NotFoundException("Delivery")

        if reported_at is not None:
            reported_at = to_naive_utc(reported_at)

        if self._check_report(delivery, status, courier_id, reported_at):
            return delivery

        try:
            applied = self.deliveries.apply_report(
                delivery_id,
                status,
                latitude=latitude,
                longitude=longitude,
                courier_id=courier_id,
                reported_at=reported_at,
            )

            # Delivered is written together with the order so the two never disagree
            if applied and status == DeliveryStatus.DELIVERED:
                self.orders.set_status(delivery.order, OrderStatus.DELIVERED)

            if applied:
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        if not applied:
            # Another writer changed the row after we read it, judge again on the committed state
            self.db.rollback()
            delivery = self.deliveries.get(delivery_id)
            if self._check_report(delivery, status, courier_id, reported_at):
                return delivery
            raise InvalidStateException("Delivery changed while reporting")

        logger.info(
            "Delivery position reported",
            delivery_id=delivery_id,
            status=status.value,
            latitude=latitude,
            longitude=longitude,
        )

        if status == DeliveryStatus.DELIVERED:
            logger.info("Order delivered", order_id=delivery.order_id, delivery_id=delivery_id)

        return self.deliveries.get(delivery_id)

    def _check_report(
        self,
        delivery: Delivery,
        status: DeliveryStatus,
        courier_id: Optional[int],
        reported_at: Optional[datetime],
    ) -> bool:
        """
        Raises when the report cannot apply to ``delivery``. Returns True for
        a repeated delivered report, which is accepted without a write.
        """
        if courier_id is not None and delivery.delivery_person_id != courier_id:
            raise PermissionDeniedException("Not assigned to this delivery")

        if delivery.status == DeliveryStatus.DELIVERED:
            if status == DeliveryStatus.DELIVERED:
                return True
            logger.warning(
                "Report on completed delivery rejected",
                delivery_id=delivery.id,
                status=status.value,
            )
            raise InvalidStateException("Delivery already completed")

        if reported_at is not None and delivery.reported_at is not None and reported_at <= delivery.reported_at:
            logger.warning(
                "Stale position report rejected",
                delivery_id=delivery.id,
                reported_at=reported_at.isoformat(),
                last_reported_at=delivery.reported_at.isoformat(),
            )
            raise InvalidStateException("Stale position report")

        return False
