from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session, selectinload

from order_dispatch.models.delivery import Delivery, DeliveryStatus
from order_dispatch.models.order import Order, OrderItem
from order_dispatch.models.restaurant import Restaurant
from order_dispatch.utils.clock import utcnow


class DeliveryStore:
    """Data access for delivery records. Never commits."""

    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        # Full projection used by every list view
        return self.db.query(Delivery).options(
            selectinload(Delivery.delivery_person),
            selectinload(Delivery.order).selectinload(Order.customer),
            selectinload(Delivery.order).selectinload(Order.restaurant),
            selectinload(Delivery.order).selectinload(Order.items).selectinload(OrderItem.item),
        )

    def get(self, delivery_id: int) -> Optional[Delivery]:
        return self._query().filter(Delivery.id == delivery_id).first()

    def get_for_order(self, order_id: int) -> Optional[Delivery]:
        return self._query().filter(Delivery.order_id == order_id).first()

    def add(self, delivery: Delivery) -> Delivery:
        self.db.add(delivery)
        self.db.flush()
        return delivery

    def list_for_courier(self, courier_id: int) -> List[Delivery]:
        return self._query().filter(
            Delivery.delivery_person_id == courier_id
        ).order_by(Delivery.updated_at.desc(), Delivery.id.desc()).all()

    def list_for_owner(self, owner_id: int) -> List[Delivery]:
        return self._query().join(
            Order, Delivery.order_id == Order.id
        ).join(
            Restaurant, Order.restaurant_id == Restaurant.id
        ).filter(
            Restaurant.owner_id == owner_id
        ).order_by(Delivery.updated_at.desc(), Delivery.id.desc()).all()

    def list_all(self) -> List[Delivery]:
        return self._query().order_by(Delivery.updated_at.desc(), Delivery.id.desc()).all()

    def list_on_route_since(self, cutoff) -> List[Delivery]:
        return self.db.query(Delivery).filter(
            Delivery.status == DeliveryStatus.ON_ROUTE,
            Delivery.updated_at < cutoff,
        ).order_by(Delivery.updated_at.asc()).all()

    def apply_report(
        self,
        delivery_id: int,
        status: DeliveryStatus,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        courier_id: Optional[int] = None,
        reported_at: Optional[datetime] = None,
    ) -> bool:
        """
        Conditional UPDATE for a position report. The row must not be
        delivered yet, must still belong to ``courier_id`` when one is given,
        and must hold an older ``reported_at`` when the report carries one.
        Returns False when any of those no longer holds in the database.
        """
        conditions = [
            Delivery.id == delivery_id,
            Delivery.status != DeliveryStatus.DELIVERED,
        ]
        if courier_id is not None:
            conditions.append(Delivery.delivery_person_id == courier_id)
        if reported_at is not None:
            conditions.append(or_(Delivery.reported_at.is_(None), Delivery.reported_at < reported_at))

        values = {"status": status, "updated_at": utcnow()}
        if latitude is not None:
            values["latitude"] = latitude
            values["longitude"] = longitude
        if reported_at is not None:
            values["reported_at"] = reported_at

        result = self.db.execute(
            update(Delivery)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
