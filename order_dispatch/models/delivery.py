from sqlalchemy import Column, Integer, Float, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from order_dispatch.database import Base
from order_dispatch.utils.clock import utcnow
from enum import Enum as PyEnum

class DeliveryStatus(PyEnum):
    PENDING = "pending"
    ON_ROUTE = "on_route"
    DELIVERED = "delivered"


class Delivery(Base):
    __tablename__ = "deliveries"

    id = Column(Integer, primary_key=True, index=True)
    # One delivery per order, reassignment reuses the row
    order_id = Column(Integer, ForeignKey("orders.id"), unique=True, nullable=False)
    delivery_person_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    status = Column(Enum(DeliveryStatus), default=DeliveryStatus.PENDING, nullable=False)

    # Last reported courier position
    latitude = Column(Float)
    longitude = Column(Float)
    reported_at = Column(DateTime)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, index=True)

    # Relationships
    order = relationship("Order", back_populates="delivery")
    delivery_person = relationship("User", back_populates="deliveries")
