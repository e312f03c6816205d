from sqlalchemy import Column, Integer, Text, Float, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from order_dispatch.database import Base
from order_dispatch.utils.clock import utcnow
from enum import Enum as PyEnum

class OrderStatus(PyEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERING = "delivering"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REJECTED})


class OrderType(PyEnum):
    PICKUP = "pickup"
    DELIVERY = "delivery"
    DINE_IN = "dine_in"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), index=True, nullable=False)

    # Order details
    status = Column(Enum(OrderStatus), default=OrderStatus.PENDING, nullable=False)
    order_type = Column(Enum(OrderType), default=OrderType.DELIVERY, nullable=False)

    # Pricing, fixed at creation
    total_price = Column(Float, nullable=False)

    order_time = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    customer = relationship("User", back_populates="orders", foreign_keys=[customer_id])
    restaurant = relationship("Restaurant", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", order_by="OrderItem.id")
    delivery = relationship("Delivery", back_populates="order", uselist=False)

class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    # Menu price at order time, later menu edits must not change history
    unit_price = Column(Float, nullable=False)
    preferences = Column(Text, default="")

    # Relationships
    order = relationship("Order", back_populates="items")
    item = relationship("MenuItem", back_populates="order_items")

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity
