from sqlalchemy import Column , String , DateTime , Enum , Integer
from sqlalchemy.orm import relationship
from order_dispatch.database import Base
from order_dispatch.utils.clock import utcnow
from enum import Enum as PyEnum

class UserRole(PyEnum):
    CUSTOMER = "customer"
    OWNER = "owner"
    DELIVERY = "delivery"
    ADMIN = "admin"


class UserStatus(PyEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class User(Base):
    # Owned by the user service; read-only here
    __tablename__ = "users"

    id = Column(Integer , primary_key=True , index=True , autoincrement=True)
    name = Column(String , nullable=False)
    email = Column(String , unique=True , index=True , nullable=False)
    phone = Column(String)
    role = Column(Enum(UserRole) , default=UserRole.CUSTOMER , nullable=False)
    status = Column(Enum(UserStatus) , default=UserStatus.ACTIVE , nullable=False)
    created_at = Column(DateTime, default=utcnow)

    # Relationship
    orders = relationship("Order", back_populates="customer", foreign_keys="Order.customer_id")
    restaurants = relationship("Restaurant", back_populates="owner")
    deliveries = relationship("Delivery", back_populates="delivery_person")

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    @property
    def is_courier(self) -> bool:
        return self.role == UserRole.DELIVERY
