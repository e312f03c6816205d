from pydantic import BaseModel, Field, StrictBool, StrictInt
from typing import List, Optional
from datetime import datetime
from order_dispatch.models.delivery import DeliveryStatus
from order_dispatch.models.order import OrderStatus, OrderType
from order_dispatch.schema.common import ContactSummary, MenuItemSummary, RestaurantSummary

class OrderItemCreate(BaseModel):
    item_id: StrictInt
    quantity: StrictInt = Field(gt=0)
    preferences: Optional[str] = None

    class Config:
        extra = "forbid"

class OrderCreate(BaseModel):
    restaurant_id: StrictInt
    order_type: OrderType = OrderType.DELIVERY
    items: List[OrderItemCreate] = Field(min_length=1)

    class Config:
        extra = "forbid"

class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    # Admin only: apply the status without checking the transition table
    override: StrictBool = False

    class Config:
        extra = "forbid"

class OrderItemResponse(BaseModel):
    id: int
    item_id: int
    quantity: int
    unit_price: float
    preferences: Optional[str] = None
    item: Optional[MenuItemSummary] = None

    class Config:
        from_attributes = True

class OrderDeliveryResponse(BaseModel):
    id: int
    delivery_person_id: int
    status: DeliveryStatus
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class OrderResponse(BaseModel):
    id: int
    customer_id: int
    restaurant_id: int
    status: OrderStatus
    order_type: OrderType
    total_price: float
    order_time: datetime
    updated_at: Optional[datetime] = None
    items: List[OrderItemResponse]
    restaurant: Optional[RestaurantSummary] = None
    customer: Optional[ContactSummary] = None
    delivery: Optional[OrderDeliveryResponse] = None

    class Config:
        from_attributes = True
