from pydantic import BaseModel, Field, StrictInt, field_validator
from typing import List, Optional
from datetime import datetime
from order_dispatch.models.delivery import DeliveryStatus
from order_dispatch.models.order import OrderStatus, OrderType
from order_dispatch.schema.common import ContactSummary, RestaurantSummary
from order_dispatch.schema.order import OrderItemResponse

class DeliveryAssign(BaseModel):
    order_id: StrictInt
    delivery_person_id: StrictInt

    class Config:
        extra = "forbid"

class DeliveryReassign(BaseModel):
    delivery_id: StrictInt
    new_delivery_person_id: StrictInt

    class Config:
        extra = "forbid"

class PositionReport(BaseModel):
    status: DeliveryStatus
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    # Device clock at the time of the fix, used to drop out of order retries
    reported_at: Optional[datetime] = None

    class Config:
        extra = "forbid"

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def reject_numeric_strings(cls, value):
        if isinstance(value, (str, bool)):
            raise ValueError("coordinates must be numbers")
        return value

class DeliveryOrderResponse(BaseModel):
    id: int
    customer_id: int
    status: OrderStatus
    order_type: OrderType
    total_price: float
    order_time: datetime
    items: List[OrderItemResponse]
    customer: Optional[ContactSummary] = None
    restaurant: Optional[RestaurantSummary] = None

    class Config:
        from_attributes = True

class DeliveryResponse(BaseModel):
    id: int
    order_id: int
    delivery_person_id: int
    status: DeliveryStatus
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    reported_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    order: Optional[DeliveryOrderResponse] = None
    delivery_person: Optional[ContactSummary] = None

    class Config:
        from_attributes = True
