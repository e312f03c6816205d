from pydantic import BaseModel
from typing import Optional


class ContactSummary(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None

    class Config:
        from_attributes = True


class RestaurantSummary(BaseModel):
    id: int
    name: str
    location: Optional[str] = None
    contact_info: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    class Config:
        from_attributes = True


class MenuItemSummary(BaseModel):
    id: int
    name: str
    price: float

    class Config:
        from_attributes = True
