from typing import List, Optional

from sqlalchemy.orm import Session

from order_dispatch.models.restaurant import MenuItem, Restaurant
from order_dispatch.models.user import User, UserRole, UserStatus


class Directory:
    """
    Read-only lookups into records owned by other services: users,
    restaurants and menu items.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_restaurant(self, restaurant_id: int) -> Optional[Restaurant]:
        return self.db.query(Restaurant).filter(Restaurant.id == restaurant_id).first()

    def get_menu_item(self, item_id: int) -> Optional[MenuItem]:
        return self.db.query(MenuItem).filter(MenuItem.id == item_id).first()

    def list_available_couriers(self) -> List[User]:
        return self.db.query(User).filter(
            User.role == UserRole.DELIVERY,
            User.status == UserStatus.ACTIVE,
        ).order_by(User.name.asc(), User.id.asc()).all()
