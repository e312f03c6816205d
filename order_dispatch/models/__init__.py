# Import every mapped class so string relationships resolve
from order_dispatch.models.user import User, UserRole, UserStatus
from order_dispatch.models.restaurant import Restaurant, MenuItem
from order_dispatch.models.order import Order, OrderItem, OrderStatus, OrderType
from order_dispatch.models.delivery import Delivery, DeliveryStatus
