from fastapi import APIRouter
from order_dispatch.api.v1 import delivery, order

api_router = APIRouter()
api_router.include_router(order.router)
api_router.include_router(delivery.router)
