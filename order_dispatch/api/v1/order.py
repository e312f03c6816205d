from fastapi import APIRouter, Depends, status
from typing import List
from order_dispatch.api.deps import (
    get_admin,
    get_current_user,
    get_customer,
    get_order_lifecycle,
    get_owner,
    get_owner_or_admin,
)
from order_dispatch.models.user import User
from order_dispatch.schema.order import OrderCreate, OrderResponse, OrderStatusUpdate
from order_dispatch.service.order_lifecycle import OrderLifecycle

router = APIRouter(prefix="/orders", tags=["orders"])

@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(
    order_data: OrderCreate,
    current_user: User = Depends(get_customer),
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle)
):
    '''Place a new order (customers only)'''
    return lifecycle.create_order(
        customer_id=current_user.id,
        restaurant_id=order_data.restaurant_id,
        order_type=order_data.order_type,
        items=[item.model_dump() for item in order_data.items],
    )

@router.get("/customer", response_model=List[OrderResponse])
def get_customer_orders(
    current_user: User = Depends(get_customer),
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle)
):
    '''Orders placed by the current customer, with live delivery state'''
    return lifecycle.list_for_customer(current_user.id)

@router.get("/owner", response_model=List[OrderResponse])
def get_owner_orders(
    current_user: User = Depends(get_owner),
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle)
):
    return lifecycle.list_for_owner(current_user.id)

@router.get("/ready", response_model=List[OrderResponse])
def get_ready_orders(
    current_user: User = Depends(get_owner),
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle)
):
    '''Ready delivery orders waiting for a courier'''
    return lifecycle.list_ready_for_delivery(current_user.id)

@router.get("/admin/all", response_model=List[OrderResponse])
def get_all_orders(
    current_user: User = Depends(get_admin),
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle)
):
    return lifecycle.list_all()

@router.get("/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle)
):
    return lifecycle.get_order_for(order_id, current_user)

@router.put("/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: int,
    status_update: OrderStatusUpdate,
    current_user: User = Depends(get_owner_or_admin),
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle)
):
    '''Advance an order through preparation (owner of the restaurant or admin)'''
    return lifecycle.update_status(
        order_id,
        status_update.status,
        actor=current_user,
        override=status_update.override,
    )
