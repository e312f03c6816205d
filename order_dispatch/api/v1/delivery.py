from fastapi import APIRouter, Depends, status
from typing import List
from order_dispatch.api.deps import (
    get_admin,
    get_courier,
    get_dispatcher,
    get_location_tracker,
    get_owner,
    get_owner_or_admin,
)
from order_dispatch.models.user import User
from order_dispatch.schema.delivery import DeliveryAssign, DeliveryReassign, DeliveryResponse, PositionReport
from order_dispatch.schema.user import CourierResponse
from order_dispatch.service.delivery_dispatcher import DeliveryDispatcher
from order_dispatch.service.location_tracker import LocationTracker

router = APIRouter(prefix="/deliveries", tags=["deliveries"])

@router.post("/assign", response_model=DeliveryResponse, status_code=status.HTTP_201_CREATED)
def assign_delivery(
    assignment: DeliveryAssign,
    current_user: User = Depends(get_owner),
    dispatcher: DeliveryDispatcher = Depends(get_dispatcher)
):
    '''Assign a courier to a ready delivery order (restaurant owner only)'''
    return dispatcher.assign(
        order_id=assignment.order_id,
        delivery_person_id=assignment.delivery_person_id,
        requesting_owner_id=current_user.id,
    )

@router.post("/reassign", response_model=DeliveryResponse)
def reassign_delivery(
    reassignment: DeliveryReassign,
    current_user: User = Depends(get_owner_or_admin),
    dispatcher: DeliveryDispatcher = Depends(get_dispatcher)
):
    return dispatcher.reassign(
        delivery_id=reassignment.delivery_id,
        new_delivery_person_id=reassignment.new_delivery_person_id,
        actor=current_user,
    )

@router.get("/persons/available", response_model=List[CourierResponse])
def get_available_couriers(
    current_user: User = Depends(get_owner_or_admin),
    dispatcher: DeliveryDispatcher = Depends(get_dispatcher)
):
    '''Active couriers that can take a delivery'''
    return dispatcher.list_available_couriers(current_user)

@router.put("/{delivery_id}/status", response_model=DeliveryResponse)
def report_delivery_position(
    delivery_id: int,
    report: PositionReport,
    current_user: User = Depends(get_courier),
    tracker: LocationTracker = Depends(get_location_tracker)
):
    '''Courier position and status report, sent periodically by the courier app'''
    return tracker.report_position(
        delivery_id,
        report.status,
        latitude=report.latitude,
        longitude=report.longitude,
        courier_id=current_user.id,
        reported_at=report.reported_at,
    )

@router.get("/person", response_model=List[DeliveryResponse])
def get_courier_deliveries(
    current_user: User = Depends(get_courier),
    dispatcher: DeliveryDispatcher = Depends(get_dispatcher)
):
    return dispatcher.list_deliveries_for_courier(current_user.id)

@router.get("/owner", response_model=List[DeliveryResponse])
def get_owner_deliveries(
    current_user: User = Depends(get_owner),
    dispatcher: DeliveryDispatcher = Depends(get_dispatcher)
):
    return dispatcher.list_deliveries_for_owner(current_user.id)

@router.get("/admin/all", response_model=List[DeliveryResponse])
def get_all_deliveries(
    current_user: User = Depends(get_admin),
    dispatcher: DeliveryDispatcher = Depends(get_dispatcher)
):
    return dispatcher.list_all_deliveries()
