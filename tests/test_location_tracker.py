from datetime import datetime, timedelta, timezone

import pytest

from order_dispatch.core.exception import (
    InvalidInputException,
    InvalidStateException,
    NotFoundException,
    PermissionDeniedException,
)
from order_dispatch.models import DeliveryStatus, OrderStatus
from order_dispatch.repository.delivery_store import DeliveryStore
from order_dispatch.repository.directory import Directory
from order_dispatch.repository.order_store import OrderStore
from order_dispatch.service.delivery_dispatcher import DeliveryDispatcher
from order_dispatch.service.location_tracker import LocationTracker

from conftest import ready_order_in, seed


@pytest.fixture
def assigned(ready_order, dispatcher, ids):
    order_id = ready_order()
    delivery = dispatcher.assign(order_id, ids.courier_x, requesting_owner_id=ids.owner)
    return delivery.id, order_id


def test_on_route_report_updates_position(assigned, tracker, lifecycle):
    delivery_id, order_id = assigned

    delivery = tracker.report_position(delivery_id, "on_route", latitude=1.0, longitude=1.0)

    assert delivery.status == DeliveryStatus.ON_ROUTE
    assert (delivery.latitude, delivery.longitude) == (1.0, 1.0)
    assert delivery.updated_at is not None
    assert lifecycle.get_order(order_id).status == OrderStatus.DELIVERING


def test_report_without_position_keeps_last_fix(assigned, tracker):
    delivery_id, _ = assigned
    tracker.report_position(delivery_id, "on_route", latitude=1.0, longitude=1.0)

    delivery = tracker.report_position(delivery_id, "on_route")

    assert (delivery.latitude, delivery.longitude) == (1.0, 1.0)


def test_delivered_report_completes_order(assigned, tracker, lifecycle):
    delivery_id, order_id = assigned
    tracker.report_position(delivery_id, "on_route", latitude=1.0, longitude=1.0)

    delivery = tracker.report_position(delivery_id, "delivered")

    assert delivery.status == DeliveryStatus.DELIVERED
    assert lifecycle.get_order(order_id).status == OrderStatus.DELIVERED


def test_delivered_straight_from_pending_completes_order(assigned, tracker, lifecycle):
    delivery_id, order_id = assigned

    tracker.report_position(delivery_id, "delivered")

    assert lifecycle.get_order(order_id).status == OrderStatus.DELIVERED


def test_invalid_status(assigned, tracker):
    delivery_id, _ = assigned

    with pytest.raises(InvalidInputException):
        tracker.report_position(delivery_id, "lost")


@pytest.mark.parametrize("lat,lon", [(1.0, None), (None, 1.0), (91.0, 0.0), (0.0, -181.0)])
def test_invalid_coordinates(assigned, tracker, lat, lon):
    delivery_id, _ = assigned

    with pytest.raises(InvalidInputException):
        tracker.report_position(delivery_id, "on_route", latitude=lat, longitude=lon)


def test_unknown_delivery(tracker):
    with pytest.raises(NotFoundException):
        tracker.report_position(31337, "on_route", latitude=1.0, longitude=1.0)


def test_only_assigned_courier_may_report(assigned, tracker, ids):
    delivery_id, _ = assigned

    with pytest.raises(PermissionDeniedException):
        tracker.report_position(delivery_id, "on_route", 1.0, 1.0, courier_id=ids.courier_y)

    delivery = tracker.report_position(delivery_id, "on_route", 1.0, 1.0, courier_id=ids.courier_x)
    assert delivery.status == DeliveryStatus.ON_ROUTE


def test_reports_without_timestamp_apply_in_arrival_order(assigned, tracker):
    delivery_id, _ = assigned

    tracker.report_position(delivery_id, "on_route", 1.0, 1.0)
    delivery = tracker.report_position(delivery_id, "on_route", 1.2, 1.3)

    assert (delivery.latitude, delivery.longitude) == (1.2, 1.3)


def test_stale_report_is_rejected(assigned, tracker):
    delivery_id, _ = assigned
    newer = datetime(2026, 1, 1, 12, 0, 30, tzinfo=timezone.utc)
    older = newer - timedelta(seconds=20)

    tracker.report_position(delivery_id, "on_route", 1.2, 1.3, reported_at=newer)

    with pytest.raises(InvalidStateException):
        tracker.report_position(delivery_id, "on_route", 1.0, 1.0, reported_at=older)

    # a retry of the same report is stale too
    with pytest.raises(InvalidStateException):
        tracker.report_position(delivery_id, "on_route", 1.0, 1.0, reported_at=newer)

    delivery = tracker.deliveries.get(delivery_id)
    assert (delivery.latitude, delivery.longitude) == (1.2, 1.3)
    assert delivery.reported_at == newer.replace(tzinfo=None)


def test_newer_report_is_applied(assigned, tracker):
    delivery_id, _ = assigned
    first = datetime(2026, 1, 1, 12, 0, 0)

    tracker.report_position(delivery_id, "on_route", 1.0, 1.0, reported_at=first)
    delivery = tracker.report_position(delivery_id, "on_route", 1.1, 1.1, reported_at=first + timedelta(seconds=15))

    assert (delivery.latitude, delivery.longitude) == (1.1, 1.1)


def test_no_staleness_window(assigned, tracker):
    delivery_id, _ = assigned
    long_ago = datetime(2020, 1, 1)

    tracker.report_position(delivery_id, "on_route", 1.0, 1.0, reported_at=long_ago)
    delivery = tracker.report_position(delivery_id, "on_route", 1.5, 1.5, reported_at=long_ago + timedelta(days=400))

    assert delivery.latitude == 1.5


@pytest.mark.parametrize("status,lat,lon", [("on_route", 1.0, 1.0), ("pending", None, None)])
def test_completed_delivery_rejects_further_reports(assigned, tracker, lifecycle, status, lat, lon):
    delivery_id, order_id = assigned
    tracker.report_position(delivery_id, "delivered")

    with pytest.raises(InvalidStateException):
        tracker.report_position(delivery_id, status, lat, lon)

    delivery = tracker.deliveries.get(delivery_id)
    assert delivery.status == DeliveryStatus.DELIVERED
    assert delivery.latitude is None
    assert lifecycle.get_order(order_id).status == OrderStatus.DELIVERED


def test_repeated_delivered_report_is_accepted(assigned, tracker, lifecycle):
    delivery_id, order_id = assigned
    first = tracker.report_position(delivery_id, "delivered")
    delivered_at = first.updated_at

    again = tracker.report_position(delivery_id, "delivered")

    assert again.status == DeliveryStatus.DELIVERED
    assert again.updated_at == delivered_at
    assert lifecycle.get_order(order_id).status == OrderStatus.DELIVERED


def start_delivery_in(session, ids):
    order_id = ready_order_in(session, ids)
    dispatcher = DeliveryDispatcher(session, OrderStore(session), DeliveryStore(session), Directory(session))
    return dispatcher.assign(order_id, ids.courier_x, requesting_owner_id=ids.owner).id


def tracker_in(session):
    return LocationTracker(session, OrderStore(session), DeliveryStore(session))


def test_concurrent_reports_keep_the_newest_fix(file_sessions):
    setup = file_sessions()
    ids = seed(setup)
    delivery_id = start_delivery_in(setup, ids)
    t0 = datetime(2026, 1, 1, 12, 0, 0)

    first, second = tracker_in(file_sessions()), tracker_in(file_sessions())

    # The first worker read the delivery before any report landed
    assert first.deliveries.get(delivery_id).reported_at is None

    second.report_position(delivery_id, "on_route", 3.0, 3.0, reported_at=t0 + timedelta(seconds=20))

    with pytest.raises(InvalidStateException) as exc_info:
        first.report_position(delivery_id, "on_route", 2.0, 2.0, reported_at=t0 + timedelta(seconds=10))
    assert exc_info.value.message == "Stale position report"

    delivery = DeliveryStore(file_sessions()).get(delivery_id)
    assert (delivery.latitude, delivery.longitude) == (3.0, 3.0)
    assert delivery.reported_at == t0 + timedelta(seconds=20)


def test_late_report_cannot_reopen_delivered(file_sessions):
    setup = file_sessions()
    ids = seed(setup)
    delivery_id = start_delivery_in(setup, ids)
    tracker_in(setup).report_position(delivery_id, "on_route", 1.0, 1.0)

    first, second = tracker_in(file_sessions()), tracker_in(file_sessions())

    # The first worker still sees the delivery on route
    assert first.deliveries.get(delivery_id).status == DeliveryStatus.ON_ROUTE

    second.report_position(delivery_id, "delivered")

    with pytest.raises(InvalidStateException) as exc_info:
        first.report_position(delivery_id, "on_route", 1.1, 1.1)
    assert exc_info.value.message == "Delivery already completed"

    check = file_sessions()
    delivery = DeliveryStore(check).get(delivery_id)
    assert delivery.status == DeliveryStatus.DELIVERED
    assert delivery.latitude == 1.0
    assert OrderStore(check).get(delivery.order_id).status == OrderStatus.DELIVERED
