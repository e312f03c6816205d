"""
Customer side live tracking.

Tracking is pull based: the client polls the customer's orders every few
seconds and derives distance, countdown and progress locally. The countdown is
a display aid. Once computed from a courier fix it ticks down with the wall
clock and is only recomputed when a new fix arrives, so between fixes it says
nothing about where the courier actually is.
"""
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import httpx
import structlog

from order_dispatch.utils.geo import (
    DEFAULT_SPEED_KMH,
    countdown_progress,
    countdown_urgency,
    distance_km,
    eta,
    format_countdown,
)

logger = structlog.get_logger()

DEFAULT_POLL_INTERVAL = 8.0
TERMINAL_ORDER_STATUSES = frozenset({"delivered", "cancelled", "rejected"})

DELIVERY_STEPS = (
    ("assigned", "Assigned"),
    ("on_route", "On the Way"),
    ("delivered", "Delivered"),
)


@dataclass(frozen=True)
class Step:
    key: str
    label: str
    completed: bool
    active: bool


@dataclass(frozen=True)
class Countdown:
    total_seconds: int
    started_at: float

    def remaining(self, now: float) -> int:
        return max(0, self.total_seconds - int(now - self.started_at))


@dataclass(frozen=True)
class TrackingSnapshot:
    order_id: int
    order_status: str
    delivery_status: Optional[str]
    distance_km: Optional[float]
    countdown_seconds: Optional[int]
    countdown_label: Optional[str]
    urgency: Optional[str]
    progress: Optional[float]
    steps: List[Step]


def delivery_steps(delivery_status: Optional[str]) -> List[Step]:
    steps = []
    for index, (key, label) in enumerate(DELIVERY_STEPS):
        completed = (
            delivery_status == "delivered"
            or (delivery_status == "on_route" and index <= 1)
            or (delivery_status == "pending" and index == 0)
        )
        active = (
            (delivery_status == "pending" and index == 0)
            or (delivery_status == "on_route" and index == 1)
            or (delivery_status == "delivered" and index == 2)
        )
        steps.append(Step(key=key, label=label, completed=completed, active=active))
    return steps


class TrackingClient:
    def __init__(
        self,
        base_url: str = "",
        token: Optional[str] = None,
        http: Optional[httpx.Client] = None,
        speed_kmh: float = DEFAULT_SPEED_KMH,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._owns_http = http is None
        self.http = http or httpx.Client(base_url=base_url, timeout=5.0)
        self.token = token
        self.speed_kmh = speed_kmh
        self.poll_interval = poll_interval
        self.clock = clock
        self.sleep = sleep
        # order id -> (courier fix the countdown was computed from, countdown)
        self._countdowns: Dict[int, Tuple[tuple, Countdown]] = {}

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self):
        if self._owns_http:
            self.http.close()

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def _get(self, path: str):
        response = self.http.get(path, headers=self._headers())
        response.raise_for_status()
        return response.json()

    def fetch_orders(self) -> List[dict]:
        return self._get("/api/v1/orders/customer")

    def fetch_order(self, order_id: int) -> dict:
        return self._get(f"/api/v1/orders/{order_id}")

    def _countdown_for(self, order_id: int, fix: tuple, distance: float) -> Countdown:
        current = self._countdowns.get(order_id)
        if current and current[0] == fix:
            return current[1]

        countdown = Countdown(
            total_seconds=eta(distance, self.speed_kmh).countdown_seconds,
            started_at=self.clock(),
        )
        self._countdowns[order_id] = (fix, countdown)
        logger.debug("Countdown recomputed", order_id=order_id, seconds=countdown.total_seconds)
        return countdown

    def snapshot(
        self,
        order: dict,
        customer_lat: Optional[float] = None,
        customer_lon: Optional[float] = None,
    ) -> TrackingSnapshot:
        order_id = order["id"]
        delivery = order.get("delivery")
        delivery_status = delivery["status"] if delivery else None

        distance = None
        remaining = None

        has_fix = (
            delivery is not None
            and delivery.get("latitude") is not None
            and delivery.get("longitude") is not None
        )
        has_customer = customer_lat is not None and customer_lon is not None

        if has_fix and has_customer:
            distance = distance_km(delivery["latitude"], delivery["longitude"], customer_lat, customer_lon)

        if delivery_status == "on_route" and distance is not None:
            fix = (delivery["latitude"], delivery["longitude"], delivery.get("updated_at"))
            remaining = self._countdown_for(order_id, fix, distance).remaining(self.clock())
        else:
            self._countdowns.pop(order_id, None)

        return TrackingSnapshot(
            order_id=order_id,
            order_status=order["status"],
            delivery_status=delivery_status,
            distance_km=distance,
            countdown_seconds=remaining,
            countdown_label=format_countdown(remaining) if remaining is not None else None,
            urgency=countdown_urgency(remaining) if remaining is not None else None,
            progress=countdown_progress(remaining) if remaining is not None else None,
            steps=delivery_steps(delivery_status),
        )

    def track_all(self, customer_lat: Optional[float] = None, customer_lon: Optional[float] = None) -> List[TrackingSnapshot]:
        """One poll of every order of the customer."""
        return [
            self.snapshot(order, customer_lat, customer_lon)
            for order in self.fetch_orders()
            if order["order_type"] == "delivery"
        ]

    def watch(
        self,
        order_id: int,
        customer_lat: Optional[float] = None,
        customer_lon: Optional[float] = None,
        polls: Optional[int] = None,
    ) -> Iterator[TrackingSnapshot]:
        """Poll one order until it reaches a terminal status or ``polls`` runs out."""
        count = 0
        while True:
            snapshot = self.snapshot(self.fetch_order(order_id), customer_lat, customer_lon)
            yield snapshot

            count += 1
            if snapshot.order_status in TERMINAL_ORDER_STATUSES:
                return
            if polls is not None and count >= polls:
                return

            self.sleep(self.poll_interval)
