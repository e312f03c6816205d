from datetime import timedelta
from typing import List, Optional
from sqlalchemy.orm import Session
from order_dispatch.config import settings
from order_dispatch.database import SessionLocal
from order_dispatch.repository.delivery_store import DeliveryStore
from order_dispatch.task.celery_app import celery_app
from order_dispatch.core.logging import bind_context, clear_context, logger
from order_dispatch.utils.clock import utcnow
import order_dispatch.models  # noqa: F401


def find_idle_deliveries(db: Session, idle_minutes: int, now=None) -> List[int]:
    """
    Ids of on_route deliveries with no report for ``idle_minutes``. Read only:
    an idle delivery stays a valid state, this only surfaces it.
    """
    cutoff = (now or utcnow()) - timedelta(minutes=idle_minutes)

    idle = DeliveryStore(db).list_on_route_since(cutoff)

    for delivery in idle:
        logger.warning(
            "Delivery idle",
            delivery_id=delivery.id,
            order_id=delivery.order_id,
            delivery_person_id=delivery.delivery_person_id,
            last_update=delivery.updated_at.isoformat(),
        )

    return [delivery.id for delivery in idle]


@celery_app.task
def flag_idle_deliveries(idle_minutes: Optional[int] = None) -> int:
    bind_context(task="flag_idle_deliveries")
    db = SessionLocal()

    try:
        idle = find_idle_deliveries(db, idle_minutes or settings.IDLE_DELIVERY_MINUTES)
        logger.info("Idle delivery sweep finished", idle_count=len(idle))
        return len(idle)

    finally:
        db.close()
        clear_context()
