from celery import Celery
from order_dispatch.config import settings

celery_app = Celery(
    "order_dispatch",
    broker  = settings.CELERY_BROKER_URL,
    backend = settings.CELERY_RESULT_BACKEND,

    include=[
        "order_dispatch.task.delivery_task",
    ]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=5 * 60,
    task_soft_time_limit=60,  # 1 minute
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,)


celery_app.conf.beat_schedule = {
    "flag-idle-deliveries": {
        "task": "order_dispatch.task.delivery_task.flag_idle_deliveries",
        "schedule": 300.0,  # Run every 5 minutes
    },
}
