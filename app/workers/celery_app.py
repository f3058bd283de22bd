from celery import Celery

from app.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "astro_checkout",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "app.workers.tasks.payments_reliability",
    ],
)

celery_app.conf.update(
    task_default_queue="q_normal",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone=settings.business_timezone,
    enable_utc=True,
)


@celery_app.task(name="app.workers.celery_app.ping")
def ping() -> str:
    return "pong"
