# agrimarket/celery_worker.py
from celery import Celery

from agrimarket.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    CELERY_TASK_ALWAYS_EAGER,
    TOKEN_PURGE_INTERVAL_SECONDS,
)

celery_app = Celery(
    "agrimarket",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# import tasks explicitly so Celery registers them
celery_app.conf.imports = (
    "agrimarket.tasks.purge_tokens",
    "agrimarket.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "purge-expired-refresh-tokens": {
        "task": "agrimarket.tasks.purge_tokens.purge_expired_refresh_tokens_task",
        "schedule": float(TOKEN_PURGE_INTERVAL_SECONDS),
    },
}

celery_app.conf.timezone = "UTC"
celery_app.conf.task_always_eager = CELERY_TASK_ALWAYS_EAGER
