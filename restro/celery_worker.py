"""
Celery Worker Configuration

Report exports run here, off the request path. Exports are routed to
their own queue so a slow spreadsheet never delays other work.

Run with:
    celery -A restro.celery_worker worker -Q exports --loglevel=info
"""

from celery import Celery

from restro.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    'restro',
    broker=settings.broker_url,
    backend=settings.result_backend,
    include=['restro.tasks'],
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,

    task_routes={
        'restro.tasks.export_orders_report': {'queue': settings.export_queue},
    },
    task_time_limit=settings.export_time_limit_seconds,
    task_soft_time_limit=max(settings.export_time_limit_seconds - 10, 1),

    # One export per worker slot; the file lock serializes per restaurant anyway
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    result_expires=3600,
    broker_connection_retry_on_startup=True,
)


if __name__ == '__main__':
    celery_app.start()
