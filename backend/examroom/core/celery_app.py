from celery import Celery
from examroom.core.config import settings
import logging
import warnings

warnings.filterwarnings("ignore", message=".*register_connect_callback.*")
logging.getLogger('celery.backends.redis').setLevel(logging.ERROR)


celery_app = Celery(
    "examroom_worker",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        'examroom.tasks.maintenance',
    ]
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone=settings.default_timezone,
    enable_utc=True,

    task_routes={
        'examroom.tasks.maintenance.*': {'queue': 'maintenance'},
    },

    worker_prefetch_multiplier=1,
    task_acks_late=True,
    worker_max_tasks_per_child=1000,

    task_soft_time_limit=120,
    task_time_limit=300,

    result_expires=3600,
    broker_connection_retry_on_startup=True,

    task_default_retry_delay=60,
    task_max_retries=3,

    beat_schedule={
        'expire-abandoned-sessions': {
            'task': 'expire_abandoned_sessions',
            'schedule': 300.0,
        },
        'health-check': {
            'task': 'health_check',
            'schedule': 600.0,
        },
    },
)


if __name__ == '__main__':
    celery_app.start()
