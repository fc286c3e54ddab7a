import logging
from celery import Celery

from app.core.config import settings

logger = logging.getLogger(__name__)

# Initialize Celery
celery_app = Celery(
    'knowledgechat',
    broker=settings.REDIS_URL or settings.CELERY_BROKER_URL,
    backend=settings.REDIS_URL or settings.CELERY_RESULT_BACKEND,
    include=["app.worker.tasks"]
)

# Configure Celery
celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    task_track_started=True,
    task_time_limit=3600,  # 1 hour
    worker_max_tasks_per_child=100,
    worker_prefetch_multiplier=1
)


def run_worker():
    """Run the Celery worker with appropriate configuration"""
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logger.info("Starting Celery worker")
    celery_app.worker_main(["worker", "--loglevel=info", "-E"])


if __name__ == '__main__':
    run_worker()
