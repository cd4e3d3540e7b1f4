"""
Celery configuration for scheduled gist generation.

The beat schedule runs the batch orchestrator periodically; Redis serves as
both broker and result backend.
"""

import logging

from celery import Celery
from celery.schedules import crontab

from gist_agent import config

logger = logging.getLogger(__name__)


class CeleryConfig:
    """Celery configuration class."""

    broker_url = config.get_celery_settings()["broker_url"]
    result_backend = config.get_celery_settings()["result_backend"]

    # Task settings
    task_serializer = "json"
    result_serializer = "json"
    accept_content = ["json"]
    timezone = "UTC"
    enable_utc = True

    # Task execution settings
    task_acks_late = True
    task_reject_on_worker_lost = True
    worker_prefetch_multiplier = 1
    # A batch must finish before the next one starts
    task_time_limit = 30 * 60
    result_expires = 3600

    beat_schedule = {
        "generate-pending-gists": {
            "task": "gist_agent.tasks.generation.generate_pending_gists_task",
            "schedule": crontab(minute=config.GENERATE_SCHEDULE_MINUTE),
        },
    }

    worker_hijack_root_logger = False


app = Celery("gist_agent")
app.config_from_object(CeleryConfig)
app.autodiscover_tasks(["gist_agent.tasks.generation"], related_name=None)


@app.on_after_finalize.connect
def setup_task_monitoring(sender, **kwargs):
    logger.info("Celery app finalized and ready")
