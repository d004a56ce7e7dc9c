from typing import Any

from celery import Celery, signals
from celery.schedules import crontab

from trackshield.core.config import settings
from trackshield.core.logging_utils import setup_logging

celery = Celery(
    "trackshield_tasks",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["trackshield.tasks"],
)

celery.conf.update(
    task_track_started=True,
    beat_schedule={
        "recalculate-all-heatmaps": {
            "task": "trackshield.tasks.recalculate_all_heatmaps",
            "schedule": crontab(
                hour=settings.HEATMAP_RECALCULATION.hour,
                minute=settings.HEATMAP_RECALCULATION.minute,
            ),
        },
    },
)


@signals.setup_logging.connect
def configure_logging(**kwargs: Any) -> None:
    setup_logging()
