from uuid import UUID

from sqlmodel import Session

from trackshield.heatmap import aggregator
from trackshield.celery_app import celery
from trackshield.core.db import get_engine
from trackshield.core.logging_utils import task_id_context

logger = celery.log.get_default_logger()


def _as_uuid(value: UUID | str) -> UUID:
    return value if isinstance(value, UUID) else UUID(value)


@celery.task(bind=True)
def update_heatmap_for_activity(self, activity_id: UUID | str) -> int:
    """Add the points of a newly stored activity to the heatmap of its owner."""
    token = task_id_context.set(self.request.id)
    try:
        logger.debug("Got: activity_id=%s", activity_id)
        with Session(get_engine()) as session:
            return aggregator.update_for_activity(session, _as_uuid(activity_id))
    finally:
        task_id_context.reset(token)


@celery.task(bind=True)
def recalculate_user_heatmap(self, user_id: UUID | str) -> int:
    token = task_id_context.set(self.request.id)
    try:
        logger.debug("Got: user_id=%s", user_id)
        with Session(get_engine()) as session:
            return aggregator.recalculate_for_user(session, _as_uuid(user_id))
    finally:
        task_id_context.reset(token)


@celery.task(bind=True)
def recalculate_all_heatmaps(self) -> dict[str, int]:
    """Nightly rebuild of all heatmaps."""
    token = task_id_context.set(self.request.id)
    try:
        with Session(get_engine()) as session:
            success, errors = aggregator.recalculate_all(session)
        return {"success": success, "errors": errors}
    finally:
        task_id_context.reset(token)
