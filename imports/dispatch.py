"""
Hand work units to whatever executes them.

``QueuedDispatcher`` enqueues one Celery task per unit, staggered a couple of
seconds apart to spread the load on Drive and the workers.
``InlineDispatcher`` runs units in-process for environments without a broker
(local development, offline runs, the ``--inline`` management command).
"""
from logging import getLogger

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from . import store
from .tasks import discard_staged, process_submission_unit, run_work_unit
from .tracker import check_import_completion

logger = getLogger(__name__)


class Dispatcher:
    def dispatch(self, job_id, units) -> list[str]:
        """Dispatch every unit; returns the ids of the tasks that were created."""
        raise NotImplementedError


class InlineDispatcher(Dispatcher):
    def dispatch(self, job_id, units):
        task_ids = []
        for unit in units:
            run_work_unit(unit, track=False)
            task_ids.append(f"inline:{unit.unit_key}")
        check_import_completion(job_id)
        return task_ids


class QueuedDispatcher(Dispatcher):
    def __init__(self, task=None, stagger_seconds=None):
        self.task = task if task is not None else process_submission_unit
        self.stagger_seconds = settings.IMPORT_TASK_STAGGER_SECONDS if stagger_seconds is None else stagger_seconds

    def dispatch(self, job_id, units):
        task_ids = []
        for index, unit in enumerate(units):
            try:
                result = self.task.apply_async(args=[unit.to_dict()], countdown=index * self.stagger_seconds)
            except Exception:
                logger.exception("Failed to enqueue unit %s of import job %s", unit.unit_key, job_id)
                markers = [a.file_id for a in unit.attachments] or [unit.unit_key]
                store.record_unit_result(job_id, unit.unit_key, False, markers)
                discard_staged(unit)
                continue
            task_ids.append(result.id)
            logger.debug("Enqueued unit %s as task %s", unit.unit_key, result.id)
        logger.info("Created %d processing tasks for import job %s", len(task_ids), job_id)
        return task_ids


DISPATCHERS = {
    "inline": InlineDispatcher,
    "queued": QueuedDispatcher,
}


def get_dispatcher(mode=None) -> Dispatcher:
    mode = mode or settings.IMPORT_DISPATCH_MODE
    try:
        return DISPATCHERS[mode]()
    except KeyError:
        raise ImproperlyConfigured(f"Unknown IMPORT_DISPATCH_MODE {mode!r}; expected one of {sorted(DISPATCHERS)}")
