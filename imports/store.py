"""
Atomic mutations of ``ImportJob``.

Many work-unit tasks finish concurrently and all of them write to the same
job row, so nothing in here does a plain read-then-save:

- counter and list mutations run under ``select_for_update()`` inside a
  transaction (row lock),
- status transitions and progress bumps are conditional ``UPDATE``s whose
  affected-row count says whether this caller won.
"""
from logging import getLogger

from django.db import transaction
from django.utils.timezone import now

from .models import ImportJob

logger = getLogger(__name__)

ACTIVE_STATUSES = (ImportJob.Status.PENDING, ImportJob.Status.PROCESSING)


def create_job(gallery, course_id, assignment_id, created_by) -> ImportJob:
    return ImportJob.objects.create(
        gallery=gallery,
        course_id=course_id,
        assignment_id=assignment_id,
        created_by=created_by,
    )


def mark_processing(job_id) -> bool:
    return bool(
        ImportJob.objects.filter(pk=job_id, status=ImportJob.Status.PENDING).update(
            status=ImportJob.Status.PROCESSING, updated_at=now()
        )
    )


def register_units(job_id, unit_keys):
    """
    Fix the job's unit set: ``total_units`` becomes the number of keys and
    each key starts out pending. Results for any other key are refused.
    """
    keys = list(dict.fromkeys(str(k) for k in unit_keys))
    ImportJob.objects.filter(pk=job_id, status__in=ACTIVE_STATUSES).update(
        total_units=len(keys),
        unit_results={key: ImportJob.UNIT_PENDING for key in keys},
        updated_at=now(),
    )


def advance_progress(job_id, progress: int) -> bool:
    """Raise progress to ``progress``; never lowers it and never touches terminal jobs."""
    progress = max(0, min(100, int(progress)))
    return bool(
        ImportJob.objects.filter(pk=job_id, status__in=ACTIVE_STATUSES, progress__lt=progress).update(
            progress=progress, updated_at=now()
        )
    )


def append_error_files(job_id, markers):
    markers = [str(m) for m in markers if m]
    if not markers:
        return
    with transaction.atomic():
        job = ImportJob.objects.select_for_update().get(pk=job_id)
        job.error_files = list(job.error_files or []) + markers
        job.save(update_fields=["error_files", "updated_at"])


def record_unit_result(job_id, unit_key, succeeded: bool, markers=()) -> str:
    """
    Resolve one registered work unit as processed or failed, exactly once.

    A redelivered unit that already resolved the same way changes nothing.
    A unit that failed earlier and now succeeds moves from failed to
    processed; a processed unit never moves back to failed. A key that was
    never registered is refused and leaves the job untouched. Returns the
    unit's resulting state, or "" when refused.
    """
    unit_key = str(unit_key)
    markers = [str(m) for m in markers if m]
    with transaction.atomic():
        job = ImportJob.objects.select_for_update().get(pk=job_id)
        results = dict(job.unit_results or {})
        if unit_key not in results:
            logger.warning("Import job %s: refusing result for unregistered unit %s", job.pk, unit_key)
            return ""
        previous = results[unit_key]
        fields = ["updated_at"]

        if succeeded:
            if previous == ImportJob.UNIT_PROCESSED:
                return previous
            if previous == ImportJob.UNIT_FAILED:
                job.failed_units = max(0, job.failed_units - 1)
                fields.append("failed_units")
            job.processed_units += 1
            results[unit_key] = ImportJob.UNIT_PROCESSED
            fields += ["processed_units", "unit_results"]
        else:
            if previous != ImportJob.UNIT_PENDING:
                return previous
            job.failed_units += 1
            results[unit_key] = ImportJob.UNIT_FAILED
            fields += ["failed_units", "unit_results"]

        if markers:
            job.error_files = list(job.error_files or []) + markers
            fields.append("error_files")
        job.unit_results = results
        job.save(update_fields=fields)
        return results[unit_key]


def mark_completed(job_id) -> bool:
    """processing -> completed. Only one caller can ever get True back."""
    stamp = now()
    return bool(
        ImportJob.objects.filter(pk=job_id, status=ImportJob.Status.PROCESSING).update(
            status=ImportJob.Status.COMPLETED, progress=100, completed_at=stamp, updated_at=stamp
        )
    )


def mark_error(job_id, message: str) -> bool:
    stamp = now()
    return bool(
        ImportJob.objects.filter(pk=job_id, status__in=ACTIVE_STATUSES).update(
            status=ImportJob.Status.ERROR,
            error_message=(message or "Unknown error during initialization")[:4000],
            completed_at=stamp,
            updated_at=stamp,
        )
    )


def get_job_status(job_id) -> dict:
    """Raises ``ImportJob.DoesNotExist`` for unknown ids."""
    job = ImportJob.objects.get(pk=job_id)
    return {
        "status": job.status,
        "progress": job.progress,
        "processed_files": job.processed_units,
        "total_files": job.total_units,
        "failed_files": job.failed_units,
        "error_files": list(job.error_files or []),
    }
