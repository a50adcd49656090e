"""
Completion tracking and gallery finalization.

``check_import_completion`` runs after every work unit, once after an inline
batch and once after dispatch. It is safe to call any number of times from
any number of workers: the processing -> completed transition is a
conditional update, and only the caller that performed it finalizes the
gallery. Neither function raises; a failure leaves the job as it was for the
next trigger to pick up.
"""
from logging import getLogger

from django.db import transaction
from django.utils.timezone import now

from . import store
from .models import Artwork, Gallery, ImportJob

logger = getLogger(__name__)

PROGRESS_DISPATCHED = 10
PROGRESS_CEILING = 95


def progress_for(resolved: int, total: int) -> int:
    """Map resolved/total into the 10..95 processing band."""
    if total <= 0:
        return PROGRESS_CEILING
    span = PROGRESS_CEILING - PROGRESS_DISPATCHED
    return min(PROGRESS_CEILING, int(resolved * span // total) + PROGRESS_DISPATCHED)


def check_import_completion(job_id):
    try:
        job = ImportJob.objects.get(pk=job_id)
        if job.is_terminal:
            return
        if job.status != ImportJob.Status.PROCESSING:
            # Totals are not known until the orchestrator has moved on.
            return

        resolved = job.resolved_units
        if resolved >= job.total_units:
            if store.mark_completed(job.pk):
                logger.info(
                    "Import job %s completed: %d/%d units processed, %d failed",
                    job.pk,
                    job.processed_units,
                    job.total_units,
                    job.failed_units,
                )
                finalize_gallery(job.gallery_id, job.pk)
        else:
            store.advance_progress(job.pk, progress_for(resolved, job.total_units))
    except Exception:
        logger.exception("Error checking completion of import job %s", job_id)


def finalize_gallery(gallery_id, job_id):
    """
    Add every artwork imported by ``job_id`` to the gallery. Additive: artworks
    from earlier imports stay. Timestamps are stamped even when the job
    produced nothing.
    """
    try:
        artwork_ids = list(Artwork.objects.filter(imported_by_id=job_id).values_list("pk", flat=True))
        with transaction.atomic():
            gallery = Gallery.objects.select_for_update().get(pk=gallery_id)
            if artwork_ids:
                gallery.artworks.add(*artwork_ids)
            gallery.last_import_at = now()
            gallery.save(update_fields=["last_import_at", "updated_at"])
        logger.info("Gallery %s finalized with %d artworks from import %s", gallery_id, len(artwork_ids), job_id)
    except Exception:
        logger.exception("Error finalizing gallery %s for import job %s", gallery_id, job_id)
