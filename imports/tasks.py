from logging import getLogger

from botocore.exceptions import BotoCoreError, ClientError
from celery import shared_task
from django.conf import settings
from django.utils.dateparse import parse_datetime

from . import s3, store
from .conversion import convert_attachment
from .exceptions import ConversionFailure
from .models import Artwork, ImportJob
from .tracker import check_import_completion
from .units import SubmissionWorkUnit, display_image_id
from .utils import gallery_image_key, gallery_thumbnail_key

logger = getLogger(__name__)

# Per-attachment failures that are recorded and skipped rather than raised.
ATTACHMENT_ERRORS = (ConversionFailure, BotoCoreError, ClientError)


def _upload_pages(unit: SubmissionWorkUnit, artwork_id, attachment, pages) -> list[dict]:
    """Upload rendered pages (and thumbnails) and return DisplayImage dicts."""
    images = []
    for page in pages:
        image_id = display_image_id(artwork_id, attachment.file_id, page.page_number)
        metadata = {
            "original-name": attachment.name,
            "gallery-id": unit.gallery_id,
            "page-number": page.page_number,
        }
        image_key = gallery_image_key(unit.gallery_id, image_id)
        s3.put_object(image_key, page.data, content_type="image/jpeg", metadata=metadata)

        thumbnail_url = None
        if page.thumbnail is not None:
            thumbnail_key = gallery_thumbnail_key(unit.gallery_id, image_id)
            s3.put_object(
                thumbnail_key, page.thumbnail, content_type="image/jpeg", metadata={**metadata, "thumbnail": "true"}
            )
            thumbnail_url = s3.public_url(thumbnail_key)

        images.append(
            {
                "id": image_id,
                "url": s3.public_url(image_key),
                "thumbnail_url": thumbnail_url,
                "page_number": page.page_number,
                "width": page.width,
                "height": page.height,
                "source_file_id": attachment.file_id,
            }
        )
    return images


def _artwork_title(unit: SubmissionWorkUnit, converted) -> str:
    names = [a.name for a in converted if a.name]
    if not names:
        return unit.learner_name
    if len(names) == 1:
        return names[0]
    return f"{names[0]} (+{len(names) - 1})"


def _save_artwork(unit: SubmissionWorkUnit, converted, images) -> Artwork:
    """
    Upsert by the unit's deterministic id; engagement fields are left alone.
    Title, source link and file types come from the attachments in
    ``converted``, the ones that produced images.
    """
    source_urls = [a.source_url for a in converted if a.source_url]
    file_types = list(dict.fromkeys(a.kind for a in converted))
    artwork, created = Artwork.objects.update_or_create(
        pk=unit.artwork_id,
        defaults={
            "title": _artwork_title(unit, converted)[:512],
            "images": images,
            "original_file_url": source_urls[0] if source_urls else "",
            "file_types": file_types,
            "student_id": unit.learner_id,
            "student_name": unit.learner_name,
            "student_email": unit.learner_email,
            "submitted_at": parse_datetime(unit.submitted_at) if unit.submitted_at else None,
            "is_late": unit.late,
            "course_id": unit.course_id,
            "assignment_id": unit.assignment_id,
            "imported_by_id": unit.job_id,
        },
    )
    logger.info(
        "%s artwork %s for %s with %d images", "Created" if created else "Updated", artwork.pk, unit.learner_name, len(images)
    )
    return artwork


def discard_staged(unit: SubmissionWorkUnit):
    for attachment in unit.attachments:
        try:
            s3.delete_object(attachment.staging_path)
        except (BotoCoreError, ClientError):
            # Left for the staging sweep.
            logger.warning("Could not delete staged file %s", attachment.staging_path, exc_info=True)


def resolve_failed_unit(unit: SubmissionWorkUnit):
    markers = [a.staging_path for a in unit.attachments] or [unit.unit_key]
    store.record_unit_result(unit.job_id, unit.unit_key, False, markers)
    discard_staged(unit)


def process_unit(unit: SubmissionWorkUnit) -> bool:
    """
    Convert every staged attachment of one learner's submission, then upsert
    the learner's artwork and resolve the unit on the job.

    Attachment-level failures are recorded with the staging path as marker
    and skipped. The unit only fails when no image at all came out of it.
    A unit whose job has finished, or that was never registered on the job,
    is discarded without creating an artwork. Returns True when the unit
    resolved as processed.
    """
    job = ImportJob.objects.get(pk=unit.job_id)
    state = (job.unit_results or {}).get(unit.unit_key)
    if state == ImportJob.UNIT_PROCESSED:
        logger.warning("Unit %s of import job %s was already processed and will not be repeated", unit.unit_key, job.pk)
        return True
    if job.is_terminal or state is None:
        logger.warning(
            "Discarding unit %s of import job %s: job is %s, unit is %s",
            unit.unit_key,
            job.pk,
            job.status,
            state or "unregistered",
        )
        discard_staged(unit)
        return False

    artwork_id = unit.artwork_id
    images = []
    converted = []
    failed_markers = []
    for attachment in unit.attachments:
        try:
            data = s3.get_object(attachment.staging_path)
            pages = convert_attachment(data, attachment.kind)
            images.extend(_upload_pages(unit, artwork_id, attachment, pages))
            converted.append(attachment)
        except ATTACHMENT_ERRORS as exc:
            logger.warning("Skipping %s (%s) for %s: %s", attachment.name, attachment.staging_path, unit.learner_name, exc)
            failed_markers.append(attachment.staging_path)

    if not images:
        logger.error("No images produced for %s in import job %s", unit.learner_name, unit.job_id)
        resolve_failed_unit(unit)
        return False

    _save_artwork(unit, converted, images)
    store.record_unit_result(unit.job_id, unit.unit_key, True, failed_markers)
    discard_staged(unit)
    return True


def run_work_unit(unit: SubmissionWorkUnit, *, track: bool = True) -> bool:
    """
    Process a unit without letting anything escape: an unexpected error
    resolves the unit as failed. Used by the inline dispatcher and the HTTP
    task endpoint, which have no broker to retry for them.
    """
    try:
        return process_unit(unit)
    except Exception:
        logger.exception("Unexpected error processing unit %s of import job %s", unit.unit_key, unit.job_id)
        try:
            resolve_failed_unit(unit)
        except Exception:
            logger.exception("Could not record failure of unit %s", unit.unit_key)
        return False
    finally:
        if track:
            check_import_completion(unit.job_id)


@shared_task(
    bind=True,
    name="imports.process_submission_unit",
    acks_late=True,
    reject_on_worker_lost=True,
    max_retries=settings.IMPORT_TASK_MAX_RETRIES,
    default_retry_delay=60,
)
def process_submission_unit(self, payload: dict):
    """Celery entry point; ``payload`` is exactly a serialized SubmissionWorkUnit."""
    unit = SubmissionWorkUnit.from_dict(payload)
    try:
        return process_unit(unit)
    except Exception as exc:
        if self.request.retries < self.max_retries:
            logger.warning(
                "Unit %s of import job %s failed (attempt %d), retrying: %s",
                unit.unit_key,
                unit.job_id,
                self.request.retries + 1,
                exc,
            )
            raise self.retry(exc=exc)
        logger.exception("Unit %s of import job %s failed after %d attempts", unit.unit_key, unit.job_id, self.request.retries + 1)
        resolve_failed_unit(unit)
        return False
    finally:
        check_import_completion(unit.job_id)
