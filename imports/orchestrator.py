"""
Top-level driver of a Classroom import.

``start_import`` creates the job, enumerates the assignment's submissions,
stages every supported attachment in object storage, groups them into one
work unit per learner and hands the units to a dispatcher.

Only failures that stop the job from being defined at all (the gallery or
job cannot be created, submissions cannot be enumerated) are fatal: the job
is marked ``error`` and ``ImportJobFatal`` is raised. Everything that goes
wrong for a single learner or attachment is recorded on the job and the
import carries on.
"""
from logging import getLogger

from . import s3, store
from .classroom import ClassroomClient
from .dispatch import get_dispatcher
from .exceptions import ExternalSourceFailure, ImportJobFatal, InvalidImportRequest
from .fetcher import (
    SUBMISSION_STATES,
    fetch_learner_submissions,
    resolve_assignment_title,
    resolve_course_name,
    resolve_learner,
)
from .models import Gallery
from .tracker import PROGRESS_DISPATCHED, check_import_completion
from .units import StagedAttachment, SubmissionWorkUnit
from .utils import resolve_media_kind, staging_key

logger = getLogger(__name__)

PROGRESS_TOTALS_KNOWN = 5


def ensure_gallery(client, gallery_id, course_id, assignment_id) -> Gallery:
    gallery = Gallery.objects.filter(pk=gallery_id).first()
    if gallery is not None:
        return gallery
    course_name = resolve_course_name(client, course_id)
    assignment_name = resolve_assignment_title(client, course_id, assignment_id)
    gallery, created = Gallery.objects.get_or_create(
        pk=gallery_id,
        defaults={
            "name": f"{course_name} - {assignment_name}",
            "course_id": course_id,
            "course_name": course_name,
            "assignment_id": assignment_id,
            "assignment_name": assignment_name,
        },
    )
    if created:
        logger.info("Created gallery %s for %s / %s", gallery_id, course_name, assignment_name)
    return gallery


def stage_attachment(client, job_id, learner_id, ref) -> StagedAttachment | None:
    """
    Download one Drive attachment into staging storage.

    Returns None for unsupported file types. Raises ExternalSourceFailure (or
    a boto error) when metadata, download or upload fails.
    """
    metadata = client.get_file_metadata(ref.file_id)
    name = metadata.get("name") or ref.title or ref.file_id
    content_type = metadata.get("mimeType") or ""
    kind = resolve_media_kind(content_type)
    if kind is None:
        logger.info("Skipping unsupported file type %s (%s) for learner %s", content_type or "unknown", name, learner_id)
        return None

    data = client.download_file(ref.file_id)
    path = staging_key(job_id, learner_id, ref.file_id)
    s3.put_object(path, data, content_type=content_type)
    return StagedAttachment(
        file_id=ref.file_id,
        name=name,
        kind=kind,
        staging_path=path,
        source_url=metadata.get("webViewLink") or ref.link or f"https://drive.google.com/file/d/{ref.file_id}/view",
        content_type=content_type,
    )


def build_work_units(client, job, gallery_id, learner_submissions):
    """
    Returns ``(units, failed_units, file_errors)``. ``failed_units`` are
    learners with supported attachments none of which could be staged; they
    count towards the total but are never dispatched.
    """
    units = []
    failed = []
    file_errors = []
    for submission in learner_submissions:
        profile = resolve_learner(client, submission.learner_id)
        staged = []
        supported = 0
        for ref in submission.attachments:
            try:
                attachment = stage_attachment(client, job.pk, submission.learner_id, ref)
            except Exception:
                logger.warning(
                    "Could not stage file %s for learner %s in import job %s",
                    ref.file_id,
                    submission.learner_id,
                    job.pk,
                    exc_info=True,
                )
                supported += 1
                file_errors.append(ref.file_id)
                continue
            if attachment is None:
                continue
            supported += 1
            staged.append(attachment)

        if not supported:
            continue
        unit = SubmissionWorkUnit(
            job_id=str(job.pk),
            gallery_id=str(gallery_id),
            course_id=job.course_id,
            assignment_id=job.assignment_id,
            learner_id=submission.learner_id,
            learner_name=profile.name,
            learner_email=profile.email,
            submitted_at=submission.submitted_at,
            late=submission.late,
            attachments=staged,
        )
        if staged:
            units.append(unit)
        else:
            failed.append(unit)
    return units, failed, file_errors


def start_import(gallery_id, course_id, assignment_id, initiator, client=None, dispatcher=None) -> str:
    missing = [
        name
        for name, value in (
            ("gallery_id", gallery_id),
            ("course_id", course_id),
            ("assignment_id", assignment_id),
            ("initiator", initiator),
        )
        if not value
    ]
    if missing:
        raise InvalidImportRequest(f"Missing required parameters: {', '.join(missing)}")

    client = client or ClassroomClient()
    dispatcher = dispatcher or get_dispatcher()

    gallery = ensure_gallery(client, gallery_id, course_id, assignment_id)
    job = store.create_job(gallery, course_id, assignment_id, initiator)
    logger.info("Import job %s started by %s for %s/%s", job.pk, initiator, course_id, assignment_id)

    try:
        store.mark_processing(job.pk)
        try:
            learner_submissions = fetch_learner_submissions(client, course_id, assignment_id, SUBMISSION_STATES)
        except ExternalSourceFailure as exc:
            raise ImportJobFatal(job.pk, f"Could not enumerate submissions: {exc}") from exc

        units, failed_units, file_errors = build_work_units(client, job, gallery.pk, learner_submissions)

        store.register_units(job.pk, [unit.unit_key for unit in units + failed_units])
        store.append_error_files(job.pk, file_errors)
        for unit in failed_units:
            store.record_unit_result(job.pk, unit.unit_key, False)
        store.advance_progress(job.pk, PROGRESS_TOTALS_KNOWN)
        logger.info(
            "Import job %s: %d learners, %d work units, %d unstageable, %d file errors",
            job.pk,
            len(learner_submissions),
            len(units),
            len(failed_units),
            len(file_errors),
        )

        dispatcher.dispatch(job.pk, units)
        store.advance_progress(job.pk, PROGRESS_DISPATCHED)
    except Exception as exc:
        logger.exception("Import initialization error for job %s", job.pk)
        store.mark_error(job.pk, str(exc) or exc.__class__.__name__)
        if isinstance(exc, ImportJobFatal):
            raise
        raise ImportJobFatal(job.pk, str(exc) or "Unknown error during initialization") from exc

    check_import_completion(job.pk)
    return str(job.pk)
