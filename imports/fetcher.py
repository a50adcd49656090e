"""
Enumerate an assignment's submissions and group their attachments by learner.

Also holds the resolve-or-default helpers used by the orchestrator: each one
turns an ``ExternalSourceFailure`` into a logged fallback value so a missing
profile or course name never stops an import.
"""
from dataclasses import dataclass, field
from datetime import timezone as dt_timezone
from logging import getLogger

from django.utils import timezone
from django.utils.dateparse import parse_datetime

from .exceptions import ExternalSourceFailure

logger = getLogger(__name__)

# Everything a learner could have attached work in, including drafts and
# reclaimed submissions.
SUBMISSION_STATES = ("CREATED", "TURNED_IN", "RETURNED", "RECLAIMED_BY_STUDENT")

UNKNOWN_COURSE_NAME = "Unknown course"
UNKNOWN_ASSIGNMENT_NAME = "Unknown assignment"


@dataclass
class AttachmentRef:
    file_id: str
    title: str = ""
    link: str = ""


@dataclass
class LearnerSubmission:
    learner_id: str
    attachments: list[AttachmentRef] = field(default_factory=list)
    submitted_at: str | None = None
    late: bool = False


@dataclass
class LearnerProfile:
    name: str
    email: str = ""


def iter_submissions(client, course_id, assignment_id, states=SUBMISSION_STATES):
    """Yield every submission, following ``nextPageToken`` until exhausted."""
    page_token = None
    page = 0
    while True:
        data = client.list_submissions(course_id, assignment_id, states, page_token=page_token)
        page += 1
        submissions = data.get("studentSubmissions") or []
        logger.debug("Fetched page %d with %d submissions for %s/%s", page, len(submissions), course_id, assignment_id)
        yield from submissions
        page_token = data.get("nextPageToken")
        if not page_token:
            return


def submission_timestamp(submission) -> str | None:
    """Last TURNED_IN transition, falling back to the submission's updateTime."""
    turned_in = None
    for entry in submission.get("submissionHistory") or []:
        state = entry.get("stateHistory") or {}
        if state.get("state") == "TURNED_IN" and state.get("stateTimestamp"):
            turned_in = state["stateTimestamp"]
    return turned_in or submission.get("updateTime") or submission.get("creationTime")


def _parse_timestamp(value: str):
    """Parse an RFC 3339 stamp; stamps without an offset are taken as UTC."""
    try:
        parsed = parse_datetime(value)
    except ValueError:
        return None
    if parsed is not None and timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed


def _later(a: str | None, b: str | None) -> str | None:
    if not a or not b:
        return a or b
    da, db = _parse_timestamp(a), _parse_timestamp(b)
    if da is None or db is None:
        return a
    return b if db > da else a


def drive_attachments(submission) -> list[AttachmentRef]:
    refs = []
    attachments = (submission.get("assignmentSubmission") or {}).get("attachments") or []
    for attachment in attachments:
        drive_file = attachment.get("driveFile") or {}
        if not drive_file.get("id"):
            # Links, YouTube videos and forms have nothing to convert.
            continue
        refs.append(
            AttachmentRef(
                file_id=drive_file["id"],
                title=drive_file.get("title", ""),
                link=drive_file.get("alternateLink", ""),
            )
        )
    return refs


def group_by_learner(submissions) -> list[LearnerSubmission]:
    """
    Merge attachments per learner, preserving first-seen order. Submissions
    without Drive attachments are dropped.
    """
    grouped: dict[str, LearnerSubmission] = {}
    for submission in submissions:
        learner_id = submission.get("userId")
        refs = drive_attachments(submission)
        if not learner_id or not refs:
            continue
        entry = grouped.get(learner_id)
        if entry is None:
            entry = grouped[learner_id] = LearnerSubmission(learner_id=learner_id)
        seen = {ref.file_id for ref in entry.attachments}
        entry.attachments.extend(ref for ref in refs if ref.file_id not in seen)
        entry.submitted_at = _later(entry.submitted_at, submission_timestamp(submission))
        entry.late = entry.late or bool(submission.get("late"))
    return list(grouped.values())


def fetch_learner_submissions(client, course_id, assignment_id, states=SUBMISSION_STATES):
    return group_by_learner(iter_submissions(client, course_id, assignment_id, states))


def resolve_learner(client, learner_id) -> LearnerProfile:
    try:
        profile = client.get_user_profile(learner_id)
    except ExternalSourceFailure:
        logger.warning("Could not resolve profile for learner %s; using the raw id", learner_id, exc_info=True)
        return LearnerProfile(name=learner_id)
    name = (profile.get("name") or {}).get("fullName") or learner_id
    return LearnerProfile(name=name, email=profile.get("emailAddress", ""))


def resolve_course_name(client, course_id) -> str:
    try:
        return client.get_course(course_id).get("name") or UNKNOWN_COURSE_NAME
    except ExternalSourceFailure:
        logger.warning("Could not resolve course %s; using a placeholder name", course_id, exc_info=True)
        return UNKNOWN_COURSE_NAME


def resolve_assignment_title(client, course_id, assignment_id) -> str:
    try:
        return client.get_course_work(course_id, assignment_id).get("title") or UNKNOWN_ASSIGNMENT_NAME
    except ExternalSourceFailure:
        logger.warning(
            "Could not resolve assignment %s in course %s; using a placeholder name",
            assignment_id,
            course_id,
            exc_info=True,
        )
        return UNKNOWN_ASSIGNMENT_NAME
