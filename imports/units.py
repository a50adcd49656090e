"""
Payload types handed from the orchestrator to the work-unit task.

A ``SubmissionWorkUnit`` travels through the Celery broker (or the HTTP task
endpoint) as a plain JSON dict, so both types round-trip through
``to_dict``/``from_dict`` and carry nothing that is not JSON-serializable.
"""
from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field

IMAGE = "image"
DOCUMENT = "document"
MEDIA_KINDS = (IMAGE, DOCUMENT)

# Namespace for ids derived from (job id, learner id) and (artwork id, file, page).
ARTWORK_NAMESPACE = uuid.UUID("6f1c2b8e-3d0a-4c55-9a57-2f4e1d9b7c10")


@dataclass
class StagedAttachment:
    file_id: str
    name: str
    kind: str
    staging_path: str
    source_url: str = ""
    content_type: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "StagedAttachment":
        kind = data.get("kind")
        if kind not in MEDIA_KINDS:
            raise ValueError(f"Unsupported attachment kind: {kind!r}")
        return cls(
            file_id=str(data["file_id"]),
            name=str(data.get("name") or data["file_id"]),
            kind=kind,
            staging_path=str(data["staging_path"]),
            source_url=str(data.get("source_url") or ""),
            content_type=str(data.get("content_type") or ""),
        )


@dataclass
class SubmissionWorkUnit:
    job_id: str
    gallery_id: str
    course_id: str
    assignment_id: str
    learner_id: str
    learner_name: str
    learner_email: str = ""
    submitted_at: str | None = None  # ISO-8601
    late: bool = False
    attachments: list[StagedAttachment] = field(default_factory=list)
    existing_artwork_id: str | None = None

    @property
    def unit_key(self) -> str:
        return self.learner_id

    @property
    def artwork_id(self) -> uuid.UUID:
        """The artwork this unit upserts; stable across redeliveries."""
        if self.existing_artwork_id:
            return uuid.UUID(str(self.existing_artwork_id))
        return uuid.uuid5(ARTWORK_NAMESPACE, f"{self.job_id}:{self.learner_id}")

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "SubmissionWorkUnit":
        missing = [k for k in ("job_id", "gallery_id", "learner_id") if not data.get(k)]
        if missing:
            raise ValueError(f"Work unit is missing {', '.join(missing)}")
        return cls(
            job_id=str(data["job_id"]),
            gallery_id=str(data["gallery_id"]),
            course_id=str(data.get("course_id") or ""),
            assignment_id=str(data.get("assignment_id") or ""),
            learner_id=str(data["learner_id"]),
            learner_name=str(data.get("learner_name") or data["learner_id"]),
            learner_email=str(data.get("learner_email") or ""),
            submitted_at=data.get("submitted_at"),
            late=bool(data.get("late", False)),
            attachments=[StagedAttachment.from_dict(a) for a in data.get("attachments") or []],
            existing_artwork_id=data.get("existing_artwork_id"),
        )


def display_image_id(artwork_id, file_id: str, page_number: int) -> str:
    return str(uuid.uuid5(ARTWORK_NAMESPACE, f"{artwork_id}:{file_id}:{page_number}"))
