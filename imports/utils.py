import mimetypes
import re

from django.conf import settings

from .units import DOCUMENT, IMAGE

DOCUMENT_CONTENT_TYPES = {"application/pdf"}

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def resolve_media_kind(content_type: str | None, name: str | None = None) -> str | None:
    """Return 'image' | 'document' for supported content, else None."""
    mime = (content_type or "").split(";")[0].strip().lower()
    if not mime and name:
        mime, _ = mimetypes.guess_type(name)
        mime = mime or ""
    if mime.startswith("image/"):
        return IMAGE
    if mime in DOCUMENT_CONTENT_TYPES:
        return DOCUMENT
    return None


def safe_key_part(value) -> str:
    return _UNSAFE_KEY_CHARS.sub("_", str(value)) or "_"


def staging_key(job_id, learner_id, file_id) -> str:
    """staging/<job>/<learner>/<file>; one key per downloaded attachment."""
    return "/".join(
        [
            settings.IMPORT_STAGING_PREFIX.strip("/"),
            safe_key_part(job_id),
            safe_key_part(learner_id),
            safe_key_part(file_id),
        ]
    )


def gallery_image_key(gallery_id, image_id) -> str:
    return f"galleries/{safe_key_part(gallery_id)}/images/{image_id}.jpg"


def gallery_thumbnail_key(gallery_id, image_id) -> str:
    return f"galleries/{safe_key_part(gallery_id)}/thumbnails/{image_id}.jpg"
