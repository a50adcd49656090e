from io import BytesIO
from unittest import mock

import fitz
from botocore.exceptions import ClientError
from PIL import Image

from imports.exceptions import ExternalSourceFailure
from imports.models import Gallery, ImportJob
from imports.units import StagedAttachment, SubmissionWorkUnit


def image_bytes(width=640, height=480, color=(200, 40, 40), fmt="PNG", mode="RGB"):
    img = Image.new(mode, (width, height), color)
    buf = BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def pdf_bytes(pages=1, width=300, height=400):
    doc = fitz.open()
    for number in range(1, pages + 1):
        page = doc.new_page(width=width, height=height)
        page.insert_text((30, 50), f"Page {number}")
    data = doc.tobytes()
    doc.close()
    return data


def create_gallery(gallery_id="gallery-1", **kwargs):
    kwargs.setdefault("name", "Design Basics - Logo")
    return Gallery.objects.create(id=gallery_id, **kwargs)


def create_job(gallery=None, status=ImportJob.Status.PROCESSING, unit_keys=None, **kwargs):
    """``unit_keys`` registers pending units the way the orchestrator does."""
    gallery = gallery or create_gallery()
    if unit_keys is not None:
        kwargs.setdefault("total_units", len(unit_keys))
        kwargs.setdefault("unit_results", {key: ImportJob.UNIT_PENDING for key in unit_keys})
    kwargs.setdefault("course_id", "course-1")
    kwargs.setdefault("assignment_id", "assignment-1")
    kwargs.setdefault("created_by", "teacher@example.com")
    return ImportJob.objects.create(gallery=gallery, status=status, **kwargs)


def make_attachment(file_id="file-1", kind="image", name=None, staging_path=None):
    return StagedAttachment(
        file_id=file_id,
        name=name or f"{file_id}.png",
        kind=kind,
        staging_path=staging_path or f"staging/job/learner/{file_id}",
        source_url=f"https://drive.google.com/file/d/{file_id}/view",
        content_type="image/png" if kind == "image" else "application/pdf",
    )


def make_unit(job, learner_id="learner-1", attachments=None, **kwargs):
    kwargs.setdefault("learner_name", f"Learner {learner_id}")
    kwargs.setdefault("learner_email", f"{learner_id}@example.com")
    return SubmissionWorkUnit(
        job_id=str(job.pk),
        gallery_id=job.gallery_id,
        course_id=job.course_id,
        assignment_id=job.assignment_id,
        learner_id=learner_id,
        attachments=attachments if attachments is not None else [make_attachment()],
        **kwargs,
    )


class FakeObjectStore:
    """In-memory stand-in for imports.s3; ``patch()`` swaps it in."""

    def __init__(self, objects=None):
        self.objects = dict(objects or {})
        self.deleted = []
        self.fail_puts_for = set()

    def put_object(self, key, data, content_type=None, metadata=None):
        if any(key.startswith(prefix) for prefix in self.fail_puts_for):
            raise ClientError({"Error": {"Code": "500", "Message": "boom"}}, "PutObject")
        self.objects[key] = data

    def get_object(self, key):
        try:
            return self.objects[key]
        except KeyError:
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject")

    def delete_object(self, key):
        self.deleted.append(key)
        self.objects.pop(key, None)

    def public_url(self, key):
        return f"https://storage.example.com/bucket/{key}"

    def keys(self, prefix=""):
        return sorted(k for k in self.objects if k.startswith(prefix))

    def patch(self):
        return mock.patch.multiple(
            "imports.s3",
            put_object=self.put_object,
            get_object=self.get_object,
            delete_object=self.delete_object,
            public_url=self.public_url,
        )


def submission(user_id, file_ids, state="TURNED_IN", late=False, update_time="2024-02-10T09:00:00Z"):
    return {
        "userId": user_id,
        "state": state,
        "late": late,
        "updateTime": update_time,
        "assignmentSubmission": {
            "attachments": [
                {"driveFile": {"id": fid, "title": f"{fid}.png", "alternateLink": f"https://drive.example/{fid}"}}
                for fid in file_ids
            ]
        },
    }


class FakeClassroomClient:
    """Serves canned Classroom/Drive responses; ``None`` entries raise."""

    def __init__(self, pages=None, profiles=None, files=None, course_name="Design Basics", assignment_title="Logo"):
        self.pages = pages or [[]]
        self.profiles = profiles or {}
        # file_id -> (name, mime_type, bytes or None for a failing download)
        self.files = files or {}
        self.course_name = course_name
        self.assignment_title = assignment_title
        self.list_calls = []
        self.fail_listing = False

    def list_submissions(self, course_id, assignment_id, states, page_token=None):
        self.list_calls.append((course_id, assignment_id, tuple(states), page_token))
        if self.fail_listing:
            raise ExternalSourceFailure("listing failed")
        index = int(page_token) if page_token else 0
        data = {"studentSubmissions": self.pages[index]}
        if index + 1 < len(self.pages):
            data["nextPageToken"] = str(index + 1)
        return data

    def get_user_profile(self, user_id):
        profile = self.profiles.get(user_id)
        if profile is None:
            raise ExternalSourceFailure(f"no profile for {user_id}")
        return {"name": {"fullName": profile[0]}, "emailAddress": profile[1]}

    def get_course(self, course_id):
        if self.course_name is None:
            raise ExternalSourceFailure("no course")
        return {"id": course_id, "name": self.course_name}

    def get_course_work(self, course_id, assignment_id):
        if self.assignment_title is None:
            raise ExternalSourceFailure("no course work")
        return {"id": assignment_id, "title": self.assignment_title}

    def get_file_metadata(self, file_id):
        name, mime_type, _ = self.files[file_id]
        return {"id": file_id, "name": name, "mimeType": mime_type}

    def download_file(self, file_id):
        data = self.files[file_id][2]
        if data is None:
            raise ExternalSourceFailure(f"download of {file_id} failed")
        return data
