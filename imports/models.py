import uuid
from django.db import models


class Gallery(models.Model):
    id = models.CharField(primary_key=True, max_length=128)
    name = models.CharField(max_length=512, blank=True, default="")
    course_id = models.CharField(max_length=128, blank=True, default="")
    course_name = models.CharField(max_length=512, blank=True, default="")
    assignment_id = models.CharField(max_length=128, blank=True, default="")
    assignment_name = models.CharField(max_length=512, blank=True, default="")
    # Artwork ids added by finalization; only ever grows.
    artworks = models.ManyToManyField("Artwork", related_name="galleries", blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    last_import_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return self.name or self.id


class ImportJob(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending"
        PROCESSING = "processing"
        COMPLETED = "completed"
        ERROR = "error"

    TERMINAL_STATUSES = (Status.COMPLETED, Status.ERROR)

    UNIT_PROCESSED = "processed"
    UNIT_FAILED = "failed"
    UNIT_PENDING = "pending"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    gallery = models.ForeignKey(Gallery, on_delete=models.CASCADE, related_name="import_jobs")
    course_id = models.CharField(max_length=128)
    assignment_id = models.CharField(max_length=128)

    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    progress = models.PositiveSmallIntegerField(default=0)  # 0..100
    # One unit per learner submission, not per attachment file.
    total_units = models.PositiveIntegerField(default=0)
    processed_units = models.PositiveIntegerField(default=0)
    failed_units = models.PositiveIntegerField(default=0)
    # {unit_key: "pending" | "processed" | "failed"}, seeded with every
    # dispatched unit; only these keys are ever counted.
    unit_results = models.JSONField(default=dict, blank=True)
    # Opaque failure markers (staging paths, external file ids); may repeat.
    error_files = models.JSONField(default=list, blank=True)
    error_message = models.TextField(blank=True, default="")

    created_by = models.CharField(max_length=254)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"ImportJob {self.id} ({self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    @property
    def resolved_units(self) -> int:
        return self.processed_units + self.failed_units


class Artwork(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=512)
    # Ordered [{id, url, thumbnail_url, page_number, width, height, source_file_id}]
    images = models.JSONField(default=list, blank=True)
    original_file_url = models.URLField(max_length=1024, blank=True, default="")
    file_types = models.JSONField(default=list, blank=True)

    student_id = models.CharField(max_length=128)
    student_name = models.CharField(max_length=256, blank=True, default="")
    student_email = models.CharField(max_length=254, blank=True, default="")
    submitted_at = models.DateTimeField(null=True, blank=True)
    is_late = models.BooleanField(default=False)
    course_id = models.CharField(max_length=128)
    assignment_id = models.CharField(max_length=128)
    imported_by = models.ForeignKey(
        ImportJob, on_delete=models.SET_NULL, null=True, blank=True, related_name="artworks"
    )

    # Engagement fields belong to the gallery UI; the importer only initialises them.
    like_count = models.PositiveIntegerField(default=0)
    comments = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["student_name", "created_at"]

    def __str__(self):
        return self.title
