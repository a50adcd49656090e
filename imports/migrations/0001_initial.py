import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Gallery",
            fields=[
                ("id", models.CharField(max_length=128, primary_key=True, serialize=False)),
                ("name", models.CharField(blank=True, default="", max_length=512)),
                ("course_id", models.CharField(blank=True, default="", max_length=128)),
                ("course_name", models.CharField(blank=True, default="", max_length=512)),
                ("assignment_id", models.CharField(blank=True, default="", max_length=128)),
                ("assignment_name", models.CharField(blank=True, default="", max_length=512)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("last_import_at", models.DateTimeField(blank=True, null=True)),
            ],
        ),
        migrations.CreateModel(
            name="ImportJob",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("course_id", models.CharField(max_length=128)),
                ("assignment_id", models.CharField(max_length=128)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("error", "Error"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("progress", models.PositiveSmallIntegerField(default=0)),
                ("total_units", models.PositiveIntegerField(default=0)),
                ("processed_units", models.PositiveIntegerField(default=0)),
                ("failed_units", models.PositiveIntegerField(default=0)),
                ("unit_results", models.JSONField(blank=True, default=dict)),
                ("error_files", models.JSONField(blank=True, default=list)),
                ("error_message", models.TextField(blank=True, default="")),
                ("created_by", models.CharField(max_length=254)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "gallery",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="import_jobs",
                        to="imports.gallery",
                    ),
                ),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="Artwork",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("title", models.CharField(max_length=512)),
                ("images", models.JSONField(blank=True, default=list)),
                ("original_file_url", models.URLField(blank=True, default="", max_length=1024)),
                ("file_types", models.JSONField(blank=True, default=list)),
                ("student_id", models.CharField(max_length=128)),
                ("student_name", models.CharField(blank=True, default="", max_length=256)),
                ("student_email", models.CharField(blank=True, default="", max_length=254)),
                ("submitted_at", models.DateTimeField(blank=True, null=True)),
                ("is_late", models.BooleanField(default=False)),
                ("course_id", models.CharField(max_length=128)),
                ("assignment_id", models.CharField(max_length=128)),
                ("like_count", models.PositiveIntegerField(default=0)),
                ("comments", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "imported_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="artworks",
                        to="imports.importjob",
                    ),
                ),
            ],
            options={"ordering": ["student_name", "created_at"]},
        ),
        migrations.AddField(
            model_name="gallery",
            name="artworks",
            field=models.ManyToManyField(blank=True, related_name="galleries", to="imports.artwork"),
        ),
    ]
