from rest_framework import serializers

from .models import ImportJob
from .units import MEDIA_KINDS


class ImportJobSerializer(serializers.ModelSerializer):
    gallery_id = serializers.CharField(read_only=True)
    processed_files = serializers.IntegerField(source="processed_units", read_only=True)
    total_files = serializers.IntegerField(source="total_units", read_only=True)
    failed_files = serializers.IntegerField(source="failed_units", read_only=True)

    class Meta:
        model = ImportJob
        fields = [
            "id",
            "gallery_id",
            "course_id",
            "assignment_id",
            "status",
            "progress",
            "processed_files",
            "total_files",
            "failed_files",
            "error_files",
            "error_message",
            "created_by",
            "created_at",
            "completed_at",
        ]


class StartImportSerializer(serializers.Serializer):
    gallery_id = serializers.CharField(max_length=128)
    course_id = serializers.CharField(max_length=128)
    assignment_id = serializers.CharField(max_length=128)


class StagedAttachmentSerializer(serializers.Serializer):
    file_id = serializers.CharField()
    name = serializers.CharField(required=False, allow_blank=True)
    kind = serializers.ChoiceField(choices=MEDIA_KINDS)
    staging_path = serializers.CharField()
    source_url = serializers.CharField(required=False, allow_blank=True)
    content_type = serializers.CharField(required=False, allow_blank=True)


class SubmissionWorkUnitSerializer(serializers.Serializer):
    """Validates a work unit delivered to the HTTP task endpoint."""

    job_id = serializers.UUIDField(format="hex_verbose")
    gallery_id = serializers.CharField()
    course_id = serializers.CharField(required=False, allow_blank=True)
    assignment_id = serializers.CharField(required=False, allow_blank=True)
    learner_id = serializers.CharField()
    learner_name = serializers.CharField(required=False, allow_blank=True)
    learner_email = serializers.CharField(required=False, allow_blank=True)
    submitted_at = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    late = serializers.BooleanField(required=False, default=False)
    attachments = StagedAttachmentSerializer(many=True)
    existing_artwork_id = serializers.UUIDField(required=False, allow_null=True)
