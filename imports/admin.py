from django.contrib import admin

from .models import Artwork, Gallery, ImportJob


@admin.register(Gallery)
class GalleryAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "course_name", "assignment_name", "last_import_at")
    search_fields = ("id", "name", "course_name", "assignment_name")
    readonly_fields = ("created_at", "updated_at", "last_import_at")


@admin.register(ImportJob)
class ImportJobAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "gallery",
        "status",
        "progress",
        "processed_units",
        "failed_units",
        "total_units",
        "created_by",
        "created_at",
        "completed_at",
    )
    list_filter = ("status",)
    search_fields = ("id", "gallery__id", "course_id", "assignment_id", "created_by")
    readonly_fields = (
        "unit_results",
        "error_files",
        "error_message",
        "created_at",
        "updated_at",
        "completed_at",
    )


@admin.register(Artwork)
class ArtworkAdmin(admin.ModelAdmin):
    list_display = ("title", "student_name", "student_email", "is_late", "submitted_at", "imported_by")
    list_filter = ("is_late",)
    search_fields = ("title", "student_name", "student_email", "student_id")
