from django.urls import path
from .views import ImportJobDetailView, ProcessWorkUnitView, StartImportView

urlpatterns = [
    path("imports/", StartImportView.as_view(), name="start_import"),
    path("imports/<uuid:job_id>/", ImportJobDetailView.as_view(), name="import_job_detail"),
    path("tasks/process-unit/", ProcessWorkUnitView.as_view(), name="process_work_unit"),
]
