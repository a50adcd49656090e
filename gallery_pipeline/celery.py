"""
Celery app for the work-unit workers:

    celery -A gallery_pipeline worker -l info
"""
import os
from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "gallery_pipeline.settings")

celery_app = Celery("gallery_pipeline")
celery_app.config_from_object("django.conf:settings", namespace="CELERY")
celery_app.autodiscover_tasks(["imports"])
