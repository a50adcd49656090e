from pathlib import Path
import os
from dotenv import load_dotenv
from django.core.exceptions import ImproperlyConfigured

# -----------------------------------------------------
# Env helpers
# -----------------------------------------------------
def env(name: str, default=None, *, required: bool = False):
    val = os.getenv(name, default)
    if required and (val is None or (isinstance(val, str) and val.strip() == "")):
        raise ImproperlyConfigured(f"Missing required environment variable: {name}")
    return val

def env_bool(name: str, default: bool = False) -> bool:
    return str(os.getenv(name, str(default))).lower() in {"1", "true", "yes", "on"}

def env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError as exc:
        raise ImproperlyConfigured(f"Environment variable {name} must be an integer") from exc

def env_list(name: str, default: str = "") -> list[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]

# -----------------------------------------------------
# Core
# -----------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

DEBUG = env_bool("DEBUG", False)
SECRET_KEY = env("DJANGO_SECRET_KEY", "dev-only-secret-key-change-me", required=not DEBUG)
ALLOWED_HOSTS = env_list("ALLOWED_HOSTS", "127.0.0.1,localhost,testserver")
CSRF_TRUSTED_ORIGINS = env_list("CSRF_TRUSTED_ORIGINS")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "imports",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

ROOT_URLCONF = "gallery_pipeline.urls"
WSGI_APPLICATION = "gallery_pipeline.wsgi.application"

# Only the admin renders templates.
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_TZ = True

STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -----------------------------------------------------
# Database: Postgres when DB_HOST is set, SQLite otherwise
# -----------------------------------------------------
def _database() -> dict:
    if not os.getenv("DB_HOST"):
        return {"ENGINE": "django.db.backends.sqlite3", "NAME": BASE_DIR / "db.sqlite3"}
    options = {"sslmode": os.getenv("DB_SSLMODE")} if os.getenv("DB_SSLMODE") else {}
    return {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": env("DB_NAME", "gallery_pipeline"),
        "USER": env("DB_USER", "gallery_user"),
        "PASSWORD": env("DB_PASSWORD", ""),
        "HOST": env("DB_HOST"),
        "PORT": env("DB_PORT", "5432"),
        "CONN_MAX_AGE": env_int("DB_CONN_MAX_AGE", 60),
        "OPTIONS": options,
    }

DATABASES = {"default": _database()}

# -----------------------------------------------------
# Django REST Framework
# -----------------------------------------------------
REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"]
    + (["rest_framework.renderers.BrowsableAPIRenderer"] if DEBUG else []),
    "DEFAULT_PARSER_CLASSES": ["rest_framework.parsers.JSONParser"],
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.SessionAuthentication",
        "rest_framework.authentication.BasicAuthentication",
    ],
}

# -----------------------------------------------------
# Celery / Redis
# -----------------------------------------------------
CELERY_BROKER_URL = env("CELERY_BROKER_URL", "redis://127.0.0.1:6379/0")
CELERY_RESULT_BACKEND = env("CELERY_RESULT_BACKEND", "redis://127.0.0.1:6379/0")
CELERY_TASK_TRACK_STARTED = True
CELERY_TASK_SERIALIZER = "json"
CELERY_ACCEPT_CONTENT = ["json"]
# Worst-case document conversion; the broker redelivers after this budget.
CELERY_TASK_TIME_LIMIT = env_int("CELERY_TASK_TIME_LIMIT", 60 * 30)  # seconds
CELERY_TASK_SOFT_TIME_LIMIT = env_int("CELERY_TASK_SOFT_TIME_LIMIT", 60 * 28)
CELERY_TASK_ACKS_LATE = True
CELERY_TASK_REJECT_ON_WORKER_LOST = True
CELERY_WORKER_PREFETCH_MULTIPLIER = 1
CELERY_BROKER_TRANSPORT_OPTIONS = {"visibility_timeout": CELERY_TASK_TIME_LIMIT + 60}
CELERY_TASK_ALWAYS_EAGER = env_bool("CELERY_TASK_ALWAYS_EAGER", False)

# -----------------------------------------------------
# S3 / MinIO (env-driven; no hardcoded secrets)
# -----------------------------------------------------
S3_ENDPOINT_URL = os.getenv("S3_ENDPOINT_URL") or "http://127.0.0.1:9000"  # fine for local
S3_PUBLIC_ENDPOINT = os.getenv("S3_PUBLIC_ENDPOINT", S3_ENDPOINT_URL)
S3_REGION = os.getenv("S3_REGION", "us-east-1")
S3_BUCKET = os.getenv("S3_BUCKET", "gallery-local")
S3_ACCESS_KEY = os.getenv("S3_ACCESS_KEY")          # set in .env for local
S3_SECRET_KEY = os.getenv("S3_SECRET_KEY")          # set in .env for local

# -----------------------------------------------------
# Google Classroom / Drive (submission source)
# -----------------------------------------------------
CLASSROOM_API_BASE_URL = os.getenv("CLASSROOM_API_BASE_URL", "https://classroom.googleapis.com/v1")
DRIVE_API_BASE_URL = os.getenv("DRIVE_API_BASE_URL", "https://www.googleapis.com/drive/v3")
CLASSROOM_ACCESS_TOKEN = os.getenv("CLASSROOM_ACCESS_TOKEN", "")
CLASSROOM_PAGE_SIZE = env_int("CLASSROOM_PAGE_SIZE", 100)
CLASSROOM_REQUEST_TIMEOUT = env_int("CLASSROOM_REQUEST_TIMEOUT", 60)  # seconds

# -----------------------------------------------------
# Import pipeline
# -----------------------------------------------------
# "queued" hands work units to Celery; "inline" runs them in-process (offline/dev).
IMPORT_DISPATCH_MODE = os.getenv("IMPORT_DISPATCH_MODE", "queued")
IMPORT_TASK_STAGGER_SECONDS = env_int("IMPORT_TASK_STAGGER_SECONDS", 2)
IMPORT_TASK_MAX_RETRIES = env_int("IMPORT_TASK_MAX_RETRIES", 3)
# Shared secret for POST /api/tasks/process-unit/; empty disables the endpoint.
IMPORT_TASK_ENDPOINT_TOKEN = os.getenv("IMPORT_TASK_ENDPOINT_TOKEN", "")
IMPORT_STAGING_PREFIX = os.getenv("IMPORT_STAGING_PREFIX", "staging")
IMPORT_IMAGE_MAX_DIMENSION = env_int("IMPORT_IMAGE_MAX_DIMENSION", 1920)
IMPORT_THUMBNAIL_SIZE = env_int("IMPORT_THUMBNAIL_SIZE", 400)
IMPORT_IMAGE_QUALITY = env_int("IMPORT_IMAGE_QUALITY", 85)
IMPORT_THUMBNAIL_QUALITY = env_int("IMPORT_THUMBNAIL_QUALITY", 80)
IMPORT_PDF_DPI = env_int("IMPORT_PDF_DPI", 150)

# -----------------------------------------------------
# Logging
# -----------------------------------------------------
IMPORT_LOG_LEVEL = os.getenv("IMPORT_LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "celery_task_id": {"()": "imports.logging.CeleryTaskIDFilter"},
    },
    "formatters": {
        "long": {
            "format": "[{asctime} {levelname} {name}:{lineno}{task_id}] {message}",
            "datefmt": "%Y-%m-%dT%H:%M:%S",
            "style": "{",
        },
    },
    "handlers": {
        "stream": {
            "class": "logging.StreamHandler",
            "level": "DEBUG",
            "formatter": "long",
            "filters": ["celery_task_id"],
        },
    },
    "root": {"handlers": ["stream"], "level": "WARNING"},
    "loggers": {
        "django": {"handlers": ["stream"], "level": "INFO", "propagate": False},
        "celery": {"handlers": ["stream"], "level": "INFO", "propagate": False},
        "imports": {"handlers": ["stream"], "level": IMPORT_LOG_LEVEL, "propagate": False},
    },
}
