"""
Django settings for sales_project.

Sensitive values and the database come from environment variables; the
defaults are for local development (SQLite file next to manage.py).
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# IMPORTANT: change this in production
SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-change-me-please")
DEBUG = _env_bool("DJANGO_DEBUG", True)
ALLOWED_HOSTS = [
    h for h in os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h
]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "sales_core",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    # attaches request.company (must run after authentication)
    "sales_core.middleware.CurrentCompanyMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "sales_project.urls"
WSGI_APPLICATION = "sales_project.wsgi.application"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
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

# Database: SQLite for development, PostgreSQL via DB_* variables
DATABASES = {
    "default": {
        "ENGINE": os.environ.get("DB_ENGINE", "django.db.backends.sqlite3"),
        "NAME": os.environ.get("DB_NAME", str(BASE_DIR / "db.sqlite3")),
        "USER": os.environ.get("DB_USER", ""),
        "PASSWORD": os.environ.get("DB_PASSWORD", ""),
        "HOST": os.environ.get("DB_HOST", ""),
        "PORT": os.environ.get("DB_PORT", ""),
        # services open their own transactions
        "ATOMIC_REQUESTS": False,
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.environ.get("DJANGO_TIME_ZONE", "Africa/Tunis")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"

# ----------------------------
# Celery
# ----------------------------
CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND", CELERY_BROKER_URL)
CELERY_TASK_ALWAYS_EAGER = _env_bool("CELERY_TASK_ALWAYS_EAGER", False)

# ----------------------------
# Logging
# ----------------------------
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "loggers": {
        "sales_core": {
            "handlers": ["console"],
            "level": os.environ.get("SALES_LOG_LEVEL", "INFO"),
        },
    },
}

# ----------------------------
# Document engine (read through sales_core.conf)
# ----------------------------
SALES_NUMBERING = {
    "quote": {"prefix": "DV", "include_year": True, "padding": 3},
    "delivery_note": {"prefix": "BL", "include_year": True, "padding": 3},
    "purchase_order": {"prefix": "CF", "include_year": True, "padding": 3},
    "invoice": {"prefix": "FA", "include_year": True, "padding": 3},
}
SALES_CREDIT_NOTE_PREFIX = "AV"
SALES_PAYMENT_TERM_DAYS = 30
# "warn" keeps the first-seen price and reports divergences, "reject" aborts
SALES_CONSOLIDATION_PRICE_POLICY = os.environ.get("SALES_CONSOLIDATION_PRICE_POLICY", "warn")
SALES_CONSOLIDATION_MARKS_DELIVERED = False
SALES_ALLOW_NEGATIVE_STOCK = True
