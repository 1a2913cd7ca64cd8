"""Base settings for HRS - Payroll Engine."""
from pathlib import Path

import environ

BASE_DIR = Path(__file__).resolve(strict=True).parent.parent.parent
env = environ.Env()

READ_DOT_ENV_FILE = env.bool("DJANGO_READ_DOT_ENV_FILE", default=False)
if READ_DOT_ENV_FILE:
    # OS environment variables take precedence over variables from .env
    env.read_env(str(BASE_DIR / ".env"))

SECRET_KEY = env("DJANGO_SECRET_KEY", default="django-insecure-change-me")

# GENERAL
# ------------------------------------------------------------------------------
DEBUG = env.bool("DJANGO_DEBUG", False)
ALLOWED_HOSTS = env.list("DJANGO_ALLOWED_HOSTS", default=[])
TIME_ZONE = env("DJANGO_TIME_ZONE", default="Africa/Lusaka")
LANGUAGE_CODE = "en-us"
USE_I18N = True
USE_TZ = True

# DATABASES
# ------------------------------------------------------------------------------
DATABASES = {
    "default": env.db("DATABASE_URL", default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
}
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# APPS
# ------------------------------------------------------------------------------
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "core",
    "employees",
    "payroll",
]

# PAYROLL
# ------------------------------------------------------------------------------
# Actor recorded in the audit log for scheduled runs
PAYROLL_DEFAULT_ACTOR = env("PAYROLL_DEFAULT_ACTOR", default="System")
# Transfer file name is <prefix>-<YYYY-MM-DD>.csv
PAYROLL_ACH_FILE_PREFIX = env("PAYROLL_ACH_FILE_PREFIX", default="ACH-PAYROLL")

# LOGGING
# ------------------------------------------------------------------------------
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(levelname)s %(asctime)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "payroll": {
            "handlers": ["console"],
            "level": env("PAYROLL_LOG_LEVEL", default="INFO"),
            "propagate": False,
        },
    },
}
