from .base import *  # noqa: F403

SECRET_KEY = "django-insecure-testkey"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

DEBUG = False

PAYROLL_DEFAULT_ACTOR = "System"
PAYROLL_ACH_FILE_PREFIX = "ACH-PAYROLL"

LOGGING["loggers"]["payroll"]["level"] = "CRITICAL"  # noqa: F405
