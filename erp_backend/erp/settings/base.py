"""
PATH: erp/settings/base.py

BASE SETTINGS (shared by dev + prod)

Operational maturity:
- Env-driven configuration (django-environ, optional .env file)
- Structured logging (console in dev, JSON lines in prod)
- Sentry (optional): error visibility in production
- Accounting engine toggles (currency, fiscal period policy, auto-posting)
"""

from __future__ import annotations

import sys
from pathlib import Path

import environ

from erp.logging_config import get_logging_config

# -----------------------------------------
# BASE DIRECTORY
# -----------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# -----------------------------------------
# TEST MODE DETECTION
# -----------------------------------------
TESTING = "test" in sys.argv or "pytest" in sys.modules

# -----------------------------------------
# ENV (django-environ)
# -----------------------------------------
env = environ.Env(
    DEBUG=(bool, True),
    SECRET_KEY=(str, ""),
    TIME_ZONE=(str, "UTC"),
    ALLOWED_HOSTS=(list, ["localhost", "127.0.0.1"]),
    DATABASE_URL=(str, f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
    # Logging
    LOG_LEVEL=(str, ""),
    LOG_FORMAT=(str, ""),
    # Sentry (optional; enable by setting SENTRY_DSN)
    SENTRY_DSN=(str, ""),
    SENTRY_ENVIRONMENT=(str, "development"),
    SENTRY_TRACES_SAMPLE_RATE=(float, 0.0),
    SENTRY_SEND_PII=(bool, False),
    # Accounting engine
    ACCOUNTING_DEFAULT_CURRENCY=(str, "QAR"),
    ACCOUNTING_REQUIRE_FISCAL_PERIOD=(bool, False),
    ACCOUNTING_AUTO_POST_DOCUMENT_JOURNALS=(bool, True),
)

# -----------------------------------------
# LOAD .env
# -----------------------------------------
env_file_1 = BASE_DIR / ".env"
env_file_2 = BASE_DIR.parent / ".env"

if env_file_1.exists():
    env.read_env(str(env_file_1))
elif env_file_2.exists():
    env.read_env(str(env_file_2))

# -----------------------------------------
# CORE SECURITY
# -----------------------------------------
SECRET_KEY = (env("SECRET_KEY") or "dev-insecure-change-me").strip()
DEBUG = env.bool("DEBUG")
ALLOWED_HOSTS = env.list("ALLOWED_HOSTS")

# -----------------------------------------
# I18N / TZ
# -----------------------------------------
LANGUAGE_CODE = "en-us"
TIME_ZONE = (env("TIME_ZONE") or "UTC").strip()
USE_I18N = True
USE_TZ = True

# -----------------------------------------
# INSTALLED APPS
# -----------------------------------------
# Tenants, users, parties and cost centers live outside this service and are
# referenced by UUID only, so no auth/contenttypes apps are required here.
INSTALLED_APPS = [
    "rest_framework",
    "accounting.apps.AccountingConfig",
    "invoices.apps.InvoicesConfig",
    "payments.apps.PaymentsConfig",
]

MIDDLEWARE: list[str] = []

# -----------------------------------------
# REST FRAMEWORK
# -----------------------------------------
# Serializers are used as the input-validation layer of the services;
# no authentication is wired in this service.
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (),
    "DEFAULT_PERMISSION_CLASSES": (),
    "UNAUTHENTICATED_USER": None,
    "COERCE_DECIMAL_TO_STRING": True,
}

# -----------------------------------------
# DATABASE
# -----------------------------------------
DATABASES = {
    "default": env.db("DATABASE_URL"),
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -----------------------------------------
# LOGGING
# -----------------------------------------
LOG_LEVEL = (env("LOG_LEVEL") or "").strip().upper() or None
LOG_FORMAT = (env("LOG_FORMAT") or "").strip().lower() or None
LOGGING = get_logging_config(DEBUG, level=LOG_LEVEL, fmt=LOG_FORMAT)

# -----------------------------------------
# ACCOUNTING ENGINE
# -----------------------------------------
ACCOUNTING_DEFAULT_CURRENCY = (env("ACCOUNTING_DEFAULT_CURRENCY") or "QAR").strip().upper()
ACCOUNTING_REQUIRE_FISCAL_PERIOD = env.bool("ACCOUNTING_REQUIRE_FISCAL_PERIOD")
ACCOUNTING_AUTO_POST_DOCUMENT_JOURNALS = env.bool("ACCOUNTING_AUTO_POST_DOCUMENT_JOURNALS")

# -----------------------------------------
# SENTRY (optional)
# -----------------------------------------
SENTRY_DSN = (env("SENTRY_DSN") or "").strip()
SENTRY_ENVIRONMENT = (env("SENTRY_ENVIRONMENT") or "development").strip()
SENTRY_TRACES_SAMPLE_RATE = float(env("SENTRY_TRACES_SAMPLE_RATE"))
SENTRY_SEND_PII = env.bool("SENTRY_SEND_PII")

if SENTRY_DSN and not TESTING:
    import sentry_sdk
    from sentry_sdk.integrations.django import DjangoIntegration

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        environment=SENTRY_ENVIRONMENT,
        integrations=[DjangoIntegration()],
        traces_sample_rate=SENTRY_TRACES_SAMPLE_RATE,
        send_default_pii=SENTRY_SEND_PII,
    )
