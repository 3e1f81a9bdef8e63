"""
ABAC – Django Settings (Infrastructure Only)
============================================
Django hosts the attribute and rule stores and carries engine
configuration. The decision engine itself does not depend on Django
beyond the DB-backed providers and ``abac.settings.load_settings``.
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get("ABAC_SECRET_KEY", "abac-dev-key-replace-before-deployment")

DEBUG = os.environ.get("ABAC_DEBUG", "1") == "1"

ALLOWED_HOSTS = []

# ── Installed Apps ────────────────────────────────────────────
INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    # ── ABAC Stores ───────────────────────────────────────
    "abac.attribute_store",
    "abac.rule_store",
]

# ── Database ──────────────────────────────────────────────────
# SQLite for development. Production DB configured separately.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

# ── Internationalization ──────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# ── Default Primary Key ──────────────────────────────────────
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── ABAC Engine ──────────────────────────────────────────────
# Read by abac.settings.load_settings().
ABAC = {
    "BUSINESS_HOURS_START": 8,
    "BUSINESS_HOURS_END": 18,
    "BUSINESS_TIMEZONE": "UTC",
    "INTERNAL_NETWORKS": [
        "10.0.0.0/8",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "127.0.0.0/8",
    ],
    "ATTRIBUTE_CACHE_TTL_SECONDS": 900,
    "ATTRIBUTE_CACHE_MAX_SIZE": 5000,
}

# ── Logging ──────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "plain",
        },
    },
    "loggers": {
        "abac": {
            "handlers": ["console"],
            "level": os.environ.get("ABAC_LOG_LEVEL", "INFO"),
            "propagate": True,
        },
    },
}
