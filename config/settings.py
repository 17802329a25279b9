"""
Shop Ledger – Django Settings (Infrastructure Only)
=====================================================
Django hosts the notification journal. The ledger engine itself
never imports Django; only shopcore.journal does.

Values can be overridden from the environment:
    SHOP_LEDGER_SECRET_KEY, SHOP_LEDGER_DEBUG, SHOP_LEDGER_DB_NAME
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get(
    "SHOP_LEDGER_SECRET_KEY", "shop-ledger-dev-key-replace-before-deployment"
)

DEBUG = os.environ.get("SHOP_LEDGER_DEBUG", "0") == "1"

ALLOWED_HOSTS = []

# ── Installed Apps ────────────────────────────────────────────
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "shopcore.journal",
]

MIDDLEWARE = []

# ── Database ──────────────────────────────────────────────────
# SQLite for development. Production DB configured separately.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("SHOP_LEDGER_DB_NAME", str(BASE_DIR / "journal.sqlite3")),
    }
}

# ── Internationalization ──────────────────────────────────────
TIME_ZONE = "UTC"
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Logging ───────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "console": {"class": "logging.StreamHandler"},
    },
    "loggers": {
        "shop": {
            "handlers": ["console"],
            "level": os.environ.get("SHOP_LEDGER_LOG_LEVEL", "INFO"),
        },
    },
}
