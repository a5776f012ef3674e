import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name, default=False):
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-only-insecure-key-change-me")
DEBUG = _env_bool("DJANGO_DEBUG", True)
ALLOWED_HOSTS = [h.strip() for h in os.environ.get("DJANGO_ALLOWED_HOSTS", "*").split(",") if h.strip()]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "channels",
    "accounts",
    "inventory",
    "blood",
    "communication",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

ROOT_URLCONF = "config.urls"

# JSON clients authenticate with the session cookie and send the token from
# /api/csrf/ in the X-CSRFToken header.
CSRF_FAILURE_VIEW = "core.http.csrf_failure"

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

ASGI_APPLICATION = "config.asgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("DJANGO_DB_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

# In-memory layer is fine for a single process; use channels_redis in production.
CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels.layers.InMemoryChannelLayer",
    }
}

AUTH_USER_MODEL = "accounts.CustomUser"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.environ.get("DJANGO_TIME_ZONE", "UTC")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "bloodbank": {
            "format": "{asctime} [{levelname}] {name}: {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "bloodbank",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        name: {"level": os.environ.get("DJANGO_LOG_LEVEL", "INFO")}
        for name in ("accounts", "blood", "communication", "core", "inventory")
    },
}

# -------- Blood bank tunables --------
BB_NOTIFICATION_DISPATCHER = os.environ.get(
    "BB_NOTIFICATION_DISPATCHER",
    "communication.dispatch.ChannelLayerDispatcher",
)
BB_NOTIFICATION_EXPIRY_HOURS = 24
BB_NOTIFICATION_WEBHOOK_URL = os.environ.get("BB_NOTIFICATION_WEBHOOK_URL", "")
BB_NOTIFICATION_WEBHOOK_TIMEOUT = 10

BB_AUTO_OUTREACH = _env_bool("BB_AUTO_OUTREACH", True)
BB_OUTREACH_MAX_DONORS = 10
BB_OUTREACH_DONORS_PER_UNIT = 3

BB_ELIGIBILITY_REMIND_DAYS_BEFORE = 0  # 0 = same day
BB_ELIGIBILITY_REMIND_REPEAT_DAYS = 7

BB_DEFAULT_COLLECTION_LOCATION = "Main blood bank"
