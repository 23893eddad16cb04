"""
Django settings for mailtrack project - TRACKING SERVER

Serves tracking pixels, click redirects and attachment downloads for
outbound emails, and exposes the collected data to the desktop app.
"""

from pathlib import Path
from environs import Env
import os

env = Env()
env.read_env()

BASE_DIR = Path(__file__).resolve().parent.parent

# ==============================================================================
# SECURITY
# ==============================================================================

SECRET_KEY = env("DJANGO_SECRET_KEY", default="django-insecure-mailtrack-dev-key")
DEBUG = env.bool("DJANGO_DEBUG", default=False)

if not DEBUG:
    ALLOWED_HOSTS = env.list("DJANGO_ALLOWED_HOSTS", default=["localhost"])
    CSRF_TRUSTED_ORIGINS = env.list("DJANGO_CSRF_TRUSTED_ORIGINS", default=[])
else:
    ALLOWED_HOSTS = [
        "localhost",
        "127.0.0.1",
        ".ngrok-free.app",
    ]
    CSRF_TRUSTED_ORIGINS = ["https://*.ngrok-free.app"]


# ==============================================================================
# APPLICATIONS
# ==============================================================================

INSTALLED_APPS = [
    # Django core
    "django.contrib.admin",  # Keep for admin panel
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",  # Required for admin login
    "django.contrib.messages",  # Needed for admin
    "django.contrib.staticfiles",  # Needed for admin static files

    # REST Framework
    "rest_framework",

    # Third-party utilities
    "whitenoise.runserver_nostatic",

    # Local apps
    "email_tracking.apps.EmailTrackingConfig",
]

# ==============================================================================
# MIDDLEWARE
# ==============================================================================

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

# ==============================================================================
# URLS & WSGI
# ==============================================================================

ROOT_URLCONF = "mailtrack.urls"
WSGI_APPLICATION = "mailtrack.wsgi.application"

# ==============================================================================
# TEMPLATES (Admin & tracking pages)
# ==============================================================================

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,  # Admin templates and email_tracking pages
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

# ==============================================================================
# DATABASE
# ==============================================================================

DATABASES = {
    "default": env.dj_db_url(
        "DATABASE_URL", default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}"
    )
}

if DATABASES["default"]["ENGINE"] == "django.db.backends.sqlite3":
    # Writers queue on the database lock instead of failing under concurrent opens.
    # The test database lives on disk so that threads share it.
    DATABASES["default"].setdefault("OPTIONS", {}).update(
        {"timeout": 20, "transaction_mode": "IMMEDIATE"}
    )
    DATABASES["default"]["TEST"] = {"NAME": str(BASE_DIR / "test_db.sqlite3")}

# ==============================================================================
# AUTHENTICATION & PASSWORDS
# ==============================================================================

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

# ==============================================================================
# REST FRAMEWORK
# ==============================================================================

# The desktop app syncs without credentials, as it always has.
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "UNAUTHENTICATED_USER": None,
}

# ==============================================================================
# INTERNATIONALIZATION
# ==============================================================================

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# ==============================================================================
# STATIC FILES (Only for Django Admin)
# ==============================================================================

STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {
        "BACKEND": (
            "django.contrib.staticfiles.storage.StaticFilesStorage"
            if DEBUG
            else "whitenoise.storage.CompressedStaticFilesStorage"
        ),
    },
}

if not DEBUG:
    WHITENOISE_AUTOREFRESH = False
    WHITENOISE_USE_FINDERS = True

# ==============================================================================
# PERSISTENT DATA (attachments served to recipients)
# ==============================================================================

DATA_DIR = Path(env.str("DATA_DIR", default=str(BASE_DIR / "data")))
ATTACHMENTS_DIR = DATA_DIR / "attachments"
ATTACHMENTS_DIR.mkdir(parents=True, exist_ok=True)

# ==============================================================================
# EMAIL TRACKING
# ==============================================================================

# Open detection policy. Every value is read at request time, so it can be
# tuned per deployment from the environment.
EMAIL_TRACKING = {
    "BOT_USER_AGENT_MARKERS": env.list(
        "EMAIL_TRACKING_BOT_USER_AGENT_MARKERS",
        default=[
            "bot",
            "crawler",
            "spider",
            "scraper",
            "preview",
            "validator",
            "checker",
            "monitor",
            "scanner",
            "fetcher",
            "downloader",
            "mail",
            "client",
            "server",
            "daemon",
            "service",
            "curl",
            "wget",
            "python-requests",
            "go-http-client",
            "headless",
        ],
    ),
    "LOOPBACK_ADDRESSES": ["127.0.0.1", "::1", "localhost"],
    "MIN_USER_AGENT_LENGTH": env.int("EMAIL_TRACKING_MIN_USER_AGENT_LENGTH", default=10),
    "SEND_TIME_THRESHOLD_SECONDS": env.float(
        "EMAIL_TRACKING_SEND_TIME_THRESHOLD_SECONDS", default=5
    ),
    "DEDUP_WINDOW_SECONDS": env.float("EMAIL_TRACKING_DEDUP_WINDOW_SECONDS", default=30),
    "TRUST_PROXY": env.bool("EMAIL_TRACKING_TRUST_PROXY", default=True),
}

# ==============================================================================
# EMAIL CONFIGURATION (error reports only)
# ==============================================================================

if DEBUG:
    EMAIL_BACKEND = "django.core.mail.backends.console.EmailBackend"
else:
    EMAIL_BACKEND = "django.core.mail.backends.smtp.EmailBackend"
    EMAIL_HOST = env.str("EMAIL_HOST", default="localhost")
    EMAIL_PORT = env.int("EMAIL_PORT", default=587)
    EMAIL_USE_TLS = env.bool("EMAIL_USE_TLS", default=True)
    EMAIL_HOST_USER = env.str("EMAIL_HOST_USER", default="")
    EMAIL_HOST_PASSWORD = env.str("EMAIL_HOST_PASSWORD", default="")

ADMINS = [tuple(admin.split(":", 1)) for admin in env.list("DJANGO_ADMINS", default=[])]
SERVER_EMAIL = env.str("SERVER_EMAIL", default="root@localhost")

# ==============================================================================
# LOGGING
# ==============================================================================

LOGS_DIR = BASE_DIR / "logs"
LOGS_DIR.mkdir(exist_ok=True)
os.chmod(LOGS_DIR, 0o755)

LOG_FILES = ["debug.log", "info.log", "error.log", "critical.log", "daily.log"]
for log_file in LOG_FILES:
    log_path = LOGS_DIR / log_file
    if not log_path.exists():
        log_path.touch()
    os.chmod(log_path, 0o644)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {process:d} {thread:d} {message}",
            "style": "{",
        },
        "simple": {
            "format": "{levelname} {asctime} {module} {message}",
            "style": "{",
        },
        "detailed": {
            "format": "{levelname} {asctime} {name} {module} {funcName} {lineno} {message}",
            "style": "{",
        },
    },
    "filters": {
        "require_debug_true": {"()": "django.utils.log.RequireDebugTrue"},
        "require_debug_false": {"()": "django.utils.log.RequireDebugFalse"},
    },
    "handlers": {
        "console": {
            "level": "DEBUG" if DEBUG else "INFO",
            "filters": ["require_debug_true"] if DEBUG else ["require_debug_false"],
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
        "file_debug": {
            "level": "DEBUG",
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(LOGS_DIR / "debug.log"),
            "maxBytes": 1024 * 1024 * 5,  # 5 MB
            "backupCount": 10,
            "formatter": "detailed",
        },
        "file_info": {
            "level": "INFO",
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(LOGS_DIR / "info.log"),
            "maxBytes": 1024 * 1024 * 5,
            "backupCount": 10,
            "formatter": "verbose",
        },
        "file_error": {
            "level": "ERROR",
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(LOGS_DIR / "error.log"),
            "maxBytes": 1024 * 1024 * 5,
            "backupCount": 10,
            "formatter": "detailed",
        },
        "critical_errors": {
            "level": "CRITICAL",
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(LOGS_DIR / "critical.log"),
            "maxBytes": 1024 * 1024 * 5,
            "backupCount": 30,
            "formatter": "detailed",
        },
        "timed_rotating_file": {
            "level": "INFO",
            "class": "logging.handlers.TimedRotatingFileHandler",
            "filename": str(LOGS_DIR / "daily.log"),
            "when": "midnight",
            "interval": 1,
            "backupCount": 30,
            "formatter": "verbose",
        },
        "mail_admins": {
            "level": "ERROR",
            "filters": ["require_debug_false"],
            "class": "django.utils.log.AdminEmailHandler",
            "formatter": "detailed",
            "include_html": True,
        },
    },
    "loggers": {
        "": {  # Root logger
            "handlers": ["console", "file_info", "file_error", "timed_rotating_file"],
            "level": "DEBUG" if DEBUG else "INFO",
            "propagate": True,
        },
        "django": {
            "handlers": ["console", "file_info", "mail_admins"],
            "level": "INFO",
            "propagate": False,
        },
        "django.request": {
            "handlers": ["file_error", "mail_admins", "critical_errors"],
            "level": "ERROR",
            "propagate": False,
        },
        "django.security": {
            "handlers": ["file_error", "mail_admins", "critical_errors"],
            "level": "ERROR",
            "propagate": False,
        },
        # App-specific loggers
        "email_tracking": {
            "handlers": ["console", "file_debug", "file_info", "file_error", "timed_rotating_file"],
            "level": "DEBUG" if DEBUG else "INFO",
            "propagate": False,
        },
    },
}

# ==============================================================================
# PRODUCTION SECURITY
# ==============================================================================

if not DEBUG:
    SECURE_SSL_REDIRECT = env.bool("DJANGO_SECURE_SSL_REDIRECT", default=False)
    SECURE_HSTS_SECONDS = env.int("DJANGO_SECURE_HSTS_SECONDS", default=0)
    SECURE_HSTS_INCLUDE_SUBDOMAINS = env.bool("DJANGO_SECURE_HSTS_INCLUDE_SUBDOMAINS", default=False)
    SESSION_COOKIE_SECURE = env.bool("DJANGO_SESSION_COOKIE_SECURE", default=True)
    CSRF_COOKIE_SECURE = env.bool("DJANGO_CSRF_COOKIE_SECURE", default=True)
    SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

# ==============================================================================
# MISC
# ==============================================================================

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
