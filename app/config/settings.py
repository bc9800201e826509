"""
Django settings for the alias inbox service.

Everything that varies between deployments comes from the environment (or
an optional `.env` file next to `manage.py`) via django-environ.
"""
# system imports
#
from pathlib import Path

# 3rd party imports
#
import environ
import sentry_sdk
from sentry_sdk.integrations.django import DjangoIntegration

BASE_DIR = Path(__file__).resolve().parent.parent

env = environ.Env(
    DEBUG=(bool, False),
    ALLOWED_HOSTS=(list, ["localhost", "127.0.0.1"]),
    LOG_LEVEL=(str, "INFO"),
    MAIL_DOMAIN=(str, "example.com"),
    DEFAULT_ALIAS_LIMIT=(int, 3),
    ALIAS_LIMIT_MAX=(int, 1000),
    SESSION_TTL_SECONDS=(int, 1209600),
    RESET_TTL_SECONDS=(int, 3600),
    MAX_STORE_BYTES=(int, 262144),
    MAX_TEXT_CHARS=(int, 200000),
    PASSWORD_HASH_ITERATIONS=(str, "100000"),
    RESET_EMAIL_API_KEY=(str, ""),
    RESET_EMAIL_FROM=(str, ""),
    APP_BASE_URL=(str, ""),
    MAIL_ARCHIVE_BACKEND=(str, ""),
    MAIL_ARCHIVE_DIR=(str, ""),
    MAIL_ARCHIVE_BUCKET=(str, ""),
    MAIL_ARCHIVE_ENDPOINT_URL=(str, ""),
    MAIL_ARCHIVE_ACCESS_KEY=(str, ""),
    MAIL_ARCHIVE_SECRET_KEY=(str, ""),
    MAIL_ARCHIVE_REGION=(str, "us-east-1"),
    ALIAS_DELETE_PURGES_EMAILS=(bool, False),
    REDIS_URL=(str, "redis://localhost:6379/0"),
    HUEY_IMMEDIATE=(bool, False),
    SENTRY_DSN=(str, None),
    SENTRY_TRACES_SAMPLE_RATE=(float, 0.0),
)
env_file = BASE_DIR / ".env"
if env_file.exists():
    environ.Env.read_env(env_file)

SECRET_KEY = env(
    "DJANGO_SECRET_KEY", default="django-insecure-change-me-for-production"
)
DEBUG = env("DEBUG")
ALLOWED_HOSTS = env("ALLOWED_HOSTS")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "huey.contrib.djhuey",
    "alias_inbox",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "alias_inbox.middleware.NoStoreApiMiddleware",
]

ROOT_URLCONF = "config.urls"

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

WSGI_APPLICATION = "config.wsgi.application"

DATABASES = {
    "default": env.db(
        "DATABASE_URL", default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}"
    ),
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# API responses go to browsers on the same site. The session cookie is the
# only credential, it never leaves this site (SameSite=Lax) and the API
# only accepts JSON bodies.
#
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "alias_inbox.authentication.SessionTokenAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
    ],
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "EXCEPTION_HANDLER": "alias_inbox.views.api_exception_handler",
    "UNAUTHENTICATED_USER": "django.contrib.auth.models.AnonymousUser",
}

######################################################################
#
# Alias inbox configuration
#
AUTH_COOKIE_NAME = "session"
MAIL_DOMAIN = env("MAIL_DOMAIN").lower()
DEFAULT_ALIAS_LIMIT = env("DEFAULT_ALIAS_LIMIT")
ALIAS_LIMIT_MAX = env("ALIAS_LIMIT_MAX")
SESSION_TTL_SECONDS = env("SESSION_TTL_SECONDS")
RESET_TTL_SECONDS = env("RESET_TTL_SECONDS")
MAX_STORE_BYTES = env("MAX_STORE_BYTES")
MAX_TEXT_CHARS = env("MAX_TEXT_CHARS")

# Clamped to the supported range where it is used. A value that is not a
# number means the maximum.
#
PASSWORD_HASH_ITERATIONS = env("PASSWORD_HASH_ITERATIONS")

# Password reset mail is sent through Postmark. Without an API key reset
# tokens are still issued but not mailed.
#
RESET_EMAIL_API_KEY = env("RESET_EMAIL_API_KEY")
RESET_EMAIL_FROM = env("RESET_EMAIL_FROM")
APP_BASE_URL = env("APP_BASE_URL")

# Raw message archive: "" (off), "local", or "s3".
#
MAIL_ARCHIVE_BACKEND = env("MAIL_ARCHIVE_BACKEND")
MAIL_ARCHIVE_DIR = env("MAIL_ARCHIVE_DIR")
MAIL_ARCHIVE_BUCKET = env("MAIL_ARCHIVE_BUCKET")
MAIL_ARCHIVE_ENDPOINT_URL = env("MAIL_ARCHIVE_ENDPOINT_URL")
MAIL_ARCHIVE_ACCESS_KEY = env("MAIL_ARCHIVE_ACCESS_KEY")
MAIL_ARCHIVE_SECRET_KEY = env("MAIL_ARCHIVE_SECRET_KEY")
MAIL_ARCHIVE_REGION = env("MAIL_ARCHIVE_REGION")

ALIAS_DELETE_PURGES_EMAILS = env("ALIAS_DELETE_PURGES_EMAILS")

######################################################################
#
# Huey
#
HUEY = {
    "huey_class": "huey.RedisHuey",
    "name": "alias_inbox",
    "immediate": env("HUEY_IMMEDIATE"),
    "connection": {
        "url": env("REDIS_URL"),
    },
    "consumer": {
        "workers": 2,
        "worker_type": "thread",
    },
}

######################################################################
#
# Logging
#
LOG_LEVEL = env("LOG_LEVEL").upper()
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{asctime} {levelname} {name}: {message}",
            "style": "{",
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
        "django": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "huey": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "alias_inbox": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
    },
}

######################################################################
#
# Sentry
#
SENTRY_DSN = env("SENTRY_DSN")
SENTRY_TRACES_SAMPLE_RATE = env("SENTRY_TRACES_SAMPLE_RATE")
if SENTRY_DSN is not None:
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        traces_sample_rate=SENTRY_TRACES_SAMPLE_RATE,
        integrations=[DjangoIntegration()],
        environment="devel" if DEBUG else "production",
    )
