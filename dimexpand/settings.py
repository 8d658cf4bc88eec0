"""
Django settings for the dimexpand project.

Everything environment specific is read from the process environment;
a .env file at the repository root is loaded first if present.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGOSECRET", "dimexpand-insecure-dev-key")

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

DEBUG = os.getenv("DEBUG", "False").lower() == "true"

ALLOWED_HOSTS = [host for host in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if host]

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "rest_framework",
    "rest_framework.authtoken",
    "dimexpand",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

ROOT_URLCONF = "dimexpand.urls"

ASGI_APPLICATION = "dimexpand.asgi.application"

# metadata store; postgres when configured, a local sqlite file otherwise
if os.getenv("DBHOST"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("DBNAME"),
            "USER": os.getenv("DBUSER"),
            "PASSWORD": os.getenv("DBPASSWORD"),
            "HOST": os.getenv("DBHOST"),
            "PORT": os.getenv("DBPORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "dimexpand.sqlite3",
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# analytics store the dimension values and chart queries run against
ANALYTICS_DB = {
    "host": os.getenv("ANALYTICS_DB_HOST", "localhost"),
    "port": os.getenv("ANALYTICS_DB_PORT", "5432"),
    "database": os.getenv("ANALYTICS_DB_NAME", "analytics"),
    "username": os.getenv("ANALYTICS_DB_USER", "analytics"),
    "password": os.getenv("ANALYTICS_DB_PASSWORD", ""),
    "sslmode": os.getenv("ANALYTICS_DB_SSLMODE", "prefer"),
}

USE_TZ = True
TIME_ZONE = "UTC"

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "dimexpand": {
            "format": "%(asctime)s %(levelname)s %(name)s [%(caller_name)s] user=%(user_id)s %(message)s",
        },
    },
    "handlers": {
        "dimexpand_console": {
            "class": "logging.StreamHandler",
            "formatter": "dimexpand",
        },
    },
    "loggers": {
        "dimexpand": {
            "handlers": ["dimexpand_console"],
            "level": os.getenv("LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}
