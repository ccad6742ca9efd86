"""
Development settings – debug-friendly overrides over base settings.
"""
import structlog
from decouple import config

from .base import *  # noqa: F401, F403

DEBUG = config("DEBUG", default=True, cast=bool)

if DEBUG:
    ALLOWED_HOSTS = ["*"]

SECURE_SSL_REDIRECT = False
SESSION_COOKIE_SECURE = False
CSRF_COOKIE_SECURE = False

# Human-readable log lines instead of JSON
LOGGING["formatters"]["console_formatter"] = {  # noqa: F405
    "()": structlog.stdlib.ProcessorFormatter,
    "processor": structlog.dev.ConsoleRenderer(),
}
LOGGING["handlers"]["console"]["formatter"] = "console_formatter"  # noqa: F405
LOGGING["root"]["level"] = "DEBUG"  # noqa: F405

# Re-probe a missing assignment table quickly while running migrations locally
DEPARTMENT_FALLBACK_CACHE_SECONDS = config("DEPARTMENT_FALLBACK_CACHE_SECONDS", default=60, cast=int)

REST_FRAMEWORK["DEFAULT_RENDERER_CLASSES"] = [  # noqa: F405
    "rest_framework.renderers.JSONRenderer",
    "rest_framework.renderers.BrowsableAPIRenderer",
]
