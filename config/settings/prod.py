"""Production settings for the cafe booking core.

This module extends the base settings with production specific
configuration. Ensure that sensitive values are provided via
environment variables.
"""

from .base import *  # noqa: F401,F403

# Never run with debug enabled in production
DEBUG = False

SECRET_KEY = get_env('DJANGO_SECRET_KEY', required=True)  # noqa: F405
ENCRYPTION_KEY = get_env('ENCRYPTION_KEY', required=True)  # noqa: F405
CAFE_API_BASE_URL = get_env('CAFE_API_BASE_URL', required=True)  # noqa: F405

# Allowed hosts should be defined explicitly via environment variable
ALLOWED_HOSTS = os.environ.get('DJANGO_ALLOWED_HOSTS', '').split(',')  # noqa: F405

PAYMENT_GATEWAY_MODE = get_env('PAYMENT_GATEWAY_MODE', 'production')  # noqa: F405
