"""Test settings.

In-memory SQLite, eager Celery and a backend URL nothing listens on:
collaborators are replaced with mocks in the tests.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

ENCRYPTION_KEY = 'test-encryption-key'
CAFE_API_BASE_URL = 'http://cafe-backend.test/api'
AVAILABILITY_CHECK_TIMEOUT = 0.5
AVAILABILITY_FALLBACK_POLICY = 'fail_open'

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'
