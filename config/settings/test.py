"""Test settings for the booking engine.

In-memory SQLite, eager Celery and emulated payments so the test suite
runs without network access.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

STORAGES = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    'staticfiles': {
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

PAYMENTS_SANDBOX = True
STRIPE_SECRET_KEY = ''
PAYMENT_TIMEOUT_SECONDS = 5
BOOKING_HOLD_MINUTES = 30
TRANSFER_BLOCK_HOURS = 3
