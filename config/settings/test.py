"""Test settings.

In-memory SQLite unless DB_ENGINE points at PostgreSQL, which the
threaded booking race tests require.
"""

import os

from .base import *  # noqa: F401,F403

DEBUG = False

SECRET_KEY = 'test-secret-key'

if os.environ.get('DB_ENGINE', 'django.db.backends.sqlite3') == 'django.db.backends.sqlite3':
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': ':memory:',
        }
    }

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}

BOOKING = {
    'VESSEL_PRICING': 'per_cabin',
    'ALTERNATIVES_LIMIT': 5,
    'ALTERNATIVES_WINDOW_DAYS': 60,
    'MAX_CABIN_SEARCH': 20,
    'MAX_NIGHTS': 90,
}

LOGGING["loggers"]["apps"]["level"] = "WARNING"  # noqa: F405
LOGGING["loggers"]["shared"]["level"] = "WARNING"  # noqa: F405
