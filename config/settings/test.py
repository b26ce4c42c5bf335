"""Test settings for the barbershop booking project.

In-memory SQLite, tasks executed eagerly and a fixed UTC timezone so
tests do not depend on the machine they run on.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
        'OPTIONS': {'timeout': 5},
    }
}

TIME_ZONE = 'UTC'

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.InMemoryStorage'},
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

BARBERSHOP = {
    **BARBERSHOP,  # noqa: F405
    'LOCK_TIMEOUT_SECONDS': 2.0,
    'PAY_LATER': False,
    'ALLOW_FAST_PATH_COMPLETION': False,
}
