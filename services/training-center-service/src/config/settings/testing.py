"""
Test Settings

Django settings for running tests.
"""

from .base import *

DEBUG = False
TESTING = True

# TEST_DB_ENGINE=postgresql runs the suite against a real database
if os.environ.get('TEST_DB_ENGINE') == 'postgresql':
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.environ.get('TEST_DB_NAME', 'training_center_test'),
            'USER': os.environ.get('TEST_DB_USER', 'postgres'),
            'PASSWORD': os.environ.get('TEST_DB_PASSWORD', 'postgres'),
            'HOST': os.environ.get('TEST_DB_HOST', 'localhost'),
            'PORT': os.environ.get('TEST_DB_PORT', '5432'),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': ':memory:',
        }
    }

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]


# Disable migrations for faster tests
class DisableMigrations:
    def __contains__(self, item):
        return True

    def __getitem__(self, item):
        return None


MIGRATION_MODULES = DisableMigrations()

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
    },
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

JWT_SECRET_KEY = 'test-secret-key-for-testing-only'
JWT_ALGORITHM = 'HS256'

EVENT_BACKEND = 'log'

LOGGING = {
    'version': 1,
    'disable_existing_loggers': True,
    'handlers': {
        'null': {
            'class': 'logging.NullHandler',
        },
    },
    'root': {
        'handlers': ['null'],
        'level': 'CRITICAL',
    },
}

CORS_ALLOW_ALL_ORIGINS = True
