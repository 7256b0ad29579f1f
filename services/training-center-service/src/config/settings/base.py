"""Base settings for Training Center Service."""
import os
import sys
from pathlib import Path

from celery.schedules import crontab

BASE_DIR = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(BASE_DIR.parent.parent.parent))

SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key')
DEBUG = os.environ.get('DEBUG', 'True').lower() == 'true'
ALLOWED_HOSTS = os.environ.get('ALLOWED_HOSTS', '*').split(',')

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'corsheaders',
    'django_filters',
    'apps.core',
    'apps.api',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'shared.common.middleware.RequestIDMiddleware',
    'shared.common.middleware.LoggingMiddleware',
]

ROOT_URLCONF = 'config.urls'
TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]
WSGI_APPLICATION = 'config.wsgi.application'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': os.environ.get('DB_NAME', 'training_center_db'),
        'USER': os.environ.get('DB_USER', 'training_center_user'),
        'PASSWORD': os.environ.get('DB_PASSWORD', 'training_center_password'),
        'HOST': os.environ.get('DB_HOST', 'pgbouncer'),
        'PORT': os.environ.get('DB_PORT', '6432'),
        'ATOMIC_REQUESTS': False,
    }
}

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True
STATIC_URL = 'static/'
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': ['shared.common.authentication.JWTAuthentication'],
    'DEFAULT_PERMISSION_CLASSES': ['rest_framework.permissions.IsAuthenticated'],
    'DEFAULT_FILTER_BACKENDS': ['django_filters.rest_framework.DjangoFilterBackend'],
    'DEFAULT_PAGINATION_CLASS': 'shared.common.pagination.StandardPagination',
    'PAGE_SIZE': 20,
    'EXCEPTION_HANDLER': 'shared.common.exceptions.custom_exception_handler',
    'UNAUTHENTICATED_USER': None,
}

CORS_ALLOW_ALL_ORIGINS = DEBUG
REDIS_URL = os.environ.get('REDIS_URL', 'redis://redis:6379/9')
CACHES = {'default': {'BACKEND': 'django_redis.cache.RedisCache', 'LOCATION': REDIS_URL}}

# Celery
CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', REDIS_URL)
CELERY_RESULT_BACKEND = os.environ.get('CELERY_RESULT_BACKEND', REDIS_URL)
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_TRACK_STARTED = True
CELERY_TASK_TIME_LIMIT = 300  # 5 minutes

CELERY_BEAT_SCHEDULE = {
    'expire-overdue-attempts': {
        'task': 'training_center.expire_overdue_attempts',
        'schedule': crontab(minute='*/5'),
    },
}

# Events
EVENT_BACKEND = os.environ.get('EVENT_BACKEND', 'log')  # log, redis
EVENT_CHANNEL = os.environ.get('EVENT_CHANNEL', 'training_center_events')

# Exams
EXAM_SUBMISSION_GRACE_SECONDS = int(os.environ.get('EXAM_SUBMISSION_GRACE_SECONDS', '0'))
DEFAULT_PASSING_SCORE = int(os.environ.get('DEFAULT_PASSING_SCORE', '70'))

# Certificates
CERTIFICATE_NUMBER_PREFIX = os.environ.get('CERTIFICATE_NUMBER_PREFIX', 'CTC')
CERTIFICATE_VALIDITY_DAYS = int(os.environ.get('CERTIFICATE_VALIDITY_DAYS', '0'))  # 0: no expiry

JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY', SECRET_KEY)
JWT_ALGORITHM = os.environ.get('JWT_ALGORITHM', 'HS256')

SERVICE_NAME = 'training-center-service'
SERVICE_PORT = 8020
SERVICE_URLS = {
    'user-service': os.environ.get('USER_SERVICE_URL', 'http://user-service:8001'),
    'notification-service': os.environ.get('NOTIFICATION_SERVICE_URL', 'http://notification-service:8013'),
    'certificate-renderer': os.environ.get('CERTIFICATE_RENDERER_URL', 'http://document-service:8011'),
}
SERVICE_AUTH_TOKEN = os.environ.get('SERVICE_AUTH_TOKEN', 'service-auth-token')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'standard': {'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s'},
        'json': {'()': 'pythonjsonlogger.jsonlogger.JsonFormatter'},
    },
    'handlers': {'console': {'class': 'logging.StreamHandler', 'formatter': 'standard'}},
    'root': {'handlers': ['console'], 'level': 'INFO'},
    'loggers': {
        'django': {'handlers': ['console'], 'level': os.environ.get('DJANGO_LOG_LEVEL', 'INFO'), 'propagate': False},
        'apps': {'handlers': ['console'], 'level': 'DEBUG', 'propagate': False},
    },
}
