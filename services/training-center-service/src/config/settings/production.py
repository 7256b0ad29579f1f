"""Production settings for Training Center Service."""
from .base import *

DEBUG = False
CORS_ALLOW_ALL_ORIGINS = False
CORS_ALLOWED_ORIGINS = [o for o in os.environ.get('CORS_ALLOWED_ORIGINS', '').split(',') if o]

SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True

EVENT_BACKEND = os.environ.get('EVENT_BACKEND', 'redis')

LOGGING['handlers']['console']['formatter'] = 'json'
LOGGING['loggers']['apps']['level'] = os.environ.get('APP_LOG_LEVEL', 'INFO')
