"""Development settings for Training Center Service."""
from .base import *

DEBUG = True
CORS_ALLOW_ALL_ORIGINS = True

if os.environ.get('DB_ENGINE') == 'sqlite':
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }
