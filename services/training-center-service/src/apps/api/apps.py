# services/training-center-service/src/apps/api/apps.py
"""
API App Configuration
"""

from django.apps import AppConfig


class ApiConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.api'
    label = 'training_center_api'
    verbose_name = 'Training Center API'
