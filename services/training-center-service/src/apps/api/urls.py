# services/training-center-service/src/apps/api/urls.py
"""
Training Center API URL Configuration
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    CertificateVerifyView,
    CertificateViewSet,
    ExamViewSet,
    MyAttemptsView,
    MyEnrollmentsView,
    MyQueueView,
    TrainingSessionViewSet,
)

app_name = 'api'

router = DefaultRouter()
router.register(r'sessions', TrainingSessionViewSet, basename='session')
router.register(r'exams', ExamViewSet, basename='exam')
router.register(r'certificates', CertificateViewSet, basename='certificate')

urlpatterns = [
    path('enrollments/my/', MyEnrollmentsView.as_view(), name='my-enrollments'),
    path('queue/my/', MyQueueView.as_view(), name='my-queue'),
    path('attempts/my/', MyAttemptsView.as_view(), name='my-attempts'),
    path(
        'certificates/verify/<str:certificate_number>/',
        CertificateVerifyView.as_view(),
        name='certificate-verify'
    ),

    path('', include(router.urls)),
]
