# services/training-center-service/src/apps/api/views/__init__.py
"""
Training Center API Views
"""

from .session_views import (
    TrainingSessionViewSet,
    MyEnrollmentsView,
    MyQueueView,
)
from .exam_views import (
    ExamViewSet,
    MyAttemptsView,
)
from .certificate_views import (
    CertificateViewSet,
    CertificateVerifyView,
)

__all__ = [
    'TrainingSessionViewSet',
    'MyEnrollmentsView',
    'MyQueueView',
    'ExamViewSet',
    'MyAttemptsView',
    'CertificateViewSet',
    'CertificateVerifyView',
]
