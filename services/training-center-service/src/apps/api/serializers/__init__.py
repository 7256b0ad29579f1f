# services/training-center-service/src/apps/api/serializers/__init__.py
"""
Training Center API Serializers
"""

from .session_serializers import (
    EnrollmentSerializer,
    TrainingSessionSerializer,
    TrainingSessionDetailSerializer,
    TrainingSessionCreateSerializer,
    TrainingSessionUpdateSerializer,
    CancelEnrollmentSerializer,
    AttendanceSerializer,
    QueueEntrySerializer,
    QueueStandingSerializer,
)
from .exam_serializers import (
    ExamSerializer,
    ExamAttemptSerializer,
    ExamAttemptInProgressSerializer,
    AnswersSerializer,
    ResetAttemptSerializer,
)
from .certificate_serializers import (
    CertificateSerializer,
    CertificateRevokeSerializer,
)

__all__ = [
    'EnrollmentSerializer',
    'TrainingSessionSerializer',
    'TrainingSessionDetailSerializer',
    'TrainingSessionCreateSerializer',
    'TrainingSessionUpdateSerializer',
    'CancelEnrollmentSerializer',
    'AttendanceSerializer',
    'QueueEntrySerializer',
    'QueueStandingSerializer',
    'ExamSerializer',
    'ExamAttemptSerializer',
    'ExamAttemptInProgressSerializer',
    'AnswersSerializer',
    'ResetAttemptSerializer',
    'CertificateSerializer',
    'CertificateRevokeSerializer',
]
