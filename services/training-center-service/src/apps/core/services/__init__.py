# services/training-center-service/src/apps/core/services/__init__.py
"""
Training Center Services

Business logic for admission, queueing, exams and certification.
"""

from .capacity_ledger import CapacityLedger
from .queue_service import QueueService, QueueStanding
from .admission_service import AdmissionService, AdmissionResult, CancellationResult
from .session_service import SessionService
from .exam_attempt_service import ExamAttemptService
from .certification_service import CertificationService

__all__ = [
    'CapacityLedger',
    'QueueService',
    'QueueStanding',
    'AdmissionService',
    'AdmissionResult',
    'CancellationResult',
    'SessionService',
    'ExamAttemptService',
    'CertificationService',
]
