# services/training-center-service/src/apps/core/models/__init__.py
"""
Training Center Models
"""

from .session import TrainingSession, Enrollment
from .queue import QueueEntry
from .exam import Exam, Question
from .attempt import ExamAttempt
from .certificate import Certificate

__all__ = [
    'TrainingSession',
    'Enrollment',
    'QueueEntry',
    'Exam',
    'Question',
    'ExamAttempt',
    'Certificate',
]
