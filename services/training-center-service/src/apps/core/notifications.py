# services/training-center-service/src/apps/core/notifications.py
"""
Notification dispatch.

Notifications are fire-and-forget: they are queued to Celery once the
transaction commits, and a failure to queue or deliver never affects the
enrollment, promotion or exam result that triggered it.
"""

import json
import logging
from typing import Any, Dict

from django.db import transaction

from .events import JSONEncoder

logger = logging.getLogger(__name__)


class NotificationType:
    ENROLLMENT_CONFIRMED = 'enrollment_confirmed'
    QUEUE_PROMOTED = 'queue_promoted'
    EXAM_PASSED = 'exam_passed'
    EXAM_FAILED = 'exam_failed'


def dispatch_notification(user_id, event_type: str, payload: Dict[str, Any]) -> None:
    """Queue a notification for delivery after the current transaction commits."""
    message = json.loads(json.dumps(payload, cls=JSONEncoder))

    def _enqueue():
        from .tasks import send_notification
        send_notification.delay(str(user_id), event_type, message)

    transaction.on_commit(_enqueue, robust=True)
    logger.debug(f"Notification {event_type} for {user_id} scheduled")


def notify_enrollment_confirmed(enrollment) -> None:
    dispatch_notification(
        enrollment.trainee_id,
        NotificationType.ENROLLMENT_CONFIRMED,
        {
            'enrollment_id': enrollment.id,
            'session_id': enrollment.session_id,
            'session_title': enrollment.session.title,
            'scheduled_start': enrollment.session.scheduled_start,
        }
    )


def notify_queue_promoted(entry, enrollment) -> None:
    dispatch_notification(
        entry.trainee_id,
        NotificationType.QUEUE_PROMOTED,
        {
            'queue_entry_id': entry.id,
            'enrollment_id': enrollment.id,
            'session_id': entry.session_id,
            'session_title': enrollment.session.title,
            'position': entry.position,
        }
    )


def notify_exam_result(attempt) -> None:
    event_type = NotificationType.EXAM_PASSED if attempt.passed else NotificationType.EXAM_FAILED
    dispatch_notification(
        attempt.trainee_id,
        event_type,
        {
            'attempt_id': attempt.id,
            'exam_id': attempt.exam_id,
            'exam_title': attempt.exam.title,
            'status': attempt.status,
            'percentage_score': attempt.percentage_score,
            'passed': attempt.passed,
            'passing_score': attempt.exam.passing_score,
            'requires_manual_review': attempt.requires_manual_review,
        }
    )
