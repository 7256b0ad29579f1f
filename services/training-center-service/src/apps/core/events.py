# services/training-center-service/src/apps/core/events.py
"""
Training Center Events

Domain events emitted by the admission, queue, exam and certification
flows. Events are published after the surrounding transaction commits so
that a rolled back transition never leaks an event.
"""

import json
import logging
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal
from typing import Any, Dict, List
from uuid import UUID

import redis
from django.conf import settings
from django.db import transaction

logger = logging.getLogger(__name__)


class EventType:
    """Event type constants for the training center."""

    # Enrollment events
    ENROLLMENT_ADMITTED = 'enrollment.admitted'
    ENROLLMENT_CANCELLED = 'enrollment.cancelled'

    # Queue events
    QUEUE_JOINED = 'queue.joined'
    QUEUE_PROMOTED = 'queue.promoted'
    QUEUE_WITHDRAWN = 'queue.withdrawn'

    # Exam events
    EXAM_STARTED = 'exam.started'
    EXAM_SUBMITTED = 'exam.submitted'
    EXAM_EXPIRED = 'exam.expired'

    # Certificate events
    CERTIFICATE_ISSUED = 'certificate.issued'
    CERTIFICATE_REVOKED = 'certificate.revoked'


class JSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for event payloads."""

    def default(self, obj):
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return float(obj)
        return super().default(obj)


class EventPublisher:
    """
    Event publisher for the training center.

    Backends: ``log`` (default), ``redis`` pub/sub and ``memory`` (keeps
    published events on the instance, used by tests).
    """

    def __init__(self):
        self.service_name = getattr(settings, 'SERVICE_NAME', 'training-center-service')
        self.published: List[Dict[str, Any]] = []
        self._redis = None

    def publish(
        self,
        event_type: str,
        payload: Dict[str, Any],
        correlation_id: str = None
    ) -> bool:
        """
        Publish an event to the configured backend.

        Publishing failures are logged and never raised: events are side
        effects of an already committed transition.

        Returns:
            True if published successfully, False otherwise
        """
        event = {
            'event_type': event_type,
            'service': self.service_name,
            'timestamp': datetime.now(dt_timezone.utc).isoformat(),
            'correlation_id': correlation_id,
            'payload': payload,
        }

        try:
            event_json = json.dumps(event, cls=JSONEncoder)
            logger.info(f"Publishing event: {event_type}", extra={'event_type': event_type})
            self._publish_to_backend(event_type, event, event_json)
        except (TypeError, ValueError, redis.RedisError) as e:
            logger.error(f"Failed to publish event {event_type}: {e}")
            return False
        return True

    def _publish_to_backend(self, event_type: str, event: Dict[str, Any], event_json: str):
        backend = getattr(settings, 'EVENT_BACKEND', 'log')

        if backend == 'redis':
            self._publish_redis(event_type, event_json)
        elif backend == 'memory':
            self.published.append(json.loads(event_json))
        else:
            logger.debug(f"Event payload: {event_json[:500]}")

    def _publish_redis(self, event_type: str, event_json: str):
        """Publish to Redis pub/sub on ``<EVENT_CHANNEL>:<event_type>``."""
        if self._redis is None:
            self._redis = redis.Redis.from_url(settings.REDIS_URL)
        channel = f"{getattr(settings, 'EVENT_CHANNEL', 'events')}:{event_type}"
        self._redis.publish(channel, event_json)

    def publish_on_commit(self, event_type: str, payload: Dict[str, Any]) -> None:
        """Publish once the current transaction commits (immediately outside one)."""
        transaction.on_commit(lambda: self.publish(event_type, payload), robust=True)


# Global event publisher instance
event_publisher = EventPublisher()


# Convenience functions for publishing specific events

def publish_enrollment_admitted(enrollment):
    event_publisher.publish_on_commit(
        EventType.ENROLLMENT_ADMITTED,
        payload={
            'enrollment_id': enrollment.id,
            'session_id': enrollment.session_id,
            'trainee_id': enrollment.trainee_id,
            'source': enrollment.source,
        }
    )


def publish_enrollment_cancelled(enrollment, promoted_entry=None):
    event_publisher.publish_on_commit(
        EventType.ENROLLMENT_CANCELLED,
        payload={
            'enrollment_id': enrollment.id,
            'session_id': enrollment.session_id,
            'trainee_id': enrollment.trainee_id,
            'cancelled_by': enrollment.cancelled_by,
            'promoted_trainee_id': promoted_entry.trainee_id if promoted_entry else None,
        }
    )


def publish_queue_event(event_type: str, entry):
    """Publish queue.joined, queue.promoted or queue.withdrawn."""
    event_publisher.publish_on_commit(
        event_type,
        payload={
            'queue_entry_id': entry.id,
            'session_id': entry.session_id,
            'trainee_id': entry.trainee_id,
            'position': entry.position,
            'status': entry.status,
        }
    )


def publish_attempt_event(event_type: str, attempt):
    """Publish exam.started, exam.submitted or exam.expired."""
    payload = {
        'attempt_id': attempt.id,
        'exam_id': attempt.exam_id,
        'trainee_id': attempt.trainee_id,
        'status': attempt.status,
        'started_at': attempt.started_at,
    }
    if attempt.is_terminal:
        payload.update({
            'submitted_at': attempt.submitted_at,
            'score': attempt.score,
            'total_points': attempt.total_points,
            'percentage_score': attempt.percentage_score,
            'passed': attempt.passed,
            'requires_manual_review': attempt.requires_manual_review,
        })
    event_publisher.publish_on_commit(event_type, payload)


def publish_certificate_issued(certificate):
    event_publisher.publish_on_commit(
        EventType.CERTIFICATE_ISSUED,
        payload={
            'certificate_id': certificate.id,
            'certificate_number': certificate.certificate_number,
            'trainee_id': certificate.trainee_id,
            'session_id': certificate.session_id,
            'exam_attempt_id': certificate.exam_attempt_id,
            'issued_at': certificate.issued_at,
        }
    )


def publish_certificate_revoked(certificate):
    event_publisher.publish_on_commit(
        EventType.CERTIFICATE_REVOKED,
        payload={
            'certificate_id': certificate.id,
            'certificate_number': certificate.certificate_number,
            'trainee_id': certificate.trainee_id,
            'revoked_by': certificate.revoked_by,
            'reason': certificate.revocation_reason,
        }
    )
