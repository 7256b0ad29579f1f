# services/training-center-service/src/apps/core/tasks.py
"""
Training Center Celery Tasks

Side effects that run outside the request transaction: notification
delivery, certificate rendering, the exam.submitted consumer and the
periodic sweep of overdue exam attempts.
"""

import logging

import httpx
from asgiref.sync import async_to_sync
from celery import shared_task
from django.db import DatabaseError

from shared.common.clients import (
    CertificateRendererClient,
    CircuitBreakerError,
    NotificationServiceClient,
)

from .exceptions import AttemptNotFound
from .models import Certificate

logger = logging.getLogger(__name__)


def _backoff(retries: int, base: int) -> int:
    return base * (2 ** retries)


@shared_task(
    name='training_center.send_notification',
    bind=True,
    max_retries=3,
    default_retry_delay=30,
)
def send_notification(self, user_id: str, event_type: str, payload: dict):
    """
    Deliver a notification through the notification service.

    Args:
        user_id: Recipient user UUID string
        event_type: enrollment_confirmed, queue_promoted, exam_passed or exam_failed
        payload: JSON-serializable message data
    """
    client = NotificationServiceClient()
    try:
        async_to_sync(client.send_notification)(user_id, event_type, payload)
    except (httpx.HTTPError, CircuitBreakerError) as e:
        logger.warning(f"Notification {event_type} for {user_id} failed: {e}")
        raise self.retry(exc=e, countdown=_backoff(self.request.retries, 30))

    logger.info(f"Notification {event_type} sent to {user_id}")


@shared_task(
    name='training_center.render_certificate',
    bind=True,
    max_retries=5,
    default_retry_delay=60,
)
def render_certificate(self, certificate_id: str):
    """
    Hand a newly issued certificate to the renderer.

    A failure marks the certificate ``render_status=failed``; its issued
    status is never touched.

    Args:
        certificate_id: Certificate UUID string
    """
    from .services.certification_service import CertificationService

    try:
        certificate = Certificate.objects.select_related('session', 'exam_attempt').get(id=certificate_id)
    except Certificate.DoesNotExist:
        logger.error(f"Certificate not found: {certificate_id}")
        return

    if certificate.render_status == Certificate.RenderStatus.RENDERED:
        logger.debug(f"Certificate already rendered: {certificate.certificate_number}")
        return

    client = CertificateRendererClient()
    try:
        artifact_ref = async_to_sync(client.render)(
            CertificationService.render_payload(certificate)
        )
    except (httpx.HTTPError, CircuitBreakerError) as e:
        logger.error(f"Rendering failed for {certificate.certificate_number}: {e}")
        CertificationService.mark_render_failed(certificate.id)
        raise self.retry(exc=e, countdown=_backoff(self.request.retries, 60))

    CertificationService.mark_rendered(certificate.id, artifact_ref)


@shared_task(
    name='training_center.handle_exam_completed',
    bind=True,
    max_retries=3,
    default_retry_delay=10,
)
def handle_exam_completed(self, event: dict):
    """
    Issue the certificate for an ``exam.submitted`` event.

    Redelivery is harmless: the attempt's existing certificate is returned.

    Returns:
        Certificate UUID string, or None if the attempt does not qualify
    """
    from .services.certification_service import CertificationService

    try:
        certificate = CertificationService.handle_exam_completed(event)
    except AttemptNotFound:
        logger.error(f"Attempt not found for event: {event.get('payload')}")
        return None
    except DatabaseError as e:
        logger.warning(f"Certification for {event.get('payload')} failed: {e}")
        raise self.retry(exc=e, countdown=_backoff(self.request.retries, 10))

    if certificate is None:
        return None
    return str(certificate.id)


@shared_task(name='training_center.expire_overdue_attempts')
def expire_overdue_attempts():
    """Expire in-progress attempts past their deadline."""
    from .services.exam_attempt_service import ExamAttemptService

    expired = ExamAttemptService.expire_overdue_attempts()
    if expired:
        logger.info(f"Expired {expired} overdue exam attempts")
    return expired
