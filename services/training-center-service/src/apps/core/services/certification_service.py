# services/training-center-service/src/apps/core/services/certification_service.py
"""
Certification Service

Turns a passing exam attempt into exactly one issued certificate and
hands it to the renderer.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from ..events import EventType, publish_certificate_issued, publish_certificate_revoked
from ..exceptions import AttemptNotFound, CertificateNotFound
from ..models import Certificate, ExamAttempt

logger = logging.getLogger(__name__)

# Collisions on the random part of the number are retried this many times
NUMBER_ALLOCATION_ATTEMPTS = 3


class CertificationService:
    """
    Service for certificate issuance.

    Issuance is idempotent: the unique ``exam_attempt`` column makes a
    repeated or concurrent evaluation return the existing certificate.
    """

    @staticmethod
    def evaluate_attempt(attempt_id) -> Optional[Certificate]:
        """
        Issue the certificate for a submitted, passing attempt.

        Safe to call any number of times for the same attempt.

        Returns:
            The attempt's certificate, or None if the attempt does not qualify

        Raises:
            AttemptNotFound: If the attempt does not exist
        """
        try:
            attempt = ExamAttempt.objects.select_related('exam').get(pk=attempt_id)
        except ExamAttempt.DoesNotExist:
            raise AttemptNotFound()

        if attempt.status != ExamAttempt.Status.SUBMITTED or not attempt.passed:
            return None

        existing = Certificate.objects.filter(exam_attempt=attempt).first()
        if existing:
            logger.debug(f"Certificate {existing.certificate_number} already issued for attempt {attempt.id}")
            return existing

        validity_days = getattr(settings, 'CERTIFICATE_VALIDITY_DAYS', 0)
        valid_until = (timezone.now() + timedelta(days=validity_days)).date() if validity_days else None

        for _ in range(NUMBER_ALLOCATION_ATTEMPTS):
            try:
                with transaction.atomic():
                    certificate = Certificate.objects.create(
                        trainee_id=attempt.trainee_id,
                        session_id=attempt.exam.session_id,
                        exam_attempt=attempt,
                        certificate_number=Certificate.generate_certificate_number(),
                        verification_code=Certificate.generate_verification_code(),
                        valid_until=valid_until,
                    )
            except IntegrityError:
                existing = Certificate.objects.filter(exam_attempt=attempt).first()
                if existing:
                    return existing
                continue
            break
        else:
            raise IntegrityError(f"Could not allocate a certificate number for attempt {attempt.id}")

        publish_certificate_issued(certificate)
        CertificationService._schedule_render(certificate)

        logger.info(f"Issued certificate {certificate.certificate_number} for attempt {attempt.id}")
        return certificate

    @staticmethod
    def handle_exam_completed(event: Dict[str, Any]) -> Optional[Certificate]:
        """
        Consume an ``exam.submitted`` event. Redelivered events resolve to
        the certificate already issued.
        """
        if event.get('event_type') != EventType.EXAM_SUBMITTED:
            return None
        payload = event.get('payload', {})
        if not payload.get('passed'):
            return None
        return CertificationService.evaluate_attempt(payload['attempt_id'])

    @staticmethod
    def dispatch_exam_completed(attempt: ExamAttempt) -> None:
        """Queue the exam.submitted consumer once the submission commits."""
        from ..tasks import handle_exam_completed

        event = {
            'event_type': EventType.EXAM_SUBMITTED,
            'payload': {'attempt_id': str(attempt.id), 'passed': bool(attempt.passed)},
        }
        transaction.on_commit(lambda: handle_exam_completed.delay(event), robust=True)

    @staticmethod
    def _schedule_render(certificate: Certificate) -> None:
        from ..tasks import render_certificate

        certificate_id = str(certificate.id)
        transaction.on_commit(lambda: render_certificate.delay(certificate_id), robust=True)

    @staticmethod
    def render_payload(certificate: Certificate) -> Dict[str, Any]:
        """What the renderer needs to produce the PDF and QR code."""
        return {
            'certificate_id': str(certificate.id),
            'certificate_number': certificate.certificate_number,
            'verification_code': certificate.verification_code,
            'trainee_id': str(certificate.trainee_id),
            'session_title': certificate.session.title,
            'program_code': certificate.session.program_code,
            'percentage_score': str(certificate.exam_attempt.percentage_score),
            'issued_at': certificate.issued_at.isoformat(),
            'valid_until': certificate.valid_until.isoformat() if certificate.valid_until else None,
        }

    @staticmethod
    def mark_rendered(certificate_id, artifact_ref: str) -> None:
        Certificate.objects.filter(pk=certificate_id).update(
            render_status=Certificate.RenderStatus.RENDERED,
            artifact_ref=artifact_ref,
            rendered_at=timezone.now(),
            updated_at=timezone.now(),
        )
        logger.info(f"Certificate {certificate_id} rendered: {artifact_ref}")

    @staticmethod
    def mark_render_failed(certificate_id) -> None:
        """Issued status is kept; rendering can be retried."""
        Certificate.objects.filter(pk=certificate_id).update(
            render_status=Certificate.RenderStatus.FAILED,
            updated_at=timezone.now(),
        )

    @staticmethod
    def retry_render(certificate_id) -> Certificate:
        certificate = CertificationService.get_certificate(certificate_id)
        CertificationService._schedule_render(certificate)
        return certificate

    @staticmethod
    def get_certificate(certificate_id) -> Certificate:
        try:
            return Certificate.objects.select_related('session', 'exam_attempt').get(pk=certificate_id)
        except Certificate.DoesNotExist:
            raise CertificateNotFound()

    @staticmethod
    def revoke(certificate_id, reason: str, actor_id=None) -> Certificate:
        """Revoke a certificate. Revoking twice returns the revoked certificate."""
        with transaction.atomic():
            try:
                certificate = Certificate.objects.select_for_update().get(pk=certificate_id)
            except Certificate.DoesNotExist:
                raise CertificateNotFound()

            if certificate.status == Certificate.Status.REVOKED:
                return certificate

            certificate.revoke(reason, revoked_by=actor_id)
            certificate.save()
            publish_certificate_revoked(certificate)

        logger.info(f"Certificate {certificate.certificate_number} revoked by {actor_id}: {reason}")
        return certificate

    @staticmethod
    def verify(certificate_number: str) -> Certificate:
        """
        Public verification by certificate number. A certificate past its
        ``valid_until`` date is moved to expired.

        Raises:
            CertificateNotFound: If no certificate has this number
        """
        try:
            certificate = Certificate.objects.select_related('session').get(
                certificate_number=certificate_number
            )
        except Certificate.DoesNotExist:
            raise CertificateNotFound()

        if (
            certificate.status == Certificate.Status.ISSUED
            and certificate.valid_until
            and timezone.now().date() > certificate.valid_until
        ):
            certificate.status = Certificate.Status.EXPIRED
            certificate.save(update_fields=['status', 'updated_at'])

        return certificate

    @staticmethod
    def list_trainee_certificates(trainee_id):
        return Certificate.objects.filter(trainee_id=trainee_id).select_related('session')
