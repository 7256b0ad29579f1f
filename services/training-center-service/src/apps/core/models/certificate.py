# services/training-center-service/src/apps/core/models/certificate.py
"""
Certificate Model
"""

import secrets
import uuid
from typing import Any, Dict

from django.conf import settings
from django.db import models
from django.utils import timezone

from .attempt import ExamAttempt
from .session import TrainingSession


class Certificate(models.Model):
    """
    Certificate issued for a passing exam attempt.

    At most one certificate exists per attempt (unique ``exam_attempt``).
    """

    class Status(models.TextChoices):
        ISSUED = 'issued', 'Issued'
        REVOKED = 'revoked', 'Revoked'
        EXPIRED = 'expired', 'Expired'

    class RenderStatus(models.TextChoices):
        PENDING = 'pending', 'Pending'
        RENDERED = 'rendered', 'Rendered'
        FAILED = 'failed', 'Failed'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    trainee_id = models.UUIDField(db_index=True)
    session = models.ForeignKey(
        TrainingSession,
        on_delete=models.PROTECT,
        related_name='certificates'
    )
    exam_attempt = models.OneToOneField(
        ExamAttempt,
        on_delete=models.PROTECT,
        related_name='certificate'
    )

    certificate_number = models.CharField(max_length=50, unique=True)
    verification_code = models.CharField(max_length=50, unique=True)

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ISSUED,
        db_index=True
    )
    issued_at = models.DateTimeField(default=timezone.now)
    valid_until = models.DateField(null=True, blank=True)

    # Rendering
    render_status = models.CharField(
        max_length=20,
        choices=RenderStatus.choices,
        default=RenderStatus.PENDING
    )
    artifact_ref = models.CharField(max_length=500, blank=True, default='')
    rendered_at = models.DateTimeField(null=True, blank=True)

    # Revocation
    revoked_at = models.DateTimeField(null=True, blank=True)
    revoked_by = models.UUIDField(null=True, blank=True)
    revocation_reason = models.TextField(blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'certificates'
        ordering = ['-issued_at']
        indexes = [
            models.Index(fields=['trainee_id', 'status']),
        ]

    def __str__(self):
        return f"{self.certificate_number} - {self.trainee_id}"

    @property
    def is_valid(self) -> bool:
        if self.status != self.Status.ISSUED:
            return False
        if self.valid_until and timezone.now().date() > self.valid_until:
            return False
        return True

    @classmethod
    def generate_certificate_number(cls) -> str:
        """``<prefix>-<year>-<10 uppercase hex digits>``"""
        prefix = getattr(settings, 'CERTIFICATE_NUMBER_PREFIX', 'CTC')
        return f"{prefix}-{timezone.now().year}-{secrets.token_hex(5).upper()}"

    @classmethod
    def generate_verification_code(cls) -> str:
        return secrets.token_urlsafe(16)

    def revoke(self, reason: str, revoked_by: str = None) -> None:
        self.status = self.Status.REVOKED
        self.revoked_at = timezone.now()
        self.revocation_reason = reason
        self.revoked_by = revoked_by

    def get_public_data(self) -> Dict[str, Any]:
        """Data shown by the public verification endpoint."""
        return {
            'valid': self.is_valid,
            'certificate_number': self.certificate_number,
            'status': self.status,
            'session_title': self.session.title,
            'program_code': self.session.program_code,
            'issued_at': self.issued_at.isoformat(),
            'valid_until': self.valid_until.isoformat() if self.valid_until else None,
            'revoked': self.status == self.Status.REVOKED,
            'revocation_reason': self.revocation_reason if self.status == self.Status.REVOKED else None,
        }
