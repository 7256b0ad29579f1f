# services/training-center-service/src/apps/core/services/admission_service.py
"""
Admission Service

Decides whether an enroll request is admitted directly or routed to the
session's queue, and handles cancellation with queue promotion.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from shared.common.exceptions import ValidationException

from ..events import publish_enrollment_admitted, publish_enrollment_cancelled
from ..exceptions import (
    AlreadyEnrolled,
    AlreadyQueued,
    InvalidSessionState,
    NotEnrolled,
    SessionNotSchedulable,
)
from ..models import Enrollment, QueueEntry, TrainingSession
from ..notifications import notify_enrollment_confirmed
from .capacity_ledger import CapacityLedger
from .directory import require_staff
from .queue_service import QueueService

logger = logging.getLogger(__name__)


@dataclass
class AdmissionResult:
    ADMITTED = 'admitted'
    QUEUED = 'queued'

    outcome: str
    enrollment: Optional[Enrollment] = None
    queue_entry: Optional[QueueEntry] = None

    @property
    def position(self) -> Optional[int]:
        return self.queue_entry.position if self.queue_entry else None


@dataclass
class CancellationResult:
    enrollment: Enrollment
    promoted_entry: Optional[QueueEntry] = None


def register_enrollment(session: TrainingSession, trainee_id, source: str) -> Enrollment:
    """
    Create or reactivate the (trainee, session) enrollment.

    The caller must hold the session lock and a reserved seat.
    """
    enrollment = Enrollment.objects.filter(session=session, trainee_id=trainee_id).first()
    if enrollment is None:
        enrollment = Enrollment(session=session, trainee_id=trainee_id)
    enrollment.register(source)
    enrollment.save()
    return enrollment


class AdmissionService:
    """
    Service for enrollment admission.

    Handles:
    - Direct admission against the capacity ledger
    - Overflow into the queue
    - Cancellation and promotion of the queue head
    - Attendance recording
    """

    @staticmethod
    @transaction.atomic
    def enroll(trainee_id, session_id) -> AdmissionResult:
        """
        Enroll a trainee, or queue them if the session is full.

        Args:
            trainee_id: Trainee UUID
            session_id: Session UUID

        Returns:
            AdmissionResult with outcome admitted or queued

        Raises:
            SessionNotFound: If the session does not exist
            SessionNotSchedulable: If the session is not scheduled
            AlreadyEnrolled: If the trainee already holds a seat
            AlreadyQueued: If the trainee is already waiting
        """
        session = CapacityLedger.lock_session(session_id)

        if session.status != TrainingSession.Status.SCHEDULED:
            raise SessionNotSchedulable()

        existing = Enrollment.objects.filter(session=session, trainee_id=trainee_id).first()
        if existing is not None and existing.holds_seat:
            raise AlreadyEnrolled()

        if QueueEntry.objects.filter(
            session=session,
            trainee_id=trainee_id,
            status=QueueEntry.Status.WAITING
        ).exists():
            raise AlreadyQueued()

        if CapacityLedger.try_reserve(session.id):
            enrollment = register_enrollment(session, trainee_id, Enrollment.Source.DIRECT)
            publish_enrollment_admitted(enrollment)
            notify_enrollment_confirmed(enrollment)

            logger.info(f"Trainee {trainee_id} admitted to session {session.id}")
            return AdmissionResult(AdmissionResult.ADMITTED, enrollment=enrollment)

        entry = QueueService.enqueue(trainee_id, session.id)
        return AdmissionResult(AdmissionResult.QUEUED, queue_entry=entry)

    @staticmethod
    def cancel(trainee_id, session_id, actor_id=None) -> CancellationResult:
        """
        Cancel a registered enrollment and promote the queue head if a
        slot was freed.

        Args:
            trainee_id: Trainee whose enrollment is cancelled
            session_id: Session UUID
            actor_id: Who is cancelling; an actor other than the trainee
                must be an admin or trainer in the user directory

        Raises:
            PermissionDenied: If another user's enrollment is cancelled by a non-staff actor
            NotEnrolled: If there is no registered enrollment
        """
        if actor_id is not None and str(actor_id) != str(trainee_id):
            require_staff(actor_id)

        with transaction.atomic():
            session = CapacityLedger.lock_session(session_id)

            enrollment = Enrollment.objects.filter(
                session=session,
                trainee_id=trainee_id,
                status=Enrollment.Status.REGISTERED
            ).first()
            if enrollment is None:
                raise NotEnrolled()

            enrollment.cancel(cancelled_by=actor_id or trainee_id)
            enrollment.save(update_fields=['status', 'cancelled_at', 'cancelled_by', 'updated_at'])

            promoted = None
            if CapacityLedger.release(session.id):
                promoted = QueueService.promote_next(session.id)

            publish_enrollment_cancelled(enrollment, promoted)

        logger.info(
            f"Enrollment of {trainee_id} in session {session_id} cancelled"
            + (f"; promoted {promoted.trainee_id}" if promoted else "")
        )
        return CancellationResult(enrollment=enrollment, promoted_entry=promoted)

    @staticmethod
    @transaction.atomic
    def record_attendance(session_id, attendance: Dict[str, str]) -> List[Enrollment]:
        """
        Mark registered enrollments attended or no_show. Seats are kept.

        Args:
            attendance: {trainee_id: 'attended' | 'no_show'}

        Raises:
            InvalidSessionState: If the session has not started
            NotEnrolled: If a listed trainee has no registered enrollment
        """
        session = CapacityLedger.lock_session(session_id)
        if session.status not in (TrainingSession.Status.IN_PROGRESS, TrainingSession.Status.COMPLETED):
            raise InvalidSessionState('Attendance can only be recorded once the session has started.')

        now = timezone.now()
        updated = []
        for trainee_id, status in attendance.items():
            if status not in (Enrollment.Status.ATTENDED, Enrollment.Status.NO_SHOW):
                raise ValidationException({str(trainee_id): f"Invalid attendance status: {status}"})
            enrollment = Enrollment.objects.filter(
                session=session,
                trainee_id=trainee_id,
                status=Enrollment.Status.REGISTERED
            ).first()
            if enrollment is None:
                raise NotEnrolled(f"Trainee {trainee_id} has no registered enrollment.")
            enrollment.status = status
            enrollment.attendance_marked_at = now
            enrollment.save(update_fields=['status', 'attendance_marked_at', 'updated_at'])
            updated.append(enrollment)

        logger.info(f"Attendance recorded for {len(updated)} trainees in session {session.id}")
        return updated

    @staticmethod
    def cancel_all(session: TrainingSession, actor_id=None) -> int:
        """Cancel every registered enrollment of a locked session that is closing."""
        enrollments = list(Enrollment.objects.filter(session=session, status=Enrollment.Status.REGISTERED))
        for enrollment in enrollments:
            enrollment.cancel(cancelled_by=actor_id)
            enrollment.save(update_fields=['status', 'cancelled_at', 'cancelled_by', 'updated_at'])
            publish_enrollment_cancelled(enrollment)

        if enrollments:
            TrainingSession.objects.filter(pk=session.pk).update(
                enrolled_count=F('enrolled_count') - len(enrollments)
            )
        return len(enrollments)

    @staticmethod
    def list_trainee_enrollments(trainee_id, status: Optional[str] = None):
        queryset = Enrollment.objects.filter(trainee_id=trainee_id).select_related('session')
        if status:
            queryset = queryset.filter(status=status)
        return queryset.order_by('session__scheduled_start')

    @staticmethod
    def list_session_enrollments(session_id):
        """Enrollments holding a seat in a session, oldest first."""
        return Enrollment.objects.filter(
            session_id=session_id,
            status__in=Enrollment.SEAT_HOLDING_STATUSES
        ).order_by('enrolled_at')
