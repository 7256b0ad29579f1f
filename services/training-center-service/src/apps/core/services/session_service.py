# services/training-center-service/src/apps/core/services/session_service.py
"""
Session Service

Administrative lifecycle of training sessions: create, update, start,
complete and cancel.
"""

import logging
from datetime import timedelta
from typing import Any, Dict

from django.db import transaction

from shared.common.exceptions import ValidationException

from ..exceptions import InvalidSessionState, TrainerConflict
from ..models import TrainingSession
from .admission_service import AdmissionService
from .capacity_ledger import CapacityLedger
from .queue_service import QueueService

logger = logging.getLogger(__name__)


class SessionService:
    """Service for session administration."""

    UPDATABLE_FIELDS = (
        'title', 'description', 'program_code', 'location',
        'scheduled_start', 'duration_minutes', 'trainer_id', 'max_capacity',
    )

    @staticmethod
    def _check_trainer_conflict(trainer_id, scheduled_start, duration_minutes, exclude_id=None) -> None:
        """A trainer cannot run two overlapping sessions."""
        if not trainer_id:
            return

        end = scheduled_start + timedelta(minutes=duration_minutes)
        candidates = TrainingSession.objects.filter(
            trainer_id=trainer_id,
            scheduled_start__lt=end,
        ).exclude(status=TrainingSession.Status.CANCELLED)
        if exclude_id:
            candidates = candidates.exclude(pk=exclude_id)

        for other in candidates:
            if other.scheduled_end > scheduled_start:
                raise TrainerConflict(
                    f"Trainer already runs '{other.title}' starting {other.scheduled_start.isoformat()}."
                )

    @staticmethod
    @transaction.atomic
    def create_session(data: Dict[str, Any], created_by=None) -> TrainingSession:
        """
        Create a scheduled session.

        Raises:
            TrainerConflict: If the trainer has an overlapping session
        """
        SessionService._check_trainer_conflict(
            data.get('trainer_id'),
            data['scheduled_start'],
            data.get('duration_minutes', 60),
        )
        session = TrainingSession.objects.create(created_by=created_by, **data)
        logger.info(f"Created session {session.id} ({session.title}) with capacity {session.max_capacity}")
        return session

    @staticmethod
    def update_session(session_id, data: Dict[str, Any]) -> TrainingSession:
        """
        Update session details. Raising ``max_capacity`` promotes waiting
        trainees into the new seats.

        Raises:
            InvalidSessionState: If the session is completed or cancelled
            ValidationException: If capacity would drop below seats held
            TrainerConflict: If the new schedule overlaps another session of the trainer
        """
        with transaction.atomic():
            session = CapacityLedger.lock_session(session_id)
            if session.status in (TrainingSession.Status.COMPLETED, TrainingSession.Status.CANCELLED):
                raise InvalidSessionState('Completed or cancelled sessions cannot be changed.')

            new_capacity = data.get('max_capacity', session.max_capacity)
            if new_capacity < session.enrolled_count:
                raise ValidationException(
                    {'max_capacity': [f"Cannot be lower than the {session.enrolled_count} seats already held."]}
                )

            for field in SessionService.UPDATABLE_FIELDS:
                if field in data:
                    setattr(session, field, data[field])

            SessionService._check_trainer_conflict(
                session.trainer_id, session.scheduled_start, session.duration_minutes, exclude_id=session.pk
            )
            # enrolled_count is owned by the ledger
            session.save(update_fields=[f for f in SessionService.UPDATABLE_FIELDS if f in data] + ['updated_at'])

            promoted = 0
            while session.enrolled_count + promoted < new_capacity:
                if QueueService.promote_next(session.pk) is None:
                    break
                promoted += 1

        if promoted:
            logger.info(f"Capacity increase on session {session_id} promoted {promoted} trainees")
        session.refresh_from_db()
        return session

    @staticmethod
    @transaction.atomic
    def start_session(session_id) -> TrainingSession:
        session = CapacityLedger.lock_session(session_id)
        if session.status != TrainingSession.Status.SCHEDULED:
            raise InvalidSessionState('Only scheduled sessions can be started.')

        session.status = TrainingSession.Status.IN_PROGRESS
        session.save(update_fields=['status', 'updated_at'])
        logger.info(f"Session {session.id} started")
        return session

    @staticmethod
    @transaction.atomic
    def complete_session(session_id) -> TrainingSession:
        """Complete a running session; trainees still waiting are withdrawn."""
        session = CapacityLedger.lock_session(session_id)
        if session.status != TrainingSession.Status.IN_PROGRESS:
            raise InvalidSessionState('Only sessions in progress can be completed.')

        session.status = TrainingSession.Status.COMPLETED
        session.save(update_fields=['status', 'updated_at'])
        withdrawn = QueueService.withdraw_all(session)

        logger.info(f"Session {session.id} completed; {withdrawn} queue entries withdrawn")
        return session

    @staticmethod
    @transaction.atomic
    def cancel_session(session_id, actor_id=None) -> TrainingSession:
        """
        Cancel a session: waiting entries are withdrawn and registered
        enrollments cancelled, releasing their seats.
        """
        session = CapacityLedger.lock_session(session_id)
        if session.status in (TrainingSession.Status.COMPLETED, TrainingSession.Status.CANCELLED):
            raise InvalidSessionState('Session is already closed.')

        session.status = TrainingSession.Status.CANCELLED
        session.save(update_fields=['status', 'updated_at'])

        withdrawn = QueueService.withdraw_all(session)
        cancelled = AdmissionService.cancel_all(session, actor_id=actor_id)

        logger.info(
            f"Session {session.id} cancelled; {cancelled} enrollments cancelled, "
            f"{withdrawn} queue entries withdrawn"
        )
        session.refresh_from_db()
        return session
