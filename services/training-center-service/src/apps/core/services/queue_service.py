# services/training-center-service/src/apps/core/services/queue_service.py
"""
Queue Service

FIFO waiting list per session. Every mutation runs under the session's
row lock, the same critical section the capacity ledger uses.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from django.db import transaction
from django.db.models import Max

from ..events import EventType, publish_enrollment_admitted, publish_queue_event
from ..exceptions import AlreadyQueued, NotQueued
from ..models import Enrollment, QueueEntry, TrainingSession
from ..notifications import notify_queue_promoted
from .capacity_ledger import CapacityLedger

logger = logging.getLogger(__name__)


@dataclass
class QueueStanding:
    """A waiting entry with its 1-based place among the session's waiting entries."""

    entry: QueueEntry
    rank: int
    waiting_total: int

    @property
    def position(self) -> int:
        return self.entry.position


class QueueService:
    """
    Service for the session waiting list.

    Positions are max(position) + 1 over every entry the session ever had,
    so they are never reused and never renumbered.
    """

    @staticmethod
    @transaction.atomic
    def enqueue(trainee_id, session_id) -> QueueEntry:
        """
        Append a trainee to the session's queue.

        Raises:
            SessionNotFound: If the session does not exist
            AlreadyQueued: If the trainee is already waiting
        """
        session = CapacityLedger.lock_session(session_id)

        if QueueEntry.objects.filter(
            session=session,
            trainee_id=trainee_id,
            status=QueueEntry.Status.WAITING
        ).exists():
            raise AlreadyQueued()

        last_position = QueueEntry.objects.filter(session=session).aggregate(
            last=Max('position')
        )['last'] or 0

        entry = QueueEntry.objects.create(
            trainee_id=trainee_id,
            session=session,
            position=last_position + 1,
        )
        publish_queue_event(EventType.QUEUE_JOINED, entry)

        logger.info(f"Trainee {trainee_id} queued for session {session.id} at position {entry.position}")
        return entry

    @staticmethod
    @transaction.atomic
    def promote_next(session_id) -> Optional[QueueEntry]:
        """
        Admit the waiting entry with the lowest position.

        Returns None when nobody is waiting or no seat could be reserved;
        in the latter case the entry stays waiting.
        """
        from .admission_service import register_enrollment

        session = CapacityLedger.lock_session(session_id)
        if session.status not in (TrainingSession.Status.SCHEDULED, TrainingSession.Status.IN_PROGRESS):
            return None

        entry = QueueEntry.objects.filter(
            session=session,
            status=QueueEntry.Status.WAITING
        ).order_by('position').first()

        if entry is None:
            return None

        if not CapacityLedger.try_reserve(session.id):
            logger.info(f"No seat for queue head {entry.position} of session {session.id}")
            return None

        entry.promote()
        entry.save(update_fields=['status', 'promoted_at'])

        enrollment = register_enrollment(session, entry.trainee_id, Enrollment.Source.WAITLIST)

        publish_queue_event(EventType.QUEUE_PROMOTED, entry)
        publish_enrollment_admitted(enrollment)
        notify_queue_promoted(entry, enrollment)

        logger.info(f"Promoted trainee {entry.trainee_id} from position {entry.position} in session {session.id}")
        return entry

    @staticmethod
    @transaction.atomic
    def withdraw(trainee_id, session_id) -> QueueEntry:
        """
        Leave the queue. Other positions are untouched and nothing is promoted.

        Raises:
            NotQueued: If the trainee has no waiting entry
        """
        session = CapacityLedger.lock_session(session_id)

        entry = QueueEntry.objects.filter(
            session=session,
            trainee_id=trainee_id,
            status=QueueEntry.Status.WAITING
        ).first()
        if entry is None:
            raise NotQueued()

        entry.withdraw()
        entry.save(update_fields=['status', 'withdrawn_at'])
        publish_queue_event(EventType.QUEUE_WITHDRAWN, entry)

        logger.info(f"Trainee {trainee_id} withdrew from queue of session {session.id}")
        return entry

    @staticmethod
    def withdraw_all(session: TrainingSession) -> int:
        """Withdraw every waiting entry of a locked session that is closing."""
        entries = list(QueueEntry.objects.filter(session=session, status=QueueEntry.Status.WAITING))
        for entry in entries:
            entry.withdraw()
            entry.save(update_fields=['status', 'withdrawn_at'])
            publish_queue_event(EventType.QUEUE_WITHDRAWN, entry)
        return len(entries)

    @staticmethod
    def _standing(entry: QueueEntry) -> QueueStanding:
        waiting = QueueEntry.objects.filter(session_id=entry.session_id, status=QueueEntry.Status.WAITING)
        return QueueStanding(
            entry=entry,
            rank=waiting.filter(position__lte=entry.position).count(),
            waiting_total=waiting.count(),
        )

    @staticmethod
    def get_standing(trainee_id, session_id) -> QueueStanding:
        """
        Where a trainee stands in a session's queue ("position X of Y").

        Raises:
            NotQueued: If the trainee has no waiting entry
        """
        entry = QueueEntry.objects.filter(
            session_id=session_id,
            trainee_id=trainee_id,
            status=QueueEntry.Status.WAITING
        ).first()
        if entry is None:
            raise NotQueued()
        return QueueService._standing(entry)

    @staticmethod
    def list_trainee_queues(trainee_id) -> List[QueueStanding]:
        entries = QueueEntry.objects.filter(
            trainee_id=trainee_id,
            status=QueueEntry.Status.WAITING
        ).select_related('session').order_by('joined_at')
        return [QueueService._standing(entry) for entry in entries]

    @staticmethod
    def list_session_queue(session_id):
        return QueueEntry.objects.filter(
            session_id=session_id,
            status=QueueEntry.Status.WAITING
        ).order_by('position')
