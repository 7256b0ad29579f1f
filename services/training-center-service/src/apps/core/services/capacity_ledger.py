# services/training-center-service/src/apps/core/services/capacity_ledger.py
"""
Capacity Ledger

Per-session seat counter. Every capacity decision is one conditional
UPDATE or happens under the session's row lock, so a stale read is never
followed by a separate write.
"""

import logging

from django.db import transaction
from django.db.models import F

from ..exceptions import SessionNotFound
from ..models import TrainingSession

logger = logging.getLogger(__name__)


class CapacityLedger:
    """Atomic seat accounting on ``TrainingSession.enrolled_count``."""

    @staticmethod
    def lock_session(session_id) -> TrainingSession:
        """
        Lock the session row for the rest of the current transaction.

        This is the per-session critical section shared by admission,
        cancellation, promotion and withdrawal. Other sessions are not
        affected.

        Raises:
            SessionNotFound: If the session does not exist
        """
        if not transaction.get_connection().in_atomic_block:
            raise RuntimeError("lock_session() must be called inside transaction.atomic()")
        try:
            return TrainingSession.objects.select_for_update().get(pk=session_id)
        except TrainingSession.DoesNotExist:
            raise SessionNotFound()

    @staticmethod
    def try_reserve(session_id) -> bool:
        """
        Take one seat if the session is below capacity.

        Check and increment happen in a single UPDATE statement.

        Returns:
            True if a seat was reserved, False if the session is full
        """
        updated = TrainingSession.objects.filter(
            pk=session_id,
            enrolled_count__lt=F('max_capacity'),
        ).update(enrolled_count=F('enrolled_count') + 1)

        if not updated:
            logger.info(f"Capacity reservation refused for session {session_id}: full")
        return bool(updated)

    @staticmethod
    @transaction.atomic
    def release(session_id) -> bool:
        """
        Give back one seat.

        Returns:
            True if the session was at capacity before the release,
            i.e. a slot became free for the queue
        """
        session = CapacityLedger.lock_session(session_id)
        if session.enrolled_count == 0:
            logger.warning(f"Release on session {session_id} with no seats held")
            return False

        was_full = session.enrolled_count >= session.max_capacity
        TrainingSession.objects.filter(pk=session_id).update(
            enrolled_count=F('enrolled_count') - 1
        )
        return was_full

    @staticmethod
    def available_slots(session_id) -> int:
        try:
            session = TrainingSession.objects.only('max_capacity', 'enrolled_count').get(pk=session_id)
        except TrainingSession.DoesNotExist:
            raise SessionNotFound()
        return session.available_slots
