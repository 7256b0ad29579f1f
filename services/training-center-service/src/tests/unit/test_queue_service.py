# services/training-center-service/src/tests/unit/test_queue_service.py
"""
Unit Tests for the Queue Service
"""

import uuid

import pytest

from apps.core.exceptions import AlreadyQueued, NotQueued
from apps.core.models import Enrollment, QueueEntry
from apps.core.services import AdmissionService, QueueService


@pytest.fixture
def full_session(create_session):
    """A session of capacity 1 whose only seat is taken."""
    session = create_session(max_capacity=1)
    AdmissionService.enroll(uuid.uuid4(), session.id)
    return session


@pytest.mark.django_db
class TestQueueService:
    """Tests for QueueService."""

    def test_positions_increase(self, full_session):
        entries = [QueueService.enqueue(uuid.uuid4(), full_session.id) for _ in range(3)]

        assert [e.position for e in entries] == [1, 2, 3]
        assert all(e.status == QueueEntry.Status.WAITING for e in entries)

    def test_enqueue_twice(self, full_session, trainee_id):
        QueueService.enqueue(trainee_id, full_session.id)

        with pytest.raises(AlreadyQueued):
            QueueService.enqueue(trainee_id, full_session.id)

    def test_withdraw_does_not_promote_or_renumber(self, full_session):
        """Test withdrawing leaves other positions untouched and promotes nobody."""
        first, second, third = (QueueService.enqueue(uuid.uuid4(), full_session.id) for _ in range(3))

        QueueService.withdraw(second.trainee_id, full_session.id)

        first.refresh_from_db()
        third.refresh_from_db()
        assert first.position == 1 and first.status == QueueEntry.Status.WAITING
        assert third.position == 3 and third.status == QueueEntry.Status.WAITING
        assert not Enrollment.objects.filter(source=Enrollment.Source.WAITLIST).exists()

    def test_positions_never_reused(self, full_session, trainee_id):
        """Test a trainee rejoining after withdrawing goes to the back."""
        QueueService.enqueue(trainee_id, full_session.id)
        QueueService.enqueue(uuid.uuid4(), full_session.id)
        QueueService.withdraw(trainee_id, full_session.id)

        rejoined = QueueService.enqueue(trainee_id, full_session.id)

        assert rejoined.position == 3
        assert QueueEntry.objects.filter(session=full_session, trainee_id=trainee_id).count() == 2

    def test_withdraw_not_queued(self, full_session, trainee_id):
        with pytest.raises(NotQueued):
            QueueService.withdraw(trainee_id, full_session.id)

    def test_promote_next_on_empty_queue(self, create_session):
        session = create_session()

        assert QueueService.promote_next(session.id) is None

    def test_promote_next_without_free_seat(self, full_session, trainee_id):
        """Test the queue head stays waiting when no seat can be reserved."""
        entry = QueueService.enqueue(trainee_id, full_session.id)

        assert QueueService.promote_next(full_session.id) is None

        entry.refresh_from_db()
        assert entry.status == QueueEntry.Status.WAITING

    def test_promote_next_admits_lowest_position(self, full_session):
        first = QueueService.enqueue(uuid.uuid4(), full_session.id)
        QueueService.enqueue(uuid.uuid4(), full_session.id)
        full_session.max_capacity = 2
        full_session.save(update_fields=['max_capacity'])

        promoted = QueueService.promote_next(full_session.id)

        assert promoted.id == first.id
        assert promoted.status == QueueEntry.Status.PROMOTED
        assert promoted.promoted_at is not None
        enrollment = Enrollment.objects.get(session=full_session, trainee_id=first.trainee_id)
        assert enrollment.source == Enrollment.Source.WAITLIST

    def test_promotion_sends_notification(
        self, full_session, notification_client, django_capture_on_commit_callbacks
    ):
        waiting = QueueService.enqueue(uuid.uuid4(), full_session.id)
        holder = Enrollment.objects.get(session=full_session, status=Enrollment.Status.REGISTERED)

        with django_capture_on_commit_callbacks(execute=True):
            AdmissionService.cancel(holder.trainee_id, full_session.id)

        event_types = [call.args[1] for call in notification_client.await_args_list]
        assert 'queue_promoted' in event_types
        promoted_call = next(c for c in notification_client.await_args_list if c.args[1] == 'queue_promoted')
        assert promoted_call.args[0] == str(waiting.trainee_id)

    def test_standing(self, full_session, trainee_id):
        """Test rank counts only waiting entries while position keeps its value."""
        ahead = QueueService.enqueue(uuid.uuid4(), full_session.id)
        QueueService.enqueue(trainee_id, full_session.id)
        QueueService.enqueue(uuid.uuid4(), full_session.id)
        QueueService.withdraw(ahead.trainee_id, full_session.id)

        standing = QueueService.get_standing(trainee_id, full_session.id)

        assert standing.position == 2
        assert standing.rank == 1
        assert standing.waiting_total == 2

    def test_standing_not_queued(self, full_session, trainee_id):
        with pytest.raises(NotQueued):
            QueueService.get_standing(trainee_id, full_session.id)

    def test_list_trainee_queues(self, create_session, trainee_id):
        sessions = [create_session(max_capacity=1) for _ in range(2)]
        for session in sessions:
            AdmissionService.enroll(uuid.uuid4(), session.id)
            QueueService.enqueue(trainee_id, session.id)

        standings = QueueService.list_trainee_queues(trainee_id)

        assert {s.entry.session_id for s in standings} == {s.id for s in sessions}
        assert all(s.rank == 1 for s in standings)
