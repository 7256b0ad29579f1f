# services/training-center-service/src/apps/core/models/session.py
"""
Session Models

Capacity-bounded training sessions and the enrollments that hold their seats.
"""

import uuid
from datetime import timedelta
from typing import Optional

from django.db import models
from django.utils import timezone


class TrainingSession(models.Model):
    """
    A scheduled training session with a fixed capacity.

    ``enrolled_count`` is owned by the capacity ledger and must only be
    changed through ``apps.core.services.capacity_ledger``.
    """

    class Status(models.TextChoices):
        SCHEDULED = 'scheduled', 'Scheduled'
        IN_PROGRESS = 'in_progress', 'In Progress'
        COMPLETED = 'completed', 'Completed'
        CANCELLED = 'cancelled', 'Cancelled'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Details
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')
    program_code = models.CharField(max_length=50, blank=True, default='', db_index=True)
    location = models.CharField(max_length=255, blank=True, default='')

    # Schedule
    scheduled_start = models.DateTimeField(db_index=True)
    duration_minutes = models.PositiveIntegerField(default=60)
    trainer_id = models.UUIDField(null=True, blank=True, db_index=True)

    # Capacity
    max_capacity = models.PositiveIntegerField()
    enrolled_count = models.PositiveIntegerField(default=0)

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.SCHEDULED,
        db_index=True
    )

    # Audit
    created_by = models.UUIDField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'training_sessions'
        ordering = ['scheduled_start']
        indexes = [
            models.Index(fields=['status', 'scheduled_start']),
            models.Index(fields=['trainer_id', 'scheduled_start']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(max_capacity__gt=0),
                name='session_capacity_positive',
            ),
            models.CheckConstraint(
                condition=models.Q(enrolled_count__lte=models.F('max_capacity')),
                name='session_enrolled_within_capacity',
            ),
        ]

    def __str__(self):
        return f"{self.title} ({self.scheduled_start:%Y-%m-%d %H:%M})"

    @property
    def available_slots(self) -> int:
        return max(0, self.max_capacity - self.enrolled_count)

    @property
    def is_full(self) -> bool:
        return self.enrolled_count >= self.max_capacity

    @property
    def scheduled_end(self):
        return self.scheduled_start + timedelta(minutes=self.duration_minutes)


class Enrollment(models.Model):
    """
    A trainee's seat in a session.

    One row per (trainee, session). A cancelled row is reactivated when the
    trainee is admitted again.
    """

    class Status(models.TextChoices):
        REGISTERED = 'registered', 'Registered'
        CANCELLED = 'cancelled', 'Cancelled'
        ATTENDED = 'attended', 'Attended'
        NO_SHOW = 'no_show', 'No Show'

    class Source(models.TextChoices):
        DIRECT = 'direct', 'Direct'
        WAITLIST = 'waitlist', 'Waitlist'

    # Statuses that occupy a seat in the capacity ledger
    SEAT_HOLDING_STATUSES = (Status.REGISTERED, Status.ATTENDED, Status.NO_SHOW)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    trainee_id = models.UUIDField(db_index=True)
    session = models.ForeignKey(
        TrainingSession,
        on_delete=models.CASCADE,
        related_name='enrollments'
    )

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.REGISTERED,
        db_index=True
    )
    source = models.CharField(
        max_length=20,
        choices=Source.choices,
        default=Source.DIRECT
    )

    enrolled_at = models.DateTimeField(default=timezone.now)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.UUIDField(null=True, blank=True)
    attendance_marked_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'enrollments'
        ordering = ['enrolled_at']
        constraints = [
            models.UniqueConstraint(
                fields=['trainee_id', 'session'],
                name='unique_enrollment_per_trainee_session',
            ),
        ]
        indexes = [
            models.Index(fields=['session', 'status']),
        ]

    def __str__(self):
        return f"Enrollment: {self.trainee_id} in {self.session_id} ({self.status})"

    @property
    def holds_seat(self) -> bool:
        return self.status in self.SEAT_HOLDING_STATUSES

    def register(self, source: str) -> None:
        """Put the row back into the registered state (new or reactivated)."""
        self.status = self.Status.REGISTERED
        self.source = source
        self.enrolled_at = timezone.now()
        self.cancelled_at = None
        self.cancelled_by = None
        self.attendance_marked_at = None

    def cancel(self, cancelled_by: Optional[str] = None) -> None:
        self.status = self.Status.CANCELLED
        self.cancelled_at = timezone.now()
        self.cancelled_by = cancelled_by
