# services/training-center-service/src/apps/core/models/queue.py
"""
Queue Model

FIFO waiting list for full sessions.
"""

import uuid

from django.db import models
from django.utils import timezone

from .session import TrainingSession


class QueueEntry(models.Model):
    """
    Waiting list entry for a full session.

    Positions are assigned once, grow strictly within a session and are
    never reused or renumbered. Promotion takes the lowest waiting position.
    """

    class Status(models.TextChoices):
        WAITING = 'waiting', 'Waiting'
        PROMOTED = 'promoted', 'Promoted'
        WITHDRAWN = 'withdrawn', 'Withdrawn'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    trainee_id = models.UUIDField(db_index=True)
    session = models.ForeignKey(
        TrainingSession,
        on_delete=models.CASCADE,
        related_name='queue_entries'
    )
    position = models.PositiveIntegerField()

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.WAITING,
        db_index=True
    )

    joined_at = models.DateTimeField(default=timezone.now)
    promoted_at = models.DateTimeField(null=True, blank=True)
    withdrawn_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'queue_entries'
        ordering = ['session', 'position']
        constraints = [
            models.UniqueConstraint(
                fields=['session', 'position'],
                name='unique_queue_position_per_session',
            ),
            models.UniqueConstraint(
                fields=['trainee_id', 'session'],
                condition=models.Q(status='waiting'),
                name='unique_waiting_entry_per_trainee_session',
            ),
        ]
        indexes = [
            models.Index(fields=['session', 'status', 'position']),
        ]

    def __str__(self):
        return f"Queue #{self.position}: {self.trainee_id} for {self.session_id} ({self.status})"

    def promote(self) -> None:
        self.status = self.Status.PROMOTED
        self.promoted_at = timezone.now()

    def withdraw(self) -> None:
        self.status = self.Status.WITHDRAWN
        self.withdrawn_at = timezone.now()
