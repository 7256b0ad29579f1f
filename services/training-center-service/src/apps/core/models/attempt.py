# services/training-center-service/src/apps/core/models/attempt.py
"""
Exam Attempt Model

One attempt per trainee per exam, moving one way through
not_started -> in_progress -> submitted | expired.
"""

import uuid
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Optional

from django.db import models
from django.utils import timezone

from .exam import Exam, Question


class ExamAttempt(models.Model):
    """
    A trainee's timed pass through one exam.

    ``started_at`` is always taken from the server clock. Expiry is derived
    lazily from it; no timer runs per attempt.
    """

    class Status(models.TextChoices):
        NOT_STARTED = 'not_started', 'Not Started'
        IN_PROGRESS = 'in_progress', 'In Progress'
        SUBMITTED = 'submitted', 'Submitted'
        EXPIRED = 'expired', 'Expired'

    TERMINAL_STATUSES = (Status.SUBMITTED, Status.EXPIRED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    trainee_id = models.UUIDField(db_index=True)
    exam = models.ForeignKey(
        Exam,
        on_delete=models.PROTECT,
        related_name='attempts'
    )

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.NOT_STARTED,
        db_index=True
    )

    # Timing
    started_at = models.DateTimeField(null=True, blank=True)
    submitted_at = models.DateTimeField(null=True, blank=True)
    expired_at = models.DateTimeField(null=True, blank=True)

    # Last recorded answers: {question_id: answer}
    answers = models.JSONField(default=dict, blank=True)

    # Results
    score = models.PositiveIntegerField(null=True, blank=True)
    total_points = models.PositiveIntegerField(null=True, blank=True)
    percentage_score = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True
    )
    passed = models.BooleanField(null=True, blank=True)
    requires_manual_review = models.BooleanField(default=False)

    reset_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'exam_attempts'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['trainee_id', 'exam'],
                name='unique_attempt_per_trainee_exam',
            ),
        ]
        indexes = [
            models.Index(fields=['status', 'started_at']),
        ]

    def __str__(self):
        return f"{self.exam_id} attempt by {self.trainee_id} ({self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    @property
    def deadline(self):
        if not self.started_at:
            return None
        return self.started_at + timedelta(minutes=self.exam.duration_minutes)

    @property
    def time_remaining_seconds(self) -> Optional[int]:
        if self.status != self.Status.IN_PROGRESS:
            return 0 if self.is_terminal else None
        remaining = (self.deadline - timezone.now()).total_seconds()
        return max(0, int(remaining))

    def is_overdue(self, now=None, grace_seconds: int = 0) -> bool:
        """True when an in-progress attempt has run past its duration."""
        if self.status != self.Status.IN_PROGRESS or not self.started_at:
            return False
        now = now or timezone.now()
        elapsed = (now - self.started_at).total_seconds()
        return elapsed > self.exam.duration_minutes * 60 + grace_seconds

    def grade(self, questions: Iterable[Question], answers: Optional[Dict[str, Any]] = None) -> None:
        """
        Score answers against the exam's questions.

        Free-text questions count toward neither score nor total_points and
        flag the attempt for manual review.
        """
        answers = self.answers if answers is None else answers
        score = 0
        total_points = 0
        manual_review = False

        for question in questions:
            if not question.is_auto_scored:
                manual_review = True
                continue
            total_points += question.points
            if question.check_answer(answers.get(str(question.id))):
                score += question.points

        if total_points:
            percentage = (Decimal(100) * score / total_points).quantize(
                Decimal('0.01'), rounding=ROUND_HALF_UP
            )
        else:
            percentage = Decimal('0.00')

        self.answers = answers
        self.score = score
        self.total_points = total_points
        self.percentage_score = percentage
        self.passed = percentage >= self.exam.passing_score
        self.requires_manual_review = manual_review

    def reset(self) -> None:
        """Back to not_started with results cleared."""
        self.status = self.Status.NOT_STARTED
        self.started_at = None
        self.submitted_at = None
        self.expired_at = None
        self.answers = {}
        self.score = None
        self.total_points = None
        self.percentage_score = None
        self.passed = None
        self.requires_manual_review = False
        self.reset_count += 1
