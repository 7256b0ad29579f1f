# services/training-center-service/src/apps/core/models/exam.py
"""
Exam and Question Models

Questions are read-only reference data keyed by exam; they are only read
while scoring a submission.
"""

import uuid
from typing import Any, Dict

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from .session import TrainingSession


def default_passing_score():
    return getattr(settings, 'DEFAULT_PASSING_SCORE', 70)


class Exam(models.Model):
    """A time-boxed exam attached to a training session."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    session = models.ForeignKey(
        TrainingSession,
        on_delete=models.PROTECT,
        related_name='exams'
    )
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')

    duration_minutes = models.PositiveIntegerField(
        help_text="Time allowed from start to submission"
    )
    passing_score = models.PositiveIntegerField(
        default=default_passing_score,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        help_text="Minimum percentage required to pass"
    )
    is_published = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'exams'
        ordering = ['-created_at']

    def __str__(self):
        return self.title


class Question(models.Model):
    """A question of an exam's question bank."""

    class QuestionType(models.TextChoices):
        MULTIPLE_CHOICE = 'multiple_choice', 'Multiple Choice'
        TRUE_FALSE = 'true_false', 'True/False'
        FREE_TEXT = 'free_text', 'Free Text'

    # Types scored automatically; anything else goes to manual review
    AUTO_SCORED_TYPES = (QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    exam = models.ForeignKey(
        Exam,
        on_delete=models.CASCADE,
        related_name='questions'
    )
    order = models.PositiveIntegerField(default=0)
    text = models.TextField()
    question_type = models.CharField(
        max_length=20,
        choices=QuestionType.choices,
        default=QuestionType.MULTIPLE_CHOICE
    )
    options = models.JSONField(default=list, blank=True)
    correct_answer = models.CharField(max_length=500, blank=True, default='')
    points = models.PositiveIntegerField(default=1)

    class Meta:
        db_table = 'exam_questions'
        ordering = ['exam', 'order']

    def __str__(self):
        return f"Q{self.order}: {self.text[:50]}"

    @property
    def is_auto_scored(self) -> bool:
        return self.question_type in self.AUTO_SCORED_TYPES

    def check_answer(self, given_answer: Any) -> bool:
        """Exact match after stripping whitespace; true/false ignores case."""
        if given_answer is None or not self.is_auto_scored:
            return False

        if isinstance(given_answer, bool):
            given_answer = 'true' if given_answer else 'false'

        given = str(given_answer).strip()
        expected = self.correct_answer.strip()

        if self.question_type == self.QuestionType.TRUE_FALSE:
            return given.lower() == expected.lower()
        return given == expected

    def to_public_dict(self) -> Dict[str, Any]:
        """Question content without the correct answer."""
        return {
            'id': str(self.id),
            'order': self.order,
            'text': self.text,
            'question_type': self.question_type,
            'options': self.options,
            'points': self.points,
        }
