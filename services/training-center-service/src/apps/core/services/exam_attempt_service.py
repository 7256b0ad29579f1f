# services/training-center-service/src/apps/core/services/exam_attempt_service.py
"""
Exam Attempt Service

State machine for a trainee's attempt at an exam:
not_started -> in_progress -> submitted | expired.

Deadlines are enforced lazily: every read or write of an in-progress
attempt first checks the server clock against ``started_at`` and expires
the attempt if its time is up. The periodic sweep only tidies up attempts
nobody looks at.
"""

import logging
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from ..events import EventType, publish_attempt_event
from ..exceptions import (
    AttemptAlreadyExists,
    AttemptAlreadyFinalized,
    AttemptHasCertificate,
    AttemptNotFound,
    ExamNotAvailable,
    ExamNotFound,
    NoActiveAttempt,
    NotEligible,
)
from ..models import Certificate, Enrollment, Exam, ExamAttempt
from ..notifications import notify_exam_result
from .directory import require_staff

logger = logging.getLogger(__name__)


def _grace_seconds() -> int:
    return getattr(settings, 'EXAM_SUBMISSION_GRACE_SECONDS', 0)


class ExamAttemptService:
    """Service for exam attempts."""

    # ==========================================================================
    # Lookups
    # ==========================================================================

    @staticmethod
    def _get_exam(exam_id) -> Exam:
        try:
            return Exam.objects.select_related('session').get(pk=exam_id)
        except Exam.DoesNotExist:
            raise ExamNotFound()

    @staticmethod
    def _lock_attempt(trainee_id, exam_id) -> Optional[ExamAttempt]:
        """Row-lock the (trainee, exam) attempt; must run inside a transaction."""
        return ExamAttempt.objects.select_for_update().select_related('exam').filter(
            trainee_id=trainee_id,
            exam_id=exam_id
        ).first()

    # ==========================================================================
    # Transitions
    # ==========================================================================

    @staticmethod
    def _expire(attempt: ExamAttempt, now=None) -> ExamAttempt:
        """
        Expire a locked in-progress attempt, grading the last recorded
        answers. An expired attempt never passes.
        """
        now = now or timezone.now()
        attempt.grade(attempt.exam.questions.all())
        attempt.passed = False
        attempt.status = ExamAttempt.Status.EXPIRED
        attempt.expired_at = now
        attempt.save()

        publish_attempt_event(EventType.EXAM_EXPIRED, attempt)
        notify_exam_result(attempt)

        logger.info(f"Attempt {attempt.id} expired with {attempt.percentage_score}%")
        return attempt

    @staticmethod
    def start(trainee_id, exam_id) -> ExamAttempt:
        """
        Start an exam attempt on the server clock.

        Args:
            trainee_id: Trainee UUID
            exam_id: Exam UUID

        Returns:
            The in-progress attempt

        Raises:
            ExamNotFound: If the exam does not exist
            ExamNotAvailable: If the exam is not published
            NotEligible: If the trainee holds no registered or attended
                enrollment in the exam's session
            AttemptAlreadyExists: If the attempt is already started or finished;
                an in-progress attempt found past its deadline is expired first
        """
        exam = ExamAttemptService._get_exam(exam_id)

        if not exam.is_published:
            raise ExamNotAvailable()

        if not Enrollment.objects.filter(
            session_id=exam.session_id,
            trainee_id=trainee_id,
            status__in=[Enrollment.Status.REGISTERED, Enrollment.Status.ATTENDED]
        ).exists():
            raise NotEligible()

        with transaction.atomic():
            attempt = ExamAttemptService._lock_attempt(trainee_id, exam.id)
            if attempt is None:
                try:
                    with transaction.atomic():
                        ExamAttempt.objects.create(trainee_id=trainee_id, exam=exam)
                except IntegrityError:
                    logger.debug(f"Attempt for {trainee_id}/{exam.id} created concurrently")
                attempt = ExamAttemptService._lock_attempt(trainee_id, exam.id)

            already_started = attempt.status != ExamAttempt.Status.NOT_STARTED
            if already_started:
                if (attempt.status == ExamAttempt.Status.IN_PROGRESS
                        and attempt.is_overdue(grace_seconds=_grace_seconds())):
                    ExamAttemptService._expire(attempt)
            else:
                attempt.status = ExamAttempt.Status.IN_PROGRESS
                attempt.started_at = timezone.now()
                attempt.save(update_fields=['status', 'started_at', 'updated_at'])

                publish_attempt_event(EventType.EXAM_STARTED, attempt)

        if already_started:
            raise AttemptAlreadyExists()

        logger.info(
            f"Trainee {trainee_id} started exam {exam.id}, "
            f"deadline {attempt.deadline.isoformat()}"
        )
        return attempt

    @staticmethod
    def save_answers(trainee_id, exam_id, answers: Dict[str, Any]) -> ExamAttempt:
        """
        Record in-progress answers; these are what lazy expiry grades.

        Raises:
            NoActiveAttempt: If the attempt is not in progress, including
                when it is found past its deadline (it is expired first)
        """
        with transaction.atomic():
            attempt = ExamAttemptService._lock_attempt(trainee_id, exam_id)
            if attempt is None or attempt.status != ExamAttempt.Status.IN_PROGRESS:
                raise NoActiveAttempt()

            timed_out = attempt.is_overdue(grace_seconds=_grace_seconds())
            if timed_out:
                ExamAttemptService._expire(attempt)
            else:
                attempt.answers = {**attempt.answers, **{str(k): v for k, v in answers.items()}}
                attempt.save(update_fields=['answers', 'updated_at'])

        if timed_out:
            raise NoActiveAttempt('Time is up; the attempt has expired.')
        return attempt

    @staticmethod
    def submit(trainee_id, exam_id, answers: Optional[Dict[str, Any]] = None) -> ExamAttempt:
        """
        Submit and score an attempt. Runs exactly once per attempt.

        A late submission is still graded but the attempt is marked expired
        and does not pass.

        Args:
            trainee_id: Trainee UUID
            exam_id: Exam UUID
            answers: {question_id: answer}, merged over the autosaved answers

        Raises:
            AttemptAlreadyFinalized: If the attempt was submitted or expired
            NoActiveAttempt: If the attempt was never started
        """
        from .certification_service import CertificationService

        with transaction.atomic():
            attempt = ExamAttemptService._lock_attempt(trainee_id, exam_id)
            if attempt is None:
                raise NoActiveAttempt()
            if attempt.is_terminal:
                raise AttemptAlreadyFinalized()
            if attempt.status != ExamAttempt.Status.IN_PROGRESS:
                raise NoActiveAttempt()

            now = timezone.now()
            late = attempt.is_overdue(now, grace_seconds=_grace_seconds())

            merged = {**attempt.answers, **{str(k): v for k, v in (answers or {}).items()}}
            attempt.grade(attempt.exam.questions.all(), merged)
            attempt.submitted_at = now

            if late:
                attempt.status = ExamAttempt.Status.EXPIRED
                attempt.expired_at = now
                attempt.passed = False
            else:
                attempt.status = ExamAttempt.Status.SUBMITTED
            attempt.save()

            publish_attempt_event(
                EventType.EXAM_EXPIRED if late else EventType.EXAM_SUBMITTED,
                attempt
            )
            notify_exam_result(attempt)

            if attempt.passed:
                CertificationService.evaluate_attempt(attempt.id)
                CertificationService.dispatch_exam_completed(attempt)

        logger.info(
            f"Attempt {attempt.id} {attempt.status}: {attempt.score}/{attempt.total_points} "
            f"({attempt.percentage_score}%), passed={attempt.passed}"
        )
        return attempt

    # ==========================================================================
    # Reads (with lazy expiry)
    # ==========================================================================

    @staticmethod
    def _reconcile(attempt: ExamAttempt) -> ExamAttempt:
        """Expire an attempt found past its deadline before returning it."""
        if not attempt.is_overdue(grace_seconds=_grace_seconds()):
            return attempt

        with transaction.atomic():
            locked = ExamAttemptService._lock_attempt(attempt.trainee_id, attempt.exam_id)
            if locked.is_overdue(grace_seconds=_grace_seconds()):
                ExamAttemptService._expire(locked)
        return locked

    @staticmethod
    def get_attempt(trainee_id, exam_id) -> ExamAttempt:
        """
        Raises:
            AttemptNotFound: If the trainee has no attempt for the exam
        """
        attempt = ExamAttempt.objects.select_related('exam').filter(
            trainee_id=trainee_id,
            exam_id=exam_id
        ).first()
        if attempt is None:
            raise AttemptNotFound()
        return ExamAttemptService._reconcile(attempt)

    @staticmethod
    def list_trainee_attempts(trainee_id) -> List[ExamAttempt]:
        attempts = ExamAttempt.objects.filter(trainee_id=trainee_id).select_related('exam', 'exam__session')
        return [ExamAttemptService._reconcile(attempt) for attempt in attempts]

    @staticmethod
    def expire_overdue_attempts() -> int:
        """Expire every in-progress attempt past its deadline. Returns the count."""
        now = timezone.now()
        expired = 0
        candidates = ExamAttempt.objects.filter(
            status=ExamAttempt.Status.IN_PROGRESS
        ).select_related('exam')

        for attempt in candidates:
            if not attempt.is_overdue(now, grace_seconds=_grace_seconds()):
                continue
            with transaction.atomic():
                locked = ExamAttemptService._lock_attempt(attempt.trainee_id, attempt.exam_id)
                if locked.is_overdue(now, grace_seconds=_grace_seconds()):
                    ExamAttemptService._expire(locked, now)
                    expired += 1
        return expired

    # ==========================================================================
    # Administration
    # ==========================================================================

    @staticmethod
    def reset_attempt(trainee_id, exam_id, actor_id) -> ExamAttempt:
        """
        Let a trainee take an exam again by returning the attempt to
        not_started.

        Raises:
            PermissionDenied: If the actor is not an admin or trainer
            AttemptNotFound: If there is no attempt
            AttemptHasCertificate: If the attempt already earned a certificate
        """
        require_staff(actor_id)

        with transaction.atomic():
            attempt = ExamAttemptService._lock_attempt(trainee_id, exam_id)
            if attempt is None:
                raise AttemptNotFound()
            if Certificate.objects.filter(exam_attempt=attempt).exists():
                raise AttemptHasCertificate()

            previous = attempt.status
            attempt.reset()
            attempt.save()

        logger.info(f"Attempt {attempt.id} reset from {previous} by {actor_id}")
        return attempt
