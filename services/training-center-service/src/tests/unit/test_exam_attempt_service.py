# services/training-center-service/src/tests/unit/test_exam_attempt_service.py
"""
Unit Tests for the Exam Attempt Service
"""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.core.exceptions import (
    AttemptAlreadyExists,
    AttemptAlreadyFinalized,
    AttemptHasCertificate,
    AttemptNotFound,
    ExamNotAvailable,
    ExamNotFound,
    NoActiveAttempt,
    NotEligible,
    PermissionDenied,
)
from apps.core.models import Certificate, Enrollment, ExamAttempt, Question
from apps.core.services import ExamAttemptService


@pytest.fixture
def exam(create_exam):
    return create_exam()


@pytest.fixture
def eligible_trainee(exam, trainee_id, enroll_directly):
    enroll_directly(exam.session, trainee_id)
    return trainee_id


def answer_map(exam, *answers):
    questions = list(exam.questions.order_by('order'))
    return {str(q.id): a for q, a in zip(questions, answers)}


@pytest.mark.django_db
class TestStart:
    """Tests for ExamAttemptService.start."""

    def test_start(self, exam, eligible_trainee):
        before = timezone.now()

        attempt = ExamAttemptService.start(eligible_trainee, exam.id)

        assert attempt.status == ExamAttempt.Status.IN_PROGRESS
        assert before <= attempt.started_at <= timezone.now()
        assert attempt.deadline == attempt.started_at + timedelta(minutes=30)

    def test_attended_trainee_is_eligible(self, exam, trainee_id, enroll_directly):
        enroll_directly(exam.session, trainee_id, status=Enrollment.Status.ATTENDED)

        attempt = ExamAttemptService.start(trainee_id, exam.id)

        assert attempt.status == ExamAttempt.Status.IN_PROGRESS

    def test_not_enrolled(self, exam, trainee_id):
        with pytest.raises(NotEligible):
            ExamAttemptService.start(trainee_id, exam.id)

    def test_cancelled_enrollment_not_eligible(self, exam, trainee_id, enroll_directly):
        enroll_directly(exam.session, trainee_id, status=Enrollment.Status.CANCELLED)

        with pytest.raises(NotEligible):
            ExamAttemptService.start(trainee_id, exam.id)

    def test_unpublished_exam(self, create_exam, trainee_id, enroll_directly):
        exam = create_exam(is_published=False)
        enroll_directly(exam.session, trainee_id)

        with pytest.raises(ExamNotAvailable):
            ExamAttemptService.start(trainee_id, exam.id)

    def test_unknown_exam(self, trainee_id):
        with pytest.raises(ExamNotFound):
            ExamAttemptService.start(trainee_id, uuid.uuid4())

    def test_start_twice(self, exam, eligible_trainee):
        ExamAttemptService.start(eligible_trainee, exam.id)

        with pytest.raises(AttemptAlreadyExists):
            ExamAttemptService.start(eligible_trainee, exam.id)

        assert ExamAttempt.objects.filter(trainee_id=eligible_trainee, exam=exam).count() == 1

    def test_start_again_after_deadline_expires_attempt(self, exam, eligible_trainee, backdate_attempt):
        attempt = ExamAttemptService.start(eligible_trainee, exam.id)
        backdate_attempt(attempt, 31)

        with pytest.raises(AttemptAlreadyExists):
            ExamAttemptService.start(eligible_trainee, exam.id)

        attempt.refresh_from_db()
        assert attempt.status == ExamAttempt.Status.EXPIRED
        assert attempt.passed is False
        assert attempt.expired_at is not None


@pytest.mark.django_db
class TestSubmit:
    """Tests for ExamAttemptService.submit."""

    def test_full_marks_pass(self, exam, eligible_trainee):
        ExamAttemptService.start(eligible_trainee, exam.id)

        attempt = ExamAttemptService.submit(eligible_trainee, exam.id, answer_map(exam, 'B', 'C'))

        assert attempt.status == ExamAttempt.Status.SUBMITTED
        assert attempt.score == 2
        assert attempt.total_points == 2
        assert attempt.percentage_score == Decimal('100.00')
        assert attempt.passed is True

    def test_half_marks_fail_at_sixty(self, exam, eligible_trainee):
        """Test 50% against a passing score of 60 does not pass."""
        ExamAttemptService.start(eligible_trainee, exam.id)

        attempt = ExamAttemptService.submit(eligible_trainee, exam.id, answer_map(exam, 'B', 'A'))

        assert attempt.score == 1
        assert attempt.percentage_score == Decimal('50.00')
        assert attempt.passed is False
        assert not Certificate.objects.exists()

    def test_submit_twice(self, exam, eligible_trainee):
        ExamAttemptService.start(eligible_trainee, exam.id)
        ExamAttemptService.submit(eligible_trainee, exam.id, answer_map(exam, 'B', 'C'))

        with pytest.raises(AttemptAlreadyFinalized):
            ExamAttemptService.submit(eligible_trainee, exam.id, answer_map(exam, 'B', 'C'))

        assert Certificate.objects.count() == 1

    def test_submit_without_start(self, exam, eligible_trainee):
        with pytest.raises(NoActiveAttempt):
            ExamAttemptService.submit(eligible_trainee, exam.id, {})

    def test_submit_merges_saved_answers(self, exam, eligible_trainee):
        ExamAttemptService.start(eligible_trainee, exam.id)
        first, second = answer_map(exam, 'B', 'C').items()
        ExamAttemptService.save_answers(eligible_trainee, exam.id, dict([first]))

        attempt = ExamAttemptService.submit(eligible_trainee, exam.id, dict([second]))

        assert attempt.score == 2

    def test_free_text_goes_to_manual_review(self, create_exam, trainee_id, enroll_directly):
        """Test free-text questions count toward neither score nor total."""
        exam = create_exam(questions=[
            {'text': 'Pick B', 'options': ['A', 'B'], 'correct_answer': 'B'},
            {'text': 'Describe the evacuation plan', 'question_type': Question.QuestionType.FREE_TEXT},
        ])
        enroll_directly(exam.session, trainee_id)
        ExamAttemptService.start(trainee_id, exam.id)

        attempt = ExamAttemptService.submit(trainee_id, exam.id, answer_map(exam, 'B', 'Walk to the exit'))

        assert attempt.total_points == 1
        assert attempt.score == 1
        assert attempt.requires_manual_review is True
        assert attempt.passed is True

    def test_late_submission_is_expired(self, exam, eligible_trainee, backdate_attempt):
        """Test a submission past the deadline is graded but never passes."""
        attempt = ExamAttemptService.start(eligible_trainee, exam.id)
        backdate_attempt(attempt, minutes=31)

        attempt = ExamAttemptService.submit(eligible_trainee, exam.id, answer_map(exam, 'B', 'C'))

        assert attempt.status == ExamAttempt.Status.EXPIRED
        assert attempt.score == 2
        assert attempt.passed is False
        assert not Certificate.objects.exists()

    def test_result_notification(
        self, exam, eligible_trainee, notification_client, django_capture_on_commit_callbacks
    ):
        ExamAttemptService.start(eligible_trainee, exam.id)

        with django_capture_on_commit_callbacks(execute=True):
            ExamAttemptService.submit(eligible_trainee, exam.id, answer_map(exam, 'A', 'A'))

        user_id, event_type, payload = notification_client.await_args.args
        assert user_id == str(eligible_trainee)
        assert event_type == 'exam_failed'
        assert payload['passed'] is False


@pytest.mark.django_db
class TestExpiry:
    """Tests for lazy and periodic expiry."""

    def test_read_after_deadline_expires(self, exam, eligible_trainee, backdate_attempt):
        """Test reading an overdue attempt expires it and grades the saved answers."""
        ExamAttemptService.start(eligible_trainee, exam.id)
        ExamAttemptService.save_answers(eligible_trainee, exam.id, answer_map(exam, 'B'))
        backdate_attempt(ExamAttempt.objects.get(trainee_id=eligible_trainee), minutes=45)

        attempt = ExamAttemptService.get_attempt(eligible_trainee, exam.id)

        assert attempt.status == ExamAttempt.Status.EXPIRED
        assert attempt.expired_at is not None
        assert attempt.score == 1
        assert attempt.passed is False
        assert attempt.time_remaining_seconds == 0

    def test_read_within_deadline(self, exam, eligible_trainee):
        ExamAttemptService.start(eligible_trainee, exam.id)

        attempt = ExamAttemptService.get_attempt(eligible_trainee, exam.id)

        assert attempt.status == ExamAttempt.Status.IN_PROGRESS
        assert 0 < attempt.time_remaining_seconds <= 30 * 60

    def test_save_answers_after_deadline(self, exam, eligible_trainee, backdate_attempt):
        attempt = ExamAttemptService.start(eligible_trainee, exam.id)
        backdate_attempt(attempt, minutes=31)

        with pytest.raises(NoActiveAttempt):
            ExamAttemptService.save_answers(eligible_trainee, exam.id, answer_map(exam, 'B', 'C'))

        attempt.refresh_from_db()
        assert attempt.status == ExamAttempt.Status.EXPIRED
        assert attempt.answers == {}

    def test_submit_after_expiry(self, exam, eligible_trainee, backdate_attempt):
        attempt = ExamAttemptService.start(eligible_trainee, exam.id)
        backdate_attempt(attempt, minutes=31)
        ExamAttemptService.get_attempt(eligible_trainee, exam.id)

        with pytest.raises(AttemptAlreadyFinalized):
            ExamAttemptService.submit(eligible_trainee, exam.id, answer_map(exam, 'B', 'C'))

    def test_grace_period(self, exam, eligible_trainee, backdate_attempt, settings):
        settings.EXAM_SUBMISSION_GRACE_SECONDS = 120
        attempt = ExamAttemptService.start(eligible_trainee, exam.id)
        backdate_attempt(attempt, minutes=31)

        attempt = ExamAttemptService.submit(eligible_trainee, exam.id, answer_map(exam, 'B', 'C'))

        assert attempt.status == ExamAttempt.Status.SUBMITTED
        assert attempt.passed is True

    def test_expire_overdue_attempts(self, create_exam, backdate_attempt, enroll_directly):
        exam = create_exam()
        overdue, fresh = uuid.uuid4(), uuid.uuid4()
        for trainee in (overdue, fresh):
            enroll_directly(exam.session, trainee)
            ExamAttemptService.start(trainee, exam.id)
        backdate_attempt(ExamAttempt.objects.get(trainee_id=overdue), minutes=60)

        assert ExamAttemptService.expire_overdue_attempts() == 1
        assert ExamAttempt.objects.get(trainee_id=overdue).status == ExamAttempt.Status.EXPIRED
        assert ExamAttempt.objects.get(trainee_id=fresh).status == ExamAttempt.Status.IN_PROGRESS
        assert ExamAttemptService.expire_overdue_attempts() == 0

    def test_unknown_attempt(self, exam, trainee_id):
        with pytest.raises(AttemptNotFound):
            ExamAttemptService.get_attempt(trainee_id, exam.id)


@pytest.mark.django_db
class TestReset:
    """Tests for ExamAttemptService.reset_attempt."""

    def test_trainer_resets_failed_attempt(self, exam, eligible_trainee, trainer_id, user_directory):
        user_directory[str(trainer_id)] = 'trainer'
        ExamAttemptService.start(eligible_trainee, exam.id)
        ExamAttemptService.submit(eligible_trainee, exam.id, answer_map(exam, 'A', 'A'))

        attempt = ExamAttemptService.reset_attempt(eligible_trainee, exam.id, trainer_id)

        assert attempt.status == ExamAttempt.Status.NOT_STARTED
        assert attempt.score is None
        assert attempt.reset_count == 1

        restarted = ExamAttemptService.start(eligible_trainee, exam.id)
        assert restarted.id == attempt.id
        assert restarted.status == ExamAttempt.Status.IN_PROGRESS

    def test_trainee_cannot_reset(self, exam, eligible_trainee):
        ExamAttemptService.start(eligible_trainee, exam.id)

        with pytest.raises(PermissionDenied):
            ExamAttemptService.reset_attempt(eligible_trainee, exam.id, eligible_trainee)

    def test_certified_attempt_cannot_be_reset(self, exam, eligible_trainee, admin_id, user_directory):
        user_directory[str(admin_id)] = 'admin'
        ExamAttemptService.start(eligible_trainee, exam.id)
        ExamAttemptService.submit(eligible_trainee, exam.id, answer_map(exam, 'B', 'C'))

        with pytest.raises(AttemptHasCertificate):
            ExamAttemptService.reset_attempt(eligible_trainee, exam.id, admin_id)

    def test_reset_missing_attempt(self, exam, trainee_id, admin_id, user_directory):
        user_directory[str(admin_id)] = 'admin'

        with pytest.raises(AttemptNotFound):
            ExamAttemptService.reset_attempt(trainee_id, exam.id, admin_id)
