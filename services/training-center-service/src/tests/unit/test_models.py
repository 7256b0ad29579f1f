# services/training-center-service/src/tests/unit/test_models.py
"""
Unit Tests for Training Center Models
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.core.models import Certificate, Enrollment, ExamAttempt, Question, QueueEntry


@pytest.mark.django_db
class TestQuestion:
    """Tests for Question.check_answer."""

    def test_multiple_choice_exact_match(self, create_exam):
        question = create_exam().questions.get(order=1)

        assert question.check_answer(' B ') is True
        assert question.check_answer('b') is False
        assert question.check_answer(None) is False

    def test_true_false(self, create_exam):
        exam = create_exam(questions=[
            {'text': 'Exits are marked green', 'question_type': Question.QuestionType.TRUE_FALSE,
             'correct_answer': 'True'},
        ])
        question = exam.questions.get()

        assert question.check_answer('true') is True
        assert question.check_answer(True) is True
        assert question.check_answer(False) is False

    def test_free_text_never_auto_scored(self, create_exam):
        exam = create_exam(questions=[
            {'text': 'Explain', 'question_type': Question.QuestionType.FREE_TEXT, 'correct_answer': 'x'},
        ])

        assert exam.questions.get().check_answer('x') is False

    def test_public_dict_hides_answer(self, create_exam):
        data = create_exam().questions.first().to_public_dict()

        assert 'correct_answer' not in data
        assert data['options'] == ['A', 'B', 'C']


@pytest.mark.django_db
class TestExamAttempt:
    """Tests for ExamAttempt grading and timing."""

    def test_percentage_rounding(self, create_exam, trainee_id):
        exam = create_exam(questions=[
            {'text': f'Q{i}', 'options': ['A', 'B'], 'correct_answer': 'A'} for i in range(3)
        ])
        attempt = ExamAttempt(trainee_id=trainee_id, exam=exam)
        first = exam.questions.order_by('order').first()

        attempt.grade(exam.questions.all(), {str(first.id): 'A'})

        assert attempt.score == 1
        assert attempt.total_points == 3
        assert attempt.percentage_score == Decimal('33.33')
        assert attempt.passed is False

    def test_no_auto_scored_questions(self, create_exam, trainee_id):
        exam = create_exam(questions=[
            {'text': 'Explain', 'question_type': Question.QuestionType.FREE_TEXT},
        ], passing_score=0)
        attempt = ExamAttempt(trainee_id=trainee_id, exam=exam)

        attempt.grade(exam.questions.all(), {})

        assert attempt.total_points == 0
        assert attempt.percentage_score == Decimal('0.00')
        assert attempt.requires_manual_review is True

    def test_is_overdue(self, create_exam, trainee_id):
        exam = create_exam(duration_minutes=10)
        now = timezone.now()
        attempt = ExamAttempt(
            trainee_id=trainee_id,
            exam=exam,
            status=ExamAttempt.Status.IN_PROGRESS,
            started_at=now - timedelta(minutes=10, seconds=30),
        )

        assert attempt.is_overdue(now) is True
        assert attempt.is_overdue(now, grace_seconds=60) is False

    def test_one_attempt_per_trainee_and_exam(self, create_exam, trainee_id):
        exam = create_exam()
        ExamAttempt.objects.create(trainee_id=trainee_id, exam=exam)

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                ExamAttempt.objects.create(trainee_id=trainee_id, exam=exam)


@pytest.mark.django_db
class TestEnrollment:
    """Tests for Enrollment seat accounting."""

    @pytest.mark.parametrize('status, expected', [
        (Enrollment.Status.REGISTERED, True),
        (Enrollment.Status.ATTENDED, True),
        (Enrollment.Status.NO_SHOW, True),
        (Enrollment.Status.CANCELLED, False),
    ])
    def test_holds_seat(self, create_session, trainee_id, status, expected):
        enrollment = Enrollment.objects.create(session=create_session(), trainee_id=trainee_id, status=status)

        assert enrollment.holds_seat is expected


@pytest.mark.django_db
class TestConstraints:
    """Tests for database guards behind the services."""

    def test_one_enrollment_per_trainee_and_session(self, create_session, trainee_id):
        session = create_session()
        Enrollment.objects.create(session=session, trainee_id=trainee_id)

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Enrollment.objects.create(session=session, trainee_id=trainee_id)

    def test_one_waiting_entry_per_trainee_and_session(self, create_session, trainee_id):
        session = create_session()
        QueueEntry.objects.create(session=session, trainee_id=trainee_id, position=1)

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                QueueEntry.objects.create(session=session, trainee_id=trainee_id, position=2)

    def test_withdrawn_entry_does_not_block_rejoin(self, create_session, trainee_id):
        session = create_session()
        QueueEntry.objects.create(
            session=session, trainee_id=trainee_id, position=1, status=QueueEntry.Status.WITHDRAWN
        )

        entry = QueueEntry.objects.create(session=session, trainee_id=trainee_id, position=2)

        assert entry.status == QueueEntry.Status.WAITING

    def test_enrolled_count_cannot_exceed_capacity(self, create_session):
        session = create_session(max_capacity=1)

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                type(session).objects.filter(pk=session.pk).update(enrolled_count=2)


class TestCertificateNumbers:
    """Tests for certificate identifiers."""

    def test_number_format(self, settings):
        settings.CERTIFICATE_NUMBER_PREFIX = 'CTC'
        number = Certificate.generate_certificate_number()

        prefix, year, token = number.split('-')
        assert prefix == 'CTC'
        assert year == str(timezone.now().year)
        assert len(token) == 10 and token == token.upper()

    def test_numbers_differ(self):
        numbers = {Certificate.generate_certificate_number() for _ in range(50)}

        assert len(numbers) == 50
