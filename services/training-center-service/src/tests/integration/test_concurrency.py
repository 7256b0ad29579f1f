# services/training-center-service/src/tests/integration/test_concurrency.py
"""
Concurrency Tests for admission and submission

These need real row locks and run only against PostgreSQL
(TEST_DB_ENGINE=postgresql).
"""

import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest
from django.db import connection, connections

from shared.common.exceptions import BaseAPIException

from apps.core.models import Certificate, Enrollment, QueueEntry
from apps.core.services import AdmissionService, ExamAttemptService

pytestmark = [
    pytest.mark.django_db(transaction=True),
    pytest.mark.skipif(
        connection.vendor != 'postgresql',
        reason='Row locking needs PostgreSQL'
    ),
]


def run_concurrently(func, args_list, workers=10):
    def _call(args):
        try:
            return func(*args)
        except BaseAPIException as e:
            return e
        finally:
            connections.close_all()

    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(_call, args_list))


def test_simultaneous_enrollments_respect_capacity(create_session):
    session = create_session(max_capacity=3)
    trainees = [uuid.uuid4() for _ in range(10)]

    run_concurrently(AdmissionService.enroll, [(t, session.id) for t in trainees])

    session.refresh_from_db()
    registered = Enrollment.objects.filter(session=session, status=Enrollment.Status.REGISTERED).count()
    positions = sorted(QueueEntry.objects.filter(session=session).values_list('position', flat=True))

    assert registered == 3
    assert session.enrolled_count == 3
    assert positions == list(range(1, 8))


def test_simultaneous_cancellations_promote_once_each(create_session):
    session = create_session(max_capacity=2)
    holders = [uuid.uuid4() for _ in range(2)]
    waiting = [uuid.uuid4() for _ in range(3)]
    for trainee in holders + waiting:
        AdmissionService.enroll(trainee, session.id)

    run_concurrently(AdmissionService.cancel, [(t, session.id) for t in holders])

    session.refresh_from_db()
    promoted = QueueEntry.objects.filter(session=session, status=QueueEntry.Status.PROMOTED)
    assert session.enrolled_count == 2
    assert sorted(promoted.values_list('position', flat=True)) == [1, 2]


def test_simultaneous_submissions_score_once(create_exam, trainee_id, enroll_directly):
    exam = create_exam()
    enroll_directly(exam.session, trainee_id)
    ExamAttemptService.start(trainee_id, exam.id)
    answers = {str(q.id): q.correct_answer for q in exam.questions.all()}

    results = run_concurrently(ExamAttemptService.submit, [(trainee_id, exam.id, answers)] * 5, workers=5)

    succeeded = [r for r in results if not isinstance(r, BaseAPIException)]
    assert len(succeeded) == 1
    assert Certificate.objects.filter(trainee_id=trainee_id).count() == 1
