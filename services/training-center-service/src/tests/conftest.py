# services/training-center-service/src/tests/conftest.py
"""
Pytest Configuration and Fixtures

Provides common fixtures for training center tests.
"""

import uuid
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import jwt
import pytest
from django.conf import settings
from django.utils import timezone
from rest_framework.test import APIClient

from shared.common.clients import (
    CertificateRendererClient,
    NotificationServiceClient,
    UserServiceClient,
)

from apps.core.models import Enrollment, Exam, ExamAttempt, Question, TrainingSession


@pytest.fixture
def api_client():
    """Provide API client for testing."""
    return APIClient()


@pytest.fixture
def trainee_id():
    return uuid.uuid4()


@pytest.fixture
def trainer_id():
    return uuid.uuid4()


@pytest.fixture
def admin_id():
    return uuid.uuid4()


# ==========================================================================
# Collaborators
# ==========================================================================

@pytest.fixture(autouse=True)
def user_directory():
    """
    Fake user directory: ``user_directory[str(user_id)] = role``.
    Unknown users are active trainees.
    """
    roles = {}

    async def get_user(user_id):
        return {'id': user_id, 'role': roles.get(user_id, 'trainee'), 'status': 'active'}

    with patch.object(UserServiceClient, 'get_user', new=AsyncMock(side_effect=get_user)):
        yield roles


@pytest.fixture(autouse=True)
def notification_client():
    with patch.object(
        NotificationServiceClient,
        'send_notification',
        new=AsyncMock(return_value={'success': True})
    ) as mock:
        yield mock


@pytest.fixture(autouse=True)
def renderer_client():
    with patch.object(
        CertificateRendererClient,
        'render',
        new=AsyncMock(return_value='certificates/rendered.pdf')
    ) as mock:
        yield mock


# ==========================================================================
# Authentication
# ==========================================================================

def make_token(user_id, role: str) -> str:
    payload = {
        'sub': str(user_id),
        'role': role,
        'exp': timezone.now() + timedelta(hours=1),
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def authenticate():
    """Authenticate an APIClient as a user with a role."""

    def _authenticate(client: APIClient, user_id, role: str = 'trainee') -> APIClient:
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {make_token(user_id, role)}")
        return client

    return _authenticate


@pytest.fixture
def trainee_client(api_client, authenticate, trainee_id):
    return authenticate(api_client, trainee_id, 'trainee')


@pytest.fixture
def trainer_client(authenticate, trainer_id, user_directory):
    user_directory[str(trainer_id)] = 'trainer'
    return authenticate(APIClient(), trainer_id, 'trainer')


# ==========================================================================
# Factories
# ==========================================================================

@pytest.fixture
def create_session():
    """Factory fixture for creating training sessions."""

    def _create_session(**kwargs):
        defaults = {
            'title': 'Safety Induction',
            'program_code': 'SAFE-101',
            'scheduled_start': timezone.now() + timedelta(days=3),
            'duration_minutes': 120,
            'max_capacity': 2,
        }
        defaults.update(kwargs)
        return TrainingSession.objects.create(**defaults)

    return _create_session


@pytest.fixture
def create_exam(create_session):
    """
    Factory fixture for an exam with two one-point multiple choice
    questions whose correct answers are 'B' and 'C'.
    """

    def _create_exam(session=None, questions=None, **kwargs):
        defaults = {
            'title': 'Safety Induction Exam',
            'duration_minutes': 30,
            'passing_score': 60,
            'is_published': True,
        }
        defaults.update(kwargs)
        exam = Exam.objects.create(session=session or create_session(), **defaults)

        if questions is None:
            questions = [
                {'text': 'Where is the nearest exit?', 'options': ['A', 'B', 'C'], 'correct_answer': 'B'},
                {'text': 'Who is the fire warden?', 'options': ['A', 'B', 'C'], 'correct_answer': 'C'},
            ]
        for order, question in enumerate(questions, start=1):
            Question.objects.create(exam=exam, order=order, **question)
        return exam

    return _create_exam


@pytest.fixture
def enroll_directly():
    """Give a trainee a seat without going through admission (test setup only)."""

    def _enroll(session, trainee_id, status=Enrollment.Status.REGISTERED):
        TrainingSession.objects.filter(pk=session.pk).update(enrolled_count=session.enrolled_count + 1)
        session.refresh_from_db()
        return Enrollment.objects.create(session=session, trainee_id=trainee_id, status=status)

    return _enroll


@pytest.fixture
def backdate_attempt():
    """Move an attempt's start back so that it is overdue."""

    def _backdate(attempt: ExamAttempt, minutes: int):
        ExamAttempt.objects.filter(pk=attempt.pk).update(
            started_at=timezone.now() - timedelta(minutes=minutes)
        )
        attempt.refresh_from_db()
        return attempt

    return _backdate
