# services/training-center-service/src/apps/api/views/exam_views.py
"""
Exam API Views

Starting, autosaving, submitting and inspecting exam attempts.
"""

import logging

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from shared.common.permissions import IsAdminOrTrainer, is_staff

from apps.core.models import Exam
from apps.core.services import ExamAttemptService
from apps.api.serializers import (
    AnswersSerializer,
    ExamAttemptInProgressSerializer,
    ExamAttemptSerializer,
    ExamSerializer,
    ResetAttemptSerializer,
)

logger = logging.getLogger(__name__)


class ExamViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Exams and the current user's attempt at each.

    Trainees only see published exams.
    """

    serializer_class = ExamSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ['session', 'is_published']

    def get_queryset(self):
        queryset = Exam.objects.select_related('session')
        if not is_staff(self.request.user):
            queryset = queryset.filter(is_published=True)
        return queryset

    def get_permissions(self):
        if self.action == 'reset':
            return [IsAdminOrTrainer()]
        return super().get_permissions()

    @action(detail=True, methods=['post'])
    def start(self, request, pk=None):
        attempt = ExamAttemptService.start(request.user.id, pk)
        return Response(ExamAttemptInProgressSerializer(attempt).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def answers(self, request, pk=None):
        """Autosave answers of the attempt in progress."""
        serializer = AnswersSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        attempt = ExamAttemptService.save_answers(request.user.id, pk, serializer.validated_data['answers'])
        return Response(ExamAttemptSerializer(attempt).data)

    @action(detail=True, methods=['post'])
    def submit(self, request, pk=None):
        serializer = AnswersSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        attempt = ExamAttemptService.submit(request.user.id, pk, serializer.validated_data['answers'])
        return Response(ExamAttemptSerializer(attempt).data)

    @action(detail=True, methods=['get'])
    def attempt(self, request, pk=None):
        """The current user's attempt, reconciled against its deadline."""
        attempt = ExamAttemptService.get_attempt(request.user.id, pk)
        return Response(ExamAttemptInProgressSerializer(attempt).data)

    @action(detail=True, methods=['post'])
    def reset(self, request, pk=None):
        serializer = ResetAttemptSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        attempt = ExamAttemptService.reset_attempt(
            serializer.validated_data['trainee_id'],
            pk,
            actor_id=request.user.id
        )
        return Response(ExamAttemptSerializer(attempt).data)


class MyAttemptsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        attempts = ExamAttemptService.list_trainee_attempts(request.user.id)
        return Response(ExamAttemptSerializer(attempts, many=True).data)
