# services/training-center-service/src/apps/api/views/session_views.py
"""
Session API Views

Session administration, enrollment, cancellation and the waiting list.
"""

import logging

from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from django_filters.rest_framework import DjangoFilterBackend

from shared.common.permissions import IsAdminOrTrainer, IsStaffOrReadOnly, Roles

from apps.core.models import TrainingSession
from apps.core.services import (
    AdmissionResult,
    AdmissionService,
    QueueService,
    SessionService,
)
from apps.api.serializers import (
    AttendanceSerializer,
    CancelEnrollmentSerializer,
    EnrollmentSerializer,
    QueueEntrySerializer,
    QueueStandingSerializer,
    TrainingSessionCreateSerializer,
    TrainingSessionDetailSerializer,
    TrainingSessionSerializer,
    TrainingSessionUpdateSerializer,
)

from .filters import TrainingSessionFilter

logger = logging.getLogger(__name__)


class TrainingSessionViewSet(viewsets.ModelViewSet):
    """
    ViewSet for training sessions.

    Anyone authenticated can browse sessions and enroll; admins and
    trainers manage them.
    """

    queryset = TrainingSession.objects.all()
    serializer_class = TrainingSessionSerializer
    permission_classes = [IsStaffOrReadOnly]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = TrainingSessionFilter
    ordering_fields = ['scheduled_start', 'created_at']
    ordering = ['scheduled_start']
    http_method_names = ['get', 'post', 'patch', 'head', 'options']

    TRAINEE_ACTIONS = ('enroll', 'cancel_enrollment', 'withdraw_from_queue', 'queue_standing')
    STAFF_ACTIONS = ('start', 'complete', 'cancel', 'attendance', 'queue')

    def get_permissions(self):
        if self.action in self.TRAINEE_ACTIONS:
            return [IsAuthenticated()]
        if self.action in self.STAFF_ACTIONS:
            return [IsAdminOrTrainer()]
        return super().get_permissions()

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return TrainingSessionDetailSerializer
        if self.action == 'create':
            return TrainingSessionCreateSerializer
        if self.action == 'partial_update':
            return TrainingSessionUpdateSerializer
        return TrainingSessionSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = dict(serializer.validated_data)
        # Trainers can only schedule themselves
        if request.user.has_role(Roles.TRAINER) and not request.user.has_role(Roles.ADMIN):
            data['trainer_id'] = request.user.id

        session = SessionService.create_session(data, created_by=request.user.id)
        return Response(TrainingSessionSerializer(session).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        session = SessionService.update_session(kwargs['pk'], serializer.validated_data)
        return Response(TrainingSessionSerializer(session).data)

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    @action(detail=True, methods=['post'])
    def start(self, request, pk=None):
        session = SessionService.start_session(pk)
        return Response(TrainingSessionSerializer(session).data)

    @action(detail=True, methods=['post'])
    def complete(self, request, pk=None):
        session = SessionService.complete_session(pk)
        return Response(TrainingSessionSerializer(session).data)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        session = SessionService.cancel_session(pk, actor_id=request.user.id)
        return Response(TrainingSessionSerializer(session).data)

    @action(detail=True, methods=['post'])
    def attendance(self, request, pk=None):
        """Mark registered trainees attended or no_show."""
        serializer = AttendanceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        enrollments = AdmissionService.record_attendance(pk, serializer.validated_data['attendance'])
        return Response(EnrollmentSerializer(enrollments, many=True).data)

    # ==========================================================================
    # Enrollment
    # ==========================================================================

    @action(detail=True, methods=['post'])
    def enroll(self, request, pk=None):
        """Enroll the current user; a full session puts them in the queue."""
        result = AdmissionService.enroll(request.user.id, pk)

        if result.outcome == AdmissionResult.ADMITTED:
            return Response({
                'outcome': result.outcome,
                'enrollment': EnrollmentSerializer(result.enrollment).data,
            }, status=status.HTTP_201_CREATED)

        return Response({
            'outcome': result.outcome,
            'position': result.position,
            'queue_entry': QueueEntrySerializer(result.queue_entry).data,
        }, status=status.HTTP_202_ACCEPTED)

    @action(detail=True, methods=['post'], url_path='cancel-enrollment')
    def cancel_enrollment(self, request, pk=None):
        serializer = CancelEnrollmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        trainee_id = serializer.validated_data.get('trainee_id') or request.user.id
        result = AdmissionService.cancel(trainee_id, pk, actor_id=request.user.id)

        return Response({
            'enrollment': EnrollmentSerializer(result.enrollment).data,
            'promoted': QueueEntrySerializer(result.promoted_entry).data if result.promoted_entry else None,
        })

    # ==========================================================================
    # Queue
    # ==========================================================================

    @action(detail=True, methods=['get'])
    def queue(self, request, pk=None):
        """Waiting entries of the session, in promotion order."""
        entries = QueueService.list_session_queue(pk)
        return Response(QueueEntrySerializer(entries, many=True).data)

    @action(detail=True, methods=['get'], url_path='queue/standing')
    def queue_standing(self, request, pk=None):
        standing = QueueService.get_standing(request.user.id, pk)
        return Response(QueueStandingSerializer(standing).data)

    @action(detail=True, methods=['post'], url_path='queue/withdraw')
    def withdraw_from_queue(self, request, pk=None):
        entry = QueueService.withdraw(request.user.id, pk)
        return Response(QueueEntrySerializer(entry).data)


class MyEnrollmentsView(APIView):
    """Enrollments of the current user, optionally filtered by ``?status=``."""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        enrollments = AdmissionService.list_trainee_enrollments(
            request.user.id,
            status=request.query_params.get('status')
        )
        return Response(EnrollmentSerializer(enrollments, many=True).data)


class MyQueueView(APIView):
    """Queues the current user is waiting in, as "position X of Y"."""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        standings = QueueService.list_trainee_queues(request.user.id)
        return Response(QueueStandingSerializer(standings, many=True).data)
