# services/training-center-service/src/apps/api/serializers/session_serializers.py
"""
Session, Enrollment and Queue Serializers
"""

from rest_framework import serializers

from apps.core.models import Enrollment, QueueEntry, TrainingSession
from apps.core.services import AdmissionService


class EnrollmentSerializer(serializers.ModelSerializer):
    session_title = serializers.CharField(source='session.title', read_only=True)
    scheduled_start = serializers.DateTimeField(source='session.scheduled_start', read_only=True)

    class Meta:
        model = Enrollment
        fields = [
            'id', 'trainee_id', 'session', 'session_title', 'scheduled_start',
            'status', 'source', 'enrolled_at', 'cancelled_at', 'cancelled_by',
            'attendance_marked_at',
        ]
        read_only_fields = fields


class TrainingSessionSerializer(serializers.ModelSerializer):
    """Session list representation."""

    available_slots = serializers.IntegerField(read_only=True)
    is_full = serializers.BooleanField(read_only=True)

    class Meta:
        model = TrainingSession
        fields = [
            'id', 'title', 'description', 'program_code', 'location',
            'scheduled_start', 'duration_minutes', 'trainer_id',
            'max_capacity', 'enrolled_count', 'available_slots', 'is_full',
            'status', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class TrainingSessionDetailSerializer(TrainingSessionSerializer):
    enrollments = serializers.SerializerMethodField()
    waiting_count = serializers.SerializerMethodField()

    class Meta(TrainingSessionSerializer.Meta):
        fields = TrainingSessionSerializer.Meta.fields + ['enrollments', 'waiting_count']
        read_only_fields = fields

    def get_enrollments(self, obj):
        enrollments = AdmissionService.list_session_enrollments(obj.id)
        return EnrollmentSerializer(enrollments, many=True).data

    def get_waiting_count(self, obj) -> int:
        return obj.queue_entries.filter(status=QueueEntry.Status.WAITING).count()


class TrainingSessionCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    program_code = serializers.CharField(max_length=50, required=False, allow_blank=True)
    location = serializers.CharField(max_length=255, required=False, allow_blank=True)
    scheduled_start = serializers.DateTimeField()
    duration_minutes = serializers.IntegerField(min_value=1, required=False, default=60)
    trainer_id = serializers.UUIDField(required=False, allow_null=True)
    max_capacity = serializers.IntegerField(min_value=1)


class TrainingSessionUpdateSerializer(TrainingSessionCreateSerializer):
    title = serializers.CharField(max_length=255, required=False)
    scheduled_start = serializers.DateTimeField(required=False)
    duration_minutes = serializers.IntegerField(min_value=1, required=False)
    max_capacity = serializers.IntegerField(min_value=1, required=False)


class CancelEnrollmentSerializer(serializers.Serializer):
    """Staff may pass ``trainee_id`` to cancel someone else's enrollment."""

    trainee_id = serializers.UUIDField(required=False)


class AttendanceSerializer(serializers.Serializer):
    attendance = serializers.DictField(
        child=serializers.ChoiceField(choices=[
            Enrollment.Status.ATTENDED,
            Enrollment.Status.NO_SHOW,
        ]),
        allow_empty=False
    )

    def validate_attendance(self, value):
        for trainee_id in value:
            serializers.UUIDField().to_internal_value(trainee_id)
        return value


class QueueEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = QueueEntry
        fields = [
            'id', 'trainee_id', 'session', 'position', 'status',
            'joined_at', 'promoted_at', 'withdrawn_at',
        ]
        read_only_fields = fields


class QueueStandingSerializer(serializers.Serializer):
    """A waiting entry shown as "position X of Y"."""

    id = serializers.UUIDField(source='entry.id')
    session = serializers.UUIDField(source='entry.session_id')
    session_title = serializers.CharField(source='entry.session.title')
    scheduled_start = serializers.DateTimeField(source='entry.session.scheduled_start')
    position = serializers.IntegerField()
    rank = serializers.IntegerField()
    waiting_total = serializers.IntegerField()
    joined_at = serializers.DateTimeField(source='entry.joined_at')
