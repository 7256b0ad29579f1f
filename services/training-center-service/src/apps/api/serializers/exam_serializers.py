# services/training-center-service/src/apps/api/serializers/exam_serializers.py
"""
Exam and Exam Attempt Serializers
"""

from rest_framework import serializers

from apps.core.models import Exam, ExamAttempt


class ExamSerializer(serializers.ModelSerializer):
    question_count = serializers.SerializerMethodField()

    class Meta:
        model = Exam
        fields = [
            'id', 'session', 'title', 'description', 'duration_minutes',
            'passing_score', 'is_published', 'question_count',
        ]
        read_only_fields = fields

    def get_question_count(self, obj) -> int:
        return obj.questions.count()


class ExamAttemptSerializer(serializers.ModelSerializer):
    """
    Attempt state for the client. While the attempt is in progress the
    client derives its countdown from ``deadline``/``time_remaining_seconds``.
    """

    exam_title = serializers.CharField(source='exam.title', read_only=True)
    duration_minutes = serializers.IntegerField(source='exam.duration_minutes', read_only=True)
    passing_score = serializers.IntegerField(source='exam.passing_score', read_only=True)
    deadline = serializers.DateTimeField(read_only=True)
    time_remaining_seconds = serializers.IntegerField(read_only=True)

    class Meta:
        model = ExamAttempt
        fields = [
            'id', 'trainee_id', 'exam', 'exam_title', 'status',
            'duration_minutes', 'passing_score',
            'started_at', 'deadline', 'time_remaining_seconds',
            'submitted_at', 'expired_at',
            'score', 'total_points', 'percentage_score', 'passed',
            'requires_manual_review', 'reset_count',
        ]
        read_only_fields = fields


class ExamAttemptInProgressSerializer(ExamAttemptSerializer):
    """Adds the questions (without answers) and the answers recorded so far."""

    questions = serializers.SerializerMethodField()

    class Meta(ExamAttemptSerializer.Meta):
        fields = ExamAttemptSerializer.Meta.fields + ['questions', 'answers']
        read_only_fields = fields

    def get_questions(self, obj):
        if obj.status != ExamAttempt.Status.IN_PROGRESS:
            return []
        return [question.to_public_dict() for question in obj.exam.questions.all()]


class AnswersSerializer(serializers.Serializer):
    """``{"answers": {"<question id>": <answer>}}``"""

    answers = serializers.DictField(child=serializers.JSONField(), required=False, default=dict)


class ResetAttemptSerializer(serializers.Serializer):
    trainee_id = serializers.UUIDField()
