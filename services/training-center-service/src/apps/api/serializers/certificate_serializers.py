# services/training-center-service/src/apps/api/serializers/certificate_serializers.py
"""
Certificate Serializers
"""

from rest_framework import serializers

from apps.core.models import Certificate


class CertificateSerializer(serializers.ModelSerializer):
    session_title = serializers.CharField(source='session.title', read_only=True)
    is_valid = serializers.BooleanField(read_only=True)

    class Meta:
        model = Certificate
        fields = [
            'id', 'certificate_number', 'verification_code',
            'trainee_id', 'session', 'session_title', 'exam_attempt',
            'status', 'is_valid', 'issued_at', 'valid_until',
            'render_status', 'artifact_ref',
            'revoked_at', 'revocation_reason',
        ]
        read_only_fields = fields


class CertificateRevokeSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=1000)
