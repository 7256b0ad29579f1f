# services/training-center-service/src/apps/api/views/certificate_views.py
"""
Certificate API Views
"""

import logging

from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from shared.common.permissions import IsAdminOrTrainer, is_staff

from apps.core.models import Certificate
from apps.core.services import CertificationService
from apps.api.serializers import CertificateRevokeSerializer, CertificateSerializer

logger = logging.getLogger(__name__)


class CertificateViewSet(viewsets.ReadOnlyModelViewSet):
    """Certificates; trainees only see their own."""

    serializer_class = CertificateSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ['status', 'session', 'trainee_id']

    def get_queryset(self):
        queryset = Certificate.objects.select_related('session')
        if not is_staff(self.request.user):
            queryset = queryset.filter(trainee_id=self.request.user.id)
        return queryset

    def get_permissions(self):
        if self.action in ('revoke', 'retry_render'):
            return [IsAdminOrTrainer()]
        return super().get_permissions()

    @action(detail=False, methods=['get'])
    def my(self, request):
        certificates = CertificationService.list_trainee_certificates(request.user.id)
        return Response(CertificateSerializer(certificates, many=True).data)

    @action(detail=True, methods=['post'])
    def revoke(self, request, pk=None):
        serializer = CertificateRevokeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        certificate = CertificationService.revoke(
            pk,
            serializer.validated_data['reason'],
            actor_id=request.user.id
        )
        return Response(CertificateSerializer(certificate).data)

    @action(detail=True, methods=['post'], url_path='render')
    def retry_render(self, request, pk=None):
        """Queue rendering again, e.g. after ``render_status=failed``."""
        certificate = CertificationService.retry_render(pk)
        return Response(CertificateSerializer(certificate).data)


class CertificateVerifyView(APIView):
    """Public verification by certificate number."""

    authentication_classes = []
    permission_classes = [AllowAny]

    def get(self, request, certificate_number):
        certificate = CertificationService.verify(certificate_number)
        return Response(certificate.get_public_data())
