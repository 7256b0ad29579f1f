"""
Custom Exception Classes and Exception Handler
"""

import logging
import traceback
from typing import Dict, Any, Optional
from rest_framework import status
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework.exceptions import APIException
from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from django.conf import settings

logger = logging.getLogger(__name__)


# =============================================================================
# BASE EXCEPTIONS
# =============================================================================

class BaseAPIException(APIException):
    """Base exception class for all custom API exceptions"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'An unexpected error occurred.'
    default_code = 'error'
    error_code = 'INTERNAL_ERROR'
    error_kind = 'internal'

    def __init__(
        self,
        detail: Optional[str] = None,
        code: Optional[str] = None,
        error_code: Optional[str] = None,
        extra_data: Optional[Dict] = None
    ):
        super().__init__(detail=detail, code=code)
        self.error_code = error_code or self.error_code
        self.extra_data = extra_data or {}


# =============================================================================
# CLIENT ERRORS (4xx)
# =============================================================================

class ValidationException(BaseAPIException):
    """400 Validation Error"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Validation error.'
    default_code = 'validation_error'
    error_code = 'VALIDATION_ERROR'
    error_kind = 'validation'

    def __init__(self, errors: Dict[str, Any], detail: str = None):
        super().__init__(detail=detail)
        self.extra_data = {'errors': errors}


class ForbiddenException(BaseAPIException):
    """403 Forbidden"""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You do not have permission to perform this action.'
    default_code = 'forbidden'
    error_code = 'FORBIDDEN'
    error_kind = 'authorization'


class NotFoundException(BaseAPIException):
    """404 Not Found"""
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'The requested resource was not found.'
    default_code = 'not_found'
    error_code = 'NOT_FOUND'
    error_kind = 'not_found'


class ConflictException(BaseAPIException):
    """409 Conflict: the request's goal is already met or breaks a uniqueness rule"""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'A conflict occurred with the current state of the resource.'
    default_code = 'conflict'
    error_code = 'CONFLICT'
    error_kind = 'conflict'


class PreconditionException(BaseAPIException):
    """422: the entity is not in a state that permits the transition"""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = 'The resource is not in a state that permits this operation.'
    default_code = 'precondition_failed'
    error_code = 'PRECONDITION_FAILED'
    error_kind = 'precondition'


# =============================================================================
# SERVER ERRORS (5xx)
# =============================================================================

class ServiceUnavailableException(BaseAPIException):
    """503 Service Unavailable"""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'The service is temporarily unavailable.'
    default_code = 'service_unavailable'
    error_code = 'SERVICE_UNAVAILABLE'
    error_kind = 'transient'


# =============================================================================
# EXCEPTION HANDLER
# =============================================================================

def custom_exception_handler(exc, context) -> Optional[Response]:
    """
    Custom exception handler for DRF.
    Provides consistent error response format across all services.
    """

    request = context.get('request')
    request_id = getattr(request, 'request_id', None) if request else None

    response = exception_handler(exc, context)

    if response is not None:
        return format_error_response(exc, response, request_id)

    if isinstance(exc, DjangoValidationError):
        errors = exc.message_dict if hasattr(exc, 'message_dict') else {'detail': exc.messages}
        return Response(
            {
                'success': False,
                'error': {
                    'code': 'VALIDATION_ERROR',
                    'kind': 'validation',
                    'message': 'Validation error',
                    'details': errors,
                    'request_id': request_id,
                }
            },
            status=status.HTTP_400_BAD_REQUEST
        )

    if isinstance(exc, Http404):
        return Response(
            {
                'success': False,
                'error': {
                    'code': 'NOT_FOUND',
                    'kind': 'not_found',
                    'message': str(exc) or 'Resource not found',
                    'request_id': request_id,
                }
            },
            status=status.HTTP_404_NOT_FOUND
        )

    logger.exception(
        f"Unhandled exception: {exc}",
        extra={
            'request_id': request_id,
            'exception_type': type(exc).__name__,
        }
    )

    if settings.DEBUG:
        return Response(
            {
                'success': False,
                'error': {
                    'code': 'INTERNAL_ERROR',
                    'kind': 'internal',
                    'message': str(exc),
                    'type': type(exc).__name__,
                    'traceback': traceback.format_exc().split('\n'),
                    'request_id': request_id,
                }
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return Response(
        {
            'success': False,
            'error': {
                'code': 'INTERNAL_ERROR',
                'kind': 'internal',
                'message': 'An unexpected error occurred. Please try again later.',
                'request_id': request_id,
            }
        },
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


def format_error_response(exc, response: Response, request_id: str = None) -> Response:
    """Format error response in consistent structure"""

    error_code = getattr(exc, 'error_code', 'ERROR')
    extra_data = getattr(exc, 'extra_data', {})

    error_data = {
        'success': False,
        'error': {
            'code': error_code,
            'kind': getattr(exc, 'error_kind', 'client'),
            'message': get_error_message(exc, response),
            'request_id': request_id,
        }
    }

    if extra_data.get('errors'):
        error_data['error']['details'] = extra_data['errors']
    elif isinstance(response.data, dict) and 'detail' not in response.data:
        # Field-level validation errors from DRF
        error_data['error']['details'] = response.data

    response.data = error_data
    return response


def get_error_message(exc, response: Response) -> str:
    """Extract error message from exception or response"""

    if hasattr(exc, 'detail'):
        if isinstance(exc.detail, str):
            return exc.detail
        if isinstance(exc.detail, list) and exc.detail:
            return str(exc.detail[0])
        if isinstance(exc.detail, dict):
            return exc.detail.get('detail', str(exc.detail))

    if isinstance(response.data, dict):
        return response.data.get('detail', str(response.data))

    return str(response.data)
