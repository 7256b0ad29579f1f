"""
JWT Authentication

Tokens are issued by the user directory; this service only verifies them.
"""

import jwt
import logging
from typing import Optional, Dict, Any, Tuple
from django.conf import settings
from rest_framework import authentication, exceptions
from rest_framework.request import Request

logger = logging.getLogger(__name__)


class JWTAuthentication(authentication.BaseAuthentication):
    """
    JWT Token Authentication for API requests.
    Verifies a bearer token signed with the shared JWT secret.
    """

    keyword = 'Bearer'

    def authenticate(self, request: Request) -> Optional[Tuple[Any, Dict]]:
        auth_header = authentication.get_authorization_header(request)

        if not auth_header:
            return None

        try:
            auth_parts = auth_header.decode('utf-8').split()
        except UnicodeDecodeError:
            raise exceptions.AuthenticationFailed('Invalid token header encoding')

        if len(auth_parts) != 2:
            raise exceptions.AuthenticationFailed('Invalid token header format')

        if auth_parts[0].lower() != self.keyword.lower():
            return None

        return self.authenticate_token(auth_parts[1])

    def authenticate_token(self, token: str) -> Tuple[Any, Dict]:
        """Validate and decode JWT token"""
        try:
            payload = jwt.decode(
                token,
                settings.JWT_SECRET_KEY,
                algorithms=[getattr(settings, 'JWT_ALGORITHM', 'HS256')],
                options={
                    'require': ['exp', 'sub'],
                    'verify_exp': True,
                }
            )
        except jwt.ExpiredSignatureError:
            raise exceptions.AuthenticationFailed('Token has expired')
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid token: {e}")
            raise exceptions.AuthenticationFailed('Invalid token')

        return (TokenUser(payload), payload)

    def authenticate_header(self, request: Request) -> str:
        return self.keyword


class TokenUser:
    """
    User object created from JWT token payload.

    Accepts either a single ``role`` claim or a ``roles`` list.
    """

    def __init__(self, payload: Dict):
        self.payload = payload
        self.id = payload.get('sub')
        self.user_id = self.id
        self.email = payload.get('email')
        roles = payload.get('roles')
        if roles is None:
            roles = [payload['role']] if payload.get('role') else []
        self.roles = list(roles)
        self.is_active = True
        self.is_authenticated = True
        self.is_anonymous = False

    def __str__(self) -> str:
        return f"TokenUser({self.id})"

    def has_role(self, role: str) -> bool:
        """Check if user has a specific role"""
        return role in self.roles

    def has_any_role(self, roles: list) -> bool:
        """Check if user has any of the specified roles"""
        return bool(set(self.roles) & set(roles))
