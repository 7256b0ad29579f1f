# services/training-center-service/src/apps/core/services/directory.py
"""
User directory lookups used to authorize staff-only operations.
"""

import logging
from typing import Optional

import httpx
from asgiref.sync import async_to_sync

from shared.common.clients import CircuitBreakerError, UserServiceClient
from shared.common.exceptions import ServiceUnavailableException
from shared.common.permissions import Roles

from ..exceptions import PermissionDenied

logger = logging.getLogger(__name__)


def get_user_role(user_id) -> Optional[str]:
    """
    Return the role of an active user, or None if the user is unknown or
    inactive.

    Raises:
        ServiceUnavailableException: If the directory cannot be reached
    """
    client = UserServiceClient()
    try:
        user = async_to_sync(client.get_user)(str(user_id))
    except httpx.HTTPStatusError as e:
        if e.response.status_code == 404:
            return None
        raise ServiceUnavailableException('User directory is unavailable.')
    except (httpx.RequestError, CircuitBreakerError) as e:
        logger.error(f"User directory lookup for {user_id} failed: {e}")
        raise ServiceUnavailableException('User directory is unavailable.')

    if user.get('status', 'active') != 'active':
        return None
    return user.get('role')


def require_staff(actor_id) -> str:
    """Ensure the actor is an admin or trainer; returns the role."""
    role = get_user_role(actor_id)
    if role not in Roles.STAFF:
        logger.warning(f"User {actor_id} with role {role!r} denied a staff-only action")
        raise PermissionDenied()
    return role
