"""
Service Clients for the external collaborators of the training center:
user directory, notification service and certificate renderer.
"""

import threading
import time
import httpx
import logging
from typing import Dict, Any, Optional
from django.conf import settings

logger = logging.getLogger(__name__)


# =============================================================================
# CIRCUIT BREAKER
# =============================================================================

class CircuitBreakerError(Exception):
    """Exception raised when circuit breaker is open"""
    pass


class CircuitBreaker:
    """
    Circuit breaker for handling collaborator failures.

    One breaker is shared per collaborator (see ``get_circuit_breaker``) so
    that failures seen by one request protect the following ones. State
    transitions hold ``_lock``.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        success_threshold: int = 2,
        timeout: int = 30
    ):
        self.failure_threshold = failure_threshold
        self.success_threshold = success_threshold
        self.timeout = timeout
        self.failure_count = 0
        self.success_count = 0
        self.state = 'closed'  # closed, open, half_open
        self.last_failure_time = None
        self._lock = threading.Lock()

    def _should_try_reset(self) -> bool:
        if self.last_failure_time is None:
            return True
        return time.monotonic() - self.last_failure_time >= self.timeout

    def record_success(self):
        with self._lock:
            if self.state == 'half_open':
                self.success_count += 1
                if self.success_count >= self.success_threshold:
                    self._reset()
            elif self.state == 'closed':
                self.failure_count = 0

    def record_failure(self):
        with self._lock:
            self.failure_count += 1
            self.last_failure_time = time.monotonic()
            if self.state == 'half_open' or self.failure_count >= self.failure_threshold:
                self.state = 'open'
                self.success_count = 0
                logger.warning(f"Circuit breaker opened after {self.failure_count} failures")

    def _reset(self):
        self.state = 'closed'
        self.failure_count = 0
        self.success_count = 0
        self.last_failure_time = None
        logger.info("Circuit breaker reset to closed state")

    def can_execute(self) -> bool:
        with self._lock:
            if self.state == 'closed':
                return True
            if self.state == 'open':
                if self._should_try_reset():
                    self.state = 'half_open'
                    return True
                return False
            return True  # half_open


_circuit_breakers: Dict[str, CircuitBreaker] = {}
_circuit_breakers_lock = threading.Lock()


def get_circuit_breaker(service_name: str) -> CircuitBreaker:
    """Return the process-wide breaker for a collaborator."""
    with _circuit_breakers_lock:
        if service_name not in _circuit_breakers:
            _circuit_breakers[service_name] = CircuitBreaker()
        return _circuit_breakers[service_name]


# =============================================================================
# BASE SERVICE CLIENT
# =============================================================================

class BaseServiceClient:
    """
    Base class for service-to-service HTTP communication.
    """

    def __init__(self, service_name: str, base_url: str = None):
        self.service_name = service_name
        self.base_url = base_url or self._get_service_url(service_name)
        self.timeout = httpx.Timeout(10.0, connect=5.0)
        self.auth_token = getattr(settings, 'SERVICE_AUTH_TOKEN', '')
        self.circuit_breaker = get_circuit_breaker(service_name)

    def _get_service_url(self, service_name: str) -> str:
        """Get service URL from settings"""
        service_urls = getattr(settings, 'SERVICE_URLS', {})
        return service_urls.get(service_name, f'http://{service_name}:8000')

    def _get_headers(self, extra_headers: Dict = None) -> Dict:
        """Build request headers"""
        headers = {
            'Content-Type': 'application/json',
            'Accept': 'application/json',
            'X-Service-Auth': self.auth_token,
            'X-Source-Service': getattr(settings, 'SERVICE_NAME', 'unknown'),
        }
        if extra_headers:
            headers.update(extra_headers)
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        params: Dict = None,
        data: Dict = None,
        headers: Dict = None
    ) -> Dict:
        """Make HTTP request to service"""
        if not self.circuit_breaker.can_execute():
            raise CircuitBreakerError(f"Circuit breaker open for {self.service_name}")

        url = f"{self.base_url}{path}"

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.request(
                    method=method,
                    url=url,
                    params=params,
                    json=data,
                    headers=self._get_headers(headers)
                )
                response.raise_for_status()
                self.circuit_breaker.record_success()
                return response.json()
            except httpx.HTTPStatusError as e:
                logger.error(
                    f"HTTP error calling {self.service_name}: {e.response.status_code}",
                    extra={'url': url, 'status_code': e.response.status_code}
                )
                if e.response.status_code >= 500:
                    self.circuit_breaker.record_failure()
                raise
            except httpx.RequestError as e:
                logger.error(f"Request error calling {self.service_name}: {e}")
                self.circuit_breaker.record_failure()
                raise

    async def get(self, path: str, params: Dict = None, headers: Dict = None) -> Dict:
        return await self._request('GET', path, params=params, headers=headers)

    async def post(self, path: str, data: Dict = None, headers: Dict = None) -> Dict:
        return await self._request('POST', path, data=data, headers=headers)


# =============================================================================
# COLLABORATOR CLIENTS
# =============================================================================

class UserServiceClient(BaseServiceClient):
    """Client for the user directory: ``getUser(id) -> {id, role, status}``."""

    def __init__(self):
        super().__init__('user-service')

    async def get_user(self, user_id: str) -> Dict:
        return await self.get(f'/api/v1/users/{user_id}/')


class NotificationServiceClient(BaseServiceClient):
    """Client for the notification service (fire-and-forget from our side)."""

    def __init__(self):
        super().__init__('notification-service')

    async def send_notification(
        self,
        user_id: str,
        event_type: str,
        payload: Optional[Dict[str, Any]] = None
    ) -> Dict:
        return await self.post('/api/v1/notifications/', {
            'user_id': user_id,
            'event_type': event_type,
            'payload': payload or {},
        })


class CertificateRendererClient(BaseServiceClient):
    """Client for the PDF/QR certificate renderer."""

    def __init__(self):
        super().__init__('certificate-renderer')

    async def render(self, certificate: Dict[str, Any]) -> str:
        """Render a certificate and return the artifact reference."""
        response = await self.post('/api/v1/certificates/render/', certificate)
        return response.get('artifact_ref', '')
