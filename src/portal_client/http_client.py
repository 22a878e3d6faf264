"""HTTP transport for the API Management management plane.

This module wraps a requests Session and provides:
1. URL resolution against the service's resource path
2. api-version query parameter handling
3. Bearer token caching with invalidation on 401
4. Translation of HTTP status codes to the typed exception hierarchy
5. Rate limit retries for idempotent methods
"""

import json
import logging
import re
import threading
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qs, urlsplit

import requests
from requests.exceptions import ConnectionError, Timeout

from .errors import (
    ForbiddenError,
    NetworkError,
    NotFoundError,
    UnauthorizedError,
    UnhandledError,
)
from .models import ServiceConfig
from .retry_logic import retry_on_rate_limit

logger = logging.getLogger(__name__)

SUCCESS_STATUS_CODES = {200, 201, 202, 204}
IDEMPOTENT_METHODS = {"GET", "PUT", "DELETE"}
DEFAULT_TIMEOUT = 60


def sanitize_credentials(text: str) -> str:
    """Mask secrets in error messages and response bodies before logging.

    Example:
        >>> sanitize_credentials("Authorization: Bearer eyJ0eXAi")
        'Authorization: ***REDACTED***'
        >>> sanitize_credentials("https://acct.blob.core.windows.net/content?sv=2020&sig=abc")
        'https://acct.blob.core.windows.net/content?sv=2020&sig=***REDACTED***'
    """
    if not text:
        return text

    sanitized = text

    sanitized = re.sub(
        r'Authorization:\s*[^\n\r]+',
        'Authorization: ***REDACTED***',
        sanitized,
        flags=re.IGNORECASE
    )

    sanitized = re.sub(
        r'Bearer\s+[^\s\n\r"]+',
        'Bearer ***REDACTED***',
        sanitized,
        flags=re.IGNORECASE
    )

    # SAS signatures in container URLs
    sanitized = re.sub(
        r'([?&]sig=)[^&\s"]+',
        r'\1***REDACTED***',
        sanitized,
        flags=re.IGNORECASE
    )

    sanitized = re.sub(
        r'"(containerSasUrl|access_token|accessToken|client_secret)"\s*:\s*"[^"]*"',
        r'"\1": "***REDACTED***"',
        sanitized,
    )

    return sanitized


class ManagementHttpClient:
    """Thin wrapper over requests for the management API.

    The bearer token is cached on the instance and guarded by a lock, so a
    single client may be shared between threads. A 401 response clears the
    cache; the next request asks the token provider again.

    Example:
        >>> client = ManagementHttpClient(config, Authenticator().get_bearer_token)
        >>> data = client.send_request("GET", "/contentTypes")
    """

    def __init__(
        self,
        config: ServiceConfig,
        token_provider: Callable[[], str],
        session: Optional[requests.Session] = None,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        self._config = config
        self._token_provider = token_provider
        self._session = session or requests.Session()
        self._timeout = timeout
        self._access_token: Optional[str] = None
        self._token_lock = threading.Lock()

    @property
    def config(self) -> ServiceConfig:
        return self._config

    def invalidate_token(self) -> None:
        """Drop the cached token so the next request fetches a fresh one."""
        with self._token_lock:
            self._access_token = None

    def _get_access_token(self) -> str:
        with self._token_lock:
            if self._access_token is None:
                self._access_token = self._token_provider()
            return self._access_token

    def build_url(self, url: str) -> str:
        """Resolve a relative resource path against the service base URL.

        Absolute https:// URLs (such as next-page links) are returned as-is.
        """
        if url.startswith("https://"):
            return url
        normalized = url if url.startswith("/") else f"/{url}"
        return self._config.base_url + normalized

    def send_request(
        self,
        method: str,
        url: str,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send a request and return its decoded response body.

        Args:
            method: HTTP method, e.g. GET
            url: Relative resource path (e.g. /contentTypes) or absolute URL
            body: JSON-serializable request body
            params: Extra query parameters

        Returns:
            Parsed JSON when the body is a JSON object, the raw text otherwise

        Raises:
            UnauthorizedError: On 401 (token cache cleared first)
            ForbiddenError: On 403
            NotFoundError: On 404
            UnhandledError: On any other non-success status
            NetworkError: If the service cannot be reached
        """
        method = method.upper()
        if method in IDEMPOTENT_METHODS:
            return retry_on_rate_limit(self._send_once, method, url, body, params)
        return self._send_once(method, url, body, params)

    def _send_once(
        self,
        method: str,
        url: str,
        body: Optional[Dict[str, Any]],
        params: Optional[Dict[str, Any]],
    ) -> Any:
        request_url = self.build_url(url)
        query = dict(params or {})
        if 'api-version' not in parse_qs(urlsplit(request_url).query) and 'api-version' not in query:
            query['api-version'] = self._config.api_version

        headers = {
            "If-Match": "*",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._get_access_token()}",
        }
        data = json.dumps(body) if body is not None else None

        logger.debug(f"{method} {urlsplit(request_url).path}")
        try:
            response = self._session.request(
                method,
                request_url,
                params=query,
                headers=headers,
                data=data,
                timeout=self._timeout,
            )
        except (Timeout, ConnectionError) as e:
            raise NetworkError(request_url, type(e).__name__) from e

        return self._handle_response(response, request_url)

    def _handle_response(self, response: requests.Response, request_url: str) -> Any:
        status = response.status_code
        text = response.text or ""

        if status in SUCCESS_STATUS_CODES:
            if text.startswith("{"):
                return json.loads(text)
            return text

        details = sanitize_credentials(text)
        if status == 401:
            self.invalidate_token()
            logger.warning("Received 401 from management API, cached token cleared")
            raise UnauthorizedError(details=details)
        if status == 403:
            raise ForbiddenError(details=details)
        if status == 404:
            raise NotFoundError(urlsplit(request_url).path, details=details)

        logger.error(f"Management API request failed: {status} {urlsplit(request_url).path} - {details}")
        raise UnhandledError(
            status_code=status,
            reason=response.reason or "",
            url=request_url,
            details=details,
        )
