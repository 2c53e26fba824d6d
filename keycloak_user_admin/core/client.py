"""Low-level HTTP client for Keycloak Admin API.

Joins admin paths onto the configured base URL and centralizes HTTP error
handling. Authentication headers are supplied per call by the caller; this
client never stores tokens.
"""
from __future__ import annotations
from typing import Optional, Dict, Any

import requests

from .exceptions import KeycloakAPIError

REQUEST_TIMEOUT = 5


class KeycloakClient:
    """HTTP client for Keycloak Admin API over a pluggable transport.

    The transport is any object exposing ``request(method, url, **kwargs)``
    and returning a requests-like response (``status_code``, ``headers``,
    ``text``, ``json()``). A ``requests.Session`` is used when none is given.

    Usage:
        client = KeycloakClient("http://keycloak:8080")
        resp = client.get("/admin/realms/demo/users/42", headers=headers)
    """

    def __init__(
        self,
        base_url: str,
        http: Optional[Any] = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        """Initialize Keycloak client.

        Args:
            base_url: Keycloak base URL (e.g. http://keycloak:8080)
            http: Transport object (defaults to a new requests.Session)
            timeout: Per-request timeout in seconds handed to the transport
        """
        self.base_url = base_url.rstrip("/")
        self.http = http if http is not None else requests.Session()
        self.timeout = timeout

    def get(self, path: str, headers: Optional[Dict[str, str]] = None, **kwargs) -> requests.Response:
        """Execute GET request.

        Raises:
            KeycloakAPIError: On non-2xx response
        """
        return self.request("GET", path, headers=headers, **kwargs)

    def post(self, path: str, json: Optional[Any] = None, headers: Optional[Dict[str, str]] = None, **kwargs) -> requests.Response:
        """Execute POST request with a JSON payload.

        Raises:
            KeycloakAPIError: On non-2xx response
        """
        return self.request("POST", path, json=json, headers=headers, **kwargs)

    def put(self, path: str, json: Optional[Any] = None, headers: Optional[Dict[str, str]] = None, **kwargs) -> requests.Response:
        """Execute PUT request with a JSON payload (None sends no body).

        Raises:
            KeycloakAPIError: On non-2xx response
        """
        return self.request("PUT", path, json=json, headers=headers, **kwargs)

    def request(self, method: str, path: str, headers: Optional[Dict[str, str]] = None, **kwargs) -> requests.Response:
        """Send one request through the transport and check its status.

        Args:
            method: HTTP method
            path: API endpoint path (e.g. "/admin/realms/demo/users")
            headers: Request headers, copied before sending
            **kwargs: Extra arguments for the transport (json, params, ...)

        Returns:
            Response object

        Raises:
            KeycloakAPIError: On non-2xx response
            requests.RequestException: On transport failure
        """
        url = f"{self.base_url}{path}"
        kwargs.setdefault("timeout", self.timeout)
        resp = self.http.request(method, url, headers=dict(headers or {}), **kwargs)
        self._handle_error(resp, url)
        return resp

    def _handle_error(self, resp: requests.Response, url: str) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            KeycloakAPIError: If response status is outside the 2xx range
        """
        if not 200 <= resp.status_code < 300:
            raise KeycloakAPIError(resp.status_code, resp.text, url)
