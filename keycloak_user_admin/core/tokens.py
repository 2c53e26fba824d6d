"""Bearer token suppliers for the Keycloak Admin API.

A token supplier exposes a single operation, ``get()``, returning a
currently-valid access token. UserManager calls it once per public
operation and never keeps the result.
"""
from __future__ import annotations
import logging
import threading
from datetime import datetime, timedelta
from typing import Optional, Dict, Any

import jwt
import requests
from jwt.exceptions import InvalidTokenError

from .client import REQUEST_TIMEOUT
from .exceptions import TokenUnavailable

logger = logging.getLogger(__name__)

# Refresh when the token expires within this window
REFRESH_MARGIN = timedelta(seconds=10)
# Used when neither expires_in nor an exp claim is available
DEFAULT_LIFETIME = timedelta(seconds=60)


class StaticToken:
    """Supplier for a pre-obtained token (scripts, tests, token exchange)."""

    def __init__(self, token: str):
        self._token = token

    def get(self) -> str:
        if not self._token:
            raise TokenUnavailable("Static token is empty")
        return self._token


class AccessToken:
    """Token supplier with automatic refresh.

    Supports both authentication methods used against Keycloak:
    - service account (client_credentials grant, preferred)
    - admin user (password grant on the admin-cli client)

    Usage:
        token = AccessToken.service_account("http://keycloak:8080", "demo", "automation-cli", "secret")
        headers = {"Authorization": f"Bearer {token.get()}"}
    """

    def __init__(
        self,
        base_url: str,
        auth_realm: str,
        form: Dict[str, str],
        realm_prefix: str = "",
        timeout: float = REQUEST_TIMEOUT,
    ):
        """Initialize token supplier.

        Args:
            base_url: Keycloak base URL
            auth_realm: Realm hosting the client or admin user
            form: Token request form (grant_type and credentials)
            realm_prefix: Path prefix before /realms (e.g. "/auth" on legacy servers)
            timeout: Token request timeout in seconds
        """
        self.token_url = (
            f"{base_url.rstrip('/')}{realm_prefix}/realms/{auth_realm}/protocol/openid-connect/token"
        )
        self._form = form
        self._timeout = timeout
        self._token: Optional[str] = None
        self._expires_at: Optional[datetime] = None
        self._lock = threading.Lock()

    @classmethod
    def service_account(cls, base_url: str, auth_realm: str, client_id: str, client_secret: str, **kwargs) -> "AccessToken":
        """Build a supplier using the client credentials flow."""
        form = {
            "grant_type": "client_credentials",
            "client_id": client_id,
            "client_secret": client_secret,
        }
        return cls(base_url, auth_realm, form, **kwargs)

    @classmethod
    def admin(cls, base_url: str, username: str, password: str, auth_realm: str = "master", **kwargs) -> "AccessToken":
        """Build a supplier using the direct access grant on admin-cli."""
        form = {
            "grant_type": "password",
            "client_id": "admin-cli",
            "username": username,
            "password": password,
        }
        return cls(base_url, auth_realm, form, **kwargs)

    def get(self) -> str:
        """Return a valid access token, fetching a new one when needed.

        Raises:
            TokenUnavailable: If the token endpoint fails or answers without a token
        """
        with self._lock:
            if self._token and self._expires_at and datetime.now() < self._expires_at - REFRESH_MARGIN:
                return self._token
            self._token, self._expires_at = self._fetch()
            return self._token

    def _fetch(self) -> tuple[str, datetime]:
        """Request a new token from the token endpoint."""
        try:
            resp = requests.post(self.token_url, data=self._form, timeout=self._timeout)
        except requests.RequestException as e:
            raise TokenUnavailable(f"Token request to {self.token_url} failed: {e}") from e

        if resp.status_code != 200:
            raise TokenUnavailable(f"[{resp.status_code}] {self.token_url}: {resp.text}")

        try:
            payload: Dict[str, Any] = resp.json()
            token = payload["access_token"]
        except (ValueError, KeyError, TypeError) as e:
            raise TokenUnavailable(f"Token endpoint returned no access_token: {e}") from e

        logger.debug(f"[token] Obtained {self._form['grant_type']} token from {self.token_url}")
        return token, datetime.now() + _token_lifetime(token, payload.get("expires_in"))


def _token_lifetime(token: str, expires_in: Any) -> timedelta:
    """Compute token lifetime from expires_in, falling back to the exp claim."""
    if isinstance(expires_in, (int, float)) and expires_in > 0:
        return timedelta(seconds=expires_in)

    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except InvalidTokenError:
        return DEFAULT_LIFETIME

    exp = claims.get("exp")
    if isinstance(exp, (int, float)):
        remaining = datetime.fromtimestamp(exp) - datetime.now()
        if remaining > timedelta(0):
            return remaining
    return DEFAULT_LIFETIME
