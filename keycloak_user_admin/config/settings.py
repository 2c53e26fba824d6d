"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                logger.debug(f"[settings] Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            logger.warning(f"[settings] Failed to read /run/secrets/{secret_name}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            logger.debug(f"[settings] Loaded {env_var} from environment (fallback)")
            return secret_value

    return None


@dataclass
class KeycloakConfig:
    """Keycloak user administration configuration container."""
    # Server
    base_url: str = "http://keycloak:8080"
    realm: str = "demo"
    admin_prefix: str = "/admin"
    realm_prefix: str = ""

    # Service account (preferred)
    auth_realm: str = "demo"
    client_id: str = "automation-cli"
    client_secret: str = ""

    # Admin credentials (fallback when no client secret is configured)
    admin_username: str = "admin"
    admin_password: str = ""
    admin_realm: str = "master"

    # Transport
    request_timeout: float = 5.0
    max_workers: Optional[int] = None

    @property
    def uses_service_account(self) -> bool:
        """True when a client secret is available for the client credentials flow."""
        return bool(self.client_secret)


def _get_float(var_name: str, default: float) -> float:
    raw = os.environ.get(var_name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{var_name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{var_name} must be positive, got {raw!r}")
    return value


def _get_optional_int(var_name: str) -> Optional[int]:
    raw = os.environ.get(var_name)
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{var_name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ValueError(f"{var_name} must be at least 1, got {raw!r}")
    return value


def load_settings() -> KeycloakConfig:
    """Load Keycloak settings from environment and /run/secrets.

    Raises:
        RuntimeError: If neither a service account secret nor an admin password is available
        ValueError: If a numeric setting is malformed
    """
    realm = os.environ.get("KEYCLOAK_REALM", "demo")

    client_secret = _load_secret_from_file(
        "keycloak_service_client_secret",
        "KEYCLOAK_SERVICE_CLIENT_SECRET",
    ) or ""
    admin_password = _load_secret_from_file(
        "keycloak_admin_password",
        "KEYCLOAK_ADMIN_PASSWORD",
    ) or ""

    if not client_secret and not admin_password:
        raise RuntimeError(
            "KEYCLOAK_SERVICE_CLIENT_SECRET or KEYCLOAK_ADMIN_PASSWORD is required "
            "(via /run/secrets or environment)."
        )

    return KeycloakConfig(
        base_url=os.environ.get("KEYCLOAK_URL", "http://keycloak:8080").rstrip("/"),
        realm=realm,
        admin_prefix=os.environ.get("KEYCLOAK_ADMIN_PREFIX", "/admin"),
        realm_prefix=os.environ.get("KEYCLOAK_REALM_PREFIX", ""),
        auth_realm=os.environ.get("KEYCLOAK_SERVICE_REALM", realm),
        client_id=os.environ.get("KEYCLOAK_SERVICE_CLIENT_ID", "automation-cli"),
        client_secret=client_secret,
        admin_username=os.environ.get("KEYCLOAK_ADMIN", "admin"),
        admin_password=admin_password,
        admin_realm=os.environ.get("KEYCLOAK_ADMIN_REALM", "master"),
        request_timeout=_get_float("KEYCLOAK_REQUEST_TIMEOUT", 5.0),
        max_workers=_get_optional_int("KEYCLOAK_MAX_WORKERS"),
    )
