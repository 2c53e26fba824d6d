"""Keycloak user management operations."""
from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Dict, Iterable, List, Mapping, Optional
from urllib.parse import urlsplit

from ..config.settings import KeycloakConfig, load_settings
from .attributes import Attribute, merge_attributes, parse_attributes
from .client import KeycloakClient
from .exceptions import IdExtractionFailed, SideEffectFailed
from .headers import build_auth_headers
from .roles import RoleResolutionResult, resolve_roles
from .tokens import AccessToken

logger = logging.getLogger(__name__)


class UserManager:
    """Service for managing users of one Keycloak realm.

    Every public operation builds fresh authorization headers from the token
    supplier and re-fetches whatever it reads. Nothing is cached between
    calls.

    Usage:
        manager = UserManager(client, token, realm="demo")
        user_id = manager.create({"username": "alice", "email": "alice@example.com", "password": "s3cret"})
        roles = manager.roles(user_id, ["<client-uuid>"], include_realm_roles=True)
    """

    def __init__(
        self,
        client: KeycloakClient,
        token,
        realm: str,
        admin_prefix: str = "/admin",
        max_workers: Optional[int] = None,
    ):
        """Initialize user manager.

        Args:
            client: Keycloak HTTP client
            token: Token supplier exposing ``get() -> str``
            realm: Realm whose users are managed
            admin_prefix: Admin API prefix ("/auth/admin" on legacy servers)
            max_workers: Upper bound on concurrent requests per operation
        """
        self.client = client
        self.token = token
        self.realm = realm
        self.max_workers = max_workers
        self.base_path = f"{admin_prefix.rstrip('/')}/realms/{realm}/users"

    def details(self, user_id: str) -> Dict[str, Any]:
        """Return the user representation.

        Raises:
            KeycloakAPIError: If the user cannot be fetched
        """
        headers = build_auth_headers(self.token)
        resp = self.client.get(f"{self.base_path}/{user_id}", headers=headers)
        return resp.json()

    def roles(
        self,
        user_id: str,
        client_ids: Iterable[str] = (),
        include_realm_roles: bool = False,
    ) -> RoleResolutionResult:
        """Resolve the user's effective (composite) roles.

        Args:
            user_id: Keycloak user id
            client_ids: Client UUIDs to resolve client roles for
            include_realm_roles: Also resolve realm-level roles

        Returns:
            Role names from every scope that answered, or the list of
            failed RoleOutcome values when no scope answered
        """
        headers = build_auth_headers(self.token)
        return resolve_roles(
            self.client,
            self.base_path,
            headers,
            user_id,
            client_ids,
            include_realm_roles,
            max_workers=self.max_workers,
        )

    def create(self, user: Mapping[str, Any], temporary: bool = False) -> str:
        """Create a user, then seed its password and send the verification email.

        The account is created first; the password and email steps run
        concurrently afterwards and their failures are only logged.

        Args:
            user: User representation, optionally including a "password" key
            temporary: Require a password change on first login

        Returns:
            The id Keycloak assigned to the new user

        Raises:
            KeycloakAPIError: If the creation request fails
            IdExtractionFailed: If the response carries no usable Location
        """
        profile = dict(user)
        password = profile.pop("password", None)
        headers = build_auth_headers(self.token)

        resp = self.client.post(self.base_path, json=profile, headers=headers)
        user_id = _user_id_from_location(resp.headers.get("Location"))
        logger.info(f"[provision] User '{profile.get('username')}' created (id={user_id})")

        steps = {}
        if password:
            steps["reset-password"] = lambda: self._save_password(user_id, password, dict(headers), temporary)
        else:
            logger.info(f"[provision] No password supplied for user {user_id}, skipping credential setup")
        steps["send-verify-email"] = lambda: self._send_verify_email(user_id, dict(headers))

        with ThreadPoolExecutor(max_workers=len(steps), thread_name_prefix="kc-provision") as executor:
            futures = {step: executor.submit(func) for step, func in steps.items()}
            wait(futures.values())

        for step, future in futures.items():
            error = future.exception()
            if error is not None:
                logger.warning(f"[provision] {SideEffectFailed(step, user_id, error)}")

        return user_id

    def add_attributes(self, user_id: str, attributes: Iterable[Attribute]) -> Dict[str, List[str]]:
        """Upsert custom attributes on a user.

        Reads the stored attributes, replaces or inserts the given keys and
        writes the whole mapping back, since the update endpoint replaces the
        attributes field wholesale.

        Returns:
            The merged attribute mapping that was written
        """
        existing = self.get_attributes(user_id)
        merged = merge_attributes(existing, attributes)

        headers = build_auth_headers(self.token)
        self.client.put(f"{self.base_path}/{user_id}", json={"attributes": merged}, headers=headers)
        logger.info(f"[attributes] Updated attributes {sorted(merged)} for user {user_id}")
        return merged

    def get_attributes(self, user_id: str, strict: bool = False) -> List[Attribute]:
        """Return the user's custom attributes.

        A user without attributes, or whose attributes cannot be parsed,
        yields an empty list. Pass ``strict=True`` to raise
        AttributeParseFailed on malformed data instead.
        """
        headers = build_auth_headers(self.token)
        resp = self.client.get(f"{self.base_path}/{user_id}", headers=headers)
        try:
            record = resp.json()
        except ValueError:
            record = None
        return parse_attributes(record, strict=strict)

    def _save_password(self, user_id: str, password: str, headers: Dict[str, str], temporary: bool = False) -> None:
        body = {
            "type": "password",
            "value": password,
            "temporary": bool(temporary),
        }
        self.client.put(f"{self.base_path}/{user_id}/reset-password", json=body, headers=headers)

    def _send_verify_email(self, user_id: str, headers: Dict[str, str]) -> None:
        self.client.put(f"{self.base_path}/{user_id}/send-verify-email", headers=headers)


def _user_id_from_location(location: Optional[str]) -> str:
    """Return the last path segment of a Location header."""
    if not location:
        raise IdExtractionFailed(location)
    user_id = urlsplit(location).path.rstrip("/").rsplit("/", 1)[-1]
    if not user_id:
        raise IdExtractionFailed(location)
    return user_id


def create_user_manager(config: Optional[KeycloakConfig] = None, http: Optional[Any] = None) -> UserManager:
    """Wire configuration, token supplier and HTTP client into a UserManager.

    Uses the service account when a client secret is configured and falls
    back to the admin user otherwise.

    Args:
        config: Settings (defaults to load_settings())
        http: Transport for admin requests (defaults to a requests.Session)
    """
    config = config or load_settings()

    if config.uses_service_account:
        token = AccessToken.service_account(
            config.base_url,
            config.auth_realm,
            config.client_id,
            config.client_secret,
            realm_prefix=config.realm_prefix,
            timeout=config.request_timeout,
        )
    else:
        token = AccessToken.admin(
            config.base_url,
            config.admin_username,
            config.admin_password,
            auth_realm=config.admin_realm,
            realm_prefix=config.realm_prefix,
            timeout=config.request_timeout,
        )

    client = KeycloakClient(config.base_url, http=http, timeout=config.request_timeout)
    return UserManager(
        client,
        token,
        config.realm,
        admin_prefix=config.admin_prefix,
        max_workers=config.max_workers,
    )
