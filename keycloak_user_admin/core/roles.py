"""Effective role resolution across realm and client scopes.

Keycloak exposes composite role mappings per scope with no bulk endpoint,
so resolution issues one request per scope concurrently and joins on all of
them before aggregating. Individual scope failures are tolerated: as long as
one scope answered, failures are dropped from the result.
"""
from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from .client import KeycloakClient
from .exceptions import ScopeLookupFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorizationScope:
    """Realm scope (client_id is None) or a single client scope."""
    client_id: Optional[str] = None

    @classmethod
    def realm(cls) -> "AuthorizationScope":
        return cls()

    @classmethod
    def client(cls, client_id: str) -> "AuthorizationScope":
        return cls(client_id=client_id)

    @property
    def is_realm(self) -> bool:
        return self.client_id is None

    def composite_path(self, users_path: str, user_id: str) -> str:
        """Admin API path of this scope's composite role mappings."""
        if self.is_realm:
            return f"{users_path}/{user_id}/role-mappings/realm/composite"
        return f"{users_path}/{user_id}/role-mappings/clients/{self.client_id}/composite"

    def __str__(self) -> str:
        return "realm" if self.is_realm else f"client '{self.client_id}'"


@dataclass(frozen=True)
class RoleOutcome:
    """Settled result of one scope lookup: role names or a failure."""
    scope: AuthorizationScope
    roles: Optional[List[str]] = None
    error: Optional[ScopeLookupFailed] = None

    @property
    def ok(self) -> bool:
        return self.error is None


RoleResolutionResult = Union[List[str], List[RoleOutcome]]


def build_scopes(client_ids: Iterable[str], include_realm_scope: bool) -> List[AuthorizationScope]:
    """Client scopes in the given order, then the realm scope if requested."""
    scopes = [AuthorizationScope.client(cid) for cid in client_ids]
    if include_realm_scope:
        scopes.append(AuthorizationScope.realm())
    return scopes


def extract_role_names(body: Any) -> List[str]:
    """Project role names out of a list of role representations.

    Raises:
        ValueError: If the body is not a list of records with a name
    """
    if not isinstance(body, list):
        raise ValueError(f"expected a list of roles, got {type(body).__name__}")

    names = []
    for role in body:
        if not isinstance(role, dict) or "name" not in role:
            raise ValueError(f"role record without name: {role!r}")
        names.append(role["name"])
    return names


def aggregate_role_outcomes(outcomes: Sequence[RoleOutcome]) -> RoleResolutionResult:
    """Reduce settled scope outcomes into the caller-visible result.

    Returns:
        Role names of all successful scopes (in scope order, duplicates kept)
        when at least one scope succeeded; otherwise the failure outcomes.
    """
    successes = [outcome for outcome in outcomes if outcome.ok]
    failures = [outcome for outcome in outcomes if not outcome.ok]

    if not successes:
        if failures:
            logger.warning(f"[roles] All {len(failures)} scope lookup(s) failed")
        return failures

    for outcome in failures:
        logger.debug(f"[roles] Ignoring failed scope: {outcome.error}")

    names: List[str] = []
    for outcome in successes:
        names.extend(outcome.roles or [])
    return names


def resolve_roles(
    client: KeycloakClient,
    users_path: str,
    headers: Dict[str, str],
    user_id: str,
    client_ids: Iterable[str] = (),
    include_realm_scope: bool = False,
    max_workers: Optional[int] = None,
) -> RoleResolutionResult:
    """Fetch composite roles for every requested scope and aggregate them.

    All scope requests run concurrently and the function waits for every
    one of them to settle before aggregating.

    Args:
        client: Keycloak HTTP client
        users_path: Admin users collection path of the realm
        headers: Authorization headers (each request gets its own copy)
        user_id: Keycloak user id
        client_ids: Client UUIDs whose role mappings are requested
        include_realm_scope: Also request realm-level role mappings
        max_workers: Upper bound on concurrent requests (default: one per scope)

    Returns:
        See aggregate_role_outcomes()
    """
    scopes = build_scopes(client_ids, include_realm_scope)
    if not scopes:
        return []

    def _lookup(scope: AuthorizationScope) -> List[str]:
        resp = client.get(scope.composite_path(users_path, user_id), headers=dict(headers))
        return extract_role_names(resp.json())

    workers = min(max_workers or len(scopes), len(scopes))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="kc-roles") as executor:
        futures = [executor.submit(_lookup, scope) for scope in scopes]
        wait(futures)

    outcomes = []
    for scope, future in zip(scopes, futures):
        error = future.exception()
        if error is None:
            outcomes.append(RoleOutcome(scope=scope, roles=future.result()))
        else:
            outcomes.append(RoleOutcome(scope=scope, error=ScopeLookupFailed(scope, error)))

    return aggregate_role_outcomes(outcomes)
