"""Keycloak Admin API user management library.

Architecture:
- client.py: HTTP client over a pluggable transport with centralized error handling
- tokens.py: Bearer token suppliers (service account, admin user, static)
- headers.py: Authorization header construction
- attributes.py: Custom attribute parsing and upsert merging
- roles.py: Concurrent role resolution across realm and client scopes
- users.py: User operations and provisioning (UserManager)
- exceptions.py: Typed exceptions for error handling

Usage:
    from keycloak_user_admin.core import create_user_manager, Attribute

    manager = create_user_manager()
    user_id = manager.create({"username": "alice", "email": "alice@example.com", "password": "s3cret"})
    manager.add_attributes(user_id, [Attribute("department", ["finance"])])
    roles = manager.roles(user_id, ["<client-uuid>"], include_realm_roles=True)
"""
from .client import KeycloakClient, REQUEST_TIMEOUT
from .tokens import AccessToken, StaticToken
from .headers import build_auth_headers
from .attributes import Attribute, merge_attributes, parse_attributes
from .roles import (
    AuthorizationScope,
    RoleOutcome,
    RoleResolutionResult,
    aggregate_role_outcomes,
    resolve_roles,
)
from .users import UserManager, create_user_manager
from .exceptions import (
    KeycloakError,
    KeycloakAPIError,
    TokenUnavailable,
    IdExtractionFailed,
    ScopeLookupFailed,
    AttributeParseFailed,
    SideEffectFailed,
)

__all__ = [
    # Client
    "KeycloakClient",
    "REQUEST_TIMEOUT",

    # Tokens
    "AccessToken",
    "StaticToken",
    "build_auth_headers",

    # Attributes
    "Attribute",
    "merge_attributes",
    "parse_attributes",

    # Roles
    "AuthorizationScope",
    "RoleOutcome",
    "RoleResolutionResult",
    "aggregate_role_outcomes",
    "resolve_roles",

    # Users
    "UserManager",
    "create_user_manager",

    # Exceptions
    "KeycloakError",
    "KeycloakAPIError",
    "TokenUnavailable",
    "IdExtractionFailed",
    "ScopeLookupFailed",
    "AttributeParseFailed",
    "SideEffectFailed",
]
