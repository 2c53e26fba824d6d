"""Keycloak-specific exceptions for error handling.

Fatal kinds (TokenUnavailable, IdExtractionFailed, KeycloakAPIError on the
primary request) abort the operation. Tolerated kinds (ScopeLookupFailed,
AttributeParseFailed, SideEffectFailed) are absorbed where they are detected
and only ever reach the caller as a filtered result or a log line.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .roles import AuthorizationScope


class KeycloakError(Exception):
    """Base exception for all Keycloak operations."""
    pass


class KeycloakAPIError(KeycloakError):
    """HTTP error from Keycloak Admin API.

    Attributes:
        status_code: HTTP status code
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


class TokenUnavailable(KeycloakError):
    """The token supplier could not produce a bearer token."""
    pass


class IdExtractionFailed(KeycloakError):
    """User creation response did not expose the new user id.

    Attributes:
        location: Raw Location header value (None when absent)
    """

    def __init__(self, location: Optional[str]):
        self.location = location
        super().__init__(f"Unable to extract user id from Location header: {location!r}")


class ScopeLookupFailed(KeycloakError):
    """Role lookup for a single authorization scope failed.

    Attributes:
        scope: AuthorizationScope that failed
        cause: Underlying transport, HTTP or parsing error
    """

    def __init__(self, scope: "AuthorizationScope", cause: BaseException):
        self.scope = scope
        self.cause = cause
        super().__init__(f"Role lookup failed for {scope}: {cause}")


class AttributeParseFailed(KeycloakError):
    """User record did not contain a parseable attribute mapping."""
    pass


class SideEffectFailed(KeycloakError):
    """A best-effort follow-up step after user creation failed.

    Attributes:
        step: Name of the follow-up step (e.g. "reset-password")
        user_id: Id of the user the step ran for
        cause: Underlying error
    """

    def __init__(self, step: str, user_id: str, cause: BaseException):
        self.step = step
        self.user_id = user_id
        self.cause = cause
        super().__init__(f"Post-creation step '{step}' failed for user {user_id}: {cause}")
