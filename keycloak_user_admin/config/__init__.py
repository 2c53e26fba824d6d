"""Configuration module for the Keycloak user administration client."""
from .settings import KeycloakConfig, load_settings

__all__ = ["KeycloakConfig", "load_settings"]
