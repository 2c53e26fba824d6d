"""Keycloak user administration client.

To manage users:
    from keycloak_user_admin.core import create_user_manager

To load settings:
    from keycloak_user_admin.config import load_settings
"""
