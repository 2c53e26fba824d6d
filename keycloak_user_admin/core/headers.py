"""Authorization header construction."""
from __future__ import annotations
from typing import Dict

from .exceptions import TokenUnavailable


def build_auth_headers(token_supplier) -> Dict[str, str]:
    """Return a fresh bearer Authorization header for one operation.

    Args:
        token_supplier: Object exposing ``get() -> str``

    Raises:
        TokenUnavailable: If the supplier cannot produce a token
    """
    try:
        token = token_supplier.get()
    except TokenUnavailable:
        raise
    except Exception as e:
        raise TokenUnavailable(f"Token supplier failed: {e}") from e

    if not token:
        raise TokenUnavailable("Token supplier returned an empty token")
    return {"Authorization": f"Bearer {token}"}
