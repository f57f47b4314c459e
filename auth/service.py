"""
Core authentication logic.

This module validates the admin credential supplied by a caller against the
configured secret.
"""

from typing import Optional

from fastapi import HTTPException, status

from .config import AUTH_SCHEME, get_admin_secret
from .utils import secrets_match


def authenticate_admin(token: Optional[str]) -> str:
    """
    Validate an admin bearer token.

    Args:
        token (Optional[str]): The credential provided by the client, if any.

    Returns:
        str: The principal name ("admin") when the token matches.

    Raises:
        HTTPException: 401 Unauthorized if the token is missing or wrong.
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing admin credential",
            headers={"WWW-Authenticate": AUTH_SCHEME},
        )

    if secrets_match(token, get_admin_secret()):
        return "admin"

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid admin credential",
        headers={"WWW-Authenticate": AUTH_SCHEME},
    )
