"""
FastAPI dependency functions for authentication.

These can be used in routes with Depends() to protect endpoints.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .service import authenticate_admin

# Bearer scheme; auto_error=False so a missing header gets our own 401 detail
security = HTTPBearer(auto_error=False)


def require_admin(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> str:
    """
    Dependency that validates the admin credential.

    Args:
        credentials (Optional[HTTPAuthorizationCredentials]): Provided by FastAPI
            from the `Authorization: Bearer <token>` header.

    Returns:
        str: The authenticated principal.
    """
    return authenticate_admin(credentials.credentials if credentials else None)
