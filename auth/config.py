"""
Configuration for the auth module.

The admin secret comes from `SHORTLINK_ADMIN_SECRET` via the platform settings.
It is read on every check, so tests and operators can rotate it at runtime.
An empty secret disables admin access entirely.
"""

from shortlink_platform.config import settings

# Scheme advertised in WWW-Authenticate on 401 responses
AUTH_SCHEME = "Bearer"


def get_admin_secret() -> str:
    return settings.ADMIN_SECRET or ""
