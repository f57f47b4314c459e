"""
Utility functions for the auth module.
"""

import hmac


def secrets_match(supplied: str, expected: str) -> bool:
    """
    Constant-time comparison of a supplied credential against the configured one.

    Note:
        An empty expected secret never matches, so an unconfigured deployment
        rejects every admin request instead of accepting an empty token.
    """
    if not expected:
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))
