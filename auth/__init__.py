"""
Auth package for the Shortlink Platform API.

Provides the admin-credential check (bearer secret) used to gate
administrative endpoints. The link core never authorizes; it trusts callers
that made it past these dependencies.
"""
