"""
Bearer token authentication using python-jose.
"""

from .tokens import AuthError, create_access_token, validate_access_token

__all__ = ["AuthError", "create_access_token", "validate_access_token"]
