"""Authentication utilities for the profile service."""

from profile_api.auth.dependencies import Identity, get_current_identity
from profile_api.auth.jwt import create_identity_token, decode_token

__all__ = [
    "Identity",
    "get_current_identity",
    "create_identity_token",
    "decode_token",
]
