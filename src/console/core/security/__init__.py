"""Security utilities."""

from src.console.core.security.crypto import create_access_token, decode_token

__all__ = [
    "create_access_token",
    "decode_token",
]
