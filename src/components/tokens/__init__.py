"""
Tokens component - unpredictable single-use invitation tokens.
"""

from .component import (
    TOKEN_BYTES,
    TOKEN_LENGTH,
    SecureTokenGenerator,
    generate_token,
)

__all__ = [
    "TOKEN_BYTES",
    "TOKEN_LENGTH",
    "SecureTokenGenerator",
    "generate_token",
]
