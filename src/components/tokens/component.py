"""
Invitation token generator.

Tokens carry 256 bits from the OS CSPRNG, hex encoded to a fixed 64
characters. Collisions are negligible, so no uniqueness pre-check is made;
the store's unique index is the backstop.
"""

from __future__ import annotations

import secrets

from src.domain.errors import GenerationError

TOKEN_BYTES = 32
TOKEN_LENGTH = TOKEN_BYTES * 2


def generate_token(nbytes: int = TOKEN_BYTES) -> str:
    """
    Generate a single-use invitation token.

    Raises:
        GenerationError: the randomness source is unavailable
    """
    try:
        return secrets.token_hex(nbytes)
    except (NotImplementedError, OSError) as e:
        raise GenerationError(f"secure random source unavailable: {e}") from e


class SecureTokenGenerator:
    """TokenGeneratorPort backed by the secrets module."""

    def generate(self) -> str:
        return generate_token()
