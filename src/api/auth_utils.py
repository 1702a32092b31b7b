"""
API access tokens.

Signed HS256 JWTs whose "sub" claim is the user id. Sign-in lives outside
this service; the CLI issues tokens for local use.
"""

import os
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

SECRET_KEY = os.environ.get("BOARDS_SECRET_KEY", "dev-secret-unsafe")
ALGORITHM = "HS256"
DEFAULT_TOKEN_TTL = timedelta(hours=24)


def issue_access_token(
    user_id: str,
    ttl: timedelta = DEFAULT_TOKEN_TTL,
    now_utc: datetime | None = None,
) -> str:
    """
    Sign a token for user_id.

    Args:
        user_id: Stored in the "sub" claim
        ttl: Lifetime of the token
        now_utc: Issue time (for testing/determinism). Defaults to datetime.now(UTC).
    """
    issued = now_utc or datetime.now(UTC)
    claims = {"sub": user_id, "iat": issued, "exp": issued + ttl}
    token: str = jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)
    return token


def read_token_subject(token: str) -> str | None:
    """User id carried by a valid token, or None if it is expired, forged or malformed."""
    try:
        claims = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    subject = claims.get("sub")
    return subject if isinstance(subject, str) and subject else None
