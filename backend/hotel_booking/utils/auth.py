"""Bearer token handling. Tokens are issued by the identity service; only the
signing helper used for local tooling and tests lives here."""

from datetime import datetime, timedelta, timezone
from typing import Sequence

import jwt
from jwt import InvalidTokenError

BEARER_PREFIX = "bearer "


class InvalidCredentials(ValueError):
    pass


def create_access_token(
    *,
    user_id: int,
    secret: str,
    algorithm: str = "HS256",
    expires_delta: timedelta | None = None,
) -> str:
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "iat": issued_at,
        "exp": issued_at + (expires_delta or timedelta(minutes=30)),
    }
    return jwt.encode(claims, secret, algorithm=algorithm)


def extract_bearer(authorization: str | None) -> str:
    if not authorization or not authorization.lower().startswith(BEARER_PREFIX):
        raise InvalidCredentials("bearer token required")
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise InvalidCredentials("bearer token required")
    return token


def decode_user_id(token: str, *, secret: str, algorithms: Sequence[str]) -> int:
    """Verify signature and expiry, then return the integer ``sub`` claim."""
    try:
        claims = jwt.decode(token, secret, algorithms=list(algorithms), options={"require": ["exp", "sub"]})
    except InvalidTokenError as exc:  # expired, bad signature, missing claims
        raise InvalidCredentials("invalid token") from exc
    try:
        return int(claims["sub"])
    except (TypeError, ValueError) as exc:
        raise InvalidCredentials("token subject is not a user id") from exc
