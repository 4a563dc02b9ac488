"""JWT decoding for identity tokens issued by the upstream auth provider."""

from datetime import datetime, timedelta, timezone

from jose import jwt

from profile_api.config import settings


def create_identity_token(uid: str, email: str | None = None, expires_minutes: int = 60) -> str:
    """Mint an identity token in the provider's shape (local tooling and tests)."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    payload = {
        "sub": uid,
        "email": email,
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict | None:
    """
    Decode and validate a JWT token.

    Returns the payload if valid, None if invalid or expired.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        return payload
    except jwt.JWTError:
        return None
