"""Authentication dependencies for FastAPI endpoints."""

from dataclasses import dataclass

from fastapi import Header, HTTPException, status

from profile_api.auth.jwt import decode_token


@dataclass(frozen=True)
class Identity:
    """Authenticated caller as asserted by the identity provider."""

    uid: str
    email: str | None = None


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={
            "error": {
                "code": "UNAUTHORIZED",
                "message": message,
            }
        },
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_identity(
    authorization: str | None = Header(default=None),
) -> Identity:
    """
    Validate the bearer token and return the caller's identity.

    Raises:
        HTTPException: 401 if the token is missing, malformed, expired,
            or carries no subject
    """
    if not authorization:
        raise _unauthorized("Authorization token required")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise _unauthorized("Invalid authorization header format")

    payload = decode_token(token.strip())
    if payload is None:
        raise _unauthorized("Invalid or expired token")

    uid = payload.get("uid") or payload.get("sub")
    if not uid:
        raise _unauthorized("Token has no subject")

    return Identity(uid=str(uid), email=payload.get("email"))
