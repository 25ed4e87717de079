"""Minimal auth dependency.

Stub implementation that translates a bearer credential into an
authenticated principal. Credential verification (JWT signature, session
lookup) belongs to the auth service; this module only parses the stub
``Bearer <clinic_id>:<user_id>[:<role>]`` format used in development and tests.
"""

from typing import Annotated

from fastapi import Header, HTTPException, status

from backend.app.tenancy.context import AuthUser

DEFAULT_ROLE = "DOCTOR"


def parse_bearer_token(authorization: str) -> AuthUser:
    """Parse an Authorization header value into a principal.

    Raises:
        HTTPException: 401 if the header is malformed
    """
    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = authorization[7:]  # Strip "Bearer "

    parts = token.split(":")
    if len(parts) not in (2, 3) or not all(parts):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token format (expected clinic_id:user_id[:role])",
            headers={"WWW-Authenticate": "Bearer"},
        )

    clinic_id, user_id = parts[0], parts[1]
    role = parts[2] if len(parts) == 3 else DEFAULT_ROLE

    return AuthUser(id=user_id, email=None, role=role, clinic_id=clinic_id)


async def get_current_principal(
    authorization: Annotated[str | None, Header()] = None,
) -> AuthUser | None:
    """Extract the principal from the authorization header.

    Args:
        authorization: Authorization header (e.g., "Bearer <token>")

    Returns:
        AuthUser, or None when no credential was sent

    Raises:
        HTTPException: If authorization is invalid
    """
    if not authorization:
        return None

    return parse_bearer_token(authorization)
