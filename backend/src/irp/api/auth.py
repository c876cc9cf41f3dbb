"""Bearer-token identity resolution for IRP.

Access tokens are issued by an external identity provider and verified
here with the shared signing secret. The token subject is the user id.
"""

from typing import Annotated

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from ..config import get_settings
from ..errors import Unauthenticated
from ..logging import get_context_logger

logger = get_context_logger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


class User(BaseModel):
    """Authenticated user information."""

    id: str
    email: str | None = None


class JWTIdentityResolver:
    """Resolves bearer tokens to user ids."""

    def __init__(
        self,
        secret: str | None = None,
        algorithm: str | None = None,
        audience: str | None = None,
    ):
        settings = get_settings()
        self._secret = secret or settings.jwt_secret
        self._algorithm = algorithm or settings.jwt_algorithm
        self._audience = audience or settings.jwt_audience

    def decode(self, token: str) -> dict:
        """Decode and validate an access token.

        Raises:
            Unauthenticated: If the token is invalid, expired or has no subject
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
            )
        except jwt.ExpiredSignatureError:
            raise Unauthenticated("Token has expired")
        except jwt.InvalidTokenError as e:
            logger.info(f"Rejected access token: {e}")
            raise Unauthenticated("Invalid or expired token")

        if not payload.get("sub"):
            raise Unauthenticated("Invalid or expired token")
        return payload

    def resolve(self, token: str) -> str:
        """Resolve a bearer token to a user id."""
        return str(self.decode(token)["sub"])


# Singleton instance
_resolver: JWTIdentityResolver | None = None


def get_identity_resolver() -> JWTIdentityResolver:
    """Get the identity resolver singleton."""
    global _resolver
    if _resolver is None:
        _resolver = JWTIdentityResolver()
    return _resolver


# =========================
# Dependency Injection
# =========================


def _to_user(payload: dict) -> User:
    email = payload.get("email")
    return User(id=str(payload["sub"]), email=email if isinstance(email, str) else None)


async def get_current_user_optional(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    resolver: JWTIdentityResolver = Depends(get_identity_resolver),
) -> User | None:
    """Get the current user if authenticated, otherwise None.

    Use this dependency when authentication is optional.
    """
    if not credentials:
        return None

    try:
        return _to_user(resolver.decode(credentials.credentials))
    except Unauthenticated:
        return None


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    resolver: JWTIdentityResolver = Depends(get_identity_resolver),
) -> User:
    """Get the current authenticated user.

    Raises:
        Unauthenticated: If no valid bearer token was supplied
    """
    if not credentials:
        raise Unauthenticated("Missing bearer token")

    return _to_user(resolver.decode(credentials.credentials))


# Type aliases for cleaner dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[User | None, Depends(get_current_user_optional)]
