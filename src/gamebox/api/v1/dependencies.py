"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session, sessionmaker

from gamebox.core.security import InvalidTokenError, decode_access_token, sign_in_url
from gamebox.core.settings import settings
from gamebox.db.session import get_db, get_session_factory
from gamebox.models import Profile
from gamebox.services.igdb import IgdbClient, get_igdb_client
from gamebox.services.rate_limit import RateLimiter, get_rate_limiter
from gamebox.services.sync import SyncBus, get_sync_bus

# HTTP Bearer scheme; missing credentials are handled below so we can
# point the client at the sign-in page instead of a bare 403.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]
# Factory for handlers that open and close their own short-lived session
SessionFactoryDep = Annotated[sessionmaker[Session], Depends(get_session_factory)]
CredentialsDep = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]


def _unauthorized(request: Request, detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={
            "WWW-Authenticate": "Bearer",
            "Location": sign_in_url(request.url.path),
        },
    )


def resolve_user(db: Session, token: str) -> Profile | None:
    """Return the profile an access token belongs to, or None."""
    try:
        user_id = decode_access_token(token)
    except InvalidTokenError:
        return None
    return db.get(Profile, user_id)


def get_current_user(request: Request, credentials: CredentialsDep, db: SessionDep) -> Profile:
    """Get the current authenticated user from the bearer token.

    Raises:
        HTTPException: 401 with a ``Location`` header pointing at the sign-in
            page when the token is missing, invalid, or unknown.
    """
    if credentials is None:
        raise _unauthorized(request, "Not authenticated")
    user = resolve_user(db, credentials.credentials)
    if user is None:
        raise _unauthorized(request, "Could not validate credentials")
    return user


def get_optional_user(credentials: CredentialsDep, db: SessionDep) -> Profile | None:
    """Return the viewer when a valid token is supplied; anonymous otherwise."""
    if credentials is None:
        return None
    return resolve_user(db, credentials.credentials)


def get_tab_id(x_tab_id: Annotated[str | None, Header()] = None) -> str | None:
    """Per-tab identifier used to keep a tab from re-applying its own broadcasts."""
    if x_tab_id is None:
        return None
    return x_tab_id.strip()[:64] or None


def require_maintenance_secret(
    x_maintenance_secret: Annotated[str | None, Header()] = None,
) -> None:
    """Hide maintenance routes unless the configured secret is presented."""
    expected = settings.maintenance_secret
    if expected and x_maintenance_secret != expected:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")


def get_igdb_client_dep() -> IgdbClient:
    return get_igdb_client()


def get_sync_bus_dep() -> SyncBus:
    return get_sync_bus()


def get_rate_limiter_dep() -> RateLimiter:
    return get_rate_limiter()


CurrentUserDep = Annotated[Profile, Depends(get_current_user)]
OptionalUserDep = Annotated[Profile | None, Depends(get_optional_user)]
TabIdDep = Annotated[str | None, Depends(get_tab_id)]
IgdbClientDep = Annotated[IgdbClient, Depends(get_igdb_client_dep)]
SyncBusDep = Annotated[SyncBus, Depends(get_sync_bus_dep)]
RateLimiterDep = Annotated[RateLimiter, Depends(get_rate_limiter_dep)]


def enforce_rate_limit(limiter: RateLimiter, user: Profile, action: str) -> None:
    if not limiter.hit(user.id, action):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Slow down: too many requests",
        )
