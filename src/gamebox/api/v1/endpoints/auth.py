# src/gamebox/api/v1/endpoints/auth.py
"""Magic-link authentication endpoints for the Gamebox API."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from gamebox.core.security import (
    InvalidTokenError,
    build_magic_link_url,
    create_access_token,
    create_magic_link_token,
    decode_magic_link_token,
)
from gamebox.core.settings import settings
from gamebox.models import Profile, UsedMagicLink
from gamebox.schemas.user import (
    CallbackRequest,
    MagicLinkRequest,
    MagicLinkResponse,
    MeResponse,
    TokenResponse,
)
from gamebox.services.profiles import get_or_create_profile
from gamebox.services.store import insert_once

from ..dependencies import CurrentUserDep, SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/magic-link", response_model=MagicLinkResponse)
async def request_magic_link(payload: MagicLinkRequest) -> MagicLinkResponse:
    """Issue a single-use sign-in link.

    Mail delivery is outside this service; the link is logged, and echoed in
    the response when running in debug mode.
    """
    token, jti = create_magic_link_token(payload.email)
    link = build_magic_link_url(token)
    logger.info("Magic link issued for %s (jti=%s)", payload.email.lower(), jti)
    return MagicLinkResponse(sent=True, link=link if settings.debug else None)


@router.post("/callback", response_model=TokenResponse)
async def magic_link_callback(payload: CallbackRequest, db: SessionDep) -> TokenResponse:
    """Redeem a magic link and return an access token."""
    try:
        claims = decode_magic_link_token(payload.token)
    except InvalidTokenError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired sign-in link",
        ) from err

    if not insert_once(db, UsedMagicLink, jti=claims.jti):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Sign-in link has already been used",
        )

    profile, created = get_or_create_profile(db, claims.email)
    if created:
        logger.info("Created profile %s on first sign-in", profile.id)
    return TokenResponse(
        access_token=create_access_token(profile.id),
        user_id=profile.id,
        needs_username=profile.username is None,
    )


@router.get("/me", response_model=MeResponse)
async def read_me(current_user: CurrentUserDep) -> Profile:
    """Return the signed-in user's own profile."""
    return current_user
