"""Token helpers for magic-link sign-in and bearer access tokens."""
from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from urllib.parse import urlencode

from jose import JWTError, jwt

from gamebox.core.settings import settings

MAGIC_LINK_PURPOSE = "magic"
ACCESS_PURPOSE = "access"


class InvalidTokenError(ValueError):
    """Raised when a token cannot be decoded or has the wrong purpose."""


@dataclass(frozen=True)
class MagicLinkClaims:
    """Decoded contents of a magic-link token."""

    email: str
    jti: str


def _encode(claims: dict[str, object], *, minutes: int) -> str:
    to_encode = dict(claims)
    to_encode["exp"] = datetime.now(UTC) + timedelta(minutes=minutes)
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def _decode(token: str) -> dict[str, object]:
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as err:
        raise InvalidTokenError("Could not validate token") from err


def create_access_token(subject: str, extra_claims: dict[str, str] | None = None) -> str:
    """Create JWT access token for user authentication."""
    to_encode: dict[str, object] = {"sub": subject, "purpose": ACCESS_PURPOSE}
    if extra_claims:
        to_encode.update(extra_claims)
    return _encode(to_encode, minutes=settings.access_token_expire_minutes)


def decode_access_token(token: str) -> str:
    """Return the profile id carried by an access token.

    Raises:
        InvalidTokenError: If the token is expired, tampered with, or not an access token.
    """
    payload = _decode(token)
    subject = payload.get("sub")
    if payload.get("purpose") != ACCESS_PURPOSE or not isinstance(subject, str):
        raise InvalidTokenError("Not an access token")
    return subject


def create_magic_link_token(email: str) -> tuple[str, str]:
    """Issue a single-use sign-in token for ``email``; returns ``(token, jti)``."""
    jti = secrets.token_hex(16)
    token = _encode(
        {"email": email.strip().lower(), "jti": jti, "purpose": MAGIC_LINK_PURPOSE},
        minutes=settings.magic_link_expire_minutes,
    )
    return token, jti


def decode_magic_link_token(token: str) -> MagicLinkClaims:
    """Validate a magic-link token and return its claims."""
    payload = _decode(token)
    email = payload.get("email")
    jti = payload.get("jti")
    if (
        payload.get("purpose") != MAGIC_LINK_PURPOSE
        or not isinstance(email, str)
        or not isinstance(jti, str)
    ):
        raise InvalidTokenError("Not a magic-link token")
    return MagicLinkClaims(email=email, jti=jti)


def build_magic_link_url(token: str) -> str:
    """Return the sign-in URL the user follows from their inbox."""
    base = settings.site_url.rstrip("/")
    return f"{base}/auth/callback?{urlencode({'token': token})}"


def sign_in_url(next_path: str | None = None) -> str:
    """Return the sign-in page, optionally remembering where to go afterwards."""
    path = settings.sign_in_path
    if next_path:
        path = f"{path}?{urlencode({'next': next_path})}"
    return path
