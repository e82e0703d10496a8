"""Profile lookups and owner-only profile updates."""

from __future__ import annotations

import re
from collections.abc import Iterable

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gamebox.models import Profile
from gamebox.services.result import MutationOutcome, is_unique_violation

USERNAME_PATTERN = re.compile(r"^[a-z0-9_]{3,20}$")


def normalize_username(raw: str) -> str:
    return raw.strip().lstrip("@").lower()


def get_profile(db: Session, user_id: str) -> Profile | None:
    return db.get(Profile, user_id)


def get_profile_by_username(db: Session, username: str) -> Profile | None:
    stmt = sa.select(Profile).where(Profile.username == normalize_username(username))
    return db.scalars(stmt).first()


def get_or_create_profile(db: Session, email: str) -> tuple[Profile, bool]:
    """Return the profile for ``email``, creating it on first sign-in."""
    email = email.strip().lower()
    profile = db.scalars(sa.select(Profile).where(Profile.email == email)).first()
    if profile is not None:
        return profile, False
    profile = Profile(email=email)
    db.add(profile)
    try:
        db.commit()
    except IntegrityError as exc:
        # Two callbacks for the same email raced; the other one won.
        db.rollback()
        if not is_unique_violation(exc):
            raise
        existing = db.scalars(sa.select(Profile).where(Profile.email == email)).one()
        return existing, False
    db.refresh(profile)
    return profile, True


def profiles_by_id(db: Session, user_ids: Iterable[str]) -> dict[str, Profile]:
    """Fetch many profiles in one query, keyed by id."""
    ids = {uid for uid in user_ids if uid}
    if not ids:
        return {}
    return {p.id: p for p in db.scalars(sa.select(Profile).where(Profile.id.in_(ids)))}


def set_username(db: Session, profile: Profile, raw: str) -> MutationOutcome:
    """Claim a username for ``profile``; fails when invalid or already taken."""
    username = normalize_username(raw)
    if not USERNAME_PATTERN.match(username):
        return MutationOutcome(
            ok=False,
            error="Usernames are 3-20 characters: lowercase letters, digits and underscores",
        )
    if profile.username == username:
        return MutationOutcome(ok=True)
    taken = db.scalars(
        sa.select(Profile.id).where(Profile.username == username, Profile.id != profile.id)
    ).first()
    if taken is not None:
        return MutationOutcome(ok=False, error="taken")
    profile.username = username
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if is_unique_violation(exc):
            return MutationOutcome(ok=False, error="taken")
        raise
    return MutationOutcome(ok=True)


def update_profile(
    db: Session,
    profile: Profile,
    *,
    display_name: str | None = None,
    avatar_url: str | None = None,
    bio: str | None = None,
) -> Profile:
    """Apply the provided fields; blank strings clear a field."""
    if display_name is not None:
        profile.display_name = display_name.strip() or None
    if avatar_url is not None:
        profile.avatar_url = avatar_url.strip() or None
    if bio is not None:
        profile.bio = bio.strip() or None
    db.commit()
    db.refresh(profile)
    return profile
