"""Search over users and games.

Queries may carry a scope hint: a leading ``@`` or a ``user:``/``users:``
prefix searches people, ``game:``/``games:`` searches titles.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

import sqlalchemy as sa
from sqlalchemy.orm import Session

from gamebox.models import Game, Profile

SCOPES: tuple[str, ...] = ("all", "users", "games")
_PREFIX = re.compile(r"^(user|users|game|games):(.*)$", re.IGNORECASE | re.DOTALL)

SCORE_EXACT = 3
SCORE_PREFIX = 2
SCORE_CONTAINS = 1


@dataclass(frozen=True)
class ParsedQuery:
    q: str
    scope: str = "all"


@dataclass(frozen=True)
class UserHit:
    id: str
    username: str | None
    display_name: str | None
    avatar_url: str | None
    score: int


@dataclass(frozen=True)
class GameHit:
    id: int
    name: str
    cover_url: str | None
    release_year: int | None
    score: int


@dataclass(frozen=True)
class SearchResults:
    q: str
    scope: str
    users: list[UserHit] = field(default_factory=list)
    games: list[GameHit] = field(default_factory=list)


def parse_query(raw: str | None) -> ParsedQuery:
    q = (raw or "").strip()
    if q.startswith("@"):
        return ParsedQuery(q=q[1:].strip(), scope="users")
    match = _PREFIX.match(q)
    if match:
        tag = match.group(1).lower()
        return ParsedQuery(
            q=match.group(2).strip(),
            scope="games" if tag.startswith("game") else "users",
        )
    return ParsedQuery(q=q, scope="all")


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def score_text(needle: str, *candidates: str | None) -> int:
    """Best match score of ``needle`` against any candidate string."""
    needle = needle.lower()
    best = 0
    for candidate in candidates:
        if not candidate:
            continue
        text = candidate.lower()
        if text == needle:
            return SCORE_EXACT
        if text.startswith(needle):
            best = max(best, SCORE_PREFIX)
        elif needle in text:
            best = max(best, SCORE_CONTAINS)
    return best


def search_users(db: Session, q: str, *, limit: int = 8) -> list[UserHit]:
    q = q.strip().lstrip("@")
    if not q:
        return []
    pattern = f"%{_escape_like(q)}%"
    rows = db.scalars(
        sa.select(Profile)
        .where(
            Profile.username.is_not(None),
            sa.or_(
                Profile.username.ilike(pattern, escape="\\"),
                Profile.display_name.ilike(pattern, escape="\\"),
            ),
        )
        .limit(limit * 5)
    ).all()
    hits = [
        UserHit(
            id=p.id,
            username=p.username,
            display_name=p.display_name,
            avatar_url=p.avatar_url,
            score=score_text(q, p.username, p.display_name),
        )
        for p in rows
    ]
    hits.sort(key=lambda h: (-h.score, h.username or ""))
    return hits[:limit]


def search_games(db: Session, q: str, *, limit: int = 8) -> list[GameHit]:
    """Match base titles by name or alias."""
    q = q.strip()
    if not q:
        return []
    pattern = f"%{_escape_like(q)}%"
    rows = db.scalars(
        sa.select(Game)
        .where(
            Game.parent_igdb_id.is_(None),
            sa.or_(
                Game.name.ilike(pattern, escape="\\"),
                sa.cast(Game.aliases, sa.String).ilike(pattern, escape="\\"),
            ),
        )
        .limit(limit * 5)
    ).all()
    hits = [
        GameHit(
            id=g.id,
            name=g.name,
            cover_url=g.cover_url,
            release_year=g.release_year,
            score=score_text(q, g.name, *(g.aliases or [])),
        )
        for g in rows
    ]
    # JSON text matched but no alias actually contains the term (e.g. escaped quotes).
    hits = [h for h in hits if h.score > 0]
    hits.sort(key=lambda h: (-h.score, h.name.lower()))
    return hits[:limit]


def search(db: Session, raw: str | None, *, limit: int = 8) -> SearchResults:
    parsed = parse_query(raw)
    if not parsed.q:
        return SearchResults(q="", scope=parsed.scope)
    users = search_users(db, parsed.q, limit=limit) if parsed.scope in ("all", "users") else []
    games = search_games(db, parsed.q, limit=limit) if parsed.scope in ("all", "games") else []
    return SearchResults(q=parsed.q, scope=parsed.scope, users=users, games=games)
