"""IGDB metadata client.

This module wraps the Twitch-issued client-credentials token and the IGDB
``/games`` endpoint. It includes:

- A process-wide access token cache refreshed on demand
- Query builders for IGDB's small query language
- Row mapping into the shape stored in the ``games`` table
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import httpx

from gamebox.core.settings import settings

logger = logging.getLogger(__name__)

MAX_SEARCH_LIMIT = 25
SUMMARY_CHUNK_SIZE = 50
HTTP_OK = 200


class IgdbError(RuntimeError):
    """Raised when IGDB or its token endpoint returns an unusable response."""


class IgdbConfigError(IgdbError):
    """Raised when IGDB credentials are not configured."""


@dataclass(frozen=True)
class IgdbConfig:
    """Immutable configuration for IGDB access."""

    client_id: str | None
    client_secret: str | None
    token_url: str
    api_url: str
    image_base: str
    timeout_seconds: float
    refresh_margin_seconds: int

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


@dataclass
class TokenCache:
    """Cached bearer token and the epoch second it stops being valid."""

    value: str | None = None
    expires_at: float = 0.0

    def valid(self, now: float, margin: float) -> bool:
        return self.value is not None and self.expires_at > now + margin


@dataclass(frozen=True)
class IgdbGame:
    """A game row mapped from IGDB into local column names."""

    igdb_id: int
    name: str
    cover_url: str | None
    release_year: int | None
    aliases: list[str] = field(default_factory=list)
    popularity: float | None = None

    def as_row(self) -> dict[str, Any]:
        return {
            "igdb_id": self.igdb_id,
            "name": self.name,
            "cover_url": self.cover_url,
            "release_year": self.release_year,
            "aliases": list(self.aliases),
            "popularity": self.popularity,
        }


def load_igdb_config() -> IgdbConfig:
    """Build configuration object from global settings."""
    return IgdbConfig(
        client_id=settings.igdb_client_id,
        client_secret=settings.igdb_client_secret,
        token_url=settings.igdb_token_url,
        api_url=settings.igdb_api_url.rstrip("/"),
        image_base=settings.igdb_image_base.rstrip("/"),
        timeout_seconds=float(settings.igdb_http_timeout_seconds),
        refresh_margin_seconds=settings.igdb_token_refresh_margin_seconds,
    )


def escape_search(term: str) -> str:
    """Escape double quotes for use inside an IGDB ``search "..."`` clause."""
    return term.replace('"', '\\"')


def build_search_query(term: str, limit: int = 10) -> str:
    limit = max(1, min(int(limit), MAX_SEARCH_LIMIT))
    return (
        "fields id, name, alternative_names.name, cover.image_id, first_release_date, popularity;\n"
        f'search "{escape_search(term)}";\n'
        "where version_parent = null;\n"
        f"limit {limit};\n"
    )


def build_id_query(fields: str, igdb_ids: Sequence[int]) -> str:
    ids = ",".join(str(int(i)) for i in igdb_ids)
    return f"fields {fields}; where id = ({ids}); limit {len(igdb_ids)};"


def cover_url_for(image_id: str | None, image_base: str | None = None) -> str | None:
    if not image_id:
        return None
    base = (image_base or settings.igdb_image_base).rstrip("/")
    return f"{base}/{image_id}.jpg"


def release_year_for(epoch_seconds: int | float | None) -> int | None:
    """Calendar year of an IGDB release timestamp, evaluated in UTC."""
    if not epoch_seconds:
        return None
    return datetime.fromtimestamp(epoch_seconds, tz=UTC).year


def map_igdb_row(row: dict[str, Any], image_base: str | None = None) -> IgdbGame:
    cover = row.get("cover") or {}
    aliases = [
        alt.get("name")
        for alt in row.get("alternative_names") or []
        if isinstance(alt, dict) and alt.get("name")
    ]
    popularity = row.get("popularity")
    return IgdbGame(
        igdb_id=int(row["id"]),
        name=str(row.get("name") or ""),
        cover_url=cover_url_for(cover.get("image_id") if isinstance(cover, dict) else None, image_base),
        release_year=release_year_for(row.get("first_release_date")),
        aliases=aliases,
        popularity=float(popularity) if popularity is not None else None,
    )


def _chunks(values: Sequence[int], size: int) -> Iterable[Sequence[int]]:
    for start in range(0, len(values), size):
        yield values[start : start + size]


class IgdbClient:
    """Async HTTP client for IGDB with a lazily refreshed access token."""

    def __init__(
        self,
        config: IgdbConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or load_igdb_config()
        self._transport = transport
        self._clock = clock
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()
        self._token = TokenCache()
        self._token_lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return self.config.configured

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.configured:
            raise IgdbConfigError("Missing IGDB_CLIENT_ID / IGDB_CLIENT_SECRET")
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    async def get_token(self) -> str:
        """Return a valid access token, fetching a new one when close to expiry.

        Concurrent callers share a single refresh.
        """
        margin = self.config.refresh_margin_seconds
        if self._token.valid(self._clock(), margin):
            return self._token.value or ""
        async with self._token_lock:
            now = self._clock()
            if self._token.valid(now, margin):
                return self._token.value or ""
            client = await self._ensure_client()
            try:
                response = await client.post(
                    self.config.token_url,
                    data={
                        "client_id": self.config.client_id,
                        "client_secret": self.config.client_secret,
                        "grant_type": "client_credentials",
                    },
                )
            except httpx.HTTPError as exc:
                raise IgdbError(f"IGDB token request failed: {exc}") from exc
            payload = response.json() if response.content else {}
            token = payload.get("access_token") if isinstance(payload, dict) else None
            if response.status_code != HTTP_OK or not token:
                raise IgdbError(f"IGDB token error {response.status_code}: {payload}")
            expires_in = float(payload.get("expires_in") or 0)
            self._token = TokenCache(value=token, expires_at=now + expires_in)
            logger.info("Fetched IGDB token valid for %.0fs", expires_in)
            return token

    async def query_games(self, body: str) -> list[dict[str, Any]]:
        """POST a raw query to ``/games`` and return the decoded rows."""
        token = await self.get_token()
        client = await self._ensure_client()
        try:
            response = await client.post(
                f"{self.config.api_url}/games",
                content=body,
                headers={
                    "Client-ID": self.config.client_id or "",
                    "Authorization": f"Bearer {token}",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as exc:
            raise IgdbError(f"IGDB request failed: {exc}") from exc
        if response.status_code != HTTP_OK:
            raise IgdbError(f"IGDB error {response.status_code}: {response.text}")
        rows = response.json()
        if not isinstance(rows, list):
            raise IgdbError(f"IGDB returned unexpected payload: {rows!r}")
        return rows

    async def search(self, term: str, limit: int = 10) -> list[IgdbGame]:
        """Search base titles (editions excluded) by name."""
        term = term.strip()
        if not term:
            return []
        rows = await self.query_games(build_search_query(term, limit))
        return [map_igdb_row(row, self.config.image_base) for row in rows if row.get("id")]

    async def fetch_version_parents(self, igdb_ids: Sequence[int]) -> dict[int, int | None]:
        """Map each IGDB id to its ``version_parent`` (None for base titles)."""
        if not igdb_ids:
            return {}
        rows = await self.query_games(build_id_query("id, version_parent", igdb_ids))
        return {int(row["id"]): row.get("version_parent") for row in rows if row.get("id")}

    async def fetch_summaries(self, igdb_ids: Sequence[int]) -> dict[int, str]:
        """Fetch summaries in chunks; a failing chunk is logged and skipped."""
        out: dict[int, str] = {}
        for chunk in _chunks(list(igdb_ids), SUMMARY_CHUNK_SIZE):
            try:
                rows = await self.query_games(build_id_query("id, summary", chunk))
            except IgdbConfigError:
                raise
            except IgdbError as exc:
                logger.warning("Skipping IGDB summary chunk of %d ids: %s", len(chunk), exc)
                continue
            for row in rows:
                if row.get("id") and row.get("summary"):
                    out[int(row["id"])] = str(row["summary"])
        return out

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class _IgdbClientSingleton:
    _instance: IgdbClient | None = None

    @classmethod
    def get_instance(cls) -> IgdbClient:
        if cls._instance is None:
            cls._instance = IgdbClient()
        return cls._instance


def get_igdb_client() -> IgdbClient:
    """Return a singleton IGDB client instance."""
    return _IgdbClientSingleton.get_instance()
