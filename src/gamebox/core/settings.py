"""Application settings and configuration.

This module defines all configuration options for the Gamebox API.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Gamebox", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database configuration
    database_url: str = Field(default="sqlite:///./gamebox.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # JWT and magic-link settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 30,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    magic_link_expire_minutes: int = Field(default=15, alias="MAGIC_LINK_EXPIRE_MINUTES")
    site_url: str = Field(default="http://localhost:3000", alias="SITE_URL")
    sign_in_path: str = Field(default="/login", alias="SIGN_IN_PATH")

    # IGDB (Twitch) metadata provider
    igdb_client_id: str | None = Field(default=None, alias="IGDB_CLIENT_ID")
    igdb_client_secret: str | None = Field(default=None, alias="IGDB_CLIENT_SECRET")
    igdb_token_url: str = Field(
        default="https://id.twitch.tv/oauth2/token",
        alias="IGDB_TOKEN_URL",
    )
    igdb_api_url: str = Field(default="https://api.igdb.com/v4", alias="IGDB_API_URL")
    igdb_image_base: str = Field(
        default="https://images.igdb.com/igdb/image/upload/t_cover_big",
        alias="IGDB_IMAGE_BASE",
    )
    igdb_http_timeout_seconds: float = Field(default=10.0, alias="IGDB_HTTP_TIMEOUT_SECONDS")
    igdb_token_refresh_margin_seconds: int = Field(
        default=60,
        alias="IGDB_TOKEN_REFRESH_MARGIN_SECONDS",
    )
    igdb_seed_throttle_seconds: float = Field(default=0.2, alias="IGDB_SEED_THROTTLE_SECONDS")

    # Maintenance jobs (backfills, seeding)
    maintenance_secret: str | None = Field(default=None, alias="MAINTENANCE_SECRET")

    # Feed paging
    feed_default_limit: int = Field(default=20, alias="FEED_DEFAULT_LIMIT")
    feed_max_limit: int = Field(default=50, alias="FEED_MAX_LIMIT")

    # Caches
    mute_cache_ttl_seconds: float = Field(default=10.0, alias="MUTE_CACHE_TTL_SECONDS")

    # Redis backs the rate limiter; unset keeps counters in process memory
    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    # Fixed-window rate limits (actions per window)
    rate_limit_window_seconds: int = Field(default=60, alias="RATE_LIMIT_WINDOW_SECONDS")
    rate_limit_posts: int = Field(default=5, alias="RATE_LIMIT_POSTS")
    rate_limit_comments: int = Field(default=20, alias="RATE_LIMIT_COMMENTS")
    rate_limit_follows: int = Field(default=20, alias="RATE_LIMIT_FOLLOWS")
    rate_limit_reactions: int = Field(default=50, alias="RATE_LIMIT_REACTIONS")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def igdb_configured(self) -> bool:
        """Return True when both IGDB credentials are present."""
        return bool(self.igdb_client_id and self.igdb_client_secret)

    @property
    def rate_limits(self) -> dict[str, int]:
        """Return per-action limits as a convenience dictionary."""
        return {
            "create_post": self.rate_limit_posts,
            "create_comment": self.rate_limit_comments,
            "follow": self.rate_limit_follows,
            "reaction": self.rate_limit_reactions,
        }


settings = Settings()  # type: ignore[call-arg]
