"""Application settings and configuration.

This module defines all configuration options for the MindHaven service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="MindHaven", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Identity provider token verification
    secret_key: str = Field(default="mindhaven-dev-secret", alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Database configuration
    database_url: str = Field(default="sqlite:///./mindhaven.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Community policy
    community_name_min_length: int = Field(default=3, alias="COMMUNITY_NAME_MIN_LENGTH")
    community_description_min_length: int = Field(
        default=10,
        alias="COMMUNITY_DESCRIPTION_MIN_LENGTH",
    )
    community_min_tags: int = Field(default=1, alias="COMMUNITY_MIN_TAGS")
    chat_history_limit: int = Field(default=100, alias="CHAT_HISTORY_LIMIT")
    post_page_size: int = Field(default=20, alias="POST_PAGE_SIZE")
    notification_page_size: int = Field(default=50, alias="NOTIFICATION_PAGE_SIZE")
    notifications_enabled: bool = Field(default=True, alias="NOTIFICATIONS_ENABLED")
    seed_predefined_communities: bool = Field(default=False, alias="SEED_PREDEFINED_COMMUNITIES")
    seed_creator_id: str = Field(default="mindhaven-staff", alias="SEED_CREATOR_ID")

    # Support chatbot (remote text generation)
    support_chat_enabled: bool = Field(default=False, alias="SUPPORT_CHAT_ENABLED")
    support_chat_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        alias="SUPPORT_CHAT_BASE_URL",
    )
    support_chat_model: str = Field(default="gemini-1.5-flash", alias="SUPPORT_CHAT_MODEL")
    support_chat_api_key: str | None = Field(default=None, alias="SUPPORT_CHAT_API_KEY")
    support_chat_timeout_seconds: float = Field(
        default=30.0,
        alias="SUPPORT_CHAT_TIMEOUT_SECONDS",
    )
    support_chat_max_retries: int = Field(default=3, alias="SUPPORT_CHAT_MAX_RETRIES")
    support_chat_backoff_seconds: float = Field(
        default=2.0,
        alias="SUPPORT_CHAT_BACKOFF_SECONDS",
    )
    support_chat_system_prompt: str = Field(default="", alias="SUPPORT_CHAT_SYSTEM_PROMPT")
    support_chat_max_output_tokens: int = Field(
        default=800,
        alias="SUPPORT_CHAT_MAX_OUTPUT_TOKENS",
    )
    support_chat_temperature: float = Field(default=0.7, alias="SUPPORT_CHAT_TEMPERATURE")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "PUT", "DELETE", "OPTIONS"],
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
        populate_by_name=True,
    )

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides.

        Returns:
            The active database URL (test database if in testing mode, otherwise production)
        """
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for Alembic."""
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def community_policy(self) -> dict[str, int]:
        """Return community validation thresholds as a convenience dictionary."""
        return {
            "name_min_length": self.community_name_min_length,
            "description_min_length": self.community_description_min_length,
            "min_tags": self.community_min_tags,
        }


settings = Settings()
