"""
Indaba Care runtime settings.

Every value is read from the process environment or a local ``.env`` file by
``pydantic-settings``. Flat fields mirror the environment variable names;
the grouped views (``settings.auth``, ``settings.cors`` ...) are what the
rest of the code base consumes.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthConfig(BaseModel):
    """Token signing, password hashing and TOTP enrolment."""

    jwt_secret: str = Field(alias="JWT_SECRET", min_length=32)
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_expire_days: int = Field(default=30, alias="JWT_EXPIRE_DAYS")
    bcrypt_rounds: int = Field(default=10, alias="BCRYPT_ROUNDS")
    totp_issuer: str = Field(default="Indaba Care", alias="TOTP_ISSUER")

    model_config = {"populate_by_name": True}


class OpenAIConfig(BaseModel):
    """Model used for observation tags and child summaries; unset key disables it."""

    api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")

    model_config = {"populate_by_name": True}


class CORSConfig(BaseModel):
    origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    allow_methods: list[str] = Field(default=["*"], alias="CORS_ALLOW_METHODS")
    allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = {"populate_by_name": True}


class ActivityFeedConfig(BaseModel):
    """Buffering of the admin server-sent activity stream."""

    queue_size: int = Field(default=100, alias="ACTIVITY_QUEUE_SIZE")
    keepalive_seconds: float = Field(default=15.0, alias="ACTIVITY_KEEPALIVE_SECONDS")

    model_config = {"populate_by_name": True}


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", alias="INDABA_LOG_LEVEL")
    format: str = Field(default="detailed", alias="LOG_FORMAT")
    file_dir: str = Field(default="logs", alias="LOG_FILE_DIR")
    enable_file: bool = Field(default=False, alias="ENABLE_FILE_LOGGING")

    model_config = {"populate_by_name": True}


class Settings(BaseSettings):
    """Environment-bound settings for the Indaba Care API server.

    ``JWT_SECRET`` has no default, so importing the server without one fails
    loudly instead of signing tokens with a guessable key.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # Server
    server_host: str = Field(default="0.0.0.0", alias="INDABA_SERVER_HOST")
    server_port: int = Field(default=8000, alias="INDABA_SERVER_PORT")
    log_level: str = Field(default="INFO", alias="INDABA_LOG_LEVEL")
    log_format: Literal["simple", "detailed", "json"] = Field(default="detailed", alias="LOG_FORMAT")
    log_file_dir: str = Field(default="logs", alias="LOG_FILE_DIR")
    enable_file_logging: bool = Field(default=False, alias="ENABLE_FILE_LOGGING")

    # Storage; postgres URLs are moved onto asyncpg by the engine factory
    database_url: str = Field(default="sqlite+aiosqlite:///./indaba.db", alias="DATABASE_URL")

    # Auth
    jwt_secret: str = Field(alias="JWT_SECRET", min_length=32)
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_expire_days: int = Field(default=30, alias="JWT_EXPIRE_DAYS")
    bcrypt_rounds: int = Field(default=10, alias="BCRYPT_ROUNDS")
    totp_issuer: str = Field(default="Indaba Care", alias="TOTP_ISSUER")

    # AI
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")

    # CORS
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(default=["*"], alias="CORS_ALLOW_METHODS")
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    # Admin activity feed
    activity_queue_size: int = Field(default=100, alias="ACTIVITY_QUEUE_SIZE", ge=1)
    activity_keepalive_seconds: float = Field(default=15.0, alias="ACTIVITY_KEEPALIVE_SECONDS", gt=0)

    def _view(self, model):
        return model.model_validate(self.model_dump(by_alias=True))

    @property
    def auth(self) -> AuthConfig:
        return self._view(AuthConfig)

    @property
    def openai(self) -> OpenAIConfig:
        return self._view(OpenAIConfig)

    @property
    def cors(self) -> CORSConfig:
        return self._view(CORSConfig)

    @property
    def activity_feed(self) -> ActivityFeedConfig:
        return self._view(ActivityFeedConfig)

    @property
    def logging(self) -> LoggingConfig:
        return self._view(LoggingConfig)


settings = Settings()
