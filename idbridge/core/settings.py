"""Application settings loaded from environment variables."""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from idbridge.federation.errors import ConfigurationInvalid

AUDIENCE_PLACEHOLDER = "CORBADO_CLIENT_ID"
CUSTOM_TOKEN_MAX_TTL = 3600
DB_POOL_SIZE_DEFAULT = 5
DB_MAX_OVERFLOW_DEFAULT = 10
DB_PORT_DEFAULT = 5432


class DatabaseSettings(BaseSettings):
    """PostgreSQL connection settings."""

    model_config = SettingsConfigDict(env_prefix="IDBRIDGE_DB_")

    url: str = ""
    host: str = "localhost"
    port: int = DB_PORT_DEFAULT
    user: str = "idbridge"
    password: str = "idbridge"
    database: str = "idbridge"
    pool_size: int = DB_POOL_SIZE_DEFAULT
    max_overflow: int = DB_MAX_OVERFLOW_DEFAULT

    @property
    def async_url(self) -> str:
        """Build async connection URL, preferring an explicit override."""
        if self.url:
            return self.url
        return (
            f"postgresql+asyncpg://{self.user}:{self.password}"
            f"@{self.host}:{self.port}/{self.database}"
        )


class FederationSettings(BaseSettings):
    """Upstream identity provider and verification settings."""

    model_config = SettingsConfigDict(env_prefix="FEDERATION_", populate_by_name=True)

    provider_name: str = "corbado"
    issuer_url: str = "https://corbado.stopfires.org"
    audience: str = Field(
        default=AUDIENCE_PLACEHOLDER,
        validation_alias=AliasChoices("FEDERATION_AUDIENCE", "CORBADO_PROJECT_ID"),
    )
    jwks_uri: str = "https://corbado.stopfires.org/.well-known/jwks"
    jwks_timeout_s: float = 5.0
    jwks_max_age_s: int = 600
    jwks_min_refresh_interval_s: int = 30
    clock_skew_s: int = 0
    directory_timeout_s: float = 10.0

    @property
    def audience_configured(self) -> bool:
        """False while the audience is empty or still the placeholder."""
        return bool(self.audience) and self.audience != AUDIENCE_PLACEHOLDER

    def require_audience(self) -> str:
        """Return the configured audience or fail closed."""
        if not self.audience_configured:
            raise ConfigurationInvalid(
                "Set CORBADO_PROJECT_ID (or FEDERATION_AUDIENCE)"
            )
        return self.audience


class DirectorySettings(BaseSettings):
    """Identity directory and session-token signing settings."""

    model_config = SettingsConfigDict(env_prefix="DIRECTORY_")

    signing_key_encryption_key: str = ""
    service_account: str = "idbridge@localhost"
    token_audience: str = (
        "https://identitytoolkit.googleapis.com/"
        "google.identity.identitytoolkit.v1.IdentityToolkit"
    )
    custom_token_ttl: int = CUSTOM_TOKEN_MAX_TTL


class MirrorSettings(BaseSettings):
    """Location document mirroring settings."""

    model_config = SettingsConfigDict(env_prefix="MIRROR_")

    private_collection: str = "locations"
    public_collection: str = "public_locations"
    retention_days: int = 30


class LoggingSettings(BaseSettings):
    """Structured logging settings."""

    model_config = SettingsConfigDict(env_prefix="IDBRIDGE_LOG_")

    level: str = "INFO"
    format: str = "json"
    service_name: str = "idbridge"


class AppSettings(BaseSettings):
    """HTTP surface settings."""

    model_config = SettingsConfigDict(env_prefix="IDBRIDGE_")

    cors_origins: str = ""

    def get_cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins."""
        if not self.cors_origins:
            return []
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
