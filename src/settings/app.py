"""Application settings powered by Pydantic BaseSettings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.features.client.config import ClientConfig
from src.features.client.models import CredentialMode


class ClientSettings(BaseSettings):
    """Centralized environment configuration for the request client."""

    model_config = SettingsConfigDict(
        env_prefix="", case_sensitive=False, env_file=".env", env_file_encoding="utf-8"
    )

    api_base_url: str = Field(
        default="http://localhost:8080/api/v1", validation_alias="API_BASE_URL"
    )
    credential_mode: CredentialMode = Field(
        default=CredentialMode.HEADER, validation_alias="API_CREDENTIAL_MODE"
    )
    token_file: Path | None = Field(default=None, validation_alias="API_TOKEN_FILE")
    cookie_file: Path | None = Field(default=None, validation_alias="API_COOKIE_FILE")
    timeout_seconds: float = Field(default=30.0, validation_alias="API_TIMEOUT_SECONDS")
    session_cookie_name: str | None = Field(
        default=None, validation_alias="API_SESSION_COOKIE"
    )

    def to_client_config(self, **overrides: object) -> ClientConfig:
        """Build a client configuration from the environment.

        Args:
            **overrides: Fields that take precedence over the environment.

        Returns:
            Validated client configuration.
        """
        values: dict[str, object] = {
            "base_url": self.api_base_url,
            "credential_mode": self.credential_mode,
            "token_file": self.token_file,
            "cookie_file": self.cookie_file,
            "timeout_seconds": self.timeout_seconds,
            "session_cookie_name": self.session_cookie_name,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return ClientConfig.model_validate(values)


def get_settings() -> ClientSettings:
    """Get a settings instance."""
    return ClientSettings()
