"""Configuration models for the request client."""

from pathlib import Path
from typing import Annotated

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.features.client.constants import (
    COMPONENT_CLIENT,
    DEFAULT_REFRESH_PATH,
    DEFAULT_USER_AGENT,
)
from src.features.client.models import CredentialMode, RetryPolicy


logger = structlog.get_logger()

_VALID_URL_SCHEMES = ("http://", "https://")
_FORBIDDEN_HEADERS = frozenset({"authorization", "cookie", "x-api-key"})


class ClientConfigError(Exception):
    """Raised when a client configuration file is invalid."""

    def __init__(self, errors: list[dict[str, str]], file_path: str) -> None:
        """Initialize the error.

        Args:
            errors: List of validation error details.
            file_path: Path to the file that failed validation.
        """
        self.errors = errors
        self.file_path = file_path
        super().__init__(f"Validation failed for {file_path}: {len(errors)} errors")


class ClientConfig(BaseModel):
    """Configuration for one request client.

    The credential mode is fixed for the lifetime of the client.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_url: Annotated[str, Field(min_length=1, description="API base URL")]
    credential_mode: CredentialMode = CredentialMode.HEADER
    refresh_path: Annotated[str, Field(min_length=1)] = DEFAULT_REFRESH_PATH
    timeout_seconds: Annotated[float, Field(ge=1.0, le=300.0)] = 30.0
    user_agent: Annotated[str, Field(min_length=1, max_length=500)] = (
        DEFAULT_USER_AGENT
    )
    default_headers: dict[str, str] = Field(
        default_factory=dict, description="Headers added to every request"
    )
    session_cookie_name: str | None = Field(
        default=None, description="Session cookie name (cookie mode)"
    )
    token_file: Path | None = Field(
        default=None, description="Persistent token file (header mode)"
    )
    cookie_file: Path | None = Field(
        default=None, description="Persistent cookie jar file (cookie mode)"
    )
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensure the base URL is an absolute HTTP(S) URL."""
        if not v.startswith(_VALID_URL_SCHEMES):
            msg = f"base_url must start with http:// or https://, got '{v}'"
            raise ValueError(msg)
        return v.rstrip("/")

    @field_validator("refresh_path")
    @classmethod
    def validate_refresh_path(cls, v: str) -> str:
        """Ensure the refresh path is absolute or rooted."""
        if not v.startswith("/") and not v.startswith(_VALID_URL_SCHEMES):
            msg = f"refresh_path must start with '/', got '{v}'"
            raise ValueError(msg)
        return v

    @field_validator("default_headers")
    @classmethod
    def validate_no_auth_headers(cls, v: dict[str, str]) -> dict[str, str]:
        """Ensure no credential headers are stored in config."""
        for key in v:
            if key.lower() in _FORBIDDEN_HEADERS:
                msg = (
                    f"Header '{key}' must not be stored in config; "
                    "credentials are managed by the credential store"
                )
                raise ValueError(msg)
        return v


def load_client_config(file_path: Path) -> ClientConfig:
    """Load and validate a YAML client configuration file.

    Args:
        file_path: Path to the YAML file.

    Returns:
        Validated client configuration.

    Raises:
        ClientConfigError: If the file is unreadable or invalid.
    """
    log = logger.bind(
        component=COMPONENT_CLIENT,
        subcomponent="config",
        file_path=str(file_path),
    )

    try:
        parsed = yaml.safe_load(file_path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        log.warning("client_config_unreadable", error=str(exc))
        raise ClientConfigError(
            [{"loc": "", "msg": str(exc), "type": type(exc).__name__}],
            str(file_path),
        ) from exc

    if not isinstance(parsed, dict):
        raise ClientConfigError(
            [{"loc": "", "msg": "Top-level value must be a mapping", "type": "type"}],
            str(file_path),
        )

    try:
        config = ClientConfig.model_validate(parsed)
    except ValidationError as exc:
        errors = [
            {
                "loc": ".".join(str(part) for part in error["loc"]),
                "msg": error["msg"],
                "type": error["type"],
            }
            for error in exc.errors()
        ]
        log.warning("client_config_invalid", error_count=len(errors))
        raise ClientConfigError(errors, str(file_path)) from exc

    log.info("client_config_loaded", credential_mode=config.credential_mode.value)
    return config
