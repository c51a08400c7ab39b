"""CLI commands for the authenticated request client."""

import asyncio
import json
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import click
import structlog
from pydantic import ValidationError

from src.features.client.config import ClientConfig, ClientConfigError, load_client_config
from src.features.client.credentials import CookieCredentialStore
from src.features.client.errors import ApiClientError
from src.features.client.factory import create_api_client
from src.features.client.models import CredentialMode, RequestSpec
from src.features.client.pipeline import ApiClient
from src.features.observability.logging import bind_client_context, configure_logging
from src.features.session.service import SessionService
from src.settings import get_settings


logger = structlog.get_logger()

T = TypeVar("T")

DEFAULT_TOKEN_FILE = Path.home() / ".dashboard-api-client" / "token.json"  # noqa: S105
DEFAULT_COOKIE_FILE = Path.home() / ".dashboard-api-client" / "cookies.json"


@dataclass(frozen=True)
class CliContext:
    """Resolved options shared by all commands."""

    config: ClientConfig


def resolve_config(
    config_path: Path | None,
    base_url: str | None,
    token_file: Path | None,
    cookie_file: Path | None = None,
) -> ClientConfig:
    """Resolve the client configuration.

    Precedence: command-line options > config file > environment.

    Args:
        config_path: Optional YAML config file.
        base_url: Base URL override.
        token_file: Token file override.
        cookie_file: Cookie file override.

    Returns:
        Validated client configuration.

    Raises:
        ClientConfigError: If the config file is invalid.
        ValidationError: If an override is invalid.
    """
    overrides: dict[str, object] = {
        "base_url": base_url,
        "token_file": token_file,
        "cookie_file": cookie_file,
    }

    if config_path is not None:
        base = load_client_config(config_path).model_dump()
        base.update({key: value for key, value in overrides.items() if value is not None})
        config = ClientConfig.model_validate(base)
    else:
        config = get_settings().to_client_config(**overrides)

    if config.credential_mode == CredentialMode.HEADER and config.token_file is None:
        config = ClientConfig.model_validate(
            {**config.model_dump(), "token_file": DEFAULT_TOKEN_FILE}
        )
    if config.credential_mode == CredentialMode.COOKIE and config.cookie_file is None:
        config = ClientConfig.model_validate(
            {**config.model_dump(), "cookie_file": DEFAULT_COOKIE_FILE}
        )
    return config


def _run(config: ClientConfig, action: Callable[[ApiClient], Awaitable[T]]) -> T:
    """Run an async action against a fresh client.

    Raises:
        click.ClickException: If the request fails.
    """

    async def _main() -> T:
        async with create_api_client(config) as client:
            try:
                return await action(client)
            finally:
                # Keep cookies rotated by the server for the next invocation.
                if isinstance(client.store, CookieCredentialStore):
                    client.store.save()

    try:
        return asyncio.run(_main())
    except ApiClientError as exc:
        logger.debug("cli_request_failed", **exc.to_dict())
        raise click.ClickException(f"{exc.failure_kind.value}: {exc.message}") from exc


def _emit(data: Any) -> None:
    """Print a response body."""
    if data is None:
        return
    if isinstance(data, bytes):
        click.echo(data, nl=False)
    elif isinstance(data, str):
        click.echo(data)
    else:
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _parse_params(values: tuple[str, ...]) -> dict[str, str]:
    """Parse repeated ``key=value`` options."""
    params: dict[str, str] = {}
    for value in values:
        key, sep, param_value = value.partition("=")
        if not sep or not key:
            msg = f"Expected key=value, got '{value}'"
            raise click.BadParameter(msg, param_hint="--param")
        params[key] = param_value
    return params


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to a YAML client configuration file.",
)
@click.option(
    "--base-url",
    default=None,
    help="API base URL (overrides config and API_BASE_URL).",
)
@click.option(
    "--token-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Where the bearer token is persisted (header mode).",
)
@click.option(
    "--cookie-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Where the session cookies are persisted (cookie mode).",
)
@click.option(
    "--json-logs/--no-json-logs",
    default=False,
    help="Use JSON format for logs (default: false).",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging.",
)
@click.pass_context
def cli(  # noqa: PLR0913
    ctx: click.Context,
    config_path: Path | None,
    base_url: str | None,
    token_file: Path | None,
    cookie_file: Path | None,
    json_logs: bool,
    verbose: bool,
) -> None:
    """Authenticated API client CLI."""
    configure_logging(
        level=logging.DEBUG if verbose else logging.WARNING,
        json_format=json_logs,
    )
    bind_client_context(uuid.uuid4().hex[:12])

    try:
        config = resolve_config(config_path, base_url, token_file, cookie_file)
    except ClientConfigError as exc:
        details = "; ".join(f"{err['loc']}: {err['msg']}" for err in exc.errors)
        raise click.ClickException(f"{exc}: {details}") from exc
    except ValidationError as exc:
        raise click.ClickException(f"Invalid client configuration: {exc}") from exc

    ctx.obj = CliContext(config=config)


@cli.command()
@click.argument("username")
@click.password_option(confirmation_prompt=False)
@click.pass_obj
def login(obj: CliContext, username: str, password: str) -> None:
    """Log in and store the session credential."""
    response = _run(obj.config, lambda client: SessionService(client).login(username, password))
    message = f"Logged in as {username}"
    if response.expires_in is not None:
        message += f" (expires in {response.expires_in}s)"
    click.echo(message)


@cli.command()
@click.pass_obj
def logout(obj: CliContext) -> None:
    """Log out and clear the stored credential."""
    _run(obj.config, lambda client: SessionService(client).logout())
    click.echo("Logged out")


@cli.command()
@click.pass_obj
def whoami(obj: CliContext) -> None:
    """Show the authenticated user."""
    _emit(_run(obj.config, lambda client: SessionService(client).current_user()))


@cli.command()
@click.argument(
    "method",
    type=click.Choice(["GET", "POST", "PUT", "PATCH", "DELETE"], case_sensitive=False),
)
@click.argument("path")
@click.option("--data", "data", default=None, help="JSON request body.")
@click.option(
    "--param",
    "params",
    multiple=True,
    help="Query parameter as key=value (repeatable).",
)
@click.option(
    "--no-auth",
    "no_auth",
    is_flag=True,
    help="Send without the session credential.",
)
@click.pass_obj
def request(  # noqa: PLR0913
    obj: CliContext,
    method: str,
    path: str,
    data: str | None,
    params: tuple[str, ...],
    no_auth: bool,
) -> None:
    """Send METHOD PATH through the authenticated pipeline."""
    try:
        body = json.loads(data) if data is not None else None
    except ValueError as exc:
        msg = f"Invalid JSON: {exc}"
        raise click.BadParameter(msg, param_hint="--data") from exc

    spec = RequestSpec(
        method=method.upper(),
        path=path,
        params=_parse_params(params),
        json_body=body,
        authenticated=not no_auth,
    )

    async def _send(client: ApiClient) -> Any:
        outcome = await client.send(spec)
        return outcome.unwrap()

    _emit(_run(obj.config, _send))


def main() -> None:
    """Entry point for the api-client command."""
    cli()


if __name__ == "__main__":
    main()
