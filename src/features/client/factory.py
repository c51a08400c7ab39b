"""Factory for creating request clients with the configured credential mode."""

from typing import Any

import httpx
import structlog

from src.features.client.config import ClientConfig
from src.features.client.constants import COMPONENT_CLIENT
from src.features.client.credentials import (
    CookieCredentialStore,
    CredentialStore,
    FileCredentialStore,
    MemoryCredentialStore,
)
from src.features.client.models import CredentialMode
from src.features.client.pipeline import ApiClient


logger = structlog.get_logger()


def create_credential_store(
    config: ClientConfig,
    http_client: httpx.AsyncClient,
) -> CredentialStore:
    """Create the credential store matching the configured mode.

    Args:
        config: Client configuration.
        http_client: Transport whose cookie jar backs cookie mode.

    Returns:
        Cookie store in cookie mode; file store when a token file is
        configured; in-memory store otherwise.
    """
    if config.credential_mode == CredentialMode.COOKIE:
        return CookieCredentialStore(
            http_client.cookies,
            session_cookie_name=config.session_cookie_name,
            path=config.cookie_file,
        )
    if config.token_file is not None:
        return FileCredentialStore(config.token_file)
    return MemoryCredentialStore()


def create_api_client(
    config: ClientConfig,
    *,
    http_client: httpx.AsyncClient | None = None,
    store: CredentialStore | None = None,
    **kwargs: Any,
) -> ApiClient:
    """Create a request client.

    Args:
        config: Client configuration.
        http_client: Transport to use. Created from the config if omitted;
            the client then owns and closes it.
        store: Credential store. Derived from the config if omitted.
        **kwargs: Forwarded to ``ApiClient`` (sleep, handlers, metrics).

    Returns:
        A ready-to-use ApiClient.
    """
    owns_transport = http_client is None
    transport = http_client or httpx.AsyncClient(
        base_url=config.base_url,
        timeout=config.timeout_seconds,
        follow_redirects=True,
    )
    credential_store = store or create_credential_store(config, transport)

    client = ApiClient(
        config,
        credential_store,
        http_client=transport,
        close_transport=owns_transport,
        **kwargs,
    )

    logger.bind(component=COMPONENT_CLIENT, subcomponent="factory").info(
        "api_client_created",
        credential_mode=config.credential_mode.value,
        store=type(credential_store).__name__,
    )
    return client
