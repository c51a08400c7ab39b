"""Authenticated request client.

This module provides the request core shared by all API callers:
- Credential stores for bearer tokens and cookie sessions
- Response classification into tagged variants
- Bounded rate-limit retries with Retry-After/exponential backoff
- Single-flight session refresh with one replay per request
- Typed failures for every terminal outcome
"""

from src.features.client.classifier import (
    classify_response,
    classify_transport_error,
    parse_retry_after,
)
from src.features.client.config import ClientConfig, ClientConfigError, load_client_config
from src.features.client.credentials import (
    CookieCredentialStore,
    CredentialStore,
    FileCredentialStore,
    MemoryCredentialStore,
)
from src.features.client.errors import (
    ApiClientError,
    FailureKind,
    NetworkFailureError,
    NotAuthorizedError,
    ParseFailureError,
    RateLimitExhaustedError,
    RefreshError,
    RemoteError,
    SessionExpiredError,
)
from src.features.client.factory import create_api_client, create_credential_store
from src.features.client.metrics import ClientMetrics
from src.features.client.models import (
    ApiFailure,
    ClassifiedResponse,
    Credential,
    CredentialMode,
    ErrorResponse,
    Forbidden,
    Ok,
    OkEmpty,
    RateLimited,
    RequestOutcome,
    RequestSpec,
    ResponseKind,
    RetryDecision,
    RetryPolicy,
    Unauthorized,
)
from src.features.client.pipeline import ApiClient
from src.features.client.refresh import (
    EndpointTokenRefresher,
    RefreshCoordinator,
    TokenRefresher,
)
from src.features.client.state_machine import RefreshState


__all__ = [
    # Client
    "ApiClient",
    "create_api_client",
    "create_credential_store",
    # Config
    "ClientConfig",
    "ClientConfigError",
    "load_client_config",
    # Credentials
    "Credential",
    "CredentialMode",
    "CredentialStore",
    "MemoryCredentialStore",
    "FileCredentialStore",
    "CookieCredentialStore",
    # Classification
    "ClassifiedResponse",
    "ResponseKind",
    "Ok",
    "OkEmpty",
    "RateLimited",
    "Unauthorized",
    "Forbidden",
    "ErrorResponse",
    "classify_response",
    "classify_transport_error",
    "parse_retry_after",
    # Retry
    "RetryPolicy",
    "RetryDecision",
    # Refresh
    "RefreshCoordinator",
    "RefreshState",
    "TokenRefresher",
    "EndpointTokenRefresher",
    # Outcomes and errors
    "RequestSpec",
    "RequestOutcome",
    "ApiFailure",
    "FailureKind",
    "ApiClientError",
    "NetworkFailureError",
    "RateLimitExhaustedError",
    "SessionExpiredError",
    "NotAuthorizedError",
    "ParseFailureError",
    "RemoteError",
    "RefreshError",
    # Metrics
    "ClientMetrics",
]
