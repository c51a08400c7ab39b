"""Session lifecycle calls built on the request client."""

from typing import Any

import structlog

from src.features.client.errors import ParseFailureError
from src.features.client.models import Credential, CredentialMode, RequestSpec
from src.features.client.pipeline import ApiClient
from src.features.client.refresh import extract_token
from src.features.session.models import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    PasswordResetRequest,
    RegistrationRequest,
)


logger = structlog.get_logger()

LOGIN_PATH = "/auth/login"
LOGOUT_PATH = "/auth/logout"
REGISTER_PATH = "/auth/register"
CURRENT_USER_PATH = "/auth/me"
CHANGE_PASSWORD_PATH = "/auth/change-password"  # noqa: S105
RESET_PASSWORD_PATH = "/auth/reset-password"  # noqa: S105


class SessionService:
    """Creates and destroys the client's credential.

    Login and registration are unauthenticated calls: a 401 there means
    bad credentials and never triggers a session refresh.
    """

    def __init__(self, client: ApiClient) -> None:
        """Initialize the service.

        Args:
            client: Request client whose credential store is managed.
        """
        self._client = client
        self._log = logger.bind(component="session")

    @property
    def is_authenticated(self) -> bool:
        """Whether the client currently holds a credential."""
        return self._client.store.get() is not None

    async def login(self, username: str, password: str) -> LoginResponse:
        """Log in and store the resulting credential.

        Args:
            username: Account name.
            password: Account password.

        Returns:
            The login response.

        Raises:
            ApiClientError: If the login call fails.
            ParseFailureError: If a header-mode login returns no token.
        """
        request = LoginRequest(username=username, password=password)
        response = await self._start_session(LOGIN_PATH, request.model_dump())
        self._log.info("login_succeeded", username=username)
        return response

    async def register(self, username: str, password: str, email: str) -> LoginResponse:
        """Register a new account and store the resulting credential.

        Raises:
            ApiClientError: If the registration call fails.
            ParseFailureError: If a header-mode response carries no token.
        """
        request = RegistrationRequest(username=username, password=password, email=email)
        response = await self._start_session(REGISTER_PATH, request.model_dump())
        self._log.info("registration_succeeded", username=username)
        return response

    async def logout(self) -> None:
        """Log out and clear the credential.

        The credential is cleared even if the logout call fails.

        Raises:
            ApiClientError: If the logout call fails.
        """
        try:
            await self._client.post(LOGOUT_PATH)
        finally:
            self._client.store.clear()
            self._log.info("logged_out")

    async def current_user(self) -> Any:
        """Fetch the authenticated user's profile."""
        return await self._client.get(CURRENT_USER_PATH)

    async def change_password(self, old_password: str, new_password: str) -> str | None:
        """Change the authenticated user's password.

        Returns:
            The server's confirmation message, if any.
        """
        request = ChangePasswordRequest(
            old_password=old_password, new_password=new_password
        )
        data = await self._client.post(
            CHANGE_PASSWORD_PATH, json_body=request.model_dump(by_alias=True)
        )
        return _message_of(data)

    async def reset_password(self, email: str, new_password: str) -> str | None:
        """Reset a password by email; does not require a session.

        Returns:
            The server's confirmation message, if any.
        """
        request = PasswordResetRequest(email=email, new_password=new_password)
        data = await self._client.post(
            RESET_PASSWORD_PATH,
            json_body=request.model_dump(by_alias=True),
            authenticated=False,
        )
        return _message_of(data)

    async def _start_session(self, path: str, payload: dict[str, str]) -> LoginResponse:
        """Post credentials and store the credential from the response."""
        outcome = await self._client.send(
            RequestSpec(method="POST", path=path, json_body=payload, authenticated=False)
        )
        data = outcome.unwrap()
        response = LoginResponse.model_validate(data if isinstance(data, dict) else {})

        store = self._client.store
        if store.mode == CredentialMode.COOKIE:
            store.set(Credential.cookie())
            return response

        token = extract_token(data)
        if token is None:
            msg = "No token returned by the server"
            raise ParseFailureError(msg, status_code=outcome.status_code)
        store.set(Credential.bearer(token))
        return response.model_copy(update={"token": token})


def _message_of(data: object) -> str | None:
    if isinstance(data, dict):
        message = data.get("message")
        if isinstance(message, str):
            return message
    return None
