"""OAuth access token state machine gating every authenticated Drive call."""

from __future__ import annotations

import asyncio
import enum
import functools
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from accountable_drive.auth.identity import (
    PROMPT_CONSENT,
    PROMPT_NONE,
    ErrorCallback,
    IdentityLoadError,
    TokenCallback,
    TokenClient,
    TokenResponse,
    load_client_config,
)
from accountable_drive.hooks import AppHooks, Severity

if TYPE_CHECKING:
    from accountable_drive.config import AppConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

ClientLoader = Callable[[], Awaitable[dict[str, Any]]]
ClientFactory = Callable[[dict[str, Any], TokenCallback, ErrorCallback], TokenClient]

NOT_READY_MESSAGE = "Google Drive not ready yet; please wait a moment and try again."


class AuthError(Exception):
    """Raised when the identity provider declines or errors the consent flow."""


class InvalidTransitionError(ValueError):
    """Raised when a token state change is not allowed by the state machine."""


class TokenStatus(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"
    FAILED = "failed"


_TRANSITIONS: dict[TokenStatus, frozenset[TokenStatus]] = {
    TokenStatus.UNINITIALIZED: frozenset({TokenStatus.INITIALIZING}),
    TokenStatus.INITIALIZING: frozenset({TokenStatus.READY, TokenStatus.FAILED}),
    TokenStatus.READY: frozenset({TokenStatus.AUTHENTICATED, TokenStatus.FAILED}),
    TokenStatus.AUTHENTICATED: frozenset({TokenStatus.EXPIRED}),
    TokenStatus.EXPIRED: frozenset({TokenStatus.AUTHENTICATED, TokenStatus.FAILED}),
    TokenStatus.FAILED: frozenset({TokenStatus.AUTHENTICATED, TokenStatus.FAILED}),
}

# States from which a protected call may prompt for consent.
_CONSENTABLE = frozenset({TokenStatus.READY, TokenStatus.EXPIRED, TokenStatus.FAILED})


@dataclass(frozen=True)
class TokenState:
    """Session-wide token value and its status."""

    value: str | None = None
    status: TokenStatus = TokenStatus.UNINITIALIZED


def transition(state: TokenState, status: TokenStatus, value: str | None = None) -> TokenState:
    """Return the state reached by moving ``state`` to ``status``.

    Only AUTHENTICATED carries a token value; every other status clears it.

    Args:
        state: Current token state.
        status: Target status.
        value: Access token, required when the target is AUTHENTICATED.

    Returns:
        The new TokenState.

    Raises:
        InvalidTransitionError: If the move is not part of the state machine
            or an AUTHENTICATED state would carry no token.
    """
    if status not in _TRANSITIONS[state.status]:
        raise InvalidTransitionError(
            f"Cannot move token from {state.status.value} to {status.value}"
        )
    if status is TokenStatus.AUTHENTICATED:
        if not value:
            raise InvalidTransitionError("An authenticated token state requires a token value")
        return TokenState(value=value, status=status)
    return TokenState(value=None, status=status)


class TokenManager:
    """Owns the OAuth access token and serialises consent requests.

    Protected calls that arrive while consent is outstanding are queued in
    arrival order and all served by the same consent prompt.
    """

    def __init__(
        self,
        loader: ClientLoader,
        client_factory: ClientFactory,
        hooks: AppHooks | None = None,
    ) -> None:
        """Initialise the token manager.

        Args:
            loader: Coroutine function returning the OAuth client configuration.
            client_factory: Builds a TokenClient from (config, callback, error_callback).
            hooks: Host-application hooks for status and notifications.
        """
        self._loader = loader
        self._client_factory = client_factory
        self._hooks = hooks or AppHooks()
        self._state = TokenState()
        self._client_config: dict[str, Any] | None = None
        self._client: TokenClient | None = None
        self._pending: list[asyncio.Future[str]] = []
        self._consent_in_flight = False

    @property
    def state(self) -> TokenState:
        return self._state

    @property
    def status(self) -> TokenStatus:
        return self._state.status

    @property
    def access_token(self) -> str | None:
        """Current token, or None unless the session is authenticated."""
        return self._state.value

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def _move(self, status: TokenStatus, value: str | None = None) -> None:
        previous = self._state.status
        self._state = transition(self._state, status, value)
        logger.debug("[_move] token state changed; from:%s;to:%s", previous.value, status.value)

    async def initialize(self) -> TokenStatus:
        """Load the identity client configuration and build the token client.

        Returns:
            READY on success, FAILED otherwise.
        """
        self._move(TokenStatus.INITIALIZING)
        try:
            self._client_config = await self._loader()
            self._client = self._client_factory(
                self._client_config, self._on_token_response, self._on_token_error
            )
        except IdentityLoadError:
            logger.warning("[initialize] no OAuth client ID configured")
            self._move(TokenStatus.FAILED)
            self._hooks.set_status(False, "No Client ID")
            return self._state.status
        except Exception:
            logger.error("[initialize] token client construction failed", exc_info=True)
            self._move(TokenStatus.FAILED)
            self._hooks.set_status(False, "Init failed")
            return self._state.status

        self._move(TokenStatus.READY)
        self._hooks.set_status(False, "Drive")
        logger.info("[initialize] token client ready")
        return self._state.status

    async def ensure_token(self) -> str:
        """Return a usable access token, prompting for consent if needed.

        Raises:
            AuthError: If the manager is not ready or consent fails.
        """
        if self._state.status is TokenStatus.AUTHENTICATED and self._state.value:
            return self._state.value
        if self._state.status not in _CONSENTABLE or self._client is None:
            self._hooks.notify(NOT_READY_MESSAGE, Severity.ERROR)
            raise AuthError(NOT_READY_MESSAGE)

        waiter: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        self._pending.append(waiter)
        if not self._consent_in_flight:
            self._consent_in_flight = True
            logger.info(
                "[ensure_token] requesting interactive consent; queued:%d", len(self._pending)
            )
            try:
                self._client.request_access_token(prompt=PROMPT_CONSENT)
            except Exception as exc:
                # Reject the queue now; no callback will ever arrive for it.
                self._on_token_error(exc)
        else:
            logger.info("[ensure_token] consent already in flight; queued:%d", len(self._pending))
        return await waiter

    async def request_token(self, action: Callable[[], T | Awaitable[T]]) -> T:
        """Run ``action`` once an access token is available.

        When already authenticated the action runs immediately with no
        network trip. Otherwise it waits in the pending queue for consent.

        Args:
            action: Zero-argument callable or coroutine function.

        Returns:
            Whatever the action returns.

        Raises:
            AuthError: If consent is declined or errors; the action never runs.
        """
        await self.ensure_token()
        result = action()
        if inspect.isawaitable(result):
            return await result  # type: ignore[no-any-return]
        return result  # type: ignore[return-value]

    async def request_silent_token(self) -> bool:
        """Try to obtain a token without any user interaction.

        Failures are expected (the user may never have consented) and are
        swallowed without changing state or notifying the user.

        Returns:
            True if the session is now authenticated.
        """
        if self._state.status is TokenStatus.AUTHENTICATED:
            return True
        if self._state.status not in _CONSENTABLE or self._client_config is None:
            return False

        loop = asyncio.get_running_loop()
        outcome: asyncio.Future[TokenResponse] = loop.create_future()

        def on_response(resp: TokenResponse) -> None:
            if not outcome.done():
                outcome.set_result(resp)

        def on_error(exc: BaseException) -> None:
            if not outcome.done():
                outcome.set_result(
                    TokenResponse(error=type(exc).__name__, error_description=str(exc))
                )

        try:
            client = self._client_factory(self._client_config, on_response, on_error)
            client.request_access_token(prompt=PROMPT_NONE)
        except Exception:
            logger.debug("[request_silent_token] silent client failed to start", exc_info=True)
            return False

        resp = await outcome
        if resp.error or not resp.access_token:
            logger.debug("[request_silent_token] silent token unavailable; error:%s", resp.error)
            return False
        if self._state.status is TokenStatus.AUTHENTICATED:
            return True

        self._authenticate(resp.access_token)
        return True

    def invalidate(self) -> None:
        """Drop the token after a 401 so the next call re-prompts for consent."""
        if self._state.status is not TokenStatus.AUTHENTICATED:
            return
        self._move(TokenStatus.EXPIRED)
        self._hooks.set_status(False, "Session expired")
        logger.warning("[invalidate] access token rejected; session expired")

    def _authenticate(self, token: str) -> None:
        self._move(TokenStatus.AUTHENTICATED, token)
        self._hooks.set_status(True, "Connected")
        waiters, self._pending = self._pending, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(token)
        logger.info("[_authenticate] token acquired; released:%d", len(waiters))

    def _fail(self, message: str, status_text: str) -> None:
        self._move(TokenStatus.FAILED)
        self._hooks.set_status(False, status_text)
        self._hooks.notify(message, Severity.ERROR)
        waiters, self._pending = self._pending, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_exception(AuthError(message))
        logger.error("[_fail] consent failed; dropped:%d;detail:%s", len(waiters), message)

    def _on_token_response(self, resp: TokenResponse) -> None:
        self._consent_in_flight = False
        if self._state.status is TokenStatus.AUTHENTICATED:
            # A silent request landed first and already released the queue.
            logger.debug("[_on_token_response] already authenticated; ignoring consent outcome")
            return
        if resp.error or not resp.access_token:
            detail = resp.error or "no access token returned"
            if resp.error_description:
                detail = f"{detail} ({resp.error_description})"
            self._fail(f"Google Drive: {detail}", "Auth failed")
            return
        self._authenticate(resp.access_token)

    def _on_token_error(self, exc: BaseException) -> None:
        self._consent_in_flight = False
        if self._state.status is TokenStatus.AUTHENTICATED:
            logger.debug("[_on_token_error] already authenticated; ignoring consent error")
            return
        self._fail(f"Google Drive auth error: {str(exc) or type(exc).__name__}", "Auth error")


def token_manager_from_config(config: AppConfig, hooks: AppHooks | None = None) -> TokenManager:
    """Construct a TokenManager from application configuration.

    Args:
        config: Application configuration instance.
        hooks: Host-application hooks.

    Returns:
        Configured TokenManager instance.
    """
    loader = functools.partial(
        load_client_config,
        client_id=config.client_id,
        client_secret=config.client_secret,
        client_secret_path=config.client_secret_path,
        attempts=config.identity_load_attempts,
        interval=config.identity_poll_interval,
    )

    def client_factory(
        client_config: dict[str, Any], callback: TokenCallback, error_callback: ErrorCallback
    ) -> TokenClient:
        return TokenClient(
            client_config,
            scope=config.drive_scope,
            callback=callback,
            error_callback=error_callback,
            token_cache_path=config.token_cache_path,
            consent_timeout=config.consent_timeout_seconds,
        )

    return TokenManager(loader=loader, client_factory=client_factory, hooks=hooks)
