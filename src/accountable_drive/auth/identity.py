"""Google identity token client with OAuth consent via google-auth-oauthlib."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import google.auth.transport.requests
import google.oauth2.credentials
import google_auth_oauthlib.flow

logger = logging.getLogger(__name__)

AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"

# Consent modes understood by TokenClient.request_access_token()
PROMPT_CONSENT = "consent"
PROMPT_NONE = "none"

ERROR_INTERACTION_REQUIRED = "interaction_required"
ERROR_ACCESS_DENIED = "access_denied"


class IdentityLoadError(Exception):
    """Raised when no usable OAuth client configuration can be loaded."""


@dataclass
class TokenResponse:
    """Outcome of a token request, as delivered to the success callback.

    A response either carries an access token or a provider error code.
    """

    access_token: str | None = None
    error: str | None = None
    error_description: str = ""


TokenCallback = Callable[[TokenResponse], None]
ErrorCallback = Callable[[BaseException], None]


def inline_client_config(client_id: str, client_secret: str = "") -> dict[str, Any]:
    """Build an installed-app client configuration from a bare client ID."""
    return {
        "installed": {
            "client_id": client_id,
            "client_secret": client_secret,
            "auth_uri": AUTH_URI,
            "token_uri": TOKEN_URI,
            "redirect_uris": ["http://localhost"],
        }
    }


async def load_client_config(
    client_id: str,
    client_secret: str = "",
    client_secret_path: str = "",
    attempts: int = 50,
    interval: float = 0.1,
) -> dict[str, Any]:
    """Load the OAuth client configuration exactly once.

    A static ``client_secret.json`` is preferred. When a path is configured
    the file is polled for up to ``attempts * interval`` seconds (it may be
    provisioned by another process); if it never appears the configuration
    is built inline from the client ID and secret instead.

    Args:
        client_id: Google OAuth client ID used for the inline fallback.
        client_secret: Google OAuth client secret used for the inline fallback.
        client_secret_path: Optional path to a downloaded client secret file.
        attempts: Maximum number of polls for the static file.
        interval: Seconds to wait between polls.

    Returns:
        A client configuration dict accepted by InstalledAppFlow.

    Raises:
        IdentityLoadError: If neither a static file nor a client ID is available.
    """
    if client_secret_path:
        path = Path(client_secret_path).expanduser()
        for attempt in range(attempts):
            if path.exists():
                logger.debug("[load_client_config] static client config found; attempt:%d", attempt)
                return json.loads(path.read_text(encoding="utf-8"))  # type: ignore[no-any-return]
            await asyncio.sleep(interval)
        logger.warning(
            "[load_client_config] client secret file not found; falling back to inline config;"
            " path:%s",
            path,
        )

    if not client_id:
        raise IdentityLoadError("No OAuth client ID configured")
    return inline_client_config(client_id, client_secret)


class TokenClient:
    """Callback-style OAuth token client.

    Mirrors an identity-provider token client: it is configured once with
    a scope, a success callback and an error callback, and each call to
    request_access_token() starts a flow whose outcome is delivered to one
    of the callbacks on the event loop thread.
    """

    def __init__(
        self,
        client_config: dict[str, Any],
        scope: str,
        callback: TokenCallback,
        error_callback: ErrorCallback,
        token_cache_path: str = "",
        consent_timeout: int | None = None,
    ) -> None:
        """Initialise the token client.

        Args:
            client_config: OAuth client configuration (installed-app format).
            scope: OAuth scope to request.
            callback: Receives a TokenResponse for completed flows.
            error_callback: Receives the exception when a flow fails outright.
            token_cache_path: File where granted authorizations are cached.
            consent_timeout: Seconds to wait for the browser redirect.
        """
        self._client_config = client_config
        self._scope = scope
        self._callback = callback
        self._error_callback = error_callback
        self._token_cache_path = Path(token_cache_path).expanduser() if token_cache_path else None
        self._consent_timeout = consent_timeout

    def request_access_token(self, prompt: str = PROMPT_CONSENT) -> None:
        """Start a token flow; the result arrives through a callback.

        Must be called from within a running event loop.

        Args:
            prompt: PROMPT_CONSENT for the interactive browser flow,
                PROMPT_NONE for a non-interactive request.
        """
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, self._acquire, prompt)
        future.add_done_callback(self._deliver)

    def _deliver(self, future: asyncio.Future[TokenResponse]) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            self._error_callback(exc)
        else:
            self._callback(future.result())

    def _acquire(self, prompt: str) -> TokenResponse:
        if prompt == PROMPT_NONE:
            return self._acquire_silent()
        return self._acquire_interactive(prompt)

    def _acquire_silent(self) -> TokenResponse:
        """Reuse a previously granted authorization without user interaction."""
        if self._token_cache_path is None or not self._token_cache_path.exists():
            return TokenResponse(error=ERROR_INTERACTION_REQUIRED)

        creds = google.oauth2.credentials.Credentials.from_authorized_user_file(
            str(self._token_cache_path), [self._scope]
        )
        if not creds.valid:
            if not creds.refresh_token:
                return TokenResponse(error=ERROR_INTERACTION_REQUIRED)
            creds.refresh(google.auth.transport.requests.Request())
            self._save_credentials(creds)
        return TokenResponse(access_token=creds.token)

    def _acquire_interactive(self, prompt: str) -> TokenResponse:
        """Run the browser consent flow on a local redirect server."""
        flow = google_auth_oauthlib.flow.InstalledAppFlow.from_client_config(
            self._client_config, scopes=[self._scope]
        )
        try:
            creds = flow.run_local_server(
                port=0,
                prompt=prompt,
                timeout_seconds=self._consent_timeout,
            )
        except AttributeError:
            # The flow reads a redirect URI that was never set when no redirect arrived.
            logger.warning(
                "[_acquire_interactive] consent timed out; timeout:%s", self._consent_timeout
            )
            return TokenResponse(error=ERROR_ACCESS_DENIED, error_description="Consent timed out")
        if not creds or not creds.token:
            return TokenResponse(
                error=ERROR_ACCESS_DENIED,
                error_description="Consent flow completed without a token",
            )
        self._save_credentials(creds)
        return TokenResponse(access_token=creds.token)

    def _save_credentials(self, creds: google.oauth2.credentials.Credentials) -> None:
        if self._token_cache_path is None:
            return
        self._token_cache_path.parent.mkdir(parents=True, exist_ok=True)
        self._token_cache_path.write_text(creds.to_json(), encoding="utf-8")
        os.chmod(self._token_cache_path, 0o600)
        logger.debug("[_save_credentials] cached authorization; path:%s", self._token_cache_path)
