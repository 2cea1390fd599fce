"""Google Drive v3 REST client bearing the session's OAuth token."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any
from urllib import request as urllib_request
from urllib.error import HTTPError
from urllib.parse import urlencode

if TYPE_CHECKING:
    from accountable_drive.auth.token import TokenManager

logger = logging.getLogger(__name__)

DRIVE_API = "https://www.googleapis.com/drive/v3"
UPLOAD_API = "https://www.googleapis.com/upload/drive/v3"


class DriveError(Exception):
    """Base class for failures reported by the Drive API."""


class SessionExpiredError(DriveError):
    """Raised when Drive rejects the access token (HTTP 401) or none is held."""


class DriveApiError(DriveError):
    """Raised when Drive returns a structured error payload."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"Drive API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class DriveTransferError(DriveError):
    """Raised when a content download or upload gets a non-success status."""

    def __init__(self, status_code: int, message: str = "") -> None:
        detail = f": {message}" if message else ""
        super().__init__(f"Transfer failed: {status_code}{detail}")
        self.status_code = status_code
        self.message = message


def _error_detail(raw: bytes, fallback: str) -> str:
    try:
        error = json.loads(raw).get("error", {})
    except Exception:
        return fallback
    if isinstance(error, dict):
        return str(error.get("message") or fallback)
    return str(error or fallback)


class DriveClient:
    """Authenticated transport for the Drive v3 REST API.

    Every request reads the token from the shared TokenManager at send
    time. A 401 invalidates that token for every other caller.
    """

    def __init__(self, token_manager: TokenManager) -> None:
        """Initialise the client.

        Args:
            token_manager: Session token owner consulted before each request.
        """
        self._tokens = token_manager

    def _build_request(
        self,
        method: str,
        url: str,
        params: dict[str, str] | None,
        data: bytes | None,
        content_type: str | None,
    ) -> urllib_request.Request:
        token = self._tokens.access_token
        if not token:
            raise SessionExpiredError("No Drive access token; please connect to Google Drive.")
        if params:
            url = f"{url}?{urlencode(params)}"
        headers = {"Authorization": f"Bearer {token}"}
        if content_type:
            headers["Content-Type"] = content_type
        return urllib_request.Request(url, data=data, headers=headers, method=method)

    @staticmethod
    def _open(req: urllib_request.Request) -> tuple[int, bytes]:
        with urllib_request.urlopen(req) as resp:
            return resp.status, resp.read()

    async def _send(
        self, req: urllib_request.Request, failure: type[DriveError]
    ) -> tuple[int, bytes]:
        try:
            return await asyncio.to_thread(self._open, req)
        except HTTPError as exc:
            if exc.code == 401:
                self._tokens.invalidate()
                raise SessionExpiredError("Drive session expired; please reconnect.") from exc
            detail = _error_detail(exc.read(), str(exc.reason))
            logger.error(
                "[_send] Drive request failed; method:%s;status:%d;detail:%s",
                req.get_method(),
                exc.code,
                detail,
            )
            raise failure(exc.code, detail) from exc  # type: ignore[call-arg]

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
        data: bytes | None = None,
        content_type: str | None = None,
        transfer: bool = False,
    ) -> dict[str, Any]:
        """Send an authenticated request and decode the JSON response.

        Args:
            method: HTTP method.
            url: Absolute Drive endpoint URL.
            params: Query string parameters.
            body: JSON body; takes precedence over ``data``.
            data: Raw request body.
            content_type: Content-Type of ``data``.
            transfer: Report non-2xx statuses as DriveTransferError instead
                of DriveApiError (content uploads).

        Returns:
            Parsed JSON response body (empty dict for an empty body).

        Raises:
            SessionExpiredError: If no token is held or Drive answers 401.
            DriveApiError: On a non-2xx status, or an error object in the body.
            DriveTransferError: On a non-2xx status when ``transfer`` is set.
        """
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            content_type = "application/json"
        req = self._build_request(method, url, params, data, content_type)
        status, raw = await self._send(req, DriveTransferError if transfer else DriveApiError)
        if not raw:
            return {}
        payload: dict[str, Any] = json.loads(raw)
        if "error" in payload:
            detail = _error_detail(raw, "Unknown Drive error")
            raise DriveApiError(status, detail)
        return payload

    async def request_media(self, url: str, *, params: dict[str, str] | None = None) -> bytes:
        """Download raw bytes with an authenticated GET.

        Raises:
            SessionExpiredError: If no token is held or Drive answers 401.
            DriveTransferError: On any other non-2xx status.
        """
        req = self._build_request("GET", url, params, None, None)
        _, raw = await self._send(req, DriveTransferError)
        return raw
