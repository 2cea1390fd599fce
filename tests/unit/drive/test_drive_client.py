"""Unit tests for drive/client.py — authenticated Drive REST transport."""

import asyncio
import json
from io import BytesIO
from unittest.mock import MagicMock, patch
from urllib.error import HTTPError

import pytest

from accountable_drive.drive.client import (
    DRIVE_API,
    DriveApiError,
    DriveClient,
    DriveTransferError,
    SessionExpiredError,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_client(token: str | None = "fake-token-abc") -> tuple[DriveClient, MagicMock]:
    """Return (client, mock_token_manager)."""
    tokens = MagicMock()
    tokens.access_token = token
    return DriveClient(tokens), tokens


def _mock_response(body: bytes, status: int = 200) -> MagicMock:
    mock_response = MagicMock()
    mock_response.status = status
    mock_response.read.return_value = body
    mock_response.__enter__ = lambda s: s
    mock_response.__exit__ = MagicMock(return_value=False)
    return mock_response


def _http_error(code: int, body: bytes = b"{}", msg: str = "Error") -> HTTPError:
    return HTTPError(
        url=f"{DRIVE_API}/files",
        code=code,
        msg=msg,
        hdrs=MagicMock(),  # type: ignore[arg-type]
        fp=BytesIO(body),
    )


# ---------------------------------------------------------------------------
# request_json() tests
# ---------------------------------------------------------------------------


class TestRequestJson:
    def test_constructs_url_with_params_and_bearer_header(self) -> None:
        client, _ = _make_client()
        response_data = {"files": [{"id": "f1"}]}

        with patch("accountable_drive.drive.client.urllib_request.urlopen") as mock_urlopen:
            mock_urlopen.return_value = _mock_response(json.dumps(response_data).encode())
            result = asyncio.run(
                client.request_json("GET", f"{DRIVE_API}/files", params={"q": "trashed=false"})
            )

        assert result == response_data
        req = mock_urlopen.call_args[0][0]
        assert req.full_url == f"{DRIVE_API}/files?q=trashed%3Dfalse"
        assert req.get_method() == "GET"
        assert req.get_header("Authorization") == "Bearer fake-token-abc"

    def test_json_body_is_encoded_with_content_type(self) -> None:
        client, _ = _make_client()

        with patch("accountable_drive.drive.client.urllib_request.urlopen") as mock_urlopen:
            mock_urlopen.return_value = _mock_response(b'{"id": "new"}')
            asyncio.run(client.request_json("POST", f"{DRIVE_API}/files", body={"name": "x"}))

        req = mock_urlopen.call_args[0][0]
        assert req.get_header("Content-type") == "application/json"
        assert json.loads(req.data) == {"name": "x"}

    def test_empty_body_returns_empty_dict(self) -> None:
        client, _ = _make_client()

        with patch("accountable_drive.drive.client.urllib_request.urlopen") as mock_urlopen:
            mock_urlopen.return_value = _mock_response(b"", status=204)
            result = asyncio.run(client.request_json("PATCH", f"{DRIVE_API}/files/f1"))

        assert result == {}

    def test_error_object_in_successful_response_raises_api_error(self) -> None:
        client, _ = _make_client()
        body = json.dumps({"error": {"code": 403, "message": "Insufficient permissions"}})

        with (
            patch("accountable_drive.drive.client.urllib_request.urlopen") as mock_urlopen,
            pytest.raises(DriveApiError) as exc_info,
        ):
            mock_urlopen.return_value = _mock_response(body.encode())
            asyncio.run(client.request_json("GET", f"{DRIVE_API}/files"))

        assert exc_info.value.message == "Insufficient permissions"

    def test_non_2xx_raises_api_error_with_provider_message(self) -> None:
        client, tokens = _make_client()
        body = json.dumps({"error": {"message": "File not found: bad"}}).encode()

        with (
            patch(
                "accountable_drive.drive.client.urllib_request.urlopen",
                side_effect=_http_error(404, body, "Not Found"),
            ),
            pytest.raises(DriveApiError) as exc_info,
        ):
            asyncio.run(client.request_json("GET", f"{DRIVE_API}/files/bad"))

        assert exc_info.value.status_code == 404
        assert "File not found" in exc_info.value.message
        tokens.invalidate.assert_not_called()

    def test_non_2xx_upload_raises_transfer_error(self) -> None:
        client, _ = _make_client()

        with (
            patch(
                "accountable_drive.drive.client.urllib_request.urlopen",
                side_effect=_http_error(500, b"oops", "Internal Server Error"),
            ),
            pytest.raises(DriveTransferError) as exc_info,
        ):
            asyncio.run(
                client.request_json("POST", f"{DRIVE_API}/files", data=b"x", transfer=True)
            )

        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Internal Server Error"

    def test_401_invalidates_token_and_raises_session_expired(self) -> None:
        client, tokens = _make_client()

        with (
            patch(
                "accountable_drive.drive.client.urllib_request.urlopen",
                side_effect=_http_error(401, msg="Unauthorized"),
            ),
            pytest.raises(SessionExpiredError),
        ):
            asyncio.run(client.request_json("GET", f"{DRIVE_API}/files"))

        tokens.invalidate.assert_called_once_with()

    def test_missing_token_raises_without_network(self) -> None:
        client, _ = _make_client(token=None)

        with (
            patch("accountable_drive.drive.client.urllib_request.urlopen") as mock_urlopen,
            pytest.raises(SessionExpiredError),
        ):
            asyncio.run(client.request_json("GET", f"{DRIVE_API}/files"))

        mock_urlopen.assert_not_called()

    def test_token_is_read_at_send_time(self) -> None:
        client, tokens = _make_client(token="first")
        tokens.access_token = "second"

        with patch("accountable_drive.drive.client.urllib_request.urlopen") as mock_urlopen:
            mock_urlopen.return_value = _mock_response(b"{}")
            asyncio.run(client.request_json("GET", f"{DRIVE_API}/files"))

        assert mock_urlopen.call_args[0][0].get_header("Authorization") == "Bearer second"


# ---------------------------------------------------------------------------
# request_media() tests
# ---------------------------------------------------------------------------


class TestRequestMedia:
    def test_returns_raw_bytes(self) -> None:
        client, _ = _make_client()
        binary_data = bytes(range(256))

        with patch("accountable_drive.drive.client.urllib_request.urlopen") as mock_urlopen:
            mock_urlopen.return_value = _mock_response(binary_data)
            result = asyncio.run(
                client.request_media(f"{DRIVE_API}/files/f1", params={"alt": "media"})
            )

        assert result == binary_data
        req = mock_urlopen.call_args[0][0]
        assert req.full_url == f"{DRIVE_API}/files/f1?alt=media"
        assert req.get_header("Authorization") == "Bearer fake-token-abc"

    def test_non_2xx_raises_transfer_error_with_status(self) -> None:
        client, _ = _make_client()

        with (
            patch(
                "accountable_drive.drive.client.urllib_request.urlopen",
                side_effect=_http_error(403, b"", "Forbidden"),
            ),
            pytest.raises(DriveTransferError) as exc_info,
        ):
            asyncio.run(client.request_media(f"{DRIVE_API}/files/f1"))

        assert exc_info.value.status_code == 403
        assert "403" in str(exc_info.value)

    def test_401_invalidates_token(self) -> None:
        client, tokens = _make_client()

        with (
            patch(
                "accountable_drive.drive.client.urllib_request.urlopen",
                side_effect=_http_error(401),
            ),
            pytest.raises(SessionExpiredError),
        ):
            asyncio.run(client.request_media(f"{DRIVE_API}/files/f1"))

        tokens.invalidate.assert_called_once_with()


# ---------------------------------------------------------------------------
# Error type tests
# ---------------------------------------------------------------------------


class TestDriveErrors:
    def test_api_error_stores_status_and_message(self) -> None:
        err = DriveApiError(403, "Access denied")
        assert err.status_code == 403
        assert err.message == "Access denied"
        assert "403" in str(err)

    def test_transfer_error_without_message(self) -> None:
        err = DriveTransferError(404)
        assert str(err) == "Transfer failed: 404"
