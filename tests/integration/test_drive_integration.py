"""Integration tests against a real Google Drive account.

These tests require a real OAuth client and a cached or interactive grant,
and are skipped in CI/CD unless ACC_CLIENT_ID is set and
ACC_RUN_INTEGRATION=1.
"""

import asyncio
import os
import uuid

import pytest

pytestmark = pytest.mark.skipif(
    not os.getenv("ACC_CLIENT_ID") or os.getenv("ACC_RUN_INTEGRATION") != "1",
    reason="Real Google Drive credentials not available",
)


def test_save_and_reopen_real() -> None:
    """Save a throwaway document, reopen it by name and compare the content."""
    from accountable_drive.auth.token import TokenStatus
    from accountable_drive.config import load_config
    from accountable_drive.document.store import LedgerDocument
    from accountable_drive.orchestration.session import drive_session_from_config

    name = f"integration_{uuid.uuid4().hex[:8]}.json"
    document = LedgerDocument({"categories": {"probe": [1, 2, 3]}})
    session = drive_session_from_config(load_config(), document=document)

    async def scenario() -> bool:
        assert await session.token_manager.initialize() is TokenStatus.READY
        await session.token_manager.request_silent_token()
        assert await session.save_remote(name) is not None
        session.document.data = {"categories": {}}
        return await session.open_by_name(name)

    assert asyncio.run(scenario()) is True
    assert session.document.data["categories"] == {"probe": [1, 2, 3]}
