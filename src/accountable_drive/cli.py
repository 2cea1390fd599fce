"""Accountable Drive command line.

Entry point: accountable_drive.cli:main
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click

from accountable_drive import __version__
from accountable_drive.auth.token import TokenStatus
from accountable_drive.config import load_config
from accountable_drive.document.store import DocumentParseError, LedgerDocument
from accountable_drive.drive.models import FileMetadata
from accountable_drive.hooks import AppHooks, Severity
from accountable_drive.orchestration.session import DriveSession, drive_session_from_config

logger = logging.getLogger(__name__)


def _notify(message: str, severity: Severity = Severity.INFO) -> None:
    if severity is Severity.ERROR:
        click.secho(message, fg="red", err=True)
    else:
        click.secho(message, fg="green")


def _set_status(connected: bool, text: str) -> None:
    logger.info("[status] %s", text)


def console_hooks() -> AppHooks:
    """Hooks that print notifications to the terminal."""
    return AppHooks(notify=_notify, set_status=_set_status)


def _build_session(document: LedgerDocument | None = None) -> DriveSession:
    try:
        config = load_config()
    except KeyError as exc:
        raise click.ClickException(f"Missing required environment variable {exc}") from exc
    return drive_session_from_config(config, document=document, hooks=console_hooks())


async def _connect(session: DriveSession) -> bool:
    """Initialise auth and reuse a cached grant so consent is only prompted when needed."""
    tokens = session.token_manager
    if await tokens.initialize() is not TokenStatus.READY:
        return False
    await tokens.request_silent_token()
    return True


@click.group()
@click.version_option(version=__version__, prog_name="accountable")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
def main(verbose: bool) -> None:
    """Accountable: keep the ledger document in Google Drive."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@main.command("files")
def list_files() -> None:
    """List ledger documents in the Drive folder, newest first."""
    session = _build_session()

    async def run() -> list[FileMetadata] | None:
        if not await _connect(session):
            return None
        return await session.list_remote()

    files = asyncio.run(run())
    if files is None:
        sys.exit(1)
    if not files:
        click.echo("No .json files found in the Drive folder.")
        return
    for entry in files:
        size = f"{entry.size_kb} KB" if entry.size_kb is not None else ""
        click.echo(f"{entry.name:<40} {entry.modified_time:<26} {size}")


@main.command("pull")
@click.argument("name")
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Local file to write (defaults to NAME).")
def pull(name: str, output: Path | None) -> None:
    """Open the Drive document NAME and write it locally."""
    session = _build_session()

    async def run() -> bool:
        if not await _connect(session):
            return False
        return await session.open_by_name(name)

    if not asyncio.run(run()):
        sys.exit(1)
    session.document.write_to(output or Path(name))


@main.command("push")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--name", default=None, help="Document name in Drive (defaults to the ledger's own).")
@click.option("--rename-existing", is_flag=True,
              help="Keep an existing same-named file as <name>_<date>.json.")
def push(path: Path, name: str | None, rename_existing: bool) -> None:
    """Save the local ledger file PATH to Drive."""
    try:
        document = LedgerDocument.from_path(path)
    except DocumentParseError as exc:
        raise click.ClickException(f"Error parsing file: {exc}") from exc
    session = _build_session(document)

    async def run() -> bool:
        if not await _connect(session):
            return False
        return await session.save_remote(name, rename_existing=rename_existing) is not None

    if not asyncio.run(run()):
        sys.exit(1)


@main.command("autoload")
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Local file to write the loaded document to.")
def autoload(output: Path | None) -> None:
    """Silently load the default document if access was granted before."""
    session = _build_session()
    loaded = asyncio.run(session.startup())
    if not loaded:
        click.echo("Nothing auto-loaded.")
        return
    session.document.write_to(output or Path(session.document.file_name or "data.json"))
