"""Application configuration loaded from environment variables."""

import os
from dataclasses import dataclass

DRIVE_FILE_SCOPE = "https://www.googleapis.com/auth/drive.file"


@dataclass(frozen=True)
class AppConfig:
    """Settings for the Drive core, read once per session.

    Only the OAuth client ID is mandatory; load_config() raises KeyError
    when ACC_CLIENT_ID is unset. Everything else has a default that an
    ACC_* environment variable can override.
    """

    # Required: the OAuth client cannot be built without it
    client_id: str

    # Identity: optional secret material and the grant cache
    client_secret: str = ""
    client_secret_path: str = ""
    token_cache_path: str = "~/.accountable/token.json"
    drive_scope: str = DRIVE_FILE_SCOPE

    # Drive layout and polling bounds, overridable via env
    folder_name: str = "Accountable"
    document_marker: str = ".json"
    default_document: str = "data.json"
    identity_load_attempts: int = 50
    identity_poll_interval: float = 0.1
    consent_timeout_seconds: int = 120


def load_config() -> AppConfig:
    """Construct an AppConfig from environment variables.

    Required environment variables:
        ACC_CLIENT_ID: Google OAuth client ID.

    Optional environment variables (with defaults):
        ACC_CLIENT_SECRET: Google OAuth client secret (default: empty).
        ACC_CLIENT_SECRET_PATH: Path to a downloaded client_secret.json; preferred
            over the inline client ID/secret when present.
        ACC_TOKEN_CACHE_PATH: Where granted authorizations are cached
            (default: ~/.accountable/token.json).
        ACC_DRIVE_SCOPE: OAuth scope (default: drive.file).
        ACC_FOLDER_NAME: Name of the application folder (default: Accountable).
        ACC_DOCUMENT_MARKER: Name fragment identifying ledger documents (default: .json).
        ACC_DEFAULT_DOCUMENT: Document loaded at startup (default: data.json).
        ACC_IDENTITY_LOAD_ATTEMPTS: Polls for the client secret file (default: 50).
        ACC_IDENTITY_POLL_INTERVAL: Seconds between polls (default: 0.1).
        ACC_CONSENT_TIMEOUT_SECONDS: Interactive consent timeout (default: 120).

    Returns:
        Configured AppConfig instance.
    """
    return AppConfig(
        client_id=os.environ["ACC_CLIENT_ID"],
        client_secret=os.environ.get("ACC_CLIENT_SECRET", ""),
        client_secret_path=os.environ.get("ACC_CLIENT_SECRET_PATH", ""),
        token_cache_path=os.environ.get("ACC_TOKEN_CACHE_PATH", "~/.accountable/token.json"),
        drive_scope=os.environ.get("ACC_DRIVE_SCOPE", DRIVE_FILE_SCOPE),
        folder_name=os.environ.get("ACC_FOLDER_NAME", "Accountable"),
        document_marker=os.environ.get("ACC_DOCUMENT_MARKER", ".json"),
        default_document=os.environ.get("ACC_DEFAULT_DOCUMENT", "data.json"),
        identity_load_attempts=int(os.environ.get("ACC_IDENTITY_LOAD_ATTEMPTS", "50")),
        identity_poll_interval=float(os.environ.get("ACC_IDENTITY_POLL_INTERVAL", "0.1")),
        consent_timeout_seconds=int(os.environ.get("ACC_CONSENT_TIMEOUT_SECONDS", "120")),
    )
