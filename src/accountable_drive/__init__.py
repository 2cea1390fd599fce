"""Google Drive persistence for the Accountable ledger."""

__version__ = "0.1.0"
