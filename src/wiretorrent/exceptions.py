"""
Exception hierarchy shared by the wiretorrent packages.
"""
from typing import Any, Dict, Optional


class WiretorrentError(Exception):
    """Base exception for all wiretorrent errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class ConfigurationError(WiretorrentError):
    """Invalid client configuration."""


class TorrentError(WiretorrentError):
    """Torrent metainfo is missing a required field or is malformed."""
