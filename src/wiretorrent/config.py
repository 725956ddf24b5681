"""
Client configuration: defaults overridable from the environment.
"""
import os
from dataclasses import dataclass, replace

from .exceptions import ConfigurationError

DEFAULT_PEER_ID = b"00112233445566778899"


@dataclass(frozen=True)
class ClientConfig:
    peer_id: bytes = DEFAULT_PEER_ID
    port: int = 6881             # port announced to the tracker
    connect_timeout: float = 5.0  # TCP connect only; replies have no timeout
    read_chunk_size: int = 64 * 1024
    log_level: str = "WARNING"

    def __post_init__(self):
        if len(self.peer_id) != 20:
            raise ConfigurationError("peer_id must be exactly 20 bytes", {"peer_id": self.peer_id})
        if not 0 < self.port < 65536:
            raise ConfigurationError("port out of range", {"port": self.port})
        if self.connect_timeout <= 0:
            raise ConfigurationError("connect_timeout must be positive")

    @classmethod
    def from_env(cls, environ=None) -> "ClientConfig":
        """Build a config from ``WIRETORRENT_*`` environment variables."""
        env = os.environ if environ is None else environ
        overrides = {}

        if "WIRETORRENT_PEER_ID" in env:
            overrides["peer_id"] = env["WIRETORRENT_PEER_ID"].encode()
        try:
            if "WIRETORRENT_PORT" in env:
                overrides["port"] = int(env["WIRETORRENT_PORT"])
            if "WIRETORRENT_CONNECT_TIMEOUT" in env:
                overrides["connect_timeout"] = float(env["WIRETORRENT_CONNECT_TIMEOUT"])
        except ValueError as exc:
            raise ConfigurationError(f"Invalid numeric setting: {exc}") from exc
        if "WIRETORRENT_LOG_LEVEL" in env:
            overrides["log_level"] = env["WIRETORRENT_LOG_LEVEL"].upper()

        return replace(cls(), **overrides)
