"""
Errors raised by the peer wire-protocol engine.
"""
from ..exceptions import WiretorrentError


class PeerProtocolError(WiretorrentError):
    """The peer sent something other than what the current request expects."""


class PeerConnectionError(WiretorrentError, ConnectionError):
    """The socket failed or the peer closed the connection."""
