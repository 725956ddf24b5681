from .errors import PeerConnectionError, PeerProtocolError
from .framing import FrameState, MessageFramer
from .message_types import BLOCK_LEN, MessageID, MessageKind, PeerMessage
from .peer_connection import HandshakeResult, PeerConnection
from .peer_protocol import build_handshake, build_message, build_request, parse_handshake
from .piece_downloader import BlockAddress, PieceDownloader
from .request_coordinator import PendingExpectation, RequestCoordinator

__all__ = [
    "PeerConnection",
    "HandshakeResult",
    "MessageFramer",
    "FrameState",
    "RequestCoordinator",
    "PendingExpectation",
    "PieceDownloader",
    "BlockAddress",
    "PeerMessage",
    "MessageID",
    "MessageKind",
    "BLOCK_LEN",
    "PeerConnectionError",
    "PeerProtocolError",
    "build_handshake",
    "parse_handshake",
    "build_message",
    "build_request",
]
