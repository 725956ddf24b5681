"""
Defines constants for BitTorrent Peer Protocol message IDs and block sizes,
and the classified message unit produced by the framer.
"""
import struct
from dataclasses import dataclass
from enum import Enum, IntEnum


class MessageID(IntEnum):
    """IDs for standard BitTorrent peer protocol messages."""
    CHOKE = 0
    UNCHOKE = 1
    INTERESTED = 2
    NOT_INTERESTED = 3
    HAVE = 4
    BITFIELD = 5
    REQUEST = 6
    PIECE = 7
    CANCEL = 8


class MessageKind(Enum):
    """What an inbound frame turned out to be."""
    HANDSHAKE = "handshake"
    KEEP_ALIVE = "keep-alive"
    CHOKE = "choke"
    UNCHOKE = "unchoke"
    INTERESTED = "interested"
    NOT_INTERESTED = "not interested"
    HAVE = "have"
    BITFIELD = "bitfield"
    REQUEST = "request"
    PIECE = "piece"
    CANCEL = "cancel"
    UNKNOWN = "unknown"

    @classmethod
    def from_id(cls, msg_id: int) -> "MessageKind":
        try:
            return cls[MessageID(msg_id).name]
        except ValueError:
            return cls.UNKNOWN


# Standard block size for piece requests
BLOCK_LEN = 16 * 1024   # 16 KB

PSTRLEN = 19
PROTOCOL_STR = b"BitTorrent protocol"
HANDSHAKE_LEN = 1 + len(PROTOCOL_STR) + 8 + 20 + 20  # pstrlen + pstr + reserved + info_hash + peer_id

# piece messages are BLOCK_LEN + 13 bytes; bitfields of very large torrents are the other big frame
MAX_MESSAGE_LEN = 2 * 1024 * 1024

# index + begin ahead of the block in a PIECE payload
PIECE_HEADER_LEN = 8


@dataclass(frozen=True)
class PeerMessage:
    """One complete inbound frame, classified by kind."""
    kind: MessageKind
    raw: bytes

    @classmethod
    def classify(cls, raw: bytes) -> "PeerMessage":
        if raw[0] == PSTRLEN:
            return cls(MessageKind.HANDSHAKE, raw)
        if len(raw) == 4:
            return cls(MessageKind.KEEP_ALIVE, raw)
        return cls(MessageKind.from_id(raw[4]), raw)

    @property
    def msg_id(self):
        if self.kind in (MessageKind.HANDSHAKE, MessageKind.KEEP_ALIVE):
            return None
        return self.raw[4]

    @property
    def payload(self) -> bytes:
        """Bytes after the length prefix and id (whole frame for a handshake)."""
        if self.kind is MessageKind.HANDSHAKE:
            return self.raw
        return self.raw[5:]

    def piece_header(self):
        """(index, begin) of a PIECE message."""
        return struct.unpack(">II", self.raw[5:5 + PIECE_HEADER_LEN])

    @property
    def block(self) -> bytes:
        """Block bytes of a PIECE message."""
        return self.raw[5 + PIECE_HEADER_LEN:]
