import struct
from typing import Tuple

from .errors import PeerProtocolError
from .message_types import HANDSHAKE_LEN, PROTOCOL_STR, PSTRLEN, MessageID

# pstrlen, pstr, reserved, info_hash, peer_id
_HANDSHAKE = struct.Struct(f">B{PSTRLEN}s8s20s20s")
_NO_EXTENSIONS = bytes(8)


def build_handshake(info_hash: bytes, peer_id: bytes) -> bytes:
    """The 68-byte opening message. No extension bits are advertised."""
    # struct pads or truncates "s" fields silently
    if len(info_hash) != 20 or len(peer_id) != 20:
        raise ValueError("info_hash and peer_id must be 20 bytes each")
    return _HANDSHAKE.pack(PSTRLEN, PROTOCOL_STR, _NO_EXTENSIONS, info_hash, peer_id)


def parse_handshake(data: bytes) -> Tuple[bytes, bytes]:
    """
    Split a received handshake frame into (info_hash, peer_id).
    Raises PeerProtocolError if the frame is not a BitTorrent handshake.
    """
    if len(data) != HANDSHAKE_LEN:
        raise PeerProtocolError(
            "Handshake has the wrong length",
            {"expected": HANDSHAKE_LEN, "received": len(data)},
        )

    pstrlen, pstr, _reserved, info_hash, peer_id = _HANDSHAKE.unpack(data)
    if pstrlen != PSTRLEN or pstr != PROTOCOL_STR:
        raise PeerProtocolError("Peer does not speak the BitTorrent protocol", {"pstr": pstr})
    return info_hash, peer_id


# ---- Message framing helpers ----
def build_message(msg_id: MessageID, payload: bytes = b"") -> bytes:
    """
    Frame a message: 4-byte big-endian length + 1-byte id + payload
    length = 1 + len(payload)
    """
    length = 1 + len(payload)
    return struct.pack(">IB", length, int(msg_id)) + payload


def build_request(index: int, begin: int, length: int) -> bytes:
    """REQUEST for one block: index, begin and length as big-endian u32."""
    return build_message(MessageID.REQUEST, struct.pack(">III", index, begin, length))
