import struct

import pytest

from wiretorrent.peer.errors import PeerProtocolError
from wiretorrent.peer.message_types import HANDSHAKE_LEN, MessageID, MessageKind, PeerMessage
from wiretorrent.peer.peer_protocol import build_handshake, parse_handshake, build_message, build_request


def test_handshake_roundtrip():
    info_hash = b"A" * 20
    peer_id = b"B" * 20

    hs = build_handshake(info_hash, peer_id)

    assert len(hs) == HANDSHAKE_LEN == 68
    assert hs[:20] == b"\x13BitTorrent protocol"
    assert hs[20:28] == b"\x00" * 8
    assert parse_handshake(hs) == (info_hash, peer_id)


def test_handshake_requires_20_byte_fields():
    with pytest.raises(ValueError):
        build_handshake(b"A" * 19, b"B" * 20)


def test_parse_handshake_rejects_other_protocols():
    bad = bytes([19]) + b"BitTorrent protocoX" + bytes(48)
    with pytest.raises(PeerProtocolError):
        parse_handshake(bad)


def test_parse_handshake_rejects_truncated_frame():
    hs = build_handshake(b"A" * 20, b"B" * 20)
    with pytest.raises(PeerProtocolError) as info:
        parse_handshake(hs[:60])
    assert info.value.details == {"expected": 68, "received": 60}


def test_interested_frame():
    assert build_message(MessageID.INTERESTED) == b"\x00\x00\x00\x01\x02"


def test_request_frame():
    msg = build_request(1, 16384, 10143)
    assert msg == struct.pack(">IBIII", 13, 6, 1, 16384, 10143)


def test_classify_messages():
    assert PeerMessage.classify(build_handshake(b"A" * 20, b"B" * 20)).kind is MessageKind.HANDSHAKE
    assert PeerMessage.classify(b"\x00\x00\x00\x00").kind is MessageKind.KEEP_ALIVE
    assert PeerMessage.classify(build_message(MessageID.UNCHOKE)).kind is MessageKind.UNCHOKE
    assert PeerMessage.classify(build_message(MessageID.BITFIELD, b"\xff")).kind is MessageKind.BITFIELD
    assert PeerMessage.classify(b"\x00\x00\x00\x01\x14").kind is MessageKind.UNKNOWN


def test_piece_message_fields():
    raw = build_message(MessageID.PIECE, struct.pack(">II", 2, 16384) + b"data")
    msg = PeerMessage.classify(raw)
    assert msg.kind is MessageKind.PIECE
    assert msg.msg_id == MessageID.PIECE
    assert msg.piece_header() == (2, 16384)
    assert msg.block == b"data"
