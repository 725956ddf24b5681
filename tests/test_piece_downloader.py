import io
import os
import struct

import pytest

from fake_peer import FakeSeeder
from wiretorrent.peer.errors import PeerConnectionError, PeerProtocolError
from wiretorrent.peer.message_types import BLOCK_LEN, MessageID, PeerMessage
from wiretorrent.peer.peer_connection import PeerConnection
from wiretorrent.peer.peer_protocol import build_message
from wiretorrent.peer.piece_downloader import BlockAddress, PieceDownloader

INFO_HASH = b"\x11" * 20
OUR_ID = b"00112233445566778899"
TOTAL = 92063
PIECE_LEN = 32768
CONTENT = os.urandom(TOTAL)


def test_piece_sizing():
    dl = PieceDownloader(None, PIECE_LEN, TOTAL)

    assert dl.num_pieces == 3
    assert [dl.get_piece_length(i) for i in range(3)] == [32768, 32768, 26527]
    assert dl.blocks(2) == [BlockAddress(2, 0, 16384), BlockAddress(2, 16384, 10143)]
    assert [b.length for b in dl.blocks(0)] == [BLOCK_LEN, BLOCK_LEN]


def test_piece_index_out_of_range():
    dl = PieceDownloader(None, PIECE_LEN, TOTAL)
    with pytest.raises(IndexError):
        dl.get_piece_length(3)


def test_exact_multiple_has_full_last_piece():
    dl = PieceDownloader(None, 16, 64)
    assert dl.num_pieces == 4
    assert dl.get_piece_length(3) == 16


async def ready_connection(seeder):
    port = await seeder.start()
    conn = await PeerConnection("127.0.0.1", port).connect()
    await conn.handshake(INFO_HASH, OUR_ID)
    await conn.interested()
    return conn


@pytest.mark.asyncio
async def test_download_whole_file():
    seeder = FakeSeeder(INFO_HASH, CONTENT, PIECE_LEN, chunk_size=1500)
    conn = await ready_connection(seeder)
    sink = io.BytesIO()
    try:
        await PieceDownloader(conn, PIECE_LEN, TOTAL).download(sink)
    finally:
        conn.close()
        await conn.wait_closed()
        await seeder.stop()

    assert sink.getvalue() == CONTENT
    assert seeder.requests == [
        (0, 0, 16384), (0, 16384, 16384),
        (1, 0, 16384), (1, 16384, 16384),
        (2, 0, 16384), (2, 16384, 10143),
    ]


@pytest.mark.asyncio
async def test_download_single_piece_at_position_zero():
    seeder = FakeSeeder(INFO_HASH, CONTENT, PIECE_LEN, chunk_size=4096)
    conn = await ready_connection(seeder)
    sink = io.BytesIO()
    try:
        await PieceDownloader(conn, PIECE_LEN, TOTAL).download_piece(2, sink)
    finally:
        conn.close()
        await conn.wait_closed()
        await seeder.stop()

    assert sink.getvalue() == CONTENT[2 * PIECE_LEN:]


@pytest.mark.asyncio
async def test_connection_drop_aborts_and_keeps_written_blocks():
    seeder = FakeSeeder(INFO_HASH, CONTENT, PIECE_LEN, chunk_size=4096, drop_after_requests=3)
    conn = await ready_connection(seeder)
    sink = io.BytesIO()
    try:
        with pytest.raises(PeerConnectionError):
            await PieceDownloader(conn, PIECE_LEN, TOTAL).download(sink)
    finally:
        conn.close()
        await conn.wait_closed()
        await seeder.stop()

    assert sink.getvalue() == CONTENT[:3 * BLOCK_LEN]


class ScriptedPeer:
    """Answers every block request with a PIECE built by ``make_payload``."""

    def __init__(self, make_payload, peer_choking=False):
        self.make_payload = make_payload
        self.peer_choking = peer_choking

    async def request_block(self, index, begin, length):
        return PeerMessage.classify(build_message(MessageID.PIECE, self.make_payload(index, begin, length)))


@pytest.mark.asyncio
async def test_mismatched_piece_is_protocol_error():
    peer = ScriptedPeer(lambda i, b, n: struct.pack(">II", i, b + 1) + bytes(n))
    with pytest.raises(PeerProtocolError):
        await PieceDownloader(peer, 16, 32).download_piece(0, io.BytesIO())


@pytest.mark.asyncio
@pytest.mark.parametrize("make_payload", [
    lambda i, b, n: struct.pack(">II", i, b) + bytes(n - 1),
    lambda i, b, n: b"\x00\x00",
    lambda i, b, n: b"",
])
async def test_short_block_is_protocol_error(make_payload):
    peer = ScriptedPeer(make_payload)
    with pytest.raises(PeerProtocolError):
        await PieceDownloader(peer, 16, 32).download_piece(1, io.BytesIO())


@pytest.mark.asyncio
async def test_choked_peer_is_refused():
    peer = ScriptedPeer(lambda i, b, n: b"", peer_choking=True)
    with pytest.raises(PeerProtocolError):
        await PieceDownloader(peer, 16, 32).download_piece(0, io.BytesIO())


@pytest.mark.asyncio
async def test_blocks_written_at_piece_offsets():
    peer = ScriptedPeer(lambda i, b, n: struct.pack(">II", i, b) + bytes([65 + i]) * n)
    sink = io.BytesIO()
    await PieceDownloader(peer, 10, 25, block_len=4).download(sink)
    assert sink.getvalue() == b"A" * 10 + b"B" * 10 + b"C" * 5
