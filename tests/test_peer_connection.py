import asyncio

import pytest
import pytest_asyncio

from fake_peer import PEER_ID, FakeSeeder
from wiretorrent.peer.errors import PeerConnectionError, PeerProtocolError
from wiretorrent.peer.message_types import MessageKind
from wiretorrent.peer.peer_connection import PeerConnection
from wiretorrent.peer.peer_protocol import build_handshake

INFO_HASH = bytes(range(20))
OUR_ID = b"00112233445566778899"


@pytest_asyncio.fixture
async def seeder():
    peer = FakeSeeder(INFO_HASH, bytes(1024), piece_length=512)
    peer.port = await peer.start()
    yield peer
    await peer.stop()


async def connect(port, **kwargs):
    conn = PeerConnection("127.0.0.1", port, **kwargs)
    return await conn.connect()


@pytest.mark.asyncio
async def test_handshake_returns_remote_peer_id(seeder):
    conn = await connect(seeder.port)
    try:
        result = await conn.handshake(INFO_HASH, OUR_ID, wait_bitfield=False)
    finally:
        conn.close()
        await conn.wait_closed()

    assert result.peer_id == PEER_ID
    assert result.bitfield is None
    assert seeder.received_handshake == build_handshake(INFO_HASH, OUR_ID)


@pytest.mark.asyncio
async def test_handshake_with_bitfield_then_unchoke(seeder):
    seen = []
    conn = await connect(seeder.port, on_message=lambda msg: seen.append(msg.kind))
    try:
        result = await conn.handshake(INFO_HASH, OUR_ID)
        assert result.bitfield == b"\xff"
        assert conn.peer_choking

        await conn.interested()
        assert not conn.peer_choking
    finally:
        conn.close()
        await conn.wait_closed()

    assert seen == [MessageKind.HANDSHAKE, MessageKind.BITFIELD, MessageKind.UNCHOKE]


@pytest.mark.asyncio
async def test_wrong_info_hash_is_rejected():
    peer = FakeSeeder(INFO_HASH, b"", piece_length=16, bad_info_hash=True)
    port = await peer.start()
    conn = await connect(port)
    try:
        with pytest.raises(PeerProtocolError):
            await conn.handshake(INFO_HASH, OUR_ID, wait_bitfield=False)
    finally:
        conn.close()
        await conn.wait_closed()
        await peer.stop()


@pytest.mark.asyncio
async def test_remote_close_fails_pending_request():
    peer = FakeSeeder(INFO_HASH, bytes(64), piece_length=64, drop_after_requests=0)
    port = await peer.start()
    conn = await connect(port)
    try:
        await conn.handshake(INFO_HASH, OUR_ID)
        await conn.interested()
        with pytest.raises(PeerConnectionError):
            await asyncio.wait_for(conn.request_block(0, 0, 64), timeout=5)
        assert conn.closed
    finally:
        conn.close()
        await conn.wait_closed()
        await peer.stop()


@pytest.mark.asyncio
async def test_local_close_fails_pending_request():
    async def silent(reader, writer):
        await reader.read()
        writer.close()

    server = await asyncio.start_server(silent, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    conn = await connect(port)

    task = asyncio.create_task(conn.handshake(INFO_HASH, OUR_ID))
    await asyncio.sleep(0.05)
    conn.close()

    with pytest.raises(PeerConnectionError):
        await asyncio.wait_for(task, timeout=5)
    await conn.wait_closed()
    server.close()
    await server.wait_closed()


@pytest.mark.asyncio
async def test_request_after_close_fails_fast(seeder):
    conn = await connect(seeder.port)
    conn.close()
    await conn.wait_closed()

    with pytest.raises(PeerConnectionError):
        await conn.interested()


@pytest.mark.asyncio
async def test_connect_refused():
    server = await asyncio.start_server(lambda r, w: None, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    server.close()
    await server.wait_closed()

    with pytest.raises(PeerConnectionError):
        await connect(port)


@pytest.mark.asyncio
async def test_failing_observer_is_reported_to_waiters(seeder):
    def observer(msg):
        raise RuntimeError("observer broke")

    conn = await connect(seeder.port, on_message=observer)
    try:
        with pytest.raises(PeerConnectionError) as info:
            await asyncio.wait_for(conn.handshake(INFO_HASH, OUR_ID), timeout=5)
    finally:
        conn.close()
        await conn.wait_closed()

    assert isinstance(info.value.__cause__, RuntimeError)
    assert info.value.details == {"cause": "RuntimeError"}
    assert conn.closed
