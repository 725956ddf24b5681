import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .errors import PeerConnectionError, PeerProtocolError
from .framing import MessageFramer
from .message_types import MessageID, MessageKind, PeerMessage
from .peer_protocol import build_handshake, build_message, build_request, parse_handshake
from .request_coordinator import RequestCoordinator

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_SECONDS = 5
READ_CHUNK_SIZE = 64 * 1024


@dataclass
class HandshakeResult:
    peer_id: bytes
    bitfield: Optional[bytes] = None


class PeerConnection:
    """
    One TCP connection to a remote peer.

    A background reader task feeds every received chunk through a
    ``MessageFramer`` and publishes each completed message to the active
    waiters and to ``on_message``. Closing the connection, or losing it,
    fails every waiter still registered.
    """

    def __init__(self, ip, port, on_message: Optional[Callable[[PeerMessage], None]] = None,
                 connect_timeout=CONNECT_TIMEOUT_SECONDS, read_chunk_size=READ_CHUNK_SIZE):
        self.reader = None
        self.writer = None
        self.ip = ip
        self.port = port
        self.on_message = on_message
        self.connect_timeout = connect_timeout
        self.read_chunk_size = read_chunk_size
        self.closed = False

        self.remote_peer_id = None
        # Raw bitfield bytes (or None if not received)
        self.bitfield = None
        # This peer is choking us until it says otherwise
        self.peer_choking = True
        self.am_interested = False

        self.framer = MessageFramer()
        self.requests = RequestCoordinator(self)
        self._waiters = []
        self._reader_task = None

    def __repr__(self):
        return f"PeerConnection({self.ip}:{self.port}, closed={self.closed})"

    async def connect(self):
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self.ip, self.port),
                timeout=self.connect_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise PeerConnectionError(
                f"Could not connect to peer {self.ip}:{self.port} -> connection timed out"
            ) from exc
        except OSError as exc:
            raise PeerConnectionError(f"Could not connect to peer {self.ip}:{self.port} -> {exc}") from exc

        logger.info("[Peer] Connected to %s:%s", self.ip, self.port)
        self.attach(reader, writer)
        return self

    def attach(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        """Start serving an already-open stream pair."""
        self.reader = reader
        self.writer = writer
        self.closed = False
        self._reader_task = asyncio.get_running_loop().create_task(self._read_loop())

    # ------------------------------
    # Inbound
    # ------------------------------

    async def _read_loop(self):
        error = None
        try:
            while True:
                chunk = await self.reader.read(self.read_chunk_size)
                if not chunk:
                    error = PeerConnectionError(f"Peer {self.ip}:{self.port} closed the connection")
                    break
                self.data_received(chunk)
        except PeerProtocolError as exc:
            error = exc
        except OSError as exc:
            error = PeerConnectionError(f"Connection to {self.ip}:{self.port} failed -> {exc}")
        except Exception as exc:
            # raised by the on_message observer
            logger.error("[Peer] Message handler for %s:%s failed: %r", self.ip, self.port, exc)
            error = PeerConnectionError(
                f"Message handler for {self.ip}:{self.port} failed -> {exc!r}",
                {"cause": type(exc).__name__},
            )
            error.__cause__ = exc
        finally:
            self.connection_lost(error)

    def data_received(self, chunk: bytes):
        for msg in self.framer.feed(chunk):
            self.dispatch(msg)

    def dispatch(self, msg: PeerMessage):
        logger.debug("[Peer] <- %s (%d bytes)", msg.kind.value, len(msg.raw))

        if msg.kind is MessageKind.CHOKE:
            self.peer_choking = True
        elif msg.kind is MessageKind.UNCHOKE:
            self.peer_choking = False
        elif msg.kind is MessageKind.BITFIELD:
            self.bitfield = msg.payload

        if self.on_message is not None:
            self.on_message(msg)
        # waiters may remove themselves while we iterate
        for waiter in list(self._waiters):
            waiter.on_message(msg)

    def connection_lost(self, error: Optional[Exception] = None):
        if error is None:
            error = PeerConnectionError(f"Connection to {self.ip}:{self.port} closed")
        if not self.closed:
            logger.info("[Peer] %s:%s disconnected: %s", self.ip, self.port, error)
        self.closed = True
        if self.writer is not None:
            self.writer.close()

        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            waiter.on_close(error)

    def add_waiter(self, waiter):
        if self.closed:
            waiter.on_close(PeerConnectionError(f"Connection to {self.ip}:{self.port} is closed"))
            return
        self._waiters.append(waiter)

    def remove_waiter(self, waiter):
        if waiter in self._waiters:
            self._waiters.remove(waiter)

    # ------------------------------
    # Outbound
    # ------------------------------

    async def write(self, data: bytes):
        """Send an already framed message."""
        if self.closed or self.writer is None:
            raise PeerConnectionError(f"Connection to {self.ip}:{self.port} is closed")
        try:
            self.writer.write(data)
            await self.writer.drain()
        except OSError as exc:
            self.connection_lost(PeerConnectionError(f"Write to {self.ip}:{self.port} failed -> {exc}"))
            raise PeerConnectionError(f"Write to {self.ip}:{self.port} failed -> {exc}") from exc

    async def handshake(self, info_hash: bytes, peer_id: bytes, wait_bitfield=True) -> HandshakeResult:
        """Exchange handshakes; optionally also wait for the peer's bitfield."""
        expected = [MessageKind.HANDSHAKE]
        if wait_bitfield:
            expected.append(MessageKind.BITFIELD)

        replies = await self.requests.request(build_handshake(info_hash, peer_id), expected)

        remote_hash, remote_pid = parse_handshake(replies[0].raw)
        if remote_hash != info_hash:
            raise PeerProtocolError(
                "Peer sent a handshake with wrong info_hash",
                {"expected": info_hash.hex(), "received": remote_hash.hex()},
            )

        self.remote_peer_id = remote_pid
        logger.info("[Peer] Handshake with %s:%s done, peer id %s", self.ip, self.port, remote_pid.hex())
        bitfield = replies[1].payload if wait_bitfield else None
        return HandshakeResult(remote_pid, bitfield)

    async def interested(self):
        """Announce interest and wait until the peer unchokes us."""
        self.am_interested = True
        return await self.requests.request_one(build_message(MessageID.INTERESTED), MessageKind.UNCHOKE)

    async def request_block(self, index: int, begin: int, length: int) -> PeerMessage:
        """Request one block and wait for the PIECE message carrying it."""
        return await self.requests.request_one(build_request(index, begin, length), MessageKind.PIECE)

    def close(self):
        if self._reader_task is not None and not self._reader_task.done():
            self._reader_task.cancel()
        self.connection_lost(PeerConnectionError(f"Connection to {self.ip}:{self.port} closed locally"))

    async def wait_closed(self):
        if self._reader_task is not None:
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
        if self.writer is not None:
            try:
                await self.writer.wait_closed()
            except OSError:
                pass
