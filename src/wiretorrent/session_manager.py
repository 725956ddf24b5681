import logging
from typing import BinaryIO, Tuple

from .config import ClientConfig
from .peer.peer_connection import HandshakeResult, PeerConnection
from .peer.piece_downloader import PieceDownloader
from .tracker.http_tracker import HTTPTrackerClient, TrackerError

logger = logging.getLogger(__name__)


class SessionManager:
    """
    Drives one torrent against a single peer: announce, connect,
    handshake, then download a piece or the whole file.
    """

    def __init__(self, torrent_meta, config: ClientConfig = None):
        self.meta = torrent_meta
        self.config = config or ClientConfig()

    async def get_peers(self):
        tracker = HTTPTrackerClient(self.meta, self.config.peer_id, port=self.config.port)
        return await tracker.announce()

    async def first_peer(self) -> Tuple[str, int]:
        peers = await self.get_peers()
        if not peers:
            raise TrackerError("Tracker returned no peers")
        return peers[0]

    async def open_peer(self, ip, port) -> PeerConnection:
        conn = PeerConnection(
            ip, port,
            connect_timeout=self.config.connect_timeout,
            read_chunk_size=self.config.read_chunk_size,
        )
        return await conn.connect()

    async def handshake(self, ip, port) -> HandshakeResult:
        """Connect, exchange handshakes (no bitfield wait) and disconnect."""
        conn = await self.open_peer(ip, port)
        try:
            return await conn.handshake(self.meta.info_hash, self.config.peer_id, wait_bitfield=False)
        finally:
            conn.close()
            await conn.wait_closed()

    async def _ready_downloader(self, conn: PeerConnection) -> PieceDownloader:
        await conn.handshake(self.meta.info_hash, self.config.peer_id, wait_bitfield=True)
        await conn.interested()
        logger.info("[Session] Unchoked by %s:%s", conn.ip, conn.port)
        return PieceDownloader(conn, self.meta.piece_length, self.meta.total_length)

    async def download_piece(self, index: int, sink: BinaryIO):
        """Download one piece from the first tracker peer into ``sink`` at offset 0."""
        ip, port = await self.first_peer()
        conn = await self.open_peer(ip, port)
        try:
            downloader = await self._ready_downloader(conn)
            await downloader.download_piece(index, sink)
        finally:
            conn.close()
            await conn.wait_closed()

    async def download(self, sink: BinaryIO):
        """Download the whole file from the first tracker peer into ``sink``."""
        ip, port = await self.first_peer()
        conn = await self.open_peer(ip, port)
        try:
            downloader = await self._ready_downloader(conn)
            await downloader.download(sink)
        finally:
            conn.close()
            await conn.wait_closed()
