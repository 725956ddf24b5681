import logging
import math
from dataclasses import dataclass
from typing import BinaryIO, List

from .errors import PeerProtocolError
from .message_types import BLOCK_LEN, PIECE_HEADER_LEN

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockAddress:
    index: int
    begin: int
    length: int


class PieceDownloader:
    """
    Downloads pieces from one handshaken, unchoked peer into a seekable sink.

    Blocks are requested one at a time and each reply is awaited before the
    next request goes out. Completed pieces are not checked against the
    torrent's piece hashes.
    """

    def __init__(self, peer_conn, piece_length: int, total_length: int, block_len=BLOCK_LEN):
        if piece_length <= 0:
            raise ValueError("piece_length must be positive")
        self.peer = peer_conn
        self.piece_length = piece_length
        self.total_length = total_length
        self.block_len = block_len

    @property
    def num_pieces(self) -> int:
        return math.ceil(self.total_length / self.piece_length)

    def get_piece_length(self, idx: int) -> int:
        if not 0 <= idx < self.num_pieces:
            raise IndexError(f"piece index {idx} out of range (0..{self.num_pieces - 1})")
        if idx < self.num_pieces - 1:
            return self.piece_length
        return self.total_length - self.piece_length * (self.num_pieces - 1)

    def blocks(self, idx: int) -> List[BlockAddress]:
        """Block requests covering piece ``idx``, in offset order."""
        length = self.get_piece_length(idx)
        return [
            BlockAddress(idx, begin, min(self.block_len, length - begin))
            for begin in range(0, length, self.block_len)
        ]

    async def download_piece(self, idx: int, sink: BinaryIO, position: int = 0):
        """Fetch piece ``idx`` and write it to ``sink`` starting at ``position``."""
        if self.peer.peer_choking:
            raise PeerProtocolError(f"Cannot request piece {idx}: peer is choking us")

        for block in self.blocks(idx):
            msg = await self.peer.request_block(block.index, block.begin, block.length)

            if len(msg.payload) < PIECE_HEADER_LEN:
                raise PeerProtocolError(
                    "PIECE too short",
                    {"requested": (block.index, block.begin, block.length), "payload_len": len(msg.payload)},
                )

            index, begin = msg.piece_header()
            data = msg.block
            if (index, begin) != (block.index, block.begin) or len(data) != block.length:
                raise PeerProtocolError(
                    "PIECE does not match the request",
                    {"requested": (block.index, block.begin, block.length),
                     "received": (index, begin, len(data))},
                )

            logger.debug("[Download] piece %d: writing %d bytes at %d", idx, len(data), position + begin)
            sink.seek(position + begin)
            sink.write(data)

        logger.info("[Download] Piece %d complete (%d bytes)", idx, self.get_piece_length(idx))

    async def download(self, sink: BinaryIO):
        """Fetch every piece in order, each at its offset in the whole file."""
        for idx in range(self.num_pieces):
            await self.download_piece(idx, sink, position=idx * self.piece_length)
        logger.info("[Download] All %d pieces downloaded (%d bytes)", self.num_pieces, self.total_length)
