"""
Reassembly of peer wire messages from arbitrarily chunked TCP reads.
"""
import struct
from enum import Enum
from typing import List, Optional

from .errors import PeerProtocolError
from .message_types import HANDSHAKE_LEN, MAX_MESSAGE_LEN, PSTRLEN, PeerMessage


class FrameState(Enum):
    AWAITING_HEADER = "awaiting-header"
    AWAITING_BODY = "awaiting-body"


class MessageFramer:
    """
    Turns a stream of byte chunks into complete, classified messages.

    A frame starting with byte 19 is a 68-byte handshake; anything else is
    a 4-byte big-endian length prefix followed by that many bytes. One
    chunk may complete several frames, and one frame may span many chunks.
    """

    def __init__(self, max_message_len: int = MAX_MESSAGE_LEN):
        self.max_message_len = max_message_len
        self._header = bytearray()   # prefix bytes seen before the size is known
        self._buffer: Optional[bytearray] = None
        self._remaining = 0

    @property
    def state(self) -> FrameState:
        if self._buffer is None:
            return FrameState.AWAITING_HEADER
        return FrameState.AWAITING_BODY

    @property
    def remaining(self) -> int:
        """Bytes still missing from the frame being assembled."""
        return self._remaining

    def feed(self, chunk: bytes) -> List[PeerMessage]:
        """Consume one chunk and return every message it completed, in order."""
        messages = []
        view = memoryview(chunk)

        while view:
            if self._buffer is not None:
                # AWAITING_BODY: fill the partial frame
                take = min(self._remaining, len(view))
                start = len(self._buffer) - self._remaining
                self._buffer[start:start + take] = view[:take]
                self._remaining -= take
                view = view[take:]
                if self._remaining == 0:
                    messages.append(PeerMessage.classify(bytes(self._buffer)))
                    self._buffer = None
                continue

            # AWAITING_HEADER
            if self._header:
                need = 4 - len(self._header)
                self._header += view[:need]
                view = view[need:]
                head = memoryview(bytes(self._header))
            else:
                head = view

            size = self._frame_size(head)
            if size is None:
                # fewer than 4 prefix bytes so far
                if head is view:
                    self._header += view
                    view = view[len(view):]
                continue

            if head is view and len(view) >= size:
                messages.append(PeerMessage.classify(bytes(view[:size])))
                view = view[size:]
                continue

            self._buffer = bytearray(size)
            self._buffer[:len(head)] = head
            self._remaining = size - len(head)
            if head is view:
                view = view[len(view):]
            self._header.clear()
            if self._remaining == 0:
                messages.append(PeerMessage.classify(bytes(self._buffer)))
                self._buffer = None

        return messages

    def _frame_size(self, head: memoryview) -> Optional[int]:
        if head[0] == PSTRLEN:
            return HANDSHAKE_LEN
        if len(head) < 4:
            return None
        length = struct.unpack(">I", head[:4])[0]
        if length > self.max_message_len:
            raise PeerProtocolError(
                "Declared message length exceeds limit",
                {"length": length, "limit": self.max_message_len},
            )
        return length + 4
