"""
Correlates one outbound request with the ordered replies it expects.
"""
import asyncio
import logging
from collections import deque
from typing import List, Sequence

from .errors import PeerProtocolError
from .message_types import MessageKind, PeerMessage

logger = logging.getLogger(__name__)


class PendingExpectation:
    """
    Matches inbound messages against an ordered queue of expected kinds.

    Each matching message is popped off the queue and accumulated; the
    future resolves with the accumulated messages once the queue is empty.
    The first mismatch fails it with ``PeerProtocolError``.
    """

    def __init__(self, expected: Sequence[MessageKind]):
        if not expected:
            raise ValueError("at least one expected message kind is required")
        self.queue = deque(expected)
        self.matched: List[PeerMessage] = []
        self.future = asyncio.get_running_loop().create_future()

    @property
    def done(self) -> bool:
        return self.future.done()

    def on_message(self, msg: PeerMessage):
        if self.done or msg.kind is MessageKind.KEEP_ALIVE:
            return

        expected = self.queue[0]
        if msg.kind is not expected:
            logger.warning("[Peer] Unexpected message %s, expected %s", msg.kind.value, expected.value)
            self.queue.clear()
            self.future.set_exception(PeerProtocolError(
                "unexpected message",
                {"expected": expected.value, "received": msg.kind.value},
            ))
            return

        self.queue.popleft()
        self.matched.append(msg)
        if not self.queue:
            self.future.set_result(self.matched)

    def on_close(self, exc: Exception):
        if self.done:
            return
        self.queue.clear()
        self.future.set_exception(exc)

    def discard(self):
        """Settle the future for good once nobody awaits it any more."""
        if not self.done:
            self.future.cancel()
        elif not self.future.cancelled():
            # mark the exception, if any, as retrieved
            self.future.exception()


class RequestCoordinator:
    """
    Issues requests on one connection, strictly one outstanding at a time.

    ``connection`` must provide ``add_waiter``, ``remove_waiter`` and an
    awaitable ``write``.
    """

    def __init__(self, connection):
        self.conn = connection
        self._lock = asyncio.Lock()

    async def request(self, outbound: bytes, expected: Sequence[MessageKind]) -> List[PeerMessage]:
        """Send ``outbound`` and wait for replies of the ``expected`` kinds, in order."""
        async with self._lock:
            waiter = PendingExpectation(expected)
            # listening before writing: a fast reply must not be missed
            self.conn.add_waiter(waiter)
            try:
                await self.conn.write(outbound)
                return await waiter.future
            finally:
                self.conn.remove_waiter(waiter)
                waiter.discard()

    async def request_one(self, outbound: bytes, kind: MessageKind) -> PeerMessage:
        (msg,) = await self.request(outbound, [kind])
        return msg
