import logging
from typing import List, Tuple

import aiohttp

from ..bencode import BencodeDecodeError, BencodeDict, BencodeInt, BencodeList, BencodeString, decode
from ..exceptions import WiretorrentError
from .utils import compact_to_peers

logger = logging.getLogger(__name__)


class TrackerError(WiretorrentError):
    """The tracker could not be reached or refused the announce."""


def pct_encode(b: bytes) -> str:
    """Percent-encode every byte (%HH), as trackers expect for binary fields."""
    return ''.join(f'%{byte:02X}' for byte in b)


class HTTPTrackerClient:
    def __init__(self, torrent_meta, peer_id: bytes, port=6881, url: str = None):
        self.meta = torrent_meta
        self.peer_id = peer_id  # MUST be 20 bytes
        self.port = port
        self.url = url if url else torrent_meta.announce

        if not self.url:
            raise TrackerError("No announce URL provided for HTTPTrackerClient")

    def announce_url(self) -> str:
        params = {
            "info_hash": self.meta.info_hash,
            "peer_id": self.peer_id,
            "port": self.port,
            "uploaded": 0,
            "downloaded": 0,
            "left": self.meta.total_length,
            "compact": 1,
        }

        encoded = {
            k: pct_encode(v) if isinstance(v, bytes) else str(v)
            for k, v in params.items()
        }
        query = "&".join(f"{k}={v}" for k, v in encoded.items())
        sep = "&" if "?" in self.url else "?"
        return f"{self.url}{sep}{query}"

    async def announce(self) -> List[Tuple[str, int]]:
        full_url = self.announce_url()
        logger.debug("[Tracker] Announce URL: %s", full_url)

        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(full_url) as resp:
                    if resp.status >= 400:
                        raise TrackerError(f"Tracker returned HTTP {resp.status}", {"url": self.url})
                    data = await resp.read()
        except aiohttp.ClientError as exc:
            raise TrackerError(f"Tracker request failed: {exc}", {"url": self.url}) from exc

        try:
            root = decode(data)
        except BencodeDecodeError as exc:
            raise TrackerError(f"Malformed tracker response: {exc}") from exc
        if not isinstance(root, BencodeDict):
            raise TrackerError("Malformed tracker response: not a dictionary")

        failure = root.get(b"failure reason")
        if isinstance(failure, BencodeString):
            raise TrackerError("Tracker error: " + failure.value.decode(errors="replace"))

        peers_field = root.get(b"peers")

        if isinstance(peers_field, BencodeString):
            peers = compact_to_peers(peers_field.value)
        elif isinstance(peers_field, BencodeList):
            # Non-compact peer list (list of dictionaries)
            peers = []
            for peer_dict in peers_field:
                if not isinstance(peer_dict, BencodeDict):
                    continue
                ip_b = peer_dict.get(b"ip")
                port_b = peer_dict.get(b"port")
                if isinstance(ip_b, BencodeString) and isinstance(port_b, BencodeInt):
                    peers.append((ip_b.value.decode(), port_b.value))
        else:
            raise TrackerError("Tracker returned invalid peer list")

        logger.info("[Tracker] %s returned %d peers", self.url, len(peers))
        return peers
