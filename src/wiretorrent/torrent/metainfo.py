import hashlib
import math
from pathlib import Path

from ..bencode import BencodeDict, BencodeInt, BencodeList, BencodeString, decode, encode
from ..exceptions import TorrentError


def _require(mapping: BencodeDict, key: bytes, kind, where: str):
    value = mapping.get(key)
    if not isinstance(value, kind):
        raise TorrentError(
            f"Torrent {where} missing or invalid {key.decode()!r}",
            {"expected": kind.__name__},
        )
    return value


def _text(value: BencodeString) -> str:
    # undecodable bytes become U+FFFD
    return value.value.decode("utf-8", errors="replace")


class TorrentMeta:
    """Derived view over a decoded .torrent dictionary.

    The info hash is the SHA-1 of the re-encoded ``info`` value; decoding
    keeps key order, so the re-encoding matches the source bytes.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._load(self.path.read_bytes())

    @classmethod
    def from_bytes(cls, raw: bytes) -> "TorrentMeta":
        meta = cls.__new__(cls)
        meta.path = None
        meta._load(raw)
        return meta

    def _load(self, raw: bytes):
        root = decode(raw)
        if not isinstance(root, BencodeDict):
            raise TorrentError("Invalid torrent: root must be a dictionary")

        self.data = root

        # ------------------ INFO ------------------
        self.info = _require(root, b"info", BencodeDict, "root")
        self.info_bytes = encode(self.info)
        self.info_hash = hashlib.sha1(self.info_bytes).digest()

        # ------------------ NAME ------------------
        name_b = self.info.get(b"name")
        self.name = _text(name_b) if isinstance(name_b, BencodeString) else None

        # ------------------ ANNOUNCE URL ------------------
        ann_b = root.get(b"announce")
        self.announce = _text(ann_b) if isinstance(ann_b, BencodeString) else None

        # ------------------ ANNOUNCE-LIST ------------------
        self.announce_list = None
        ann_list_b = root.get(b"announce-list")

        if isinstance(ann_list_b, BencodeList):
            tiers = []
            for tier in ann_list_b:
                if not isinstance(tier, BencodeList):
                    continue
                urls = [_text(u) for u in tier if isinstance(u, BencodeString)]
                if urls:
                    tiers.append(urls)
            if tiers:
                self.announce_list = tiers

        # ------------------ PIECE LENGTH ------------------
        self.piece_length = _require(self.info, b"piece length", BencodeInt, "info").value
        if self.piece_length <= 0:
            raise TorrentError("Torrent piece length must be positive")

        # ------------------ PIECES ------------------
        raw_pieces = _require(self.info, b"pieces", BencodeString, "info").value
        if len(raw_pieces) % 20:
            raise TorrentError("Torrent 'pieces' is not a multiple of 20 bytes")
        self.pieces = [raw_pieces[i:i+20] for i in range(0, len(raw_pieces), 20)]

        # ------------------ FILES ------------------
        self.is_multi = b"files" in self.info
        if self.is_multi:
            self.files = []
            for entry in _require(self.info, b"files", BencodeList, "info"):
                if not isinstance(entry, BencodeDict):
                    raise TorrentError("Torrent file entry must be a dictionary")
                length = _require(entry, b"length", BencodeInt, "file entry").value
                path = _require(entry, b"path", BencodeList, "file entry")
                if not all(isinstance(p, BencodeString) for p in path):
                    raise TorrentError("Torrent file path parts must be strings")
                parts = [_text(p) for p in path]
                self.files.append({"length": length, "path": "/".join(parts)})
        else:
            length = _require(self.info, b"length", BencodeInt, "info").value
            self.files = [{"length": length, "path": self.name}]

        self.total_length = sum(f["length"] for f in self.files)
        self.num_pieces = math.ceil(self.total_length / self.piece_length)

    @property
    def last_piece_length(self) -> int:
        return self.total_length - self.piece_length * (self.num_pieces - 1)

    def __repr__(self):
        return (
            f"TorrentMeta(name={self.name!r}, files={len(self.files)}, pieces={self.num_pieces}, "
            f"multi={self.is_multi}, announce={self.announce!r})"
        )
