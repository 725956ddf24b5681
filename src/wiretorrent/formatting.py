"""
Text rendering of decoded bencode values and torrent metadata.
"""
import json

from .bencode import BencodeDict, BencodeInt, BencodeList, BencodeString


def to_jsonable(value):
    """Convert a Bencode value into plain JSON-compatible Python objects.

    Byte strings become text (invalid UTF-8 is replaced), dictionary keys
    likewise; key order is kept.
    """
    if isinstance(value, BencodeInt):
        return value.value
    if isinstance(value, BencodeString):
        return value.value.decode("utf-8", errors="replace")
    if isinstance(value, BencodeList):
        return [to_jsonable(item) for item in value]
    if isinstance(value, BencodeDict):
        return {
            key.decode("utf-8", errors="replace"): to_jsonable(item)
            for key, item in value.items()
        }
    raise TypeError(f"Not a Bencode value: {type(value)}")


def render_value(value) -> str:
    """Render a decoded value the way the ``decode`` command prints it."""
    if isinstance(value, BencodeInt):
        return str(value.value)
    return json.dumps(to_jsonable(value), ensure_ascii=False, separators=(",", ":"))


def render_info(meta) -> str:
    """Human-readable summary printed by the ``info`` command."""
    lines = [
        f"Tracker URL: {meta.announce}",
        f"Length: {meta.total_length}",
        f"Info Hash: {meta.info_hash.hex()}",
        f"Piece Length: {meta.piece_length}",
        "Piece Hashes:",
    ]
    lines.extend(digest.hex() for digest in meta.pieces)
    return "\n".join(lines)
