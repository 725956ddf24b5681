"""
Bencode encoder for BitTorrent metainfo and tracker responses.
"""
from .structure import BencodeDict, BencodeInt, BencodeList, BencodeString


def encode(obj) -> bytes:
    """Encodes a Python object or BencodeType into bencoded bytes."""

    if isinstance(obj, bool):
        raise TypeError("Cannot bencode a bool")

    if isinstance(obj, (int, BencodeInt)):
        value = obj if isinstance(obj, int) else obj.value
        return encode_int(value)

    if isinstance(obj, str):
        return encode_str(obj)

    if isinstance(obj, BencodeString):
        return encode_bytes(obj.value)

    if isinstance(obj, (bytes, bytearray)):
        return encode_bytes(bytes(obj))

    if isinstance(obj, (list, tuple, BencodeList)):
        value = obj.value if isinstance(obj, BencodeList) else obj
        return encode_list(value)

    if isinstance(obj, (dict, BencodeDict)):
        return encode_dict(obj.items())

    raise TypeError(f"Cannot bencode object of type {type(obj)}")


# ------------------------------------------------------------
#   Encoding primitives
# ------------------------------------------------------------

def encode_int(n: int) -> bytes:
    """Encodes an integer to bencoded bytes (e.g., i123e)."""
    return f"i{n}e".encode()


def encode_bytes(b: bytes) -> bytes:
    """Encodes bytes to bencoded bytes (e.g., 4:spam)."""
    return str(len(b)).encode() + b":" + b


def encode_str(s: str) -> bytes:
    """Encodes a string to bencoded bytes (e.g., 4:spam)."""
    return encode_bytes(s.encode())


def encode_list(lst) -> bytes:
    """Encodes a list to bencoded bytes (e.g., l4:spame)."""
    encoded_items = b"".join(encode(x) for x in lst)
    return b"l" + encoded_items + b"e"


def encode_dict(items) -> bytes:
    """Encodes dictionary entries to bencoded bytes (e.g., d3:cow3:moo4:spam4:eggse).

    Entries are written in the order given; keys are not sorted.
    """
    parts = [b"d"]

    for key, value in items:
        if isinstance(key, str):
            key = key.encode()
        elif not isinstance(key, (bytes, bytearray)):
            raise TypeError(f"Cannot bencode dictionary key of type {type(key)}")
        parts.append(encode_bytes(bytes(key)))
        parts.append(encode(value))

    parts.append(b"e")
    return b"".join(parts)
