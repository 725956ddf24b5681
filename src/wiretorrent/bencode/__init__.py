"""
Bencode package for encoding and decoding BitTorrent data.
"""
from .decoder import BencodeDecodeError, decode
from .encoder import encode
from .structure import BencodeDict, BencodeInt, BencodeList, BencodeString, BencodeType

__all__ = [
    'decode',
    'encode',
    'BencodeDecodeError',
    'BencodeType',
    'BencodeInt',
    'BencodeString',
    'BencodeList',
    'BencodeDict',
]
