"""
Data structures for representing Bencoded types.

Values are immutable once constructed: lists are stored as tuples and
dictionaries behind a read-only mapping proxy. Dictionaries keep the order
in which their keys were decoded.
"""
from types import MappingProxyType

__all__ = [
    "BencodeType",
    "BencodeInt",
    "BencodeString",
    "BencodeList",
    "BencodeDict",
]


class BencodeType:
    """Base class for all Bencode data types."""
    __slots__ = ("_value",)

    @property
    def value(self):
        return self._value

    def __setattr__(self, name, value):
        if name != "_value" or hasattr(self, "_value"):
            raise AttributeError(f"{type(self).__name__} is immutable")
        super().__setattr__(name, value)

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self._value == other._value

    def __repr__(self):
        return f"{type(self).__name__}({self._value!r})"


class BencodeInt(BencodeType):
    """Represents a Bencoded integer."""
    __slots__ = ()

    def __init__(self, value: int):
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError("BencodeInt requires an integer.")
        self._value = value

    def __hash__(self):
        return hash(("i", self._value))


class BencodeString(BencodeType):
    """Represents a Bencoded byte string."""
    __slots__ = ()

    def __init__(self, value: bytes):
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise TypeError("BencodeString requires bytes.")
        self._value = bytes(value)

    def __hash__(self):
        return hash(("s", self._value))


class BencodeList(BencodeType):
    """Represents a Bencoded list."""
    __slots__ = ()

    def __init__(self, value):
        if not isinstance(value, (list, tuple)):
            raise TypeError("BencodeList requires a list.")
        for item in value:
            if not isinstance(item, BencodeType):
                raise TypeError("BencodeList items must be Bencode values.")
        self._value = tuple(value)

    def __len__(self):
        return len(self._value)

    def __iter__(self):
        return iter(self._value)

    def __getitem__(self, index):
        return self._value[index]

    __hash__ = None


class BencodeDict(BencodeType):
    """Represents a Bencoded dictionary."""
    __slots__ = ()

    def __init__(self, value: dict):
        if not isinstance(value, dict):
            raise TypeError("BencodeDict requires a dict.")
        # keys must be bytes (bencode requirement)
        for k, v in value.items():
            if not isinstance(k, bytes):
                raise TypeError("BencodeDict keys must be bytes.")
            if not isinstance(v, BencodeType):
                raise TypeError("BencodeDict values must be Bencode values.")
        self._value = MappingProxyType(dict(value))

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        # order is part of a dictionary's identity: it decides the encoding
        return list(self._value.items()) == list(other._value.items())

    def __len__(self):
        return len(self._value)

    def __contains__(self, key):
        return key in self._value

    def __getitem__(self, key):
        return self._value[key]

    def get(self, key, default=None):
        return self._value.get(key, default)

    def keys(self):
        return self._value.keys()

    def items(self):
        return self._value.items()

    def __repr__(self):
        return f"BencodeDict({dict(self._value)!r})"

    __hash__ = None
