"""
Bencode decoder for BitTorrent metainfo and tracker responses.
"""
from ..exceptions import WiretorrentError
from .structure import BencodeDict, BencodeInt, BencodeList, BencodeString

_DIGITS = b"0123456789"

# lists and dicts nest by recursion; stay well inside the interpreter limit
MAX_DEPTH = 256


class BencodeDecodeError(WiretorrentError, ValueError):
    """Raised when the input is not well-formed bencode.

    ``offset`` is the index of the offending byte (or ``len(data)`` when the
    input ended early) and ``expected`` names the token class that was
    required there.
    """

    def __init__(self, offset: int, expected: str, found: bytes = b""):
        if found:
            message = f"Unexpected byte {found!r} at offset {offset}, expected {expected}"
        else:
            message = f"Unexpected end of input at offset {offset}, expected {expected}"
        super().__init__(message)
        self.offset = offset
        self.expected = expected
        self.found = found


class BencodeDecoder:
    """
    Decodes Bencoded byte strings into Bencode values.

    The cursor only moves forward; every parse method starts at ``self.i``
    and leaves it just past the value it consumed.
    """
    def __init__(self, data: bytes):
        self.data = bytes(data)
        self.i = 0  # cursor index
        self.depth = 0

    def decode(self):
        """Main decode entry point. Decodes the value at the start of the data."""
        return self._parse_value()

    # --------------------------
    # Low-level utilities
    # --------------------------

    def _peek(self, expected: str) -> int:
        if self.i >= len(self.data):
            raise BencodeDecodeError(self.i, expected)
        return self.data[self.i]

    def _fail(self, expected: str):
        raise BencodeDecodeError(self.i, expected, self.data[self.i:self.i + 1])

    def _consume(self, n=1) -> bytes:
        """Moves cursor forward by n bytes and returns the consumed chunk."""
        end = self.i + n
        if end > len(self.data):
            raise BencodeDecodeError(len(self.data), f"{n} more byte(s)")
        chunk = self.data[self.i:end]
        self.i = end
        return chunk

    def _parse_digits(self, terminator: int, expected: str, allow_zero=True) -> int:
        """Accumulates decimal digits up to ``terminator``, consuming it.

        A leading zero must be the whole number, so every value has exactly
        one encoding and re-encoding reproduces the input bytes.
        """
        ch = self._peek(expected)
        if ch not in _DIGITS:
            self._fail("digit")

        if ch == 0x30:
            if not allow_zero:
                self._fail("nonzero digit")
            self.i += 1
            after_zero = repr(chr(terminator))
            if self._peek(after_zero) != terminator:
                self._fail(after_zero)
            self.i += 1
            return 0

        value = 0
        while True:
            ch = self._peek(expected)
            if ch in _DIGITS:
                value = value * 10 + (ch - 0x30)
                self.i += 1
                continue
            if ch == terminator:
                self.i += 1
                return value
            self._fail(expected)

    # --------------------------
    # Parsing functions
    # --------------------------

    def _parse_value(self):
        ch = self._peek("value")

        if ch == ord("i"):
            return self._parse_int()

        if ch == ord("l"):
            return self._parse_list()

        if ch == ord("d"):
            return self._parse_dict()

        # Bencode strings start with their length
        return self._parse_string()

    def _parse_int(self):
        """Parses an integer from the Bencoded data."""
        self.i += 1  # skip 'i'

        negative = self._peek("'-' or digit") == ord("-")
        if negative:
            self.i += 1

        num = self._parse_digits(ord("e"), "'e' or digit", allow_zero=not negative)
        return BencodeInt(-num if negative else num)

    def _parse_string(self):
        """Parses a byte string from the Bencoded data."""
        length = self._parse_digits(ord(":"), "':' or digit")
        return BencodeString(self._consume(length))

    def _enter_container(self):
        self.depth += 1
        if self.depth > MAX_DEPTH:
            self._fail(f"nesting depth <= {MAX_DEPTH}")
        self.i += 1  # skip 'l' or 'd'

    def _parse_list(self):
        """Parses a list from the Bencoded data."""
        self._enter_container()
        items = []

        while self._peek("value or 'e'") != ord("e"):
            items.append(self._parse_value())

        self.i += 1  # skip 'e'
        self.depth -= 1
        return BencodeList(items)

    def _parse_dict(self):
        """Parses a dictionary from the Bencoded data."""
        self._enter_container()
        obj = {}

        while self._peek("key or 'e'") != ord("e"):
            key_offset = self.i
            # keys MUST be strings
            key = self._parse_string().value
            if key in obj:
                raise BencodeDecodeError(key_offset, "unique dictionary key", key)
            obj[key] = self._parse_value()

        self.i += 1  # skip 'e'
        self.depth -= 1
        return BencodeDict(obj)


def decode(data: bytes):
    """
    Convenience function to decode Bencoded data.

    Bytes following the first complete value are ignored.
    """
    return BencodeDecoder(data).decode()
