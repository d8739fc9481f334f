"""Bit-level input and canonical Huffman decoding for the deflate format."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

MAX_BITS = 15
MAX_LITERAL_CODES = 286
MAX_DISTANCE_CODES = 30
FIXED_LITERAL_CODES = 288

ERROR_MESSAGES: dict[int, str] = {
    2: "available inflate data did not terminate",
    1: "output space exhausted before completing inflate",
    -1: "invalid block type (type == 3)",
    -2: "stored block length did not match one's complement",
    -3: "dynamic block code description: too many length or distance codes",
    -4: "dynamic block code description: code lengths codes incomplete",
    -5: "dynamic block code description: repeat lengths with no first length",
    -6: "dynamic block code description: repeat more than specified lengths",
    -7: "dynamic block code description: invalid literal/length code lengths",
    -8: "dynamic block code description: invalid distance code lengths",
    -9: "dynamic block code description: missing end-of-block code",
    -10: "invalid literal/length or distance code in fixed or dynamic block",
    -11: "distance is too far back in fixed or dynamic block",
}


class InflateError(Exception):
    """Raised when deflate data cannot be decoded.

    ``code`` carries the numeric status: negative for malformed data,
    positive for a shortage of input or output space.
    """

    def __init__(self, code: int, message: str | None = None) -> None:
        self.code = code
        super().__init__(message or ERROR_MESSAGES.get(code, f"inflate error {code}"))


class InputExhausted(InflateError):
    """Raised when the compressed data ends before decoding is complete."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(2, message)


class BitReader:
    """Reads bits least-significant first from a byte sequence."""

    def __init__(self, data: bytes | bytearray | memoryview, position: int = 0) -> None:
        self._data = bytes(data)
        if not 0 <= position <= len(self._data):
            raise ValueError("position outside the data")
        self.position = position
        self._bitbuf = 0
        self._bitcnt = 0

    @property
    def remaining(self) -> int:
        """Number of whole bytes not yet loaded."""
        return len(self._data) - self.position

    def bits(self, need: int) -> int:
        """Return the next ``need`` bits as an integer."""
        if need < 0:
            raise ValueError("bit count must not be negative")
        val = self._bitbuf
        cnt = self._bitcnt
        pos = self.position
        while cnt < need:
            if pos >= len(self._data):
                raise InputExhausted()
            val |= self._data[pos] << cnt
            pos += 1
            cnt += 8
        self.position = pos
        self._bitbuf = val >> need
        self._bitcnt = cnt - need
        return val & ((1 << need) - 1)

    def align(self) -> None:
        """Discard the bits left over from the current byte."""
        self._bitbuf = 0
        self._bitcnt = 0

    def read_bytes(self, count: int) -> bytes:
        """Discard buffered bits and return the next ``count`` whole bytes."""
        if count < 0:
            raise ValueError("byte count must not be negative")
        self.align()
        if self.position + count > len(self._data):
            raise InputExhausted()
        chunk = self._data[self.position:self.position + count]
        self.position += count
        return chunk


@dataclass(frozen=True)
class HuffmanCode:
    """Decoding tables for a canonical Huffman code.

    ``counts[n]`` is the number of symbols with code length ``n`` (``counts[0]``
    counts the symbols not in the code); ``symbols`` lists the coded symbols
    ordered by length, then by value. ``left`` is zero for a complete code,
    positive for an incomplete one and negative for an over-subscribed one,
    whose tables cannot be used.
    """

    counts: tuple[int, ...]
    symbols: tuple[int, ...]
    left: int

    @classmethod
    def from_lengths(cls, lengths: Iterable[int]) -> "HuffmanCode":
        """Build the tables from a list of code lengths, one per symbol."""
        lengths = list(lengths)
        if any(not 0 <= length <= MAX_BITS for length in lengths):
            raise ValueError(f"code lengths must lie in 0..{MAX_BITS}")

        counts = [0] * (MAX_BITS + 1)
        for length in lengths:
            counts[length] += 1
        if counts[0] == len(lengths):
            return cls(tuple(counts), (), 0)

        left = 1
        for length in range(1, MAX_BITS + 1):
            left = (left << 1) - counts[length]
            if left < 0:
                return cls(tuple(counts), (), left)

        symbols = tuple(
            symbol
            for _, symbol in sorted(
                (length, symbol) for symbol, length in enumerate(lengths) if length
            )
        )
        return cls(tuple(counts), symbols, left)

    @property
    def is_complete(self) -> bool:
        return self.left == 0

    @property
    def is_oversubscribed(self) -> bool:
        return self.left < 0

    @property
    def code_count(self) -> int:
        """Number of symbols that have a code."""
        return sum(self.counts[1:])

    def decode(self, reader: BitReader) -> int:
        """Read one code from ``reader`` and return its symbol."""
        if self.is_oversubscribed:
            raise ValueError("an over-subscribed code cannot decode")
        code = first = index = 0
        for length in range(1, MAX_BITS + 1):
            code |= reader.bits(1)
            count = self.counts[length]
            if code - count < first:
                return self.symbols[index + (code - first)]
            index += count
            first = (first + count) << 1
            code <<= 1
        raise InflateError(-10)