"""Decoding of raw deflate streams into bytes."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from tilenav.deflate_codes import (
    FIXED_LITERAL_CODES,
    MAX_DISTANCE_CODES,
    MAX_LITERAL_CODES,
    BitReader,
    HuffmanCode,
    InflateError,
)

# Base lengths and extra bits for length symbols 257..285.
_LENGTH_BASE = (
    3, 4, 5, 6, 7, 8, 9, 10, 11, 13, 15, 17, 19, 23, 27, 31,
    35, 43, 51, 59, 67, 83, 99, 115, 131, 163, 195, 227, 258,
)
_LENGTH_EXTRA = (
    0, 0, 0, 0, 0, 0, 0, 0, 1, 1, 1, 1, 2, 2, 2, 2,
    3, 3, 3, 3, 4, 4, 4, 4, 5, 5, 5, 5, 0,
)
# Base distances and extra bits for distance symbols 0..29.
_DIST_BASE = (
    1, 2, 3, 4, 5, 7, 9, 13, 17, 25, 33, 49, 65, 97, 129, 193,
    257, 385, 513, 769, 1025, 1537, 2049, 3073, 4097, 6145,
    8193, 12289, 16385, 24577,
)
_DIST_EXTRA = (
    0, 0, 0, 0, 1, 1, 2, 2, 3, 3, 4, 4, 5, 5, 6, 6,
    7, 7, 8, 8, 9, 9, 10, 10, 11, 11, 12, 12, 13, 13,
)
# Order in which code length code lengths are stored.
_CODE_LENGTH_ORDER = (16, 17, 18, 0, 8, 7, 9, 6, 10, 5, 11, 4, 12, 3, 13, 2, 14, 1, 15)

_END_OF_BLOCK = 256


class OutputExhausted(InflateError):
    """Raised when the output limit is reached before decoding is complete."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(1, message)


@dataclass(frozen=True)
class InflateResult:
    """Decoded bytes and the number of compressed bytes they took."""

    data: bytes
    consumed: int

    @property
    def size(self) -> int:
        return len(self.data)


class _Sink:
    """Collects decoded output, or only counts it when not keeping data."""

    def __init__(self, limit: int | None, keep: bool) -> None:
        self.buffer: bytearray | None = bytearray() if keep else None
        self.limit = limit
        self.count = 0

    def _ensure_room(self, extra: int) -> None:
        if self.buffer is not None and self.limit is not None:
            if self.count + extra > self.limit:
                raise OutputExhausted()

    def literal(self, value: int) -> None:
        self._ensure_room(1)
        if self.buffer is not None:
            self.buffer.append(value)
        self.count += 1

    def extend(self, chunk: bytes) -> None:
        self._ensure_room(len(chunk))
        if self.buffer is not None:
            self.buffer += chunk
        self.count += len(chunk)

    def copy(self, distance: int, length: int) -> None:
        if distance > self.count:
            raise InflateError(-11)
        self._ensure_room(length)
        if self.buffer is not None:
            buf = self.buffer
            remaining = length
            while remaining > 0:
                start = len(buf) - distance
                chunk = buf[start:start + min(remaining, distance)]
                buf += chunk
                remaining -= len(chunk)
        self.count += length


@lru_cache(maxsize=1)
def _fixed_codes() -> tuple[HuffmanCode, HuffmanCode]:
    lengths = [8] * 144 + [9] * 112 + [7] * 24 + [8] * (FIXED_LITERAL_CODES - 280)
    literal = HuffmanCode.from_lengths(lengths)
    distance = HuffmanCode.from_lengths([5] * MAX_DISTANCE_CODES)
    return literal, distance


def _stored(reader: BitReader, sink: _Sink) -> None:
    reader.align()
    header = reader.read_bytes(4)
    length = header[0] | (header[1] << 8)
    if header[2] != (~length & 0xFF) or header[3] != ((~length >> 8) & 0xFF):
        raise InflateError(-2)
    if reader.remaining < length:
        reader.read_bytes(length)  # raises InputExhausted
    if sink.buffer is not None and sink.limit is not None and sink.count + length > sink.limit:
        raise OutputExhausted()
    sink.extend(reader.read_bytes(length))


def _codes(reader: BitReader, sink: _Sink, literal: HuffmanCode, distance: HuffmanCode) -> None:
    while True:
        symbol = literal.decode(reader)
        if symbol < _END_OF_BLOCK:
            sink.literal(symbol)
        elif symbol == _END_OF_BLOCK:
            return
        else:
            symbol -= 257
            if symbol >= len(_LENGTH_BASE):
                raise InflateError(-10)
            length = _LENGTH_BASE[symbol] + reader.bits(_LENGTH_EXTRA[symbol])
            symbol = distance.decode(reader)
            dist = _DIST_BASE[symbol] + reader.bits(_DIST_EXTRA[symbol])
            sink.copy(dist, length)


def _fixed(reader: BitReader, sink: _Sink) -> None:
    literal, distance = _fixed_codes()
    _codes(reader, sink, literal, distance)


def _incomplete_not_allowed(code: HuffmanCode, count: int) -> bool:
    if code.left == 0:
        return False
    return code.left < 0 or count != code.counts[0] + code.counts[1]


def _dynamic(reader: BitReader, sink: _Sink) -> None:
    nlen = reader.bits(5) + 257
    ndist = reader.bits(5) + 1
    ncode = reader.bits(4) + 4
    if nlen > MAX_LITERAL_CODES or ndist > MAX_DISTANCE_CODES:
        raise InflateError(-3)

    code_lengths = [0] * 19
    for position in _CODE_LENGTH_ORDER[:ncode]:
        code_lengths[position] = reader.bits(3)
    length_code = HuffmanCode.from_lengths(code_lengths)
    if length_code.left != 0:
        raise InflateError(-4)

    total = nlen + ndist
    lengths: list[int] = []
    while len(lengths) < total:
        symbol = length_code.decode(reader)
        if symbol < 16:
            lengths.append(symbol)
            continue
        repeated = 0
        if symbol == 16:
            if not lengths:
                raise InflateError(-5)
            repeated = lengths[-1]
            times = 3 + reader.bits(2)
        elif symbol == 17:
            times = 3 + reader.bits(3)
        else:
            times = 11 + reader.bits(7)
        if len(lengths) + times > total:
            raise InflateError(-6)
        lengths.extend([repeated] * times)

    if lengths[_END_OF_BLOCK] == 0:
        raise InflateError(-9)

    literal = HuffmanCode.from_lengths(lengths[:nlen])
    if _incomplete_not_allowed(literal, nlen):
        raise InflateError(-7)
    distance = HuffmanCode.from_lengths(lengths[nlen:])
    if _incomplete_not_allowed(distance, ndist):
        raise InflateError(-8)

    _codes(reader, sink, literal, distance)


def _run(data: bytes | bytearray | memoryview, sink: _Sink) -> int:
    reader = BitReader(data)
    try:
        while True:
            last = reader.bits(1)
            block_type = reader.bits(2)
            if block_type == 0:
                _stored(reader, sink)
            elif block_type == 1:
                _fixed(reader, sink)
            elif block_type == 2:
                _dynamic(reader, sink)
            else:
                raise InflateError(-1)
            if last:
                return reader.position
    except InflateError as exc:
        if exc.code < 0:
            # Where decoding stopped, to help diagnose a broken stream.
            exc.consumed = reader.position
            exc.produced = sink.count
        raise


def inflate(data: bytes | bytearray | memoryview, max_output: int | None = None) -> InflateResult:
    """Decode a raw deflate stream.

    ``max_output`` bounds the decoded size; exceeding it raises
    ``OutputExhausted``. Truncated input raises ``InputExhausted`` and
    malformed data raises ``InflateError`` with a negative code.
    """
    if max_output is not None and max_output < 0:
        raise ValueError("max_output must not be negative")
    sink = _Sink(max_output, keep=True)
    consumed = _run(data, sink)
    assert sink.buffer is not None
    return InflateResult(bytes(sink.buffer), consumed)


def inflated_size(data: bytes | bytearray | memoryview) -> int:
    """Return the decoded size of a raw deflate stream without keeping the output."""
    sink = _Sink(None, keep=False)
    _run(data, sink)
    return sink.count