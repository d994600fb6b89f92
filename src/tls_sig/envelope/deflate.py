"""Canonical-bit check for the zlib stream inside a token.

zlib skips some bits while inflating: the padding after a stored block
header and the padding after the final block. Two tokens that differ only
in those bits inflate to the same bytes, so :func:`check_canonical` walks
the block structure and requires every skipped bit to be zero, which is
what zlib and every other deflate encoder write.

The walk only reads block structure; it produces no output and assumes
the stream already inflated successfully.
"""
from __future__ import annotations

from collections.abc import Sequence

from tls_sig.errors import MalformedTokenError

_HEADER_SIZE = 2
_TRAILER_SIZE = 4
_MAX_BITS = 15

_STORED = 0
_FIXED = 1
_DYNAMIC = 2

# Extra bits per length symbol (257..285) and distance symbol (0..29).
_LENGTH_EXTRA = (0,) * 8 + (1,) * 4 + (2,) * 4 + (3,) * 4 + (4,) * 4 + (5,) * 4 + (0,)
_DISTANCE_EXTRA = tuple(max(0, (symbol >> 1) - 1) for symbol in range(30))
_CODE_LENGTH_ORDER = (16, 17, 18, 0, 8, 7, 9, 6, 10, 5, 11, 4, 12, 3, 13, 2, 14, 1, 15)


class _BitReader:
    """Least-significant-bit-first reader; holds fewer than 8 buffered bits between calls."""

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0
        self._bitbuf = 0
        self._bitcnt = 0

    def bits(self, count: int) -> int:
        value = self._bitbuf
        while self._bitcnt < count:
            if self.pos >= len(self.data):
                raise MalformedTokenError("deflate stream is truncated")
            value |= self.data[self.pos] << self._bitcnt
            self.pos += 1
            self._bitcnt += 8
        self._bitbuf = value >> count
        self._bitcnt -= count
        return value & ((1 << count) - 1)

    def align(self, where: str) -> None:
        """Drop the rest of the current byte; those bits must be zero."""
        if self._bitbuf:
            raise MalformedTokenError(f"token has non-zero padding bits {where}")
        self._bitbuf = 0
        self._bitcnt = 0


class _Huffman:
    """Canonical Huffman decoder built from per-symbol code lengths."""

    def __init__(self, lengths: Sequence[int]) -> None:
        self.counts = [0] * (_MAX_BITS + 1)
        for length in lengths:
            self.counts[length] += 1
        offsets = [0] * (_MAX_BITS + 2)
        for length in range(1, _MAX_BITS + 1):
            offsets[length + 1] = offsets[length] + self.counts[length]
        self.symbols = [0] * len(lengths)
        for symbol, length in enumerate(lengths):
            if length:
                self.symbols[offsets[length]] = symbol
                offsets[length] += 1

    def decode(self, reader: _BitReader) -> int:
        code = first = index = 0
        for length in range(1, _MAX_BITS + 1):
            code |= reader.bits(1)
            count = self.counts[length]
            if code - count < first:
                return self.symbols[index + (code - first)]
            index += count
            first = (first + count) << 1
            code <<= 1
        raise MalformedTokenError("deflate stream has an invalid Huffman code")


_FIXED_LENGTHS = _Huffman([8] * 144 + [9] * 112 + [7] * 24 + [8] * 8)
_FIXED_DISTANCES = _Huffman([5] * 30)


def check_canonical(raw: bytes) -> None:
    """Require the skipped bits of the zlib stream *raw* to be zero.

    Raises
    ------
    MalformedTokenError
        When a stored block header or the final block is followed by
        non-zero padding, or bytes follow the final block.
    """
    reader = _BitReader(raw[_HEADER_SIZE:len(raw) - _TRAILER_SIZE])
    final = 0
    while not final:
        final = reader.bits(1)
        kind = reader.bits(2)
        if kind == _STORED:
            _skip_stored(reader)
        elif kind == _FIXED:
            _skip_codes(reader, _FIXED_LENGTHS, _FIXED_DISTANCES)
        elif kind == _DYNAMIC:
            lengths, distances = _read_dynamic_tables(reader)
            _skip_codes(reader, lengths, distances)
        else:
            raise MalformedTokenError("deflate stream has an invalid block type")
    reader.align("after the final block")
    if reader.pos != len(reader.data):
        raise MalformedTokenError("deflate stream has bytes after the final block")


def _skip_stored(reader: _BitReader) -> None:
    reader.align("after a stored block header")
    start = reader.pos
    if start + 4 > len(reader.data):
        raise MalformedTokenError("deflate stream is truncated")
    length = int.from_bytes(reader.data[start:start + 2], "little")
    complement = int.from_bytes(reader.data[start + 2:start + 4], "little")
    if length != complement ^ 0xFFFF:
        raise MalformedTokenError("stored block length check failed")
    reader.pos = start + 4 + length
    if reader.pos > len(reader.data):
        raise MalformedTokenError("deflate stream is truncated")


def _skip_codes(reader: _BitReader, lengths: _Huffman, distances: _Huffman) -> None:
    while True:
        symbol = lengths.decode(reader)
        if symbol < 256:
            continue
        if symbol == 256:
            return
        symbol -= 257
        if symbol >= len(_LENGTH_EXTRA):
            raise MalformedTokenError("deflate stream has an invalid length symbol")
        reader.bits(_LENGTH_EXTRA[symbol])
        symbol = distances.decode(reader)
        if symbol >= len(_DISTANCE_EXTRA):
            raise MalformedTokenError("deflate stream has an invalid distance symbol")
        reader.bits(_DISTANCE_EXTRA[symbol])


def _read_dynamic_tables(reader: _BitReader) -> tuple[_Huffman, _Huffman]:
    literal_count = reader.bits(5) + 257
    distance_count = reader.bits(5) + 1
    code_count = reader.bits(4) + 4

    code_lengths = [0] * len(_CODE_LENGTH_ORDER)
    for position in range(code_count):
        code_lengths[_CODE_LENGTH_ORDER[position]] = reader.bits(3)
    code_lengths_decoder = _Huffman(code_lengths)

    total = literal_count + distance_count
    lengths: list[int] = []
    while len(lengths) < total:
        symbol = code_lengths_decoder.decode(reader)
        if symbol < 16:
            lengths.append(symbol)
            continue
        if symbol == 16:
            if not lengths:
                raise MalformedTokenError("deflate stream repeats a missing code length")
            repeat, times = lengths[-1], 3 + reader.bits(2)
        elif symbol == 17:
            repeat, times = 0, 3 + reader.bits(3)
        else:
            repeat, times = 0, 11 + reader.bits(7)
        lengths.extend([repeat] * times)
    if len(lengths) != total:
        raise MalformedTokenError("deflate stream has too many code lengths")
    return _Huffman(lengths[:literal_count]), _Huffman(lengths[literal_count:])


__all__ = ["check_canonical"]
