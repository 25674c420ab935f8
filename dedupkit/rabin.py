"""Rabin fingerprints over GF(2) and the content-defined chunkers built on them."""

from __future__ import annotations

from collections.abc import Iterator
from functools import lru_cache

FINGERPRINT_PT = 0xBFE6B8A5BF378D83
"""Irreducible polynomial used for every rolling fingerprint."""

BREAKMARK_VALUE = 0x78
"""Masked fingerprint value that marks a chunk boundary."""

WINDOW_SIZE = 48
"""Number of bytes covered by the rolling window."""

_MASK64 = (1 << 64) - 1
_MSB64 = 1 << 63


def fls64(value: int) -> int:
    """Return the 1-based position of the highest set bit, or 0 for zero."""
    return (value & _MASK64).bit_length()


def polymod(nh: int, nl: int, d: int) -> int:
    """Reduce the 128-bit polynomial ``nh:nl`` modulo ``d``."""
    if d & _MASK64 == 0:
        raise ValueError("modulus polynomial must not be zero")
    k = fls64(d) - 1
    d = (d << (63 - k)) & _MASK64
    nh &= _MASK64
    nl &= _MASK64
    if nh:
        if nh & _MSB64:
            nh ^= d
        for i in range(62, -1, -1):
            if nh & (1 << i):
                nh ^= d >> (63 - i)
                nl ^= (d << (i + 1)) & _MASK64
    for i in range(63, k - 1, -1):
        if nl & (1 << i):
            nl ^= d >> (63 - i)
    return nl


def polymult(x: int, y: int) -> tuple[int, int]:
    """Carry-less product of two 64-bit polynomials as (high, low) words."""
    x &= _MASK64
    y &= _MASK64
    ph = 0
    pl = y if x & 1 else 0
    for i in range(1, 64):
        if x & (1 << i):
            ph ^= y >> (64 - i)
            pl ^= (y << i) & _MASK64
    return ph, pl


def polymmult(x: int, y: int, d: int) -> int:
    """Product of ``x`` and ``y`` reduced modulo ``d``."""
    high, low = polymult(x, y)
    return polymod(high, low, d)


@lru_cache(maxsize=None)
def _tables(poly: int) -> tuple[int, tuple[int, ...], tuple[int, ...]]:
    xshift = fls64(poly) - 1
    shift = xshift - 8
    t1 = polymod(0, 1 << xshift, poly)
    t_table = tuple(
        (polymmult(j, t1, poly) | (j << xshift)) & _MASK64 for j in range(256)
    )

    def append8(p: int, m: int) -> int:
        return (((p << 8) & _MASK64) | m) ^ t_table[p >> shift]

    sizeshift = 1
    for _ in range(1, WINDOW_SIZE):
        sizeshift = append8(sizeshift, 0)
    u_table = tuple(polymmult(i, sizeshift, poly) for i in range(256))
    return shift, t_table, u_table


class RabinChunker:
    """Rabin, normalized Rabin and TTTD boundary detection.

    Each chunking method returns the length of the first chunk of ``data``.
    """

    def __init__(
        self,
        avg_size: int = 8192,
        min_size: int = 1024,
        max_size: int = 65536,
        poly: int = FINGERPRINT_PT,
    ) -> None:
        self.avg_size = avg_size
        self.min_size = min_size
        self.max_size = max_size
        self.poly = poly
        self.mask = avg_size - 1
        self._shift, self._t, self._u = _tables(poly)
        self._window = bytearray(WINDOW_SIZE)
        self._pos = -1
        self.fp = 0

    def _append8(self, p: int, m: int) -> int:
        return (((p << 8) & _MASK64) | m) ^ self._t[p >> self._shift]

    def reset_window(self) -> None:
        """Clear the running fingerprint."""
        self.fp = 0

    def slide8(self, byte: int) -> int:
        """Slide one byte into the persistent window; return the new fingerprint."""
        self._pos = (self._pos + 1) % WINDOW_SIZE
        outgoing = self._window[self._pos]
        self._window[self._pos] = byte
        self.fp = self._append8(self.fp ^ self._u[outgoing], byte)
        return self.fp

    def _rolling(self, data: bytes, end: int) -> Iterator[tuple[int, int]]:
        window = bytearray(WINDOW_SIZE)
        pos = -1
        fp = 0
        u_table = self._u
        for i in range(self.min_size, end):
            byte = data[i - 1]
            pos = (pos + 1) % WINDOW_SIZE
            outgoing = window[pos]
            window[pos] = byte
            fp = self._append8(fp ^ u_table[outgoing], byte)
            yield i, fp

    def _end(self, n: int) -> int:
        return min(n, self.max_size)

    def rabin(self, data: bytes) -> int:
        """Standard Rabin chunking."""
        n = len(data)
        if n <= self.min_size:
            return n
        end = self._end(n)
        for i, fp in self._rolling(data, end):
            if fp & self.mask == BREAKMARK_VALUE:
                return i
        return max(self.min_size, end)

    def normalized(self, data: bytes) -> int:
        """Rabin chunking with a stricter mask before the average size and a looser one after."""
        n = len(data)
        if n <= self.min_size:
            return n
        small_mask = self.avg_size * 2 - 1
        large_mask = self.avg_size // 2 - 1
        end = self._end(n)
        for i, fp in self._rolling(data, end):
            mask = small_mask if i < self.avg_size else large_mask
            if fp & mask == BREAKMARK_VALUE:
                return i
        return max(self.min_size, end)

    def tttd(self, data: bytes) -> int:
        """Two-thresholds two-divisors chunking with a backup divisor."""
        n = len(data)
        if n <= self.min_size:
            return n
        back_mask = self.avg_size // 2 - 1
        backup = 0
        end = self._end(n)
        for i, fp in self._rolling(data, end):
            if fp & back_mask == BREAKMARK_VALUE:
                if fp & self.mask == BREAKMARK_VALUE:
                    return i
                backup = i
        return backup if backup else max(self.min_size, end)