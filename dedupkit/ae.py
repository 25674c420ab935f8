"""Asymmetric-extremum content-defined chunking."""

from __future__ import annotations

import math


class AEChunker:
    """Cut a chunk once a local maximum stays unbeaten for a whole window."""

    def __init__(self, avg_size: int = 8192, max_size: int = 65536) -> None:
        self.avg_size = avg_size
        self.max_size = max_size
        self.window_size = int(avg_size / (math.e - 1))

    def chunk(self, data: bytes) -> int:
        """Return the length of the first chunk of ``data``."""
        n = len(data)
        if n <= self.window_size + 8:
            return n

        def value(pos: int) -> int:
            return int.from_bytes(data[pos : pos + 8], "big")

        best = 0
        best_value = value(0)
        for curr in range(1, n - 8 + 1):
            current = value(curr)
            if not current > best_value:
                best, best_value = curr, current
                continue
            if curr == best + self.window_size or curr == self.max_size:
                return curr
        return n