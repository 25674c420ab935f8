"""Chunk phase: choose a chunking function and split file streams into chunks."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator

from .ae import AEChunker
from .model import ChunkAlgorithm, ChunkFlag, Chunk, LogLevel
from .rabin import RabinChunker
from .state import EventLog, Settings

Chunking = Callable[[bytes], int]


def round_down_power_of_two(value: int) -> int:
    """Return the largest power of two not above ``value``."""
    if value <= 0:
        raise ValueError("value must be positive")
    return 1 << (value.bit_length() - 1)


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ValueError(message)


def _fixed(size: int) -> Chunking:
    def cut(data: bytes) -> int:
        return min(size, len(data))

    return cut


def make_chunking(settings: Settings, container_capacity: int) -> Chunking:
    """Return the chunking function chosen by ``settings``, adjusting its sizes.

    ``container_capacity`` is the payload a container holds; no chunk may
    exceed it.
    """
    algorithm = settings.chunk_algorithm
    rabin_family = (
        ChunkAlgorithm.RABIN,
        ChunkAlgorithm.NORMALIZED_RABIN,
        ChunkAlgorithm.TTTD,
    )
    if algorithm in rabin_family:
        settings.chunk_avg_size = round_down_power_of_two(settings.chunk_avg_size)
        _require(
            settings.chunk_avg_size >= settings.chunk_min_size,
            "average chunk size is below the minimum",
        )
        _require(
            settings.chunk_avg_size <= settings.chunk_max_size,
            "average chunk size exceeds the maximum",
        )
        _require(
            settings.chunk_max_size <= container_capacity,
            "maximum chunk size exceeds the container capacity",
        )
        chunker = RabinChunker(
            settings.chunk_avg_size, settings.chunk_min_size, settings.chunk_max_size
        )
        if algorithm == ChunkAlgorithm.RABIN:
            return chunker.rabin
        if algorithm == ChunkAlgorithm.NORMALIZED_RABIN:
            return chunker.normalized
        return chunker.tttd
    if algorithm == ChunkAlgorithm.FIXED:
        _require(
            settings.chunk_avg_size <= container_capacity,
            "chunk size exceeds the container capacity",
        )
        settings.chunk_max_size = settings.chunk_avg_size
        return _fixed(settings.chunk_avg_size)
    if algorithm == ChunkAlgorithm.FILE:
        # Approximate file-level deduplication: cut only at file ends or capacity.
        settings.chunk_avg_size = container_capacity
        settings.chunk_max_size = container_capacity
        return _fixed(container_capacity)
    if algorithm == ChunkAlgorithm.AE:
        _require(
            settings.chunk_avg_size <= settings.chunk_max_size,
            "average chunk size exceeds the maximum",
        )
        _require(
            settings.chunk_max_size <= container_capacity,
            "maximum chunk size exceeds the container capacity",
        )
        return AEChunker(settings.chunk_avg_size, settings.chunk_max_size).chunk
    raise ValueError(f"Invalid chunking algorithm: {algorithm!r}")


class ChunkStream:
    """Re-cut the data blocks of each file into content chunks.

    The input is a sequence of files, each a FILE_START chunk, data blocks
    and a FILE_END chunk. Signal chunks are passed through unchanged.
    """

    def __init__(
        self,
        chunking: Chunking,
        max_size: int,
        on_file_end: Callable[[], None] | None = None,
        log: EventLog | None = None,
    ) -> None:
        self.chunking = chunking
        self.max_size = max_size
        self.on_file_end = on_file_end
        self.log = log
        self.chunk_num = 0
        self.zero_chunk_num = 0
        self.zero_chunk_size = 0

    def _note(self, message: str) -> None:
        if self.log is not None:
            self.log.log(LogLevel.VERBOSE, message)

    def process(self, items: Iterable[Chunk]) -> Iterator[Chunk]:
        """Yield the signal chunks and the newly cut data chunks in order."""
        stream = iter(items)
        for start in stream:
            if not start.has(ChunkFlag.FILE_START):
                raise ValueError("expected the start of a file")
            yield start

            pending = bytearray()
            end: Chunk | None = None
            while True:
                while end is None and len(pending) < self.max_size:
                    item = next(stream, None)
                    if item is None:
                        raise ValueError("stream ended inside a file")
                    if item.has(ChunkFlag.FILE_END):
                        end = item
                    else:
                        pending += item.data or b""
                if not pending:
                    break
                size = self.chunking(bytes(pending))
                if not 0 < size <= len(pending):
                    raise ValueError(f"chunking returned an invalid size {size}")
                piece = bytes(pending[:size])
                del pending[:size]
                if not any(piece):
                    self._note(f"Chunk phase: {self.chunk_num}th chunk of {size} zero bytes")
                    self.zero_chunk_num += 1
                    self.zero_chunk_size += size
                else:
                    self._note(f"Chunk phase: {self.chunk_num}th chunk of {size} bytes")
                self.chunk_num += 1
                yield Chunk(size=size, data=piece)

            yield end
            if self.on_file_end is not None:
                self.on_file_end()