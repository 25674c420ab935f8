"""Core data model: chunk flags, option enumerations, chunks and segments."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, IntFlag

TEMPORARY_ID = -1
"""Container or segment id of a chunk that is not stored yet."""

DEFAULT_BLOCK_SIZE = 1048576
"""Size of the blocks handed from the read phase to the chunk phase."""

FINGERPRINT_SIZE = 32
"""Length of a fingerprint in bytes."""

CONFIG_LINE_MAX = 1024
MAX_LOG_MESSAGE = 1024

_ZERO_FINGERPRINT = bytes(FINGERPRINT_SIZE)


class ChunkFlag(IntFlag):
    """State and signal bits carried by a chunk."""

    UNIQUE = 0x0000
    DUPLICATE = 0x0100
    SPARSE = 0x0200
    OUT_OF_ORDER = 0x0400
    IN_CACHE = 0x0800
    REWRITE_DENIED = 0x1000
    REPROCESS = 0x2000
    PROCESSING = 0x4000

    FILE_START = 0x0001
    FILE_END = 0x0002
    SEGMENT_START = 0x0004
    SEGMENT_END = 0x0008
    CONTAINER_START = 0x0010
    CONTAINER_END = 0x0020

    # Restore reuses the container bits.
    WAIT = 0x0010
    READY = 0x0020


_FILE_BOUNDARY = ChunkFlag.FILE_START | ChunkFlag.FILE_END
_SIGNALS = (
    ChunkFlag.FILE_START
    | ChunkFlag.FILE_END
    | ChunkFlag.SEGMENT_START
    | ChunkFlag.SEGMENT_END
    | ChunkFlag.CONTAINER_START
    | ChunkFlag.CONTAINER_END
)


class SimulationLevel(IntEnum):
    """How much of the storage work is simulated, in ascending order."""

    NO = 0
    RESTORE = 1
    APPEND = 2
    ALL = 3


class LogLevel(IntEnum):
    DEBUG = 0
    VERBOSE = 1
    NOTICE = 2
    WARNING = 3


class TraceFormat(IntEnum):
    DESTOR = 0
    FSL = 1


class ChunkAlgorithm(IntEnum):
    FIXED = 0
    RABIN = 1
    NORMALIZED_RABIN = 2
    FILE = 3
    AE = 4
    TTTD = 5


class IndexCategory(IntEnum):
    EXACT = 0
    NEAR_EXACT = 1
    PHYSICAL_LOCALITY = 2
    LOGICAL_LOCALITY = 3


class IndexSpecific(IntEnum):
    NO = 0
    DDFS = 1
    EXTREME_BINNING = 2
    SILO = 3
    SPARSE = 4
    SAMPLED = 5
    BLOCK_LOCALITY_CACHING = 6


class KeyValueStore(IntEnum):
    HTABLE = 0
    MYSQL = 1
    ROR = 2


class SamplingMethod(IntEnum):
    RANDOM = 1
    MIN = 2
    UNIFORM = 3
    OPTIMIZED_MIN = 4


class SegmentAlgorithm(IntEnum):
    FIXED = 0
    CONTENT_DEFINED = 1
    FILE_DEFINED = 2


class SegmentSelection(IntEnum):
    BASE = 0
    TOP = 1
    MIX = 2


class RestoreCache(IntEnum):
    LRU = 0
    OPT = 1
    ASM = 2


class RewriteAlgorithm(IntEnum):
    NO = 0
    CFL_SELECTIVE_DEDUPLICATION = 1
    CONTEXT_BASED = 2
    CAPPING = 3


@dataclass
class Chunk:
    """A piece of a backup stream, or a signal marking a boundary in it."""

    size: int = 0
    flag: ChunkFlag = ChunkFlag.UNIQUE
    id: int = TEMPORARY_ID
    fp: bytes = _ZERO_FINGERPRINT
    old_fp: bytes = _ZERO_FINGERPRINT
    data: bytes | None = None

    def has(self, flag: ChunkFlag) -> bool:
        """Return True if any bit of ``flag`` is set."""
        return bool(self.flag & flag)

    def mark(self, flag: ChunkFlag) -> None:
        self.flag = ChunkFlag(self.flag | flag)

    def clear(self, flag: ChunkFlag) -> None:
        self.flag = ChunkFlag(self.flag & ~flag)

    def is_file_boundary(self) -> bool:
        return self.has(_FILE_BOUNDARY)

    def is_signal(self) -> bool:
        return self.has(_SIGNALS)


@dataclass
class Segment:
    """A run of chunks handled together by the index."""

    id: int = TEMPORARY_ID
    chunk_num: int = 0
    chunks: list[Chunk] = field(default_factory=list)
    features: set[bytes] | None = None

    def append(self, chunk: Chunk) -> None:
        """Add a chunk; file boundaries are kept but not counted."""
        self.chunks.append(chunk)
        if not chunk.is_file_boundary():
            self.chunk_num += 1

    def pop_all(self) -> list[Chunk]:
        """Remove and return every chunk in order, leaving the segment empty."""
        chunks, self.chunks = self.chunks, []
        self.chunk_num = 0
        return chunks