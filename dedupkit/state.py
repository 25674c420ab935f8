"""Global settings, persistent statistics and the event log."""

from __future__ import annotations

import math
import struct
import sys
from dataclasses import dataclass, field
from os import PathLike
from typing import TextIO

from .model import (
    MAX_LOG_MESSAGE,
    ChunkAlgorithm,
    IndexCategory,
    IndexSpecific,
    KeyValueStore,
    LogLevel,
    RestoreCache,
    RewriteAlgorithm,
    SamplingMethod,
    SegmentAlgorithm,
    SegmentSelection,
    SimulationLevel,
    TraceFormat,
)

_STAT_FORMAT = struct.Struct("<8q4i")

_STAT_FIELDS = (
    "chunk_num",
    "stored_chunk_num",
    "data_size",
    "stored_data_size",
    "zero_chunk_num",
    "zero_chunk_size",
    "rewritten_chunk_num",
    "rewritten_chunk_size",
    "index_memory_footprint",
    "live_container_num",
)


@dataclass
class Settings:
    """Every tunable option together with the accumulated statistics."""

    working_directory: str = "/home/data/working/"
    simulation_level: SimulationLevel = SimulationLevel.NO
    trace_format: TraceFormat = TraceFormat.DESTOR
    verbosity: LogLevel = LogLevel.WARNING

    upgrade_level: int = 0
    upgrade_do_split_merge: bool = False

    chunk_algorithm: ChunkAlgorithm = ChunkAlgorithm.RABIN
    chunk_max_size: int = 65536
    chunk_min_size: int = 1024
    chunk_avg_size: int = 8192

    restore_cache: list = field(default_factory=lambda: [RestoreCache.LRU, 1024])
    restore_opt_window_size: int = 1000000

    index_category: list = field(
        default_factory=lambda: [IndexCategory.NEAR_EXACT, IndexCategory.PHYSICAL_LOCALITY]
    )
    index_specific: IndexSpecific = IndexSpecific.NO
    index_cache_size: int = 4096
    external_cache_size: int = 0
    fake_containers: int = 0
    cdc_max_size: int = 0
    cdc_min_size: int = 0
    cdc_exp_size: int = 0
    cdc_ratio: int = 0
    index_bloom_filter_size: int = 0
    index_sampling_method: list = field(default_factory=lambda: [SamplingMethod.UNIFORM, 1])
    index_key_value_store: KeyValueStore = KeyValueStore.HTABLE
    index_value_length: int = 1
    index_key_size: int = 32
    index_segment_algorithm: list = field(
        default_factory=lambda: [SegmentAlgorithm.FIXED, 1024]
    )
    index_segment_min: int = 128
    index_segment_max: int = 10240
    index_segment_selection_method: list = field(
        default_factory=lambda: [SegmentSelection.TOP, 1]
    )
    index_segment_prefetch: int = 0

    rewrite_algorithm: list = field(default_factory=lambda: [RewriteAlgorithm.NO, 1024])
    rewrite_enable_cfl_switch: int = 0
    rewrite_cfl_require: float = 0.0
    rewrite_cfl_usage_threshold: float = 0.0
    rewrite_cbr_limit: float = 0.0
    rewrite_cbr_minimal_utility: float = 0.0
    rewrite_capping_level: int = 0
    rewrite_enable_har: int = 0
    rewrite_har_utilization_threshold: float = 0.5
    rewrite_har_rewrite_limit: float = 0.05
    rewrite_enable_cache_aware: int = 0

    chunk_num: int = 0
    stored_chunk_num: int = 0
    data_size: int = 0
    stored_data_size: int = 0
    zero_chunk_num: int = 0
    zero_chunk_size: int = 0
    rewritten_chunk_num: int = 0
    rewritten_chunk_size: int = 0
    index_memory_footprint: int = 0
    live_container_num: int = 0

    # A negative value keeps every backup.
    backup_retention_time: int = -1


class SimulationConflictError(ValueError):
    """The stored simulation level cannot be mixed with the requested one."""


@dataclass
class EventLog:
    """Writes messages at or above a verbosity to a set of text streams."""

    verbosity: int = LogLevel.WARNING
    sinks: list[TextIO] | None = None

    def log(self, level: int, message: str) -> bool:
        """Write the message if its level passes; return whether it was written."""
        if (int(level) & 0xFF) < int(self.verbosity):
            return False
        text = message[: MAX_LOG_MESSAGE - 1]
        for sink in self.sinks if self.sinks is not None else [sys.stdout]:
            sink.write(text + "\n")
            sink.flush()
        return True


def check_simulation_level(last_level: int, current_level: int) -> None:
    """Raise if a store built at one simulation level is reused at an incompatible one."""
    restore, append = SimulationLevel.RESTORE, SimulationLevel.APPEND
    if (last_level <= restore and current_level >= append) or (
        last_level >= append and current_level <= restore
    ):
        raise SimulationConflictError("Conflicting simulation level")


def read_stat_file(path: str | PathLike, settings: Settings) -> bool:
    """Load statistics into ``settings``; return False and zero them if the file is absent."""
    try:
        with open(path, "rb") as fh:
            raw = fh.read(_STAT_FORMAT.size)
    except FileNotFoundError:
        for name in _STAT_FIELDS:
            setattr(settings, name, 0)
        return False

    if len(raw) < _STAT_FORMAT.size:
        raise ValueError(f"stat file {path} is truncated")
    values = _STAT_FORMAT.unpack(raw)
    for name, value in zip(_STAT_FIELDS, values):
        setattr(settings, name, value)

    last_retention, last_level = values[-2], values[-1]
    if last_retention != settings.backup_retention_time:
        raise ValueError(
            f"backup retention time {settings.backup_retention_time} "
            f"differs from stored {last_retention}"
        )
    check_simulation_level(last_level, settings.simulation_level)
    return True


def write_stat_file(path: str | PathLike, settings: Settings) -> None:
    """Persist the statistics of ``settings``."""
    values = [getattr(settings, name) for name in _STAT_FIELDS]
    values.append(settings.backup_retention_time)
    values.append(int(settings.simulation_level))
    with open(path, "wb") as fh:
        fh.write(_STAT_FORMAT.pack(*values))


def _div(a: float, b: float) -> float:
    if b == 0:
        return math.nan if a == 0 else math.copysign(math.inf, a)
    return a / b


_LEVEL_NAMES = {
    SimulationLevel.NO: "NO",
    SimulationLevel.RESTORE: "RESTORE",
    SimulationLevel.APPEND: "APPEND",
    SimulationLevel.ALL: "ALL",
}


def format_stat(settings: Settings) -> str:
    """Render the accumulated statistics as a report."""
    s = settings
    lines = [
        "=== destor stat ===",
        f"the index memory footprint (B): {s.index_memory_footprint}",
        f"the number of live containers: {s.live_container_num}",
        f"the number of chunks: {s.chunk_num}",
        f"the number of stored chunks: {s.stored_chunk_num}",
        f"the size of data (B): {s.data_size}",
        f"the size of stored data (B): {s.stored_data_size}",
        f"the size of saved data (B): {s.data_size - s.stored_data_size}",
        "deduplication ratio: "
        f"{_div(s.data_size - s.stored_data_size, s.data_size):.4f}, "
        f"{_div(s.data_size, s.stored_data_size):.4f}",
        f"the number of zero chunks: {s.zero_chunk_num}",
        f"the size of zero chunks (B): {s.zero_chunk_size}",
        f"the number of rewritten chunks: {s.rewritten_chunk_num}",
        f"the size of rewritten chunks (B): {s.rewritten_chunk_size}",
        f"rewrite ratio: {_div(s.rewritten_chunk_size, s.data_size):.4f}",
    ]
    try:
        name = _LEVEL_NAMES[SimulationLevel(s.simulation_level)]
        lines.append(f"simulation level is {name}")
    except ValueError:
        lines.append("Invalid simulation level.")
    lines.append("=== destor stat ===")
    return "\n".join(lines) + "\n"