"""Reading option directives into :class:`~dedupkit.state.Settings`."""

from __future__ import annotations

import re
import string
from os import PathLike

from .model import (
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
from .state import Settings

DEFAULT_CONFIG_FILE = "destor.config"


class ConfigError(ValueError):
    """A configuration line could not be applied."""

    def __init__(self, line_number: int, line: str, reason: str) -> None:
        super().__init__(f"line {line_number}: '{line}': {reason}")
        self.line_number = line_number
        self.line = line
        self.reason = reason


class _DirectiveError(Exception):
    pass


def yes_no(value: str) -> int:
    """Map "yes" to 1, "no" to 0 and anything else to -1, ignoring case."""
    lowered = value.lower()
    if lowered == "yes":
        return 1
    if lowered == "no":
        return 0
    return -1


_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"\s*([+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?))")


def _to_int(text: str) -> int:
    match = _INT_PREFIX.match(text)
    return int(match.group(1)) if match else 0


def _to_float(text: str) -> float:
    match = _FLOAT_PREFIX.match(text)
    return float(match.group(1)) if match else 0.0


_BLANKS = " \t\n\r\v\f"
_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "b": "\b", "a": "\a"}


def split_args(line: str) -> list[str]:
    """Split a line into arguments, honouring single and double quotes.

    Raises ValueError on unbalanced quotes or a closing quote not followed
    by a blank.
    """
    args: list[str] = []
    pos, end = 0, len(line)
    while True:
        while pos < end and line[pos] in _BLANKS:
            pos += 1
        if pos >= end:
            return args
        in_double = in_single = False
        current: list[str] = []
        while True:
            ch = line[pos] if pos < end else ""
            nxt = line[pos + 1] if pos + 1 < end else ""
            if in_double:
                if (
                    ch == "\\"
                    and nxt == "x"
                    and pos + 3 < end
                    and line[pos + 2] in string.hexdigits
                    and line[pos + 3] in string.hexdigits
                ):
                    current.append(chr(int(line[pos + 2 : pos + 4], 16)))
                    pos += 3
                elif ch == "\\" and nxt:
                    pos += 1
                    current.append(_ESCAPES.get(nxt, nxt))
                elif ch == '"':
                    if nxt and nxt not in _BLANKS:
                        raise ValueError("closing quote must be followed by a space")
                    pos += 1
                    break
                elif not ch:
                    raise ValueError("unterminated double quote")
                else:
                    current.append(ch)
            elif in_single:
                if ch == "\\" and nxt == "'":
                    pos += 1
                    current.append("'")
                elif ch == "'":
                    if nxt and nxt not in _BLANKS:
                        raise ValueError("closing quote must be followed by a space")
                    pos += 1
                    break
                elif not ch:
                    raise ValueError("unterminated single quote")
                else:
                    current.append(ch)
            else:
                if ch in ("", " ", "\n", "\r", "\t"):
                    if ch:
                        pos += 1
                    break
                if ch == '"':
                    in_double = True
                elif ch == "'":
                    in_single = True
                else:
                    current.append(ch)
            pos += 1
        args.append("".join(current))


_SIMULATION = {
    "all": SimulationLevel.ALL,
    "append": SimulationLevel.APPEND,
    "restore": SimulationLevel.RESTORE,
    "no": SimulationLevel.NO,
}
_TRACE = {"destor": TraceFormat.DESTOR, "fsl": TraceFormat.FSL}
_LOG = {
    "debug": LogLevel.DEBUG,
    "verbose": LogLevel.VERBOSE,
    "notice": LogLevel.NOTICE,
    "warning": LogLevel.WARNING,
}
_CHUNKING = {
    "fixed": ChunkAlgorithm.FIXED,
    "rabin": ChunkAlgorithm.RABIN,
    "normalized rabin": ChunkAlgorithm.NORMALIZED_RABIN,
    "tttd": ChunkAlgorithm.TTTD,
    "file": ChunkAlgorithm.FILE,
    "ae": ChunkAlgorithm.AE,
}
_INDEX_EXACTNESS = {"exact": IndexCategory.EXACT, "near-exact": IndexCategory.NEAR_EXACT}
_INDEX_LOCALITY = {
    "physical": IndexCategory.PHYSICAL_LOCALITY,
    "logical": IndexCategory.LOGICAL_LOCALITY,
}
_INDEX_SPECIFIC = {
    "ddfs": (IndexSpecific.DDFS, IndexCategory.EXACT, IndexCategory.PHYSICAL_LOCALITY),
    "sampled index": (
        IndexSpecific.SAMPLED,
        IndexCategory.NEAR_EXACT,
        IndexCategory.PHYSICAL_LOCALITY,
    ),
    "block locality caching": (
        IndexSpecific.BLOCK_LOCALITY_CACHING,
        IndexCategory.EXACT,
        IndexCategory.LOGICAL_LOCALITY,
    ),
    "extreme binning": (
        IndexSpecific.EXTREME_BINNING,
        IndexCategory.NEAR_EXACT,
        IndexCategory.LOGICAL_LOCALITY,
    ),
    "sparse index": (
        IndexSpecific.SPARSE,
        IndexCategory.NEAR_EXACT,
        IndexCategory.LOGICAL_LOCALITY,
    ),
    "silo": (IndexSpecific.SILO, IndexCategory.NEAR_EXACT, IndexCategory.LOGICAL_LOCALITY),
}
_KEY_VALUE = {"htable": KeyValueStore.HTABLE, "ror": KeyValueStore.ROR}
_SAMPLING = {
    "optmin": SamplingMethod.OPTIMIZED_MIN,
    "random": SamplingMethod.RANDOM,
    "min": SamplingMethod.MIN,
    "uniform": SamplingMethod.UNIFORM,
}
_SEGMENTING = {
    "fixed": SegmentAlgorithm.FIXED,
    "file-defined": SegmentAlgorithm.FILE_DEFINED,
    "content-defined": SegmentAlgorithm.CONTENT_DEFINED,
}
_SELECTION = {
    "base": SegmentSelection.BASE,
    "top": SegmentSelection.TOP,
    "mix": SegmentSelection.MIX,
}
_REWRITING = {
    "no": RewriteAlgorithm.NO,
    "cfl-based selective deduplication": RewriteAlgorithm.CFL_SELECTIVE_DEDUPLICATION,
    "cfl": RewriteAlgorithm.CFL_SELECTIVE_DEDUPLICATION,
    "context-based rewriting": RewriteAlgorithm.CONTEXT_BASED,
    "cbr": RewriteAlgorithm.CONTEXT_BASED,
    "capping": RewriteAlgorithm.CAPPING,
    "cap": RewriteAlgorithm.CAPPING,
}
_RESTORE = {
    "lru": RestoreCache.LRU,
    "optimal cache": RestoreCache.OPT,
    "opt": RestoreCache.OPT,
    "forward assembly": RestoreCache.ASM,
    "asm": RestoreCache.ASM,
}

_INT_OPTIONS = {
    "fake-containers": "fake_containers",
    "chunk-avg-size": "chunk_avg_size",
    "chunk-max-size": "chunk_max_size",
    "chunk-min-size": "chunk_min_size",
    "fingerprint-index-cache-size": "index_cache_size",
    "fingerprint-external-cache-size": "external_cache_size",
    "recipe-cdc-ratio": "cdc_ratio",
    "recipe-cdc-max-size": "cdc_max_size",
    "recipe-cdc-exp-size": "cdc_exp_size",
    "recipe-cdc-min-size": "cdc_min_size",
    "fingerprint-index-key-size": "index_key_size",
    "fingerprint-index-value-length": "index_value_length",
    "fingerprint-index-bloom-filter": "index_bloom_filter_size",
    "fingerprint-index-segment-prefetching": "index_segment_prefetch",
    "rewrite-capping-level": "rewrite_capping_level",
    "restore-opt-window-size": "restore_opt_window_size",
    "backup-retention-time": "backup_retention_time",
}
_FLOAT_OPTIONS = {
    "rewrite-cfl-require": "rewrite_cfl_require",
    "rewrite-cfl-usage-threshold": "rewrite_cfl_usage_threshold",
    "rewrite-cbr-limit": "rewrite_cbr_limit",
    "rewrite-cbr-minimal-utility": "rewrite_cbr_minimal_utility",
    "rewrite-har-utilization-threshold": "rewrite_har_utilization_threshold",
    "rewrite-har-rewrite-limit": "rewrite_har_rewrite_limit",
}
_YES_NO_OPTIONS = {
    "rewrite-enable-cfl-switch": "rewrite_enable_cfl_switch",
    "rewrite-enable-har": "rewrite_enable_har",
    "rewrite-enable-cache-aware": "rewrite_enable_cache_aware",
}


def _choose(table: dict, value: str, reason: str):
    try:
        return table[value.lower()]
    except KeyError:
        raise _DirectiveError(reason) from None


_BAD_DIRECTIVE = "Bad directive or wrong number of arguments"


def _apply(settings: Settings, args: list[str]) -> None:
    name = args[0].lower()
    argc = len(args)

    if argc == 2 and name in _INT_OPTIONS:
        setattr(settings, _INT_OPTIONS[name], _to_int(args[1]))
    elif argc == 2 and name in _FLOAT_OPTIONS:
        setattr(settings, _FLOAT_OPTIONS[name], _to_float(args[1]))
    elif argc == 2 and name in _YES_NO_OPTIONS:
        setattr(settings, _YES_NO_OPTIONS[name], yes_no(args[1]))
    elif name == "working-directory" and argc == 2:
        settings.working_directory = args[1] + "/"
    elif name == "simulation-level" and argc == 2:
        settings.simulation_level = _choose(_SIMULATION, args[1], "Invalid simulation level")
    elif name == "trace-format" and argc == 2:
        settings.trace_format = _choose(_TRACE, args[1], "Invalid trace format")
    elif name == "log-level" and argc == 2:
        settings.verbosity = _choose(_LOG, args[1], "Invalid log level")
    elif name == "chunk-algorithm" and argc == 2:
        settings.chunk_algorithm = _choose(_CHUNKING, args[1], "Invalid chunk algorithm")
    elif name == "fingerprint-index" and argc >= 3:
        settings.index_category[0] = _choose(
            _INDEX_EXACTNESS, args[1], "Invalid index category"
        )
        settings.index_category[1] = _choose(
            _INDEX_LOCALITY, args[2], "Invalid index category"
        )
        if argc > 3:
            specific, exactness, locality = _choose(
                _INDEX_SPECIFIC, args[3], "Invalid index specific"
            )
            if settings.index_category != [exactness, locality]:
                raise _DirectiveError("Index specific does not match the index category")
            settings.index_specific = specific
    elif name == "fingerprint-index-key-value" and argc == 2:
        settings.index_key_value_store = _choose(
            _KEY_VALUE, args[1], "Invalid key-value store"
        )
    elif name == "fingerprint-index-sampling-method" and argc >= 2:
        settings.index_sampling_method[0] = _choose(
            _SAMPLING, args[1], "Invalid feature method!"
        )
        settings.index_sampling_method[1] = _to_int(args[2]) if argc > 2 else 0
    elif name == "fingerprint-index-segment-algorithm" and argc >= 2:
        algorithm = _choose(_SEGMENTING, args[1], "Invalid segment algorithm")
        settings.index_segment_algorithm[0] = algorithm
        if argc > 2:
            if algorithm == SegmentAlgorithm.FILE_DEFINED:
                raise _DirectiveError("File-defined segmenting takes no segment size")
            settings.index_segment_algorithm[1] = _to_int(args[2])
    elif name == "fingerprint-index-segment-boundary" and argc == 3:
        settings.index_segment_min = _to_int(args[1])
        settings.index_segment_max = _to_int(args[2])
    elif name == "fingerprint-index-segment-selection" and argc >= 2:
        settings.index_segment_selection_method[1] = 1
        method = _choose(_SELECTION, args[1], "Invalid selection method!")
        settings.index_segment_selection_method[0] = method
        if method == SegmentSelection.TOP and argc > 2:
            settings.index_segment_selection_method[1] = _to_int(args[2])
    elif name == "rewrite-algorithm" and argc >= 2:
        settings.rewrite_algorithm[0] = _choose(
            _REWRITING, args[1], "Invalid rewriting algorithm"
        )
        settings.rewrite_algorithm[1] = _to_int(args[2]) if argc > 2 else 1024
    elif name == "restore-cache" and argc == 3:
        settings.restore_cache[0] = _choose(_RESTORE, args[1], "Invalid restore cache")
        settings.restore_cache[1] = _to_int(args[2])
    else:
        raise _DirectiveError(_BAD_DIRECTIVE)


def load_config_from_string(settings: Settings, text: str, sep: str = "\n") -> None:
    """Apply every directive in ``text``, whose lines are separated by ``sep``.

    Raises ConfigError naming the first line that cannot be applied.
    """
    if not sep:
        raise ValueError("separator must not be empty")
    lines = text.split(sep) if text else []
    for number, raw in enumerate(lines, start=1):
        line = raw.strip(" \t\r\n")
        if not line or line.startswith("#"):
            continue
        try:
            args = split_args(line)
        except ValueError:
            raise ConfigError(
                number, line, "Unbalanced quotes in configuration line"
            ) from None
        if not args:
            continue
        try:
            _apply(settings, args)
        except _DirectiveError as exc:
            raise ConfigError(number, line, str(exc)) from None


def load_config(settings: Settings, path: str | PathLike = DEFAULT_CONFIG_FILE) -> bool:
    """Apply the configuration file at ``path``; return False if it does not exist."""
    try:
        with open(path, encoding="utf-8") as fh:
            text = fh.read()
    except FileNotFoundError:
        return False
    load_config_from_string(settings, text, "\n")
    return True