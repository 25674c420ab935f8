import io

import pytest

from dedupkit.model import (
    ChunkAlgorithm,
    IndexCategory,
    LogLevel,
    RestoreCache,
    RewriteAlgorithm,
    SimulationLevel,
)
from dedupkit.state import (
    EventLog,
    Settings,
    SimulationConflictError,
    check_simulation_level,
    format_stat,
    read_stat_file,
    write_stat_file,
)


def test_default_settings():
    s = Settings()
    assert s.working_directory == "/home/data/working/"
    assert s.chunk_algorithm == ChunkAlgorithm.RABIN
    assert (s.chunk_min_size, s.chunk_avg_size, s.chunk_max_size) == (1024, 8192, 65536)
    assert s.restore_cache == [RestoreCache.LRU, 1024]
    assert s.index_category == [IndexCategory.NEAR_EXACT, IndexCategory.PHYSICAL_LOCALITY]
    assert s.rewrite_algorithm == [RewriteAlgorithm.NO, 1024]
    assert s.backup_retention_time == -1
    assert s.verbosity == LogLevel.WARNING


def test_settings_lists_are_independent():
    a, b = Settings(), Settings()
    a.restore_cache[1] = 7
    assert b.restore_cache[1] == 1024


def _filled_settings():
    s = Settings()
    s.chunk_num = 11
    s.stored_chunk_num = 7
    s.data_size = 123456
    s.stored_data_size = 65432
    s.zero_chunk_num = 2
    s.zero_chunk_size = 300
    s.rewritten_chunk_num = 3
    s.rewritten_chunk_size = 999
    s.index_memory_footprint = 4096
    s.live_container_num = 5
    return s


def test_stat_round_trip(tmp_path):
    path = tmp_path / "destor.stat"
    original = _filled_settings()
    write_stat_file(path, original)
    loaded = Settings()
    assert read_stat_file(path, loaded) is True
    for name in (
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
    ):
        assert getattr(loaded, name) == getattr(original, name)


def test_stat_file_starts_with_chunk_num(tmp_path):
    path = tmp_path / "destor.stat"
    s = _filled_settings()
    write_stat_file(path, s)
    raw = path.read_bytes()
    assert int.from_bytes(raw[:8], "little", signed=True) == s.chunk_num
    assert int.from_bytes(raw[-4:], "little", signed=True) == int(s.simulation_level)


def test_missing_stat_file_zeroes_statistics(tmp_path):
    s = _filled_settings()
    assert read_stat_file(tmp_path / "absent.stat", s) is False
    assert s.chunk_num == 0
    assert s.data_size == 0
    assert s.live_container_num == 0


def test_retention_mismatch_raises(tmp_path):
    path = tmp_path / "destor.stat"
    write_stat_file(path, _filled_settings())
    other = Settings(backup_retention_time=3)
    with pytest.raises(ValueError):
        read_stat_file(path, other)


def test_truncated_stat_file_raises(tmp_path):
    path = tmp_path / "destor.stat"
    path.write_bytes(b"\x00" * 10)
    with pytest.raises(ValueError):
        read_stat_file(path, Settings())


def test_simulation_conflict_on_read(tmp_path):
    path = tmp_path / "destor.stat"
    write_stat_file(path, Settings(simulation_level=SimulationLevel.NO))
    with pytest.raises(SimulationConflictError):
        read_stat_file(path, Settings(simulation_level=SimulationLevel.ALL))


def test_compatible_simulation_levels_read(tmp_path):
    path = tmp_path / "destor.stat"
    write_stat_file(path, Settings(simulation_level=SimulationLevel.APPEND))
    assert read_stat_file(path, Settings(simulation_level=SimulationLevel.ALL)) is True


@pytest.mark.parametrize(
    "last,current",
    [
        (SimulationLevel.NO, SimulationLevel.APPEND),
        (SimulationLevel.RESTORE, SimulationLevel.ALL),
        (SimulationLevel.ALL, SimulationLevel.NO),
        (SimulationLevel.APPEND, SimulationLevel.RESTORE),
    ],
)
def test_check_simulation_level_conflicts(last, current):
    with pytest.raises(SimulationConflictError):
        check_simulation_level(last, current)


def test_format_stat_values():
    s = Settings()
    s.data_size = 200
    s.stored_data_size = 100
    s.chunk_num = 4
    text = format_stat(s)
    lines = text.splitlines()
    assert lines[0] == "=== destor stat ===" == lines[-1]
    assert "the number of chunks: 4" in lines
    assert "the size of saved data (B): 100" in lines
    assert "deduplication ratio: 0.5000, 2.0000" in lines
    assert "simulation level is NO" in lines


def test_format_stat_empty_store_is_nan():
    text = format_stat(Settings())
    assert "deduplication ratio: nan, nan" in text
    assert "rewrite ratio: nan" in text


def test_format_stat_invalid_level():
    s = Settings()
    s.simulation_level = 9
    assert "Invalid simulation level." in format_stat(s)


def test_event_log_filters_by_verbosity():
    sink = io.StringIO()
    log = EventLog(verbosity=LogLevel.NOTICE, sinks=[sink])
    assert log.log(LogLevel.VERBOSE, "hidden") is False
    assert log.log(LogLevel.WARNING, "shown") is True
    assert sink.getvalue() == "shown\n"


def test_event_log_writes_every_sink_and_truncates():
    a, b = io.StringIO(), io.StringIO()
    log = EventLog(verbosity=LogLevel.DEBUG, sinks=[a, b])
    log.log(LogLevel.DEBUG, "x" * 5000)
    assert a.getvalue() == b.getvalue()
    assert len(a.getvalue().rstrip("\n")) == 1023