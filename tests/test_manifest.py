import pytest

from dedupkit.manifest import (
    ManifestMissingError,
    read_manifest,
    trunc_manifest,
    update_manifest,
    write_manifest,
)


def test_write_then_read_round_trip(tmp_path):
    path = tmp_path / "manifest"
    records = {3: 1, 7: 2, 11: 2}
    write_manifest(path, records)
    assert read_manifest(path) == records


def test_file_format(tmp_path):
    path = tmp_path / "manifest"
    write_manifest(path, {5: 9})
    assert path.read_text() == "5,9\n"


def test_read_stops_at_malformed_record(tmp_path):
    path = tmp_path / "manifest"
    path.write_text("1,2\n3,4\ngarbage\n5,6\n")
    assert read_manifest(path) == {1: 2, 3: 4}


def test_update_creates_manifest(tmp_path):
    live = update_manifest(tmp_path, [4, 8], 1)
    assert live == 2
    assert read_manifest(tmp_path / "manifest") == {4: 1, 8: 1}


def test_update_restamps_existing(tmp_path):
    update_manifest(tmp_path, [4, 8], 1)
    live = update_manifest(tmp_path, [8, 9], 2)
    assert live == 3
    assert read_manifest(tmp_path / "manifest") == {4: 1, 8: 2, 9: 2}


def test_trunc_reclaims_old_containers(tmp_path):
    update_manifest(tmp_path, [1, 2], 0)
    update_manifest(tmp_path, [2, 3], 1)
    update_manifest(tmp_path, [4], 2)
    reclaimed, live = trunc_manifest(tmp_path, 1)
    assert reclaimed == {1, 2, 3}
    assert live == 1
    assert read_manifest(tmp_path / "manifest") == {4: 2}


def test_trunc_keeps_newer(tmp_path):
    update_manifest(tmp_path, [1], 5)
    reclaimed, live = trunc_manifest(tmp_path, 4)
    assert reclaimed == set()
    assert live == 1


def test_trunc_without_manifest(tmp_path):
    with pytest.raises(ManifestMissingError):
        trunc_manifest(tmp_path, 0)


def test_trunc_is_idempotent(tmp_path):
    update_manifest(tmp_path, [1, 2], 0)
    update_manifest(tmp_path, [3], 3)
    first = trunc_manifest(tmp_path, 0)
    second = trunc_manifest(tmp_path, 0)
    assert first == ({1, 2}, 1)
    assert second == (set(), 1)