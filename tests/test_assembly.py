import pytest

from dedupkit.assembly import AssemblyArea
from dedupkit.model import Chunk, ChunkFlag


def _fp(n):
    return bytes([n]) * 32


def _start():
    return Chunk(flag=ChunkFlag.FILE_START, data=b"/f")


def _end():
    return Chunk(flag=ChunkFlag.FILE_END)


STORE = {
    1: {_fp(1): b"aaaa", _fp(3): b"cccc"},
    2: {_fp(2): b"bbbb"},
}


def _recipe():
    return [
        _start(),
        Chunk(size=4, id=1, fp=_fp(1)),
        Chunk(size=4, id=2, fp=_fp(2)),
        Chunk(size=4, id=1, fp=_fp(3)),
        _end(),
    ]


def test_restore_keeps_order_and_fills_data():
    reads = []

    def retrieve(cid):
        reads.append(cid)
        return STORE[cid]

    area = AssemblyArea(10, retrieve)
    out = list(area.restore(_recipe()))
    assert [c.data for c in out[1:-1]] == [b"aaaa", b"bbbb", b"cccc"]
    assert out[0].has(ChunkFlag.FILE_START)
    assert out[-1].has(ChunkFlag.FILE_END)
    assert reads == [1, 2]
    assert area.read_container_num == 2
    assert area.chunk_num == 3
    assert area.data_size == 12
    assert area.size == 0


def test_simulated_restore_emits_only_boundaries():
    area = AssemblyArea(10)
    out = list(area.restore(_recipe()))
    assert all(c.is_file_boundary() for c in out)
    assert len(out) == 2
    assert area.chunk_num == 3
    assert area.data_size == 12


def test_push_reports_full_and_end():
    area = AssemblyArea(8)
    assert area.push(None) is True
    assert area.push(_start()) is False
    assert area.push(Chunk(size=4, id=1, fp=_fp(1))) is False
    assert area.push(Chunk(size=4, id=1, fp=_fp(3))) is True


def test_assemble_empty_returns_none():
    assert AssemblyArea(8).assemble() is None


def test_assemble_only_boundaries():
    area = AssemblyArea(8)
    area.push(_start())
    area.push(_end())
    out = area.assemble()
    assert len(out) == 2
    assert area.read_container_num == 0


def test_size_mismatch_raises():
    area = AssemblyArea(4, lambda cid: {_fp(1): b"too long"})
    area.push(Chunk(size=4, id=1, fp=_fp(1)))
    with pytest.raises(ValueError):
        area.assemble()


def test_missing_chunk_raises():
    area = AssemblyArea(4, lambda cid: {})
    area.push(Chunk(size=4, id=1, fp=_fp(1)))
    with pytest.raises(LookupError):
        area.assemble()


def test_for_cache_sizes_area():
    area = AssemblyArea.for_cache(3, 100)
    assert area.area_size == 200