import random

from dedupkit.ae import AEChunker


def test_short_input_is_one_chunk():
    chunker = AEChunker(avg_size=1024, max_size=8192)
    data = bytes(chunker.window_size + 8)
    assert chunker.chunk(data) == len(data)


def test_rising_data_cuts_after_window():
    chunker = AEChunker(avg_size=1024, max_size=8192)
    data = b"\x00" + b"\x01" * 5000
    assert chunker.chunk(data) == chunker.window_size


def test_max_size_cuts_before_window():
    chunker = AEChunker(avg_size=8192, max_size=100)
    data = b"\x00" + b"\x01" * 10000
    assert chunker.window_size > 100
    assert chunker.chunk(data) == 100


def test_constant_data_never_cuts():
    chunker = AEChunker(avg_size=1024, max_size=8192)
    data = bytes(3000)
    assert chunker.chunk(data) == len(data)


def test_window_grows_with_average():
    assert AEChunker(avg_size=4096).window_size > AEChunker(avg_size=1024).window_size


def test_chunks_cover_random_input():
    chunker = AEChunker(avg_size=512, max_size=4096)
    data = random.Random(4).randbytes(30000)
    pos = 0
    count = 0
    while pos < len(data):
        size = chunker.chunk(data[pos:])
        assert 1 <= size <= len(data) - pos
        pos += size
        count += 1
    assert pos == len(data)
    assert count > 1