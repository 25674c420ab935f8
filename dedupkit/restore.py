"""Restore job pieces: turning recipes into a chunk stream and writing files back."""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator
from os import PathLike
from typing import BinaryIO

from .model import Chunk, ChunkFlag


def recipe_stream(
    files: Iterable[tuple[str, Iterable[tuple[bytes, int, int]]]],
) -> Iterator[Chunk]:
    """Yield the restore stream for file recipes.

    Each recipe is a file name with its chunk pointers, given as
    ``(fingerprint, container_id, size)`` triples.
    """
    for filename, pointers in files:
        name = filename.encode()
        yield Chunk(size=len(name), flag=ChunkFlag.FILE_START, data=name)
        for fp, container_id, size in pointers:
            yield Chunk(size=size, id=container_id, fp=fp)
        yield Chunk(flag=ChunkFlag.FILE_END)


class RestoreWriter:
    """Write a restore stream below a target path.

    A file's path is the target followed directly by the name it was backed
    up under. In simulation no files are created.
    """

    def __init__(self, target: str | PathLike, simulate: bool = False) -> None:
        self.target = os.fspath(target)
        self.simulate = simulate
        self.file_num = 0
        self.data_size = 0

    def write(self, chunks: Iterable[Chunk]) -> None:
        """Consume the stream, creating directories and files as it goes."""
        base = self.target.rpartition("/")[0]
        if base:
            os.makedirs(base, exist_ok=True)

        fh: BinaryIO | None = None
        try:
            for chunk in chunks:
                if chunk.has(ChunkFlag.FILE_START):
                    if fh is not None:
                        raise ValueError("a file started before the previous one ended")
                    name = (chunk.data or b"").decode()
                    path = self.target + name
                    parent = path.rpartition("/")[0]
                    if parent:
                        os.makedirs(parent, exist_ok=True)
                    if not self.simulate:
                        fh = open(path, "wb")
                elif chunk.has(ChunkFlag.FILE_END):
                    self.file_num += 1
                    if fh is not None:
                        fh.close()
                    fh = None
                else:
                    if self.simulate or fh is None:
                        raise ValueError("data chunk outside an open file")
                    fh.write(chunk.data or b"")
                    self.data_size += chunk.size
        finally:
            if fh is not None:
                fh.close()