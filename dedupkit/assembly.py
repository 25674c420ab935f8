"""Forward-assembly restore: fill an area with chunks one container read at a time."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping

from .model import Chunk, ChunkFlag

ContainerReader = Callable[[int], Mapping[bytes, bytes]]


class AssemblyArea:
    """A bounded window of the restore stream assembled container by container.

    ``retrieve_container`` maps a container id to its fingerprint-to-data
    table. Without it the restore is simulated: no data is read and data
    chunks are counted but not emitted.
    """

    def __init__(
        self, area_size: int, retrieve_container: ContainerReader | None = None
    ) -> None:
        self.area_size = area_size
        self.retrieve_container = retrieve_container
        self.area: list[Chunk] = []
        self.size = 0
        self.read_container_num = 0
        self.data_size = 0
        self.chunk_num = 0

    @classmethod
    def for_cache(
        cls,
        cache_containers: int,
        container_size: int,
        retrieve_container: ContainerReader | None = None,
    ) -> "AssemblyArea":
        """Size the area as one container fewer than the restore cache holds."""
        return cls((cache_containers - 1) * container_size, retrieve_container)

    def push(self, chunk: Chunk | None) -> bool:
        """Add a chunk; return True when the area is full or the stream has ended."""
        if chunk is None:
            return True
        self.area.append(chunk)
        if chunk.is_file_boundary():
            return False
        self.size += chunk.size
        return self.size >= self.area_size

    def _pop_leading(self, ready: bool) -> list[Chunk]:
        issued = 0
        for chunk in self.area:
            if chunk.is_file_boundary():
                issued += 1
            elif ready and chunk.has(ChunkFlag.READY):
                self.size -= chunk.size
                issued += 1
            else:
                break
        out, self.area = self.area[:issued], self.area[issued:]
        return out

    def assemble(self) -> list[Chunk] | None:
        """Read the container of the first pending chunk and issue the ready prefix.

        Return None if the area is empty.
        """
        if not self.area:
            return None
        issued = self._pop_leading(ready=False)
        if not self.area:
            return issued

        container_id = self.area[0].id
        self.read_container_num += 1
        container = (
            self.retrieve_container(container_id)
            if self.retrieve_container is not None
            else None
        )
        for chunk in self.area:
            if chunk.is_file_boundary() or chunk.id != container_id:
                continue
            if container is not None:
                try:
                    data = container[chunk.fp]
                except KeyError:
                    raise LookupError(
                        f"chunk {chunk.fp.hex()} not found in container {container_id}"
                    ) from None
                if len(data) != chunk.size:
                    raise ValueError(
                        f"chunk size {chunk.size} does not match stored size {len(data)}"
                    )
                chunk.data = bytes(data)
            chunk.mark(ChunkFlag.READY)

        issued.extend(self._pop_leading(ready=True))
        return issued

    def _emit(self, chunks: list[Chunk]) -> Iterator[Chunk]:
        for chunk in chunks:
            if chunk.is_file_boundary():
                yield chunk
                continue
            self.data_size += chunk.size
            self.chunk_num += 1
            if self.retrieve_container is not None:
                yield chunk

    def restore(self, chunks: Iterable[Chunk]) -> Iterator[Chunk]:
        """Turn recipe chunks into restored chunks in stream order."""
        for chunk in chunks:
            if self.push(chunk):
                yield from self._emit(self.assemble() or [])
        self.push(None)
        while (issued := self.assemble()) is not None:
            yield from self._emit(issued)