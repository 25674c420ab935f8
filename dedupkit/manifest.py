"""Container-marker manifest: the last backup that referenced each container.

After every backup the containers it used are stamped with the job id.
Deleting backups in FIFO order then reclaims every container whose stamp
is not newer than the deleted job.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from os import PathLike
from pathlib import Path

MANIFEST_NAME = "manifest"

_RECORD = re.compile(r"\s*([+-]?\d+),\s*([+-]?\d+)")


class ManifestMissingError(FileNotFoundError):
    """Backups were to be deleted but no manifest exists."""


def _manifest_path(working_directory: str | PathLike) -> Path:
    return Path(working_directory) / MANIFEST_NAME


def read_manifest(path: str | PathLike) -> dict[int, int]:
    """Return the container-id to job-id records; reading stops at the first malformed one."""
    text = Path(path).read_text(encoding="ascii")
    records: dict[int, int] = {}
    pos = 0
    while (match := _RECORD.match(text, pos)) is not None:
        records[int(match.group(1))] = int(match.group(2))
        pos = match.end()
    return records


def write_manifest(path: str | PathLike, records: Mapping[int, int]) -> None:
    """Write records as ``id,time`` lines."""
    with open(path, "w", encoding="ascii") as fh:
        for container_id, time in records.items():
            fh.write(f"{container_id},{time}\n")


def update_manifest(
    working_directory: str | PathLike, container_ids: Iterable[int], job_id: int
) -> int:
    """Stamp ``container_ids`` with ``job_id``; return the number of live containers."""
    path = _manifest_path(working_directory)
    try:
        records = read_manifest(path)
    except FileNotFoundError:
        records = {}
    for container_id in container_ids:
        records[container_id] = job_id
    write_manifest(path, records)
    return len(records)


def trunc_manifest(working_directory: str | PathLike, job_id: int) -> tuple[set[int], int]:
    """Drop every container stamped no later than ``job_id``.

    Return the reclaimed container ids and the number still live.
    """
    path = _manifest_path(working_directory)
    try:
        records = read_manifest(path)
    except FileNotFoundError:
        raise ManifestMissingError(f"manifest {path} doesn't exist") from None
    reclaimed = {cid for cid, time in records.items() if time <= job_id}
    remaining = {cid: time for cid, time in records.items() if time > job_id}
    write_manifest(path, remaining)
    return reclaimed, len(remaining)