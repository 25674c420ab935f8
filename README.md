# dedupkit

Building blocks for a chunk-level deduplicating backup system. The package
cuts data into content-defined chunks, keeps the settings and statistics of a
deduplication store, tracks which containers a deletion can reclaim, scores
chunks for context-based rewriting and reassembles files from their recipes
during a restore.

It has no dependencies outside the standard library.

## Modules

### `dedupkit.model`

- `Chunk`: a dataclass with `size`, `flag`, `id`, `fp`, `old_fp` and `data`.
  `has(flag)`, `mark(flag)` and `clear(flag)` test, set and unset bits;
  `is_file_boundary()` and `is_signal()` recognise the signal chunks
  (file, segment and container start/end).
- `Segment`: a run of chunks. `append(chunk)` counts every chunk except file
  boundaries in `chunk_num`; `pop_all()` returns the chunks and empties it.
- `ChunkFlag` (an `IntFlag`) and the option enumerations `SimulationLevel`,
  `LogLevel`, `TraceFormat`, `ChunkAlgorithm`, `IndexCategory`,
  `IndexSpecific`, `KeyValueStore`, `SamplingMethod`, `SegmentAlgorithm`,
  `SegmentSelection`, `RestoreCache` and `RewriteAlgorithm`.
- `TEMPORARY_ID` (`-1`) marks a chunk that is not stored in a container yet.

### `dedupkit.state`

- `Settings`: every option with its default, plus the accumulated
  statistics (chunk and data counts, zero and rewritten chunks, index memory
  footprint, live containers) and `backup_retention_time` (`-1` keeps every
  backup).
- `write_stat_file(path, settings)` and `read_stat_file(path, settings)`
  store and load the statistics as eight little-endian 64-bit integers
  followed by four 32-bit ones. `read_stat_file` returns `False` and zeroes
  the statistics when the file does not exist, raises `ValueError` when it is
  truncated or its retention time differs from the settings, and raises
  `SimulationConflictError` through `check_simulation_level` when the stored
  simulation level cannot be mixed with the current one.
- `format_stat(settings)` renders the statistics as a text report.
- `EventLog(verbosity, sinks)`: `log(level, message)` writes the message to
  each sink (standard output when `sinks` is `None`) if the level is at or
  above the verbosity, and returns whether it did.

### `dedupkit.config`

- `load_config_from_string(settings, text, sep="\n")` applies `key value`
  directives, one per piece of `text` split on `sep`. Blank lines and lines
  starting with `#` are skipped; keys and option words are case-insensitive;
  arguments containing spaces are quoted (`chunk-algorithm "normalized rabin"`).
- `load_config(settings, path="destor.config")` does the same for a file and
  returns `False` if the file does not exist.
- `ConfigError` (a `ValueError`) names the line number, the line and the
  reason for the first directive that cannot be applied.
- `split_args(line)` is the quote-aware argument splitter; `yes_no(value)`
  maps `yes`/`no` to `1`/`0` and anything else to `-1`.

### `dedupkit.manifest`

The manifest records, for each container, the id of the last backup job that
used it, as `id,time` lines in a file named `manifest` in the working
directory.

- `update_manifest(working_directory, container_ids, job_id)` stamps the
  containers with the job id and returns the number of live containers.
- `trunc_manifest(working_directory, job_id)` drops every container stamped no
  later than `job_id` and returns the reclaimed ids and the number still live.
  It raises `ManifestMissingError` when there is no manifest.
- `read_manifest(path)` and `write_manifest(path, records)` handle the file.

### `dedupkit.rabin`, `dedupkit.ae`, `dedupkit.chunker`

- `RabinChunker(avg_size, min_size, max_size, poly)` offers `rabin(data)`,
  `normalized(data)` and `tttd(data)`, each returning the length of the first
  chunk of `data`, and a persistent rolling window through `slide8(byte)` and
  `reset_window()`. The GF(2) helpers `fls64`, `polymod`, `polymult` and
  `polymmult` are public.
- `AEChunker(avg_size, max_size).chunk(data)` is asymmetric-extremum chunking.
- `make_chunking(settings, container_capacity)` returns the chunking function
  chosen by `settings.chunk_algorithm` (fixed, Rabin, normalized Rabin, TTTD,
  file-level or AE). It adjusts the settings as the algorithm requires (for
  the Rabin family the average size is rounded down to a power of two with
  `round_down_power_of_two`) and raises `ValueError` when the sizes do not fit
  together or exceed the container capacity.
- `ChunkStream(chunking, max_size, on_file_end=None, log=None)`:
  `process(items)` takes files given as a `FILE_START` chunk, data blocks and a
  `FILE_END` chunk, and yields the signal chunks with the newly cut data
  chunks between them. It counts `chunk_num`, `zero_chunk_num` and
  `zero_chunk_size`.

### `dedupkit.utility`

- `rewrite_utility(record_size, chunk_size, container_capacity)`: the share of
  a container not covered by the current stream context, or `0` once it is
  fully covered.
- `UtilityBuckets(minimal_utility, limit)`: a histogram of utilities.
  `update(utility)` records a chunk and, after 100 chunks, moves the threshold
  so that about `limit` of the chunks seen would be rewritten;
  `is_out_of_order(utility)` tells whether a chunk should be rewritten.

### `dedupkit.assembly`

- `AssemblyArea(area_size, retrieve_container=None)` restores by forward
  assembly: it fills a bounded area with recipe chunks and reads one container
  at a time to complete them. `retrieve_container` maps a container id to a
  fingerprint-to-data mapping; without it the restore is simulated and data
  chunks are counted but not yielded. `AssemblyArea.for_cache(cache_containers,
  container_size, ...)` sizes the area from a restore cache. `restore(chunks)`
  yields the restored stream; `push` and `assemble` are the single steps.
  `read_container_num`, `data_size` and `chunk_num` count the work done.

### `dedupkit.restore`

- `recipe_stream(files)` turns `(filename, [(fingerprint, container_id,
  size), ...])` recipes into a chunk stream with file boundaries.
- `RestoreWriter(target, simulate=False).write(chunks)` writes a restored
  stream to disk. Each file is written to `target` followed directly by the
  file's name, creating missing directories; `file_num` and `data_size` count
  what was written.

## Examples

Cutting data with Rabin chunking:

```python
from dedupkit.chunker import make_chunking
from dedupkit.config import load_config_from_string
from dedupkit.state import Settings

settings = Settings()
load_config_from_string(settings, "chunk-algorithm rabin\nchunk-avg-size 4096")
chunking = make_chunking(settings, container_capacity=4 * 1024 * 1024 - 16 * 1024)
first_cut = chunking(bytes(range(256)) * 400)
```

Restoring a file from its recipe:

```python
from dedupkit.assembly import AssemblyArea
from dedupkit.restore import RestoreWriter, recipe_stream

fp_a, fp_b = b"a" * 32, b"b" * 32
containers = {7: {fp_a: b"hello ", fp_b: b"world"}}

area = AssemblyArea(area_size=1 << 20, retrieve_container=containers.__getitem__)
stream = area.restore(
    recipe_stream([("/docs/greeting.txt", [(fp_a, 7, 6), (fp_b, 7, 5)])])
)
RestoreWriter("/tmp/restored").write(stream)  # writes /tmp/restored/docs/greeting.txt
```

## What the package does not do

The package provides the pieces, not a complete backup system. It has no
command-line program, no container store, no fingerprint index, no recipe
store and no backup, deletion or update job that ties the pieces together.
Container contents and recipes are supplied by the caller, for example as
mappings and lists as in the example above.

## Installing

```
pip install .
```

## Running the tests

```
pip install .[test]
pytest
```