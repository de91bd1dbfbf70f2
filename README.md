# memsim

`memsim` simulates processor caches from traces of memory accesses. It
models set-associative caches with LRU replacement and write-back of dirty
lines. It also provides timed cache components that move requests through
per-cache queues one cycle at a time.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Trace format

A trace is a text file with one access per line. Each line holds an access
type followed by a hexadecimal address. The address may carry a `0x` prefix.

```
0 7ffd1a20
1 7ffd1a28
2 400b3c
```

The access types are:

- `0`: a data read
- `1`: a data write
- `2`: an instruction fetch

Lines that do not parse are skipped.

## Simulating a single cache

The `memsim-run-base` command feeds a trace to one cache and prints its
statistics:

```
memsim-run-base <trace> <cache size in bytes> <associativity> <line size in bytes>
```

For example, for a 32 KiB, 8-way cache with 64-byte lines:

```
memsim-run-base trace.txt 32768 8 64
```

The number of sets is the cache size divided by the product of associativity
and line size. The command prints:

- the hit rate
- the counts of accesses, hits, misses, writes and write-backs

If the arguments are wrong or do not give a valid cache, the command prints a
usage message to stderr and exits with status 1. A trace file that cannot be
opened is treated as empty.

## The tag store

`memsim.cache_base.CacheBase(name, num_sets, assoc, line_size)` is the tag
store of one cache. It raises `ValueError` unless all three sizes are
positive.

```python
from memsim.cache_base import AccessType, CacheBase
from memsim.run_base import process_trace

cache = CacheBase("L1", 64, 4, 64)
hit, eviction = cache.access(0x1000, AccessType.WRITE, False)
process_trace(cache, "trace.txt")
print(cache.format_stats())
cache.dump_tag_store(False)
```

The lookup and install methods are:

- `access(address, access_type, is_fill)` returns a tuple `(hit, eviction)`.
  It updates the LRU order. When `is_fill` is false it also updates the
  statistics counters.
- `fill(address, dirty)` installs a line coming from a lower level.
- `install_writeback(address)` installs a dirty line. On a hit it only marks
  the line dirty. A newly installed line goes to the LRU position.
- `invalidate(address)` returns `(present, was_dirty)`.

Where a line was displaced to make room, `access`, `fill` and
`install_writeback` describe it in an `Eviction` with an `address` and a
`dirty` flag. When nothing was displaced, the address is 0.

Two methods report on the cache:

- `print_stats()` writes the report that `format_stats()` builds.
- `dump_tag_store(is_file)` writes every set's `[valid, dirty, tag]` entries,
  either to stdout or to `<name>.dump` in the current directory.

## Configuration

`memsim.config.load_config(path)` reads a configuration file into a `Config`
dataclass. `memsim.config.parse_config(lines)` does the same for a string or
for an iterable of lines.

Each line holds a key and an integer value, separated by spaces, tabs or `=`.
Keys the parser does not know are ignored. A value that does not start with a
number reads as 0. A known key with no value raises `ValueError`. Any field
that is not set keeps its default of 0.

```
mem_hierarchy 2
single_request 0
l1i_size 32768
l1i_assoc 8
l1i_line_size 64
l1i_latency 4
l1d_size 32768
l1d_assoc 8
l1d_line_size 64
l1d_latency 4
l2_size 262144
l2_assoc 8
l2_line_size 64
l2_latency 12
memory_latency 100
```

## Timed components

Requests are `memsim.request.MemRequest` objects. Their `req_type` is a
`RequestType`: `DFETCH`, `DSTORE`, `IFETCH` or `WB`.

Requests wait in `memsim.reqqueue.RequestQueue` queues. A queue is unbounded
when its capacity is 0. With a positive capacity, `push` returns `False` once
the queue is full.

### Cache

`memsim.cache.Cache(name, level, num_sets, assoc, line_size, latency)` is a
`CacheBase` with input, output, fill and write-back queues.

The `level` argument is a `MemoryLevel`. A cache at level `L2` invalidates
lines in the caches above it when it evicts them. This keeps the upper levels
inclusive. Dirty lines invalidated this way are written back.

Links to other levels are set with
`configure_neighbors(prev_i, prev_d, next_level, memory)`:

- `prev_i` and `prev_d` are the instruction and data caches above this one.
- `next_level` is the cache below.
- `memory` is any object with an `access(req)` method that returns whether it
  accepted the request.

`access(req)` and `fill(req)` queue a request. The request becomes ready
`latency` cycles later.

Each `run_a_cycle()` processes the queues in this order:

1. write-back
2. fill
3. output
4. input

A cache with no caches above it hands finished requests to its `done_func`
callback. A cache whose output queue holds a ready request but which has no
next level or memory raises `RuntimeError`.

### Core

`memsim.core.Core(hierarchy)` reads a trace with `run_sim(filename)` and
issues each access to `hierarchy`. It advances one cycle per trace line.

Once the trace is exhausted, it keeps cycling until nothing is in flight and
`is_wb_done()` is true. It then prints the CPI and the cycle, instruction and
memory-instruction counts. It also prints a progress line every 100000
instruction fetches.

When the configuration sets `single_request`, the core issues a new line only
when no request is in flight.

## What is not included

This package does not contain:

- a main-memory model
- a ready-made memory hierarchy that builds and connects caches from a
  `Config`
- a command that runs a trace through a full hierarchy

To drive a `Core`, supply your own hierarchy object. It needs:

- a `config` attribute holding a `Config`
- `access(address, access_type)`
- `run_a_cycle()`
- `num_in_flight_reqs()`
- `is_wb_done()`

A `Cache` also needs its own `memory` object at the bottom level.

The only command provided is `memsim-run-base`, which simulates a single
cache.