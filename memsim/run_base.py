"""Run a trace through a single cache and print its statistics."""

from __future__ import annotations

import re
import sys
from os import PathLike
from typing import Optional, Sequence, Union

from .cache_base import CacheBase

_TRACE_LINE = re.compile(r"\s*([+-]?\d+)\s+([+-]?(?:0[xX])?[0-9a-fA-F]+)")
_ADDRESS_MASK = (1 << 64) - 1
_USAGE = (
    "[Usage]: run_base <trace> <cache size (in bytes)> <associativity> "
    "<line size (in bytes)> "
)


def process_trace(cache: CacheBase, path: Union[str, "PathLike[str]"]) -> None:
    """Feed each ``<type> <hex address>`` line of a trace file to ``cache``.

    An unreadable file is ignored, as are lines that do not parse.
    """
    try:
        handle = open(path, encoding="utf-8")
    except OSError:
        return
    with handle:
        for line in handle:
            match = _TRACE_LINE.match(line)
            if match is None:
                continue
            access_type = int(match.group(1))
            address = int(match.group(2), 16) & _ADDRESS_MASK
            cache.access(address, access_type, False)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) != 4:
        print(_USAGE, file=sys.stderr)
        return 1

    trace, *numbers = args
    try:
        cache_size, assoc, line_size = (int(value) for value in numbers)
        if assoc * line_size == 0:
            raise ValueError("associativity and line size must be non-zero")
        num_sets = cache_size // (assoc * line_size)
        cache = CacheBase("L1", num_sets, assoc, line_size)
    except ValueError as exc:
        print(f"run_base: {exc}", file=sys.stderr)
        print(_USAGE, file=sys.stderr)
        return 1

    process_trace(cache, trace)
    cache.print_stats()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())