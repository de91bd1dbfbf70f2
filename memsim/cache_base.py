"""Set-associative tag store with LRU replacement and hit/miss statistics."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import List, Optional, Tuple

_RULE = "-" * 30


class AccessType(IntEnum):
    """Access kinds as they appear in traces."""

    READ = 0
    WRITE = 1
    INST_FETCH = 2


@dataclass(frozen=True)
class Eviction:
    """Line displaced by an install; address 0 and clean when nothing was."""

    address: int = 0
    dirty: bool = False


@dataclass
class CacheEntry:
    """Tag-store entry for one cache line."""

    valid: bool = False
    dirty: bool = False
    tag: int = 0


class CacheSet:
    """One set: its entries and an LRU stack of way numbers (front is MRU)."""

    def __init__(self, assoc: int) -> None:
        self.entries: List[CacheEntry] = [CacheEntry() for _ in range(assoc)]
        self.lru: List[int] = list(range(assoc))

    @property
    def assoc(self) -> int:
        return len(self.entries)

    def _find(self, tag: int) -> Optional[int]:
        for way, entry in enumerate(self.entries):
            if entry.valid and entry.tag == tag:
                return way
        return None

    def _make_mru(self, way: int) -> None:
        self.lru.remove(way)
        self.lru.insert(0, way)

    def _take_victim(self) -> int:
        """Pick the first invalid way in MRU-to-LRU order, else the LRU way."""
        victim = next((way for way in self.lru if not self.entries[way].valid), self.lru[-1])
        self.lru.remove(victim)
        return victim


class CacheBase:
    """Tag store of a set-associative cache."""

    def __init__(self, name: str, num_sets: int, assoc: int, line_size: int) -> None:
        if num_sets <= 0 or assoc <= 0 or line_size <= 0:
            raise ValueError("number of sets, associativity and line size must be positive")
        self.name = name
        self.num_sets = num_sets
        self.line_size = line_size
        self.sets: List[CacheSet] = [CacheSet(assoc) for _ in range(num_sets)]

        self.num_accesses = 0
        self.num_hits = 0
        self.num_misses = 0
        self.num_writes = 0
        self.num_writebacks = 0

    def _locate(self, address: int) -> Tuple[int, int]:
        line = address // self.line_size
        return line % self.num_sets, line // self.num_sets

    def _install(self, cache_set: CacheSet, index: int, victim: int) -> Eviction:
        entry = cache_set.entries[victim]
        if not entry.valid:
            return Eviction()
        address = (entry.tag * self.num_sets + index) * self.line_size
        if entry.dirty:
            self.num_writebacks += 1
            return Eviction(address, True)
        return Eviction(address, False)

    def access(self, address: int, access_type: int, is_fill: bool) -> Tuple[bool, Eviction]:
        """Look up ``address``, updating LRU and statistics.

        Returns whether it hit and the line evicted on a miss. Fills update the
        tag store but not the access statistics.
        """
        is_write = access_type == AccessType.WRITE
        if not is_fill:
            self.num_accesses += 1
            if is_write:
                self.num_writes += 1

        index, tag = self._locate(address)
        cache_set = self.sets[index]

        way = cache_set._find(tag)
        if way is not None:
            if not is_fill:
                self.num_hits += 1
            if is_write:
                cache_set.entries[way].dirty = True
            cache_set._make_mru(way)
            return True, Eviction()

        if not is_fill:
            self.num_misses += 1
        victim = cache_set._take_victim()
        eviction = self._install(cache_set, index, victim)

        entry = cache_set.entries[victim]
        entry.valid = True
        entry.tag = tag
        entry.dirty = is_write
        cache_set.lru.insert(0, victim)
        return False, eviction

    def fill(self, address: int, dirty: bool) -> Tuple[bool, Eviction]:
        """Install a line coming from below, dirty if ``dirty``."""
        return self.access(address, AccessType.WRITE if dirty else AccessType.READ, True)

    def invalidate(self, address: int) -> Tuple[bool, bool]:
        """Drop the line holding ``address``; return (was present, was dirty)."""
        index, tag = self._locate(address)
        cache_set = self.sets[index]
        way = cache_set._find(tag)
        if way is None:
            return False, False
        entry = cache_set.entries[way]
        was_dirty = entry.dirty
        entry.valid = False
        entry.dirty = False
        cache_set._make_mru(way)
        return True, was_dirty

    def install_writeback(self, address: int) -> Tuple[bool, Eviction]:
        """Install a dirty line from a write-back.

        A hit only marks the line dirty; a new line goes to the LRU position.
        """
        index, tag = self._locate(address)
        cache_set = self.sets[index]

        way = cache_set._find(tag)
        if way is not None:
            cache_set.entries[way].dirty = True
            return True, Eviction()

        victim = cache_set._take_victim()
        eviction = self._install(cache_set, index, victim)

        entry = cache_set.entries[victim]
        entry.valid = True
        entry.tag = tag
        entry.dirty = True
        cache_set.lru.append(victim)
        return False, eviction

    def format_stats(self) -> str:
        """Statistics report as printed by :meth:`print_stats`."""
        rate = self.num_hits / self.num_accesses * 100 if self.num_accesses else float("nan")
        lines = [
            _RULE,
            f"{self.name} Hit Rate: {rate:g} % ",
            _RULE,
            f"number of accesses: {self.num_accesses}",
            f"number of hits: {self.num_hits}",
            f"number of misses: {self.num_misses}",
            f"number of writes: {self.num_writes}",
            f"number of writebacks: {self.num_writebacks}",
        ]
        return "\n".join(lines) + "\n"

    def print_stats(self) -> str:
        """Write the statistics report to stdout and return it."""
        text = self.format_stats()
        sys.stdout.write(text)
        sys.stdout.flush()
        return text

    def dump_tag_store(self, is_file: bool) -> str:
        """Write the tag store to stdout, or to ``<name>.dump`` if ``is_file``.

        Returns the text written.
        """
        rows = [_RULE, f"{self.name} Tag Store", _RULE]
        for cache_set in self.sets:
            rows.append(
                "".join(
                    f"[{int(entry.valid)}, {int(entry.dirty)}, {entry.tag:>10x}] "
                    for entry in cache_set.entries
                )
            )
        text = "\n".join(rows) + "\n"
        if is_file:
            Path(f"{self.name}.dump").write_text(text, encoding="utf-8")
        else:
            print(text, end="")
        return text