"""Request queues with optional back pressure."""

from __future__ import annotations

from typing import Iterator, List

from .request import MemRequest


class RequestQueue:
    """Ordered queue of requests.

    A capacity of zero means unbounded; otherwise ``push`` refuses new entries
    once the queue holds ``capacity`` requests.
    """

    def __init__(self, capacity: int = 0) -> None:
        if capacity < 0:
            raise ValueError("queue capacity must not be negative")
        self.capacity = capacity
        self._entries: List[MemRequest] = []

    def push(self, req: MemRequest) -> bool:
        """Append ``req``; return False if the queue is full."""
        if self.full():
            return False
        self._entries.append(req)
        return True

    def remove(self, req: MemRequest) -> None:
        """Drop every occurrence of ``req``; absent requests are ignored."""
        self._entries = [entry for entry in self._entries if entry is not req]

    def full(self) -> bool:
        return bool(self.capacity) and len(self._entries) >= self.capacity

    def empty(self) -> bool:
        return not self._entries

    def __contains__(self, req: object) -> bool:
        return any(entry is req for entry in self._entries)

    def __iter__(self) -> Iterator[MemRequest]:
        # Iterate over a snapshot so callers may remove entries while looping.
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)