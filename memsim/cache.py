"""Timed cache component: request queues on top of a tag store."""

from __future__ import annotations

from typing import Callable, Optional, Protocol

from .cache_base import CacheBase, Eviction
from .reqqueue import RequestQueue
from .request import MemoryLevel, MemRequest, RequestType

DoneCallback = Callable[[MemRequest], None]


class _Memory(Protocol):
    def access(self, req: MemRequest) -> bool: ...


class Cache(CacheBase):
    """A cache level that moves requests between its queues each cycle.

    Requests become visible ``latency`` cycles after they are accepted by
    :meth:`access` or :meth:`fill`. Misses go to the next cache level or to
    main memory; data coming back is forwarded to the upper level, or handed
    to ``done_func`` when this cache is the top of the hierarchy.
    """

    def __init__(
        self,
        name: str,
        level: int,
        num_sets: int,
        assoc: int,
        line_size: int,
        latency: int,
    ) -> None:
        super().__init__(name, num_sets, assoc, line_size)
        self.level = level
        self.latency = latency
        self.cycle = 0

        self.in_queue = RequestQueue()
        self.out_queue = RequestQueue()
        self.fill_queue = RequestQueue()
        self.wb_queue = RequestQueue()
        self.in_flight_wb_queue = RequestQueue()

        self.prev_i: Optional[Cache] = None
        self.prev_d: Optional[Cache] = None
        self.next_level: Optional[Cache] = None
        self.memory: Optional[_Memory] = None

        self.done_func: Optional[DoneCallback] = None

        self.num_backinvals = 0
        self.num_writebacks_backinval = 0

    def configure_neighbors(
        self,
        prev_i: Optional["Cache"],
        prev_d: Optional["Cache"],
        next_level: Optional["Cache"],
        memory: Optional[_Memory],
    ) -> None:
        self.prev_i = prev_i
        self.prev_d = prev_d
        self.next_level = next_level
        self.memory = memory

    def run_a_cycle(self) -> None:
        """Process the queues in the order write-back, fill, out, in."""
        self._process_wb_queue()
        self._process_fill_queue()
        self._process_out_queue()
        self._process_in_queue()
        self.cycle += 1

    def access(self, req: MemRequest) -> bool:  # type: ignore[override]
        """Accept a lookup request; False if the input queue is full."""
        if self.in_queue.full():
            return False
        req.rdy_cycle = self.cycle + self.latency
        self.in_queue.push(req)
        return True

    def fill(self, req: MemRequest) -> bool:  # type: ignore[override]
        """Accept data or a write-back from another level; False if full."""
        if self.fill_queue.full():
            return False
        req.rdy_cycle = self.cycle + self.latency
        self.fill_queue.push(req)
        return True

    def format_stats(self) -> str:
        return (
            super().format_stats()
            + f"number of back invalidations: {self.num_backinvals}\n"
            + f"number of writebacks due to back invalidations: {self.num_writebacks_backinval}\n"
        )

    def print_stats(self) -> None:
        print(self.format_stats(), end="")

    @property
    def _is_top(self) -> bool:
        return self.prev_i is None and self.prev_d is None

    def _queue_writeback(self, address: int) -> None:
        self.wb_queue.push(
            MemRequest(address, RequestType.WB, dirty=True, rdy_cycle=self.cycle)
        )

    def _back_invalidate(self, address: int) -> None:
        """Keep upper levels inclusive of a line leaving this level."""
        if self.prev_d is not None:
            present, dirty = CacheBase.invalidate(self.prev_d, address)
            if present:
                self.prev_d.num_backinvals += 1
                if dirty:
                    self.prev_d.num_writebacks_backinval += 1
                    self._queue_writeback(address)
        if self.prev_i is not None:
            present, _ = CacheBase.invalidate(self.prev_i, address)
            if present:
                self.prev_i.num_backinvals += 1

    def _handle_eviction(self, eviction: Eviction) -> None:
        if self.level == MemoryLevel.L2 and eviction.address:
            self._back_invalidate(eviction.address)
        if eviction.dirty:
            self._queue_writeback(eviction.address)

    def _forward_up(self, req: MemRequest) -> None:
        if req.req_type == RequestType.IFETCH and self.prev_i is not None:
            self.prev_i.fill(req)
        elif self.prev_d is not None:
            self.prev_d.fill(req)
        elif self.prev_i is not None:
            self.prev_i.fill(req)

    def _complete(self, req: MemRequest) -> None:
        req.rdy_cycle = self.cycle
        assert self.done_func is not None
        self.done_func(req)

    def _process_in_queue(self) -> None:
        for req in self.in_queue:
            if req.rdy_cycle > self.cycle:
                continue

            hit, eviction = CacheBase.access(self, req.addr, req.req_type, False)
            self._handle_eviction(eviction)
            self.in_queue.remove(req)

            if hit:
                if self._is_top and self.done_func is not None:
                    self._complete(req)
                else:
                    self._forward_up(req)
            else:
                req.rdy_cycle = self.cycle
                if req.req_type == RequestType.DSTORE:
                    # Lower levels see a read; the line is marked dirty on fill.
                    req.dirty = True
                    req.req_type = RequestType.DFETCH
                self.out_queue.push(req)

    def _process_out_queue(self) -> None:
        for req in self.out_queue:
            if req.rdy_cycle > self.cycle:
                continue
            if self.next_level is not None:
                accepted = self.next_level.access(req)
            elif self.memory is not None:
                accepted = self.memory.access(req)
            else:
                raise RuntimeError(f"{self.name}: no next level defined")
            if accepted:
                self.out_queue.remove(req)

    def _process_fill_queue(self) -> None:
        for req in self.fill_queue:
            if req.rdy_cycle > self.cycle:
                continue

            if req.req_type == RequestType.WB:
                _, eviction = CacheBase.install_writeback(self, req.addr)
            else:
                fill_type = req.req_type
                if req.dirty and self.level == MemoryLevel.L1 and req.req_type == RequestType.DFETCH:
                    fill_type = RequestType.DSTORE
                _, eviction = CacheBase.access(self, req.addr, fill_type, True)

            self._handle_eviction(eviction)
            self.fill_queue.remove(req)

            if self._is_top and self.done_func is not None:
                self._complete(req)
            elif req.req_type != RequestType.WB:
                self._forward_up(req)

    def _process_wb_queue(self) -> None:
        for req in self.wb_queue:
            if req.rdy_cycle > self.cycle:
                continue
            if self.next_level is not None:
                accepted = self.next_level.fill(req)
            elif self.memory is not None:
                accepted = self.memory.access(req)
            else:
                accepted = False
            if accepted:
                self.wb_queue.remove(req)