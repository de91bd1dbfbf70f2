"""Trace-driven core that issues memory accesses to a memory hierarchy."""

from __future__ import annotations

import re
from os import PathLike
from typing import Protocol, Union

from .config import Config
from .request import RequestType

_TRACE_LINE = re.compile(r"\s*([+-]?\d+)\s+([+-]?(?:0[xX])?[0-9a-fA-F]+)")
_ADDRESS_MASK = (1 << 64) - 1
_RULE = "-" * 30
_PROGRESS_INTERVAL = 100000


class _Hierarchy(Protocol):
    config: Config

    def access(self, address: int, access_type: int) -> bool: ...

    def run_a_cycle(self) -> None: ...

    def num_in_flight_reqs(self) -> int: ...

    def is_wb_done(self) -> bool: ...


class Core:
    """Reads a trace and drives the memory hierarchy one cycle at a time."""

    def __init__(self, hierarchy: _Hierarchy) -> None:
        self.hierarchy = hierarchy
        self.cycle = 0
        self.num_insts = 0
        self.num_mem_insts = 0

    def run_sim(self, filename: Union[str, "PathLike[str]"]) -> None:
        """Simulate a trace of ``<type> <hex address>`` lines and print stats.

        In single-request mode a new trace line is issued only when nothing is
        in flight. An unreadable trace ends the run silently.
        """
        try:
            handle = open(filename, encoding="utf-8")
        except OSError:
            return

        mm = self.hierarchy
        with handle:
            lines = iter(handle)
            while True:
                if not mm.config.single_request or mm.num_in_flight_reqs() == 0:
                    line = next(lines, None)
                    if line is None:
                        break
                    self._issue(line)
                self.run_a_cycle()

        while mm.num_in_flight_reqs() != 0 or not mm.is_wb_done():
            self.run_a_cycle()

        print(self._format_stats(), end="")

    def run_a_cycle(self) -> None:
        self.hierarchy.run_a_cycle()
        self.cycle += 1

    def _issue(self, line: str) -> None:
        match = _TRACE_LINE.match(line)
        if match is None:
            return
        access_type = int(match.group(1))
        address = int(match.group(2), 16) & _ADDRESS_MASK

        if access_type == RequestType.IFETCH:
            self.hierarchy.access(address, access_type)
            self.num_insts += 1
            if self.num_insts % _PROGRESS_INTERVAL == 0:
                print(f"Processed {self.num_insts} instructions")
        elif access_type in (RequestType.DFETCH, RequestType.DSTORE):
            self.hierarchy.access(address, access_type)
            self.num_mem_insts += 1

    def _format_stats(self) -> str:
        if self.num_insts:
            cpi = self.cycle / self.num_insts
        else:
            cpi = float("inf") if self.cycle else float("nan")
        lines = [
            _RULE,
            "Performance Stats",
            _RULE,
            f"CPI:  {cpi:g}",
            f"number of cycles: {self.cycle}",
            f"number of insts: {self.num_insts}",
            f"number of memory insts: {self.num_mem_insts}",
        ]
        return "\n".join(lines) + "\n"