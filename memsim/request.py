"""Memory requests travelling through the hierarchy."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class MemoryLevel(IntEnum):
    """Level of a memory component."""

    L1 = 1
    L2 = 2
    MC = 3


class RequestType(IntEnum):
    """Kind of memory request."""

    DFETCH = 0  # data read
    DSTORE = 1  # data write
    IFETCH = 2  # instruction fetch
    WB = 3      # write-back


@dataclass(eq=False)
class MemRequest:
    """One in-flight memory request; compared by identity."""

    addr: int
    req_type: int
    id: int = 0
    size: int = 0
    in_cycle: int = 0
    rdy_cycle: int = 0
    done_cycle: int = 0
    done: bool = False
    dirty: bool = False