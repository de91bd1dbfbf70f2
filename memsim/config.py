"""Simulator configuration: parsing of ``key value`` / ``key = value`` files."""

from __future__ import annotations

import re
from dataclasses import dataclass, fields
from os import PathLike
from typing import Iterable, Union

_DELIMITERS = re.compile(r"[ \t=]+")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


@dataclass
class Config:
    """Memory hierarchy parameters; every value is an integer."""

    mem_hierarchy: int = 0
    single_request: int = 0

    l1i_size: int = 0
    l1i_assoc: int = 0
    l1i_line_size: int = 0
    l1i_latency: int = 0

    l1d_size: int = 0
    l1d_assoc: int = 0
    l1d_line_size: int = 0
    l1d_latency: int = 0

    l2_size: int = 0
    l2_assoc: int = 0
    l2_line_size: int = 0
    l2_latency: int = 0

    memory_latency: int = 0


_KEYS = frozenset(field.name for field in fields(Config))


def _leading_int(text: str) -> int:
    """Read the integer at the start of ``text``; 0 when there is none."""
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def parse_config(lines: Union[str, Iterable[str]]) -> Config:
    """Build a :class:`Config` from configuration lines.

    Tokens are separated by spaces, tabs and ``=``. Unknown keys are ignored;
    a value that does not start with a number reads as 0.
    """
    if isinstance(lines, str):
        lines = lines.splitlines()

    config = Config()
    for line in lines:
        tokens = [tok for tok in _DELIMITERS.split(line.rstrip("\r\n")) if tok]
        if not tokens:
            continue
        key = tokens[0]
        if key not in _KEYS:
            continue
        if len(tokens) < 2:
            raise ValueError(f"missing value for configuration key {key!r}")
        setattr(config, key, _leading_int(tokens[1]))
    return config


def load_config(path: Union[str, "PathLike[str]"]) -> Config:
    """Read and parse a configuration file; raises ``OSError`` if unreadable."""
    with open(path, encoding="utf-8") as handle:
        return parse_config(handle)