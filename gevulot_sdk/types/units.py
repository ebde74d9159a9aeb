"""Byte sizes in human units (1024-based), as task and pin specs take them."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import IntEnum

__all__ = ["ByteUnit", "ByteSize"]


class ByteUnit(IntEnum):
    BYTE = 1
    KILOBYTE = 1024
    MEGABYTE = 1024**2
    GIGABYTE = 1024**3

    @property
    def suffix(self) -> str:
        return _SUFFIXES[self]


_SUFFIXES = {
    ByteUnit.BYTE: "B",
    ByteUnit.KILOBYTE: "KB",
    ByteUnit.MEGABYTE: "MB",
    ByteUnit.GIGABYTE: "GB",
}
_BY_SUFFIX = {
    "b": ByteUnit.BYTE,
    "": ByteUnit.BYTE,
    "k": ByteUnit.KILOBYTE,
    "kb": ByteUnit.KILOBYTE,
    "kib": ByteUnit.KILOBYTE,
    "m": ByteUnit.MEGABYTE,
    "mb": ByteUnit.MEGABYTE,
    "mib": ByteUnit.MEGABYTE,
    "g": ByteUnit.GIGABYTE,
    "gb": ByteUnit.GIGABYTE,
    "gib": ByteUnit.GIGABYTE,
}
_SIZE_RE = re.compile(r"^\s*(\d+)\s*([a-zA-Z]*)\s*$")


@dataclass(frozen=True)
class ByteSize:
    value: int
    unit: ByteUnit = ByteUnit.BYTE

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError("byte size must be non-negative")

    def to_bytes(self) -> int:
        return self.value * int(self.unit)

    def __int__(self) -> int:
        return self.to_bytes()

    def __str__(self) -> str:
        return f"{self.value} {self.unit.suffix}"

    @classmethod
    def parse(cls, text: str) -> "ByteSize":
        """Parse ``"512MB"``, ``"1 GiB"``, ``"4096"`` and similar."""
        m = _SIZE_RE.match(text)
        if not m or m.group(2).lower() not in _BY_SUFFIX:
            raise ValueError(f"invalid byte size: {text!r}")
        return cls(int(m.group(1)), _BY_SUFFIX[m.group(2).lower()])
