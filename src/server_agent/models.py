"""
Record types produced by the collectors.

Every field always carries a value. Anything that could not be determined
holds a sentinel (-1, -1.0 for float fields, 0, "Unknown", empty map) so the
serialized shape and JSON types stay the same from one cycle to the next.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any

STATUS_OK = "OK"
STATUS_FAILING = "FAILING"
STATUS_UNKNOWN = "UNKNOWN"

UNKNOWN = "Unknown"
SENTINEL = -1
SENTINEL_FLOAT = -1.0


def _filter_known(cls: type, data: dict[str, Any]) -> dict[str, Any]:
    known = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in known}


@dataclass
class DriveRecord:
    """Health and usage of one physical drive (or partition)."""

    name: str
    serial: str = ""
    status: str = STATUS_UNKNOWN
    temp: int = SENTINEL
    failing: bool = False
    raw_values: dict[str, str] = field(default_factory=dict)
    size: int = 0
    used_bytes: int = 0
    used_percent: float = SENTINEL_FLOAT

    def mark_ok(self) -> None:
        # A drive already flagged as failing stays failing
        if not self.failing:
            self.status = STATUS_OK

    def mark_failing(self) -> None:
        self.status = STATUS_FAILING
        self.failing = True

    def is_failing(self) -> bool:
        return self.failing

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DriveRecord:
        return cls(**_filter_known(cls, data))


@dataclass
class CPURecord:
    """Static CPU information plus a usage sample and temperature."""

    model_name: str = UNKNOWN
    cpu_count: int = SENTINEL
    threads: int = SENTINEL
    clock_mhz: float = SENTINEL_FLOAT
    temp_c: float = SENTINEL_FLOAT
    usage_percent: float = SENTINEL_FLOAT

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CPURecord:
        return cls(**_filter_known(cls, data))


@dataclass
class MemRecord:
    """Physical memory snapshot."""

    total: int = 0
    used: int = 0
    used_percent: float = SENTINEL_FLOAT

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MemRecord:
        return cls(**_filter_known(cls, data))


@dataclass
class NetworkRecord:
    """Cumulative I/O counters summed across all interfaces."""

    bytes_sent: int = 0
    bytes_recv: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NetworkRecord:
        return cls(**_filter_known(cls, data))
