"""Data models for hostmon."""

from collections.abc import Iterator
from dataclasses import dataclass
from typing import ClassVar

from hostmon.errors import SourceUnavailableError


@dataclass(slots=True, frozen=True)
class CpuCounters:
    """
    Cumulative CPU time counters captured at one instant.

    Only the difference between two samples is meaningful. Units are
    backend specific (jiffies, seconds or 100ns intervals).
    """

    total: float
    idle: float


@dataclass(slots=True, frozen=True)
class MemorySnapshot:
    """Physical memory occupancy in bytes."""

    total: int
    used: int
    free: int

    @classmethod
    def from_total_free(cls, total: int, free: int) -> "MemorySnapshot":
        """Build a snapshot where used is derived as total - free."""
        return cls(total=total, used=total - free, free=free)

    @classmethod
    def empty(cls) -> "MemorySnapshot":
        """Zeroed snapshot used when the memory source is unreadable."""
        return cls(total=0, used=0, free=0)


@dataclass(slots=True, frozen=True)
class LoadAverage:
    """1, 5 and 15 minute load averages."""

    UNAVAILABLE: ClassVar["LoadAverage"]

    one: float
    five: float
    fifteen: float

    def __iter__(self) -> Iterator[float]:
        """Iterate as a (1, 5, 15) minute triple."""
        return iter((self.one, self.five, self.fifteen))


# Reported when the platform has no load average concept, not a measured idle
LoadAverage.UNAVAILABLE = LoadAverage(0.0, 0.0, 0.0)


@dataclass(slots=True, frozen=True)
class Sample:
    """Result of one poll of the host."""

    cpu_percent: float  # 0.0 - 100.0, 0.0 on the first poll
    load: LoadAverage
    memory: MemorySnapshot
    errors: tuple[SourceUnavailableError, ...] = ()

    @property
    def ok(self) -> bool:
        """True when every source was read successfully."""
        return not self.errors
