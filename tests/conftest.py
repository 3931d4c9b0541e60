"""Shared fixtures for hostmon tests."""

from collections.abc import Iterable

import pytest

from hostmon.backends import PlatformBackend
from hostmon.errors import SourceUnavailableError
from hostmon.models import CpuCounters, LoadAverage, MemorySnapshot


class FakeBackend(PlatformBackend):
    """Backend replaying scripted readings. Exceptions in a script are raised."""

    name = "fake"
    title = "Fake System Monitor"

    def __init__(
        self,
        counters: Iterable[CpuCounters | Exception] = (),
        memory: MemorySnapshot | Exception | None = None,
        load: LoadAverage | Exception | None = None,
        supports_load_average: bool = True,
    ) -> None:
        self._counters = list(counters)
        self._memory = memory or MemorySnapshot.from_total_free(8 * 1024**3, 2 * 1024**3)
        self._load = load or LoadAverage(1.0, 0.5, 0.25)
        self.supports_load_average = supports_load_average
        self.cpu_reads = 0
        self.closed = False

    def read_cpu_counters(self) -> CpuCounters:
        self.cpu_reads += 1
        if self._counters:
            item = self._counters.pop(0)
        else:
            # Keep ticking at 50% once the script runs out
            item = CpuCounters(total=100.0 * self.cpu_reads, idle=50.0 * self.cpu_reads)
        if isinstance(item, Exception):
            raise item
        return item

    def read_memory(self) -> MemorySnapshot:
        if isinstance(self._memory, Exception):
            raise self._memory
        return self._memory

    def read_load_average(self) -> LoadAverage:
        if isinstance(self._load, Exception):
            raise self._load
        return self._load

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_backend() -> FakeBackend:
    """A backend ticking at a steady 50% utilization."""
    return FakeBackend()


@pytest.fixture
def unavailable() -> SourceUnavailableError:
    """A representative source-unavailable error."""
    return SourceUnavailableError("/proc/stat", "No such file or directory")
