"""Platform backends reading raw CPU, memory and load counters."""

import logging
import os
import sys
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

import psutil

from hostmon.errors import SourceUnavailableError, UnsupportedPlatformError
from hostmon.models import CpuCounters, LoadAverage, MemorySnapshot

logger = logging.getLogger(__name__)


class PlatformBackend(ABC):
    """
    Source of raw host counters for one operating system.

    Reads raise SourceUnavailableError when the OS source cannot be
    reached. Exactly one backend is active per process.
    """

    name: str = "unknown"
    title: str = "System Monitor"
    supports_load_average: bool = True

    @abstractmethod
    def read_cpu_counters(self) -> CpuCounters:
        """Read cumulative total and idle CPU time."""

    @abstractmethod
    def read_memory(self) -> MemorySnapshot:
        """Read physical memory occupancy in bytes."""

    @abstractmethod
    def read_load_average(self) -> LoadAverage:
        """Read the 1, 5 and 15 minute load averages."""

    def close(self) -> None:
        """Release any OS handles held by the backend."""


def _read_psutil_load(source: str) -> LoadAverage:
    """Read load averages through psutil, reporting OS failures as unavailable."""
    try:
        one, five, fifteen = psutil.getloadavg()
    except OSError as e:
        raise SourceUnavailableError(source, str(e)) from e
    return LoadAverage(one, five, fifteen)


class ProcStatBackend(PlatformBackend):
    """Linux backend reading the kernel proc table."""

    name = "procfs"
    title = "Linux System Monitor"

    # user, nice, system, idle, iowait, irq, softirq, steal
    CPU_FIELDS = 8

    def __init__(self, proc_root: str | os.PathLike[str] = "/proc") -> None:
        """
        Initialize the backend.

        Args:
            proc_root: Mount point of procfs. Default /proc.
        """
        self._stat_path = Path(proc_root) / "stat"

    def read_cpu_counters(self) -> CpuCounters:
        """Read the aggregate cpu line; idle includes iowait."""
        try:
            with self._stat_path.open() as f:
                line = f.readline()
        except OSError as e:
            raise SourceUnavailableError(str(self._stat_path), str(e)) from e

        parts = line.split()
        if not parts or parts[0] != "cpu":
            raise SourceUnavailableError(
                str(self._stat_path), "missing aggregate cpu line"
            )
        try:
            values = [int(p) for p in parts[1 : 1 + self.CPU_FIELDS]]
        except ValueError as e:
            raise SourceUnavailableError(str(self._stat_path), str(e)) from e

        # Older kernels expose fewer columns
        values.extend([0] * (self.CPU_FIELDS - len(values)))
        idle = values[3] + values[4]
        return CpuCounters(total=sum(values), idle=idle)

    def read_memory(self) -> MemorySnapshot:
        """Read MemTotal and MemFree, the counters sysinfo reports."""
        try:
            vm = psutil.virtual_memory()
        except (OSError, psutil.Error) as e:
            raise SourceUnavailableError("meminfo", str(e)) from e

        return MemorySnapshot.from_total_free(total=vm.total, free=vm.free)

    def read_load_average(self) -> LoadAverage:
        """Read load averages from the kernel."""
        return _read_psutil_load("getloadavg")


class HostStatisticsBackend(PlatformBackend):
    """macOS backend reading per-processor ticks and VM page statistics."""

    name = "host_statistics"
    title = "macOS System Monitor"

    def read_cpu_counters(self) -> CpuCounters:
        """Sum user+nice, system and idle ticks over all processors."""
        try:
            per_cpu = psutil.cpu_times(percpu=True)
        except (OSError, psutil.Error) as e:
            raise SourceUnavailableError("host_processor_info", str(e)) from e
        if not per_cpu:
            raise SourceUnavailableError("host_processor_info", "no processors")

        user = system = idle = 0.0
        for times in per_cpu:
            user += times.user + times.nice
            system += times.system
            idle += times.idle

        return CpuCounters(total=user + system + idle, idle=idle)

    def read_memory(self) -> MemorySnapshot:
        """Read VM page classes as bytes."""
        try:
            vm = psutil.virtual_memory()
        except (OSError, psutil.Error) as e:
            raise SourceUnavailableError("host_statistics64", str(e)) from e

        # psutil subtracts speculative pages from free; available is
        # inactive + free_count before that adjustment
        free = vm.available - vm.inactive
        total = free + vm.active + vm.inactive + vm.wired
        return MemorySnapshot.from_total_free(total=total, free=free)

    def read_load_average(self) -> LoadAverage:
        """Read load averages from the kernel."""
        return _read_psutil_load("getloadavg")


class CounterQuery(Protocol):
    """Raw counter query yielding ``(idle_time, timebase)`` per read."""

    def read(self) -> tuple[int, int]: ...

    def close(self) -> None: ...


def _open_processor_time_query() -> CounterQuery:
    """Open the PDH processor time query."""
    from hostmon.pdh import ProcessorTimeQuery

    return ProcessorTimeQuery()


class CounterQueryBackend(PlatformBackend):
    """
    Windows backend reading performance counters.

    The PDH query is opened on first use and reused until close(). The
    first read after opening only establishes a baseline.
    """

    name = "pdh"
    title = "Windows System Monitor"
    supports_load_average = False

    def __init__(
        self,
        query_factory: Callable[[], CounterQuery] = _open_processor_time_query,
    ) -> None:
        """
        Initialize the backend.

        Args:
            query_factory: Opens the processor time query. Called until it
                succeeds once.
        """
        self._query_factory = query_factory
        self._query: CounterQuery | None = None

    def _ensure_query(self) -> CounterQuery:
        """Return the long-lived query, opening it on first use."""
        if self._query is None:
            try:
                self._query = self._query_factory()
            except OSError as e:
                raise SourceUnavailableError("pdh query", str(e)) from e
            logger.debug("Opened processor time query")
        return self._query

    def read_cpu_counters(self) -> CpuCounters:
        """Collect the query and return its raw idle time and timebase."""
        query = self._ensure_query()
        try:
            idle_time, timebase = query.read()
        except OSError as e:
            raise SourceUnavailableError("pdh query", str(e)) from e
        return CpuCounters(total=timebase, idle=idle_time)

    def read_memory(self) -> MemorySnapshot:
        """Read physical memory status; used is total minus available."""
        try:
            vm = psutil.virtual_memory()
        except (OSError, psutil.Error) as e:
            raise SourceUnavailableError("GlobalMemoryStatusEx", str(e)) from e
        return MemorySnapshot.from_total_free(total=vm.total, free=vm.available)

    def read_load_average(self) -> LoadAverage:
        """Windows has no load average; always the unavailable sentinel."""
        return LoadAverage.UNAVAILABLE

    def close(self) -> None:
        """Close the PDH query if it was opened."""
        if self._query is not None:
            self._query.close()
            self._query = None


_BACKENDS: dict[str, type[PlatformBackend]] = {
    "linux": ProcStatBackend,
    "darwin": HostStatisticsBackend,
    "win32": CounterQueryBackend,
}


def select_backend(platform: str | None = None, **options) -> PlatformBackend:
    """
    Create the backend for a platform.

    Args:
        platform: A sys.platform value. Defaults to the running platform.
        **options: Passed to the backend constructor.

    Raises:
        UnsupportedPlatformError: If no backend exists for the platform.
    """
    platform = platform or sys.platform
    key = "linux" if platform.startswith("linux") else platform
    try:
        backend_cls = _BACKENDS[key]
    except KeyError:
        raise UnsupportedPlatformError(f"No backend for platform {platform!r}") from None

    logger.debug("Selected %s backend for %s", backend_cls.name, platform)
    return backend_cls(**options)
