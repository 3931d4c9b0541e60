"""One-shot host sampling: CPU delta, memory and load for each poll."""

import logging

from hostmon.backends import PlatformBackend
from hostmon.errors import SourceUnavailableError
from hostmon.models import LoadAverage, MemorySnapshot, Sample
from hostmon.tracker import CpuDeltaTracker

logger = logging.getLogger(__name__)


def read_memory(backend: PlatformBackend) -> MemorySnapshot:
    """Read memory from the backend, normalized to integer bytes."""
    snapshot = backend.read_memory()
    return MemorySnapshot(
        total=int(snapshot.total),
        used=int(snapshot.used),
        free=int(snapshot.free),
    )


def read_load_average(backend: PlatformBackend) -> LoadAverage:
    """Read load averages from the backend as floats."""
    load = backend.read_load_average()
    return LoadAverage(float(load.one), float(load.five), float(load.fifteen))


class Sampler:
    """
    Polls one host through one backend.

    Owns the CPU delta tracker for that host, so a Sampler must not be
    shared between threads or reused for another host.
    """

    def __init__(
        self,
        backend: PlatformBackend,
        tracker: CpuDeltaTracker | None = None,
    ) -> None:
        """
        Initialize the Sampler.

        Args:
            backend: Active platform backend.
            tracker: CPU delta state. A fresh tracker is created by default.
        """
        self._backend = backend
        self._tracker = tracker if tracker is not None else CpuDeltaTracker()

    @property
    def backend(self) -> PlatformBackend:
        """The active backend."""
        return self._backend

    def poll(self) -> Sample:
        """
        Take one sample.

        Unreadable sources yield neutral values and are listed in
        ``Sample.errors``; this method does not raise for them.
        """
        errors: list[SourceUnavailableError] = []

        try:
            counters = self._backend.read_cpu_counters()
        except SourceUnavailableError as e:
            logger.warning("CPU counters unavailable: %s", e)
            errors.append(e)
            cpu_percent = 0.0
        else:
            cpu_percent = self._tracker.update(counters)

        try:
            memory = read_memory(self._backend)
        except SourceUnavailableError as e:
            logger.warning("Memory statistics unavailable: %s", e)
            errors.append(e)
            memory = MemorySnapshot.empty()

        try:
            load = read_load_average(self._backend)
        except SourceUnavailableError as e:
            logger.warning("Load average unavailable: %s", e)
            errors.append(e)
            load = LoadAverage.UNAVAILABLE

        return Sample(
            cpu_percent=cpu_percent,
            load=load,
            memory=memory,
            errors=tuple(errors),
        )

    def close(self) -> None:
        """Release the backend."""
        self._backend.close()
