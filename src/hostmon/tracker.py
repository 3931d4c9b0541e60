"""CPU utilization from cumulative tick counters."""

from hostmon.models import CpuCounters


class CpuDeltaTracker:
    """
    Turns successive cumulative CPU samples into a utilization percentage.

    Retains only the most recent sample. The first update has nothing to
    diff against and yields 0.0. One tracker belongs to one polled host and
    must be driven by a single poller; it is not thread-safe.
    """

    def __init__(self) -> None:
        """Create a tracker in the uninitialized state."""
        self._previous: CpuCounters | None = None
        self._last_percent: float = 0.0

    @property
    def initialized(self) -> bool:
        """Whether a baseline sample has been captured."""
        return self._previous is not None

    @property
    def last_percent(self) -> float:
        """The most recently computed utilization."""
        return self._last_percent

    def update(self, current: CpuCounters) -> float:
        """
        Record a new sample and return utilization since the previous one.

        Args:
            current: Freshly read cumulative counters.

        Returns:
            Percentage in [0.0, 100.0]. When no ticks elapsed, or the
            counters went backwards, the previous result is repeated.
        """
        previous = self._previous
        self._previous = current

        if previous is None:
            return 0.0

        total_delta = current.total - previous.total
        idle_delta = current.idle - previous.idle
        if total_delta <= 0:
            return self._last_percent

        percent = 100.0 * (1.0 - idle_delta / total_delta)
        self._last_percent = min(100.0, max(0.0, percent))
        return self._last_percent

    def reset(self) -> None:
        """Forget the stored baseline."""
        self._previous = None
        self._last_percent = 0.0
