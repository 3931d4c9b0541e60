"""Background polling thread for hostmon."""

import logging
import threading
from queue import Queue

from hostmon.backends import PlatformBackend, select_backend
from hostmon.models import Sample
from hostmon.sampler import Sampler

logger = logging.getLogger(__name__)


class SystemMonitor:
    """
    Polls the host at a fixed rate and pushes each Sample to a Queue.

    The sampler is driven only from the daemon thread, so its CPU delta
    state has a single writer. Errors never stop the loop.
    """

    def __init__(
        self,
        update_queue: Queue[Sample],
        poll_rate: float = 1.0,
        backend: PlatformBackend | None = None,
    ) -> None:
        """
        Initialize the SystemMonitor.

        Args:
            update_queue: Thread-safe queue to push samples to.
            poll_rate: How often to poll the host (in seconds). Default 1.0s.
            backend: Platform backend. Selected for the running OS by default.
        """
        self._queue = update_queue
        self._poll_rate = max(0.1, poll_rate)
        self._sampler = Sampler(backend if backend is not None else select_backend())
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        """Set the poll rate."""
        self._poll_rate = max(0.1, value)  # Minimum 0.1 seconds

    @property
    def backend(self) -> PlatformBackend:
        """The backend being polled."""
        return self._sampler.backend

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """
        Start the monitoring thread.

        Raises:
            RuntimeError: If a previous thread was asked to stop but is
                still inside a poll.
        """
        if self.is_running:
            if self._stop_event.is_set():
                raise RuntimeError("Previous polling thread has not exited yet")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="SystemMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread and release the backend.

        The backend is released by the polling thread as it exits. If the
        thread is still inside a poll when the timeout expires, it is kept
        and start() refuses to run until it has finished.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is None:
            self._sampler.close()
            return

        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning("Polling thread did not stop within %s seconds", timeout)
            return
        self._thread = None

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        try:
            while not self._stop_event.is_set():
                try:
                    self._queue.put(self._sampler.poll())
                except Exception:
                    logger.exception("Unexpected error while polling")

                # Wait for poll_rate seconds or until stop is requested
                self._stop_event.wait(timeout=self._poll_rate)
        finally:
            # Only this thread touches the sampler while it runs
            self._sampler.close()
