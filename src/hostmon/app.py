"""hostmon - Main Textual application."""

import logging
from queue import Empty, Queue

from rich.markup import escape
from textual.app import App, ComposeResult
from textual.logging import TextualHandler
from textual.widgets import Footer, Header, Static

from hostmon.backends import PlatformBackend, select_backend
from hostmon.models import Sample
from hostmon.monitor import SystemMonitor

MEMORY_UNITS = ("B", "KB", "MB", "GB")


def format_memory_size(size: int) -> str:
    """Format bytes as a human-readable string, e.g. ``14.90 GB``."""
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(MEMORY_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{value:.2f} {MEMORY_UNITS[unit]}"


class StatsPanel(Static):
    """Widget showing CPU, load average and memory statistics."""

    DEFAULT_CSS = """
    StatsPanel {
        height: auto;
        padding: 1 2;
        background: $surface;
    }
    """

    def __init__(self, *args, supports_load_average: bool = True, **kwargs) -> None:
        """Initialize StatsPanel."""
        super().__init__(*args, **kwargs)
        self._supports_load_average = supports_load_average
        self._sample: Sample | None = None

    @property
    def sample(self) -> Sample | None:
        """The sample currently displayed."""
        return self._sample

    def on_mount(self) -> None:
        """Show the placeholder until the first sample arrives."""
        self.update(self.render_sample())

    def update_sample(self, sample: Sample) -> None:
        """Display a new sample."""
        self._sample = sample
        self.update(self.render_sample())

    def render_sample(self) -> str:
        """Build the panel markup for the current sample."""
        sample = self._sample
        if sample is None:
            return "Collecting system statistics..."

        bar_len = min(int(sample.cpu_percent / 5), 20)
        bar = "[green]█[/green]" * bar_len + "[dim]░[/dim]" * (20 - bar_len)

        if self._supports_load_average:
            load = sample.load
            load_line = (
                f"Load Averages: {load.one:.2f} (1 min), "
                f"{load.five:.2f} (5 min), {load.fifteen:.2f} (15 min)"
            )
        else:
            load_line = "Load Averages: n/a"

        memory = sample.memory
        lines = [
            f"CPU Usage: \\[{bar}] {sample.cpu_percent:.2f}%",
            load_line,
            f"Total Memory: {format_memory_size(memory.total)}",
            f"Used Memory: {format_memory_size(memory.used)}",
            f"Free Memory: {format_memory_size(memory.free)}",
        ]
        for error in sample.errors:
            lines.append(f"[red]Unavailable: {escape(str(error))}[/red]")
        return "\n".join(lines)


class HostmonApp(App):
    """Main hostmon application."""

    SUB_TITLE = "Host CPU, load and memory"

    BINDINGS = [
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        backend: PlatformBackend | None = None,
        poll_rate: float = 1.0,
    ) -> None:
        """Initialize the HostmonApp."""
        super().__init__()
        backend = backend if backend is not None else select_backend()
        self.title = backend.title
        self._update_queue: Queue[Sample] = Queue()
        self._monitor = SystemMonitor(
            self._update_queue, poll_rate=poll_rate, backend=backend
        )

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield Header()
        yield StatsPanel(
            id="stats",
            supports_load_average=self._monitor.backend.supports_load_average,
        )
        yield Footer()

    def on_mount(self) -> None:
        """Start the system monitor when the app is mounted."""
        self._monitor.start()
        # Set up a timer to poll the queue for updates
        self.set_interval(0.25, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Show the most recent sample from the queue, if any."""
        sample = None
        while True:
            try:
                sample = self._update_queue.get_nowait()
            except Empty:
                break

        if sample is not None:
            self.query_one("#stats", StatsPanel).update_sample(sample)

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()

    def on_unmount(self) -> None:
        """Stop polling if the app exits without the quit binding."""
        self._monitor.stop()


def main() -> None:
    """Entry point for hostmon application."""
    logging.basicConfig(level=logging.INFO, handlers=[TextualHandler()])
    app = HostmonApp()
    app.run()


if __name__ == "__main__":
    main()
