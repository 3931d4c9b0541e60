"""Exceptions raised by the hostmon sampling layer."""


class SourceUnavailableError(Exception):
    """An OS data source could not be opened or queried."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class UnsupportedPlatformError(RuntimeError):
    """No backend exists for the running platform."""
