from dataclasses import dataclass

from telemetry_agent.config import Settings


@dataclass
class PollLoopConfiguration:
    """Fixed (not remotely tunable) parameters of the poll loop."""

    watch_directory: str
    file_encoding: str = "shift_jis"
    delimiter: str = ","
    shutdown_grace_seconds: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "PollLoopConfiguration":
        return cls(
            watch_directory=settings.watch_directory,
            file_encoding=settings.file_encoding,
            delimiter=settings.delimiter,
            shutdown_grace_seconds=settings.shutdown_grace_seconds,
        )
