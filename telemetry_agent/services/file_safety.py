import asyncio
import logging
import sys

from telemetry_agent.core.exceptions import FileAccessError

if sys.platform != "win32":
    import fcntl


def _probe_file(file_path: str) -> None:
    # Windows refuses the open itself while another process holds the file
    # exclusively; POSIX needs an explicit advisory lock probe.
    with open(file_path, "r+b") as handle:
        if not handle.readable() or not handle.writable():
            raise FileAccessError(file_path, "handle is not readable and writable")

        if sys.platform != "win32":
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_SH | fcntl.LOCK_NB)
            except BlockingIOError:
                raise FileAccessError(file_path, "exclusively locked by another process")
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


class FileSafetyChecker:
    """Confirms a candidate file can be read and renamed right now."""

    def __init__(self, timeout_seconds: float = 5.0):
        self.timeout_seconds = timeout_seconds

    async def ensure_accessible(self, file_path: str) -> None:
        """
        Raises:
            FileAccessError: the file cannot be opened for shared read/write
        """
        try:
            await asyncio.wait_for(
                asyncio.to_thread(_probe_file, file_path),
                timeout=self.timeout_seconds,
            )
        except FileAccessError:
            raise
        except asyncio.TimeoutError:
            raise FileAccessError(file_path, "open timed out")
        except OSError as e:
            raise FileAccessError(file_path, e.strerror or str(e)) from e

    async def is_accessible(self, file_path: str) -> bool:
        try:
            await self.ensure_accessible(file_path)
            return True
        except FileAccessError as e:
            logging.info(str(e))
            return False
