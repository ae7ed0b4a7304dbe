import logging

import aiofiles.os

from telemetry_agent.core.exceptions import RenameError


def build_processed_path(file_path: str, suffix: str) -> str:
    return f"{file_path}{suffix}"


class FileFinalizer:
    """Marks a fully published file by appending the processed suffix."""

    async def finalize(self, file_path: str, suffix: str) -> str:
        """
        Rename `file_path` to `file_path + suffix` and return the new path.

        Raises:
            RenameError: the suffix is empty, the target already exists, or
                the rename itself fails
        """
        if not suffix:
            raise RenameError(file_path, file_path, "processed suffix is empty")

        target = build_processed_path(file_path, suffix)

        # os.rename silently replaces an existing target on POSIX
        if await aiofiles.os.path.exists(target):
            raise RenameError(file_path, target, "target already exists")

        try:
            await aiofiles.os.rename(file_path, target)
        except OSError as e:
            raise RenameError(file_path, target, e.strerror or str(e)) from e

        logging.info(f"Renamed '{file_path}' to '{target}'")
        return target
