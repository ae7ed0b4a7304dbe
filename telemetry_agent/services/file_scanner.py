import fnmatch
import logging
import os
from pathlib import Path
from typing import List, Optional

import aiofiles.os

from telemetry_agent.core.exceptions import FileAccessError
from telemetry_agent.models import CandidateFile


def matches_pattern(file_name: str, pattern: str) -> bool:
    """Glob match against the bare file name, case rules of the host OS."""
    return fnmatch.fnmatch(file_name, pattern)


class FileScanner:
    """Lists files in the watched directory that match the current pattern."""

    def __init__(self, watch_directory: str):
        self.watch_directory = watch_directory

    async def scan(
        self, pattern: str, exclude_suffix: Optional[str] = None
    ) -> List[CandidateFile]:
        """
        Return matching regular files, sorted by name.

        Subdirectories are not descended into. Names already ending with
        `exclude_suffix` are left out so a broad pattern never picks up
        files this agent has finalized.

        Raises:
            FileAccessError: the watched directory is missing or not a directory
        """
        directory = Path(self.watch_directory)

        if not await aiofiles.os.path.isdir(directory):
            raise FileAccessError(str(directory), "watched directory does not exist")

        candidates: List[CandidateFile] = []
        for name in sorted(await aiofiles.os.listdir(directory)):
            if not matches_pattern(name, pattern):
                continue
            if exclude_suffix and name.endswith(exclude_suffix):
                continue

            file_path = os.path.abspath(os.path.join(directory, name))
            try:
                if not await aiofiles.os.path.isfile(file_path):
                    continue
                stat_result = await aiofiles.os.stat(file_path)
            except OSError as e:
                # Vanished between listing and stat
                logging.debug(f"Skipping {name}: {e}")
                continue

            candidates.append(CandidateFile(path=file_path, size=stat_result.st_size))

        logging.debug(f"Discovered {len(candidates)} files matching '{pattern}'")
        return candidates
