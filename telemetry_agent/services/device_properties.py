"""
Desired/reported property documents for the remote configuration channel.

The desired document holds what the operator asked for and survives restarts
as a JSON file; it is applied at startup and on every change. The reported
document holds what the agent acknowledged as effective.
"""

import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

import aiofiles
import aiofiles.os


class ReportedPropertiesSink(Protocol):
    async def report(self, properties: Dict[str, Any]) -> None: ...


class DesiredProperties:
    def __init__(self, path: str):
        self.path = path
        self._document: Dict[str, Any] = {}
        self._version = 0
        self._lock = asyncio.Lock()

    @property
    def version(self) -> int:
        return self._version

    def get(self) -> Dict[str, Any]:
        return dict(self._document)

    async def load(self) -> Dict[str, Any]:
        """Read the persisted document; a missing file is an empty document."""
        async with self._lock:
            if not await aiofiles.os.path.exists(self.path):
                logging.info(f"No desired properties file at {self.path} - using defaults")
                self._document = {}
                return {}

            async with aiofiles.open(self.path, mode="r", encoding="utf-8") as f:
                content = await f.read()

            try:
                document = json.loads(content) if content.strip() else {}
            except json.JSONDecodeError as e:
                logging.error(f"Ignoring unreadable desired properties file {self.path}: {e}")
                document = {}

            if not isinstance(document, dict):
                logging.error(f"Ignoring desired properties file {self.path}: not a JSON object")
                document = {}

            try:
                version = int(document.get("$version", 0) or 0)
            except (TypeError, ValueError):
                logging.error(
                    f"Ignoring invalid $version {document.get('$version')!r} in {self.path}"
                )
                version = 0

            self._document = document
            self._version = version
            return dict(document)

    async def merge(self, patch: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge a partial document and persist it.

        Keys mapped to None are kept as explicit nulls so a restart applies
        the same reset again.
        """
        async with self._lock:
            self._document.update(patch)
            self._version += 1
            self._document["$version"] = self._version
            await self._persist()
            return dict(self._document)

    async def _persist(self) -> None:
        parent = Path(self.path).parent
        if str(parent) not in ("", "."):
            await aiofiles.os.makedirs(parent, exist_ok=True)

        tmp_path = f"{self.path}.tmp"
        async with aiofiles.open(tmp_path, mode="w", encoding="utf-8") as f:
            await f.write(json.dumps(self._document, indent=2, ensure_ascii=False))
        await aiofiles.os.replace(tmp_path, self.path)


class ReportedProperties:
    """In-memory reported document, acknowledged back to the operator."""

    def __init__(self):
        self._document: Dict[str, Any] = {}
        self._version = 0
        self._last_reported_at: Optional[datetime] = None

    async def report(self, properties: Dict[str, Any]) -> None:
        self._document.update(properties)
        self._version += 1
        self._last_reported_at = datetime.now()
        logging.info(f"Reported properties updated: {properties}")

    def get(self) -> Dict[str, Any]:
        document = dict(self._document)
        document["$version"] = self._version
        if self._last_reported_at:
            document["$lastUpdated"] = self._last_reported_at.isoformat()
        return document
