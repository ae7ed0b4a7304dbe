"""
Row parser for delimited text files.

Reads one line at a time so the caller can stop mid-file without the rest of
the file ever being loaded. Fields are split on a single delimiter character
with no quoting or escaping: a delimiter inside a value is a field boundary.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Protocol

import aiofiles

from telemetry_agent.core.exceptions import HeaderError, RowShapeError
from telemetry_agent.models import Record


class LineSource(Protocol):
    async def readline(self) -> str: ...


def _strip_line_ending(line: str) -> str:
    return line.rstrip("\r\n")


class RowParser:
    def __init__(self, source: LineSource, delimiter: str = ",", source_name: str = "<stream>"):
        if len(delimiter) != 1:
            raise ValueError("delimiter must be exactly one character")
        self._source = source
        self._delimiter = delimiter
        self._source_name = source_name
        self._header: Optional[List[str]] = None
        self._line_number = 0
        self._exhausted = False

    @property
    def header(self) -> Optional[List[str]]:
        return self._header

    @property
    def line_number(self) -> int:
        """Number of physical lines consumed so far (header included)."""
        return self._line_number

    async def parse_header(self) -> List[str]:
        """
        Read the first line as the ordered list of field names.

        Raises:
            HeaderError: the stream is empty or names a field twice
        """
        if self._header is not None:
            return self._header

        line = await self._source.readline()
        if not line:
            self._exhausted = True
            raise HeaderError(self._source_name, "file is empty")
        self._line_number += 1

        fields = _strip_line_ending(line).split(self._delimiter)
        duplicates = sorted({name for name in fields if fields.count(name) > 1})
        if duplicates:
            raise HeaderError(self._source_name, f"duplicate field names {duplicates}")

        self._header = fields
        return fields

    async def next_record(self) -> Optional[Record]:
        """
        Return the next data row, or None at end of stream.

        Blank lines are skipped. A row with the wrong number of cells raises
        RowShapeError; the parser stays usable and the next call continues
        with the following line.
        """
        if self._header is None:
            await self.parse_header()

        while not self._exhausted:
            line = await self._source.readline()
            if not line:
                self._exhausted = True
                break
            self._line_number += 1

            text = _strip_line_ending(line)
            if not text:
                logging.debug(f"{self._source_name}: skipping blank line {self._line_number}")
                continue

            values = text.split(self._delimiter)
            if len(values) != len(self._header):
                raise RowShapeError(self._line_number, len(self._header), len(values))

            return dict(zip(self._header, values))

        return None

    async def records(self) -> AsyncIterator[Record]:
        """Iterate well-formed records, logging and skipping shape errors."""
        while True:
            try:
                record = await self.next_record()
            except RowShapeError as e:
                logging.warning(f"{self._source_name}: {e}")
                continue
            if record is None:
                return
            yield record


@asynccontextmanager
async def open_row_parser(
    file_path: str, encoding: str, delimiter: str = ","
) -> AsyncIterator[RowParser]:
    """Open `file_path` with a fixed text encoding and yield a parser over it."""
    async with aiofiles.open(file_path, mode="r", encoding=encoding) as handle:
        yield RowParser(handle, delimiter=delimiter, source_name=file_path)
