"""
Live configuration shared between the poll loop and remote updates.

Updates arrive on the remote-channel path while the poll loop reads, possibly
from another thread, so every read and write goes through one lock and readers
only ever see a complete immutable `AgentConfig` snapshot.
"""

import logging
import re
from threading import Lock
from typing import Any, Callable, Dict, Tuple

from telemetry_agent.config import Settings
from telemetry_agent.core.exceptions import ConfigValueError
from telemetry_agent.models import AgentConfig

INTERVAL = "interval"
RENAME_EXTENSION = "renameExtension"
SEARCH_PATTERN = "searchPattern"

FIELD_NAMES: Tuple[str, ...] = (INTERVAL, RENAME_EXTENSION, SEARCH_PATTERN)

_PATH_SEPARATORS = ("/", "\\")

# ASCII digits only
_MILLIS_PATTERN = re.compile(r"\+?[0-9]+")


def _is_absent(raw_value: Any) -> bool:
    return raw_value is None or (isinstance(raw_value, str) and raw_value.strip() == "")


def parse_interval(raw_value: Any) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(raw_value, bool):
        raise ConfigValueError(INTERVAL, raw_value, "expected milliseconds, got a boolean")

    if isinstance(raw_value, int):
        value = raw_value
    elif isinstance(raw_value, float) and raw_value.is_integer():
        value = int(raw_value)
    elif isinstance(raw_value, str) and _MILLIS_PATTERN.fullmatch(raw_value.strip()):
        try:
            value = int(raw_value.strip())
        except ValueError as e:
            # longer than the interpreter's int string conversion limit
            raise ConfigValueError(INTERVAL, raw_value, str(e)) from e
    else:
        raise ConfigValueError(INTERVAL, raw_value, "expected an integer number of milliseconds")

    if value <= 0:
        raise ConfigValueError(INTERVAL, raw_value, "must be greater than zero")
    return value


def parse_search_pattern(raw_value: Any) -> str:
    if not isinstance(raw_value, str):
        raise ConfigValueError(SEARCH_PATTERN, raw_value, "expected a glob string")
    if any(sep in raw_value for sep in _PATH_SEPARATORS):
        raise ConfigValueError(SEARCH_PATTERN, raw_value, "must match file names only")
    return raw_value


def parse_rename_extension(raw_value: Any) -> str:
    if not isinstance(raw_value, str):
        raise ConfigValueError(RENAME_EXTENSION, raw_value, "expected a string suffix")
    if any(sep in raw_value for sep in _PATH_SEPARATORS):
        raise ConfigValueError(RENAME_EXTENSION, raw_value, "must not contain a path separator")
    return raw_value


class ConfigStore:
    """
    Thread-safe holder of the agent's live configuration.

    `get()` returns a frozen snapshot; `set()` replaces a single field.
    An absent value (None or an empty string) resets the field to its default.
    """

    def __init__(
        self,
        default_interval_millis: int = 10000,
        default_search_pattern: str = "*.csv",
        default_rename_extension: str = ".old",
    ):
        self._defaults = AgentConfig(
            interval_millis=default_interval_millis,
            file_pattern=default_search_pattern,
            processed_suffix=default_rename_extension,
        )
        self._current = self._defaults
        self._lock = Lock()

        # remote name -> (snapshot attribute, parser)
        self._fields: Dict[str, Tuple[str, Callable[[Any], Any]]] = {
            INTERVAL: ("interval_millis", parse_interval),
            SEARCH_PATTERN: ("file_pattern", parse_search_pattern),
            RENAME_EXTENSION: ("processed_suffix", parse_rename_extension),
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "ConfigStore":
        return cls(
            default_interval_millis=settings.default_interval_millis,
            default_search_pattern=settings.default_search_pattern,
            default_rename_extension=settings.default_rename_extension,
        )

    @property
    def defaults(self) -> AgentConfig:
        return self._defaults

    def get(self) -> AgentConfig:
        with self._lock:
            return self._current

    def parse(self, field_name: str, raw_value: Any = None) -> Any:
        """
        Resolve the value `set` would apply, without applying it.

        Raises:
            KeyError: field_name is not a known setting
            ConfigValueError: raw_value cannot be parsed
        """
        attribute, parser = self._fields[field_name]
        if _is_absent(raw_value):
            return getattr(self._defaults, attribute)
        return parser(raw_value)

    def set(self, field_name: str, raw_value: Any = None) -> Any:
        """
        Apply one field and return its new effective value.

        Raises:
            KeyError: field_name is not a known setting
            ConfigValueError: raw_value cannot be parsed; the field is unchanged
        """
        attribute, _ = self._fields[field_name]
        value = self.parse(field_name, raw_value)

        with self._lock:
            self._current = self._current.model_copy(update={attribute: value})

        logging.debug(f"Config field '{field_name}' set to {value!r}")
        return value

    def reset(self) -> AgentConfig:
        """Restore every field to its default."""
        with self._lock:
            self._current = self._defaults
            return self._current
