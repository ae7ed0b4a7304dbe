"""
Core building blocks shared by the services: live configuration and errors.
"""

from .config_store import ConfigStore
from .exceptions import (
    AgentError,
    ConfigValueError,
    FileAccessError,
    HeaderError,
    PublishError,
    RenameError,
    RowShapeError,
    SinkConnectionError,
)

__all__ = [
    "ConfigStore",
    "AgentError",
    "ConfigValueError",
    "FileAccessError",
    "HeaderError",
    "PublishError",
    "RenameError",
    "RowShapeError",
    "SinkConnectionError",
]
