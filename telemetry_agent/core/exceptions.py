# telemetry_agent/core/exceptions.py

class AgentError(Exception):
    """Base class for recoverable agent errors."""


class ConfigValueError(AgentError):
    """Raised when a remote configuration value cannot be applied."""
    def __init__(self, field: str, raw_value: object, reason: str):
        self.field = field
        self.raw_value = raw_value
        self.reason = reason
        super().__init__(f"Invalid value {raw_value!r} for '{field}': {reason}")


class FileAccessError(AgentError):
    """Raised when a candidate file cannot be safely opened."""
    def __init__(self, file_path: str, reason: str):
        self.file_path = file_path
        super().__init__(f"{file_path} cannot be opened: {reason}")


class HeaderError(AgentError):
    """Raised when a file has no usable header line."""
    def __init__(self, file_path: str, reason: str):
        self.file_path = file_path
        super().__init__(f"Invalid header in {file_path}: {reason}")


class RowShapeError(AgentError):
    """Raised for a data row whose cell count differs from the header."""
    def __init__(self, line_number: int, expected: int, actual: int):
        self.line_number = line_number
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Line {line_number}: expected {expected} cells, got {actual}"
        )


class PublishError(AgentError):
    """Raised when the telemetry sink rejects or fails a message."""


class RenameError(AgentError):
    """Raised when a processed file cannot be renamed."""
    def __init__(self, source: str, target: str, reason: str):
        self.source = source
        self.target = target
        super().__init__(f"Cannot rename '{source}' to '{target}': {reason}")


class SinkConnectionError(AgentError):
    """Raised when the telemetry sink cannot be reached at startup."""
