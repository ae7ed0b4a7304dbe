"""
Services that make up one poll cycle and the remote configuration path.
"""

from .domain_objects import PollLoopConfiguration
from .file_finalizer import FileFinalizer
from .file_safety import FileSafetyChecker
from .file_scanner import FileScanner
from .poll_loop import PollLoop
from .reconfiguration import ReconfigurationHandler
from .row_parser import RowParser, open_row_parser
from .telemetry_publisher import TelemetryPublisher
from .telemetry_sink import HttpTelemetrySink, LoggingTelemetrySink, TelemetrySink

__all__ = [
    "PollLoopConfiguration",
    "FileFinalizer",
    "FileSafetyChecker",
    "FileScanner",
    "PollLoop",
    "ReconfigurationHandler",
    "RowParser",
    "open_row_parser",
    "TelemetryPublisher",
    "HttpTelemetrySink",
    "LoggingTelemetrySink",
    "TelemetrySink",
]
