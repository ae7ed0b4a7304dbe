"""
File Telemetry Agent.

Watches a directory for delimited data files, publishes every row as a
telemetry message and renames each fully published file.
"""

__version__ = "0.1.0"
