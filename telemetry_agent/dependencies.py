from functools import lru_cache
from typing import Any, Dict

from .config import Settings
from .core.config_store import ConfigStore
from .services.device_properties import DesiredProperties, ReportedProperties
from .services.domain_objects import PollLoopConfiguration
from .services.file_finalizer import FileFinalizer
from .services.file_safety import FileSafetyChecker
from .services.file_scanner import FileScanner
from .services.poll_loop import PollLoop
from .services.reconfiguration import ReconfigurationHandler
from .services.telemetry_publisher import TelemetryPublisher
from .services.telemetry_sink import (
    HttpTelemetrySink,
    LoggingTelemetrySink,
    TelemetrySink,
)

# Global singleton instances
_singletons: Dict[str, Any] = {}


@lru_cache
def get_settings() -> Settings:
    """Hent Settings singleton instance."""
    return Settings()


def get_config_store() -> ConfigStore:
    if "config_store" not in _singletons:
        _singletons["config_store"] = ConfigStore.from_settings(get_settings())
    return _singletons["config_store"]


def get_desired_properties() -> DesiredProperties:
    if "desired_properties" not in _singletons:
        _singletons["desired_properties"] = DesiredProperties(
            get_settings().desired_properties_path
        )
    return _singletons["desired_properties"]


def get_reported_properties() -> ReportedProperties:
    if "reported_properties" not in _singletons:
        _singletons["reported_properties"] = ReportedProperties()
    return _singletons["reported_properties"]


def get_reconfiguration_handler() -> ReconfigurationHandler:
    if "reconfiguration_handler" not in _singletons:
        _singletons["reconfiguration_handler"] = ReconfigurationHandler(
            config_store=get_config_store(),
            reporter=get_reported_properties(),
        )
    return _singletons["reconfiguration_handler"]


def get_telemetry_sink() -> TelemetrySink:
    if "telemetry_sink" not in _singletons:
        settings = get_settings()
        if settings.sink_endpoint:
            sink: TelemetrySink = HttpTelemetrySink(
                endpoint_url=settings.sink_endpoint,
                device_id=settings.device_id,
                auth_token=settings.telemetry_auth_token,
                timeout_seconds=settings.telemetry_timeout_seconds,
            )
        else:
            sink = LoggingTelemetrySink(device_id=settings.device_id)
        _singletons["telemetry_sink"] = sink
    return _singletons["telemetry_sink"]


def get_telemetry_publisher() -> TelemetryPublisher:
    if "telemetry_publisher" not in _singletons:
        _singletons["telemetry_publisher"] = TelemetryPublisher(get_telemetry_sink())
    return _singletons["telemetry_publisher"]


def get_poll_loop() -> PollLoop:
    if "poll_loop" not in _singletons:
        settings = get_settings()
        _singletons["poll_loop"] = PollLoop(
            config=PollLoopConfiguration.from_settings(settings),
            config_store=get_config_store(),
            scanner=FileScanner(settings.watch_directory),
            safety_checker=FileSafetyChecker(),
            publisher=get_telemetry_publisher(),
            finalizer=FileFinalizer(),
        )
    return _singletons["poll_loop"]


def reset_singletons() -> None:
    """Reset all singletons - bruges til testing."""
    _singletons.clear()
    get_settings.cache_clear()
