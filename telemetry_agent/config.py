from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .utils.host_config import get_hostname_settings_file


class Settings(BaseSettings):
    # Watched directory
    watch_directory: str = "exchange"
    file_encoding: str = "shift_jis"
    delimiter: str = ","

    # Defaults for the remotely tunable parameters
    default_interval_millis: int = 10000
    default_search_pattern: str = "*.csv"
    default_rename_extension: str = ".old"

    # Remote configuration channel
    desired_properties_path: str = "desired_properties.json"

    # Telemetry sink (empty URL = log messages instead of sending them)
    telemetry_endpoint_url: str = ""
    telemetry_auth_token: str = ""
    telemetry_timeout_seconds: float = 10.0
    device_id: str = "filewatcher"

    # Shutdown
    shutdown_grace_seconds: float = 30.0

    # Logging konfiguration
    log_level: str = "INFO"
    log_file_path: str = "logs/telemetry_agent.log"
    log_retention_days: int = 30

    # HTTP API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    model_config = SettingsConfigDict(env_file=get_hostname_settings_file())

    @field_validator("delimiter")
    @classmethod
    def _single_character(cls, value: str) -> str:
        if len(value) != 1:
            raise ValueError("delimiter must be exactly one character")
        return value

    @field_validator("default_interval_millis")
    @classmethod
    def _positive_interval(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("default_interval_millis must be greater than zero")
        return value

    @property
    def log_directory(self) -> Path:
        """Returnerer log directory som Path objekt"""
        return Path(self.log_file_path).parent

    @property
    def sink_endpoint(self) -> Optional[str]:
        return self.telemetry_endpoint_url or None

    @property
    def config_file_info(self) -> dict:
        """Return information about which configuration file is being used."""
        from .utils.host_config import get_hostname, list_all_settings_files

        return {
            "hostname": get_hostname(),
            "active_config_file": get_hostname_settings_file(),
            "all_available_configs": list_all_settings_files(),
        }
