import logging
from typing import Any, Dict, Mapping, Optional

from telemetry_agent.core.config_store import FIELD_NAMES, ConfigStore
from telemetry_agent.core.exceptions import ConfigValueError
from .device_properties import ReportedPropertiesSink


class ReconfigurationHandler:
    """
    Applies remote configuration updates to the ConfigStore.

    Each known field present in an update is applied independently; a bad
    value is logged and the remaining fields still go through. Fields whose
    effective value changed are reported back on the configuration channel.
    """

    def __init__(self, config_store: ConfigStore, reporter: ReportedPropertiesSink):
        self._config_store = config_store
        self._reporter = reporter

    async def on_update(self, changed: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        logging.info("Desired properties update started")

        if changed is None:
            logging.info("Empty desired properties ignored")
            return {}

        before = self._config_store.get().to_reported()
        report: Dict[str, Any] = {}

        for field_name in FIELD_NAMES:
            if field_name not in changed:
                logging.debug(f"{field_name} not in update - ignored")
                continue
            try:
                value = self._config_store.set(field_name, changed[field_name])
            except ConfigValueError as e:
                logging.error(f"Desired properties change error: {e}")
                continue

            # Only real changes are acknowledged; re-sending the same value reports nothing
            if value != before[field_name]:
                logging.info(f"{field_name} changed to '{value}'")
                report[field_name] = value
            else:
                logging.debug(f"{field_name} unchanged at '{value}'")

        unknown = [key for key in changed if key not in FIELD_NAMES and not key.startswith("$")]
        if unknown:
            logging.debug(f"Ignoring unknown desired properties: {unknown}")

        if not report:
            return report

        try:
            await self._reporter.report(report)
        except Exception as e:
            logging.error(f"Error when reporting effective properties: {e}")

        return report
