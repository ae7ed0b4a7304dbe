import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from ..core.config_store import FIELD_NAMES, ConfigStore
from ..core.exceptions import ConfigValueError
from ..dependencies import (
    get_config_store,
    get_desired_properties,
    get_reconfiguration_handler,
    get_reported_properties,
)
from ..models import AgentConfig
from ..services.device_properties import DesiredProperties, ReportedProperties
from ..services.reconfiguration import ReconfigurationHandler

router = APIRouter(prefix="/api/config", tags=["config"])


@router.get("/desired")
async def read_desired(
    desired: DesiredProperties = Depends(get_desired_properties),
) -> Dict[str, Any]:
    """Desired properties as last set by the operator"""
    return desired.get()


@router.patch("/desired")
async def update_desired(
    patch: Dict[str, Any] = Body(...),
    desired: DesiredProperties = Depends(get_desired_properties),
    handler: ReconfigurationHandler = Depends(get_reconfiguration_handler),
    config_store: ConfigStore = Depends(get_config_store),
) -> Dict[str, Any]:
    """
    Merge a partial desired document and apply it.

    A JSON null resets that setting to its default. Values that cannot be
    applied are left out of the persisted document, so a restart never
    replays them. The response carries the fields whose effective value
    changed, the rejected fields and the resulting configuration.
    """
    logging.info(
        f"Desired properties patch received: {sorted(patch)}",
        extra={"operation": "api_update_desired"},
    )

    rejected: Dict[str, str] = {}
    for field_name in FIELD_NAMES:
        if field_name not in patch:
            continue
        try:
            config_store.parse(field_name, patch[field_name])
        except ConfigValueError as e:
            logging.warning(f"Desired property not persisted: {e}")
            rejected[field_name] = e.reason

    accepted = {key: value for key, value in patch.items() if key not in rejected}

    document = await desired.merge(accepted)
    changed = await handler.on_update(accepted)

    return {
        "desired": document,
        "reported": changed,
        "rejected": rejected,
        "effective": config_store.get().to_reported(),
    }


@router.get("/reported")
async def read_reported(
    reported: ReportedProperties = Depends(get_reported_properties),
) -> Dict[str, Any]:
    """Properties the agent has acknowledged as effective"""
    return reported.get()


@router.get("/effective", response_model=AgentConfig)
async def read_effective(
    config_store: ConfigStore = Depends(get_config_store),
) -> AgentConfig:
    """Live configuration the poll loop is using right now"""
    return config_store.get()
