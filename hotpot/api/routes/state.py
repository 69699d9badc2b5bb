"""Controller state routes."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, status

from hotpot.api.dependencies import ControllerDep
from hotpot.models.schemas import PinStateResponse, ThermostatStateResponse

router = APIRouter()


@router.get("", response_model=dict[str, Any])
async def get_state(controller: ControllerDep) -> dict[str, Any]:
    return await controller.get_state()


@router.get("/thermostat/{name}", response_model=ThermostatStateResponse)
async def get_thermostat_state(name: str, controller: ControllerDep) -> ThermostatStateResponse:
    thermostat = controller.thermostat.get(name.upper())
    if thermostat is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown thermostat {name!r}"
        )
    return ThermostatStateResponse.model_validate(thermostat.get_state())


@router.get("/pin/{name}", response_model=PinStateResponse)
async def get_pin_state(name: str, controller: ControllerDep) -> PinStateResponse:
    pin = controller.pin.get(name.upper())
    if pin is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown pin {name!r}")
    return PinStateResponse.model_validate(await pin.get_serialisable_state())
