"""FastAPI dependency injection helpers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from hotpot.config import SETTINGS, Settings
from hotpot.core.controller import Controller

# ---------------------------------------------------------------------------
# Settings dependency
# ---------------------------------------------------------------------------


def get_settings_dependency() -> Settings:
    return SETTINGS


SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]


# ---------------------------------------------------------------------------
# Controller dependency
# ---------------------------------------------------------------------------


def get_controller(request: Request) -> Controller:
    """Return the controller created by the application lifespan."""

    controller = getattr(request.app.state, "controller", None)
    if controller is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Controller not running",
        )
    return controller


ControllerDep = Annotated[Controller, Depends(get_controller)]


__all__ = [
    "ControllerDep",
    "SettingsDep",
    "get_controller",
    "get_settings_dependency",
]
