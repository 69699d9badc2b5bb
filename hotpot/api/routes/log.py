"""Historian trace routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from hotpot.api.dependencies import ControllerDep

router = APIRouter()


@router.get("/{kind}/{name}", response_model=list[float])
async def get_log(
    kind: str,
    name: str,
    controller: ControllerDep,
    since: Annotated[float | None, Query(description="Oldest sample time, epoch ms")] = None,
) -> list[float]:
    """Return ``[base, dt1, v1, dt2, v2, ...]`` for a thermostat or pin."""

    try:
        return await controller.get_log(kind, name, since)
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
