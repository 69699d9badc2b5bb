"""Calendar routes: state, refresh and editing of file calendars."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, status

from hotpot.api.dependencies import ControllerDep
from hotpot.core.calendar import Calendar, FileCalendar
from hotpot.core.controller import Controller
from hotpot.core.exceptions import CalendarParseError
from hotpot.models.schemas import CalendarEventPayload

logger = logging.getLogger(__name__)

router = APIRouter()


def _calendar(controller: Controller, name: str) -> Calendar:
    calendar = controller.calendar.get(name)
    if calendar is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown calendar {name!r}"
        )
    return calendar


def _file_calendar(controller: Controller, name: str) -> FileCalendar:
    calendar = _calendar(controller, name)
    if not isinstance(calendar, FileCalendar):
        raise HTTPException(
            status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
            detail=f"Calendar {name!r} is read-only",
        )
    return calendar


@router.get("", response_model=dict[str, Any])
async def list_calendars(controller: ControllerDep) -> dict[str, Any]:
    return {name: calendar.get_state() for name, calendar in controller.calendar.items()}


@router.post("/{name}/refresh", response_model=dict[str, Any])
async def refresh_calendar(name: str, controller: ControllerDep) -> dict[str, Any]:
    calendar = _calendar(controller, name)
    await calendar.update()
    return calendar.get_state()


@router.get("/{name}/events", response_model=list[dict[str, Any]])
async def list_events(name: str, controller: ControllerDep) -> list[dict[str, Any]]:
    return await _file_calendar(controller, name).load()


@router.post("/{name}/events", response_model=dict[str, int], status_code=status.HTTP_201_CREATED)
async def add_event(
    name: str, payload: CalendarEventPayload, controller: ControllerDep
) -> dict[str, int]:
    calendar = _file_calendar(controller, name)
    try:
        event_id = await calendar.add_event(payload)
    except (CalendarParseError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"id": event_id}


@router.put("/{name}/events/{event_id}", response_model=dict[str, int])
async def change_event(
    name: str, event_id: int, payload: CalendarEventPayload, controller: ControllerDep
) -> dict[str, int]:
    calendar = _file_calendar(controller, name)
    try:
        await calendar.change_event(event_id, payload)
    except (CalendarParseError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"id": event_id}


@router.delete("/{name}/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_event(name: str, event_id: int, controller: ControllerDep) -> None:
    await _file_calendar(controller, name).remove_event(event_id)
