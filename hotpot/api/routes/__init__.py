"""API route registration for Hotpot."""

from fastapi import APIRouter

from . import calendar, log, request, state

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(state.router, prefix="/state", tags=["state"])
api_router.include_router(log.router, prefix="/log", tags=["log"])
api_router.include_router(request.router, prefix="/request", tags=["request"])
api_router.include_router(calendar.router, prefix="/calendar", tags=["calendar"])


__all__ = [
    "api_router",
    "calendar",
    "log",
    "request",
    "state",
]
