"""Routes for pushing requests onto thermostats."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from hotpot.api.dependencies import ControllerDep
from hotpot.core.exceptions import RequestError
from hotpot.core.request import Request
from hotpot.models.schemas import RequestPayload, RequestResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
async def make_request(payload: RequestPayload, controller: ControllerDep) -> RequestResponse:
    try:
        request = Request.from_payload(payload.source, payload.temperature, payload.until)
        controller.make_request(payload.service, request)
    except RequestError as exc:
        logger.info("Rejected request %s: %s", payload, exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return RequestResponse(
        source=request.source, temperature=request.temperature, until=request.until
    )
