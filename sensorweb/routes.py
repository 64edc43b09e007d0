from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError

from .models import ErrorResponse, HealthResponse, OverrideRequest, OverrideResult, SensorSnapshot
from .postdata import decode_post
from .service import SensorService


router = APIRouter()


def get_service(request: Request) -> SensorService:
    return request.app.state.service


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns service health status, the sensor kind and whether sampling is running",
    tags=["Health"]
)
def health(service: SensorService = Depends(get_service)) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="ok", sensor=service.client.kind, running=service.running)


# nginx forwards whatever location it maps to the socket, so the data
# endpoints answer on every path
@router.get(
    "/{path:path}",
    response_model=SensorSnapshot,
    summary="Current readings",
    description="Returns the epoch, the buffered readings with their timestamps and the sampling rate",
    tags=["Readings"]
)
def get_readings(path: str, service: SensorService = Depends(get_service)) -> SensorSnapshot:
    """Snapshot of the ring buffer."""
    return service.snapshot()


@router.post(
    "/{path:path}",
    response_model=OverrideResult,
    status_code=status.HTTP_200_OK,
    summary="Override readings",
    description=(
        "Force readings to a value. Accepts JSON ({\"volt\": 1.5}) or form data "
        "(degrees=20&steps=100). With steps the next N readings are forced, "
        "otherwise all buffered readings are overwritten."
    ),
    responses={
        200: {"description": "Override applied"},
        400: {"model": ErrorResponse, "description": "Body could not be decoded or has no value"},
    },
    tags=["Readings"]
)
async def post_override(
    path: str, request: Request, service: SensorService = Depends(get_service)
) -> OverrideResult:
    """Apply an override command sent by the browser."""
    body = await request.body()
    try:
        fields = decode_post(body, request.headers.get("content-type"))
        req = OverrideRequest.from_fields(fields)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"invalid override: {e.errors()[0]['msg']}")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return service.override(req)
