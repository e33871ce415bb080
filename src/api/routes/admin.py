"""
Admin / observability endpoints
===============================

GET /api/v1/admin/wait-session -- raw wait session as the engine holds it
GET /api/v1/admin/health       -- simple health check
"""

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_wait_timer
from src.api.middleware import limiter
from src.api.schemas import HealthResponse, WaitSessionResponse
from src.domain.wait_timer import WaitTimeEngine

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/wait-session",
    response_model=WaitSessionResponse,
    summary="Current wait session snapshot",
)
@limiter.limit("100/minute")
async def get_wait_session(
    request: Request,
    timer: WaitTimeEngine = Depends(get_wait_timer),
):
    return WaitSessionResponse(**timer.snapshot())


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
