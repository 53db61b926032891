from fastapi import APIRouter, Depends, Query

from ips_api.models import ApiResponse, RequestLogEntry
from ips_api.settings import Settings, get_settings
from ips_api.store import clear_request_logs, list_request_logs

router = APIRouter()


@router.get("/api/logs")
async def get_request_logs(
    limit: int = Query(50, ge=1),
    settings: Settings = Depends(get_settings),
) -> ApiResponse:
    """Most recent API calls first, capped at the configured log size."""
    records = list_request_logs(limit=min(limit, settings.request_log_limit))
    return ApiResponse.ok([RequestLogEntry(**record).model_dump() for record in records])


@router.delete("/api/logs")
async def delete_request_logs() -> ApiResponse:
    clear_request_logs()
    return ApiResponse.ok({"cleared": True})
