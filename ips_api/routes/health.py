from fastapi import APIRouter

from ips_api.models import ApiResponse

router = APIRouter()


@router.get("/health")
async def health_check() -> ApiResponse:
    return ApiResponse.ok({"status": "healthy"})
