from datetime import datetime, timezone

from fastapi import APIRouter

from server.models.responses import LivenessResponse

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> LivenessResponse:
    """Liveness of the API process itself. Backends are checked by the per-service health routes."""
    return LivenessResponse(status="ok", timestamp=datetime.now(timezone.utc).isoformat())
