"""Health check endpoint."""

from fastapi import APIRouter, Depends

from fandango_explorer.api.deps import get_registry
from fandango_explorer.browser import SessionRegistry

router = APIRouter()


@router.get("/health", tags=["health"])
async def health_check(registry: SessionRegistry = Depends(get_registry)) -> dict[str, str | int]:
    """
    Health check endpoint.

    Returns:
        Status message and the number of live browser sessions
    """
    return {"status": "ok", "sessions": len(registry)}
