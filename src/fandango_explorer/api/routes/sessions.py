"""Explicit browser session teardown."""

from fastapi import APIRouter, Depends, HTTPException, Response

from fandango_explorer.api.deps import get_registry
from fandango_explorer.browser import SessionRegistry

router = APIRouter()


@router.delete("/sessions/{session_id}", status_code=204)
async def close_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> Response:
    """Close a session's browser once the caller is done with it."""
    if not await registry.close(session_id):
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return Response(status_code=204)
