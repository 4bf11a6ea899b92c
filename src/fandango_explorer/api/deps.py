"""FastAPI dependencies."""

from fastapi import Request

from fandango_explorer.browser import SessionRegistry


def get_registry(request: Request) -> SessionRegistry:
    """The registry created by the application's lifespan hook."""
    return request.app.state.registry
