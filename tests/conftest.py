"""Shared test fixtures."""

from pathlib import Path

import pytest
from fastapi import FastAPI

from fakes import FakeBrowserSession, FakeContext, FakePage
from fandango_explorer.api.errors import install_error_handlers
from fandango_explorer.api.routes import debug, extract, health, search, seatmap, sessions
from fandango_explorer.browser import BrowserSession, SessionRegistry

FIXTURE_DIR = Path(__file__).parent / "scraper" / "fixtures"


@pytest.fixture
def fixture_html():
    def load(name: str) -> str:
        return (FIXTURE_DIR / name).read_text()

    return load


@pytest.fixture
def fake_page() -> FakePage:
    return FakePage()


@pytest.fixture
def make_session(tmp_path: Path):
    """Build a BrowserSession wired to a FakePage instead of a real browser."""

    def build(page: FakePage, session_id: str = "test-session") -> BrowserSession:
        session = BrowserSession(session_id, timeout=5, screenshot_dir=tmp_path)
        session._page = page
        session.context = FakeContext()
        return session

    return build


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry(max_sessions=2, idle_ttl=60, session_factory=FakeBrowserSession)


@pytest.fixture
def test_app(registry: SessionRegistry) -> FastAPI:
    """Minimal FastAPI app without the scheduler lifespan, for API tests."""
    app = FastAPI()
    install_error_handlers(app)
    app.state.registry = registry
    app.include_router(health.router)
    app.include_router(search.router, prefix="/api")
    app.include_router(seatmap.router, prefix="/api")
    app.include_router(sessions.router, prefix="/api")
    app.include_router(extract.router, prefix="/api")
    app.include_router(debug.router, prefix="/api")
    return app
