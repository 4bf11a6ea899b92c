"""Application configuration using pydantic-settings."""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Target site
    site_base_url: str = "https://www.fandango.com"

    # Scraping settings (seconds)
    scrape_timeout: int = 30
    request_timeout_factor: float = 1.5

    # Browser launch
    headless: bool = True
    browser_no_sandbox: bool = True
    browser_executable_path: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "browser_executable_path", "playwright_chromium_executable_path"
        ),
    )
    # Remote browser (e.g. a hosted Chromium). Local launch is used when empty.
    browser_ws_endpoint: str | None = Field(
        default=None,
        validation_alias=AliasChoices("browser_ws_endpoint", "browser_ws"),
    )
    browser_use_cdp: bool = False
    use_stealth: bool = True
    rotate_user_agents: bool = True

    # Screenshots
    screenshot_dir: Path = Path("public/screenshots")
    screenshot_url_prefix: str = "/screenshots"
    serve_screenshots: bool = True

    # Session registry
    max_sessions: int = 4
    session_idle_ttl: int = 900
    session_sweep_interval: int = 60
    keep_search_sessions: bool = True

    # Meridiem-less hours below this value are read as PM (0 disables)
    ambiguous_pm_cutoff: int = 0

    # External natural-language query extraction service
    query_extractor_url: str = ""

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: list[str] = ["http://localhost:3000"]

    @property
    def request_timeout(self) -> float:
        """Outer wall-clock guard wrapping one whole request."""
        return self.scrape_timeout * self.request_timeout_factor


# Global settings instance
settings = Settings()
