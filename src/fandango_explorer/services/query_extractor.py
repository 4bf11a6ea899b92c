"""Client for the external natural-language query extraction service."""

import json
import logging
from typing import Any

import httpx

from fandango_explorer.config import settings
from fandango_explorer.utils.time import to_24_hour, try_parse_time

logger = logging.getLogger(__name__)

QUERY_FIELDS = ("movie", "location", "theater", "time_range", "specific_times")


class QueryExtractionError(RuntimeError):
    """The extraction service is unavailable or returned something unusable."""


def strip_code_fence(text: str) -> str:
    """Remove a markdown code fence the service may wrap its JSON in."""
    if "```json" in text:
        return text.split("```json", 1)[1].split("```", 1)[0].strip()
    if "```" in text:
        return text.split("```")[1].strip()
    return text.strip()


def normalise_parameters(params: dict[str, Any]) -> dict[str, Any]:
    """
    Keep only query fields and rewrite am/pm specific times as "HH:MM".

    Times that do not parse are passed through untouched.
    """
    cleaned = {key: params[key] for key in QUERY_FIELDS if params.get(key)}

    times = cleaned.get("specific_times")
    if isinstance(times, list):
        cleaned["specific_times"] = [
            to_24_hour(t) if try_parse_time(t) is not None else t
            for t in times
            if isinstance(t, str) and t.strip()
        ]
    return cleaned


class QueryExtractorClient:
    """Sends free text to the extraction service and returns query parameters."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None) -> None:
        self.base_url = base_url if base_url is not None else settings.query_extractor_url
        self.timeout = timeout or settings.scrape_timeout

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    async def extract(self, text: str) -> dict[str, Any]:
        """
        Extract search parameters from ``text``.

        Args:
            text: The user's question, e.g. "Dune in Chicago after 6pm"

        Returns:
            Dict with any of movie, location, theater, time_range, specific_times

        Raises:
            QueryExtractionError: If the service is not configured, fails,
                or returns something that is not a JSON object
        """
        if not self.configured:
            raise QueryExtractionError("Query extraction service is not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.base_url, json={"query": text})
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Query extraction request failed: {e}")
            raise QueryExtractionError(f"Failed to process query: {e}") from e

        try:
            data = response.json()
            if isinstance(data, str):
                data = json.loads(strip_code_fence(data))
        except ValueError as e:
            logger.error(f"Query extraction returned invalid JSON: {e}")
            raise QueryExtractionError("Query extraction service returned invalid JSON") from e

        if not isinstance(data, dict):
            raise QueryExtractionError("Query extraction service returned an unexpected payload")

        params = normalise_parameters(data)
        logger.info(f"Extracted parameters: {params}")
        return params
