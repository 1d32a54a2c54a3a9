"""TMDb API client for resolving films to external catalogue IDs."""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from cinecatalog.config import settings
from cinecatalog.services.search_variants import generate_search_variations

logger = logging.getLogger(__name__)

POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"


@dataclass(frozen=True)
class TMDbMatch:
    """The fields the catalogue keeps from a TMDb search hit."""

    tmdb_id: int
    title: str
    year: int | None
    poster_url: str | None
    synopsis: str | None


class TMDbClient:
    """Client for The Movie Database (TMDb) API."""

    BASE_URL = "https://api.themoviedb.org/3"

    def __init__(self, api_key: str | None = None) -> None:
        """
        Initialize TMDb client.

        Args:
            api_key: TMDb API key (uses settings if not provided)
        """
        self.api_key = api_key or settings.tmdb_api_key
        if not self.api_key:
            logger.warning("TMDb API key not configured")

    async def search_film(self, title: str, year: int | None = None) -> dict[str, Any] | None:
        """
        Search for a film by title.

        Args:
            title: Film title
            year: Release year (optional, helps narrow results)

        Returns:
            First matching film result or None if not found
        """
        if not self.api_key:
            return None

        params: dict[str, Any] = {
            "api_key": self.api_key,
            "query": title,
            "language": "en-GB",
        }
        if year:
            params["year"] = year

        try:
            async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
                response = await client.get(f"{self.BASE_URL}/search/movie", params=params)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"TMDb search error for '{title}': {e}")
            return None

        results = data.get("results", [])
        if not results:
            logger.debug(f"No TMDb results for: {title}")
            return None

        return results[0]

    async def find_match(self, title: str, year: int | None = None) -> TMDbMatch | None:
        """
        Try each search variation of `title` until TMDb returns a hit.

        Args:
            title: Canonical film title
            year: Release year if known

        Returns:
            TMDbMatch or None
        """
        for variation in generate_search_variations(title):
            result = await self.search_film(variation, year)
            if result:
                logger.info(f"TMDb match for '{title}' via '{variation}': {result.get('id')}")
                return self.to_match(result)
        return None

    @staticmethod
    def to_match(result: dict[str, Any]) -> TMDbMatch:
        poster_path = result.get("poster_path")
        return TMDbMatch(
            tmdb_id=int(result["id"]),
            title=result.get("title") or "",
            year=extract_year(result.get("release_date")),
            poster_url=f"{POSTER_BASE_URL}{poster_path}" if poster_path else None,
            synopsis=result.get("overview") or None,
        )


def extract_year(release_date: str | None) -> int | None:
    """Extract year from TMDb release date string."""
    if not release_date:
        return None
    try:
        return int(release_date[:4])
    except (ValueError, IndexError):
        return None
