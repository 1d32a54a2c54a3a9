"""Tests for the TMDb API client."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx

from cinecatalog.services.tmdb_client import TMDbClient, extract_year


SAMPLE_SEARCH_RESPONSE = {
    "results": [
        {
            "id": 12345,
            "title": "Nosferatu",
            "release_date": "2024-12-25",
            "overview": "A horror film.",
            "poster_path": "/nosferatu.jpg",
        }
    ]
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_http_response(json_data: dict, status_code: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_data
    if status_code >= 400:
        response.raise_for_status.side_effect = httpx.HTTPError(f"HTTP {status_code}")
    else:
        response.raise_for_status = MagicMock()
    return response


def make_async_client_ctx(*responses: MagicMock) -> AsyncMock:
    """Async context manager whose .get() returns *responses* in turn."""
    inner = AsyncMock()
    inner.get = AsyncMock(side_effect=list(responses))
    ctx = AsyncMock()
    ctx.__aenter__ = AsyncMock(return_value=inner)
    ctx.__aexit__ = AsyncMock(return_value=False)
    return ctx


# ---------------------------------------------------------------------------
# search_film
# ---------------------------------------------------------------------------


class TestSearchFilm:
    async def test_returns_none_without_api_key(self) -> None:
        client = TMDbClient(api_key="dummy")
        client.api_key = ""
        assert await client.search_film("Nosferatu") is None

    async def test_returns_first_result(self) -> None:
        client = TMDbClient(api_key="test-key")
        ctx = make_async_client_ctx(make_http_response(SAMPLE_SEARCH_RESPONSE))
        with patch("httpx.AsyncClient", return_value=ctx):
            result = await client.search_film("Nosferatu")
        assert result is not None
        assert result["id"] == 12345

    async def test_includes_year_when_provided(self) -> None:
        client = TMDbClient(api_key="test-key")
        ctx = make_async_client_ctx(make_http_response(SAMPLE_SEARCH_RESPONSE))
        with patch("httpx.AsyncClient", return_value=ctx):
            await client.search_film("Nosferatu", year=2024)
        params = ctx.__aenter__.return_value.get.call_args.kwargs["params"]
        assert params["year"] == 2024
        assert params["language"] == "en-GB"

    async def test_returns_none_when_results_empty(self) -> None:
        client = TMDbClient(api_key="test-key")
        ctx = make_async_client_ctx(make_http_response({"results": []}))
        with patch("httpx.AsyncClient", return_value=ctx):
            assert await client.search_film("UnknownFilm") is None

    async def test_returns_none_on_http_error(self) -> None:
        client = TMDbClient(api_key="test-key")
        ctx = make_async_client_ctx(make_http_response({}, status_code=500))
        with patch("httpx.AsyncClient", return_value=ctx):
            assert await client.search_film("Nosferatu") is None

    async def test_returns_none_on_network_error(self) -> None:
        client = TMDbClient(api_key="test-key")
        inner = AsyncMock()
        inner.get = AsyncMock(side_effect=httpx.ConnectError("Connection refused"))
        ctx = AsyncMock()
        ctx.__aenter__ = AsyncMock(return_value=inner)
        ctx.__aexit__ = AsyncMock(return_value=False)
        with patch("httpx.AsyncClient", return_value=ctx):
            assert await client.search_film("Nosferatu") is None


# ---------------------------------------------------------------------------
# find_match
# ---------------------------------------------------------------------------


class TestFindMatch:
    async def test_builds_match_from_first_hit(self) -> None:
        client = TMDbClient(api_key="test-key")
        ctx = make_async_client_ctx(make_http_response(SAMPLE_SEARCH_RESPONSE))
        with patch("httpx.AsyncClient", return_value=ctx):
            match = await client.find_match("Nosferatu", 2024)
        assert match is not None
        assert match.tmdb_id == 12345
        assert match.year == 2024
        assert match.poster_url == "https://image.tmdb.org/t/p/w500/nosferatu.jpg"
        assert match.synopsis == "A horror film."

    async def test_falls_through_variations(self) -> None:
        client = TMDbClient(api_key="test-key")
        ctx = make_async_client_ctx(
            make_http_response({"results": []}),
            make_http_response(SAMPLE_SEARCH_RESPONSE),
        )
        with patch("httpx.AsyncClient", return_value=ctx):
            match = await client.find_match("Nosferatu")
        assert match is not None
        queries = [c.kwargs["params"]["query"] for c in ctx.__aenter__.return_value.get.call_args_list]
        assert queries == ["Nosferatu", "The Nosferatu"]

    async def test_returns_none_when_nothing_matches(self) -> None:
        client = TMDbClient(api_key="test-key")
        ctx = make_async_client_ctx(
            make_http_response({"results": []}),
            make_http_response({"results": []}),
        )
        with patch("httpx.AsyncClient", return_value=ctx):
            assert await client.find_match("Nosferatu") is None


class TestExtractYear:
    def test_valid(self) -> None:
        assert extract_year("1922-03-04") == 1922

    def test_missing(self) -> None:
        assert extract_year(None) is None
        assert extract_year("") is None

    def test_garbage(self) -> None:
        assert extract_year("soon") is None
