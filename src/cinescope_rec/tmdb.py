"""
Async TMDB collaborator.

Implements the movie source the engine consumes on top of TMDB's v3 API:
movie details, popular pages and the weekly trending list.
"""

import logging

import httpx

from .config import (
    TMDB_API_KEY,
    TMDB_BASE_URL,
    TMDB_LANGUAGE,
    TMDB_TRENDING_WINDOW,
    HTTP_TIMEOUT,
    MAX_HTTP_RETRIES,
    HTTP_RETRY_DELAY,
)
from .models import MovieMetrics
from .sources import movie_from_tmdb
from .utils import async_retry_with_backoff

logger = logging.getLogger(__name__)


class TmdbError(RuntimeError):
    """TMDB answered with an error status or an unexpected payload."""


class _TransientTmdbError(TmdbError):
    """Server-side or network failure worth retrying."""


class AsyncTmdbClient:
    """
    Movie source over TMDB.

    Use as an async context manager, or pass an existing ``httpx.AsyncClient``
    (its lifetime then stays with the caller).
    """

    def __init__(
        self,
        api_key: str = TMDB_API_KEY,
        base_url: str = TMDB_BASE_URL,
        language: str = TMDB_LANGUAGE,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.language = language
        self.client = client
        self._owns_client = client is None

    async def __aenter__(self):
        if self.client is None:
            self.client = httpx.AsyncClient(
                headers={"Accept": "application/json"},
                timeout=HTTP_TIMEOUT,
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.client and self._owns_client:
            await self.client.aclose()
            self.client = None
        return False

    @async_retry_with_backoff(
        max_retries=MAX_HTTP_RETRIES,
        initial_delay=HTTP_RETRY_DELAY,
        exceptions=(_TransientTmdbError,),
    )
    async def _get(self, path: str, params: dict | None = None) -> dict | None:
        """GET a TMDB path; None on 404, TmdbError on other failures."""
        if self.client is None:
            raise RuntimeError("AsyncTmdbClient must be used as an async context manager")

        query = {"api_key": self.api_key, **(params or {})}
        if self.language:
            query["language"] = self.language
        url = f"{self.base_url}{path}"

        try:
            resp = await self.client.get(url, params=query)
        except httpx.TimeoutException as e:
            raise _TransientTmdbError(f"Timeout on {path}") from e
        except httpx.HTTPError as e:
            raise _TransientTmdbError(f"Request error on {path}: {type(e).__name__}: {e}") from e

        if resp.status_code == 404:
            return None
        if resp.status_code == 429 or resp.status_code >= 500:
            raise _TransientTmdbError(f"HTTP {resp.status_code} on {path}")
        if resp.status_code >= 400:
            raise TmdbError(f"HTTP {resp.status_code} on {path}")

        try:
            return resp.json()
        except ValueError as e:
            raise TmdbError(f"Invalid JSON from {path}") from e

    async def _get_results(self, path: str, params: dict | None = None) -> list[MovieMetrics]:
        payload = await self._get(path, params)
        if payload is None:
            return []
        results = payload.get("results")
        if not isinstance(results, list):
            raise TmdbError(f"Missing 'results' list in response from {path}")

        movies = []
        for item in results:
            try:
                movies.append(movie_from_tmdb(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug(f"Skipping malformed TMDB result from {path}: {e}")
        return movies

    async def fetch_movie_by_id(self, movie_id: int) -> MovieMetrics | None:
        payload = await self._get(f"/movie/{movie_id}")
        if payload is None:
            return None
        return movie_from_tmdb(payload)

    async def fetch_popular(self, page: int) -> list[MovieMetrics]:
        return await self._get_results("/movie/popular", {"page": page})

    async def fetch_trending(self) -> list[MovieMetrics]:
        return await self._get_results(f"/trending/movie/{TMDB_TRENDING_WINDOW}")
