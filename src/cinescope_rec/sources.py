"""
Collaborator interfaces consumed by the recommendation engine, plus simple
in-memory and JSON-file implementations.

The engine only ever sees TMDB ids. Stores that key ratings by a local
database id translate them here, at the boundary.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Protocol

from .models import MovieMetrics, UserRating

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20


class RatingSource(Protocol):
    async def fetch_all_ratings(self) -> list[UserRating]: ...


class MovieSource(Protocol):
    async def fetch_movie_by_id(self, movie_id: int) -> MovieMetrics | None: ...

    async def fetch_popular(self, page: int) -> list[MovieMetrics]: ...

    async def fetch_trending(self) -> list[MovieMetrics]: ...


class InMemoryRatingStore:
    """
    Rating collaborator backed by a list.

    When ``local_to_tmdb`` is given, each stored rating's ``movie_id`` is a
    local database id and is translated to the TMDB id on the way out.
    Ratings whose local id has no mapping are dropped.
    """

    def __init__(self, ratings: Iterable[UserRating] = (), local_to_tmdb: dict[int, int] | None = None):
        self._ratings = tuple(ratings)
        self._local_to_tmdb = dict(local_to_tmdb) if local_to_tmdb is not None else None

    async def fetch_all_ratings(self) -> list[UserRating]:
        if self._local_to_tmdb is None:
            return list(self._ratings)

        converted: list[UserRating] = []
        for rating in self._ratings:
            tmdb_id = self._local_to_tmdb.get(rating.movie_id)
            if tmdb_id is None:
                logger.warning(f"No TMDB id for local movie {rating.movie_id}; dropping its rating")
                continue
            converted.append(UserRating(movie_id=tmdb_id, rating=rating.rating, watched_at=rating.watched_at))
        return converted


class InMemoryMovieCatalog:
    """
    Movie collaborator backed by two lists: the "popular" feed (served in
    pages of ``page_size``) and the "trending" feed. Lookups by id search
    both feeds plus any ``extra`` movies (e.g. the user's watched library).
    """

    def __init__(
        self,
        popular: Iterable[MovieMetrics] = (),
        trending: Iterable[MovieMetrics] = (),
        extra: Iterable[MovieMetrics] = (),
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self.popular = tuple(popular)
        self.trending = tuple(trending)
        self.page_size = page_size
        self._by_id: dict[int, MovieMetrics] = {}
        for movie in (*self.popular, *self.trending, *extra):
            self._by_id.setdefault(movie.movie_id, movie)

    async def fetch_movie_by_id(self, movie_id: int) -> MovieMetrics | None:
        return self._by_id.get(movie_id)

    async def fetch_popular(self, page: int) -> list[MovieMetrics]:
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        start = (page - 1) * self.page_size
        return list(self.popular[start:start + self.page_size])

    async def fetch_trending(self) -> list[MovieMetrics]:
        return list(self.trending)


def movie_from_tmdb(payload: dict[str, Any]) -> MovieMetrics:
    """
    Map a TMDB movie JSON object to MovieMetrics.

    List endpoints carry ``genre_ids``; detail endpoints carry
    ``genres: [{"id", "name"}]``. Both shapes are accepted.
    """
    genre_ids = payload.get('genre_ids')
    if genre_ids is None:
        genre_ids = [g['id'] for g in payload.get('genres') or [] if isinstance(g, dict) and 'id' in g]
    return MovieMetrics(
        movie_id=int(payload['id']),
        title=payload.get('title') or payload.get('name') or "",
        genre_ids=tuple(int(g) for g in genre_ids or ()),
        vote_average=payload.get('vote_average'),
        vote_count=payload.get('vote_count'),
        popularity=payload.get('popularity'),
        release_date=payload.get('release_date') or None,
    )


def _parse_watched_at(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        logger.warning(f"Ignoring unparseable watched_at '{value}'")
        return None


def load_ratings_file(path: str | Path) -> list[UserRating]:
    """
    Load ratings from a JSON list of ``{"movie_id", "rating", "watched_at"?}``.

    Raises:
        ValueError: if the file is not a list or an entry is malformed
    """
    payload = json.loads(Path(path).read_text())
    if not isinstance(payload, list):
        raise ValueError(f"{path}: expected a JSON list of ratings")

    ratings = []
    for i, entry in enumerate(payload):
        try:
            ratings.append(UserRating(
                movie_id=int(entry['movie_id']),
                rating=float(entry['rating']),
                watched_at=_parse_watched_at(entry.get('watched_at')),
            ))
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"{path}: invalid rating at index {i}: {e}") from e
    return ratings


def load_catalog_file(path: str | Path, page_size: int = DEFAULT_PAGE_SIZE) -> InMemoryMovieCatalog:
    """Load a catalog from JSON ``{"popular": [...], "trending": [...], "library": [...]}``."""
    payload = json.loads(Path(path).read_text())
    if not isinstance(payload, dict):
        raise ValueError(f"{path}: expected a JSON object with 'popular'/'trending' lists")
    return InMemoryMovieCatalog(
        popular=[movie_from_tmdb(m) for m in payload.get('popular', [])],
        trending=[movie_from_tmdb(m) for m in payload.get('trending', [])],
        extra=[movie_from_tmdb(m) for m in payload.get('library', [])],
        page_size=page_size,
    )
