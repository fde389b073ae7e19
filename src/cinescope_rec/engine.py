"""
Hybrid recommendation engine.

Pipeline per request: fetch ratings -> (too few? popularity-only cold
start) -> genre preferences -> candidate pool -> drop watched -> hybrid
score -> explain -> stable sort -> truncate.

The engine holds no per-request state, so concurrent calls are safe and
repeated calls over unchanged collaborator data give identical output.
Collaborator failures never escape: the failed call is logged, recorded
in ``RecommendationBatch.failed_sources`` and the pipeline continues with
whatever data did arrive.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from .engine_config import EngineConfig
from .models import GenrePreferences, MovieMetrics, Recommendation, UserRating
from .preferences import compute_preferences, liked_ratings
from .reasons import cold_start_reason, reason
from .scoring import CandidateScorer, Clock
from .sources import MovieSource, RatingSource

logger = logging.getLogger(__name__)

STRATEGY_COLD_START = "cold_start"
STRATEGY_PERSONALIZED = "personalized"


@dataclass(frozen=True)
class RecommendationBatch:
    """Recommendations plus how they were produced."""
    recommendations: list[Recommendation]
    strategy: str
    failed_sources: tuple[str, ...] = ()
    candidate_count: int = 0
    preferences: GenrePreferences = field(default_factory=dict)

    @property
    def is_partial(self) -> bool:
        """Some collaborator call failed; the result was built from what remained."""
        return bool(self.failed_sources)

    @property
    def is_empty(self) -> bool:
        return not self.recommendations


def _dedupe(movies: list[MovieMetrics]) -> list[MovieMetrics]:
    """Drop repeated movie ids, keeping the first occurrence."""
    seen: set[int] = set()
    unique = []
    for movie in movies:
        if movie.movie_id in seen:
            continue
        seen.add(movie.movie_id)
        unique.append(movie)
    return unique


def _rank(recommendations: list[Recommendation], limit: int) -> list[Recommendation]:
    # sorted() is stable: equal scores keep candidate order
    return sorted(recommendations, key=lambda r: -r.match_score)[:limit]


class RecommendationEngine:
    """Content + popularity hybrid recommender over pluggable collaborators."""

    def __init__(
        self,
        rating_source: RatingSource,
        movie_source: MovieSource,
        config: EngineConfig | None = None,
        clock: Clock | None = None,
    ):
        self.rating_source = rating_source
        self.movie_source = movie_source
        self.config = config or EngineConfig()
        self.scorer = CandidateScorer(self.config, clock=clock or datetime.now)

    async def generate_recommendations(self, limit: int) -> list[Recommendation]:
        """Ranked recommendations, best first, at most ``limit`` of them."""
        batch = await self.recommend(limit)
        return batch.recommendations

    async def recommend(self, limit: int) -> RecommendationBatch:
        """Like ``generate_recommendations`` but also reports strategy and failures."""
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise ValueError(f"limit must be a positive integer, got {limit!r}")

        failures: list[str] = []
        ratings = await self._fetch_ratings(failures)

        if len(ratings) < self.config.min_ratings_for_personalization:
            logger.info(
                f"{len(ratings)} rating(s) < {self.config.min_ratings_for_personalization}; "
                "using popularity-only recommendations"
            )
            return await self._cold_start(limit, failures)

        return await self._personalized(ratings, limit, failures)

    # Collaborator calls -------------------------------------------------
    async def _fetch_ratings(self, failures: list[str]) -> list[UserRating]:
        try:
            return list(await self.rating_source.fetch_all_ratings())
        except Exception as e:
            logger.warning(f"Failed to fetch ratings: {type(e).__name__}: {e}")
            failures.append("ratings")
            return []

    async def _fetch_candidates(self, popular_pages: int, failures: list[str]) -> list[MovieMetrics]:
        """Popular pages 1..N then trending; a failed page is skipped, not fatal."""
        candidates: list[MovieMetrics] = []

        for page in range(1, popular_pages + 1):
            try:
                candidates.extend(await self.movie_source.fetch_popular(page))
            except Exception as e:
                logger.warning(f"Failed to fetch popular page {page}: {type(e).__name__}: {e}")
                failures.append(f"popular:{page}")

        try:
            candidates.extend(await self.movie_source.fetch_trending())
        except Exception as e:
            logger.warning(f"Failed to fetch trending movies: {type(e).__name__}: {e}")
            failures.append("trending")

        return _dedupe(candidates)

    async def _resolve_rated_movies(
        self, ratings: list[UserRating], failures: list[str]
    ) -> dict[int, MovieMetrics]:
        resolved: dict[int, MovieMetrics] = {}
        for movie_id in dict.fromkeys(r.movie_id for r in ratings):
            try:
                movie = await self.movie_source.fetch_movie_by_id(movie_id)
            except Exception as e:
                logger.warning(f"Failed to look up movie {movie_id}: {type(e).__name__}: {e}")
                failures.append(f"movie:{movie_id}")
                continue
            if movie is None:
                logger.debug(f"Movie {movie_id} not found; its rating adds no genre signal")
                continue
            resolved[movie_id] = movie
        return resolved

    async def build_preferences(
        self, ratings: list[UserRating], failures: list[str] | None = None
    ) -> GenrePreferences:
        """Resolve the rated movies and derive the genre preference map."""
        rated_movies = await self._resolve_rated_movies(ratings, failures if failures is not None else [])
        return compute_preferences(ratings, rated_movies.get)

    # Strategies ---------------------------------------------------------
    async def _cold_start(self, limit: int, failures: list[str]) -> RecommendationBatch:
        candidates = await self._fetch_candidates(self.config.cold_start_popular_pages, failures)

        recommendations = [
            Recommendation(
                movie=movie,
                match_score=self.scorer.score_popularity(movie),
                reason=cold_start_reason(movie),
            )
            for movie in candidates
        ]
        ranked = _rank(recommendations, limit)
        logger.info(f"Cold start: {len(ranked)} of {len(candidates)} candidates returned")

        return RecommendationBatch(
            recommendations=ranked,
            strategy=STRATEGY_COLD_START,
            failed_sources=tuple(failures),
            candidate_count=len(candidates),
        )

    async def _personalized(
        self, ratings: list[UserRating], limit: int, failures: list[str]
    ) -> RecommendationBatch:
        preferences = await self.build_preferences(ratings, failures)
        liked = liked_ratings(ratings, self.config.min_rating_threshold)
        logger.debug(
            f"Preferences over {len(preferences)} genre(s) from {len(ratings)} ratings "
            f"({len(liked)} liked)"
        )

        candidates = await self._fetch_candidates(self.config.personalized_popular_pages, failures)

        # Both sides are TMDB ids; collaborators convert before we get here
        watched_ids = {r.movie_id for r in ratings}
        unwatched = [m for m in candidates if m.movie_id not in watched_ids]

        recommendations = []
        for movie in unwatched:
            score = self.scorer.score_hybrid(movie, preferences, liked)
            recommendations.append(Recommendation(
                movie=movie,
                match_score=score,
                reason=reason(movie, preferences, score),
            ))

        ranked = _rank(recommendations, limit)
        logger.info(
            f"Personalized: {len(ranked)} returned from {len(unwatched)} unwatched "
            f"of {len(candidates)} candidates"
        )

        return RecommendationBatch(
            recommendations=ranked,
            strategy=STRATEGY_PERSONALIZED,
            failed_sources=tuple(failures),
            candidate_count=len(candidates),
            preferences=preferences,
        )
