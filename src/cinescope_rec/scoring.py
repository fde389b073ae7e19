"""
Candidate scoring for the hybrid recommender.

Content score: how well a movie fits the user's genre preferences plus its
intrinsic quality, reliability and recency. Popularity score: objective
crowd metrics, independent of the user. Hybrid score: a fixed-weight blend
of the two.

Missing optional fields never raise; each has a default in ``config``:

- vote_average -> DEFAULT_VOTE_AVERAGE (5.0, neutral)
- vote_count   -> DEFAULT_VOTE_COUNT (0)
- popularity   -> DEFAULT_POPULARITY (1.0)
- release date -> DEFAULT_RELEASE_YEAR (2000)
- no genres / unknown genre -> neutral genre score (0.3)
"""

import math
import sys
from datetime import datetime
from statistics import mean
from typing import Callable, Sequence

from .config import (
    CONTENT_FACTOR_WEIGHTS,
    POPULARITY_FACTOR_WEIGHTS,
    GENRE_MAX_BLEND,
    GENRE_MEAN_BLEND,
    QUALITY_TIERS,
    QUALITY_FLOOR,
    RELIABILITY_TIERS,
    RELIABILITY_FLOOR,
    RECENCY_TIERS,
    RECENCY_FLOOR,
    POPULARITY_LOG_CAP,
    VOTE_COUNT_LOG_CAP,
    DEFAULT_VOTE_AVERAGE,
    DEFAULT_VOTE_COUNT,
    DEFAULT_POPULARITY,
    DEFAULT_RELEASE_YEAR,
)
from .engine_config import EngineConfig
from .models import GenrePreferences, MovieMetrics, UserRating
from .utils import clamp

Clock = Callable[[], datetime]


def _finite_or(value: float | None, default: float) -> float:
    """``value`` as a float; NaN, infinity and non-numbers fall back to ``default``."""
    if value is None:
        return default
    try:
        number = float(value)
    except OverflowError:
        # Integers beyond float range saturate at the largest float
        return sys.float_info.max if value > 0 else -sys.float_info.max
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _tier(value: float, tiers: Sequence[tuple[float, float]], floor: float) -> float:
    """Score of the first tier whose lower bound ``value`` reaches."""
    for lower_bound, score in tiers:
        if value >= lower_bound:
            return score
    return floor


def _log_normalize(value: float, cap: float) -> float:
    """ln(x + 1) / ln(cap + 1), clamped to [0, 1]."""
    return clamp(math.log(max(value, 0.0) + 1.0) / math.log(cap + 1.0))


def quality_tier(vote_average: float | None) -> float:
    return _tier(_finite_or(vote_average, DEFAULT_VOTE_AVERAGE), QUALITY_TIERS, QUALITY_FLOOR)


def reliability_tier(vote_count: int | None) -> float:
    return _tier(_finite_or(vote_count, DEFAULT_VOTE_COUNT), RELIABILITY_TIERS, RELIABILITY_FLOOR)


def recency_tier(release_year: int | None, current_year: int) -> float:
    """Newer movies score higher; an unknown year is treated as DEFAULT_RELEASE_YEAR."""
    years_since = current_year - (release_year if release_year is not None else DEFAULT_RELEASE_YEAR)
    for max_years, score in RECENCY_TIERS:
        if years_since <= max_years:
            return score
    return RECENCY_FLOOR


class CandidateScorer:
    """Scores candidate movies against genre preferences and crowd metrics."""

    def __init__(self, config: EngineConfig | None = None, clock: Clock | None = None):
        self.config = config or EngineConfig()
        self.clock = clock or datetime.now

    def genre_alignment(self, movie: MovieMetrics, preferences: GenrePreferences) -> float:
        """
        Blend of the best-matching and the average genre preference.

        Genres absent from ``preferences`` count as the neutral score, and so
        does a movie without genres, so zero overlap never means zero.
        """
        neutral = self.config.neutral_genre_score
        if not movie.genre_ids:
            return neutral
        scores = [preferences.get(genre_id, neutral) for genre_id in movie.genre_ids]
        return clamp(max(scores) * GENRE_MAX_BLEND + mean(scores) * GENRE_MEAN_BLEND)

    def score_content(
        self,
        movie: MovieMetrics,
        preferences: GenrePreferences,
        liked_movies: Sequence[UserRating] | None = None,
    ) -> float:
        """
        Content score in [0, 1].

        Weighted sum of genre alignment, quality tier, reliability tier and
        recency tier (CONTENT_FACTOR_WEIGHTS). ``liked_movies`` is accepted so
        callers can pass the liked subset; the weighting itself reads genre
        affinity from ``preferences`` only.
        """
        factors = {
            'genre': self.genre_alignment(movie, preferences),
            'quality': quality_tier(movie.vote_average),
            'reliability': reliability_tier(movie.vote_count),
            'recency': recency_tier(movie.release_year, self.clock().year),
        }
        return clamp(sum(CONTENT_FACTOR_WEIGHTS[name] * value for name, value in factors.items()))

    def score_popularity(self, movie: MovieMetrics) -> float:
        """
        Popularity score in [0, 1] from crowd metrics.

        Popularity and vote count are heavy-tailed, so both are log-compressed
        against a cap; the vote average is scaled linearly from 0-10.
        """
        factors = {
            'popularity': _log_normalize(_finite_or(movie.popularity, DEFAULT_POPULARITY), POPULARITY_LOG_CAP),
            'vote_average': clamp(_finite_or(movie.vote_average, DEFAULT_VOTE_AVERAGE) / 10.0),
            'vote_count': _log_normalize(_finite_or(movie.vote_count, DEFAULT_VOTE_COUNT), VOTE_COUNT_LOG_CAP),
        }
        return clamp(sum(POPULARITY_FACTOR_WEIGHTS[name] * value for name, value in factors.items()))

    def score_hybrid(
        self,
        movie: MovieMetrics,
        preferences: GenrePreferences,
        liked_movies: Sequence[UserRating] | None = None,
    ) -> float:
        """content * content_weight + popularity * popularity_weight, clamped."""
        content = self.score_content(movie, preferences, liked_movies)
        popularity = self.score_popularity(movie)
        return clamp(content * self.config.content_weight + popularity * self.config.popularity_weight)
