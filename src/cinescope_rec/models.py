"""
Value objects shared by the recommendation pipeline.

Every entity here is immutable and lives for a single recommendation
request. ``movie_id`` is always the TMDB id; collaborators that keep a
different key convert before handing data to the engine.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime

from .config import RATING_MIN, RATING_MAX, RATING_STEP

# genre id -> preference in [0, 1]; genres without observations are absent
GenrePreferences = dict[int, float]


@dataclass(frozen=True)
class MovieMetrics:
    """Read-only movie metadata used for scoring."""
    movie_id: int
    title: str = ""
    genre_ids: tuple[int, ...] = field(default_factory=tuple)
    vote_average: float | None = None
    vote_count: int | None = None
    popularity: float | None = None
    release_date: str | None = None

    def __post_init__(self) -> None:
        # Accept any iterable of genre ids but store a tuple
        if not isinstance(self.genre_ids, tuple):
            object.__setattr__(self, "genre_ids", tuple(self.genre_ids or ()))

    @property
    def release_year(self) -> int | None:
        """Year parsed from the first four characters of ``release_date``."""
        if not self.release_date:
            return None
        year = self.release_date[:4]
        return int(year) if year.isdigit() else None


@dataclass(frozen=True)
class UserRating:
    """A user's rating of one movie on a 0-5 scale in half-star steps."""
    movie_id: int
    rating: float
    watched_at: datetime | None = None

    def __post_init__(self) -> None:
        rating = self.rating
        if not isinstance(rating, (int, float)) or not math.isfinite(rating):
            raise ValueError(f"Rating must be a finite number, got {rating!r}")
        if not (RATING_MIN <= rating <= RATING_MAX):
            raise ValueError(f"Rating must be between {RATING_MIN} and {RATING_MAX}, got {rating}")
        if rating % RATING_STEP != 0:
            raise ValueError(f"Rating must be in {RATING_STEP} increments, got {rating}")


@dataclass(frozen=True)
class Recommendation:
    movie: MovieMetrics
    match_score: float
    reason: str

    def __post_init__(self) -> None:
        # Out-of-range scores mean the scoring math is broken, not the input
        if not math.isfinite(self.match_score) or not (0.0 <= self.match_score <= 1.0):
            raise ValueError(f"Match score must be between 0.0 and 1.0, got {self.match_score}")

    @property
    def movie_id(self) -> int:
        return self.movie.movie_id
