from dataclasses import dataclass

from .config import (
    CONTENT_WEIGHT,
    POPULARITY_WEIGHT,
    MIN_RATING_THRESHOLD,
    MIN_RATINGS_FOR_PERSONALIZATION,
    COLD_START_POPULAR_PAGES,
    PERSONALIZED_POPULAR_PAGES,
    NEUTRAL_GENRE_SCORE,
    RATING_MIN,
    RATING_MAX,
)

WEIGHT_SUM_TOLERANCE = 1e-9


@dataclass(frozen=True)
class EngineConfig:
    """
    Tunable parameters for one recommendation engine instance.

    Defaults come from ``config`` (and therefore from the environment), so
    callers only pass the values they want to pin, e.g. in tests.
    """

    # Hybrid blend
    content_weight: float = CONTENT_WEIGHT
    popularity_weight: float = POPULARITY_WEIGHT

    # Ratings at or above this are "liked"
    min_rating_threshold: float = MIN_RATING_THRESHOLD

    # Cold-start guardrail
    min_ratings_for_personalization: int = MIN_RATINGS_FOR_PERSONALIZATION

    # Candidate pool size
    cold_start_popular_pages: int = COLD_START_POPULAR_PAGES
    personalized_popular_pages: int = PERSONALIZED_POPULAR_PAGES

    # Score used for genres the user has no history with
    neutral_genre_score: float = NEUTRAL_GENRE_SCORE

    def __post_init__(self) -> None:
        # Validate eagerly so mistakes fail fast.
        self.validate()

    def validate(self) -> None:
        if not (0.0 <= self.content_weight <= 1.0):
            raise ValueError("content_weight must be in [0, 1]")
        if not (0.0 <= self.popularity_weight <= 1.0):
            raise ValueError("popularity_weight must be in [0, 1]")
        if abs(self.content_weight + self.popularity_weight - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise ValueError("content_weight and popularity_weight must sum to 1.0")
        if not (RATING_MIN <= self.min_rating_threshold <= RATING_MAX):
            raise ValueError(f"min_rating_threshold must be in [{RATING_MIN}, {RATING_MAX}]")
        if self.min_ratings_for_personalization < 1:
            raise ValueError("min_ratings_for_personalization must be at least 1")
        if self.cold_start_popular_pages <= 0 or self.personalized_popular_pages <= 0:
            raise ValueError("popular page counts must be positive")
        if not (0.0 <= self.neutral_genre_score <= 1.0):
            raise ValueError("neutral_genre_score must be in [0, 1]")

    @classmethod
    def with_content_weight(cls, content_weight: float, **overrides) -> "EngineConfig":
        """Build a config whose popularity weight is the complement of ``content_weight``."""
        return cls(
            content_weight=content_weight,
            popularity_weight=round(1.0 - content_weight, 10),
            **overrides,
        )
