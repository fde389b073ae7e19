"""Human-readable explanations attached to each recommendation."""

import math

from .config import (
    STRONG_GENRE_PREFERENCE,
    ACCLAIMED_VOTE_AVERAGE,
    POPULAR_VOTE_COUNT,
    COLD_START_ACCLAIMED_AVERAGE,
    COLD_START_HIGHLY_RATED_AVERAGE,
    COLD_START_POPULAR_VOTE_COUNT,
)
from .models import GenrePreferences, MovieMetrics

REASON_PERFECT_MATCH = "Perfect match for your taste in highly-rated films"
REASON_ACCLAIMED_MATCH = "Critically acclaimed film matching your preferences"
REASON_STRONG_GENRE = "Strong match based on genres you love"
REASON_POPULAR_MATCH = "Popular film that aligns with your tastes"
REASON_GOOD_MATCH = "Good match for what you typically enjoy"
REASON_WORTH_EXPLORING = "Worth exploring based on your viewing history"
REASON_HIGHLY_RATED = "Highly-rated film you might discover"
REASON_TRENDING = "Trending choice to broaden your horizons"

PERSONALIZED_REASONS = (
    REASON_PERFECT_MATCH,
    REASON_ACCLAIMED_MATCH,
    REASON_STRONG_GENRE,
    REASON_POPULAR_MATCH,
    REASON_GOOD_MATCH,
    REASON_WORTH_EXPLORING,
    REASON_HIGHLY_RATED,
    REASON_TRENDING,
)

COLD_START_ACCLAIMED = "Critically acclaimed and highly popular"
COLD_START_HIGHLY_RATED = "Highly rated by viewers worldwide"
COLD_START_POPULAR = "Popular choice among movie enthusiasts"
COLD_START_TRENDING = "Trending movie worth discovering"

COLD_START_REASONS = (
    COLD_START_ACCLAIMED,
    COLD_START_HIGHLY_RATED,
    COLD_START_POPULAR,
    COLD_START_TRENDING,
)


def match_percentage(score: float) -> int:
    """Whole-number percentage, rounded down (0.859 -> 85)."""
    # Round first so 0.29 does not become 28 through float error
    return math.floor(round(score * 100, 6))


def has_strong_genre_match(movie: MovieMetrics, preferences: GenrePreferences) -> bool:
    return any(preferences.get(g, 0.0) > STRONG_GENRE_PREFERENCE for g in movie.genre_ids)


def is_acclaimed(movie: MovieMetrics) -> bool:
    return (movie.vote_average or 0.0) >= ACCLAIMED_VOTE_AVERAGE


def is_popular(movie: MovieMetrics) -> bool:
    return (movie.vote_count or 0) >= POPULAR_VOTE_COUNT


def reason(movie: MovieMetrics, preferences: GenrePreferences, hybrid_score: float) -> str:
    """
    Pick the most specific explanation for a personalized recommendation.

    Rules are checked from most to least specific; the trending template is
    the catch-all, so every score maps to exactly one string.
    """
    pct = match_percentage(hybrid_score)
    strong = has_strong_genre_match(movie, preferences)
    acclaimed = is_acclaimed(movie)

    if pct >= 90 and strong:
        return REASON_PERFECT_MATCH
    if pct >= 85 and acclaimed:
        return REASON_ACCLAIMED_MATCH
    if pct >= 80 and strong:
        return REASON_STRONG_GENRE
    if pct >= 75 and is_popular(movie):
        return REASON_POPULAR_MATCH
    if pct >= 70:
        return REASON_GOOD_MATCH
    if pct >= 60:
        return REASON_WORTH_EXPLORING
    if pct >= 50 and acclaimed:
        return REASON_HIGHLY_RATED
    return REASON_TRENDING


def cold_start_reason(movie: MovieMetrics) -> str:
    """Quality-tier explanation used when there is no taste profile yet."""
    vote_average = movie.vote_average or 0.0
    if vote_average >= COLD_START_ACCLAIMED_AVERAGE:
        return COLD_START_ACCLAIMED
    if vote_average >= COLD_START_HIGHLY_RATED_AVERAGE:
        return COLD_START_HIGHLY_RATED
    if (movie.vote_count or 0) >= COLD_START_POPULAR_VOTE_COUNT:
        return COLD_START_POPULAR
    return COLD_START_TRENDING
