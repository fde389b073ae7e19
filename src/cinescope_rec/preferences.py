"""
Genre preference analysis.

Turns a rating history into a genre -> strength map. Uses the weighted
formula: the mean rating for a genre (scaled to [0, 1]) plus a frequency
bonus for genres that make up a large share of the history.
"""

import logging
from collections import defaultdict
from statistics import mean
from typing import Callable, Iterable

from .config import RATING_MAX, MAX_FREQUENCY_BONUS, MIN_RATING_THRESHOLD
from .models import GenrePreferences, MovieMetrics, UserRating
from .utils import clamp

logger = logging.getLogger(__name__)

MovieLookup = Callable[[int], MovieMetrics | None]


def _frequency_bonus(genre_count: int, total_ratings: int) -> float:
    """Share of the history spent on a genre, capped at MAX_FREQUENCY_BONUS."""
    if total_ratings <= 0:
        return 0.0
    return clamp(genre_count / total_ratings, 0.0, MAX_FREQUENCY_BONUS)


def compute_preferences(ratings: list[UserRating], movie_lookup: MovieLookup) -> GenrePreferences:
    """
    Derive per-genre preference scores from a rating history.

    preference(g) = clamp01(mean(ratings on g) / 5 + min(count(g) / n, 0.3))

    where ``n`` counts every rating, resolved or not. Ratings whose movie
    cannot be resolved through ``movie_lookup`` contribute nothing. Genres
    never observed are left out of the map; scorers read a missing key as
    "no signal" and substitute the neutral score.

    Args:
        ratings: The user's rating history
        movie_lookup: Resolves a TMDB id to movie metadata, or None

    Returns:
        Mapping of genre id to preference in [0, 1]
    """
    genre_ratings: dict[int, list[float]] = defaultdict(list)
    unresolved = 0

    for rating in ratings:
        movie = movie_lookup(rating.movie_id)
        if movie is None:
            unresolved += 1
            continue
        # A movie listing the same genre twice still counts once
        for genre_id in dict.fromkeys(movie.genre_ids):
            genre_ratings[genre_id].append(rating.rating)

    if unresolved:
        logger.debug(f"Skipped {unresolved}/{len(ratings)} ratings with unresolved movies")

    total = len(ratings)
    return {
        genre_id: clamp(mean(values) / RATING_MAX + _frequency_bonus(len(values), total))
        for genre_id, values in genre_ratings.items()
    }


def liked_ratings(ratings: Iterable[UserRating], threshold: float = MIN_RATING_THRESHOLD) -> list[UserRating]:
    """Ratings at or above ``threshold``, in their original order."""
    return [r for r in ratings if r.rating >= threshold]


def top_genres(preferences: GenrePreferences, n: int | None = None) -> list[tuple[int, float]]:
    """Genres sorted by preference (strongest first), ties by genre id."""
    if n is not None and n < 1:
        raise ValueError(f"n must be positive, got {n}")
    ranked = sorted(preferences.items(), key=lambda item: (-item[1], item[0]))
    return ranked[:n] if n is not None else ranked
