"""
Configuration constants for the CineScope recommendation engine.

This module centralizes all magic numbers and tunable parameters.
The primary tunables can be overridden via environment variables.
"""
import math
import os
import logging

logger = logging.getLogger(__name__)


def _get_float_env(key: str, default: float, min_val: float = 0, max_val: float | None = None) -> float:
    """
    Safely parse float from environment variable with validation.

    Args:
        key: Environment variable name
        default: Default value if not set or invalid
        min_val: Minimum allowed value
        max_val: Maximum allowed value (None = unbounded)

    Returns:
        Validated float value
    """
    try:
        val = float(os.environ.get(key, default))
    except ValueError:
        logger.warning(f"Invalid {key}='{os.environ.get(key)}', using default {default}")
        return default
    if math.isnan(val):
        logger.warning(f"Invalid {key}='{os.environ.get(key)}', using default {default}")
        return default
    if val < min_val:
        logger.warning(f"{key}={val} is below minimum {min_val}, using {min_val}")
        return min_val
    if max_val is not None and val > max_val:
        logger.warning(f"{key}={val} is above maximum {max_val}, using {max_val}")
        return max_val
    return val


def _get_int_env(key: str, default: int, min_val: int = 1) -> int:
    """
    Safely parse integer from environment variable with validation.

    Args:
        key: Environment variable name
        default: Default value if not set or invalid
        min_val: Minimum allowed value

    Returns:
        Validated integer value
    """
    try:
        val = int(os.environ.get(key, default))
        if val < min_val:
            logger.warning(f"{key}={val} is below minimum {min_val}, using {min_val}")
            return min_val
        return val
    except ValueError:
        logger.warning(f"Invalid {key}='{os.environ.get(key)}', using default {default}")
        return default


# Hybrid blend: the two weights always sum to 1.0
CONTENT_WEIGHT = _get_float_env("CINESCOPE_CONTENT_WEIGHT", 0.65, min_val=0.0, max_val=1.0)
POPULARITY_WEIGHT = round(1.0 - CONTENT_WEIGHT, 10)

# Ratings at or above this count a movie as "liked"
MIN_RATING_THRESHOLD = _get_float_env("CINESCOPE_MIN_RATING_THRESHOLD", 3.5, min_val=0.0, max_val=5.0)

# Below this many ratings the engine falls back to popularity-only ranking
MIN_RATINGS_FOR_PERSONALIZATION = _get_int_env("CINESCOPE_MIN_RATINGS", 3, min_val=1)

# Candidate pool sizes (TMDB "popular" pages; trending is always added once)
COLD_START_POPULAR_PAGES = 1
PERSONALIZED_POPULAR_PAGES = _get_int_env("CINESCOPE_POPULAR_PAGES", 3, min_val=1)

# Rating scale
RATING_MIN = 0.0
RATING_MAX = 5.0
RATING_STEP = 0.5

# Genre preference analysis
MAX_FREQUENCY_BONUS = 0.3
NEUTRAL_GENRE_SCORE = 0.3  # no signal for a genre
STRONG_GENRE_PREFERENCE = 0.6
GENRE_MAX_BLEND = 0.6      # alignment = max * 0.6 + mean * 0.4
GENRE_MEAN_BLEND = 0.4

# Content score weights (sum to 1.0)
CONTENT_FACTOR_WEIGHTS = {
    'genre': 0.45,
    'quality': 0.30,
    'reliability': 0.15,
    'recency': 0.10,
}

# Tier break points: (lower bound, score), checked top-down
QUALITY_TIERS = ((7.5, 1.0), (6.5, 0.8), (5.5, 0.6), (4.5, 0.4))
QUALITY_FLOOR = 0.2
RELIABILITY_TIERS = ((1000, 1.0), (500, 0.9), (100, 0.8))
RELIABILITY_FLOOR = 0.6
# (max years since release, score)
RECENCY_TIERS = ((2, 1.0), (5, 0.8), (10, 0.6))
RECENCY_FLOOR = 0.4

# Popularity score weights (sum to 1.0)
POPULARITY_FACTOR_WEIGHTS = {
    'popularity': 0.40,
    'vote_average': 0.50,
    'vote_count': 0.10,
}
POPULARITY_LOG_CAP = 1000.0
VOTE_COUNT_LOG_CAP = 10000.0

# Defaults substituted for missing optional movie fields
DEFAULT_VOTE_AVERAGE = 5.0
DEFAULT_VOTE_COUNT = 0
DEFAULT_POPULARITY = 1.0
DEFAULT_RELEASE_YEAR = 2000

# Reason thresholds
ACCLAIMED_VOTE_AVERAGE = 7.5
POPULAR_VOTE_COUNT = 1000
COLD_START_ACCLAIMED_AVERAGE = 8.0
COLD_START_HIGHLY_RATED_AVERAGE = 7.0
COLD_START_POPULAR_VOTE_COUNT = 5000

# TMDB collaborator
TMDB_API_KEY = os.environ.get("TMDB_API_KEY", "")
TMDB_BASE_URL = os.environ.get("TMDB_BASE_URL", "https://api.themoviedb.org/3")
TMDB_LANGUAGE = os.environ.get("TMDB_LANGUAGE", "en-US")
TMDB_TRENDING_WINDOW = "week"
HTTP_TIMEOUT = _get_float_env("CINESCOPE_HTTP_TIMEOUT", 10.0, min_val=1.0)
MAX_HTTP_RETRIES = 3
HTTP_RETRY_DELAY = 0.5
