"""
Display helpers for match scores.

- HIGH: 0.75-1.0, MEDIUM: 0.50-0.74, LOW: below 0.50
- Confidence labels: Excellent (>=0.90), Great (>=0.75), Good (>=0.60),
  Decent (>=0.50), Possible (below)
"""

from enum import Enum

from .reasons import match_percentage

HIGH_THRESHOLD = 0.75
MEDIUM_THRESHOLD = 0.50


class MatchQuality(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def match_display(score: float) -> str:
    return f"{match_percentage(score)}% Match"


def match_quality(score: float) -> MatchQuality:
    if score >= HIGH_THRESHOLD:
        return MatchQuality.HIGH
    elif score >= MEDIUM_THRESHOLD:
        return MatchQuality.MEDIUM
    return MatchQuality.LOW


def confidence_level(score: float) -> str:
    if score >= 0.90:
        return "Excellent match"
    elif score >= HIGH_THRESHOLD:
        return "Great match"
    elif score >= 0.60:
        return "Good match"
    elif score >= MEDIUM_THRESHOLD:
        return "Decent match"
    return "Possible match"
