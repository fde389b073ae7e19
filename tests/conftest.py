import importlib
import sys
from datetime import datetime
from pathlib import Path

import pytest

# Ensure the package under test is importable without installation
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from cinescope_rec.models import MovieMetrics  # noqa: E402

FIXED_NOW = datetime(2026, 6, 1, 12, 0, 0)


@pytest.fixture
def fixed_clock():
    """Clock pinned to mid-2026 so recency tiers are deterministic."""
    return lambda: FIXED_NOW


@pytest.fixture
def make_movie():
    def _make(movie_id: int, genres=(), vote_average=None, vote_count=None,
              popularity=None, release_date=None, title=None) -> MovieMetrics:
        return MovieMetrics(
            movie_id=movie_id,
            title=title or f"Movie {movie_id}",
            genre_ids=tuple(genres),
            vote_average=vote_average,
            vote_count=vote_count,
            popularity=popularity,
            release_date=release_date,
        )
    return _make


@pytest.fixture
def fresh_config(monkeypatch):
    """
    Reload config (and the dataclass that snapshots its defaults) so env
    overrides set by the test take effect; reload again afterwards so other
    tests see the defaults.
    """
    import cinescope_rec.config as config
    import cinescope_rec.engine_config as engine_config

    def _reload():
        importlib.reload(config)
        importlib.reload(engine_config)
        return config, engine_config

    yield _reload

    monkeypatch.undo()
    importlib.reload(config)
    importlib.reload(engine_config)
