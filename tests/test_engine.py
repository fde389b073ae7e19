import asyncio

import pytest

from cinescope_rec import reasons
from cinescope_rec.engine import STRATEGY_COLD_START, STRATEGY_PERSONALIZED, RecommendationEngine
from cinescope_rec.models import UserRating
from cinescope_rec.sources import InMemoryMovieCatalog, InMemoryRatingStore

ACTION = 28


class RecordingCatalog(InMemoryMovieCatalog):
    """Catalog that records popular page requests and can fail selected calls."""

    def __init__(self, *args, fail_pages=(), fail_trending=False, fail_lookups=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.pages_requested = []
        self.fail_pages = set(fail_pages)
        self.fail_trending = fail_trending
        self.fail_lookups = set(fail_lookups)

    async def fetch_popular(self, page):
        self.pages_requested.append(page)
        if page in self.fail_pages:
            raise ConnectionError(f"page {page} unavailable")
        return await super().fetch_popular(page)

    async def fetch_trending(self):
        if self.fail_trending:
            raise TimeoutError("trending timed out")
        return await super().fetch_trending()

    async def fetch_movie_by_id(self, movie_id):
        if movie_id in self.fail_lookups:
            raise ConnectionError(f"lookup {movie_id} failed")
        return await super().fetch_movie_by_id(movie_id)


class BrokenRatings:
    async def fetch_all_ratings(self):
        raise ConnectionError("ratings store offline")


@pytest.fixture
def library(make_movie):
    return [make_movie(i, genres=(ACTION,), vote_average=7.0, vote_count=500,
                       popularity=20.0, release_date="2015-01-01") for i in range(1, 6)]


@pytest.fixture
def catalog_kwargs(make_movie, library):
    popular = [
        make_movie(10, genres=(ACTION,), vote_average=8.0, vote_count=2000, popularity=150.0,
                   release_date="2024-03-01"),
        make_movie(11, genres=(18,), vote_average=6.0, vote_count=300, popularity=20.0,
                   release_date="2010-06-01"),
        make_movie(12, genres=(10749, 35), vote_average=5.0, vote_count=80, popularity=10.0,
                   release_date="2005-02-01"),
        make_movie(13, genres=(99,), vote_average=7.0, vote_count=150, popularity=5.0,
                   release_date="2019-09-01"),
        library[2],  # already watched
    ]
    trending = [
        make_movie(14, genres=(27,), vote_average=6.5, vote_count=900, popularity=400.0,
                   release_date="2025-10-01"),
        popular[0],
    ]
    return {"popular": popular, "trending": trending, "extra": library, "page_size": 2}


@pytest.fixture
def catalog(catalog_kwargs):
    return RecordingCatalog(**catalog_kwargs)


def five_star_action_ratings():
    return [UserRating(movie_id=i, rating=5.0) for i in range(1, 6)]


@pytest.mark.asyncio
async def test_cold_start_ranks_by_popularity(catalog, fixed_clock):
    engine = RecommendationEngine(InMemoryRatingStore([]), catalog, clock=fixed_clock)

    batch = await engine.recommend(10)

    assert batch.strategy == STRATEGY_COLD_START
    assert [r.movie_id for r in batch.recommendations] == [10, 14, 11]
    assert batch.recommendations[0].reason == reasons.COLD_START_ACCLAIMED
    assert all(r.reason in reasons.COLD_START_REASONS for r in batch.recommendations)
    assert batch.preferences == {}
    assert catalog.pages_requested == [1]


@pytest.mark.asyncio
async def test_cold_start_scores_are_popularity_scores(catalog, fixed_clock):
    engine = RecommendationEngine(InMemoryRatingStore([]), catalog, clock=fixed_clock)

    recs = await engine.generate_recommendations(3)

    for rec in recs:
        assert rec.match_score == engine.scorer.score_popularity(rec.movie)


@pytest.mark.asyncio
async def test_too_few_ratings_fall_back_to_cold_start(catalog, fixed_clock):
    store = InMemoryRatingStore([UserRating(movie_id=1, rating=5.0), UserRating(movie_id=2, rating=4.5)])
    engine = RecommendationEngine(store, catalog, clock=fixed_clock)

    batch = await engine.recommend(5)

    assert batch.strategy == STRATEGY_COLD_START
    assert batch.failed_sources == ()


@pytest.mark.asyncio
async def test_rating_fetch_failure_degrades_to_cold_start(catalog, fixed_clock, caplog):
    engine = RecommendationEngine(BrokenRatings(), catalog, clock=fixed_clock)

    with caplog.at_level("WARNING"):
        batch = await engine.recommend(5)

    assert batch.strategy == STRATEGY_COLD_START
    assert batch.failed_sources == ("ratings",)
    assert batch.is_partial
    assert not batch.is_empty
    assert "Failed to fetch ratings" in caplog.text


@pytest.mark.asyncio
async def test_personalized_ranking_and_reasons(catalog, fixed_clock):
    engine = RecommendationEngine(InMemoryRatingStore(five_star_action_ratings()), catalog, clock=fixed_clock)

    batch = await engine.recommend(10)

    assert batch.strategy == STRATEGY_PERSONALIZED
    assert batch.preferences == {ACTION: pytest.approx(1.0)}
    assert [r.movie_id for r in batch.recommendations] == [10, 14, 13, 11, 12]

    top = batch.recommendations[0]
    assert top.match_score == pytest.approx(0.9206, abs=1e-3)
    assert top.reason == reasons.REASON_PERFECT_MATCH
    assert batch.recommendations[1].match_score == pytest.approx(0.6576, abs=1e-3)
    assert batch.recommendations[1].reason == reasons.REASON_WORTH_EXPLORING
    assert catalog.pages_requested == [1, 2, 3]
    assert batch.candidate_count == 6


@pytest.mark.asyncio
async def test_personalized_excludes_watched_movies(catalog, fixed_clock):
    engine = RecommendationEngine(InMemoryRatingStore(five_star_action_ratings()), catalog, clock=fixed_clock)

    recs = await engine.generate_recommendations(20)

    assert {1, 2, 3, 4, 5}.isdisjoint(r.movie_id for r in recs)


@pytest.mark.asyncio
async def test_local_ids_are_translated_before_filtering(catalog_kwargs, fixed_clock):
    direct = RecommendationEngine(
        InMemoryRatingStore(five_star_action_ratings()), RecordingCatalog(**catalog_kwargs), clock=fixed_clock
    )
    local_ratings = [UserRating(movie_id=100 + i, rating=5.0) for i in range(1, 6)]
    mapped = RecommendationEngine(
        InMemoryRatingStore(local_ratings, local_to_tmdb={100 + i: i for i in range(1, 6)}),
        RecordingCatalog(**catalog_kwargs),
        clock=fixed_clock,
    )

    assert await mapped.generate_recommendations(10) == await direct.generate_recommendations(10)


@pytest.mark.asyncio
async def test_failed_popular_page_is_skipped(catalog_kwargs, fixed_clock):
    catalog = RecordingCatalog(**catalog_kwargs, fail_pages={2})
    engine = RecommendationEngine(InMemoryRatingStore(five_star_action_ratings()), catalog, clock=fixed_clock)

    batch = await engine.recommend(10)

    assert batch.failed_sources == ("popular:2",)
    assert [r.movie_id for r in batch.recommendations] == [10, 14, 11]
    assert catalog.pages_requested == [1, 2, 3]


@pytest.mark.asyncio
async def test_failed_trending_and_lookup_are_recorded(catalog_kwargs, fixed_clock):
    catalog = RecordingCatalog(**catalog_kwargs, fail_trending=True, fail_lookups={4})
    engine = RecommendationEngine(InMemoryRatingStore(five_star_action_ratings()), catalog, clock=fixed_clock)

    batch = await engine.recommend(10)

    assert batch.failed_sources == ("movie:4", "trending")
    assert batch.strategy == STRATEGY_PERSONALIZED
    assert 14 not in [r.movie_id for r in batch.recommendations]
    assert batch.recommendations[0].movie_id == 10


@pytest.mark.asyncio
async def test_everything_failing_returns_empty_batch(catalog_kwargs, fixed_clock):
    catalog = RecordingCatalog(**catalog_kwargs, fail_pages={1}, fail_trending=True)
    engine = RecommendationEngine(BrokenRatings(), catalog, clock=fixed_clock)

    batch = await engine.recommend(5)

    assert batch.is_empty
    assert batch.failed_sources == ("ratings", "popular:1", "trending")


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [0, -3, 2.5, True, "5"])
async def test_invalid_limit_raises(catalog, limit):
    engine = RecommendationEngine(InMemoryRatingStore([]), catalog)

    with pytest.raises(ValueError):
        await engine.recommend(limit)


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [1, 2, 3, 50])
async def test_results_are_bounded_and_sorted(catalog, fixed_clock, limit):
    engine = RecommendationEngine(InMemoryRatingStore(five_star_action_ratings()), catalog, clock=fixed_clock)

    recs = await engine.generate_recommendations(limit)

    assert len(recs) <= limit
    scores = [r.match_score for r in recs]
    assert scores == sorted(scores, reverse=True)
    assert len({r.movie_id for r in recs}) == len(recs)


@pytest.mark.asyncio
async def test_equal_scores_keep_candidate_order(make_movie, fixed_clock):
    twins = [make_movie(i, genres=(35,), vote_average=6.0, vote_count=200, popularity=12.0,
                        release_date="2020-01-01") for i in (31, 32, 33)]
    catalog = InMemoryMovieCatalog(popular=twins)
    engine = RecommendationEngine(InMemoryRatingStore([]), catalog, clock=fixed_clock)

    recs = await engine.generate_recommendations(3)

    assert [r.movie_id for r in recs] == [31, 32, 33]


@pytest.mark.asyncio
async def test_oversized_metrics_do_not_abort_ranking(make_movie, fixed_clock):
    catalog = InMemoryMovieCatalog(
        popular=[
            make_movie(41, vote_average=6.0, vote_count=10 ** 400, popularity=10 ** 400),
            make_movie(42, vote_average=6.0, vote_count=50, popularity=3.0),
        ],
    )

    for store in (InMemoryRatingStore([]), InMemoryRatingStore(five_star_action_ratings())):
        engine = RecommendationEngine(store, catalog, clock=fixed_clock)
        recs = await engine.generate_recommendations(5)

        assert [r.movie_id for r in recs] == [41, 42]
        assert all(0.0 <= r.match_score <= 1.0 for r in recs)


@pytest.mark.asyncio
async def test_repeated_and_concurrent_calls_agree(catalog, fixed_clock):
    engine = RecommendationEngine(InMemoryRatingStore(five_star_action_ratings()), catalog, clock=fixed_clock)

    first = await engine.generate_recommendations(4)
    second = await engine.generate_recommendations(4)
    concurrent = await asyncio.gather(*(engine.generate_recommendations(4) for _ in range(5)))

    assert first == second
    assert all(result == first for result in concurrent)


@pytest.mark.asyncio
async def test_cancellation_propagates(catalog):
    started = asyncio.Event()

    class SlowRatings:
        async def fetch_all_ratings(self):
            started.set()
            await asyncio.Event().wait()

    engine = RecommendationEngine(SlowRatings(), catalog)
    task = asyncio.create_task(engine.recommend(5))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_build_preferences_records_failed_lookups(catalog_kwargs):
    catalog = RecordingCatalog(**catalog_kwargs, fail_lookups={1})
    engine = RecommendationEngine(InMemoryRatingStore([]), catalog)
    failures = []

    prefs = await engine.build_preferences(five_star_action_ratings(), failures)

    assert failures == ["movie:1"]
    # four resolved 5-star action films out of five ratings: 1.0 + 0.3, capped
    assert prefs == {ACTION: pytest.approx(1.0)}
