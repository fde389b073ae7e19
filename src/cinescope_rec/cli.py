import argparse
import asyncio
import json
import logging
from contextlib import asynccontextmanager

from .config import TMDB_API_KEY
from .engine import STRATEGY_PERSONALIZED, RecommendationBatch, RecommendationEngine
from .genres import genre_name
from .models import Recommendation
from .preferences import top_genres
from .presentation import confidence_level, match_display, match_quality
from .reasons import match_percentage
from .sources import InMemoryRatingStore, load_catalog_file, load_ratings_file
from .tmdb import AsyncTmdbClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _open_movie_source(args: argparse.Namespace):
    """Catalog file when given, otherwise the live TMDB API."""
    if getattr(args, 'catalog', None):
        yield load_catalog_file(args.catalog)
        return

    async with AsyncTmdbClient(api_key=TMDB_API_KEY) as client:
        yield client


def _check_movie_source(args: argparse.Namespace) -> bool:
    if not getattr(args, 'catalog', None) and not TMDB_API_KEY:
        logger.error("No --catalog given and TMDB_API_KEY is not set")
        return False
    return True


def _output_recommendations(batch: RecommendationBatch, output_format: str = 'text') -> None:
    """Format and log recommendations in the requested format."""
    recs: list[Recommendation] = batch.recommendations

    if output_format == 'json':
        output = [
            {
                "movie_id": r.movie.movie_id,
                "title": r.movie.title,
                "year": r.movie.release_year,
                "score": round(r.match_score, 4),
                "match_percentage": match_percentage(r.match_score),
                "match_quality": match_quality(r.match_score).value,
                "reason": r.reason,
                "genres": [genre_name(g) for g in r.movie.genre_ids],
                "url": f"https://www.themoviedb.org/movie/{r.movie.movie_id}",
            }
            for r in recs
        ]
        logger.info(json.dumps({
            "strategy": batch.strategy,
            "partial": batch.is_partial,
            "failed_sources": list(batch.failed_sources),
            "recommendations": output,
        }, indent=2))

    elif output_format == 'csv':
        logger.info("Title,Year,TMDB ID,Score,Reason")
        for r in recs:
            title = r.movie.title.replace('"', '""')
            year = r.movie.release_year or ""
            logger.info(f'"{title}",{year},{r.movie.movie_id},{r.match_score:.2f},"{r.reason}"')

    else:  # text format
        label = "personalized" if batch.strategy == STRATEGY_PERSONALIZED else "popular picks"
        logger.info(f"\nTop {len(recs)} recommendations ({label}):")
        for i, r in enumerate(recs, 1):
            year = f" ({r.movie.release_year})" if r.movie.release_year else ""
            logger.info(f"{i}. {r.movie.title or r.movie.movie_id}{year} - {match_display(r.match_score)}"
                        f" ({confidence_level(r.match_score)})")
            logger.info(f"   Why: {r.reason}")

    if batch.is_partial:
        logger.warning(f"Partial results; failed sources: {', '.join(batch.failed_sources)}")
    if batch.is_empty:
        logger.warning("No recommendations could be generated")


async def _cmd_recommend_async(args: argparse.Namespace) -> RecommendationBatch:
    ratings = load_ratings_file(args.ratings)
    async with _open_movie_source(args) as movie_source:
        engine = RecommendationEngine(InMemoryRatingStore(ratings), movie_source)
        return await engine.recommend(args.limit)


def cmd_recommend(args: argparse.Namespace) -> None:
    """Generate recommendations."""
    if args.limit <= 0:
        logger.error("--limit must be positive")
        return
    if not _check_movie_source(args):
        return

    batch = asyncio.run(_cmd_recommend_async(args))
    _output_recommendations(batch, args.format)


async def _cmd_preferences_async(args: argparse.Namespace) -> tuple[dict[int, float], list[str]]:
    ratings = load_ratings_file(args.ratings)
    failures: list[str] = []
    async with _open_movie_source(args) as movie_source:
        engine = RecommendationEngine(InMemoryRatingStore(ratings), movie_source)
        preferences = await engine.build_preferences(ratings, failures)
    return preferences, failures


def cmd_preferences(args: argparse.Namespace) -> None:
    """Show the genre preference profile derived from a ratings file."""
    if args.top is not None and args.top <= 0:
        logger.error("--top must be positive")
        return
    if not _check_movie_source(args):
        return

    preferences, failures = asyncio.run(_cmd_preferences_async(args))
    if not preferences:
        logger.info("No genre preferences yet (no resolvable ratings)")
    else:
        logger.info("\nGenre preferences:")
        for genre_id, score in top_genres(preferences, args.top):
            bar = "#" * round(score * 20)
            logger.info(f"  {genre_name(genre_id):<16} {score:.2f} {bar}")
    if failures:
        logger.warning(f"Some lookups failed: {', '.join(failures)}")


def main():
    parser = argparse.ArgumentParser(description="CineScope movie recommender")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    rec_parser = subparsers.add_parser("recommend", help="Generate recommendations")
    rec_parser.add_argument("--ratings", required=True, help="JSON file with the user's ratings")
    rec_parser.add_argument("--catalog", help="JSON catalog (popular/trending/library); default: TMDB API")
    rec_parser.add_argument("--limit", type=int, default=20, help="Number of recommendations")
    rec_parser.add_argument("--format", choices=['text', 'json', 'csv'], default='text',
                            help="Output format")
    rec_parser.set_defaults(func=cmd_recommend)

    pref_parser = subparsers.add_parser("preferences", help="Show genre preferences from ratings")
    pref_parser.add_argument("--ratings", required=True, help="JSON file with the user's ratings")
    pref_parser.add_argument("--catalog", help="JSON catalog (popular/trending/library); default: TMDB API")
    pref_parser.add_argument("--top", type=int, default=None, help="Only show the N strongest genres")
    pref_parser.set_defaults(func=cmd_preferences)

    args = parser.parse_args()

    # Configure logging based on verbosity
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    args.func(args)


if __name__ == "__main__":
    main()
