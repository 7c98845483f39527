"""
CLI entrypoint to run a single film check without the long-running service.

Use cases:
- Local/manual run: filmwatch-run --max-films 10
- External cron / CI scheduled run: calls the same entry

Behavior:
- Loads the seen-set from DATA_PATH
- Opens one browser session for the whole run
- Publishes new films to the configured Telegram chat
- Exits non-zero when the run fails
"""
import argparse
import asyncio
import sys
from typing import Optional

from .config import settings
from .exceptions import FilmWatchError
from .logging_config import setup_logging
from .models import RunResult
from .pipeline import FilmPipeline, PipelineConfig
from .publisher import TelegramPublisher
from .scraper.session import BrowserSession
from .storage import SeenSetStore

logger = setup_logging(__name__)


async def run_once(
    max_films: Optional[int] = None,
    listing_url: Optional[str] = None,
    data_path: Optional[str] = None,
    headless: bool = True,
) -> RunResult:
    """Run one pipeline pass with freshly owned session, publisher and store"""
    config = PipelineConfig.from_settings()
    if max_films is not None:
        config.max_films = max_films
    if listing_url:
        config.listing_url = listing_url

    store = SeenSetStore(data_path or settings.DATA_PATH, max_entries=config.max_tracked_films)
    store.initialize()

    async with BrowserSession(headless=headless) as session, TelegramPublisher() as publisher:
        pipeline = FilmPipeline(session, publisher, store, config)
        return await pipeline.run("manual")


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run one film check")
    parser.add_argument("--max-films", type=int, default=None, help="Max listing entries to consider")
    parser.add_argument("--listing-url", default=None, help="Override LISTING_URL")
    parser.add_argument("--data-path", default=None, help="Override DATA_PATH (seen-set file)")
    parser.add_argument("--headful", action="store_true", help="Show the browser window")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)
    try:
        result = asyncio.run(run_once(
            max_films=args.max_films,
            listing_url=args.listing_url,
            data_path=args.data_path,
            headless=not args.headful,
        ))
    except FilmWatchError as e:
        logger.error(f"Film check failed: {e}")
        return 1

    logger.info(
        f"Run {result.run_id} -> {result.status} in {result.duration_seconds:.1f}s "
        f"{result.counters.model_dump()}"
    )
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
