"""
Film pipeline: Discover -> Filter -> Extract -> Publish -> Commit

Delivery is at-most-once per topic id. An id reaches the seen-set only after
its announcement was accepted, and the seen-set is written once per run when
the publish stage ends, also when a cancellation cuts it short. Only one run
may be active at a time.
"""
import asyncio
from typing import Awaitable, Callable, List, Optional

from pydantic import BaseModel

from .config import Settings, settings
from .exceptions import ExtractionError, FetchError, PublishError, RunInProgressError, StoreIOError
from .logging_config import setup_logging, PerformanceLogger
from .models import FilmRecord, ListingEntry, RunCounters, RunResult
from .publisher import Publisher
from .scraper import extract_film, parse_detail, parse_listing
from .scraper.session import PageFetcher
from .storage import SeenSetStore

logger = setup_logging(__name__)

Sleep = Callable[[float], Awaitable[None]]


class PipelineConfig(BaseModel):
    listing_url: str
    max_films: int = 20
    timeout: float = 30.0
    max_tracked_films: int = 500
    detail_delay: float = 2.0
    publish_delay: float = 1.0
    lookback_window: int = 500
    default_language: str = "Tamil"

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "PipelineConfig":
        return cls(**(source or settings).get_pipeline_config())


class FilmPipeline:
    """Runs the pipeline against an explicitly owned fetcher, publisher and store"""

    def __init__(
        self,
        fetcher: PageFetcher,
        publisher: Publisher,
        store: SeenSetStore,
        config: Optional[PipelineConfig] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.fetcher = fetcher
        self.publisher = publisher
        self.store = store
        self.config = config or PipelineConfig.from_settings()
        self.sleep = sleep
        self.last_result: Optional[RunResult] = None
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def run(self, kind: str = "manual") -> RunResult:
        """
        Execute one full run

        Returns:
            RunResult with status 'success', or 'error' when the listing could not be fetched

        Raises:
            RunInProgressError: Another run is active
            StoreIOError: The seen-set could not be read or written
            asyncio.CancelledError: The run was cancelled; films already sent are committed first
        """
        if self._lock.locked():
            raise RunInProgressError("A film check is already running")

        async with self._lock:
            result = RunResult(kind=kind)
            log_extra = {"run_id": result.run_id, "run_kind": kind}
            logger.info("Starting film check...", extra=log_extra)

            try:
                with PerformanceLogger(logger, "film check", run_id=result.run_id, run_kind=kind):
                    await self._execute(result)
            except FetchError as e:
                logger.error(f"Listing unavailable, run aborted: {e}", extra=log_extra)
                result.finish("error", str(e))
            except StoreIOError as e:
                result.finish("error", str(e))
                self.last_result = result
                raise
            except asyncio.CancelledError:
                logger.warning(
                    f"Film check cancelled after {result.counters.published} films sent",
                    extra=log_extra,
                )
                result.finish("cancelled", "Run was cancelled")
                self.last_result = result
                raise
            else:
                result.finish("success")

            self.last_result = result
            c = result.counters
            logger.info(
                f"Update complete: {c.published} films sent, {c.failed} failed, "
                f"{c.skipped} skipped ({c.discovered} discovered, {c.new} new)",
                extra=log_extra,
            )
            return result

    async def _execute(self, result: RunResult) -> None:
        counters = result.counters

        if not self.store.loaded:
            self.store.initialize()

        entries = await self.discover()
        counters.discovered = len(entries)
        if not entries:
            logger.warning("No films found on listing page")
            return

        new_entries = self.store.filter_new(entries)
        counters.new = len(new_entries)
        if not new_entries:
            logger.info("No new films found")
            return

        films = await self.extract_all(new_entries, counters)
        if not films:
            logger.warning("No films with valid details found")
            return

        # Films already announced are committed even when publishing is cut short
        published: List[FilmRecord] = []
        try:
            await self.publish_all(films, counters, published)
        finally:
            if published:
                self.store.commit(published)

    async def discover(self) -> List[ListingEntry]:
        """Fetch the listing and return its distinct, resolvable entries"""
        url = self.config.listing_url
        markup = await self._fetch(self.fetcher.fetch_listing, url)
        return parse_listing(markup, base_url=url, max_films=self.config.max_films)

    async def extract_all(self, entries: List[ListingEntry], counters: RunCounters) -> List[FilmRecord]:
        """Fetch and extract each entry in turn; failures skip only that entry"""
        films: List[FilmRecord] = []

        for position, entry in enumerate(entries):
            if position:
                await self.sleep(self.config.detail_delay)

            film = await self.extract_one(entry)
            if film is None:
                counters.skipped += 1
                continue

            films.append(film)
            counters.extracted += 1

        logger.info(f"Successfully scraped {len(films)} of {len(entries)} films")
        return films

    async def extract_one(self, entry: ListingEntry) -> Optional[FilmRecord]:
        extra = {"film_id": entry.id, "url": entry.source_url}
        logger.info(f"Scraping detail page for: {entry.raw_title}", extra=extra)
        try:
            markup = await self._fetch(self.fetcher.fetch_detail, entry.source_url)
            film = extract_film(
                parse_detail(markup),
                entry,
                default_language=self.config.default_language,
                window=self.config.lookback_window,
            )
        except (FetchError, ExtractionError) as e:
            logger.warning(f"Skipping {entry.raw_title}: {e}", extra=extra)
            return None
        except Exception as e:
            logger.error(f"Failed to scrape {entry.raw_title}, continuing with next: {e}", exc_info=True, extra=extra)
            return None

        if not film.downloads:
            logger.warning(f"Skipping {entry.raw_title} - no download links found", extra=extra)
            return None
        return film

    async def publish_all(
        self,
        films: List[FilmRecord],
        counters: RunCounters,
        published: Optional[List[FilmRecord]] = None,
    ) -> List[FilmRecord]:
        """Publish in discovery order; returns the films that went out

        Each accepted film is appended to ``published`` as soon as it goes out,
        so a caller holding that list sees partial progress on cancellation.
        """
        if published is None:
            published = []

        for position, film in enumerate(films):
            if position:
                await self.sleep(self.config.publish_delay)

            extra = {"film_id": film.id}
            try:
                await self.publisher.publish(film)
            except PublishError as e:
                logger.warning(f"Failed to publish {film.title}: {e}", extra=extra)
                counters.failed += 1
                continue
            except Exception as e:
                logger.error(f"Unexpected error publishing {film.title}: {e}", exc_info=True, extra=extra)
                counters.failed += 1
                continue

            published.append(film)
            counters.published += 1

        return published

    async def _fetch(self, fetch: Callable[[str, float], Awaitable[str]], url: str) -> str:
        timeout = self.config.timeout
        try:
            return await asyncio.wait_for(fetch(url, timeout), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise FetchError(url, f"timed out after {timeout}s") from e
