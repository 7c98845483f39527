import asyncio
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from filmwatch.exceptions import RunInProgressError, StoreIOError
from filmwatch.pipeline import FilmPipeline, PipelineConfig
from filmwatch.storage import SeenSetStore

from fakes import LISTING_URL, BlockingSleep, FakeFetcher, FakePublisher, RecordingSleep

FILMS = [("101", "Leo (2023)"), ("102", "Jailer (2023)"), ("103", "Vikram (2022)")]


class PipelineTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.store_path = Path(self.tmp.name) / "seen_films.json"
        self.config = PipelineConfig(
            listing_url=LISTING_URL,
            timeout=0.5,
            detail_delay=2.0,
            publish_delay=1.0,
        )

    def tearDown(self):
        self.tmp.cleanup()

    def make_pipeline(self, fetcher, publisher, max_entries=500, sleep=None):
        self.sleep = sleep or RecordingSleep()
        store = SeenSetStore(self.store_path, max_entries=max_entries)
        return FilmPipeline(fetcher, publisher, store, self.config, sleep=self.sleep)


class TestPipelineRun(PipelineTestCase):
    async def test_publishes_new_films_in_discovery_order(self):
        publisher = FakePublisher()
        pipeline = self.make_pipeline(FakeFetcher(FILMS), publisher)

        result = await pipeline.run("manual")

        self.assertTrue(result.success)
        self.assertEqual([f.id for f in publisher.published], ["101", "102", "103"])
        self.assertEqual(result.counters.discovered, 3)
        self.assertEqual(result.counters.new, 3)
        self.assertEqual(result.counters.extracted, 3)
        self.assertEqual(result.counters.published, 3)
        self.assertEqual([r.id for r in pipeline.store.records], ["101", "102", "103"])
        self.assertIs(pipeline.last_result, result)

    async def test_second_run_publishes_nothing(self):
        fetcher = FakeFetcher(FILMS)
        publisher = FakePublisher()
        pipeline = self.make_pipeline(fetcher, publisher)

        await pipeline.run()
        fetcher.detail_calls.clear()
        result = await pipeline.run()

        self.assertEqual(result.counters.discovered, 3)
        self.assertEqual(result.counters.new, 0)
        self.assertEqual(result.counters.published, 0)
        self.assertEqual(fetcher.detail_calls, [])
        self.assertEqual(len(publisher.published), 3)

    async def test_seen_set_survives_restart(self):
        await self.make_pipeline(FakeFetcher(FILMS), FakePublisher()).run()

        publisher = FakePublisher()
        result = await self.make_pipeline(FakeFetcher(FILMS), publisher).run()

        self.assertEqual(result.counters.new, 0)
        self.assertEqual(publisher.published, [])

    async def test_failed_publish_is_not_committed(self):
        publisher = FakePublisher(fail_ids={"102"})
        pipeline = self.make_pipeline(FakeFetcher(FILMS), publisher)

        result = await pipeline.run()

        self.assertTrue(result.success)
        self.assertEqual(result.counters.published, 2)
        self.assertEqual(result.counters.failed, 1)
        self.assertEqual([r.id for r in pipeline.store.records], ["101", "103"])

        publisher.fail_ids.clear()
        retry = await pipeline.run()
        self.assertEqual(retry.counters.published, 1)
        self.assertEqual([f.id for f in publisher.published], ["101", "103", "102"])

    async def test_film_without_downloads_is_skipped(self):
        publisher = FakePublisher()
        pipeline = self.make_pipeline(FakeFetcher(FILMS, no_links={"102"}), publisher)

        result = await pipeline.run()

        self.assertEqual([f.id for f in publisher.published], ["101", "103"])
        self.assertEqual(result.counters.skipped, 1)
        self.assertFalse(pipeline.store.has_seen("102"))

    async def test_detail_fetch_failure_skips_only_that_film(self):
        publisher = FakePublisher()
        pipeline = self.make_pipeline(FakeFetcher(FILMS, broken={"101"}), publisher)

        result = await pipeline.run()

        self.assertEqual([f.id for f in publisher.published], ["102", "103"])
        self.assertEqual(result.counters.skipped, 1)

    async def test_slow_detail_page_times_out(self):
        publisher = FakePublisher()
        pipeline = self.make_pipeline(FakeFetcher(FILMS, slow={"103"}), publisher)

        result = await pipeline.run()

        self.assertEqual([f.id for f in publisher.published], ["101", "102"])
        self.assertEqual(result.counters.skipped, 1)

    async def test_listing_failure_ends_run_with_error(self):
        fetcher = FakeFetcher(FILMS)
        fetcher.listing_error = "HTTP 503"
        publisher = FakePublisher()
        pipeline = self.make_pipeline(fetcher, publisher)

        result = await pipeline.run()

        self.assertEqual(result.status, "error")
        self.assertIn("HTTP 503", result.error)
        self.assertEqual(publisher.attempts, [])
        self.assertEqual(len(pipeline.store), 0)

    async def test_store_write_failure_propagates(self):
        pipeline = self.make_pipeline(FakeFetcher(FILMS), FakePublisher())
        pipeline.store.initialize()

        with mock.patch.object(pipeline.store, "save", side_effect=StoreIOError("disk full")):
            with self.assertRaises(StoreIOError):
                await pipeline.run()

        self.assertEqual(pipeline.last_result.status, "error")
        self.assertFalse(pipeline.is_running)

    async def test_delays_between_fetches_and_publishes(self):
        pipeline = self.make_pipeline(FakeFetcher(FILMS), FakePublisher())

        await pipeline.run()

        self.assertEqual(self.sleep.calls, [2.0, 2.0, 1.0, 1.0])

    async def test_max_films_limits_discovery(self):
        self.config = self.config.model_copy(update={"max_films": 2})
        publisher = FakePublisher()
        pipeline = self.make_pipeline(FakeFetcher(FILMS), publisher)

        result = await pipeline.run()

        self.assertEqual(result.counters.discovered, 2)
        self.assertEqual([f.id for f in publisher.published], ["101", "102"])

    async def test_cap_applies_to_committed_films(self):
        pipeline = self.make_pipeline(FakeFetcher(FILMS), FakePublisher(), max_entries=2)

        await pipeline.run()

        self.assertEqual([r.id for r in pipeline.store.records], ["102", "103"])


class TestRunLock(PipelineTestCase):
    async def test_concurrent_trigger_is_rejected(self):
        fetcher = FakeFetcher(FILMS)
        fetcher.listing_gate = asyncio.Event()
        publisher = FakePublisher()
        pipeline = self.make_pipeline(fetcher, publisher)

        first = asyncio.create_task(pipeline.run("scheduled"))
        await asyncio.sleep(0)
        self.assertTrue(pipeline.is_running)

        with self.assertRaises(RunInProgressError):
            await pipeline.run("manual")

        fetcher.listing_gate.set()
        result = await first

        self.assertTrue(result.success)
        self.assertEqual(result.kind, "scheduled")
        self.assertEqual(len(publisher.published), 3)
        self.assertFalse(pipeline.is_running)


class TestCancellation(PipelineTestCase):
    async def test_cancel_during_publish_commits_films_already_sent(self):
        publisher = FakePublisher()
        sleep = BlockingSleep(block_on=self.config.publish_delay)
        pipeline = self.make_pipeline(FakeFetcher(FILMS), publisher, sleep=sleep)

        task = asyncio.create_task(pipeline.run("scheduled"))
        await sleep.reached.wait()
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task

        self.assertEqual([f.id for f in publisher.published], ["101"])
        self.assertTrue(pipeline.store.has_seen("101"))
        self.assertEqual(pipeline.last_result.status, "cancelled")
        self.assertEqual(pipeline.last_result.counters.published, 1)
        self.assertFalse(pipeline.is_running)

        restarted = FakePublisher()
        await self.make_pipeline(FakeFetcher(FILMS), restarted).run()
        self.assertEqual([f.id for f in restarted.published], ["102", "103"])

    async def test_cancel_before_publishing_commits_nothing(self):
        publisher = FakePublisher()
        sleep = BlockingSleep(block_on=self.config.detail_delay)
        pipeline = self.make_pipeline(FakeFetcher(FILMS), publisher, sleep=sleep)

        task = asyncio.create_task(pipeline.run())
        await sleep.reached.wait()
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task

        self.assertEqual(publisher.attempts, [])
        self.assertEqual(len(pipeline.store), 0)
        self.assertEqual(pipeline.last_result.status, "cancelled")


if __name__ == "__main__":
    unittest.main()
