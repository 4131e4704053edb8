"""Tests for the crawl engine."""

import asyncio
import io
import logging

import pytest

from sitecrawler.crawler.engine import CrawlEngine, CrawlTask, TaskState, crawl
from sitecrawler.crawler.fetcher import FetchError

SEED = "https://example.com"


class TestCrawlDepth:

    @pytest.mark.parametrize("depth, want", [(0, 1), (1, 3)])
    async def test_fan_out_termination(self, store, make_fetcher, depth, want):
        fetcher = make_fetcher(pages={SEED: ["/home", "/faq"]})
        await crawl(SEED, depth, store, fetcher, output=io.StringIO())
        assert len(store) == want

    async def test_every_page_links_back(self, store, make_fetcher):
        # each page returns the same two links; depth still bounds the crawl
        fetcher = make_fetcher(default_links=["/home", "/faq"])
        await crawl(SEED, 1, store, fetcher, output=io.StringIO())
        assert store.snapshot() == {SEED, f"{SEED}/home", f"{SEED}/faq"}

    async def test_negative_depth_does_nothing(self, store, make_fetcher):
        fetcher = make_fetcher(default_links=["/a"])
        stats = await crawl(SEED, -1, store, fetcher, output=io.StringIO())
        assert fetcher.calls == []
        assert len(store) == 0
        assert stats.depth_exhausted == 1

    async def test_no_page_beyond_depth(self, store, make_fetcher):
        # a chain a -> b -> c -> d -> e
        chain = ["a", "b", "c", "d", "e"]
        pages = {f"{SEED}/{name}": [f"/{nxt}"] for name, nxt in zip(chain, chain[1:])}
        fetcher = make_fetcher(pages=pages)
        await crawl(f"{SEED}/a", 2, store, fetcher, output=io.StringIO())
        assert fetcher.calls == [f"{SEED}/a", f"{SEED}/b", f"{SEED}/c"]


class TestCrawlDeduplication:

    async def test_cycle_terminates_and_visits_once(self, store, make_fetcher):
        pages = {
            SEED: ["/a"],
            f"{SEED}/a": ["/b"],
            f"{SEED}/b": ["/"],
            f"{SEED}/": ["/a"],
        }
        fetcher = make_fetcher(pages=pages)
        stats = await crawl(SEED, 10, store, fetcher, output=io.StringIO())
        assert sorted(fetcher.calls) == sorted(set(fetcher.calls))
        assert set(fetcher.calls) == {SEED, f"{SEED}/a", f"{SEED}/b", f"{SEED}/"}
        assert stats.duplicates_skipped >= 1

    async def test_siblings_racing_for_same_url_fetch_once(self, store, make_fetcher):
        fetcher = make_fetcher(pages={SEED: ["/same"] * 20}, delay=0.01)
        stats = await crawl(SEED, 1, store, fetcher, output=io.StringIO())
        assert fetcher.calls.count(f"{SEED}/same") == 1
        assert stats.duplicates_skipped == 19

    async def test_preclaimed_url_is_skipped(self, store, make_fetcher):
        store.mark_visited(SEED)
        fetcher = make_fetcher(default_links=["/a"])
        stats = await crawl(SEED, 1, store, fetcher, output=io.StringIO())
        assert fetcher.calls == []
        assert stats.pages_crawled == 0


class TestCrawlFailures:

    async def test_seed_failure_is_not_fatal(self, store, make_fetcher, transport_error, caplog):
        fetcher = make_fetcher(pages={SEED: transport_error})
        with caplog.at_level(logging.ERROR):
            stats = await crawl(SEED, 1, store, fetcher, output=io.StringIO())
        assert stats.pages_crawled == 0
        assert stats.fetch_errors == 1
        assert f"error crawling {SEED}, err: connection refused" in caplog.text

    async def test_failure_is_isolated_to_its_task(self, store, make_fetcher):
        pages = {
            SEED: ["/broken", "/fine"],
            f"{SEED}/broken": FetchError(f"{SEED}/broken", "boom"),
            f"{SEED}/fine": ["/leaf"],
        }
        fetcher = make_fetcher(pages=pages)
        stats = await crawl(SEED, 2, store, fetcher, output=io.StringIO())
        assert set(stats.visited) == {SEED, f"{SEED}/fine", f"{SEED}/leaf"}
        assert stats.fetch_errors == 1

    async def test_unexpected_error_is_contained(self, store, make_fetcher):
        pages = {SEED: ["/odd", "/ok"], f"{SEED}/odd": RuntimeError("bug")}
        fetcher = make_fetcher(pages=pages)
        stats = await crawl(SEED, 1, store, fetcher, output=io.StringIO())
        assert set(stats.visited) == {SEED, f"{SEED}/ok"}
        assert stats.fetch_errors == 1

    async def test_unparseable_href_is_skipped(self, store, make_fetcher):
        fetcher = make_fetcher(pages={SEED: ["/bad%zz", "/good"]})
        stats = await crawl(SEED, 1, store, fetcher, output=io.StringIO())
        assert set(stats.visited) == {SEED, f"{SEED}/good"}
        assert stats.links_discovered == 1


class TestCrawlOutput:

    async def test_prints_visited_pages(self, store, make_fetcher):
        output = io.StringIO()
        fetcher = make_fetcher(pages={SEED: ["/home"]})
        await crawl(SEED, 1, store, fetcher, output=output)
        lines = output.getvalue().splitlines()
        assert lines[0] == f"- {SEED}"
        assert sorted(lines) == sorted([f"- {SEED}", f"- {SEED}/home"])

    async def test_verbose_prints_discovered_links(self, store, make_fetcher):
        output = io.StringIO()
        fetcher = make_fetcher(pages={SEED: ["/home"]})
        await crawl(SEED, 0, store, fetcher, output=output, verbose=True)
        assert output.getvalue().splitlines() == [f"- {SEED}", f"   - {SEED}/home"]

    async def test_relative_links_resolve_against_their_page(self, store, make_fetcher):
        pages = {f"{SEED}/docs/index": ["intro", "../about"]}
        fetcher = make_fetcher(pages=pages)
        await crawl(f"{SEED}/docs/index", 1, store, fetcher, output=io.StringIO())
        assert set(fetcher.calls) == {f"{SEED}/docs/index", f"{SEED}/docs/intro", f"{SEED}/about"}


class TestCrawlEngine:

    async def test_join_waits_for_whole_tree(self, store, make_fetcher):
        fetcher = make_fetcher(default_links=["/a", "/b", "/c"], delay=0.01)
        engine = CrawlEngine(fetcher, store, output=io.StringIO())
        stats = await engine.run(SEED, 2)
        assert stats.tasks_done == stats.tasks_spawned
        assert fetcher.in_flight == 0
        assert stats.end_time is not None

    async def test_task_states(self, store, make_fetcher, transport_error):
        fetcher = make_fetcher(pages={SEED: ["/x"], f"{SEED}/fail": transport_error})
        engine = CrawlEngine(fetcher, store, output=io.StringIO())

        async def run_one(task):
            await engine.crawl(task)
            return task.state

        assert await run_one(CrawlTask(url=SEED, depth=-1)) is TaskState.DEPTH_EXHAUSTED
        assert await run_one(CrawlTask(url=f"{SEED}/fail", depth=0)) is TaskState.FETCH_FAILED
        assert await run_one(CrawlTask(url=f"{SEED}/fail", depth=0)) is TaskState.ALREADY_VISITED

    async def test_done_state_recorded_with_outcome(self, store, make_fetcher, transport_error):
        pages = {SEED: ["/ok", "/ok", "/broken"], f"{SEED}/broken": transport_error}
        engine = CrawlEngine(make_fetcher(pages=pages), store, output=io.StringIO())
        spawned = []
        spawn = engine.spawn

        def recording_spawn(task):
            spawned.append(task)
            return spawn(task)

        engine.spawn = recording_spawn
        await engine.run(SEED, 1)

        assert all(task.state is TaskState.DONE for task in spawned)
        outcomes = {task.url: task.outcome for task in spawned
                    if task.outcome is not TaskState.ALREADY_VISITED}
        assert outcomes == {
            SEED: TaskState.FANNED_OUT,
            f"{SEED}/ok": TaskState.FANNED_OUT,
            f"{SEED}/broken": TaskState.FETCH_FAILED,
        }
        assert [task.outcome for task in spawned].count(TaskState.ALREADY_VISITED) == 1

    async def test_spawn_outside_run_raises(self, store, make_fetcher):
        engine = CrawlEngine(make_fetcher(), store)
        with pytest.raises(RuntimeError):
            engine.spawn(CrawlTask(url=SEED, depth=0))

    async def test_cancelling_run_cancels_all_tasks(self, store, make_fetcher):
        fetcher = make_fetcher(default_links=["/a", "/b"], delay=10)
        engine = CrawlEngine(fetcher, store, output=io.StringIO())
        run = asyncio.create_task(engine.run(SEED, 3))
        await asyncio.sleep(0.05)
        run.cancel()
        with pytest.raises(asyncio.CancelledError):
            await run
        assert fetcher.in_flight == 0
