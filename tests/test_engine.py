import asyncio
import random
import sys
import unittest
from datetime import datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from constants import (
    OUTCOME_ERROR,
    OUTCOME_LOOP_GUARD,
    OUTCOME_NO_DESTINATION,
    OUTCOME_NO_MATCH,
    OUTCOME_REDIRECT,
    OUTCOME_SITE_SNOOZED,
    OUTCOME_SNOOZED,
    OUTCOME_SUBFRAME,
    OUTCOME_WHITELISTED,
)
from engine import NavigationEvent, NavigationHandler, decide
from interfaces import IRedirectExecutor
from settings import Settings
from stats import Statistics
from storage import MemorySettingsStore
from suppression import to_ms

NOW = datetime(2024, 1, 3, 10, 0)
LATER = to_ms(datetime(2024, 1, 3, 23, 0))


class RecordingExecutor(IRedirectExecutor):
    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    async def redirect(self, tab_id, url):
        if self.fail:
            raise RuntimeError("tab is gone")
        self.calls.append((tab_id, url))


class RecordingLogger:
    def __init__(self):
        self.access = []
        self.errors = []

    def log_access(self, message):
        self.access.append(message)

    def log_error(self, message):
        self.errors.append(message)

    def info(self, *a, **k):
        pass

    def error(self, *a, **k):
        pass


class BrokenStore(MemorySettingsStore):
    async def read_all(self):
        raise OSError("disk gone")


def nav(tab_id, url, main=True):
    return NavigationEvent(tab_id, url, main)


class TestDecide(unittest.TestCase):
    def _decide(self, url, **data):
        return decide(url, Settings.from_mapping(data), NOW, random.Random(1))

    def test_redirects_matched_trigger(self):
        d = self._decide("https://www.reddit.com/r/all", trigger_sites=["reddit.com"], destinations=["wikipedia.org"])
        self.assertEqual(d.outcome, OUTCOME_REDIRECT)
        self.assertEqual(d.trigger, "reddit.com")
        self.assertEqual(d.destination_url, "https://wikipedia.org")

    def test_unmatched_and_malformed_urls(self):
        self.assertEqual(self._decide("https://python.org", trigger_sites=["reddit.com"], destinations=["a.org"]).outcome, OUTCOME_NO_MATCH)
        self.assertEqual(self._decide("garbage", trigger_sites=["reddit.com"], destinations=["a.org"]).outcome, OUTCOME_NO_MATCH)

    def test_whitelist_wins_even_in_focus_mode(self):
        d = self._decide(
            "https://reddit.com/r/python",
            trigger_sites=["reddit.com"],
            whitelist=["reddit.com/r/python"],
            destinations=["a.org"],
            focus_mode=True,
        )
        self.assertEqual(d.outcome, OUTCOME_WHITELISTED)

    def test_global_snooze_and_focus_override(self):
        data = dict(trigger_sites=["reddit.com"], destinations=["a.org"], snooze_until=LATER)
        self.assertEqual(self._decide("https://reddit.com", **data).outcome, OUTCOME_SNOOZED)
        self.assertEqual(self._decide("https://reddit.com", focus_mode=True, **data).outcome, OUTCOME_REDIRECT)

    def test_schedule_blocks_snooze(self):
        d = self._decide(
            "https://reddit.com",
            trigger_sites=["reddit.com"],
            destinations=["a.org"],
            snooze_until=LATER,
            snooze_block_schedules=[{"id": "w", "days": [1, 2, 3, 4, 5], "start_time": "09:00", "end_time": "17:00"}],
        )
        self.assertEqual(d.outcome, OUTCOME_REDIRECT)

    def test_site_snooze_uses_trigger_hostname(self):
        d = self._decide(
            "https://old.reddit.com/r/all",
            trigger_sites=["www.reddit.com/r"],
            destinations=["a.org"],
            snoozed_sites={"reddit.com": LATER},
        )
        self.assertEqual(d.outcome, OUTCOME_SITE_SNOOZED)

    def test_no_destination(self):
        d = self._decide("https://reddit.com", trigger_sites=["reddit.com"])
        self.assertEqual(d.outcome, OUTCOME_NO_DESTINATION)

    def test_trigger_category_filters_destinations(self):
        data = dict(
            trigger_sites=["cnn.com"],
            destinations=["duolingo.com", "reuters.com"],
            trigger_categories={"cnn.com": "news"},
            destination_categories={"reuters.com": "news"},
        )
        for seed in range(10):
            d = decide("https://cnn.com", Settings.from_mapping(data), NOW, random.Random(seed))
            self.assertEqual(d.destination_url, "https://reuters.com")


class TestNavigationHandler(unittest.IsolatedAsyncioTestCase):
    def _handler(self, store=None, executor=None, **settings):
        self.store = store or MemorySettingsStore(settings)
        self.executor = executor or RecordingExecutor()
        self.logger = RecordingLogger()
        self.sleeps = []

        async def fake_sleep(seconds):
            self.sleeps.append(seconds)

        self.stats = Statistics(self.store)
        return NavigationHandler(self.store, self.executor, self.stats, self.logger,
                                 clock=lambda: NOW, rng=random.Random(0), sleep=fake_sleep)

    async def test_redirect_persists_only_stats(self):
        handler = self._handler(trigger_sites=["reddit.com"], destinations=["wikipedia.org"])
        decision = await handler.handle_navigation(nav(1, "https://reddit.com/"))
        self.assertEqual(decision.outcome, OUTCOME_REDIRECT)
        self.assertEqual(self.executor.calls, [(1, "https://wikipedia.org")])
        self.assertEqual(self.store.writes, [{"redirect_stats": {"reddit.com": 1}}])
        self.assertEqual(len(self.logger.access), 1)

    async def test_loop_guard_skips_exactly_one_event(self):
        handler = self._handler(trigger_sites=["a.com"], destinations=["b.org"])
        first = await handler.handle_navigation(nav(5, "https://a.com/"))
        second = await handler.handle_navigation(nav(5, "https://a.com/"))
        third = await handler.handle_navigation(nav(5, "https://a.com/"))
        self.assertEqual([first.outcome, second.outcome, third.outcome],
                         [OUTCOME_REDIRECT, OUTCOME_LOOP_GUARD, OUTCOME_REDIRECT])
        self.assertEqual(len(self.executor.calls), 2)
        self.assertEqual(self.store.data["redirect_stats"], {"a.com": 2})
        self.assertTrue(handler.loop_guard.is_armed(5))

    async def test_guard_is_per_tab(self):
        handler = self._handler(trigger_sites=["a.com"], destinations=["b.org"])
        await handler.handle_navigation(nav(1, "https://a.com/"))
        other = await handler.handle_navigation(nav(2, "https://a.com/"))
        self.assertEqual(other.outcome, OUTCOME_REDIRECT)

    async def test_subframes_never_touch_the_guard(self):
        handler = self._handler(trigger_sites=["a.com"], destinations=["b.org"])
        sub = await handler.handle_navigation(nav(3, "https://a.com/", main=False))
        self.assertEqual(sub.outcome, OUTCOME_SUBFRAME)
        self.assertFalse(handler.loop_guard.is_armed(3))
        await handler.handle_navigation(nav(3, "https://a.com/"))
        self.assertTrue(handler.loop_guard.is_armed(3))
        await handler.handle_navigation(nav(3, "https://a.com/frame", main=False))
        self.assertTrue(handler.loop_guard.is_armed(3))

    async def test_stats_count_per_trigger_hostname(self):
        handler = self._handler(trigger_sites=["a.com", "www.b.com/feed"], destinations=["c.org"])
        await asyncio.gather(
            handler.handle_navigation(nav(10, "https://a.com/1")),
            handler.handle_navigation(nav(11, "https://a.com/2")),
            handler.handle_navigation(nav(12, "https://a.com/3")),
            handler.handle_navigation(nav(13, "https://b.com/feed")),
        )
        self.assertEqual(self.store.data["redirect_stats"], {"a.com": 3, "b.com": 1})
        self.assertEqual(self.stats.snapshot()["redirects"], 4)

    async def test_no_destination_does_not_arm(self):
        handler = self._handler(trigger_sites=["a.com"])
        decision = await handler.handle_navigation(nav(4, "https://a.com/"))
        self.assertEqual(decision.outcome, OUTCOME_NO_DESTINATION)
        self.assertEqual(len(handler.loop_guard), 0)
        self.assertEqual(self.store.writes, [])

    async def test_store_failure_leaves_navigation_alone(self):
        handler = self._handler(store=BrokenStore())
        decision = await handler.handle_navigation(nav(1, "https://a.com/"))
        self.assertEqual(decision.outcome, OUTCOME_ERROR)
        self.assertEqual(len(self.logger.errors), 1)
        self.assertEqual(self.executor.calls, [])

    async def test_failed_redirect_disarms_guard(self):
        handler = self._handler(executor=RecordingExecutor(fail=True), trigger_sites=["a.com"], destinations=["b.org"])
        decision = await handler.handle_navigation(nav(7, "https://a.com/"))
        self.assertEqual(decision.outcome, OUTCOME_ERROR)
        self.assertFalse(handler.loop_guard.is_armed(7))
        self.assertEqual(len(self.logger.errors), 1)

    async def test_redirect_delay_is_awaited(self):
        handler = self._handler(trigger_sites=["a.com"], destinations=["b.org"], redirect_delay=2)
        await handler.handle_navigation(nav(1, "https://a.com/"))
        self.assertEqual(self.sleeps, [2.0])

    async def test_forget_tab_clears_guard(self):
        handler = self._handler(trigger_sites=["a.com"], destinations=["b.org"])
        await handler.handle_navigation(nav(8, "https://a.com/"))
        handler.forget_tab(8)
        decision = await handler.handle_navigation(nav(8, "https://a.com/"))
        self.assertEqual(decision.outcome, OUTCOME_REDIRECT)

    async def test_tab_locks_are_released(self):
        handler = self._handler(trigger_sites=["a.com"], destinations=["b.org"])
        await handler.handle_navigation(nav(9, "https://a.com/"))
        self.assertEqual(handler._tab_locks, {})


class TestNavigationEvent(unittest.TestCase):
    def test_from_dict(self):
        event = NavigationEvent.from_dict({"tab_id": 3, "url": "https://a.com", "frame_id": 2})
        self.assertFalse(event.is_main_frame)
        self.assertTrue(NavigationEvent.from_dict({"tab_id": 3, "url": "https://a.com"}).is_main_frame)

    def test_rejects_bad_events(self):
        for data in ({"url": "https://a.com"}, {"tab_id": "3", "url": "x"}, {"tab_id": 1}, [1]):
            with self.subTest(data=data):
                with self.assertRaises(ValueError):
                    NavigationEvent.from_dict(data)


if __name__ == "__main__":
    unittest.main()
