"""Navigation decision engine and per-tab event handling."""

import asyncio
import random
import traceback
from datetime import datetime
from typing import Callable, Dict, List, Optional

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
from destinations import select_url
from interfaces import IRedirectExecutor, ISettingsStore, IStatistics
from loop_guard import RedirectLoopGuard
from rules import RuleEngine
from settings import Settings
from suppression import SuppressionEvaluator
from url_parser import parse_url


class NavigationEvent:
    __slots__ = ("tab_id", "url", "is_main_frame")

    def __init__(self, tab_id: int, url: str, is_main_frame: bool = True):
        self.tab_id = tab_id
        self.url = url
        self.is_main_frame = is_main_frame

    @classmethod
    def from_dict(cls, data) -> "NavigationEvent":
        if not isinstance(data, dict):
            raise ValueError("Navigation event must be a JSON object")
        tab_id = data.get("tab_id")
        if not isinstance(tab_id, int) or isinstance(tab_id, bool):
            raise ValueError(f"Invalid tab_id: {tab_id!r}")
        url = data.get("url")
        if not isinstance(url, str):
            raise ValueError(f"Invalid url for tab {tab_id}")
        if "is_main_frame" in data:
            is_main_frame = data["is_main_frame"] is True
        else:
            is_main_frame = data.get("frame_id", 0) == 0
        return cls(tab_id, url, is_main_frame)


class Decision:
    __slots__ = ("outcome", "trigger", "hostname", "destination_url")

    def __init__(self, outcome: str, trigger: Optional[str] = None, hostname: Optional[str] = None,
                 destination_url: Optional[str] = None):
        self.outcome = outcome
        self.trigger = trigger
        self.hostname = hostname
        self.destination_url = destination_url

    @property
    def redirects(self) -> bool:
        return self.outcome == OUTCOME_REDIRECT

    def __repr__(self) -> str:
        return f"Decision({self.outcome!r}, trigger={self.trigger!r}, destination_url={self.destination_url!r})"


def decide(url: str, settings: Settings, now: datetime, rng: Optional[random.Random] = None) -> Decision:
    """Evaluate one main-frame URL against a settings snapshot.

    Pure: no guard state, no persistence. The caller owns both.
    """
    suppression = SuppressionEvaluator(settings, now)
    if suppression.globally_suppressed():
        return Decision(OUTCOME_SNOOZED)

    parsed = parse_url(url)
    trigger = RuleEngine(settings.trigger_sites).match_parsed(parsed)
    if trigger is None:
        return Decision(OUTCOME_NO_MATCH)

    if RuleEngine(settings.whitelist).match_parsed(parsed) is not None:
        return Decision(OUTCOME_WHITELISTED, trigger.raw, trigger.hostname)

    if suppression.site_suppressed(trigger.hostname):
        return Decision(OUTCOME_SITE_SNOOZED, trigger.raw, trigger.hostname)

    category = settings.category_for_trigger(trigger.raw, trigger.hostname)
    destination_url = select_url(settings.destinations, category, settings.destination_categories, rng)
    if destination_url is None:
        return Decision(OUTCOME_NO_DESTINATION, trigger.raw, trigger.hostname)
    return Decision(OUTCOME_REDIRECT, trigger.raw, trigger.hostname, destination_url)


class NavigationHandler:
    def __init__(self, store: ISettingsStore, executor: IRedirectExecutor, statistics: IStatistics, logger,
                 clock: Callable[[], datetime] = datetime.now, rng: Optional[random.Random] = None,
                 sleep=asyncio.sleep):
        self.store = store
        self.executor = executor
        self.statistics = statistics
        self.logger = logger
        self.clock = clock
        self.rng = rng
        self.sleep = sleep
        self.loop_guard = RedirectLoopGuard()

        self._tab_locks: Dict[int, asyncio.Lock] = {}
        self._tab_users: Dict[int, int] = {}
        self.tasks: List[asyncio.Task] = []

    async def handle_navigation(self, event: NavigationEvent) -> Decision:
        if not event.is_main_frame:
            return Decision(OUTCOME_SUBFRAME)

        self.statistics.increment_navigations()
        lock = self._acquire_tab_lock(event.tab_id)
        try:
            async with lock:
                decision = await self._evaluate(event)
        finally:
            self._release_tab_lock(event.tab_id)

        self.statistics.increment_outcome(decision.outcome)
        self._log_decision(event, decision)
        return decision

    async def _evaluate(self, event: NavigationEvent) -> Decision:
        if self.loop_guard.consume(event.tab_id):
            return Decision(OUTCOME_LOOP_GUARD)

        try:
            settings = Settings.from_mapping(await self.store.read_all())
        except Exception:
            self.logger.log_error(f"tab {event.tab_id} : settings read failed : {traceback.format_exc()}")
            return Decision(OUTCOME_ERROR)

        decision = decide(event.url, settings, self.clock(), self.rng)
        if not decision.redirects:
            return decision

        self.loop_guard.arm(event.tab_id)
        try:
            await self.statistics.record_redirect(decision.hostname)
        except Exception:
            self.logger.log_error(f"{decision.hostname} : stats write failed : {traceback.format_exc()}")

        try:
            if settings.redirect_delay > 0:
                await self.sleep(settings.redirect_delay)
            await self.executor.redirect(event.tab_id, decision.destination_url)
        except Exception:
            self.loop_guard.disarm(event.tab_id)
            self.logger.log_error(f"tab {event.tab_id} : redirect failed : {traceback.format_exc()}")
            return Decision(OUTCOME_ERROR, decision.trigger, decision.hostname, decision.destination_url)
        return decision

    def forget_tab(self, tab_id: int) -> None:
        self.loop_guard.disarm(tab_id)

    def _acquire_tab_lock(self, tab_id: int) -> asyncio.Lock:
        lock = self._tab_locks.get(tab_id)
        if lock is None:
            lock = self._tab_locks[tab_id] = asyncio.Lock()
        self._tab_users[tab_id] = self._tab_users.get(tab_id, 0) + 1
        return lock

    def _release_tab_lock(self, tab_id: int) -> None:
        users = self._tab_users.get(tab_id, 1) - 1
        if users <= 0:
            self._tab_users.pop(tab_id, None)
            self._tab_locks.pop(tab_id, None)
        else:
            self._tab_users[tab_id] = users

    def _log_decision(self, event: NavigationEvent, decision: Decision) -> None:
        stamp = self.clock().strftime("%Y-%m-%d %H:%M:%S")
        target = decision.destination_url or "-"
        trigger = decision.trigger or "-"
        self.logger.log_access(f"{stamp} {event.tab_id} {decision.outcome} {trigger} {event.url} {target}")

    async def cleanup_tasks(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.tasks = [t for t in self.tasks if not t.done()]
