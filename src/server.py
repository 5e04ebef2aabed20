"""Redirect service orchestration."""

import asyncio
import os
import sys
from datetime import datetime

from admin import clear_expired_snooze
from constants import STATS_WRITE_INTERVAL, TASK_CLEANUP_INTERVAL, __version__
from engine import NavigationEvent, NavigationHandler
from interfaces import IRedirectExecutor
from json_utils import json_dumps, json_loads
from settings import Settings


class JsonLinesRedirectExecutor(IRedirectExecutor):
    """Emits one JSON redirect command per line on the output stream."""

    def __init__(self, stream):
        self.stream = stream

    async def redirect(self, tab_id: int, url: str) -> None:
        self.stream.write(json_dumps({"action": "redirect", "tab_id": tab_id, "url": url}) + "\n")
        self.stream.flush()


class RedirectServer:
    def __init__(self, config, store, statistics, logger, handler: NavigationHandler):
        self.config = config
        self.store = store
        self.statistics = statistics
        self.logger = logger
        self.handler = handler
        self.background_tasks = []
        logger.set_error_counter_callback(statistics.increment_errors)

    async def print_banner(self) -> None:
        self.logger.info(f"\033[92m[INFO]:\033[97m sitedetour {__version__} started at {datetime.now().strftime('%H:%M on %Y-%m-%d')}")
        self.logger.info(f"\033[92m[INFO]:\033[97m Settings file: '{os.path.normpath(self.config.settings_file)}'")
        try:
            settings = Settings.from_mapping(await self.store.read_all())
            self.logger.info(
                f"\033[92m[INFO]:\033[97m {len(settings.trigger_sites)} triggers, "
                f"{len(settings.destinations)} destinations, {len(settings.whitelist)} whitelisted"
            )
            if settings.focus_mode:
                self.logger.info("\033[92m[INFO]:\033[97m Focus mode is on. Snoozes are ignored")
        except Exception:
            pass
        if self.config.log_error_file:
            self.logger.info(f"\033[92m[INFO]:\033[97m Error logging is enabled. Path to error log: '{self.config.log_error_file}'")
        else:
            self.logger.info("\033[92m[INFO]:\033[97m Error logging is disabled")
        if self.config.log_access_file:
            self.logger.info(f"\033[92m[INFO]:\033[97m Access logging is enabled. Path to access log: '{self.config.log_access_file}'")
        else:
            self.logger.info("\033[92m[INFO]:\033[97m Access logging is disabled")
        self.logger.info("")

    async def clear_expired_snooze(self) -> None:
        try:
            settings = Settings.from_mapping(await self.store.read_all())
            patch = clear_expired_snooze(settings, datetime.now().timestamp() * 1000)
            if patch:
                await self.store.write(patch)
                self.logger.info("\033[92m[INFO]:\033[97m Expired snooze cleared")
        except Exception as e:
            self.logger.log_error(f"startup snooze cleanup failed : {e}")

    def dispatch(self, line: str) -> None:
        line = line.strip()
        if not line:
            return
        try:
            data = json_loads(line)
            if isinstance(data, dict) and data.get("event") == "removed":
                self.handler.forget_tab(int(data["tab_id"]))
                return
            event = NavigationEvent.from_dict(data)
        except (ValueError, KeyError, TypeError) as e:
            self.logger.log_error(f"invalid event {line[:200]!r} : {e}")
            return
        self.handler.tasks.append(asyncio.create_task(self.handler.handle_navigation(event)))

    async def read_events(self, stream) -> None:
        loop = asyncio.get_running_loop()
        while True:
            line = await loop.run_in_executor(None, stream.readline)
            if not line:
                break
            self.dispatch(line)
        if self.handler.tasks:
            await asyncio.gather(*self.handler.tasks, return_exceptions=True)

    async def display_stats(self) -> None:
        while True:
            await asyncio.sleep(1)
            if not self.config.quiet:
                print(self.statistics.get_stats_display(), file=sys.stderr)
                print("\033[1A", end="", file=sys.stderr)

    def write_stats_once(self) -> None:
        payload = self.statistics.snapshot()
        payload["settings_file"] = self.config.settings_file
        payload["timestamp"] = datetime.now().isoformat()
        with open(self.config.stats_file, "w", encoding="utf-8") as f:
            f.write(json_dumps(payload))

    async def write_stats(self) -> None:
        while True:
            await asyncio.sleep(STATS_WRITE_INTERVAL)
            try:
                self.write_stats_once()
            except OSError as e:
                self.logger.log_error(f"stats write failed : {e}")

    async def run(self, events_stream) -> None:
        if not self.config.quiet:
            await self.print_banner()
        await self.clear_expired_snooze()

        if not self.config.quiet:
            self.background_tasks.append(asyncio.create_task(self.display_stats()))
        if self.config.stats_file:
            self.background_tasks.append(asyncio.create_task(self.write_stats()))
        self.background_tasks.append(asyncio.create_task(self.handler.cleanup_tasks(TASK_CLEANUP_INTERVAL)))

        try:
            await self.read_events(events_stream)
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        for task in self.background_tasks:
            task.cancel()
        for task in self.handler.tasks:
            task.cancel()
        if self.config.stats_file:
            try:
                self.write_stats_once()
            except OSError as e:
                self.logger.log_error(f"stats write failed : {e}")
