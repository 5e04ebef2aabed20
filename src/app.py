"""Application entrypoint for the redirect service and settings commands."""

import argparse
import asyncio
import logging
import sys
from datetime import datetime

try:
    import uvloop
    asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())
except Exception:
    pass

import admin
from config import ConfigLoader
from constants import CATEGORIES, DEFAULT_SNOOZE_MINUTES
from engine import NavigationHandler, decide
from json_utils import json_dumps
from logger import RedirectLogger
from server import JsonLinesRedirectExecutor, RedirectServer
from settings import Settings
from stats import Statistics
from storage import SettingsStoreFactory


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Redirect distracting sites to better destinations")
    parser.add_argument("--settings", default="settings.json", help="Path to settings JSON file")
    parser.add_argument("--events", default="-", help="Navigation events (JSON lines), '-' for stdin")
    parser.add_argument("--output", default="-", help="Redirect commands (JSON lines), '-' for stdout")
    parser.add_argument("--log-access", required=False, help="Path to the decision log")
    parser.add_argument("--log-error", required=False, help="Path to log file for errors")
    parser.add_argument("--stats-file", required=False, help="Path to stats JSON file")
    parser.add_argument("-q", "--quiet", action="store_true", help="Remove console output")

    cmd = parser.add_mutually_exclusive_group()
    cmd.add_argument("--snooze", type=int, nargs="?", const=DEFAULT_SNOOZE_MINUTES, metavar="MINUTES", help="Snooze all redirects")
    cmd.add_argument("--cancel-snooze", action="store_true", help="Cancel the global snooze")
    cmd.add_argument("--snooze-site", nargs=2, metavar=("SITE", "MINUTES"), help="Snooze one trigger site")
    cmd.add_argument("--unsnooze-site", metavar="SITE", help="Cancel a site snooze")
    cmd.add_argument("--focus", choices=["on", "off"], help="Toggle focus mode")
    cmd.add_argument("--delay", type=float, metavar="SECONDS", help="Set the redirect delay")
    cmd.add_argument("--reset-stats", action="store_true", help="Clear redirect counters")
    cmd.add_argument("--add-trigger", metavar="SITE")
    cmd.add_argument("--remove-trigger", metavar="SITE")
    cmd.add_argument("--add-destination", metavar="SITE")
    cmd.add_argument("--remove-destination", metavar="SITE")
    cmd.add_argument("--add-whitelist", metavar="SITE")
    cmd.add_argument("--remove-whitelist", metavar="SITE")
    cmd.add_argument("--set-category", nargs=3, metavar=("LIST", "SITE", "CATEGORY"),
                     help=f"LIST is trigger or destination, CATEGORY one of {', '.join(CATEGORIES)} or none")
    cmd.add_argument("--add-schedule", nargs=3, metavar=("DAYS", "START", "END"),
                     help="Block snoozing, e.g. 1,2,3,4,5 09:00 17:00 (0 = Sunday)")
    cmd.add_argument("--remove-schedule", metavar="ID")
    cmd.add_argument("--status", action="store_true", help="Print the current state")
    cmd.add_argument("--check", metavar="URL", help="Show the decision for a URL without redirecting")
    return parser


def build_patch(args, settings: Settings, now: datetime):
    now_ms = now.timestamp() * 1000
    if args.snooze is not None:
        return admin.snooze_all(args.snooze, now_ms)
    if args.cancel_snooze:
        return admin.cancel_snooze()
    if args.snooze_site:
        return admin.snooze_site(settings, args.snooze_site[0], args.snooze_site[1], now_ms)
    if args.unsnooze_site:
        return admin.cancel_site_snooze(settings, args.unsnooze_site, now_ms)
    if args.focus:
        return admin.set_focus_mode(args.focus == "on")
    if args.delay is not None:
        return admin.set_redirect_delay(args.delay)
    if args.reset_stats:
        return admin.reset_stats()
    for field, add, remove in (
        ("trigger_sites", args.add_trigger, args.remove_trigger),
        ("destinations", args.add_destination, args.remove_destination),
        ("whitelist", args.add_whitelist, args.remove_whitelist),
    ):
        if add:
            return admin.add_site(settings, field, add)
        if remove:
            return admin.remove_site(settings, field, remove)
    if args.set_category:
        kind, site, category = args.set_category
        field = {"trigger": "trigger_sites", "destination": "destinations"}.get(kind)
        if field is None:
            raise ValueError("LIST must be 'trigger' or 'destination'")
        return admin.set_category(settings, field, site, None if category == "none" else category)
    if args.add_schedule:
        days, start, end = args.add_schedule
        return admin.add_schedule(settings, [int(d) for d in days.split(",") if d.strip()], start, end)
    if args.remove_schedule:
        return admin.remove_schedule(settings, args.remove_schedule)
    return None


def is_command(args) -> bool:
    return any((
        args.snooze is not None, args.cancel_snooze, args.snooze_site, args.unsnooze_site, args.focus,
        args.delay is not None, args.reset_stats, args.add_trigger, args.remove_trigger,
        args.add_destination, args.remove_destination, args.add_whitelist, args.remove_whitelist,
        args.set_category, args.add_schedule, args.remove_schedule, args.status, args.check,
    ))


async def run_command(args, store, logger) -> int:
    now = datetime.now()
    settings = Settings.from_mapping(await store.read_all())
    if args.status:
        print(json_dumps(admin.status(settings, now), pretty=True))
        return 0
    if args.check:
        decision = decide(args.check, settings, now)
        print(json_dumps({
            "outcome": decision.outcome,
            "trigger": decision.trigger,
            "destination_url": decision.destination_url,
        }, pretty=True))
        return 0
    try:
        patch = build_patch(args, settings, now)
    except ValueError as e:
        logger.error(f"\033[91m[ERROR]: {e}\033[0m")
        return 1
    if patch:
        await store.write(patch)
        logger.info(f"\033[92m[INFO]:\033[97m Updated: {', '.join(sorted(patch))}")
    else:
        logger.info("\033[92m[INFO]:\033[97m Nothing to change")
    return 0


def _open_stream(path: str, mode: str, default):
    if path == "-":
        return default, False
    return open(path, mode, encoding="utf-8"), True


async def run() -> None:
    logging.getLogger("asyncio").setLevel(logging.CRITICAL)
    args = build_parser().parse_args()

    config = ConfigLoader.load_from_args(args)
    logger = RedirectLogger(config.log_access_file, config.log_error_file, config.quiet)
    store = SettingsStoreFactory.create(config, logger)

    if is_command(args):
        raise SystemExit(await run_command(args, store, logger))

    stats = Statistics(store)
    events, close_events = _open_stream(config.events_file, "r", sys.stdin)
    output, close_output = _open_stream(config.output_file, "w", sys.stdout)
    try:
        handler = NavigationHandler(store, JsonLinesRedirectExecutor(output), stats, logger)
        server = RedirectServer(config, store, stats, logger, handler)
        await server.run(events)
        logger.info("\n\033[92m[INFO]:\033[97m Event stream closed. Shutting down...")
    finally:
        if close_events:
            events.close()
        if close_output:
            output.close()


def main() -> None:
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
