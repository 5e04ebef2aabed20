"""Snooze, schedule and focus-mode suppression checks."""

from datetime import datetime
from typing import Iterable, Optional

from settings import Schedule, Settings


def to_ms(now: datetime) -> float:
    return now.timestamp() * 1000


def local_weekday(now: datetime) -> int:
    # 0 = Sunday, matching the stored schedule days
    return now.isoweekday() % 7


def minute_of_day(now: datetime) -> int:
    return now.hour * 60 + now.minute


def is_snooze_blocked(schedules: Iterable[Schedule], now: datetime) -> bool:
    day = local_weekday(now)
    minute = minute_of_day(now)
    return any(s.covers(day, minute) for s in schedules or ())


def is_snoozed(snooze_until: Optional[float], now: datetime) -> bool:
    if not snooze_until:
        return False
    return to_ms(now) < snooze_until


def is_site_snoozed(snoozed_sites, hostname: str, now: datetime) -> bool:
    expiry = (snoozed_sites or {}).get(hostname)
    if not expiry:
        return False
    return to_ms(now) < expiry


class SuppressionEvaluator:
    """Applies focus mode, schedules, global and per-site snooze in order.

    The global part runs before any trigger is matched; the per-site part
    needs the matched trigger hostname and runs after the whitelist check.
    """

    def __init__(self, settings: Settings, now: datetime):
        self.settings = settings
        self.now = now

    @property
    def focus_active(self) -> bool:
        return self.settings.focus_mode

    def snooze_blocked(self) -> bool:
        return is_snooze_blocked(self.settings.schedules, self.now)

    def globally_suppressed(self) -> bool:
        if self.focus_active:
            return False
        if self.snooze_blocked():
            return False
        return is_snoozed(self.settings.snooze_until, self.now)

    def site_suppressed(self, hostname: str) -> bool:
        if self.focus_active:
            return False
        return is_site_snoozed(self.settings.snoozed_sites, hostname, self.now)

    def suppresses(self, hostname: str) -> bool:
        """True when the navigation to a matched trigger must be left alone."""
        return self.globally_suppressed() or self.site_suppressed(hostname)
