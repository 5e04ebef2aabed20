"""Immutable per-decision settings snapshot."""

import re
from typing import Dict, List, Optional, Tuple

from constants import DEFAULT_SETTINGS, MAX_REDIRECT_DELAY

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_time(value) -> Optional[int]:
    """Return minute-of-day for an "HH:MM" string, or None if malformed."""
    if not isinstance(value, str):
        return None
    m = _TIME_RE.match(value.strip())
    if not m:
        return None
    hours, minutes = int(m.group(1)), int(m.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class Schedule:
    __slots__ = ("id", "days", "start_time", "end_time", "start", "end")

    def __init__(self, schedule_id: str, days, start_time: str, end_time: str):
        self.id = schedule_id
        self.days = frozenset(days)
        self.start_time = start_time
        self.end_time = end_time
        self.start = parse_time(start_time)
        self.end = parse_time(end_time)

    @classmethod
    def from_dict(cls, data) -> Optional["Schedule"]:
        if not isinstance(data, dict):
            return None
        days = data.get("days")
        if not isinstance(days, (list, tuple, set, frozenset)):
            return None
        days = [d for d in days if isinstance(d, int) and not isinstance(d, bool) and 0 <= d <= 6]
        schedule = cls(str(data.get("id", "")), days, data.get("start_time"), data.get("end_time"))
        if schedule.start is None or schedule.end is None:
            return None
        return schedule

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "days": sorted(self.days),
            "start_time": self.start_time,
            "end_time": self.end_time,
        }

    @property
    def overnight(self) -> bool:
        return self.end <= self.start

    def covers(self, weekday: int, minute: int) -> bool:
        """weekday uses 0 = Sunday."""
        if weekday not in self.days:
            return False
        if self.overnight:
            return minute >= self.start or minute < self.end
        return self.start <= minute < self.end


class Settings:
    """Read-only view over one settings snapshot with defaults applied."""

    __slots__ = (
        "trigger_sites",
        "destinations",
        "whitelist",
        "snooze_until",
        "schedules",
        "snoozed_sites",
        "trigger_categories",
        "destination_categories",
        "redirect_stats",
        "focus_mode",
        "redirect_delay",
    )

    def __init__(self):
        self.trigger_sites: Tuple[str, ...] = ()
        self.destinations: Tuple[str, ...] = ()
        self.whitelist: Tuple[str, ...] = ()
        self.snooze_until: Optional[float] = None
        self.schedules: Tuple[Schedule, ...] = ()
        self.snoozed_sites: Dict[str, float] = {}
        self.trigger_categories: Dict[str, str] = {}
        self.destination_categories: Dict[str, str] = {}
        self.redirect_stats: Dict[str, int] = {}
        self.focus_mode = False
        self.redirect_delay = 0.0

    @staticmethod
    def _str_list(value) -> Tuple[str, ...]:
        if not isinstance(value, (list, tuple)):
            return ()
        return tuple(v for v in value if isinstance(v, str) and v)

    @staticmethod
    def _str_map(value) -> Dict[str, str]:
        if not isinstance(value, dict):
            return {}
        return {k: v for k, v in value.items() if isinstance(k, str) and isinstance(v, str)}

    @staticmethod
    def _number_map(value) -> Dict[str, float]:
        if not isinstance(value, dict):
            return {}
        return {k: v for k, v in value.items() if isinstance(k, str) and _is_number(v)}

    @classmethod
    def from_mapping(cls, data) -> "Settings":
        raw = dict(DEFAULT_SETTINGS)
        if isinstance(data, dict):
            raw.update(data)

        s = cls()
        s.trigger_sites = cls._str_list(raw.get("trigger_sites"))
        s.destinations = cls._str_list(raw.get("destinations"))
        s.whitelist = cls._str_list(raw.get("whitelist"))

        snooze_until = raw.get("snooze_until")
        s.snooze_until = snooze_until if _is_number(snooze_until) else None

        schedules: List[Schedule] = []
        if isinstance(raw.get("snooze_block_schedules"), list):
            for item in raw["snooze_block_schedules"]:
                schedule = Schedule.from_dict(item)
                if schedule is not None:
                    schedules.append(schedule)
        s.schedules = tuple(schedules)

        s.snoozed_sites = cls._number_map(raw.get("snoozed_sites"))
        s.trigger_categories = cls._str_map(raw.get("trigger_categories"))
        s.destination_categories = cls._str_map(raw.get("destination_categories"))
        s.redirect_stats = {
            k: int(v) for k, v in cls._number_map(raw.get("redirect_stats")).items() if v >= 0
        }
        s.focus_mode = raw.get("focus_mode") is True

        delay = raw.get("redirect_delay")
        delay = float(delay) if _is_number(delay) else 0.0
        s.redirect_delay = min(max(delay, 0.0), MAX_REDIRECT_DELAY)
        return s

    def category_for_trigger(self, raw: str, hostname: str) -> Optional[str]:
        return self.trigger_categories.get(raw) or self.trigger_categories.get(hostname) or None
