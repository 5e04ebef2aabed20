"""Administrative settings edits.

Every operation takes the current snapshot (a ``Settings`` or nothing) and
returns a partial patch holding only the keys it changed. Writing the patch
is left to the caller's store.
"""

import uuid
from typing import Dict, Iterable, Optional

from constants import CATEGORIES, CATEGORY_FIELDS, LIST_FIELDS, MAX_REDIRECT_DELAY, MS_PER_MINUTE
from settings import Settings, parse_time
from stats import top_triggers
from suppression import is_snooze_blocked, is_snoozed
from url_parser import normalize_site

Patch = Dict[str, object]


def _minutes(minutes) -> int:
    value = int(minutes)
    if value <= 0:
        raise ValueError("Snooze duration must be a positive number of minutes")
    return value


def snooze_all(minutes, now_ms: float) -> Patch:
    return {"snooze_until": int(now_ms + _minutes(minutes) * MS_PER_MINUTE)}


def cancel_snooze() -> Patch:
    return {"snooze_until": None}


def clear_expired_snooze(settings: Settings, now_ms: float) -> Patch:
    if settings.snooze_until and now_ms >= settings.snooze_until:
        return {"snooze_until": None}
    return {}


def _live_site_snoozes(settings: Settings, now_ms: float) -> Dict[str, float]:
    return {host: expiry for host, expiry in settings.snoozed_sites.items() if expiry > now_ms}


def snooze_site(settings: Settings, hostname: str, minutes, now_ms: float) -> Patch:
    host = normalize_site(hostname)
    if not host:
        raise ValueError("Site is required")
    sites = _live_site_snoozes(settings, now_ms)
    sites[host] = int(now_ms + _minutes(minutes) * MS_PER_MINUTE)
    return {"snoozed_sites": sites}


def cancel_site_snooze(settings: Settings, hostname: str, now_ms: Optional[float] = None) -> Patch:
    host = normalize_site(hostname)
    if now_ms is None:
        sites = dict(settings.snoozed_sites)
    else:
        sites = _live_site_snoozes(settings, now_ms)
    sites.pop(host, None)
    return {"snoozed_sites": sites}


def reset_stats() -> Patch:
    return {"redirect_stats": {}}


def set_focus_mode(enabled: bool) -> Patch:
    return {"focus_mode": bool(enabled)}


def set_redirect_delay(seconds) -> Patch:
    value = float(seconds)
    if value < 0 or value > MAX_REDIRECT_DELAY:
        raise ValueError(f"Redirect delay must be between 0 and {MAX_REDIRECT_DELAY:g} seconds")
    return {"redirect_delay": value}


def _check_field(field: str) -> None:
    if field not in LIST_FIELDS:
        raise ValueError(f"Unknown list: {field}")


def normalize_for(field: str, raw: str) -> str:
    # destinations keep only the host, triggers and whitelist keep the path
    return normalize_site(raw, preserve_path=field != "destinations")


def add_site(settings: Settings, field: str, raw: str) -> Patch:
    _check_field(field)
    site = normalize_for(field, raw)
    if not site:
        raise ValueError("Site is required")
    current = list(getattr(settings, field))
    if site in current:
        return {}
    current.append(site)
    return {field: current}


def remove_site(settings: Settings, field: str, raw: str) -> Patch:
    _check_field(field)
    site = normalize_for(field, raw)
    current = list(getattr(settings, field))
    if site not in current:
        return {}
    patch: Patch = {field: [s for s in current if s != site]}
    category_field = CATEGORY_FIELDS.get(field)
    if category_field:
        categories = dict(getattr(settings, category_field))
        if categories.pop(site, None) is not None:
            patch[category_field] = categories
    return patch


def set_category(settings: Settings, field: str, raw: str, category: Optional[str]) -> Patch:
    category_field = CATEGORY_FIELDS.get(field)
    if not category_field:
        raise ValueError(f"Categories are not supported for {field}")
    if category and category not in CATEGORIES:
        raise ValueError(f"Unknown category: {category}")
    site = normalize_for(field, raw)
    if site not in getattr(settings, field):
        raise ValueError(f"{site} is not in {field}")
    categories = dict(getattr(settings, category_field))
    if category:
        categories[site] = category
    else:
        categories.pop(site, None)
    return {category_field: categories}


def add_schedule(settings: Settings, days: Iterable[int], start_time: str, end_time: str) -> Patch:
    days = sorted(set(int(d) for d in days))
    if not days or any(d < 0 or d > 6 for d in days):
        raise ValueError("Days must be between 0 (Sunday) and 6 (Saturday)")
    if parse_time(start_time) is None or parse_time(end_time) is None:
        raise ValueError("Times must use HH:MM")
    schedules = [s.to_dict() for s in settings.schedules]
    schedules.append({
        "id": uuid.uuid4().hex,
        "days": days,
        "start_time": start_time,
        "end_time": end_time,
    })
    return {"snooze_block_schedules": schedules}


def remove_schedule(settings: Settings, schedule_id: str) -> Patch:
    schedules = [s.to_dict() for s in settings.schedules if s.id != schedule_id]
    if len(schedules) == len(settings.schedules):
        return {}
    return {"snooze_block_schedules": schedules}


def format_remaining_time(ms: float) -> str:
    minutes = -(-int(ms) // MS_PER_MINUTE)
    if minutes >= 60:
        hours, mins = divmod(minutes, 60)
        return f"{hours}h {mins}m" if mins > 0 else f"{hours}h"
    return f"{minutes}m"


def status(settings: Settings, now) -> Dict[str, object]:
    """Summary of the current state used by ``--status``."""
    now_ms = now.timestamp() * 1000
    snoozed = is_snoozed(settings.snooze_until, now)
    info: Dict[str, object] = {
        "state": "snoozed" if snoozed else "active",
        "focus_mode": settings.focus_mode,
        "snooze_blocked": is_snooze_blocked(settings.schedules, now),
        "snooze_remaining": format_remaining_time(settings.snooze_until - now_ms) if snoozed else None,
        "snoozed_sites": {
            host: format_remaining_time(expiry - now_ms)
            for host, expiry in _live_site_snoozes(settings, now_ms).items()
        },
        "triggers": len(settings.trigger_sites),
        "destinations": len(settings.destinations),
        "whitelist": len(settings.whitelist),
        "schedules": [s.to_dict() for s in settings.schedules],
        "top_triggers": top_triggers(settings.redirect_stats),
    }
    return info
