"""Redirect statistics tracking."""

import asyncio
from typing import Dict, List, Tuple

from constants import (
    OUTCOME_LOOP_GUARD,
    OUTCOME_NO_MATCH,
    OUTCOME_REDIRECT,
    OUTCOME_SITE_SNOOZED,
    OUTCOME_SNOOZED,
    OUTCOME_WHITELISTED,
)
from interfaces import ISettingsStore, IStatistics


def increment_count(redirect_stats: Dict[str, int], hostname: str) -> Dict[str, int]:
    """Return a copy of the counter map with one more redirect for hostname."""
    updated = dict(redirect_stats or {})
    current = updated.get(hostname, 0)
    if isinstance(current, bool) or not isinstance(current, (int, float)) or current < 0:
        current = 0
    current = int(current)
    updated[hostname] = current + 1
    return updated


def top_triggers(redirect_stats: Dict[str, int], limit: int = 5) -> List[Tuple[str, int]]:
    items = [(k, v) for k, v in (redirect_stats or {}).items() if isinstance(v, int)]
    items.sort(key=lambda kv: (-kv[1], kv[0]))
    return items[:limit]


class Statistics(IStatistics):
    """Runtime counters plus the persisted per-trigger redirect counter."""

    def __init__(self, store: ISettingsStore):
        self.store = store
        self.total_navigations = 0
        self.errors = 0
        self.outcomes: Dict[str, int] = {}
        self._persist_lock = asyncio.Lock()

    def increment_navigations(self) -> None:
        self.total_navigations += 1

    def increment_outcome(self, outcome: str) -> None:
        self.outcomes[outcome] = self.outcomes.get(outcome, 0) + 1

    def increment_errors(self) -> None:
        self.errors += 1

    async def record_redirect(self, hostname: str) -> None:
        # re-read under the lock so concurrent redirects never lose a count
        async with self._persist_lock:
            current = await self.store.read_all()
            counts = current.get("redirect_stats") if isinstance(current, dict) else None
            if not isinstance(counts, dict):
                counts = {}
            await self.store.write({"redirect_stats": increment_count(counts, hostname)})

    def get_stats_display(self) -> str:
        col_width = 26
        o = self.outcomes
        line = (
            f"\033[97mEvents: \033[93m{self.total_navigations}\033[0m".ljust(col_width)
            + "\033[97m| "
            + f"\033[97mRedirects: \033[92m{o.get(OUTCOME_REDIRECT, 0)}\033[0m".ljust(col_width)
            + "\033[97m| "
            + f"\033[97mSnoozed: \033[96m{o.get(OUTCOME_SNOOZED, 0) + o.get(OUTCOME_SITE_SNOOZED, 0)}\033[0m".ljust(col_width)
            + "\033[97m| "
            + f"\033[97mWhitelisted: \033[96m{o.get(OUTCOME_WHITELISTED, 0)}\033[0m".ljust(col_width)
            + "\033[97m| "
            + f"\033[97mErrors: \033[91m{self.errors}\033[0m"
        )
        return f"\033[92m   {'Stats'.ljust(8)}:\033[0m {line}\033[0m"

    def snapshot(self) -> Dict[str, object]:
        redirects = self.outcomes.get(OUTCOME_REDIRECT, 0)
        total = self.total_navigations
        rate = (redirects / total) * 100 if total > 0 else 0.0
        return {
            "total_navigations": total,
            "redirects": redirects,
            "snoozed": self.outcomes.get(OUTCOME_SNOOZED, 0),
            "site_snoozed": self.outcomes.get(OUTCOME_SITE_SNOOZED, 0),
            "whitelisted": self.outcomes.get(OUTCOME_WHITELISTED, 0),
            "unmatched": self.outcomes.get(OUTCOME_NO_MATCH, 0),
            "loop_guarded": self.outcomes.get(OUTCOME_LOOP_GUARD, 0),
            "errors": self.errors,
            "redirect_rate": rate,
        }
