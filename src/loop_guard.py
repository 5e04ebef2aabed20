"""Per-tab guard that skips the navigation caused by our own redirect."""

from typing import Set


class RedirectLoopGuard:
    def __init__(self):
        self._armed: Set[int] = set()

    def arm(self, tab_id: int) -> None:
        self._armed.add(tab_id)

    def disarm(self, tab_id: int) -> None:
        self._armed.discard(tab_id)

    def consume(self, tab_id: int) -> bool:
        """Disarm the tab and report whether it was armed."""
        if tab_id in self._armed:
            self._armed.discard(tab_id)
            return True
        return False

    def is_armed(self, tab_id: int) -> bool:
        return tab_id in self._armed

    def __len__(self) -> int:
        return len(self._armed)
