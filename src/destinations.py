"""Category-aware random destination selection."""

import random
from typing import Dict, Optional, Sequence

from url_parser import format_destination_url


def candidates(destinations: Sequence[str], category: Optional[str], destination_categories: Dict[str, str]):
    if not category:
        return list(destinations)
    filtered = [d for d in destinations if destination_categories.get(d) == category]
    # an unmatched category falls back to the whole list
    return filtered or list(destinations)


def select(
    destinations: Sequence[str],
    category: Optional[str] = None,
    destination_categories: Optional[Dict[str, str]] = None,
    rng: Optional[random.Random] = None,
) -> Optional[str]:
    if not destinations:
        return None
    pool = candidates(destinations, category, destination_categories or {})
    choice = (rng or random).choice
    return choice(pool)


def select_url(destinations, category=None, destination_categories=None, rng=None) -> Optional[str]:
    destination = select(destinations, category, destination_categories, rng)
    if destination is None:
        return None
    return format_destination_url(destination)
