"""Ordered site-pattern matching for triggers and whitelist entries."""

from typing import Iterable, List, Optional

from url_parser import ParsedUrl, SitePattern, parse_pattern, parse_url


def host_matches(hostname: str, pattern_host: str) -> bool:
    if not pattern_host:
        return False
    return hostname == pattern_host or hostname.endswith("." + pattern_host)


def pattern_matches(parsed: ParsedUrl, pattern: SitePattern) -> bool:
    if not host_matches(parsed.hostname, pattern.hostname):
        return False
    if not pattern.path:
        return True
    # plain prefix: "/inbox" also matches "/inbox2"
    return parsed.path.startswith(pattern.path)


class RuleEngine:
    """First-match-wins scan over an ordered list of site patterns."""

    def __init__(self, patterns: Iterable[str]):
        self.patterns: List[SitePattern] = [
            parse_pattern(p) for p in (patterns or []) if isinstance(p, str)
        ]

    def match_parsed(self, parsed: Optional[ParsedUrl]) -> Optional[SitePattern]:
        if parsed is None:
            return None
        for pattern in self.patterns:
            if pattern_matches(parsed, pattern):
                return pattern
        return None

    def match(self, url: str) -> Optional[SitePattern]:
        return self.match_parsed(parse_url(url))


def match(url: str, patterns: Iterable[str]) -> Optional[str]:
    found = RuleEngine(patterns).match(url)
    return found.raw if found else None
