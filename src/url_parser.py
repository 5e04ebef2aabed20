"""URL and site-pattern parsing."""

import re
from typing import Optional
from urllib.parse import urlsplit

_SCHEME_RE = re.compile(r"^https?://")


class ParsedUrl:
    __slots__ = ("hostname", "path")

    def __init__(self, hostname: str, path: str):
        self.hostname = hostname
        self.path = path

    def __repr__(self) -> str:
        return f"ParsedUrl({self.hostname!r}, {self.path!r})"


class SitePattern:
    __slots__ = ("raw", "hostname", "path")

    def __init__(self, raw: str, hostname: str, path: Optional[str]):
        self.raw = raw
        self.hostname = hostname
        self.path = path

    def __repr__(self) -> str:
        return f"SitePattern({self.hostname!r}, {self.path!r})"


def strip_www(hostname: str) -> str:
    if hostname.startswith("www."):
        return hostname[4:]
    return hostname


def parse_url(url: str) -> Optional[ParsedUrl]:
    """Split a full URL into hostname and path.

    Returns None for anything that is not an absolute URL with a host, so
    callers can treat it as "matches nothing".
    """
    if not isinstance(url, str):
        return None
    try:
        parts = urlsplit(url.strip())
        hostname = parts.hostname
    except ValueError:
        return None
    if not parts.scheme or not hostname:
        return None
    return ParsedUrl(strip_www(hostname), parts.path or "/")


def parse_pattern(raw: str) -> SitePattern:
    # only the first "/" splits host from path
    normalized = strip_www(raw)
    host, sep, rest = normalized.partition("/")
    if not sep:
        return SitePattern(raw, normalized, None)
    return SitePattern(raw, host, "/" + rest)


def normalize_site(value: str, preserve_path: bool = False) -> str:
    site = value.strip().lower()
    site = _SCHEME_RE.sub("", site)
    site = strip_www(site)
    if preserve_path:
        if site.endswith("/"):
            site = site[:-1]
    else:
        site = site.split("/", 1)[0]
    return site


def format_destination_url(destination: str) -> str:
    if destination.startswith("http://") or destination.startswith("https://"):
        return destination
    return "https://" + destination
