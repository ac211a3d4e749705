"""Permalink parsing utilities."""

from __future__ import annotations

from typing import NamedTuple
from urllib.parse import parse_qs, urlparse

from redcoder.exceptions import PermalinkParseError

# Maximum URL length to prevent potential abuse (standard browser limit)
MAX_URL_LENGTH = 2048


class Permalink(NamedTuple):
    """Group and torrent id extracted from a torrent permalink."""

    group_id: int
    torrent_id: int


def _query_int(query: dict[str, list[str]], key: str) -> int | None:
    values = query.get(key)
    if not values:
        return None
    try:
        return int(values[0])
    except ValueError:
        return None


def parse_permalink(url: str) -> Permalink:
    """Extract group and torrent id from a permalink.

    Expects ``.../torrents.php?id=<group>&torrentid=<torrent>`` (a trailing
    ``#torrent<id>`` fragment is ignored).

    Raises:
        PermalinkParseError: If either id is missing or not numeric.

    Example:
        >>> parse_permalink("https://redacted.sh/torrents.php?id=12&torrentid=34")
        Permalink(group_id=12, torrent_id=34)
    """
    if not url or len(url) > MAX_URL_LENGTH:
        raise PermalinkParseError(f"Invalid permalink: {url[:80]!r}")

    query = parse_qs(urlparse(url.strip()).query)
    group_id = _query_int(query, "id")
    torrent_id = _query_int(query, "torrentid")

    if group_id is None or torrent_id is None:
        raise PermalinkParseError(
            f"Could not parse permalink {url}, please use a permalink "
            "including group id and torrent id"
        )
    return Permalink(group_id, torrent_id)


def build_permalink(tracker_url: str, group_id: int, torrent_id: int) -> str:
    """Permalink pointing at a torrent inside its group."""
    base = tracker_url.rstrip("/")
    return f"{base}/torrents.php?id={group_id}&torrentid={torrent_id}"
