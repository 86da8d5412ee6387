"""
Hypermedia link model shared by every layer of the navigator.

OGC API documents (landing pages, collections, result pages) carry
their navigation in "links" arrays. This module turns those raw dicts
into immutable Link values and provides the rel-lookup helpers used
by the conformance resolver, the negotiator, and the pagination walker.

License: Apache Software License, Version 2.0
"""

from dataclasses import dataclass
from typing import Any, Iterable, Optional


@dataclass(frozen=True)
class Link:
    """A typed reference from one resource to another."""
    href: str
    rel: str
    type: Optional[str] = None
    title: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Any) -> Optional["Link"]:
        """
        Parse a single link dict.

        Returns None for anything that is not a dict with a string
        href. A missing rel is kept as "" so the link can still be
        followed by href.
        """
        if not isinstance(raw, dict):
            return None
        href = raw.get("href")
        if not isinstance(href, str) or not href:
            return None
        rel = raw.get("rel")
        media_type = raw.get("type")
        title = raw.get("title")
        return cls(
            href=href,
            rel=rel if isinstance(rel, str) else "",
            type=media_type if isinstance(media_type, str) else None,
            title=title if isinstance(title, str) else None,
        )

    def matches(self, rel: str) -> bool:
        """
        True if this link carries the given relation.

        Handles both short rel names ("systems", "next") and full OGC
        relation URIs such as
        "http://www.opengis.net/def/rel/ogc/1.0/systems".
        """
        return self.rel == rel or self.rel.endswith(f"/{rel}")


def parse_links(raw: Any) -> list[Link]:
    """Parse a raw links array, silently dropping malformed entries."""
    if not isinstance(raw, list):
        return []
    links = []
    for entry in raw:
        link = Link.from_dict(entry)
        if link is not None:
            links.append(link)
    return links


def find_links(links: Iterable[Link], rel: str) -> list[Link]:
    """Return every link with the given relation, in document order."""
    return [link for link in links if link.matches(rel)]


def find_link(links: Iterable[Link], rel: str) -> Optional[Link]:
    """Return the first link with the given relation, or None."""
    for link in links:
        if link.matches(rel):
            return link
    return None


def has_rel(links: Iterable[Link], rel: str) -> bool:
    return find_link(links, rel) is not None
