"""
Conformance resolution — which standardized capabilities a server claims.

Conformance is advisory: many servers omit the conformance link or
serve a partial document. Every failure in this module therefore
degrades to an empty ConformanceSet instead of propagating, so that
discovery can continue on the strength of collection links alone.

License: Apache Software License, Version 2.0
"""

import logging
from typing import Any, Iterable
from urllib.parse import urljoin

from .client import CSAPIClient, CSAPIClientError
from .links import Link, find_link

logger = logging.getLogger(__name__)

# Substrings identifying a Connected Systems (or SensorThings) capability
# in a conformance class URI, e.g.
# "http://www.opengis.net/spec/ogcapi-connected-systems-1/1.0/conf/core"
CONNECTED_SYSTEMS_KEYWORDS = ("connected-systems", "sensorthings")


def _normalize_uri(uri: str) -> str:
    return uri.strip().rstrip("/").lower()


class ConformanceSet:
    """
    Immutable set of conformance class URIs.

    Membership is case- and trailing-slash-insensitive:

        >>> conf = ConformanceSet(["http://example.org/conf/Core/"])
        >>> "http://example.org/conf/core" in conf
        True
    """

    __slots__ = ("_uris", "_normalized")

    def __init__(self, uris: Iterable[str] = ()):
        kept = {}
        for uri in uris:
            if isinstance(uri, str) and uri.strip():
                kept.setdefault(_normalize_uri(uri), uri)
        self._uris = tuple(kept.values())
        self._normalized = frozenset(kept)

    def __contains__(self, uri: object) -> bool:
        if not isinstance(uri, str):
            return False
        return _normalize_uri(uri) in self._normalized

    def __iter__(self):
        return iter(self._uris)

    def __len__(self) -> int:
        return len(self._normalized)

    def __bool__(self) -> bool:
        return bool(self._normalized)

    def __repr__(self) -> str:
        return f"ConformanceSet({list(self._uris)!r})"

    @property
    def uris(self) -> tuple[str, ...]:
        """The URIs as the server spelled them."""
        return self._uris


EMPTY_CONFORMANCE = ConformanceSet()


def parse_conformance(body: Any) -> ConformanceSet:
    """Reduce a conformance document to a ConformanceSet."""
    if not isinstance(body, dict):
        return EMPTY_CONFORMANCE
    conforms_to = body.get("conformsTo")
    if not isinstance(conforms_to, list):
        return EMPTY_CONFORMANCE
    return ConformanceSet(conforms_to)


def matches_any(conformance: Iterable[str], keywords: Iterable[str]) -> bool:
    """
    True if any conformance URI contains any keyword (case-insensitive).

    Lets callers ask "does this server speak Connected Systems?"
    without hardcoding URI shapes:

        matches_any(conf, CONNECTED_SYSTEMS_KEYWORDS)
    """
    lowered = [keyword.lower() for keyword in keywords]
    return any(
        keyword in uri.lower()
        for uri in conformance
        for keyword in lowered
    )


def connected_systems_classes(conformance: ConformanceSet) -> list[str]:
    """Return the Connected Systems / SensorThings URIs, as spelled by the server."""
    return [
        uri for uri in conformance.uris
        if matches_any([uri], CONNECTED_SYSTEMS_KEYWORDS)
    ]


async def resolve_conformance(
    landing_links: list[Link],
    client: CSAPIClient,
    base_url: str,
) -> ConformanceSet:
    """
    Follow the landing page's rel="conformance" link and parse it.

    Args:
        landing_links: Links parsed from the landing page.
        client:        Transport used for the fetch.
        base_url:      API root, used to resolve relative hrefs.

    Returns:
        The server's ConformanceSet. Empty when the link is absent,
        the fetch fails, or the document is malformed.
    """
    link = find_link(landing_links, "conformance")
    if link is None:
        logger.debug(f"No conformance link on landing page of {base_url}")
        return EMPTY_CONFORMANCE

    try:
        url = urljoin(base_url.rstrip("/") + "/", link.href)
    except ValueError as e:
        logger.warning(f"Malformed conformance link {link.href!r}: {e}")
        return EMPTY_CONFORMANCE

    try:
        response = await client.fetch_json(url)
    except CSAPIClientError as e:
        logger.warning(f"Conformance unavailable at {url}: {e}")
        return EMPTY_CONFORMANCE

    if not response.available:
        logger.warning(f"Conformance endpoint {url} answered HTTP {response.status}")
        return EMPTY_CONFORMANCE

    return parse_conformance(response.body)
