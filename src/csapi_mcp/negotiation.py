"""
Capability negotiation — does a collection expose the Connected Systems
resource model?

Real servers advertise this in different ways: some declare systems /
datastreams / observations links on the collection itself, others only
state Connected Systems conformance at the service level. The decision
is a two-tier table, tried in order:

    tier               signal                                   resources
    ─────────────────  ───────────────────────────────────────  ─────────────────────
    declared-links     collection links with a CS rel           exactly the rels seen
    conformance-       CS conformance class AND id/href that    systems, datastreams,
      keywords         suggests sensors or systems              observations

A collection with no signal from either tier is never supported.

License: Apache Software License, Version 2.0
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Union

from .conformance import CONNECTED_SYSTEMS_KEYWORDS, ConformanceSet, matches_any
from .links import has_rel

if TYPE_CHECKING:
    from .endpoint import CollectionDescriptor

logger = logging.getLogger(__name__)


class ResourceKind(str, Enum):
    SYSTEMS = "systems"
    DATASTREAMS = "datastreams"
    OBSERVATIONS = "observations"
    SYSTEM_DATASTREAMS = "systemDatastreams"
    DATASTREAM_OBSERVATIONS = "datastreamObservations"


TOP_LEVEL_RESOURCES = (
    ResourceKind.SYSTEMS,
    ResourceKind.DATASTREAMS,
    ResourceKind.OBSERVATIONS,
)

DEFAULT_RESOURCES = frozenset(TOP_LEVEL_RESOURCES)

# Keyword fallback heuristics, matched case-insensitively.
ID_KEYWORDS = ("sensor", "system")
HREF_KEYWORDS = ("/systems", "/datastreams", "/observations")

TIER_DECLARED_LINKS = "declared-links"
TIER_CONFORMANCE_KEYWORDS = "conformance-keywords"


@dataclass(frozen=True)
class NavigatorCapabilities:
    """Successful negotiation outcome for one collection."""
    collection_id: str
    available_resources: frozenset
    tier: str


@dataclass(frozen=True)
class NotSupported:
    """Negotiation found no Connected Systems signal for this collection."""
    collection_id: str
    reason: str

    def __bool__(self) -> bool:
        return False


NegotiationResult = Union[NavigatorCapabilities, NotSupported]


def declared_resources(collection: "CollectionDescriptor") -> frozenset:
    """Tier 1: resource kinds declared by the collection's own links."""
    return frozenset(
        kind for kind in TOP_LEVEL_RESOURCES
        if has_rel(collection.links, kind.value)
    )


def suggests_connected_systems(collection: "CollectionDescriptor") -> bool:
    """
    Tier 2 textual heuristic on the collection id and link targets.

    Fuzzy by nature: a collection named "system-logs" on a server with
    Connected Systems conformance will be misclassified. It is only
    consulted when the server-level conformance corroborates it.
    """
    collection_id = (collection.id or "").lower()
    if any(keyword in collection_id for keyword in ID_KEYWORDS):
        return True
    return any(
        keyword in link.href.lower()
        for link in collection.links
        for keyword in HREF_KEYWORDS
    )


def negotiate(
    collection: "CollectionDescriptor",
    conformance: ConformanceSet,
) -> NegotiationResult:
    """
    Decide whether a collection supports the Connected Systems model.

    Returns:
        NavigatorCapabilities on success, NotSupported otherwise.
        NotSupported is falsy, so `if result:` reads naturally.
    """
    declared = declared_resources(collection)
    if declared:
        logger.debug(
            f"Collection '{collection.id}' declares {sorted(k.value for k in declared)}"
        )
        return NavigatorCapabilities(
            collection_id=collection.id,
            available_resources=declared,
            tier=TIER_DECLARED_LINKS,
        )

    if not matches_any(conformance, CONNECTED_SYSTEMS_KEYWORDS):
        return NotSupported(
            collection_id=collection.id,
            reason=(
                "no systems/datastreams/observations links and the server "
                "declares no Connected Systems conformance class"
            ),
        )

    if suggests_connected_systems(collection):
        logger.debug(
            f"Collection '{collection.id}' accepted on conformance keywords"
        )
        return NavigatorCapabilities(
            collection_id=collection.id,
            available_resources=DEFAULT_RESOURCES,
            tier=TIER_CONFORMANCE_KEYWORDS,
        )

    return NotSupported(
        collection_id=collection.id,
        reason=(
            "server declares Connected Systems conformance but nothing in the "
            "collection id or links suggests sensors or systems"
        ),
    )
