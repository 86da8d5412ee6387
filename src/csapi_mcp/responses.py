"""
Response shape normalization and single-step pagination.

Servers implementing Connected Systems disagree on how a list of
resources is wrapped: GeoJSON FeatureCollections, bare arrays,
{"items": [...]} envelopes and SensorThings-style {"value": [...]}
bodies all occur in the wild. normalize() reduces every one of them
to a NormalizedPage so the rest of the system sees a single contract.

License: Apache Software License, Version 2.0
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from .links import Link, parse_links


@dataclass(frozen=True)
class NormalizedPage:
    """Uniform view of one page of resources."""
    items: list[dict] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.items)


# ───────────────────────────────────────────────────────────
# SHAPE DISCRIMINATORS
# Each returns a NormalizedPage if it recognizes the body,
# otherwise None. The order of SHAPES is the priority order.
# ───────────────────────────────────────────────────────────

def _feature_collection(body: Any) -> Optional[NormalizedPage]:
    if isinstance(body, dict) and body.get("type") == "FeatureCollection":
        features = body.get("features")
        return NormalizedPage(
            items=features if isinstance(features, list) else [],
            links=parse_links(body.get("links")),
        )
    return None


def _bare_array(body: Any) -> Optional[NormalizedPage]:
    if isinstance(body, list):
        return NormalizedPage(items=body, links=[])
    return None


def _items_envelope(body: Any) -> Optional[NormalizedPage]:
    if isinstance(body, dict) and isinstance(body.get("items"), list):
        return NormalizedPage(
            items=body["items"],
            links=parse_links(body.get("links")),
        )
    return None


def _sensorthings_value(body: Any) -> Optional[NormalizedPage]:
    if isinstance(body, dict) and isinstance(body.get("value"), list):
        return NormalizedPage(items=body["value"], links=[])
    return None


SHAPES = (
    ("feature-collection", _feature_collection),
    ("array", _bare_array),
    ("items", _items_envelope),
    ("sensorthings", _sensorthings_value),
)


def detect_shape(body: Any) -> Optional[str]:
    """Name of the first envelope convention matching body, or None."""
    for name, discriminator in SHAPES:
        if discriminator(body) is not None:
            return name
    return None


def normalize(body: Any) -> NormalizedPage:
    """
    Extract {items, links} from a parsed JSON body.

    Priority order (first match wins):
        1. GeoJSON FeatureCollection  -> features, links
        2. Bare array                 -> the array, no links
        3. {"items": [...]} envelope  -> items, links
        4. {"value": [...]}           -> value, no links
        5. Anything else              -> empty page

    Never raises. An unrecognized or empty body is reported as an
    empty page, because partially implemented resources often answer
    with a structurally valid but alternate document.
    """
    for _, discriminator in SHAPES:
        page = discriminator(body)
        if page is not None:
            return page
    return NormalizedPage()


def entity_id(entity: Any) -> Optional[str]:
    """Locate the identifier of an opaque entity record."""
    if not isinstance(entity, dict):
        return None
    if entity.get("id") is not None:
        return str(entity["id"])
    properties = entity.get("properties")
    if isinstance(properties, dict) and properties.get("id") is not None:
        return str(properties["id"])
    return None


def next_page_url(page: NormalizedPage) -> Optional[str]:
    """
    Return the href of the first rel="next" link, or None.

    This is only the single-step decision. The fetch loop belongs to
    the caller (see CSAPIClient.iter_pages).
    """
    for link in page.links:
        if link.rel == "next":
            return link.href
    return None

