"""
CSAPINavigator — URL factory for one Connected Systems collection.

The navigator never talks to the network. It holds the capability
state discovered during negotiation (resources, formats, CRS) and
turns typed options into correctly encoded request URLs:

    nav = await endpoint.navigator_for("sensors")
    nav.systems_url(limit=5, q="phone")
    # -> https://host/api/collections/sensors/systems?limit=5&q=phone

Builders are pure formatters, not validators: they accept whatever
values the caller passes and never consult available_resources.

License: Apache Software License, Version 2.0
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Union
from urllib.parse import quote, urlencode

from .formats import FormatTag, classify
from .negotiation import NavigatorCapabilities, ResourceKind

DEFAULT_CRS = ("http://www.opengis.net/def/crs/OGC/1.3/CRS84",)

# Kept literal in query values so bbox and datetime intervals stay readable.
QUERY_SAFE_CHARS = ",:/"

BBox = Union[Sequence[float], str]


def _quote_segment(value: Any) -> str:
    return quote(str(value), safe="")


def _format_bbox(bbox: BBox) -> str:
    if isinstance(bbox, str):
        return bbox
    return ",".join(str(value) for value in bbox)


@dataclass(frozen=True)
class CSAPINavigator:
    """
    Stateful URL builder scoped to one capability-negotiated collection.

    All capability fields are frozen at construction; discoverability
    is a one-time decision, not re-checked per call.
    """
    base_url: str
    available_resources: frozenset = field(default_factory=frozenset)
    supported_formats: frozenset = field(default_factory=frozenset)
    supported_crs: tuple = DEFAULT_CRS

    @classmethod
    def from_capabilities(
        cls,
        api_url: str,
        collection,
        capabilities: NavigatorCapabilities,
    ) -> "CSAPINavigator":
        """
        Build a navigator for a collection that negotiated successfully.

        Args:
            api_url:      Root URL of the API (landing page).
            collection:   The CollectionDescriptor that was negotiated.
            capabilities: Result of negotiation.negotiate().
        """
        formats = {classify(link.type) for link in collection.links if link.type}
        formats.discard(FormatTag.UNKNOWN)
        return cls(
            base_url=(
                f"{api_url.rstrip('/')}/collections/{_quote_segment(collection.id)}"
            ),
            available_resources=frozenset(capabilities.available_resources),
            supported_formats=frozenset(formats),
            supported_crs=tuple(collection.crs) or DEFAULT_CRS,
        )

    # ───────────────────────────────────────────────────────────
    # INTERNAL HELPERS
    # ───────────────────────────────────────────────────────────

    def _build(self, path: str, params: Sequence[tuple[str, Any]] = ()) -> str:
        """Join base_url with path and append non-empty params in order."""
        kept = [
            (key, value) for key, value in params
            if value is not None and value != ""
        ]
        url = f"{self.base_url.rstrip('/')}{path}"
        if not kept:
            return url
        query = urlencode(
            [(key, str(value)) for key, value in kept],
            safe=QUERY_SAFE_CHARS,
            quote_via=quote,
        )
        return f"{url}?{query}"

    def supports(self, kind: Union[ResourceKind, str]) -> bool:
        """Advisory check against the discovered resource set."""
        return ResourceKind(kind) in self.available_resources

    # ───────────────────────────────────────────────────────────
    # SYSTEMS
    # ───────────────────────────────────────────────────────────

    def systems_url(
        self,
        *,
        limit: Optional[int] = None,
        bbox: Optional[BBox] = None,
        q: Optional[str] = None,
        parent: Optional[str] = None,
    ) -> str:
        """
        URL listing systems.

        Args:
            limit:  Maximum number of systems per page.
            bbox:   Four numbers, joined with commas in the order given.
                    Not reordered or validated.
            q:      Free-text keyword search.
            parent: Restrict to subsystems of this parent system id.
        """
        return self._build("/systems", [
            ("limit", limit),
            ("bbox", _format_bbox(bbox) if bbox is not None else None),
            ("q", q),
            ("parent", parent),
        ])

    def system_url(self, system_id: str) -> str:
        return self._build(f"/systems/{_quote_segment(system_id)}")

    def system_datastreams_url(
        self,
        system_id: str,
        *,
        limit: Optional[int] = None,
    ) -> str:
        return self._build(
            f"/systems/{_quote_segment(system_id)}/datastreams",
            [("limit", limit)],
        )

    # ───────────────────────────────────────────────────────────
    # DATASTREAMS
    # ───────────────────────────────────────────────────────────

    def datastreams_url(
        self,
        *,
        limit: Optional[int] = None,
        observed_property: Optional[str] = None,
    ) -> str:
        return self._build("/datastreams", [
            ("limit", limit),
            ("observedProperty", observed_property),
        ])

    def datastream_url(self, datastream_id: str) -> str:
        return self._build(f"/datastreams/{_quote_segment(datastream_id)}")

    def datastream_observations_url(
        self,
        datastream_id: str,
        *,
        limit: Optional[int] = None,
        datetime: Optional[str] = None,
    ) -> str:
        """
        URL listing the observations of one datastream.

        datetime is an ISO 8601 instant or interval, e.g.
        "2024-01-01T00:00:00Z/..".
        """
        return self._build(
            f"/datastreams/{_quote_segment(datastream_id)}/observations",
            [("limit", limit), ("datetime", datetime)],
        )

    # ───────────────────────────────────────────────────────────
    # OBSERVATIONS
    # ───────────────────────────────────────────────────────────

    def observations_url(
        self,
        *,
        limit: Optional[int] = None,
        datetime: Optional[str] = None,
    ) -> str:
        return self._build("/observations", [
            ("limit", limit),
            ("datetime", datetime),
        ])

    # ───────────────────────────────────────────────────────────
    # DISPATCH
    # ───────────────────────────────────────────────────────────

    def url_for(
        self,
        kind: Union[ResourceKind, str],
        resource_id: Optional[str] = None,
        **options: Any,
    ) -> str:
        """
        Build a URL by ResourceKind.

        For the top-level kinds, resource_id selects a single system or
        datastream (systems/datastreams only). The sub-resource kinds
        require resource_id as the parent id.

        Raises:
            ValueError: Unknown kind, missing parent id, or an id passed
                        for observations.
            TypeError:  An option not recognized by the target builder,
                        or options passed with a single-resource id.
        """
        kind = ResourceKind(kind)

        if kind in (ResourceKind.SYSTEMS, ResourceKind.DATASTREAMS) and resource_id:
            if options:
                raise TypeError(
                    f"Single {kind.value} lookups take no options, got {sorted(options)}"
                )
            if kind is ResourceKind.SYSTEMS:
                return self.system_url(resource_id)
            return self.datastream_url(resource_id)

        if kind is ResourceKind.SYSTEMS:
            return self.systems_url(**options)

        if kind is ResourceKind.DATASTREAMS:
            return self.datastreams_url(**options)

        if kind is ResourceKind.OBSERVATIONS:
            if resource_id:
                raise ValueError("Resource 'observations' does not take a resource id")
            return self.observations_url(**options)

        if not resource_id:
            raise ValueError(f"Resource '{kind.value}' requires a parent id")

        if kind is ResourceKind.SYSTEM_DATASTREAMS:
            return self.system_datastreams_url(resource_id, **options)
        return self.datastream_observations_url(resource_id, **options)
