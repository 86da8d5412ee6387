"""
CSAPIEndpoint — discovery entry point for one server.

Architecture:
    endpoint.py      ← YOU ARE HERE (orchestration)
        ↓
    conformance.py   ← what the server claims to implement
    negotiation.py   ← which collections expose Connected Systems
    navigator.py     ← URL factory per negotiated collection
        ↓
    client.py        ← the only layer that performs HTTP

The landing page is fetched lazily on first use. Landing page,
conformance and the collections list are each loaded once and then
reused; navigators are cheap and created on demand.

License: Apache Software License, Version 2.0
"""

import logging
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import quote, urljoin

from .client import (
    CSAPICapabilityNotFound,
    CSAPIClient,
    CSAPICollectionNotFound,
    CSAPINotSupported,
    CSAPITransportError,
)
from .conformance import ConformanceSet, resolve_conformance
from .links import Link, find_link, parse_links
from .navigator import DEFAULT_CRS, CSAPINavigator
from .negotiation import NavigatorCapabilities, NegotiationResult, negotiate

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════
# DATA CLASSES
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ServerInfo:
    """Summary information about a Connected Systems server."""
    title: str
    description: str
    api_url: str
    conformance: ConformanceSet = field(default_factory=ConformanceSet)


@dataclass(frozen=True)
class CollectionDescriptor:
    """A collection as advertised by the server's collections listing."""
    id: str
    title: str
    description: str = ""
    links: tuple = ()
    crs: tuple = DEFAULT_CRS
    item_type: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: dict) -> Optional["CollectionDescriptor"]:
        """Build from a collections-document entry; None if it has no id."""
        if not isinstance(raw, dict):
            return None
        collection_id = raw.get("id")
        if collection_id is None or collection_id == "":
            return None
        collection_id = str(collection_id)
        crs = raw.get("crs")
        return cls(
            id=collection_id,
            title=raw.get("title") or collection_id,
            description=raw.get("description") or "",
            links=tuple(parse_links(raw.get("links"))),
            crs=tuple(c for c in crs if isinstance(c, str)) if isinstance(crs, list) else DEFAULT_CRS,
            item_type=raw.get("itemType"),
        )


# ═══════════════════════════════════════════════════════════════
# MAIN ENDPOINT CLASS
# ═══════════════════════════════════════════════════════════════

class CSAPIEndpoint:
    """
    Discovers conformance and collections on one server and hands out
    navigators for the collections that speak Connected Systems.

    Usage:
        async with CSAPIEndpoint("http://host/sensorhub/api") as endpoint:
            info = await endpoint.info()
            nav = await endpoint.find_navigator()
            page = await endpoint.client.get_page(nav.systems_url(limit=10))
    """

    def __init__(self, api_url: str, client: Optional[CSAPIClient] = None):
        """
        Args:
            api_url: Landing page URL of the API.
                     Trailing slash is handled automatically.
            client:  Transport to use. If omitted the endpoint creates
                     (and later closes) its own CSAPIClient.
        """
        self.api_url = api_url.rstrip("/")
        self._owns_client = client is None
        self.client = client or CSAPIClient()
        self._landing: Optional[dict] = None
        self._conformance: Optional[ConformanceSet] = None
        self._collections: Optional[list[CollectionDescriptor]] = None

    async def close(self):
        if self._owns_client:
            await self.client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _resolve(self, href: str) -> str:
        return urljoin(self.api_url + "/", href)

    def _collection_url(self, collection_id: str) -> str:
        return f"{self.api_url}/collections/{quote(collection_id, safe='')}"

    # ───────────────────────────────────────────────────────────
    # LANDING PAGE & CONFORMANCE
    # ───────────────────────────────────────────────────────────

    async def landing_page(self) -> dict:
        """
        Fetch the landing page once and cache it.

        Transport failures propagate. A body that is not a JSON
        object is treated as an empty landing page.
        """
        if self._landing is None:
            response = await self.client.fetch_json(self.api_url)
            body = response.body if response.available else None
            if not isinstance(body, dict):
                logger.warning(f"Landing page at {self.api_url} is not a JSON object")
                body = {}
            self._landing = body
        return self._landing

    async def links(self) -> list[Link]:
        return parse_links((await self.landing_page()).get("links"))

    async def conformance(self) -> ConformanceSet:
        if self._conformance is None:
            self._conformance = await resolve_conformance(
                await self.links(), self.client, self.api_url
            )
        return self._conformance

    async def info(self) -> ServerInfo:
        landing = await self.landing_page()
        return ServerInfo(
            title=landing.get("title") or "Connected Systems API Service",
            description=landing.get("description") or "",
            api_url=self.api_url,
            conformance=await self.conformance(),
        )

    # ───────────────────────────────────────────────────────────
    # COLLECTIONS
    # ───────────────────────────────────────────────────────────

    async def collections(self) -> list[CollectionDescriptor]:
        """
        List the server's collections, cached after the first call.

        Follows the landing page's "collections" link ("data" as a
        fallback), otherwise {api_url}/collections.
        """
        if self._collections is not None:
            return self._collections

        links = await self.links()
        link = find_link(links, "collections") or find_link(links, "data")
        url = f"{self.api_url}/collections"
        if link:
            try:
                url = self._resolve(link.href)
            except ValueError as e:
                logger.warning(f"Malformed collections link {link.href!r}: {e}")

        response = await self.client.fetch_json(url)
        body = response.body if response.available else None
        raw = body.get("collections") if isinstance(body, dict) else None
        if not isinstance(raw, list):
            logger.warning(f"No collections array at {url}")
            raw = []

        result = []
        for entry in raw:
            descriptor = CollectionDescriptor.from_dict(entry)
            if descriptor is not None:
                result.append(descriptor)
        self._collections = result
        return result

    async def collection(self, collection_id: str) -> CollectionDescriptor:
        """
        Raises:
            CSAPICollectionNotFound: If collection_id is not listed.
        """
        for descriptor in await self.collections():
            if descriptor.id == collection_id:
                return descriptor
        raise CSAPICollectionNotFound(
            f"Collection '{collection_id}' does not exist on this server. "
            f"Call collections() to see available collection IDs."
        )

    async def _with_links(self, descriptor: CollectionDescriptor) -> CollectionDescriptor:
        """
        Fetch the collection document when the listing omitted its links.

        HTTP errors on that fetch keep the listed descriptor.
        Connection failures and timeouts still propagate.
        """
        if descriptor.links:
            return descriptor
        url = self._collection_url(descriptor.id)
        try:
            response = await self.client.fetch_json(url)
        except CSAPITransportError as e:
            logger.warning(f"Collection document {url} unavailable, using listing: {e}")
            return descriptor
        if not response.available or not isinstance(response.body, dict):
            return descriptor
        detailed = CollectionDescriptor.from_dict(
            {**response.body, "id": descriptor.id}
        )
        return detailed or descriptor

    # ───────────────────────────────────────────────────────────
    # NEGOTIATION & NAVIGATORS
    # ───────────────────────────────────────────────────────────

    async def negotiate(self, collection_id: str) -> tuple[CollectionDescriptor, NegotiationResult]:
        descriptor = await self._with_links(await self.collection(collection_id))
        return descriptor, negotiate(descriptor, await self.conformance())

    async def navigator_for(self, collection_id: str) -> CSAPINavigator:
        """
        Build a navigator for one collection.

        Raises:
            CSAPICollectionNotFound: collection_id is not listed.
            CSAPINotSupported:       The collection failed negotiation.
        """
        descriptor, result = await self.negotiate(collection_id)
        if not isinstance(result, NavigatorCapabilities):
            raise CSAPINotSupported(
                f"Collection '{collection_id}' does not expose Connected "
                f"Systems resources: {result.reason}",
                reason=result.reason,
            )
        logger.info(
            f"Collection '{collection_id}' negotiated via {result.tier}: "
            f"{sorted(kind.value for kind in result.available_resources)}"
        )
        return CSAPINavigator.from_capabilities(self.api_url, descriptor, result)

    async def find_navigator(self) -> CSAPINavigator:
        """
        Probe collections one at a time and return the first navigator.

        Raises:
            CSAPICapabilityNotFound: No collection negotiated successfully.
        """
        collections = await self.collections()
        for descriptor in collections:
            try:
                return await self.navigator_for(descriptor.id)
            except CSAPINotSupported as e:
                logger.debug(f"Skipping collection '{descriptor.id}': {e.reason}")
        raise CSAPICapabilityNotFound(
            f"None of the {len(collections)} collections at {self.api_url} "
            f"expose Connected Systems resources."
        )

