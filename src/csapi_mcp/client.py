"""
CSAPI Client — async HTTP transport for Connected Systems servers.

This module has ZERO MCP dependencies. It is the only place in the
package that performs network I/O; everything else (conformance,
negotiation, navigation, normalization) is defined in terms of
"given a response, produce X" and works against FetchResponse.

Fetch configuration (auth headers and the like) is an explicit
FetchOptions object held by the client, with a set/reset lifecycle
and a scoped context manager. The client merges the headers into
every request but never inspects or mutates credentials.

License: Apache Software License, Version 2.0
"""

import base64
import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Mapping, Optional
from urllib.parse import urljoin

import httpx

from .formats import FormatTag, classify
from .responses import NormalizedPage, next_page_url, normalize

logger = logging.getLogger(__name__)

USER_AGENT = "csapi-mcp-server/0.1.0"

# Statuses meaning "this sub-resource is not available here".
# They are reported, not raised.
ADVISORY_STATUSES = frozenset({404, 501})


# ═══════════════════════════════════════════════════════════════
# CUSTOM EXCEPTIONS
# Transport failures are always surfaced; the discovery layer adds
# its own "not found" / "not supported" outcomes on top.
# ═══════════════════════════════════════════════════════════════

class CSAPIClientError(Exception):
    """Base exception for all CSAPI client errors."""
    pass


class CSAPIServerNotFound(CSAPIClientError):
    """Server is unreachable — wrong URL or network issue."""
    pass


class CSAPITimeoutError(CSAPIClientError):
    """Request timed out."""
    pass


class CSAPITransportError(CSAPIClientError):
    """Non-2xx response (other than 404/501) or other HTTP failure."""

    def __init__(self, message: str, status: Optional[int] = None,
                 url: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.url = url


class CSAPICollectionNotFound(CSAPIClientError):
    """Requested collection is not listed by the server."""
    pass


class CSAPINotSupported(CSAPIClientError):
    """A collection failed Connected Systems capability negotiation."""

    def __init__(self, message: str, reason: str = ""):
        super().__init__(message)
        self.reason = reason


class CSAPICapabilityNotFound(CSAPIClientError):
    """No collection on the server negotiated successfully."""
    pass


# ═══════════════════════════════════════════════════════════════
# DATA CLASSES
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FetchOptions:
    """Headers applied to every outgoing request."""
    headers: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def with_basic_auth(cls, username: str, password: str,
                        headers: Optional[Mapping[str, str]] = None) -> "FetchOptions":
        token = base64.b64encode(f"{username}:{password}".encode()).decode()
        merged = dict(headers or {})
        merged["Authorization"] = f"Basic {token}"
        return cls(headers=merged)

    def merged(self, extra: Optional[Mapping[str, str]] = None) -> dict[str, str]:
        """Options headers with per-request headers layered on top."""
        result = dict(self.headers)
        if extra:
            result.update(extra)
        return result


DEFAULT_OPTIONS = FetchOptions()


@dataclass(frozen=True)
class FetchResponse:
    """Outcome of a single GET: status, headers, and parsed JSON body."""
    url: str
    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None

    @property
    def available(self) -> bool:
        """False for the advisory 404 / 501 answers."""
        return self.status not in ADVISORY_STATUSES

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("content-type")

    @property
    def format(self) -> FormatTag:
        return classify(self.content_type)


# ═══════════════════════════════════════════════════════════════
# MAIN CLIENT CLASS
# ═══════════════════════════════════════════════════════════════

class CSAPIClient:
    """
    Async HTTP transport used by CSAPIEndpoint and the MCP server.

    Usage:
        async with CSAPIClient(FetchOptions.with_basic_auth("ogc", "ogc")) as client:
            response = await client.fetch_json(url)
            page = await client.get_page(navigator.systems_url(limit=5))

            async for page in client.iter_pages(url, max_pages=3):
                ...
    """

    def __init__(self, options: Optional[FetchOptions] = None,
                 timeout: float = 30.0):
        """
        Args:
            options: Fetch configuration (auth headers etc.).
                     Defaults to no extra headers.
            timeout: HTTP request timeout in seconds. Default 30s.
        """
        self.timeout = timeout
        self._default_options = options or DEFAULT_OPTIONS
        self.options = self._default_options
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={
                "Accept": "application/geo+json, application/json;q=0.9",
                "User-Agent": USER_AGENT,
            },
            follow_redirects=True
        )

    async def close(self):
        """Release the underlying HTTP connection pool."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ───────────────────────────────────────────────────────────
    # FETCH OPTIONS LIFECYCLE
    # ───────────────────────────────────────────────────────────

    def set_options(self, options: FetchOptions) -> None:
        self.options = options

    def reset_options(self) -> None:
        """Restore the options the client was constructed with."""
        self.options = self._default_options

    @contextmanager
    def using_options(self, options: FetchOptions):
        """
        Apply options for the duration of a navigation session.

            with client.using_options(FetchOptions.with_basic_auth(u, p)):
                nav = await endpoint.find_navigator()
        """
        previous = self.options
        self.options = options
        try:
            yield self
        finally:
            self.options = previous

    # ───────────────────────────────────────────────────────────
    # REQUESTS
    # ───────────────────────────────────────────────────────────

    async def fetch_json(self, url: str,
                         headers: Optional[Mapping[str, str]] = None) -> FetchResponse:
        """
        GET a URL and parse its JSON body.

        Returns:
            FetchResponse. For 404 / 501 the body is None and
            `available` is False.

        Raises:
            CSAPIServerNotFound: Connection failure.
            CSAPITimeoutError:   Request timed out.
            CSAPITransportError: Any other non-2xx status or HTTP error,
                                 or a URL httpx cannot parse.
        """
        logger.debug(f"GET {url}")
        try:
            response = await self._client.get(url, headers=self.options.merged(headers))
        except httpx.ConnectError as e:
            raise CSAPIServerNotFound(
                f"Cannot connect to server for '{url}'. "
                f"Verify the URL is correct and the server is running. "
                f"Original error: {e}"
            ) from e
        except httpx.TimeoutException as e:
            raise CSAPITimeoutError(
                f"Request to {url} timed out after {self.timeout}s. "
                f"Try increasing the timeout or check server performance."
            ) from e
        except httpx.HTTPError as e:
            raise CSAPITransportError(
                f"HTTP error calling {url}: {type(e).__name__}: {e}",
                url=url,
            ) from e
        except httpx.InvalidURL as e:
            raise CSAPITransportError(f"Invalid URL {url!r}: {e}", url=url) from e

        status = response.status_code
        if status in ADVISORY_STATUSES:
            return FetchResponse(url=url, status=status, headers=response.headers)

        if not response.is_success:
            raise CSAPITransportError(
                f"Server returned HTTP {status} for {url}. "
                f"Response: {response.text[:300]}",
                status=status,
                url=url,
            )

        try:
            body = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning(f"Response from {url} is not valid JSON")
            body = None

        return FetchResponse(url=url, status=status,
                             headers=response.headers, body=body)

    async def get_page(self, url: str,
                       headers: Optional[Mapping[str, str]] = None) -> NormalizedPage:
        """Fetch a resource list and normalize it; 404/501 give an empty page."""
        response = await self.fetch_json(url, headers)
        if not response.available:
            logger.debug(f"{url} not available (HTTP {response.status})")
            return NormalizedPage()
        return normalize(response.body)

    async def iter_pages(self, url: str,
                         max_pages: Optional[int] = None) -> AsyncIterator[NormalizedPage]:
        """
        Yield pages starting at url, following rel="next" links.

        Stops when a page has no next link, when a next link points
        back at an already visited URL, or after max_pages pages.
        Relative next hrefs are resolved against the current URL.
        """
        visited = set()
        current: Optional[str] = url
        count = 0
        while current and current not in visited:
            if max_pages is not None and count >= max_pages:
                return
            visited.add(current)
            page = await self.get_page(current)
            count += 1
            yield page
            following = next_page_url(page)
            current = urljoin(current, following) if following else None
