"""
CSAPI-to-MCP Mapper — Translates navigator objects into MCP protocol objects.

    CSAPIEndpoint discovery   →  MCP Tool    (explore a server)
    CSAPINavigator URLs       →  MCP Tool    (build / fetch resources)
    NormalizedPage            →  TextContent (LLM-readable summaries)

Nothing here performs I/O; server.py wires these definitions to the
endpoint and client.

License: Apache Software License, Version 2.0
"""

import json
from typing import Any, Optional

import mcp.types as types

from .conformance import connected_systems_classes
from .endpoint import CollectionDescriptor, ServerInfo
from .navigator import CSAPINavigator
from .negotiation import NavigatorCapabilities, NegotiationResult, ResourceKind
from .responses import NormalizedPage, entity_id, next_page_url

# Tool arguments accepted per resource kind, mapped to navigator kwargs.
RESOURCE_OPTIONS: dict[ResourceKind, tuple[str, ...]] = {
    ResourceKind.SYSTEMS: ("limit", "bbox", "q", "parent"),
    ResourceKind.DATASTREAMS: ("limit", "observed_property"),
    ResourceKind.OBSERVATIONS: ("limit", "datetime"),
    ResourceKind.SYSTEM_DATASTREAMS: ("limit",),
    ResourceKind.DATASTREAM_OBSERVATIONS: ("limit", "datetime"),
}

# Single-resource lookups take no query options.
SINGLE_RESOURCE_KINDS = (ResourceKind.SYSTEMS, ResourceKind.DATASTREAMS)


def navigator_options(kind: ResourceKind, arguments: dict[str, Any],
                      single: bool = False) -> dict[str, Any]:
    """
    Pick the navigator options for `kind` out of raw tool arguments.

    Arguments that do not apply to the resource kind are dropped
    rather than rejected, since LLM clients routinely send extras.
    """
    if single:
        return {}
    options = {}
    for name in RESOURCE_OPTIONS[kind]:
        value = arguments.get(name)
        if value is None:
            continue
        options[name] = value
    return options


def build_resource_url(navigator: CSAPINavigator, arguments: dict[str, Any]) -> str:
    """Resolve the tool arguments of build/get tools into a navigator URL."""
    kind = ResourceKind(arguments["resource"])
    resource_id = arguments.get("resource_id")
    single = bool(resource_id) and kind in SINGLE_RESOURCE_KINDS
    return navigator.url_for(
        kind, resource_id, **navigator_options(kind, arguments, single=single)
    )


# ═══════════════════════════════════════════════════════════════
# TOOLS
# ═══════════════════════════════════════════════════════════════

def _server_url_property() -> dict:
    return {
        "type": "string",
        "description": (
            "Landing page URL of the Connected Systems API. "
            "Example: 'http://45.55.99.236:8080/sensorhub/api'"
        )
    }


def _resource_properties() -> dict:
    return {
        "server_url": _server_url_property(),
        "collection_id": {
            "type": "string",
            "description": (
                "Collection to navigate. Get a valid ID from "
                "find_csapi_collection() or discover_csapi_server()."
            )
        },
        "resource": {
            "type": "string",
            "enum": [kind.value for kind in ResourceKind],
            "description": (
                "Resource kind. systemDatastreams and datastreamObservations "
                "need resource_id set to the parent system / datastream ID."
            )
        },
        "resource_id": {
            "type": "string",
            "description": (
                "Single system or datastream ID (for systems/datastreams), "
                "or the parent ID for the sub-resource kinds."
            )
        },
        "limit": {
            "type": "integer",
            "description": "Maximum number of items per page.",
            "minimum": 0
        },
        "bbox": {
            "type": "array",
            "items": {"type": "number"},
            "description": "minLon, minLat, maxLon, maxLat (systems only)."
        },
        "q": {
            "type": "string",
            "description": "Keyword search (systems only). Example: 'weather'"
        },
        "parent": {
            "type": "string",
            "description": "Parent system ID (systems only)."
        },
        "observed_property": {
            "type": "string",
            "description": "Observed property URI or ID (datastreams only)."
        },
        "datetime": {
            "type": "string",
            "description": (
                "ISO 8601 instant or interval (observations only). "
                "Example: '2024-01-01T00:00:00Z/..'"
            )
        }
    }


def build_discovery_tools() -> list[types.Tool]:
    """Build the fixed set of tools exposed by the MCP server."""
    return [
        types.Tool(
            name="discover_csapi_server",
            description=(
                "Explore an OGC API - Connected Systems server. Returns the "
                "server title, the Connected Systems conformance classes it "
                "declares, and its collections. Use this FIRST on a new server."
            ),
            inputSchema={
                "type": "object",
                "properties": {"server_url": _server_url_property()},
                "required": ["server_url"]
            }
        ),
        types.Tool(
            name="find_csapi_collection",
            description=(
                "Find the first collection that exposes Connected Systems "
                "resources (systems, datastreams, observations) and report "
                "which resources, formats and CRS it supports."
            ),
            inputSchema={
                "type": "object",
                "properties": {"server_url": _server_url_property()},
                "required": ["server_url"]
            }
        ),
        types.Tool(
            name="build_csapi_url",
            description=(
                "Build a correctly encoded request URL for a systems, "
                "datastreams or observations resource without fetching it."
            ),
            inputSchema={
                "type": "object",
                "properties": _resource_properties(),
                "required": ["server_url", "collection_id", "resource"]
            }
        ),
        types.Tool(
            name="get_csapi_resources",
            description=(
                "Fetch one page of systems, datastreams or observations and "
                "return the items found plus the URL of the next page, if any. "
                "Pass that URL to follow_next_page to continue."
            ),
            inputSchema={
                "type": "object",
                "properties": _resource_properties(),
                "required": ["server_url", "collection_id", "resource"]
            }
        ),
        types.Tool(
            name="follow_next_page",
            description=(
                "Fetch the page at a next-page URL returned by "
                "get_csapi_resources or a previous follow_next_page call."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "url": {
                        "type": "string",
                        "description": "Next-page URL to fetch."
                    }
                },
                "required": ["url"]
            }
        ),
    ]


# ═══════════════════════════════════════════════════════════════
# WORKFLOW PROMPTS
# ═══════════════════════════════════════════════════════════════

def build_workflow_prompts() -> list[types.Prompt]:
    return [
        types.Prompt(
            name="sensor_exploration_workflow",
            description=(
                "Guide the LLM through exploring a Connected Systems server: "
                "discover → find a CS collection → list systems → drill into "
                "a system's datastreams → read recent observations."
            ),
            arguments=[
                types.PromptArgument(
                    name="server_url",
                    description="Connected Systems API URL",
                    required=True
                ),
                types.PromptArgument(
                    name="goal",
                    description="What the user wants to learn from the sensors",
                    required=False
                )
            ]
        )
    ]


def sensor_exploration_text(server_url: str, goal: str) -> str:
    return (
        f"Sensor Exploration Workflow for: {goal}\n\n"
        f"Step 1: Discover the server at {server_url} using discover_csapi_server\n"
        f"Step 2: Find a Connected Systems collection using find_csapi_collection\n"
        f"Step 3: List systems using get_csapi_resources with resource='systems'\n"
        f"Step 4: Pick a system and list its datastreams "
        f"(resource='systemDatastreams', resource_id=<system id>)\n"
        f"Step 5: Read observations with resource='datastreamObservations'\n"
        f"Step 6: Use follow_next_page while more pages are needed\n"
        f"Step 7: Summarize the findings for the user"
    )


# ═══════════════════════════════════════════════════════════════
# RESPONSE FORMATTERS
# Convert discovery results and pages into text for LLM consumption.
# ═══════════════════════════════════════════════════════════════

def format_server_info(info: ServerInfo,
                       collections: list[CollectionDescriptor]) -> str:
    lines = [
        f"Connected Systems Server: {info.title}",
        f"URL: {info.api_url}",
    ]
    if info.description:
        lines.append(f"Description: {info.description}")

    cs_classes = connected_systems_classes(info.conformance)
    lines.append(
        f"Conformance: {len(info.conformance)} classes, "
        f"{len(cs_classes)} Connected Systems"
    )
    for uri in cs_classes:
        lines.append(f"  - {uri.rstrip('/').rsplit('/', 1)[-1] or uri}")

    lines.append(format_collections(collections))
    return "\n".join(lines)


def format_collections(collections: list[CollectionDescriptor]) -> str:
    if not collections:
        return "No collections found on this server."
    lines = [f"Found {len(collections)} collections:"]
    for col in collections:
        lines.append(f"  [{col.id}] {col.title}")
    return "\n".join(lines)


def describe_result(result: NegotiationResult) -> str:
    """One-line summary of a negotiation result."""
    if isinstance(result, NavigatorCapabilities):
        kinds = ", ".join(sorted(kind.value for kind in result.available_resources))
        return f"supported ({result.tier}): {kinds}"
    return f"not supported: {result.reason}"


def format_navigator(collection_id: str, navigator: CSAPINavigator) -> str:
    resources = sorted(kind.value for kind in navigator.available_resources)
    formats = sorted(tag.value for tag in navigator.supported_formats)
    return "\n".join([
        f"Connected Systems collection: {collection_id}",
        f"Base URL: {navigator.base_url}",
        f"Available resources: {', '.join(resources) or 'none'}",
        f"Supported formats: {', '.join(formats) or 'not declared'}",
        f"Supported CRS: {', '.join(navigator.supported_crs)}",
    ])


def _item_summary(item: Any) -> str:
    if not isinstance(item, dict):
        return json.dumps(item, default=str)[:120]
    props = item.get("properties")
    source = props if isinstance(props, dict) else item
    label = source.get("name") or source.get("label") or source.get("phenomenonTime")
    identifier = entity_id(item) or "?"
    if label:
        return f"{identifier}: {label}"
    result = source.get("result")
    if result is not None:
        return f"{identifier}: result={json.dumps(result, default=str)[:80]}"
    return identifier


def format_page(url: str, page: NormalizedPage, max_items: int = 20) -> str:
    """Summarize a normalized page, including its next-page URL."""
    if not page.items:
        lines = [f"No items returned from {url}"]
    else:
        lines = [f"Found {len(page.items)} items at {url}:"]
        for item in page.items[:max_items]:
            lines.append(f"  - {_item_summary(item)}")
        if len(page.items) > max_items:
            lines.append(f"  ... and {len(page.items) - max_items} more")

    following: Optional[str] = next_page_url(page)
    if following:
        lines.append(f"Next page: {following}")
    return "\n".join(lines)
