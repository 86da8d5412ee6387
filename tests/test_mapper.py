"""
Tests for the MCP mapping layer: tool definitions, argument mapping,
and text formatting.

Run: pytest tests/test_mapper.py -v
"""

import mcp.types as types

from csapi_mcp.conformance import ConformanceSet
from csapi_mcp.endpoint import CollectionDescriptor, ServerInfo
from csapi_mcp.formats import FormatTag
from csapi_mcp.links import Link
from csapi_mcp.mapper import (
    build_discovery_tools,
    build_resource_url,
    build_workflow_prompts,
    describe_result,
    format_navigator,
    format_page,
    format_server_info,
    navigator_options,
)
from csapi_mcp.navigator import CSAPINavigator
from csapi_mcp.negotiation import NavigatorCapabilities, NotSupported, ResourceKind
from csapi_mcp.responses import NormalizedPage

from conftest import CS_CORE

BASE = "https://example.org/api/collections/sensors"
NAV = CSAPINavigator(
    base_url=BASE,
    available_resources=frozenset({ResourceKind.SYSTEMS}),
    supported_formats=frozenset({FormatTag.GEOJSON}),
)


def test_tools_are_well_formed():
    tools = build_discovery_tools()
    names = [tool.name for tool in tools]
    assert names == [
        "discover_csapi_server",
        "find_csapi_collection",
        "build_csapi_url",
        "get_csapi_resources",
        "follow_next_page",
    ]
    for tool in tools:
        assert isinstance(tool, types.Tool)
        assert tool.inputSchema["type"] == "object"
        assert set(tool.inputSchema["required"]) <= set(tool.inputSchema["properties"])


def test_resource_enum_lists_every_kind():
    build_tool = build_discovery_tools()[2]
    assert build_tool.inputSchema["properties"]["resource"]["enum"] == [
        "systems", "datastreams", "observations",
        "systemDatastreams", "datastreamObservations",
    ]


def test_prompts():
    prompts = build_workflow_prompts()
    assert [p.name for p in prompts] == ["sensor_exploration_workflow"]


# ─────────────────────────────────────────────
# Argument → URL mapping
# ─────────────────────────────────────────────

def test_navigator_options_drop_irrelevant_arguments():
    args = {"limit": 5, "q": "phone", "datetime": "2024", "server_url": "x"}
    assert navigator_options(ResourceKind.SYSTEMS, args) == {"limit": 5, "q": "phone"}
    assert navigator_options(ResourceKind.OBSERVATIONS, args) == {"limit": 5, "datetime": "2024"}


def test_build_resource_url():
    assert build_resource_url(NAV, {
        "resource": "systems", "limit": 5, "q": "phone",
    }) == f"{BASE}/systems?limit=5&q=phone"
    assert build_resource_url(NAV, {
        "resource": "systems", "resource_id": "s1", "limit": 5,
    }) == f"{BASE}/systems/s1"
    assert build_resource_url(NAV, {
        "resource": "datastreamObservations", "resource_id": "ds1", "limit": 2,
    }) == f"{BASE}/datastreams/ds1/observations?limit=2"
    assert build_resource_url(NAV, {
        "resource": "systems", "bbox": [-10, 35.5, 40, 75],
    }) == f"{BASE}/systems?bbox=-10,35.5,40,75"


# ─────────────────────────────────────────────
# Formatters
# ─────────────────────────────────────────────

def test_format_server_info():
    info = ServerInfo(
        title="Sensor Hub",
        description="Demo",
        api_url="https://example.org/api",
        conformance=ConformanceSet([CS_CORE]),
    )
    text = format_server_info(info, [CollectionDescriptor(id="sensors", title="All Sensors")])
    assert "Connected Systems Server: Sensor Hub" in text
    assert "1 Connected Systems" in text
    assert "  - core" in text
    assert "[sensors] All Sensors" in text


def test_format_server_info_without_collections():
    info = ServerInfo(title="Empty", description="", api_url="https://example.org/api")
    text = format_server_info(info, [])
    assert "No collections found" in text


def test_format_navigator():
    text = format_navigator("sensors", NAV)
    assert f"Base URL: {BASE}" in text
    assert "Available resources: systems" in text
    assert "Supported formats: geojson" in text


def test_describe_result():
    ok = NavigatorCapabilities("sensors", frozenset({ResourceKind.SYSTEMS}), "declared-links")
    assert describe_result(ok) == "supported (declared-links): systems"
    assert describe_result(NotSupported("lakes", "no links")) == "not supported: no links"


def test_format_page():
    page = NormalizedPage(
        items=[
            {"type": "Feature", "id": "s1", "properties": {"name": "Weather Station"}},
            {"id": "o1", "result": {"temp": 21.5}},
            {"id": "bare"},
        ],
        links=[Link(href=f"{BASE}/systems?offset=3", rel="next")],
    )
    text = format_page(f"{BASE}/systems", page)
    assert "Found 3 items" in text
    assert "s1: Weather Station" in text
    assert 'o1: result={"temp": 21.5}' in text
    assert "  - bare" in text
    assert f"Next page: {BASE}/systems?offset=3" in text


def test_format_empty_page():
    text = format_page(f"{BASE}/observations", NormalizedPage())
    assert text == f"No items returned from {BASE}/observations"
