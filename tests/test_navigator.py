"""
Tests for CSAPINavigator URL construction.

Run: pytest tests/test_navigator.py -v
"""

from urllib.parse import urlsplit

import pytest

from csapi_mcp.endpoint import CollectionDescriptor
from csapi_mcp.formats import FormatTag
from csapi_mcp.navigator import DEFAULT_CRS, CSAPINavigator
from csapi_mcp.negotiation import NavigatorCapabilities, ResourceKind

BASE = "https://example.org/api/collections/sensors"


@pytest.fixture
def nav():
    return CSAPINavigator(
        base_url=BASE,
        available_resources=frozenset({ResourceKind.SYSTEMS}),
    )


# ─────────────────────────────────────────────
# Query string rules
# ─────────────────────────────────────────────

def test_systems_query_in_insertion_order(nav):
    url = nav.systems_url(limit=5, q="phone")
    assert url == f"{BASE}/systems?limit=5&q=phone"
    assert urlsplit(url).query == "limit=5&q=phone"


def test_no_options_means_no_query_string(nav):
    assert nav.systems_url() == f"{BASE}/systems"
    assert "?" not in nav.observations_url()
    assert "?" not in nav.datastreams_url(limit=None, observed_property="")


def test_bbox_is_joined_in_given_order(nav):
    url = nav.systems_url(bbox=[10, -5.5, 2, 60])
    assert url == f"{BASE}/systems?bbox=10,-5.5,2,60"


def test_bbox_is_not_validated(nav):
    assert nav.systems_url(bbox=[1, 2]) == f"{BASE}/systems?bbox=1,2"
    assert nav.systems_url(bbox="a,b") == f"{BASE}/systems?bbox=a,b"


def test_systems_all_options(nav):
    url = nav.systems_url(limit=2, bbox=(0, 1, 2, 3), q="weather", parent="p1")
    assert url == f"{BASE}/systems?limit=2&bbox=0,1,2,3&q=weather&parent=p1"


def test_limit_zero_is_kept(nav):
    assert nav.systems_url(limit=0) == f"{BASE}/systems?limit=0"


def test_user_input_is_escaped(nav):
    url = nav.systems_url(q="wind & rain=yes#1")
    assert url == f"{BASE}/systems?q=wind%20%26%20rain%3Dyes%231"


def test_unknown_option_is_rejected(nav):
    with pytest.raises(TypeError):
        nav.systems_url(observedProperty="temp")


def test_datastreams_observed_property_key(nav):
    url = nav.datastreams_url(limit=3, observed_property="http://qudt.org/vocab/quantitykind/Temperature")
    assert url == (
        f"{BASE}/datastreams?limit=3"
        "&observedProperty=http://qudt.org/vocab/quantitykind/Temperature"
    )


def test_observations_datetime(nav):
    url = nav.observations_url(limit=10, datetime="2024-01-01T00:00:00Z/..")
    assert url == f"{BASE}/observations?limit=10&datetime=2024-01-01T00:00:00Z/.."


# ─────────────────────────────────────────────
# Path interpolation
# ─────────────────────────────────────────────

def test_single_resource_urls(nav):
    assert nav.system_url("abc") == f"{BASE}/systems/abc"
    assert nav.datastream_url("ds-1") == f"{BASE}/datastreams/ds-1"


def test_ids_are_url_safe(nav):
    assert nav.system_url("a/b c?") == f"{BASE}/systems/a%2Fb%20c%3F"


def test_sub_resource_urls(nav):
    assert nav.system_datastreams_url("s1", limit=3) == f"{BASE}/systems/s1/datastreams?limit=3"
    assert nav.system_datastreams_url("s1") == f"{BASE}/systems/s1/datastreams"
    assert (
        nav.datastream_observations_url("ds1", limit=2, datetime="2024-06-01T00:00:00Z")
        == f"{BASE}/datastreams/ds1/observations?limit=2&datetime=2024-06-01T00:00:00Z"
    )


def test_builders_ignore_discovered_resources(nav):
    assert not nav.supports(ResourceKind.OBSERVATIONS)
    assert nav.observations_url(limit=1) == f"{BASE}/observations?limit=1"


def test_trailing_slash_in_base_url():
    nav = CSAPINavigator(base_url=BASE + "/")
    assert nav.systems_url() == f"{BASE}/systems"


# ─────────────────────────────────────────────
# Dispatch by ResourceKind
# ─────────────────────────────────────────────

def test_url_for(nav):
    assert nav.url_for("systems", limit=1) == f"{BASE}/systems?limit=1"
    assert nav.url_for(ResourceKind.SYSTEMS, "s1") == f"{BASE}/systems/s1"
    assert nav.url_for("datastreams", "d1") == f"{BASE}/datastreams/d1"
    assert nav.url_for("systemDatastreams", "s1", limit=4) == f"{BASE}/systems/s1/datastreams?limit=4"
    assert nav.url_for("datastreamObservations", "d1") == f"{BASE}/datastreams/d1/observations"


def test_url_for_sub_resource_needs_parent(nav):
    with pytest.raises(ValueError):
        nav.url_for("datastreamObservations")
    with pytest.raises(ValueError):
        nav.url_for("tasks")



def test_url_for_rejects_inputs_it_would_drop(nav):
    with pytest.raises(ValueError):
        nav.url_for("observations", "x")
    with pytest.raises(TypeError):
        nav.url_for("systems", "s1", limit=5)
    with pytest.raises(TypeError):
        nav.url_for("datastreams", "d1", observed_property="temp")
    with pytest.raises(TypeError):
        nav.url_for("observations", q="phone")


# ─────────────────────────────────────────────
# Construction from negotiation
# ─────────────────────────────────────────────

def test_from_capabilities():
    collection = CollectionDescriptor.from_dict({
        "id": "weather stations",
        "links": [
            {"rel": "systems", "href": "/s", "type": "application/geo+json"},
            {"rel": "alternate", "href": "/s?f=sml", "type": "application/sml+json"},
            {"rel": "alternate", "href": "/s?f=html", "type": "text/html"},
        ],
        "crs": ["http://www.opengis.net/def/crs/EPSG/0/4326"],
    })
    caps = NavigatorCapabilities(
        collection_id=collection.id,
        available_resources=frozenset({ResourceKind.SYSTEMS}),
        tier="declared-links",
    )
    nav = CSAPINavigator.from_capabilities("https://example.org/api/", collection, caps)

    assert nav.base_url == "https://example.org/api/collections/weather%20stations"
    assert nav.available_resources == frozenset({ResourceKind.SYSTEMS})
    assert nav.supported_formats == frozenset({FormatTag.GEOJSON, FormatTag.SENSORML})
    assert nav.supported_crs == ("http://www.opengis.net/def/crs/EPSG/0/4326",)


def test_capabilities_are_frozen(nav):
    with pytest.raises(AttributeError):
        nav.available_resources = frozenset()
    assert nav.supported_crs == DEFAULT_CRS
