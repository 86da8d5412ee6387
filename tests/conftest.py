"""
Shared fixtures: a mocked Connected Systems server built from the
documents a typical OpenSensorHub-style deployment serves.
"""

import httpx
import pytest
import respx

API_URL = "https://example.org/api"

CS_CORE = "http://www.opengis.net/spec/ogcapi-connected-systems-1/1.0/conf/core"


@pytest.fixture
def respx_mock():
    """Respx mock for HTTP requests."""
    with respx.mock(assert_all_called=False) as mock:
        yield mock


@pytest.fixture
def landing_page():
    return {
        "title": "Connected Systems Demo",
        "description": "Sensor hub used in tests",
        "links": [
            {"rel": "self", "href": API_URL},
            {"rel": "conformance", "href": "/api/conformance"},
            {"rel": "collections", "href": "/api/collections"},
        ],
    }


@pytest.fixture
def conformance_doc():
    return {
        "conformsTo": [
            "http://www.opengis.net/spec/ogcapi-common-1/1.0/conf/core",
            CS_CORE,
        ]
    }


@pytest.fixture
def collections_doc():
    return {
        "collections": [
            {"id": "lakes", "title": "Lakes", "links": [
                {"rel": "items", "href": "/api/collections/lakes/items",
                 "type": "application/geo+json"},
            ]},
            {"id": "sensors", "title": "All Sensors", "links": [
                {"rel": "systems", "href": "/api/collections/sensors/systems",
                 "type": "application/geo+json"},
            ]},
        ]
    }


@pytest.fixture
def mock_server(respx_mock, landing_page, conformance_doc, collections_doc):
    """Landing page, conformance and collections routes on API_URL."""
    respx_mock.get(API_URL).mock(
        return_value=httpx.Response(200, json=landing_page)
    )
    respx_mock.get(f"{API_URL}/conformance").mock(
        return_value=httpx.Response(200, json=conformance_doc)
    )
    respx_mock.get(f"{API_URL}/collections").mock(
        return_value=httpx.Response(200, json=collections_doc)
    )
    return respx_mock
