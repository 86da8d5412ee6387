"""
Content-type driven format classification.

Connected Systems servers answer the same resource in several encodings
(GeoJSON, SensorML, SWE Common, plain JSON). Callers only need to know
which family a response belongs to, so the Content-Type header is
reduced to one of a small, fixed set of tags.

License: Apache Software License, Version 2.0
"""

from enum import Enum
from typing import Optional


class FormatTag(str, Enum):
    GEOJSON = "geojson"
    SENSORML = "sensorml"
    SWE = "swe"
    JSON = "json"
    UNKNOWN = "unknown"


# Checked top to bottom, first hit wins. "json" must stay last because
# every structured encoding above it also ends in "+json".
FORMAT_RULES: list[tuple[tuple[str, ...], FormatTag]] = [
    (("geo+json",), FormatTag.GEOJSON),
    (("sensorml", "sml+json", "sml+xml"), FormatTag.SENSORML),
    (("swe+json", "swe+xml"), FormatTag.SWE),
    (("json",), FormatTag.JSON),
]


def classify(content_type: Optional[str]) -> FormatTag:
    """
    Map a Content-Type header value to a FormatTag.

    Matching is a case-insensitive substring test against FORMAT_RULES.
    Missing, empty, or non-string input yields FormatTag.UNKNOWN.

    Examples:
        classify("application/geo+json")          -> FormatTag.GEOJSON
        classify("application/sml+json")          -> FormatTag.SENSORML
        classify("application/json; charset=utf-8") -> FormatTag.JSON
    """
    if not isinstance(content_type, str) or not content_type:
        return FormatTag.UNKNOWN
    lowered = content_type.lower()
    for markers, tag in FORMAT_RULES:
        if any(marker in lowered for marker in markers):
            return tag
    return FormatTag.UNKNOWN
