"""
Typed records handed from feeders to the feature writers.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict

POINT = "point"
PATH = "path"
AREA = "area"

RECORD_KINDS = (POINT, PATH, AREA)

GEOMETRY_KINDS = {
    "Point": POINT,
    "LineString": PATH,
    "Polygon": AREA,
    "MultiPolygon": AREA,
}


@dataclass
class Record:
    kind: str
    id: Any
    # point: (x, y); path: [(x, y), ...]; area: list of polygons, each a list of rings
    coordinates: Any
    properties: Dict[str, Any] = field(default_factory=dict)


def _is_position(value):
    if not isinstance(value, (list, tuple)) or len(value) not in (2, 3):
        return False
    return all(isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v) for v in value)


def record_from_feature(feature, fallback_id=None):
    """
    Map a GeoJSON feature to a Record. Returns None for geometry types that do
    not correspond to a record kind and for points without a usable position.
    """
    geometry = feature.get("geometry")
    if not isinstance(geometry, dict):
        logging.debug(f"Skipping feature without a geometry object: {geometry!r}")
        return None
    geom_type = geometry.get("type")
    kind = GEOMETRY_KINDS.get(geom_type)
    if kind is None:
        logging.debug(f"Skipping feature with unsupported geometry type: {geom_type}")
        return None

    properties = feature.get("properties")
    properties = dict(properties) if isinstance(properties, dict) else {}

    record_id = feature.get("id")
    if record_id is None:
        record_id = properties.get("id", fallback_id)

    coordinates = geometry.get("coordinates")
    if kind == POINT and not _is_position(coordinates):
        logging.warning(f"Skipping point with id = {record_id}, invalid coordinates: {coordinates}")
        return None

    if geom_type == "Polygon":
        coordinates = [coordinates]

    return Record(kind=kind, id=record_id, coordinates=coordinates, properties=properties)
